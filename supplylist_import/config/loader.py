from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ImportConfig, ImportOptions, RetryConfig, StorageConfig, UploadConfig

"""Config loader.

Responsibilities:
- Load YAML (default config/import.yml)
- Validate it against the JSON schema shipped next to this module
- Apply defaults for every optional key
- Let CONTENT_API_URL / CONTENT_API_TOKEN override the storage connection

A missing file is not an error when ``required=False``: the defaults plus
the environment are enough for a run.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")

ENV_API_URL = "CONTENT_API_URL"
ENV_API_TOKEN = "CONTENT_API_TOKEN"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or data not valid
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path)
        prefix = f"{location}: " if location else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    return dict(data.get(name) or {})


def _build(data: Mapping[str, Any], env: Mapping[str, str]) -> ImportConfig:
    storage_raw = _section(data, "storage")
    if env.get(ENV_API_URL):
        storage_raw["base_url"] = env[ENV_API_URL]
    if env.get(ENV_API_TOKEN):
        storage_raw["api_token"] = env[ENV_API_TOKEN]

    retry_raw = _section(data, "retry")
    if "verify_schedule" in retry_raw:
        retry_raw["verify_schedule"] = tuple(float(d) for d in retry_raw["verify_schedule"])

    return ImportConfig(
        storage=StorageConfig(**storage_raw),
        retry=RetryConfig(**retry_raw),
        uploads=UploadConfig(**_section(data, "uploads")),
        options=ImportOptions(**_section(data, "import")),
        logs_directory=str(data.get("logs_directory") or ImportConfig.logs_directory),
    )


def load_config(
    path: Path | None = None,
    *,
    required: bool = True,
    env: Mapping[str, str] | None = None,
) -> ImportConfig:
    """Load and validate the import configuration.

    Args:
        path: YAML file; DEFAULT_CONFIG_PATH when omitted
        required: Raise when the file is missing (otherwise use defaults)
        env: Environment used for overrides; os.environ when omitted
    """
    path = path or DEFAULT_CONFIG_PATH
    env = os.environ if env is None else env
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        data: Any = {}
    else:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return _build(data, env)
