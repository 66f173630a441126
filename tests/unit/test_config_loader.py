from __future__ import annotations

from pathlib import Path

import pytest

from supplylist_import.config.loader import ConfigError, load_config


def test_load_config_success(write_config: Path) -> None:
    cfg = load_config(write_config, env={})
    assert cfg.storage.base_url == "http://content.local"
    assert cfg.storage.api_token == "secret"
    assert cfg.storage.courses_path == "/api/cursos"
    assert cfg.retry.base_delay_seconds == 0
    assert cfg.retry.verify_schedule == (1.0, 2.0, 3.0, 5.0)
    assert cfg.uploads.max_workers == 2
    assert cfg.options.default_list_name == "Lista de Útiles"
    assert cfg.logs_directory == "./logs"


def test_environment_overrides_connection(write_config: Path) -> None:
    cfg = load_config(write_config, env={"CONTENT_API_URL": "https://cms.example.cl", "CONTENT_API_TOKEN": "env"})
    assert cfg.storage.base_url == "https://cms.example.cl"
    assert cfg.storage.api_token == "env"


def test_missing_file(temp_workdir: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_missing_optional_file_uses_defaults(temp_workdir: Path) -> None:
    cfg = load_config(temp_workdir / "nope.yml", required=False, env={"CONTENT_API_URL": "http://x"})
    assert cfg.storage.base_url == "http://x"
    assert cfg.retry.read_attempts == 3
    assert cfg.retry.course_settle_seconds == 1.5


def test_invalid_yaml(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("storage: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


@pytest.mark.parametrize(
    ("text", "where"),
    [
        ("unknown_section: 1\n", "unknown_section"),
        ("retry:\n  read_attempts: 0\n", "retry.read_attempts"),
        ("uploads:\n  max_workers: many\n", "uploads.max_workers"),
        ("storage:\n  bogus: 1\n", "bogus"),
    ],
)
def test_schema_violations(temp_workdir: Path, text: str, where: str) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed") as info:
        load_config(path, env={})
    assert where in str(info.value)


def test_root_must_be_mapping(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)
