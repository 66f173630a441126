# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from supplylist_import.logging.init import reset_logging
from supplylist_import.models.config_models import ImportConfig, RetryConfig
from supplylist_import.storage.memory import InMemoryContentStore

FULL_COLUMNS = [
    "Colegio", "RBD", "Comuna", "Curso", "Asignatura", "Lista_nombre",
    "URL_lista", "Libro_nombre", "Libro_cantidad", "Libro_orden",
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("CONTENT_API_URL", raising=False)
        monkeypatch.delenv("CONTENT_API_TOKEN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """storage:
  base_url: http://content.local
  api_token: secret
retry:
  base_delay_seconds: 0
  course_settle_seconds: 0
uploads:
  max_workers: 2
import:
  default_list_name: Lista de Útiles
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fast_config() -> ImportConfig:
    """Default config with every retry delay at zero."""
    return ImportConfig(retry=RetryConfig(base_delay_seconds=0.0, course_settle_seconds=0.0))


@pytest.fixture()
def store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def write_xlsx(temp_workdir: Path):
    """Write a list of dicts as data/<name> and return the path."""
    def _write(records: list[dict[str, Any]], name: str = "listas.xlsx") -> Path:
        path = temp_workdir / "data" / name
        pd.DataFrame.from_records(records).to_excel(path, index=False)
        return path
    return _write


@pytest.fixture()
def make_zip():
    def _make(files: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            for name, data in files.items():
                zf.writestr(name, data)
        return buffer.getvalue()
    return _make


class FakeDownloader:
    """Downloader returning a fixed body and recording the urls fetched."""

    def __init__(self, body: bytes = b"%PDF-1.4 fake") -> None:
        self.body = body
        self.urls: list[str] = []

    def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        return self.body

    def close(self) -> None:
        pass


@pytest.fixture()
def downloader() -> FakeDownloader:
    return FakeDownloader()


def spreadsheet_record(**overrides: Any) -> dict[str, Any]:
    record = {
        "Colegio": "Colegio Los Andes",
        "RBD": 12345,
        "Comuna": "Providencia",
        "Curso": "1º Básico",
        "Asignatura": "Lenguaje",
        "Lista_nombre": None,
        "URL_lista": "https://example.cl/listas/1basico.pdf",
        "Libro_nombre": "Cuaderno college",
        "Libro_cantidad": 2,
        "Libro_orden": 1,
    }
    record.update(overrides)
    return record


@pytest.fixture()
def make_record():
    return spreadsheet_record
