from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the supply-list importer.

Built by supplylist_import.config.loader from config/import.yml after schema
validation. Environment variables take precedence over the storage
connection values found in the file.
"""


@dataclass(frozen=True)
class StorageConfig:
    """Connection to the remote content API."""
    base_url: str | None = None
    api_token: str | None = None
    schools_path: str = "/api/colegios"
    courses_path: str = "/api/cursos"
    upload_path: str = "/api/upload"
    school_relation: str = "colegio"  # course field pointing at its school
    versions_field: str = "versiones_materiales"
    read_timeout: float = 30.0
    upload_timeout: float = 120.0
    page_size: int = 100


@dataclass(frozen=True)
class RetryConfig:
    """Retry schedules. Every delay is multiplied by base_delay_seconds."""
    base_delay_seconds: float = 1.0
    read_attempts: int = 3  # read-before-append, linear backoff
    verify_schedule: tuple[float, ...] = (1.0, 2.0, 3.0, 5.0)  # 5 attempts
    persist_attempts: int = 3  # version write, linear backoff
    course_settle_seconds: float = 1.5  # wait after creating a course


@dataclass(frozen=True)
class UploadConfig:
    max_workers: int = 4


@dataclass(frozen=True)
class ImportOptions:
    default_list_name: str = "Lista de Útiles"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import job."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)
    options: ImportOptions = field(default_factory=ImportOptions)
    logs_directory: str = "./logs"
