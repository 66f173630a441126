from __future__ import annotations

import logging
from typing import Any

import httpx

from ..models.config_models import StorageConfig
from ..models.documents import UploadedDocument
from ..models.records import CourseRecord, SchoolRecord
from .errors import DuplicateCodeError, StorageError, StorageUnavailableError, TransientStorageError

"""HTTP binding of the content store (Strapi style REST API).

Collections are addressed through the paths in StorageConfig. Entries are
wrapped as ``{"data": {...}}`` on write and returned as ``{"data": ...}``;
both the flat (v5) and ``attributes`` (v4) entry layouts are understood,
``documentId`` is preferred over the numeric ``id``.

Transport failures are classified so the orchestrator's retry loops can
decide what to do:
- timeouts, 5xx, dropped connections -> TransientStorageError
- connection refused / DNS failure    -> StorageUnavailableError
- 404                                  -> None from lookups
- any other 4xx                        -> StorageError
"""

__all__ = [
    "HttpContentStore",
]

logger = logging.getLogger(__name__)

_DUPLICATE_MARKERS = ("unique", "already", "duplicad", "exist")


def _entry_id(entry: dict[str, Any]) -> int | str:
    return entry.get("documentId") or entry.get("id")


def _attrs(entry: dict[str, Any]) -> dict[str, Any]:
    attrs = entry.get("attributes")
    return attrs if isinstance(attrs, dict) else entry


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class HttpContentStore:
    """ContentStore over httpx.

    The client may be injected (tests pass one built on httpx.MockTransport).
    """

    def __init__(self, config: StorageConfig, client: httpx.Client | None = None) -> None:
        if client is None and not config.base_url:
            raise ValueError("storage.base_url is required for the HTTP content store")
        self._config = config
        headers = {"Accept": "application/json"}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        self._client = client or httpx.Client(
            base_url=config.base_url or "",
            headers=headers,
            timeout=httpx.Timeout(config.read_timeout),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpContentStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -- transport ----------------------------------------------------
    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response | None:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientStorageError(f"{method} {url} timed out: {e}") from e
        except httpx.ConnectError as e:
            raise StorageUnavailableError(f"{method} {url} unreachable: {e}") from e
        except httpx.TransportError as e:
            raise TransientStorageError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise TransientStorageError(f"{method} {url} -> {response.status_code}: {_error_message(response)}")
        if response.status_code >= 400:
            raise StorageError(f"{method} {url} -> {response.status_code}: {_error_message(response)}")
        return response

    def _get_all(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        page = 1
        while True:
            response = self._request(
                "GET",
                path,
                params={**params, "pagination[page]": page, "pagination[pageSize]": self._config.page_size},
            )
            if response is None:
                return entries
            body = response.json()
            data = body.get("data") or []
            entries.extend(data)
            page_count = ((body.get("meta") or {}).get("pagination") or {}).get("pageCount", 1)
            if page >= page_count or not data:
                return entries
            page += 1

    # -- parsing ------------------------------------------------------
    def _school(self, entry: dict[str, Any]) -> SchoolRecord:
        attrs = _attrs(entry)
        commune = attrs.get("comuna")
        if isinstance(commune, dict):
            commune = _attrs(commune).get("comuna_nombre")
        return SchoolRecord(
            id=_entry_id(entry),
            name=attrs.get("colegio_nombre") or attrs.get("nombre") or "",
            code=_to_int(attrs.get("rbd")),
            commune=commune,
            raw=entry,
        )

    def _course(self, entry: dict[str, Any]) -> CourseRecord:
        attrs = _attrs(entry)
        school = attrs.get(self._config.school_relation)
        school_id = None
        if isinstance(school, dict):
            school = school.get("data", school)
            school_id = _entry_id(school) if isinstance(school, dict) else None
        elif school is not None:
            school_id = school
        return CourseRecord(
            id=_entry_id(entry),
            school_id=school_id,
            name=attrs.get("nombre_curso") or attrs.get("curso_nombre") or "",
            level=attrs.get("nivel"),
            grade=_to_int(attrs.get("grado")),
            year=_to_int(attrs.get("año") or attrs.get("anio")),
            versions=list(attrs.get(self._config.versions_field) or []),
            raw=entry,
        )

    # -- ContentStore -------------------------------------------------
    def list_schools(self) -> list[SchoolRecord]:
        return [self._school(e) for e in self._get_all(self._config.schools_path, {})]

    def find_school(self, *, code: int | None = None, name: str | None = None) -> SchoolRecord | None:
        if code is not None:
            params = {"filters[rbd][$eq]": code}
        elif name:
            params = {"filters[colegio_nombre][$eqi]": name}
        else:
            return None
        response = self._request("GET", self._config.schools_path, params=params)
        if response is None:
            return None
        data = response.json().get("data") or []
        return self._school(data[0]) if data else None

    def create_school(self, fields: dict[str, Any]) -> SchoolRecord:
        payload = {"colegio_nombre": fields.get("name"), "rbd": fields.get("code")}
        if fields.get("commune"):
            payload["comuna"] = fields["commune"]
        try:
            response = self._request("POST", self._config.schools_path, json={"data": payload})
        except StorageError as e:
            if not isinstance(e, TransientStorageError) and any(m in str(e).lower() for m in _DUPLICATE_MARKERS):
                raise DuplicateCodeError(fields.get("code"), str(e)) from e
            raise
        if response is None:
            raise StorageError(f"POST {self._config.schools_path} -> 404")
        return self._school(response.json()["data"])

    def list_courses(self, school_id: int | str) -> list[CourseRecord]:
        key = "documentId" if isinstance(school_id, str) else "id"
        params = {f"filters[{self._config.school_relation}][{key}][$eq]": school_id}
        return [self._course(e) for e in self._get_all(self._config.courses_path, params)]

    def create_course(self, school_id: int | str, fields: dict[str, Any]) -> CourseRecord:
        payload = {
            "nombre_curso": fields.get("name"),
            "nivel": fields.get("level"),
            "grado": str(fields["grade"]) if fields.get("grade") is not None else None,
            "año": fields.get("year"),
            "activo": fields.get("active", True),
            self._config.school_relation: school_id,
        }
        response = self._request("POST", self._config.courses_path, json={"data": payload})
        if response is None:
            raise StorageError(f"POST {self._config.courses_path} -> 404")
        return self._course(response.json()["data"])

    def get_course(self, course_id: int | str) -> CourseRecord | None:
        response = self._request("GET", f"{self._config.courses_path}/{course_id}", params={"populate": "*"})
        if response is None:
            return None
        data = response.json().get("data")
        return self._course(data) if data else None

    def update_course_versions(self, course_id: int | str, versions: list[dict[str, Any]]) -> None:
        url = f"{self._config.courses_path}/{course_id}"
        response = self._request("PUT", url, json={"data": {self._config.versions_field: versions}})
        if response is None:
            raise StorageError(f"PUT {url} -> 404")

    def upload_file(self, data: bytes, name: str) -> UploadedDocument:
        response = self._request(
            "POST",
            self._config.upload_path,
            files={"files": (name, data, "application/pdf")},
            timeout=httpx.Timeout(self._config.upload_timeout),
        )
        if response is None:
            raise StorageError(f"POST {self._config.upload_path} -> 404")
        try:
            body = response.json()
            entry = body[0] if isinstance(body, list) else body
            file_id = entry["id"]
            url = entry.get("url")
        except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
            raise StorageError(
                f"POST {self._config.upload_path}: unexpected response {response.text[:200]!r}"
            ) from e
        logger.debug("uploaded name=%s id=%s", name, file_id)
        return UploadedDocument(id=file_id, url=url, name=name)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error or body)[:200]
