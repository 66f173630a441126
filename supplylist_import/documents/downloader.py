from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import UploadError

"""Remote document downloader.

Runs server side, so list URLs published on school websites can be fetched
without browser cross-origin restrictions.
"""

__all__ = [
    "HttpDocumentDownloader",
]

logger = logging.getLogger(__name__)


class HttpDocumentDownloader:
    def __init__(self, timeout: float = 120.0, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": "supplylist-import/0.3"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpDocumentDownloader:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def fetch(self, url: str) -> bytes:
        if not url.startswith(("http://", "https://")):
            raise UploadError(f"not an http(s) url: {url}")
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadError(f"download {url} -> {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadError(f"download {url} failed: {e}") from e
        if not response.content:
            raise UploadError(f"download {url} returned an empty body")
        logger.debug("downloaded url=%s bytes=%d", url, len(response.content))
        return response.content
