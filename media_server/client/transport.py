"""HTTP client for the media server API.

Every failure surfaces as :class:`TransferError`: network errors, non-2xx
responses, and uploads the server answered with a per-file rejection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

import httpx

from media_server.errors import TransferError

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://127.0.0.1:5000"
DEFAULT_TIMEOUT = 60.0

ProgressCallback = Callable[[int, int], None]


class ProgressReader:
    """File wrapper that reports bytes read while httpx streams the body."""

    def __init__(self, fileobj: IO[bytes], total: int, callback: ProgressCallback | None) -> None:
        self._file = fileobj
        self._total = total
        self._callback = callback
        self._read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size)
        if chunk:
            self._read += len(chunk)
            if self._callback:
                self._callback(min(self._read, self._total), self._total)
        return chunk

    def seek(self, offset: int, whence: int = 0) -> int:
        pos = self._file.seek(offset, whence)
        if whence == 0 and offset == 0:
            self._read = 0
        return pos

    def tell(self) -> int:
        return self._file.tell()

    def fileno(self) -> int:
        return self._file.fileno()


class MediaClient:
    """Thin synchronous client over the media server's JSON API."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        """Fresh client per call so worker threads never share a connection pool."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            with self._client() as client:
                resp = client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransferError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransferError(f"Connection failed: {e}") from e
        return self._parse(resp)

    @staticmethod
    def _parse(resp: httpx.Response) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        if resp.status_code >= 400:
            message = payload.get("error") or resp.text[:200] or resp.reason_phrase
            raise TransferError(str(message), status=resp.status_code)
        return payload

    def authenticate(self, code: str) -> str:
        """Exchange the access code for a token and remember it."""
        payload = self._request("POST", "/api/auth", json={"code": code})
        self.token = str(payload["token"])
        return self.token

    def list_folder(self, path: str = "") -> dict[str, Any]:
        """Folders and media files of ``path``."""
        return self._request("GET", "/api/folders", params={"path": path})

    def create_folder(self, name: str, parent_path: str = "") -> str:
        """Create a folder and return its relative path."""
        payload = self._request(
            "POST", "/api/folders", json={"name": name, "parentPath": parent_path}
        )
        return str(payload["path"])

    def upload_file(
        self,
        path: Path,
        folder: str = "",
        progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Upload one file, streaming it from disk with byte-level progress.

        Returns:
            The server's record of the stored file (name, path, url)

        Raises:
            TransferError: On network failure, error status, or rejection
        """
        total = path.stat().st_size
        with open(path, "rb") as fh:
            reader = ProgressReader(fh, total, progress)
            payload = self._request(
                "POST",
                "/api/upload",
                data={"folderPath": folder},
                files={"files": (path.name, reader)},
            )

        errors = payload.get("errors") or []
        if errors:
            raise TransferError(str(errors[0].get("error", "Rejected")), details={"name": path.name})
        files = payload.get("files") or []
        if not files:
            raise TransferError("Server stored no file", details={"name": path.name})
        logger.debug("Uploaded %s to %s", path.name, files[0].get("path"))
        return dict(files[0])

    def delete_file(self, file_path: str) -> None:
        """Delete one file."""
        self._request("DELETE", "/api/files", json={"filePath": file_path})

    def delete_files(self, file_paths: list[str]) -> list[dict[str, Any]]:
        """Delete several files; returns the per-path results."""
        payload = self._request("DELETE", "/api/files/bulk", json={"filePaths": file_paths})
        return list(payload.get("results", []))

    def delete_all(self, folder_path: str = "") -> dict[str, Any]:
        """Delete every file directly inside a folder."""
        return self._request("DELETE", "/api/files/all", json={"folderPath": folder_path})
