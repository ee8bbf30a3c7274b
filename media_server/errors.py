"""Exception hierarchy for media_server.

Each server-side error carries the HTTP status a route answers with, so a
single ``except MediaServerError`` turns any failure into a JSON error.
"""

from typing import Any


class MediaServerError(Exception):
    """Base exception for all media_server errors."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class PathTraversalError(MediaServerError):
    """Relative path resolves outside the media root."""

    status_code = 400

    def __init__(self, path: str) -> None:
        super().__init__("Path escapes the media root", {"path": path})
        self.path = path


class InvalidPathError(MediaServerError):
    """Relative path is malformed (e.g. contains a NUL byte)."""

    status_code = 400

    def __init__(self, path: str, reason: str = "Invalid path") -> None:
        super().__init__(reason, {"path": repr(path)})
        self.path = path


class InvalidFileTypeError(MediaServerError):
    """File extension is not a recognized image or video type."""

    status_code = 415

    def __init__(self, filename: str) -> None:
        super().__init__("Invalid file type", {"name": filename})
        self.filename = filename


class PayloadTooLargeError(MediaServerError):
    """File exceeds the per-file upload size cap."""

    status_code = 413

    def __init__(self, filename: str, limit: int) -> None:
        super().__init__("File too large", {"name": filename, "limit": limit})
        self.filename = filename
        self.limit = limit


class MediaNotFoundError(MediaServerError):
    """Target file or folder does not exist."""

    status_code = 404

    def __init__(self, path: str) -> None:
        super().__init__("Not found", {"path": path})
        self.path = path


class AuthenticationError(MediaServerError):
    """Missing or incorrect shared secret."""

    status_code = 401

    def __init__(self, message: str = "Invalid authentication code") -> None:
        super().__init__(message)


class TransferError(MediaServerError):
    """Client-side transfer failed (network error, bad status, rejected file)."""

    status_code = 502

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status is not None:
            merged["status"] = status
        super().__init__(message, merged)
        self.status = status
