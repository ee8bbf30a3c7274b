"""Server-side ingestion of uploaded media files."""

import logging
import tempfile
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Protocol

from media_server.errors import (
    InvalidFileTypeError,
    MediaServerError,
    PayloadTooLargeError,
)
from media_server.services import media_types, paths
from media_server.services.log_service import get_log_service
from media_server.services.utils import format_file_size, plural

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
# Parts smaller than this stay in memory while the request is parsed
SPOOL_MEMORY_BYTES = 500 * 1024


class IncomingFile(Protocol):
    """What the acceptor needs from an uploaded part (werkzeug's FileStorage fits)."""

    filename: str | None
    stream: IO[bytes]


class CappedUploadStream:
    """Spool for one multipart file part that stops storing past ``limit`` bytes.

    The form parser keeps writing the rest of the part so the request body is
    consumed, but once the count passes the limit the spool is emptied and
    later data is dropped. ``overflowed`` tells the acceptor to reject it.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.received = 0
        self.overflowed = False
        self._spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MEMORY_BYTES)

    def write(self, data: bytes) -> int:
        self.received += len(data)
        if self.overflowed:
            return len(data)
        if self.received > self.limit:
            self.overflowed = True
            self._spool.seek(0)
            self._spool.truncate()
            logger.info(
                "Discarding upload part after %d bytes (limit %d)", self.received, self.limit
            )
            return len(data)
        return self._spool.write(data)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._spool, name)


@dataclass
class UploadResult:
    """One accepted file."""

    original_name: str
    stored_path: str
    url: str
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"name": self.original_name, "path": self.stored_path, "url": self.url}


@dataclass
class UploadRejection:
    """One rejected file, reported alongside its accepted siblings."""

    original_name: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"name": self.original_name, "error": self.error}


@dataclass
class UploadOutcome:
    """Per-file results of a single upload request."""

    folder: str
    accepted: list[UploadResult] = field(default_factory=list)
    rejected: list[UploadRejection] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when no file in the request was rejected."""
        return not self.rejected

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "files": [r.to_dict() for r in self.accepted],
            "errors": [r.to_dict() for r in self.rejected],
        }


def generate_stored_name(original_name: str) -> str:
    """Collision-resistant stored name: ``<millis>-<uuid4><ext>``."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4()}{media_types.extension_of(original_name)}"


class UploadAcceptor:
    """Validates uploaded parts and streams them into the media root."""

    def __init__(self, media_root: Path, max_file_size: int) -> None:
        self.media_root = media_root
        self.max_file_size = max_file_size

    def accept(self, destination_folder: str, files: Iterable[IncomingFile]) -> UploadOutcome:
        """Store every acceptable file under ``destination_folder``.

        The destination is resolved (and created) once for the request; a
        traversal there rejects the whole request. Type and size failures
        are isolated to the offending file.

        Raises:
            PathTraversalError: If the destination escapes the media root
            InvalidPathError: If the destination is malformed
        """
        folder = paths.normalize_relative(destination_folder)
        target_dir = paths.resolve(self.media_root, folder)
        target_dir.mkdir(parents=True, exist_ok=True)

        log = get_log_service()
        outcome = UploadOutcome(folder=folder)

        for incoming in files:
            name = incoming.filename or ""
            if not name:
                continue
            try:
                result = self._store(target_dir, name, incoming.stream)
            except MediaServerError as e:
                outcome.rejected.append(UploadRejection(name, e.message))
                log.warning(
                    "upload",
                    "file_rejected",
                    f"Rejected {name}: {e.message}",
                    {"folder": folder, "name": name, "error": e.message},
                )
                continue
            except OSError as e:
                outcome.rejected.append(UploadRejection(name, str(e)))
                log.error(
                    "upload",
                    "file_write_failed",
                    f"Failed to store {name}: {e}",
                    {"folder": folder, "name": name, "error": str(e)},
                )
                continue

            outcome.accepted.append(result)
            log.info(
                "upload",
                "file_stored",
                f"Stored {name} ({format_file_size(result.size)})",
                {"folder": folder, "name": name, "path": result.stored_path, "size": result.size},
            )

        log.info(
            "upload",
            "upload_request_completed",
            f"Accepted {plural(len(outcome.accepted), 'file')}, "
            f"rejected {len(outcome.rejected)}",
            {
                "folder": folder,
                "accepted": len(outcome.accepted),
                "rejected": len(outcome.rejected),
            },
        )
        return outcome

    def _store(self, target_dir: Path, original_name: str, stream: IO[bytes]) -> UploadResult:
        """Copy one stream to disk in chunks, enforcing the size cap."""
        if not media_types.is_allowed(original_name):
            raise InvalidFileTypeError(original_name)
        if getattr(stream, "overflowed", False):
            raise PayloadTooLargeError(original_name, self.max_file_size)

        # Exclusive create: a name clash with a concurrent writer retries
        # with a fresh name instead of overwriting.
        while True:
            target = target_dir / generate_stored_name(original_name)
            try:
                out = open(target, "xb")
            except FileExistsError:
                continue
            break

        written = 0
        try:
            with out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_file_size:
                        raise PayloadTooLargeError(original_name, self.max_file_size)
                    out.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise

        stored = paths.to_relative(self.media_root, target)
        logger.debug("Stored %s as %s (%d bytes)", original_name, stored, written)
        return UploadResult(
            original_name=original_name,
            stored_path=stored,
            url=paths.media_url(stored),
            size=written,
        )

