"""Deletion of media files: one, an explicit set, or a whole folder."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from media_server.errors import InvalidPathError, MediaNotFoundError, MediaServerError
from media_server.services import paths
from media_server.services.log_service import get_log_service


@dataclass
class DeleteResult:
    """Outcome for a single deletion target."""

    target: str
    success: bool
    error: str = ""

    def to_dict(self, key: str = "path") -> dict[str, Any]:
        """Serialize to dictionary for API responses."""
        result: dict[str, Any] = {key: self.target, "success": self.success}
        if self.error:
            result["error"] = self.error
        return result


class DeletionService:
    """Removes files under the media root, isolating failures per target."""

    def __init__(self, media_root: Path) -> None:
        self.media_root = media_root

    def _unlink(self, relative_path: str) -> str:
        """Resolve and remove one regular file, returning its normalized path."""
        normalized = paths.normalize_relative(relative_path)
        target = paths.resolve(self.media_root, normalized)
        if not normalized:
            raise InvalidPathError(relative_path, "File path is required")
        if target.is_dir():
            raise InvalidPathError(relative_path, "Path is a folder, not a file")
        try:
            os.unlink(target)
        except FileNotFoundError:
            raise MediaNotFoundError(normalized) from None
        return normalized

    def delete_one(self, relative_path: str) -> str:
        """Delete a single file; errors propagate to the caller.

        Raises:
            PathTraversalError: If the path escapes the media root
            MediaNotFoundError: If the file does not exist
        """
        normalized = self._unlink(relative_path)
        get_log_service().info(
            "delete", "file_deleted", f"Deleted {normalized}", {"path": normalized}
        )
        return normalized

    def delete_many(self, relative_paths: list[str]) -> list[DeleteResult]:
        """Delete each path independently; one failure never stops the rest."""
        log = get_log_service()
        results: list[DeleteResult] = []

        for rel in relative_paths:
            try:
                self._unlink(rel)
                results.append(DeleteResult(rel, True))
            except MediaServerError as e:
                results.append(DeleteResult(rel, False, e.message))
            except OSError as e:
                results.append(DeleteResult(rel, False, str(e)))

        failed = [r.target for r in results if not r.success]
        log.info(
            "delete",
            "bulk_delete_completed",
            f"Deleted {len(results) - len(failed)} of {len(results)} files",
            {"requested": len(results), "failed": failed},
        )
        return results

    def delete_all(self, folder_path: str) -> list[DeleteResult]:
        """Delete every regular file directly inside a folder.

        Subfolders are left untouched. Results are keyed by file name.

        Raises:
            PathTraversalError: If the folder escapes the media root
            MediaNotFoundError: If the folder does not exist
        """
        folder = paths.normalize_relative(folder_path)
        directory = paths.resolve(self.media_root, folder)
        if not directory.is_dir():
            raise MediaNotFoundError(folder)

        results: list[DeleteResult] = []
        with os.scandir(directory) as it:
            entries = [item for item in it if item.is_file()]

        for item in sorted(entries, key=lambda e: e.name):
            try:
                os.unlink(item.path)
                results.append(DeleteResult(item.name, True))
            except FileNotFoundError:
                results.append(DeleteResult(item.name, False, "Not found"))
            except OSError as e:
                results.append(DeleteResult(item.name, False, str(e)))

        deleted = sum(1 for r in results if r.success)
        get_log_service().info(
            "delete",
            "folder_emptied",
            f"Deleted {deleted} files from {folder or '/'}",
            {"folder": folder, "deleted": deleted, "attempted": len(results)},
        )
        return results
