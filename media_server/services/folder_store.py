"""Folder listing and creation under the media root."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from media_server.errors import InvalidPathError, MediaNotFoundError
from media_server.services import media_types, paths
from media_server.services.log_service import get_log_service


@dataclass(frozen=True)
class FolderEntry:
    """A folder or recognized media file, derived fresh on every listing."""

    name: str
    kind: str  # "folder" | "image" | "video"
    relative_path: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.kind == "folder":
            return {"name": self.name, "type": "folder", "path": self.relative_path}
        return {
            "name": self.name,
            "type": self.kind,
            "path": self.relative_path,
            "url": paths.media_url(self.relative_path),
            "mimeType": media_types.mime_type(self.name),
        }


@dataclass
class FolderListing:
    """Contents of one folder, split into subfolders and media files."""

    current_path: str
    folders: list[FolderEntry]
    files: list[FolderEntry]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "folders": [f.to_dict() for f in self.folders],
            "files": [f.to_dict() for f in self.files],
            "currentPath": self.current_path,
        }


class FolderStore:
    """Reads and creates folders inside the media root."""

    def __init__(self, media_root: Path) -> None:
        self.media_root = media_root

    def list(self, path: str = "") -> FolderListing:
        """List subfolders and recognized media files of a folder.

        Raises:
            PathTraversalError: If the path escapes the media root
            MediaNotFoundError: If the folder does not exist
        """
        current = paths.normalize_relative(path)
        directory = paths.resolve(self.media_root, current)
        if not directory.is_dir():
            raise MediaNotFoundError(current)

        folders: list[FolderEntry] = []
        files: list[FolderEntry] = []
        with os.scandir(directory) as it:
            for item in it:
                rel = f"{current}/{item.name}" if current else item.name
                if item.is_dir():
                    folders.append(FolderEntry(item.name, "folder", rel))
                elif item.is_file():
                    kind = media_types.media_kind(item.name)
                    if kind is not None:
                        files.append(FolderEntry(item.name, kind, rel))

        folders.sort(key=lambda e: e.name.lower())
        files.sort(key=lambda e: e.name.lower())
        return FolderListing(current_path=current, folders=folders, files=files)

    def create_folder(self, parent_path: str, name: str) -> str:
        """Create ``name`` under ``parent_path``; succeeds if it already exists.

        Returns:
            The normalized relative path of the folder
        """
        if not name or not name.strip():
            raise InvalidPathError(name, "Folder name is required")

        parent = paths.normalize_relative(parent_path)
        relative = paths.normalize_relative(f"{parent}/{name.strip()}" if parent else name.strip())
        target = paths.resolve(self.media_root, relative)
        if target == paths.resolve(self.media_root, ""):
            raise InvalidPathError(name, "Folder name resolves to the media root")

        target.mkdir(parents=True, exist_ok=True)

        get_log_service().info(
            "folders",
            "folder_created",
            f"Created folder {relative}",
            {"path": relative},
        )
        return relative
