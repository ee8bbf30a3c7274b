"""Mapping of client-supplied relative paths onto the media root."""

import os
import posixpath
from pathlib import Path

from media_server.errors import InvalidPathError, PathTraversalError


def normalize_relative(relative_path: str | None) -> str:
    """Normalize a client path to a slash-separated path relative to the root.

    Backslashes become slashes, leading slashes are dropped, and ``.``/``..``
    segments are collapsed. The empty string denotes the root itself.

    Raises:
        InvalidPathError: If the path contains a NUL byte
        PathTraversalError: If collapsing ``..`` climbs above the root
    """
    raw = relative_path or ""
    if "\x00" in raw:
        raise InvalidPathError(raw, "Path contains a NUL byte")

    cleaned = raw.replace("\\", "/").lstrip("/")
    if not cleaned:
        return ""

    normalized = posixpath.normpath(cleaned)
    if normalized == ".":
        return ""
    if normalized == ".." or normalized.startswith("../"):
        raise PathTraversalError(raw)
    return normalized


def resolve(root: Path | str, relative_path: str | None) -> Path:
    """Resolve a client path to an absolute location inside ``root``.

    Args:
        root: The media root directory
        relative_path: Client-supplied relative path

    Returns:
        Absolute path inside the root

    Raises:
        InvalidPathError: On malformed input
        PathTraversalError: If the result would leave the root
    """
    root_str = os.path.abspath(str(root))
    normalized = normalize_relative(relative_path)
    candidate = os.path.abspath(os.path.join(root_str, *normalized.split("/")))

    prefix = root_str if root_str.endswith(os.sep) else root_str + os.sep
    if candidate != root_str and not candidate.startswith(prefix):
        raise PathTraversalError(relative_path or "")
    return Path(candidate)


def to_relative(root: Path | str, absolute_path: Path | str) -> str:
    """Express an absolute path under ``root`` as a slash-separated relative path."""
    rel = os.path.relpath(str(absolute_path), os.path.abspath(str(root)))
    if rel == ".":
        return ""
    return rel.replace(os.sep, "/")


def media_url(relative_path: str) -> str:
    """URL under which a stored file is served."""
    return f"/media/{relative_path}"
