"""Recognized media types and extension-based classification."""

import mimetypes
from pathlib import PurePath

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".heic"})
VIDEO_EXTENSIONS = frozenset(
    {".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv", ".m4v", ".3gp"}
)

# Types the platform mimetypes table may not know about
_EXTRA_TYPES = {
    ".heic": "image/heic",
    ".webp": "image/webp",
    ".mkv": "video/x-matroska",
    ".m4v": "video/x-m4v",
    ".3gp": "video/3gpp",
    ".flv": "video/x-flv",
    ".wmv": "video/x-ms-wmv",
    ".webm": "video/webm",
}


def extension_of(filename: str) -> str:
    """Lower-cased extension of a filename, including the dot."""
    return PurePath(filename).suffix.lower()


def media_kind(filename: str) -> str | None:
    """Classify a filename as ``"image"`` or ``"video"``, or None if unrecognized."""
    ext = extension_of(filename)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    return None


def is_allowed(filename: str) -> bool:
    """Whether a file may be uploaded (case-insensitive extension match)."""
    return media_kind(filename) is not None


def mime_type(filename: str) -> str:
    """Best-effort MIME type for a recognized media file."""
    ext = extension_of(filename)
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    guessed, _ = mimetypes.guess_type(f"file{ext}")
    if guessed:
        return guessed
    return "video/octet-stream" if ext in VIDEO_EXTENSIONS else "image/octet-stream"
