"""Tests for path resolution under the media root."""

from pathlib import Path

import pytest

from media_server.errors import InvalidPathError, PathTraversalError
from media_server.services import paths


class TestNormalizeRelative:
    """Tests for normalize_relative."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("", ""),
            (None, ""),
            (".", ""),
            ("/", ""),
            ("vacation", "vacation"),
            ("/vacation/", "vacation"),
            ("a/./b", "a/b"),
            ("a/b/../c", "a/c"),
            ("a\\b\\c", "a/b/c"),
            ("a//b", "a/b"),
        ],
    )
    def test_normalizes(self, raw: str | None, expected: str) -> None:
        """Test that separators, dots and slashes are collapsed."""
        assert paths.normalize_relative(raw) == expected

    def test_idempotent(self) -> None:
        """Test that normalizing twice gives the same result."""
        once = paths.normalize_relative("/a/./b/../c\\d/")
        assert paths.normalize_relative(once) == once

    @pytest.mark.parametrize("raw", ["..", "../etc", "a/../..", "a/../../b", "..\\..\\x"])
    def test_rejects_climbing_above_root(self, raw: str) -> None:
        """Test that paths escaping the root raise PathTraversalError."""
        with pytest.raises(PathTraversalError):
            paths.normalize_relative(raw)

    def test_rejects_nul_byte(self) -> None:
        """Test that embedded NUL bytes raise InvalidPathError."""
        with pytest.raises(InvalidPathError):
            paths.normalize_relative("a\x00b")


class TestResolve:
    """Tests for resolve."""

    def test_resolves_inside_root(self, tmp_path: Path) -> None:
        """Test that a path inside the root maps to the right absolute path."""
        result = paths.resolve(tmp_path, "vacation/2024")
        assert result == tmp_path / "vacation" / "2024"

    def test_root_itself(self, tmp_path: Path) -> None:
        """Test that the empty path resolves to the root."""
        assert paths.resolve(tmp_path, "") == Path(tmp_path)

    def test_leading_slash_stays_inside_root(self, tmp_path: Path) -> None:
        """Test that an absolute-looking path is taken relative to the root."""
        assert paths.resolve(tmp_path, "/etc/passwd") == tmp_path / "etc" / "passwd"

    def test_traversal_rejected(self, tmp_path: Path) -> None:
        """Test that ../ escapes are rejected, never clamped."""
        with pytest.raises(PathTraversalError):
            paths.resolve(tmp_path / "media", "../secret.txt")

    def test_sibling_with_shared_prefix_rejected(self, tmp_path: Path) -> None:
        """Test that /root/media-evil is not mistaken for inside /root/media."""
        with pytest.raises(PathTraversalError):
            paths.resolve(tmp_path / "media", "../media-evil/x.jpg")

    def test_resolution_is_stable(self, tmp_path: Path) -> None:
        """Test that resolving an already-normalized path is unchanged."""
        first = paths.resolve(tmp_path, "a/./b/../c")
        rel = paths.to_relative(tmp_path, first)
        assert paths.resolve(tmp_path, rel) == first


class TestToRelative:
    """Tests for to_relative and media_url."""

    def test_to_relative(self, tmp_path: Path) -> None:
        """Test conversion back to a slash-separated relative path."""
        assert paths.to_relative(tmp_path, tmp_path / "a" / "b.jpg") == "a/b.jpg"
        assert paths.to_relative(tmp_path, tmp_path) == ""

    def test_media_url(self) -> None:
        """Test the serving URL format."""
        assert paths.media_url("a/b.jpg") == "/media/a/b.jpg"
