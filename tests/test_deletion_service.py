"""Tests for the deletion service."""

from pathlib import Path

import pytest

from media_server.errors import InvalidPathError, MediaNotFoundError, PathTraversalError
from media_server.services.deletion_service import DeleteResult, DeletionService
from tests.conftest import JPEG_BYTES


@pytest.fixture
def service(media_root: Path) -> DeletionService:
    return DeletionService(media_root)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(JPEG_BYTES)
    return path


class TestDeleteOne:
    """Tests for single-file deletion."""

    def test_deletes_file(self, service: DeletionService, media_root: Path) -> None:
        """Test that the file is removed and its normalized path returned."""
        target = _touch(media_root / "a" / "b.jpg")
        assert service.delete_one("/a//b.jpg") == "a/b.jpg"
        assert not target.exists()

    def test_missing(self, service: DeletionService) -> None:
        """Test that a missing file raises MediaNotFoundError."""
        with pytest.raises(MediaNotFoundError):
            service.delete_one("ghost.jpg")

    def test_refuses_folder(self, service: DeletionService, media_root: Path) -> None:
        """Test that folders cannot be deleted as files."""
        (media_root / "album").mkdir()
        with pytest.raises(InvalidPathError):
            service.delete_one("album")
        assert (media_root / "album").is_dir()

    def test_refuses_root(self, service: DeletionService) -> None:
        """Test that an empty path is rejected."""
        with pytest.raises(InvalidPathError):
            service.delete_one("")

    def test_traversal(self, service: DeletionService, tmp_path: Path) -> None:
        """Test that files outside the root are never touched."""
        outside = _touch(tmp_path / "outside.jpg")
        with pytest.raises(PathTraversalError):
            service.delete_one("../outside.jpg")
        assert outside.exists()


class TestDeleteMany:
    """Tests for bulk deletion."""

    def test_one_missing_of_three(self, service: DeletionService, media_root: Path) -> None:
        """Test that a missing path fails alone and the rest are removed."""
        a = _touch(media_root / "a.jpg")
        c = _touch(media_root / "c.jpg")

        results = service.delete_many(["a.jpg", "b.jpg", "c.jpg"])

        assert len(results) == 3
        assert [r.success for r in results].count(False) == 1
        assert results[1] == DeleteResult("b.jpg", False, "Not found")
        assert not a.exists()
        assert not c.exists()

    def test_traversal_is_per_item(
        self, service: DeletionService, media_root: Path, tmp_path: Path
    ) -> None:
        """Test that an escaping path is reported without stopping the batch."""
        outside = _touch(tmp_path / "outside.jpg")
        inside = _touch(media_root / "inside.jpg")

        results = service.delete_many(["../outside.jpg", "inside.jpg"])

        assert [r.success for r in results] == [False, True]
        assert results[0].error == "Path escapes the media root"
        assert outside.exists()
        assert not inside.exists()

    def test_empty(self, service: DeletionService) -> None:
        """Test that an empty request yields no results."""
        assert service.delete_many([]) == []


class TestDeleteAll:
    """Tests for emptying a folder."""

    def test_deletes_files_only(self, service: DeletionService, media_root: Path) -> None:
        """Test that every file goes and subfolders stay."""
        _touch(media_root / "trip" / "b.jpg")
        _touch(media_root / "trip" / "a.txt")
        _touch(media_root / "trip" / "nested" / "keep.jpg")

        results = service.delete_all("trip")

        assert [r.target for r in results] == ["a.txt", "b.jpg"]
        assert all(r.success for r in results)
        assert (media_root / "trip" / "nested" / "keep.jpg").exists()

    def test_empty_folder(self, service: DeletionService, media_root: Path) -> None:
        """Test that an empty folder yields no results."""
        (media_root / "empty").mkdir()
        assert service.delete_all("empty") == []

    def test_missing_folder(self, service: DeletionService) -> None:
        """Test that a nonexistent folder raises."""
        with pytest.raises(MediaNotFoundError):
            service.delete_all("nowhere")

    def test_traversal(self, service: DeletionService) -> None:
        """Test that folders above the root are refused."""
        with pytest.raises(PathTraversalError):
            service.delete_all("..")


class TestDeleteResult:
    """Tests for DeleteResult serialization."""

    def test_to_dict_success(self) -> None:
        """Test that error is omitted on success."""
        assert DeleteResult("a.jpg", True).to_dict() == {"path": "a.jpg", "success": True}

    def test_to_dict_keyed_by_name(self) -> None:
        """Test the alternate key used by delete-all."""
        assert DeleteResult("a.jpg", False, "Not found").to_dict("name") == {
            "name": "a.jpg",
            "success": False,
            "error": "Not found",
        }
