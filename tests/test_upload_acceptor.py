"""Tests for the upload acceptor service."""

import io
import threading
from pathlib import Path

import pytest
from werkzeug.datastructures import FileStorage

from media_server.errors import PathTraversalError
from media_server.services.upload_acceptor import (
    CappedUploadStream,
    UploadAcceptor,
    UploadOutcome,
    generate_stored_name,
)
from tests.conftest import JPEG_BYTES, MP4_BYTES


def _part(name: str, data: bytes) -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=name)


@pytest.fixture
def acceptor(media_root: Path) -> UploadAcceptor:
    return UploadAcceptor(media_root, max_file_size=1024)


class TestGenerateStoredName:
    """Tests for stored-name generation."""

    def test_keeps_lowercased_extension(self) -> None:
        """Test that only the extension of the original name survives."""
        name = generate_stored_name("Holiday Photo.JPG")
        assert name.endswith(".jpg")
        assert "Holiday" not in name

    def test_names_are_unique(self) -> None:
        """Test that repeated calls never collide."""
        names = {generate_stored_name("a.png") for _ in range(500)}
        assert len(names) == 500


class TestUploadAcceptor:
    """Tests for UploadAcceptor.accept."""

    def test_stores_file_under_folder(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that an accepted file lands in the resolved folder."""
        outcome = acceptor.accept("vacation", [_part("beach.jpg", JPEG_BYTES)])

        assert outcome.success is True
        assert len(outcome.accepted) == 1
        result = outcome.accepted[0]
        assert result.original_name == "beach.jpg"
        assert result.stored_path.startswith("vacation/")
        assert result.url == f"/media/{result.stored_path}"
        assert (media_root / result.stored_path).read_bytes() == JPEG_BYTES

    def test_creates_missing_destination(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that nested destination folders are created on demand."""
        acceptor.accept("a/b/c", [_part("clip.mp4", MP4_BYTES)])
        assert (media_root / "a" / "b" / "c").is_dir()

    def test_rejects_unknown_extension_only(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that a .exe is rejected while its .jpg sibling is stored."""
        outcome = acceptor.accept(
            "", [_part("photo.jpg", JPEG_BYTES), _part("setup.exe", b"MZ" + b"\x00" * 10)]
        )

        assert [r.original_name for r in outcome.accepted] == ["photo.jpg"]
        assert [r.original_name for r in outcome.rejected] == ["setup.exe"]
        assert outcome.rejected[0].error == "Invalid file type"
        assert outcome.success is False
        assert not list(media_root.glob("*.exe"))

    def test_extension_match_is_case_insensitive(self, acceptor: UploadAcceptor) -> None:
        """Test that upper-case extensions are recognized."""
        outcome = acceptor.accept("", [_part("IMG_0001.HEIC", b"x"), _part("MOV_1.MOV", b"y")])
        assert len(outcome.accepted) == 2

    def test_rejects_oversized_file_only(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that a file over the cap is rejected and its partial data removed."""
        outcome = acceptor.accept(
            "big", [_part("huge.mp4", b"\x00" * 4096), _part("small.jpg", JPEG_BYTES)]
        )

        assert [r.original_name for r in outcome.rejected] == ["huge.mp4"]
        assert outcome.rejected[0].error == "File too large"
        assert [r.original_name for r in outcome.accepted] == ["small.jpg"]
        assert len(list((media_root / "big").iterdir())) == 1

    def test_file_at_exact_cap_is_accepted(self, acceptor: UploadAcceptor) -> None:
        """Test that the cap is inclusive."""
        outcome = acceptor.accept("", [_part("edge.png", b"\x01" * 1024)])
        assert outcome.success is True

    def test_same_name_twice_yields_distinct_paths(self, acceptor: UploadAcceptor) -> None:
        """Test that identical original names never overwrite each other."""
        outcome = acceptor.accept("", [_part("dup.jpg", b"one"), _part("dup.jpg", b"two")])
        stored = {r.stored_path for r in outcome.accepted}
        assert len(stored) == 2

    def test_concurrent_requests_same_folder(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that concurrent writers to one folder produce distinct files."""
        outcomes: list[UploadOutcome] = []
        lock = threading.Lock()

        def worker(i: int) -> None:
            out = acceptor.accept("shared", [_part("same.jpg", bytes([i]) * 16)])
            with lock:
                outcomes.append(out)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = {o.accepted[0].stored_path for o in outcomes}
        assert len(stored) == 8
        assert len(list((media_root / "shared").iterdir())) == 8

    def test_traversal_rejects_request(self, acceptor: UploadAcceptor, media_root: Path) -> None:
        """Test that an escaping destination fails before anything is written."""
        with pytest.raises(PathTraversalError):
            acceptor.accept("../outside", [_part("x.jpg", JPEG_BYTES)])
        assert not (media_root.parent / "outside").exists()

    def test_skips_parts_without_filename(self, acceptor: UploadAcceptor) -> None:
        """Test that empty file parts are ignored."""
        outcome = acceptor.accept("", [_part("", b"")])
        assert outcome.accepted == []
        assert outcome.rejected == []

    def test_to_dict(self, acceptor: UploadAcceptor) -> None:
        """Test the JSON shape of an outcome."""
        outcome = acceptor.accept("", [_part("a.jpg", b"1"), _part("b.txt", b"2")])
        data = outcome.to_dict()

        assert data["success"] is False
        assert set(data["files"][0]) == {"name", "path", "url"}
        assert data["errors"] == [{"name": "b.txt", "error": "Invalid file type"}]


class TestCappedUploadStream:
    """Tests for the size-capped spool used while parsing multipart bodies."""

    def test_keeps_data_within_limit(self) -> None:
        """Test that a part under the cap reads back unchanged."""
        stream = CappedUploadStream(limit=10)
        stream.write(b"hello")
        stream.write(b"world")
        stream.seek(0)

        assert stream.overflowed is False
        assert stream.read() == b"helloworld"

    def test_drops_everything_past_limit(self) -> None:
        """Test that crossing the cap empties the spool and ignores later writes."""
        stream = CappedUploadStream(limit=10)
        stream.write(b"x" * 8)
        assert stream.write(b"x" * 8) == 8
        stream.write(b"x" * 1000)

        assert stream.overflowed is True
        assert stream.received == 1016
        stream.seek(0, io.SEEK_END)
        assert stream.tell() == 0

    def test_acceptor_rejects_overflowed_part(
        self, acceptor: UploadAcceptor, media_root: Path
    ) -> None:
        """Test that an overflowed part is rejected without creating a file."""
        stream = CappedUploadStream(limit=1024)
        stream.write(b"\x00" * 4096)
        stream.seek(0)

        part = FileStorage(stream=stream, filename="big.mp4")  # type: ignore[arg-type]
        outcome = acceptor.accept("", [part])

        assert outcome.accepted == []
        assert outcome.rejected[0].error == "File too large"
        assert list(media_root.iterdir()) == []

    def test_type_is_checked_before_size(self, acceptor: UploadAcceptor) -> None:
        """Test that an overflowed part with a bad extension reports its type."""
        stream = CappedUploadStream(limit=1)
        stream.write(b"MZ-and-more")
        stream.seek(0)

        part = FileStorage(stream=stream, filename="tool.exe")  # type: ignore[arg-type]
        outcome = acceptor.accept("", [part])

        assert outcome.rejected[0].error == "Invalid file type"
