"""Pytest configuration and fixtures for the media_server tests."""

from collections.abc import Generator
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

import media_server.services.log_service as log_module
from media_server import create_app
from media_server.config import Settings

AUTH_CODE = "test-code"

# Smallest byte strings that carry the right extension; content is not inspected
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point every setting at a temporary directory and reset singletons."""
    media_root = tmp_path / "media"
    monkeypatch.setenv("MEDIA_SETTINGS_FILE", str(tmp_path / "settings.json"))
    monkeypatch.setenv("MEDIA_ROOT", str(media_root))
    monkeypatch.setenv("MEDIA_AUTH_CODE", AUTH_CODE)
    monkeypatch.setenv("MEDIA_LOG_DIRECTORY", str(tmp_path / "logs"))
    monkeypatch.delenv("MEDIA_MAX_UPLOAD_BYTES", raising=False)
    monkeypatch.delenv("MEDIA_DISPLAY_NAME", raising=False)
    monkeypatch.delenv("MEDIA_RATE_LIMIT", raising=False)
    monkeypatch.delenv("MEDIA_RATE_LIMIT_STORAGE", raising=False)
    monkeypatch.setattr(Settings, "_instance", None)
    monkeypatch.setattr(log_module, "_log_service", None)

    yield media_root


@pytest.fixture
def media_root(isolated_settings: Path) -> Path:
    """The media root directory, created."""
    isolated_settings.mkdir(parents=True, exist_ok=True)
    return isolated_settings


@pytest.fixture
def app(media_root: Path) -> Flask:
    """Create application for testing."""
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header carrying the shared secret."""
    return {"Authorization": f"Bearer {AUTH_CODE}"}


@pytest.fixture
def sample_files(tmp_path: Path) -> list[Path]:
    """Seven small image files on disk, outside the media root."""
    src = tmp_path / "src"
    src.mkdir()
    files: list[Path] = []
    for i in range(7):
        path = src / f"photo_{i}.jpg"
        path.write_bytes(JPEG_BYTES + bytes([i]) * 32)
        files.append(path)
    return files
