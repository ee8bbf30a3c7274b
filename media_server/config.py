"""Configuration management for media_server"""

import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Base directory for the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
ENV_FILE = BASE_DIR / ".env"
load_dotenv(ENV_FILE)

# Settings file paths
SETTINGS_FILE = BASE_DIR / "settings.json"
SETTINGS_DEFAULT_FILE = BASE_DIR / "settings.default.json"
PYPROJECT_FILE = BASE_DIR / "pyproject.toml"

# Environment variable names for configuration
ENV_SETTINGS_FILE = "MEDIA_SETTINGS_FILE"
ENV_MEDIA_ROOT = "MEDIA_ROOT"
ENV_AUTH_CODE = "MEDIA_AUTH_CODE"
ENV_MAX_UPLOAD_BYTES = "MEDIA_MAX_UPLOAD_BYTES"
ENV_LOG_DIRECTORY = "MEDIA_LOG_DIRECTORY"
ENV_DISPLAY_NAME = "MEDIA_DISPLAY_NAME"
ENV_RATE_LIMIT = "MEDIA_RATE_LIMIT"
ENV_RATE_LIMIT_STORAGE = "MEDIA_RATE_LIMIT_STORAGE"

DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024  # 500 MiB per file
DEFAULT_RATE_LIMIT = "100 per 15 minutes"  # per client address


def get_package_version() -> str:
    """Get the package version from pyproject.toml."""
    try:
        with open(PYPROJECT_FILE, "rb") as f:
            pyproject = tomllib.load(f)
        return str(pyproject.get("project", {}).get("version", "0.0.0"))
    except Exception:
        return "0.0.0"


def _settings_file() -> Path:
    """Path of the user settings file, relocatable through the environment."""
    override = os.environ.get(ENV_SETTINGS_FILE)
    return Path(override) if override else SETTINGS_FILE


class Settings:
    """Manages application settings stored in JSON format."""

    _instance: "Settings | None" = None
    _settings: dict[str, Any]

    def __new__(cls) -> "Settings":
        """Singleton pattern to ensure only one settings instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_settings()
        return cls._instance

    def _load_settings(self) -> None:
        """Load settings from file, with environment variables taking precedence.

        Priority order (highest to lowest):
        1. Environment variables (from .env file or system)
        2. settings.json (user-saved settings)
        3. settings.default.json (template defaults)
        4. Hardcoded defaults
        """
        defaults: dict[str, Any] = {
            "media_root": str(BASE_DIR / "media"),
            "auth_code": "2536",
            "max_upload_bytes": DEFAULT_MAX_UPLOAD_BYTES,
            "log_directory": str(BASE_DIR / "logs"),
            "display_name": "Personal Media Server",
            "rate_limit": DEFAULT_RATE_LIMIT,
            "rate_limit_storage": "memory://",
        }

        if SETTINGS_DEFAULT_FILE.exists():
            with open(SETTINGS_DEFAULT_FILE, encoding="utf-8") as f:
                defaults.update(json.load(f))

        settings_file = _settings_file()
        if settings_file.exists():
            with open(settings_file, encoding="utf-8") as f:
                defaults.update(json.load(f))

        env_overrides = {
            "media_root": os.environ.get(ENV_MEDIA_ROOT),
            "auth_code": os.environ.get(ENV_AUTH_CODE),
            "max_upload_bytes": os.environ.get(ENV_MAX_UPLOAD_BYTES),
            "log_directory": os.environ.get(ENV_LOG_DIRECTORY),
            "display_name": os.environ.get(ENV_DISPLAY_NAME),
            "rate_limit": os.environ.get(ENV_RATE_LIMIT),
            "rate_limit_storage": os.environ.get(ENV_RATE_LIMIT_STORAGE),
        }

        # Only apply non-None environment values
        for key, value in env_overrides.items():
            if value is not None:
                defaults[key] = value

        self._settings = defaults
        self._validate()

        if not settings_file.exists():
            self._save_settings()

    def _validate(self) -> None:
        """Coerce values that arrive as strings and replace unusable ones."""
        raw = self._settings.get("max_upload_bytes")
        try:
            limit = int(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            limit = 0
        if limit <= 0:
            logger.warning(
                "Invalid max_upload_bytes %r, using %d", raw, DEFAULT_MAX_UPLOAD_BYTES
            )
            limit = DEFAULT_MAX_UPLOAD_BYTES
        self._settings["max_upload_bytes"] = limit

    def _save_settings(self) -> None:
        """Save current settings to file."""
        settings_file = _settings_file()
        settings_file.parent.mkdir(parents=True, exist_ok=True)
        with open(settings_file, "w", encoding="utf-8") as f:
            json.dump(self._settings, f, indent=4)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value by key."""
        return self._settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a setting value and save to file."""
        self._settings[key] = value
        self._validate()
        self._save_settings()

    def update(self, data: dict[str, Any]) -> None:
        """Update multiple settings at once."""
        self._settings.update(data)
        self._validate()
        self._save_settings()

    def all(self) -> dict[str, Any]:
        """Get all settings as a dictionary."""
        return self._settings.copy()

    def reload(self) -> None:
        """Reload settings from file."""
        self._load_settings()

    @property
    def media_root(self) -> Path:
        """Directory that bounds every folder and file operation."""
        return Path(str(self._settings.get("media_root", BASE_DIR / "media"))).resolve()

    @property
    def auth_code(self) -> str:
        """Shared secret compared against the bearer token."""
        return str(self._settings.get("auth_code", ""))

    @property
    def max_upload_bytes(self) -> int:
        """Maximum size of a single uploaded file."""
        return int(self._settings["max_upload_bytes"])

    @property
    def log_directory(self) -> Path:
        """Directory holding the JSONL event logs."""
        return Path(str(self._settings.get("log_directory", BASE_DIR / "logs")))

    @property
    def display_name(self) -> str:
        """Name shown by the client and in startup logs."""
        return str(self._settings.get("display_name", "Personal Media Server"))

    @property
    def rate_limit(self) -> str:
        """Default request limit per client address, in flask-limiter notation."""
        return str(self._settings.get("rate_limit", DEFAULT_RATE_LIMIT))

    @property
    def rate_limit_storage(self) -> str:
        """Storage URI for rate-limit counters."""
        return str(self._settings.get("rate_limit_storage", "memory://"))


def get_settings() -> Settings:
    """Get the singleton Settings instance."""
    return Settings()
