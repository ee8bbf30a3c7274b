"""JSONL event log for the media server.

Each event is one JSON object per line in a daily, hive-partitioned file:
``<log_dir>/json/year=YYYY/month=MM/day=DD/events.jsonl``.
"""

import json
import re
import threading
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from media_server.config import get_settings

_HIVE_DATE = re.compile(r"year=(\d{4})/month=(\d{2})/day=(\d{2})")


class LogService:
    """JSONL log service with thread-safe file writes."""

    def __init__(self) -> None:
        self._write_lock = threading.Lock()

    def _get_log_dir(self) -> Path:
        """Get the configured log directory, creating it if needed."""
        log_dir = get_settings().log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir

    def _day_dir(self, dt: datetime) -> Path:
        """Hive-partitioned directory for the day of ``dt``."""
        return (
            self._get_log_dir()
            / "json"
            / f"year={dt.year:04d}"
            / f"month={dt.month:02d}"
            / f"day={dt.day:02d}"
        )

    @staticmethod
    def _date_of(path: Path) -> str | None:
        """Extract a YYYY-MM-DD string from a hive-partitioned path."""
        match = _HIVE_DATE.search(path.as_posix())
        if match:
            return f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
        return None

    def log(
        self,
        level: str,
        category: str,
        event: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append an entry to the current day's event file.

        Args:
            level: Log level (INFO, WARNING, ERROR)
            category: Event category (app, auth, upload, folders, delete)
            event: Machine-readable event name (snake_case)
            message: Human-readable message
            metadata: Optional additional data
        """
        now = datetime.now(UTC)
        entry: dict[str, Any] = {
            "timestamp": now.isoformat(),
            "level": level.upper(),
            "category": category,
            "event": event,
            "message": message,
        }
        if metadata:
            entry["metadata"] = metadata

        line = json.dumps(entry, default=str)

        with self._write_lock:
            day_dir = self._day_dir(now)
            day_dir.mkdir(parents=True, exist_ok=True)
            with open(day_dir / "events.jsonl", "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def info(
        self,
        category: str,
        event: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log an INFO-level event."""
        self.log("INFO", category, event, message, metadata)

    def warning(
        self,
        category: str,
        event: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log a WARNING-level event."""
        self.log("WARNING", category, event, message, metadata)

    def error(
        self,
        category: str,
        event: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log an ERROR-level event."""
        self.log("ERROR", category, event, message, metadata)

    def _event_files(self, date: str | None = None) -> list[Path]:
        """Event files to read, newest day first."""
        json_dir = self._get_log_dir() / "json"
        if date:
            try:
                dt = datetime.strptime(date, "%Y-%m-%d")
            except ValueError:
                return []
            path = self._day_dir(dt) / "events.jsonl"
            return [path] if path.exists() else []
        if not json_dir.exists():
            return []
        return sorted(json_dir.rglob("events.jsonl"), reverse=True)

    @staticmethod
    def _iter_entries(log_file: Path) -> Iterator[dict[str, Any]]:
        """Yield parsed entries from one file, skipping corrupt lines."""
        try:
            with open(log_file, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError:
                        continue
        except OSError:
            return

    def read_log_entries(
        self,
        date: str | None = None,
        level: str | None = None,
        category: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> dict[str, Any]:
        """Read and filter log entries with pagination.

        Args:
            date: Filter by date (YYYY-MM-DD). None = all dates.
            level: Filter by level (INFO/WARNING/ERROR)
            category: Filter by category
            search: Case-insensitive search in message and event fields
            offset: Number of entries to skip
            limit: Maximum entries to return

        Returns:
            Dict with entries (newest first), total count, offset, limit
        """
        needle = search.lower() if search else None
        matched: list[dict[str, Any]] = []

        for log_file in self._event_files(date):
            for entry in self._iter_entries(log_file):
                if level and entry.get("level", "").upper() != level.upper():
                    continue
                if category and entry.get("category") != category:
                    continue
                if needle and not (
                    needle in entry.get("message", "").lower()
                    or needle in entry.get("event", "").lower()
                ):
                    continue
                matched.append(entry)

        matched.sort(key=lambda e: e.get("timestamp", ""), reverse=True)

        return {
            "entries": matched[offset : offset + limit],
            "total": len(matched),
            "offset": offset,
            "limit": limit,
        }

    def get_log_stats(self) -> dict[str, Any]:
        """Aggregate counts by level and category across all event files."""
        level_counts: dict[str, int] = {}
        category_counts: dict[str, int] = {}
        dates: set[str] = set()
        total_entries = 0
        total_size = 0

        files = self._event_files()
        for log_file in files:
            total_size += log_file.stat().st_size
            date_str = self._date_of(log_file)
            if date_str:
                dates.add(date_str)
            for entry in self._iter_entries(log_file):
                total_entries += 1
                lvl = entry.get("level", "UNKNOWN")
                level_counts[lvl] = level_counts.get(lvl, 0) + 1
                cat = entry.get("category", "unknown")
                category_counts[cat] = category_counts.get(cat, 0) + 1

        ordered = sorted(dates)
        return {
            "total_entries": total_entries,
            "total_size_bytes": total_size,
            "level_counts": level_counts,
            "category_counts": category_counts,
            "date_range": {
                "earliest": ordered[0] if ordered else None,
                "latest": ordered[-1] if ordered else None,
            },
            "file_count": len(files),
        }


# Module-level singleton accessor
_log_service: LogService | None = None


def get_log_service() -> LogService:
    """Get the singleton LogService instance."""
    global _log_service
    if _log_service is None:
        _log_service = LogService()
    return _log_service
