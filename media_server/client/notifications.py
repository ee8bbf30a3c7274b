"""Short-lived status messages shown to the user.

Each posted message owns its own expiry timer. A timer only clears the
message it was started for, so an older timer firing after a newer post
leaves the newer message in place.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from media_server.client.scheduler import TransferScheduler
from media_server.services.utils import plural

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 3000


@dataclass(frozen=True)
class Notification:
    """One posted message."""

    seq: int
    message: str
    level: str = "info"


Listener = Callable[[Notification | None], None]


class NotificationBuffer:
    """Holds the current notification and expires it on its own timer."""

    def __init__(self) -> None:
        self._current: Notification | None = None
        self._seq = itertools.count(1)
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    @property
    def current(self) -> Notification | None:
        with self._lock:
            return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new notification (or None when cleared)."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, value: Notification | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Notification listener failed")

    def post(
        self, message: str, duration_ms: int = DEFAULT_DURATION_MS, level: str = "info"
    ) -> Notification:
        """Show ``message`` and clear it after ``duration_ms``."""
        note = Notification(seq=next(self._seq), message=message, level=level)
        with self._lock:
            self._current = note
        self._notify(note)

        timer = threading.Timer(max(duration_ms, 0) / 1000.0, self._expire, args=(note,))
        timer.daemon = True
        timer.start()
        return note

    def _expire(self, note: Notification) -> None:
        with self._lock:
            if self._current is not note:
                return
            self._current = None
        self._notify(None)


def bind_scheduler(
    buffer: NotificationBuffer,
    scheduler: TransferScheduler,
    duration_ms: int = DEFAULT_DURATION_MS,
) -> Callable[[], None]:
    """Post a summary to ``buffer`` whenever a batch finishes."""

    def on_event(event: dict[str, Any]) -> None:
        if event.get("type") != "batch_completed":
            return
        completed, failed = event["completed"], event["failed"]
        if failed:
            buffer.post(
                f"Uploaded {plural(completed, 'file')}, {failed} failed",
                duration_ms,
                level="error",
            )
        else:
            buffer.post(f"Uploaded {plural(completed, 'file')}", duration_ms)

    return scheduler.subscribe(on_event)
