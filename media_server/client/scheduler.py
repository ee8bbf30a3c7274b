"""Client-side scheduling of file transfers in bounded-concurrency waves.

The scheduler owns the visible transfer queue. ``submit`` enqueues a batch
and returns at once; a single dispatcher thread drains pending transfers in
waves of at most ``max_concurrent``. A wave runs its transfers in parallel
and the next wave does not start until every transfer of the current one is
terminal, so the number of in-flight transfers never exceeds the limit no
matter how many batches are submitted back to back.

Consumers observe state through ``subscribe``; every event is a dict with a
``type`` key (``transfer_updated``, ``wave_started``, ``wave_completed``,
``batch_completed``, ``transfers_evicted``).
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from media_server.client.transport import MediaClient

logger = logging.getLogger(__name__)

MAX_CONCURRENT_TRANSFERS = 5
EVICTION_DELAY_SECONDS = 3.0


class TransferState(Enum):
    """Lifecycle of a single transfer."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.ERROR)


@dataclass
class PendingTransfer:
    """One file on its way to the server."""

    payload: Path
    display_name: str
    destination_folder: str
    batch_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: TransferState = TransferState.PENDING
    progress_percent: int = 0
    error_message: str = ""
    result: dict[str, Any] | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display and events."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "destination_folder": self.destination_folder,
            "batch_id": self.batch_id,
            "state": self.state.value,
            "progress_percent": self.progress_percent,
            "error_message": self.error_message,
            "stored_path": (self.result or {}).get("path"),
        }


@dataclass
class Batch:
    """Transfers created atomically from one selection event."""

    batch_id: str
    destination_folder: str
    transfers: list[PendingTransfer] = field(default_factory=list)
    finalized: bool = False

    @property
    def is_terminal(self) -> bool:
        return all(t.state.is_terminal for t in self.transfers)

    def summary(self) -> dict[str, Any]:
        completed = sum(1 for t in self.transfers if t.state == TransferState.COMPLETED)
        return {
            "batch_id": self.batch_id,
            "destination_folder": self.destination_folder,
            "total": len(self.transfers),
            "completed": completed,
            "failed": len(self.transfers) - completed,
        }


# (transfer, progress_callback(sent_bytes, total_bytes)) -> server record
Transport = Callable[[PendingTransfer, Callable[[int, int], None]], dict[str, Any]]
Subscriber = Callable[[dict[str, Any]], None]


class TransferScheduler:
    """Runs pending transfers in waves and tracks per-item state."""

    def __init__(
        self,
        transport: Transport,
        max_concurrent: int = MAX_CONCURRENT_TRANSFERS,
        eviction_delay: float = EVICTION_DELAY_SECONDS,
        on_batch_complete: Callable[[str], None] | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.transport = transport
        self.max_concurrent = max_concurrent
        self.eviction_delay = eviction_delay
        self.on_batch_complete = on_batch_complete

        self._queue: list[PendingTransfer] = []
        self._batches: dict[str, Batch] = {}
        self._subscribers: list[Subscriber] = []
        self._timers: list[threading.Timer] = []
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._dispatcher: threading.Thread | None = None
        self._wave_count = 0

    # -- observation ---------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an event callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, event: dict[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Transfer subscriber failed on %s", event.get("type"))

    def snapshot(self) -> list[dict[str, Any]]:
        """Visible queue, in submission order."""
        with self._lock:
            return [t.to_dict() for t in self._queue]

    def get(self, transfer_id: str) -> PendingTransfer | None:
        with self._lock:
            return next((t for t in self._queue if t.id == transfer_id), None)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for t in self._queue if t.state == TransferState.UPLOADING)

    # -- submission ----------------------------------------------------------

    def submit(self, files: Iterable[Path | str], destination_folder: str = "") -> Batch:
        """Enqueue a batch of files and return immediately.

        Every call creates fresh transfers with new ids, so re-submitting
        files after an error never mutates the failed entries.
        """
        batch = Batch(batch_id=str(uuid.uuid4()), destination_folder=destination_folder)
        for f in files:
            path = Path(f)
            batch.transfers.append(
                PendingTransfer(
                    payload=path,
                    display_name=path.name,
                    destination_folder=destination_folder,
                    batch_id=batch.batch_id,
                )
            )

        with self._lock:
            self._batches[batch.batch_id] = batch
            self._queue.extend(batch.transfers)
        for t in batch.transfers:
            self._emit_transfer(t)
        with self._lock:
            self._ensure_dispatcher()

        logger.info(
            "Queued %d transfers to %r (batch %s)",
            len(batch.transfers),
            destination_folder,
            batch.batch_id[:8],
        )
        if not batch.transfers:
            self._finalize_batches()
        return batch

    def resubmit_failed(self) -> Batch | None:
        """Re-submit every Error-state transfer as one new batch per folder."""
        with self._lock:
            failed = [t for t in self._queue if t.state == TransferState.ERROR]
        if not failed:
            return None

        by_folder: dict[str, list[Path]] = {}
        for t in failed:
            by_folder.setdefault(t.destination_folder, []).append(t.payload)

        batch = None
        for folder, payloads in by_folder.items():
            batch = self.submit(payloads, folder)
        return batch

    def _emit_transfer(self, transfer: PendingTransfer) -> None:
        self._emit({"type": "transfer_updated", "transfer": transfer.to_dict()})

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or not self._dispatcher.is_alive():
            self._dispatcher = threading.Thread(
                target=self._drain, name="transfer-dispatcher", daemon=True
            )
            self._dispatcher.start()

    # -- execution -----------------------------------------------------------

    def _next_wave(self) -> list[PendingTransfer]:
        """Claim up to ``max_concurrent`` pending transfers, marking them Uploading."""
        with self._lock:
            wave = [t for t in self._queue if t.state == TransferState.PENDING]
            wave = wave[: self.max_concurrent]
            if not wave:
                # Dispatcher exits; a later submit starts a new one
                self._dispatcher = None
                self._idle.notify_all()
                return []
            now = datetime.now(UTC)
            for t in wave:
                t.state = TransferState.UPLOADING
                t.started_at = now
            self._wave_count += 1
            return wave

    def _drain(self) -> None:
        try:
            while True:
                wave = self._next_wave()
                if not wave:
                    return

                wave_number = self._wave_count
                self._emit(
                    {
                        "type": "wave_started",
                        "wave": wave_number,
                        "transfer_ids": [t.id for t in wave],
                    }
                )
                for t in wave:
                    self._emit_transfer(t)

                with ThreadPoolExecutor(max_workers=len(wave)) as executor:
                    futures = {executor.submit(self._run_transfer, t): t for t in wave}
                    for future in as_completed(futures):
                        future.result()

                self._emit({"type": "wave_completed", "wave": wave_number, "size": len(wave)})
                self._finalize_batches()
        except Exception as e:
            logger.exception("Transfer dispatcher stopped")
            self._fail_unfinished(f"Dispatcher stopped: {e}")
        finally:
            with self._lock:
                if self._dispatcher is threading.current_thread():
                    self._dispatcher = None
                self._idle.notify_all()

    def _fail_unfinished(self, message: str) -> None:
        """Move every non-terminal transfer to Error so waiters can return."""
        with self._lock:
            stranded = [t for t in self._queue if not t.state.is_terminal]
            now = datetime.now(UTC)
            for t in stranded:
                t.state = TransferState.ERROR
                t.error_message = message
                t.finished_at = now
        for t in stranded:
            self._emit_transfer(t)

    def _run_transfer(self, transfer: PendingTransfer) -> None:
        """Drive one transfer to a terminal state; never raises."""

        def on_progress(sent: int, total: int) -> None:
            percent = int(sent * 100 / total) if total > 0 else 100
            percent = max(0, min(100, percent))
            with self._lock:
                if transfer.state != TransferState.UPLOADING:
                    return
                if percent <= transfer.progress_percent:
                    return
                transfer.progress_percent = percent
            self._emit_transfer(transfer)

        try:
            result = self.transport(transfer, on_progress)
        except Exception as e:
            with self._lock:
                transfer.state = TransferState.ERROR
                transfer.error_message = str(e) or type(e).__name__
                transfer.finished_at = datetime.now(UTC)
            logger.warning("Transfer of %s failed: %s", transfer.display_name, e)
        else:
            with self._lock:
                transfer.state = TransferState.COMPLETED
                transfer.progress_percent = 100
                transfer.result = result
                transfer.finished_at = datetime.now(UTC)
            logger.debug("Transfer of %s completed", transfer.display_name)

        self._emit_transfer(transfer)

    def _finalize_batches(self) -> None:
        """Refresh once per finished batch and schedule its eviction."""
        with self._lock:
            done = [b for b in self._batches.values() if not b.finalized and b.is_terminal]
            for batch in done:
                batch.finalized = True

        for batch in done:
            summary = batch.summary()
            logger.info(
                "Batch %s finished: %d completed, %d failed",
                batch.batch_id[:8],
                summary["completed"],
                summary["failed"],
            )
            self._emit({"type": "batch_completed", **summary})
            if self.on_batch_complete:
                try:
                    self.on_batch_complete(batch.destination_folder)
                except Exception:
                    logger.exception("Folder refresh failed after batch %s", batch.batch_id[:8])
            self._schedule_eviction(batch)

    def _schedule_eviction(self, batch: Batch) -> None:
        if self.eviction_delay <= 0:
            self._evict(batch.batch_id)
            return
        timer = threading.Timer(self.eviction_delay, self._evict, args=(batch.batch_id,))
        timer.daemon = True
        with self._lock:
            self._timers.append(timer)
        timer.start()

    def _evict(self, batch_id: str) -> None:
        with self._lock:
            batch = self._batches.pop(batch_id, None)
            if batch is None:
                return
            ids = {t.id for t in batch.transfers}
            self._queue = [t for t in self._queue if t.id not in ids]
            self._timers = [t for t in self._timers if t.is_alive()]
        self._emit({"type": "transfers_evicted", "batch_id": batch_id, "transfer_ids": sorted(ids)})

    # -- lifecycle -----------------------------------------------------------

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no transfer is pending or uploading.

        Returns:
            True if idle was reached, False on timeout
        """

        def idle() -> bool:
            return self._dispatcher is None and not any(
                not t.state.is_terminal for t in self._queue
            )

        with self._idle:
            return self._idle.wait_for(idle, timeout=timeout)

    def close(self) -> None:
        """Cancel pending eviction timers (queued transfers keep running)."""
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()


def http_transport(client: MediaClient) -> Transport:
    """Adapt a :class:`MediaClient` to the scheduler's transport signature."""

    def send(transfer: PendingTransfer, progress: Callable[[int, int], None]) -> dict[str, Any]:
        return client.upload_file(transfer.payload, transfer.destination_folder, progress)

    return send
