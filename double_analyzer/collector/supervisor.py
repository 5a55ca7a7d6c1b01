"""Lifecycle and scheduling of collection.

Threads involved:

* the caller of start/stop/collect_now (an API request, the CLI);
* APScheduler's timer thread, which fires ``_tick`` every poll interval;
* one collector worker thread, the only thread that ever touches the
  reader (and therefore the browser).

``_cycle_lock`` is the single-flight guard: a tick that finds it taken is
skipped, a manual ``collect_now`` that finds it taken is rejected with
CollectionInProgress.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from enum import Enum

from apscheduler.schedulers.background import BackgroundScheduler

from double_analyzer.collector.reader import SourceReader
from double_analyzer.config import settings
from double_analyzer.errors import (
    CollectionInProgress,
    CollectorNotRunning,
    CollectorStartError,
    SessionLost,
    StoreWriteError,
    TransientReadError,
)

logger = logging.getLogger(__name__)

# how long stop() waits for an in-flight cycle before leaving the close queued
STOP_TIMEOUT = 90.0


class CollectorState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    RECONNECTING = "reconnecting"
    STOPPING = "stopping"


class CollectorSupervisor:
    def __init__(
        self,
        store,
        reader_factory=None,
        poll_interval: float | None = None,
        reconnect_backoff: float | None = None,
        reconnect_backoff_max: float | None = None,
    ):
        self.store = store
        self.reader_factory = reader_factory or SourceReader
        self.poll_interval = poll_interval or settings.poll_interval
        self.reconnect_backoff = settings.reconnect_backoff if reconnect_backoff is None else reconnect_backoff
        self.reconnect_backoff_max = (
            settings.reconnect_backoff_max if reconnect_backoff_max is None else reconnect_backoff_max
        )

        self._state = CollectorState.STOPPED
        self._state_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()

        self._reader = None
        self._worker: ThreadPoolExecutor | None = None
        # the previous worker, until its queued close has run
        self._retired: ThreadPoolExecutor | None = None
        self._scheduler: BackgroundScheduler | None = None
        self._reconnect_attempts = 0

        self.last_cycle_at: datetime | None = None
        self.last_inserted = 0
        self.last_error: str | None = None

    # ---------------- state ----------------
    @property
    def state(self) -> CollectorState:
        return self._state

    def _set_state(self, new: CollectorState, only_from: tuple = ()) -> bool:
        with self._state_lock:
            if only_from and self._state not in only_from:
                return False
            if self._state != new:
                logger.info("Collector %s -> %s", self._state.value, new.value)
            self._state = new
            return True

    def is_active(self) -> bool:
        return self._state in (CollectorState.RUNNING, CollectorState.RECONNECTING)

    def status(self) -> dict:
        return {
            "running": self.is_active(),
            "state": self._state.value,
            "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
            "last_inserted": self.last_inserted,
            "last_error": self.last_error,
            "record_count": self.store.count(),
        }

    # ---------------- lifecycle ----------------
    def start(self) -> None:
        """Open the reader, collect once, then poll. No-op when already running."""
        with self._lifecycle_lock:
            if self._state != CollectorState.STOPPED:
                logger.info("Collector already %s", self._state.value)
                return
            self._set_state(CollectorState.STARTING)
            retired, self._retired = self._retired, None
            if retired is not None:
                # let a cycle left over from the last run finish and close its reader
                retired.shutdown(wait=True)
            self._stop_event.clear()
            self._reconnect_attempts = 0
            self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="collector")
            try:
                self._worker.submit(self._open_reader).result()
            except Exception as e:
                logger.error("Collector failed to start: %s", e)
                self._worker.shutdown(wait=True)
                self._worker = None
                self._set_state(CollectorState.STOPPED)
                raise CollectorStartError(str(e)) from e
            self._set_state(CollectorState.RUNNING)

            logger.info("Running baseline collection")
            # blocks behind a collect_now that got in first
            self._run_guarded(full=True, blocking=True)

            self._scheduler = BackgroundScheduler(job_defaults={"max_instances": 1, "coalesce": True})
            self._scheduler.add_job(self._tick, "interval", seconds=self.poll_interval, id="collector-tick")
            self._scheduler.start()
            logger.info("Collector polling every %.1fs", self.poll_interval)

    def stop(self) -> None:
        """Cancel polling and release the browser. Idempotent."""
        with self._lifecycle_lock:
            if self._state == CollectorState.STOPPED:
                return
            self._set_state(CollectorState.STOPPING)
            self._stop_event.set()

            if self._scheduler is not None:
                self._scheduler.shutdown(wait=False)
                self._scheduler = None

            worker, self._worker = self._worker, None
            if worker is not None:
                # queued behind any in-flight cycle, on the reader's own thread
                future = worker.submit(self._close_reader)
                try:
                    future.result(timeout=STOP_TIMEOUT)
                except FutureTimeout:
                    logger.warning("In-flight cycle still running; reader will close when it ends")
                worker.shutdown(wait=False)
                self._retired = worker

            self._set_state(CollectorState.STOPPED)
            logger.info("Collector stopped")

    def collect_now(self) -> int:
        """Run one full cycle right away; rejects if one is already running."""
        if not self.is_active():
            raise CollectorNotRunning("collector is not running")
        return self._run_guarded(full=True)

    # ---------------- cycle ----------------
    def _tick(self) -> None:
        try:
            self._run_guarded(full=False)
        except CollectionInProgress:
            logger.debug("Previous cycle still in flight; tick skipped")
        except CollectorNotRunning:
            pass

    def _run_guarded(self, full: bool, blocking: bool = False) -> int:
        if not self._cycle_lock.acquire(blocking=blocking):
            raise CollectionInProgress("a collection cycle is already running")
        try:
            worker = self._worker
            if worker is None or self._stop_event.is_set():
                raise CollectorNotRunning("collector is not running")
            try:
                future = worker.submit(self._cycle, full)
            except RuntimeError as e:
                # worker shut down by a concurrent stop()
                raise CollectorNotRunning("collector is not running") from e
            return future.result()
        finally:
            self._cycle_lock.release()

    def _cycle(self, full: bool) -> int:
        """One collection cycle on the worker thread. Never raises."""
        inserted = 0
        try:
            if self._stop_event.is_set():
                return 0
            if self._reader is None or self._state == CollectorState.RECONNECTING:
                if not self._reconnect():
                    return 0
                full = True

            if not full:
                if not self._reader.has_new_round():
                    return 0
                logger.info("New round detected; reading history")

            batch = self._reader.read_recent()
            if batch:
                # the page lists newest first
                inserted = self.store.insert_batch(list(reversed(batch)))
            self.last_error = None
        except SessionLost as e:
            logger.error("Browser session lost: %s", e)
            self.last_error = f"session lost: {e}"
            self._close_reader()
            self._set_state(CollectorState.RECONNECTING, only_from=(CollectorState.RUNNING,))
        except StoreWriteError as e:
            logger.error("Store write failed, will retry next cycle: %s", e)
            self.last_error = f"store: {e}"
        except TransientReadError as e:
            logger.warning("Read failed, will retry next cycle: %s", e)
            self.last_error = f"read: {e}"
        except Exception as e:
            logger.exception("Collection cycle failed")
            self.last_error = str(e)
        finally:
            self.last_cycle_at = datetime.now(timezone.utc)
            self.last_inserted = inserted
        return inserted

    def _reconnect(self) -> bool:
        delay = min(self.reconnect_backoff * (2 ** self._reconnect_attempts), self.reconnect_backoff_max)
        self._reconnect_attempts += 1
        logger.warning("Reconnecting in %.1fs (attempt %d)", delay, self._reconnect_attempts)
        if self._stop_event.wait(delay):
            return False
        self._close_reader()
        try:
            self._open_reader()
        except Exception as e:
            logger.error("Reconnect attempt %d failed: %s", self._reconnect_attempts, e)
            self.last_error = f"reconnect: {e}"
            return False
        self._reconnect_attempts = 0
        self._set_state(CollectorState.RUNNING, only_from=(CollectorState.RECONNECTING,))
        logger.info("Reconnected")
        return True

    def _open_reader(self) -> None:
        reader = self.reader_factory()
        reader.open()
        self._reader = reader

    def _close_reader(self) -> None:
        reader, self._reader = self._reader, None
        if reader is None:
            return
        try:
            reader.close()
        except Exception as e:
            logger.warning("Reader close failed: %s", e)
