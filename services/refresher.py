"""Periodic refresh of a device dashboard with last-write-wins selection."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional

from models.records import DeviceProfile, TimeWindow
from services.pipeline import DashboardSnapshot, TelemetryPipeline
from services.window import resolve_window
from sources.telemetry import TelemetrySourceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """What to refresh. With ``rolling_hours`` set, each cycle moves the window to end now."""

    device_id: str
    window: TimeWindow
    profile: Optional[DeviceProfile] = None
    rolling_hours: Optional[float] = None

    def current(self) -> Selection:
        if self.rolling_hours is None:
            return self
        return replace(self, window=resolve_window(None, None, default_hours=self.rolling_hours))


Fetcher = Callable[[Selection], List[Any]]
Listener = Callable[[DashboardSnapshot], None]


class RefreshScheduler:
    """Fetches and recomputes a snapshot on an interval or when the selection changes.

    Every selection change bumps a generation counter. A refresh that started
    under an older generation drops its result instead of publishing it.
    """

    def __init__(
        self,
        fetch: Fetcher,
        pipeline: TelemetryPipeline,
        interval: float,
        on_update: Optional[Listener] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Refresh interval must be positive.")
        self.fetch = fetch
        self.pipeline = pipeline
        self.interval = interval
        self.on_update = on_update
        self._lock = threading.Lock()
        self._selection: Optional[Selection] = None
        self._generation = 0
        self._latest: Optional[DashboardSnapshot] = None
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def latest(self) -> Optional[DashboardSnapshot]:
        with self._lock:
            return self._latest

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def select(self, selection: Selection) -> None:
        """Replace the current selection and wake the loop for an immediate refresh."""
        with self._lock:
            self._selection = selection
            self._generation += 1
            self._latest = None
        self._wake.set()

    def refresh(self) -> Optional[DashboardSnapshot]:
        """Run one fetch and pipeline cycle; returns the snapshot if it was published."""
        with self._lock:
            selection = self._selection
            generation = self._generation
        if selection is None:
            return None
        selection = selection.current()

        started = time.perf_counter()
        try:
            records = self.fetch(selection)
        except TelemetrySourceError as exc:
            logger.warning(
                "Refresh skipped after fetch failure",
                extra={"device_id": selection.device_id, "reason": str(exc)},
            )
            return None

        snapshot = self.pipeline.run(
            records,
            device_id=selection.device_id,
            window=selection.window,
            profile=selection.profile,
        )

        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding superseded refresh",
                    extra={"device_id": selection.device_id, "generation": generation},
                )
                return None
            self._latest = snapshot

        logger.info(
            "Dashboard refreshed",
            extra={
                "device_id": selection.device_id,
                "generation": generation,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        if self.on_update is not None:
            self.on_update(snapshot)
        return snapshot

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="refresh-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            self._wake.clear()
            try:
                self.refresh()
            except Exception:
                with self._lock:
                    selection = self._selection
                logger.exception(
                    "Refresh cycle failed",
                    extra={"device_id": selection.device_id if selection else None},
                )
            self._wake.wait(self.interval)
