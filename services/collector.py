"""Periodic collection of sensor reports into the metric registry."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from threading import Event, Lock, Thread, current_thread
from typing import Optional

from app.schemas import CollectorState, CycleOutcome, ExporterStatus
from logging_config import register_secret
from services.parser import parse_report
from services.registry import MetricRegistry
from services.report_source import IpmitoolReportSource, ReportFetchError, ReportSource
from settings import get_settings

logger = logging.getLogger(__name__)


class CollectionService:
    """Runs fetch, parse, and update cycles on a fixed interval.

    The first cycle runs as soon as :meth:`start` is called. Later cycles
    follow a fixed-rate schedule on a single background thread, so a cycle
    never starts before the previous one has finished; ticks missed during a
    slow cycle collapse into one immediate run.
    """

    def __init__(
        self,
        source: ReportSource,
        registry: MetricRegistry,
        host: str,
        interval_seconds: float = 30.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.source = source
        self.registry = registry
        self.host = host
        self.interval_seconds = interval_seconds
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._state_lock = Lock()
        self._state = CollectorState.idle
        self._cycles_completed = 0
        self._last_outcome: Optional[CycleOutcome] = None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Launch the background scheduler; a no-op if it is already running."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._run, name="ipmi-collector", daemon=True)
        self._thread.start()
        logger.info(
            "Started sensor collection",
            extra={"host": self.host, "interval_seconds": self.interval_seconds},
        )

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Signal the scheduler to stop and wait for any in-flight cycle."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not current_thread():
            thread.join(timeout)
        # A thread still stuck in a cycle stays referenced so start() cannot
        # launch a second scheduler beside it.
        if thread is None or not thread.is_alive():
            self._thread = None

    def run_cycle(self) -> CycleOutcome:
        """Fetch one report, parse it, and write the readings to the registry."""
        with self._state_lock:
            self._state = CollectorState.collecting
            cycle = self._cycles_completed + 1

        started_at = datetime.now(timezone.utc)
        start_time = time.perf_counter()
        sensor_count = 0
        error: Optional[str] = None

        try:
            try:
                report = self.source.fetch()
            except ReportFetchError as exc:
                error = str(exc)
                logger.error(
                    "Failed to fetch sensor report: %s",
                    exc,
                    extra={"host": self.host, "cycle": cycle},
                )
            else:
                readings = parse_report(report)
                sensor_count = self.registry.update(readings, self.host)

            duration_ms = int((time.perf_counter() - start_time) * 1000)
            if error is None:
                logger.info(
                    "Updated %d sensor metrics",
                    sensor_count,
                    extra={"host": self.host, "cycle": cycle, "duration_ms": duration_ms},
                )

            outcome = CycleOutcome(
                cycle=cycle,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                duration_ms=duration_ms,
                sensor_count=sensor_count,
                error=error,
            )
            with self._state_lock:
                self._cycles_completed = cycle
                self._last_outcome = outcome
            return outcome
        finally:
            with self._state_lock:
                self._state = CollectorState.idle

    def status(self) -> ExporterStatus:
        with self._state_lock:
            return ExporterStatus(
                host=self.host,
                state=self._state,
                running=self.running,
                interval_seconds=self.interval_seconds,
                cycles_completed=self._cycles_completed,
                last_cycle=self._last_outcome,
            )

    def _run(self) -> None:
        next_tick = time.monotonic()
        while True:
            try:
                self.run_cycle()
            except Exception:  # noqa: BLE001 - keep the schedule alive
                logger.exception(
                    "Unexpected error during collection cycle", extra={"host": self.host}
                )

            next_tick += self.interval_seconds
            now = time.monotonic()
            if next_tick < now:
                next_tick = now
            if self._stop_event.wait(next_tick - now):
                break


@lru_cache
def build_default_collector(
    interval_seconds: Optional[float] = None,
) -> CollectionService:
    """Factory that wires the collector from environment settings."""
    settings = get_settings()
    register_secret(settings.password)
    source = IpmitoolReportSource.from_settings(settings)
    registry = MetricRegistry()
    interval = interval_seconds or settings.interval_seconds
    logger.info(
        "Connecting to IPMI host %s",
        settings.host,
        extra={"interval_seconds": interval},
    )
    return CollectionService(
        source=source,
        registry=registry,
        host=settings.host,
        interval_seconds=interval,
    )
