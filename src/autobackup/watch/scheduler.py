"""Fixed-interval scheduling of archive passes."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from autobackup.archive.models import PassReport

from .service import ArchiveService

LOGGER = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


class PeriodicScheduler:
    """Run an archive pass immediately and then once per interval until stopped."""

    def __init__(
        self,
        service: ArchiveService,
        *,
        interval_hours: float,
        on_pass: Optional[Callable[[PassReport], None]] = None,
    ) -> None:
        if interval_hours <= 0:
            raise ValueError("interval_hours must be greater than zero.")
        self._service = service
        self._interval_seconds = interval_hours * SECONDS_PER_HOUR
        self._on_pass = on_pass

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def run(self, stop_event: threading.Event, *, max_passes: Optional[int] = None) -> int:
        """Block running passes until ``stop_event`` is set.

        Passes start on a fixed period measured from the start of the first
        pass. A pass that overruns one or more ticks is followed immediately by
        a single catch-up pass, and the schedule then resumes on the next tick.
        The wait between passes returns early when the event is set, and the
        same event is handed to each pass so it can stop between directories.
        An exception escaping a pass ends the loop.

        Args:
            stop_event: Cooperative cancellation signal.
            max_passes: Optional upper bound on the number of passes.

        Returns:
            int: Number of passes that ran.
        """
        LOGGER.info("Running the archive job every %s hours.", self._interval_seconds / SECONDS_PER_HOUR)
        passes = 0
        next_run = time.monotonic()
        try:
            while not stop_event.is_set():
                report = self._service.run_pass(stop_event)
                passes += 1
                if self._on_pass is not None:
                    self._on_pass(report)
                if max_passes is not None and passes >= max_passes:
                    break
                next_run = self._next_deadline(next_run, time.monotonic())
                if stop_event.wait(max(0.0, next_run - time.monotonic())):
                    break
        except Exception:
            LOGGER.exception("Archive job stopped after an unexpected error.")
            return passes

        if stop_event.is_set():
            LOGGER.info("Operation cancelled.")
        return passes

    def _next_deadline(self, previous: float, now: float) -> float:
        deadline = previous + self._interval_seconds
        if deadline > now:
            return deadline
        missed = int((now - previous) // self._interval_seconds)
        LOGGER.warning("Archive pass overran the interval; %d scheduled run(s) coalesced.", missed)
        return previous + missed * self._interval_seconds


__all__ = ["PeriodicScheduler"]
