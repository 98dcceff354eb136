"""Fixed-interval cycle loop with a stop token."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from todosync_sync.engine import CycleOutcome, CycleReport

logger = logging.getLogger(__name__)


@dataclass
class SchedulerStats:
    """Counters across the life of a scheduler."""

    cycles: int = 0
    failures: int = 0
    snapshots: int = 0
    last_outcome: CycleOutcome | None = None
    last_error: str | None = None


class CycleScheduler:
    """
    Run a cycle callable once per interval until stopped.

    Exactly one cycle runs at a time. The interval is measured from the start
    of each cycle; a cycle that overruns it delays the next one (ticks are
    not queued). Setting the stop event never interrupts a running cycle.
    """

    def __init__(
        self,
        cycle: Callable[[], CycleReport],
        interval: float,
        *,
        stop: threading.Event | None = None,
        keep_going: bool = True,
        max_cycles: int | None = None,
        on_cycle_complete: Callable[[CycleReport], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.cycle = cycle
        self.interval = interval
        self.stop_event = stop or threading.Event()
        self.keep_going = keep_going
        self.max_cycles = max_cycles
        self.on_cycle_complete = on_cycle_complete
        self.clock = clock
        self.stats = SchedulerStats()

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self.stop_event.set()

    def _record(self, report: CycleReport) -> None:
        self.stats.cycles += 1
        self.stats.snapshots += len(report.snapshots)
        self.stats.last_outcome = report.outcome
        self.stats.last_error = report.error
        if not report.ok:
            self.stats.failures += 1

    def run(self) -> CycleOutcome:
        """
        Loop until stopped, max_cycles is reached, or a cycle ends fatally.

        Returns:
            OK when stopped normally, RETRYABLE when a failed cycle ended the
            loop (keep_going=False), FATAL after a setup failure.
        """
        while not self.stop_event.is_set():
            started = self.clock()
            report = self.cycle()
            self._record(report)
            if self.on_cycle_complete:
                self.on_cycle_complete(report)

            if report.outcome is CycleOutcome.FATAL:
                logger.error(f"Stopping: {report.error}")
                return CycleOutcome.FATAL
            if report.outcome is CycleOutcome.RETRYABLE:
                if not self.keep_going:
                    logger.error(f"Stopping after failed cycle: {report.error}")
                    return CycleOutcome.RETRYABLE
                logger.warning("Cycle failed; retrying on the next tick")

            if self.max_cycles is not None and self.stats.cycles >= self.max_cycles:
                break

            remaining = self.interval - (self.clock() - started)
            if remaining > 0:
                self.stop_event.wait(remaining)

        logger.info(f"Scheduler stopped after {self.stats.cycles} cycle(s)")
        return CycleOutcome.OK
