"""Background scheduling for the reminder sweep.

Sweeps once on start, again at the next local midnight, then every
24 hours. The clock and the wait function are injectable so the loop can
be driven with virtual time.
"""

import threading
from datetime import datetime, time, timedelta, tzinfo
from typing import Callable, Optional

from ..logging import get_logger
from ..utils import Clock, utc_now
from .notifier import DueDateNotifier

logger = get_logger(__name__)

SWEEP_INTERVAL = timedelta(hours=24)


def seconds_until_next_midnight(now: datetime, tz: Optional[tzinfo] = None) -> float:
    """Seconds from ``now`` to the following midnight in ``tz`` (local time if None)."""
    local = now.astimezone(tz)
    midnight = datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=local.tzinfo)
    return (midnight - local).total_seconds()


class NotifierScheduler:
    """Runs ``DueDateNotifier.sweep`` on a daily cadence in a background thread."""

    def __init__(
        self,
        notifier: DueDateNotifier,
        clock: Clock = utc_now,
        wait: Optional[Callable[[float], bool]] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize scheduler.

        Args:
            notifier: The sweep to run
            clock: Returns the current time (aware datetime)
            wait: Sleeps for the given seconds; returns True to stop.
                  Defaults to waiting on the stop event.
            tz: Timezone whose midnight starts the daily cycle
        """
        self.notifier = notifier
        self.clock = clock
        self.tz = tz
        self._stop = threading.Event()
        self._wait = wait or self._stop.wait
        self._thread: Optional[threading.Thread] = None
        self.sweeps = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop in a daemon thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name="elibrary-reminders", daemon=True
        )
        self._thread.start()
        logger.info("Email scheduler setup complete")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Ask the loop to stop and wait for it.

        A sweep in progress finishes the loan it is on, then stops.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self) -> None:
        """Sweep now, at the next midnight, then every 24 hours until stopped."""
        self._sweep()
        delay = seconds_until_next_midnight(self.clock(), self.tz)

        while not self._stop.is_set():
            if self._wait(delay) or self._stop.is_set():
                break
            self._sweep()
            delay = SWEEP_INTERVAL.total_seconds()

    def _sweep(self) -> None:
        self.sweeps += 1
        try:
            self.notifier.sweep(now=self.clock(), cancel=self._stop)
        except Exception:
            # Keep the schedule alive; the next sweep retries
            logger.exception("Error checking due books")
