# atlanta_map/playback.py - Timeline play/pause/scrub state machine
"""Playback over the published years.

The controller never owns a real timer. It registers a recurring task with a
:class:`PollingScheduler`, and the host (a Streamlit fragment with
``run_every``, or a test advancing a fake clock) calls ``poll()``.
"""

import time
from enum import Enum
from typing import Callable, Iterable, List, Optional

from .config import DEFAULT_YEAR, YEAR_MAX, YEAR_MIN
from .logging import get_logger

logger = get_logger(__name__)


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class ScheduledTask:
    """A recurring callback registered with a PollingScheduler."""

    def __init__(self, scheduler, interval: float, callback: Callable[[], None], due: float):
        self._scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self.due = due
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._scheduler._remove(self)


class PollingScheduler:
    """Cooperative interval timers driven by explicit polling.

    Args:
        clock: Zero-argument callable returning seconds (``time.monotonic``)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._tasks: List[ScheduledTask] = []

    def every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("Interval must be positive")
        task = ScheduledTask(self, interval, callback, self.clock() + interval)
        self._tasks.append(task)
        return task

    def _remove(self, task: ScheduledTask) -> None:
        if task in self._tasks:
            self._tasks.remove(task)

    def pending(self) -> int:
        return len(self._tasks)

    def poll(self) -> int:
        """Run every due task once; returns how many callbacks fired.

        A task that fell several intervals behind fires once and is
        rescheduled from now, the same way browsers throttle interval timers.
        """
        now = self.clock()
        fired = 0
        for task in list(self._tasks):
            if task.cancelled or task.due > now:
                continue
            task.callback()
            fired += 1
            task.due += task.interval
            if task.due <= now:
                task.due = now + task.interval
        return fired


class PlaybackController:
    """Active-year state machine with Play, Pause, tick and Scrub."""

    def __init__(self, scheduler: PollingScheduler,
                 years: Iterable[int] = range(YEAR_MIN, YEAR_MAX + 1),
                 initial_year: int = DEFAULT_YEAR, interval: float = 1.0):
        self.scheduler = scheduler
        self.years = tuple(sorted(years))
        if initial_year not in self.years:
            raise ValueError(f"Initial year {initial_year} is outside {self.years[0]}-{self.years[-1]}")
        self.interval = interval
        self.state = PlaybackState.STOPPED
        self.active_year = initial_year
        self.history = [initial_year]
        self._task: Optional[ScheduledTask] = None
        self._listeners: List[Callable[[int], None]] = []

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    def subscribe(self, listener: Callable[[int], None]) -> Callable[[], None]:
        """Call ``listener(year)`` on every active-year change."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def play(self) -> None:
        if self.is_playing:
            return
        self.state = PlaybackState.PLAYING
        self._task = self.scheduler.every(self.interval, self.tick)
        logger.info("Playback started", year=self.active_year)

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._cancel_task()
        self.state = PlaybackState.STOPPED
        logger.info("Playback paused", year=self.active_year)

    def toggle(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def tick(self) -> int:
        """Advance one year, wrapping from the last year back to the first."""
        position = self.years.index(self.active_year)
        if position < len(self.years) - 1:
            year = self.years[position + 1]
        else:
            year = self.years[0]
        self._set_year(year)
        return year

    def scrub(self, year: int) -> None:
        """Jump to a year without changing the play state."""
        if year not in self.years:
            raise ValueError(f"Year {year} is outside {self.years[0]}-{self.years[-1]}")
        if year != self.active_year:
            self._set_year(year)

    def close(self) -> None:
        """Stop the timer and drop listeners (view unmounted)."""
        self._cancel_task()
        self.state = PlaybackState.STOPPED
        self._listeners.clear()

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _set_year(self, year: int) -> None:
        self.active_year = year
        self.history.append(year)
        for listener in list(self._listeners):
            listener(year)
