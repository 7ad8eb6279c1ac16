"""
Countdown Clock.

Ticks a practice question's time limit down by one second per period
until it reaches zero. Expiry only notifies; what happens next is the
session controller's call.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from .models import CountdownState
from .scheduler import Scheduler, Ticker


__all__ = [
    "CountdownClock",
    "LOW_TIME_THRESHOLD_SECONDS",
    "format_countdown",
    "is_low_time",
]


logger = logging.getLogger(__name__)

TICK_PERIOD_SECONDS = 1.0
LOW_TIME_THRESHOLD_SECONDS = 30

CountdownCallback = Callable[[CountdownState], None]


def format_countdown(seconds: int) -> str:
    """
    Render remaining seconds as ``MM:SS``.

    Minutes are not wrapped, so 3600 renders as ``60:00``.

    Example:
        >>> format_countdown(95)
        '01:35'
    """
    if seconds < 0:
        raise ValueError(f"seconds must be >= 0, got {seconds}")
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def is_low_time(seconds: int, threshold: int = LOW_TIME_THRESHOLD_SECONDS) -> bool:
    """Whether the display should switch to its warning colour."""
    return seconds < threshold


class CountdownClock:
    """
    Per-question countdown on a 1-second tick chain.

    Re-arming cancels the previous chain before the new one is scheduled,
    and each tick checks the chain's generation, so a tick armed for an
    earlier question is never observed after ``arm`` returns.

    Callbacks:
        on_tick: Called after every decrement.
        on_expire: Called once when the clock reaches zero.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Optional[CountdownCallback] = None,
        on_expire: Optional[CountdownCallback] = None,
        period: float = TICK_PERIOD_SECONDS,
    ) -> None:
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self._ticker = Ticker(scheduler, name="countdown")
        self._period = period
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._state: CountdownState | None = None

    @property
    def state(self) -> CountdownState | None:
        if self._state is None:
            return None
        return replace(self._state)

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds if self._state else 0

    @property
    def running(self) -> bool:
        return self._ticker.active

    @property
    def display(self) -> str:
        return format_countdown(self.remaining_seconds)

    def arm(self, question_id: int, time_limit_seconds: int) -> CountdownState:
        """
        Reset the clock to ``time_limit_seconds`` for ``question_id``.

        A zero limit arms no ticks and does not fire ``on_expire``.

        Raises:
            ValueError: If time_limit_seconds is negative.
        """
        if time_limit_seconds < 0:
            raise ValueError(f"time_limit_seconds must be >= 0, got {time_limit_seconds}")

        self._ticker.cancel()
        self._state = CountdownState(
            remaining_seconds=time_limit_seconds,
            question_id=question_id,
            time_limit_seconds=time_limit_seconds,
        )
        if time_limit_seconds == 0:
            self._state.generation = self._ticker.invalidate()
        else:
            token = self._ticker.start(self._tick, interval=self._period)
            self._state.generation = token.generation

        logger.info(
            "Countdown armed: question=%d limit=%ds", question_id, time_limit_seconds
        )
        return replace(self._state)

    def disarm(self) -> bool:
        """Stop ticking, keeping the last remaining value. Returns True if it was running."""
        stopped = self._ticker.cancel()
        if stopped:
            logger.debug("Countdown disarmed at %ds", self.remaining_seconds)
        return stopped

    def _tick(self) -> bool:
        state = self._state
        if state is None or state.remaining_seconds <= 0:
            return False

        state.remaining_seconds -= 1
        if self._on_tick is not None:
            self._on_tick(replace(state))

        if state.remaining_seconds == 0:
            logger.info("Countdown expired for question %d", state.question_id)
            if self._on_expire is not None:
                self._on_expire(replace(state))
            return False
        return True
