"""
Timer substrate for the chat engine.

Every time-driven effect (reveal ticks, countdown ticks, the simulated
reply delay) is a callback scheduled on a single host event loop. Nothing
blocks and nothing runs in parallel, so the only hazard is ordering: a
callback armed for an entity that has since been replaced must never
apply its effect.

Two mechanisms guard against that, and ``Ticker`` uses both:

    - a ``CancelToken`` captured when a chain is armed, whose ``cancel()``
      also cancels the pending loop handle;
    - a generation counter, bumped on every (re)arm, that each firing
      compares against before doing anything.

Thread Safety:
    Not thread-safe. All calls must come from the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol


__all__ = [
    "CancelToken",
    "LoopScheduler",
    "Scheduler",
    "TimerHandle",
    "Ticker",
    "call_once",
]


logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle returned by ``Scheduler.call_later``."""

    def cancel(self) -> None:
        """Prevent the callback from running."""

    def cancelled(self) -> bool:
        """Whether ``cancel()`` has been called."""


class Scheduler(Protocol):
    """Single tick source shared by all timer chains of a session."""

    def now(self) -> float:
        """Monotonic time in seconds."""

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        """Run ``callback(*args)`` once after ``delay`` seconds."""


class LoopScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Example:
        >>> async def main():
        ...     scheduler = LoopScheduler()
        ...     scheduler.call_later(0.05, print, "tick")
        ...     await asyncio.sleep(0.1)
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Bind to an event loop.

        Args:
            loop: Loop to schedule on. Defaults to the running loop, so
                  construct inside a coroutine (or FastAPI lifespan).
        """
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def now(self) -> float:
        return self._loop.time()

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        return self._loop.call_later(delay, callback, *args)


class CancelToken:
    """
    Cancellation handle for one timer chain.

    Holds the chain's generation tag and the handle of its next pending
    firing. Cancelling is idempotent.
    """

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self._cancelled = False
        self._finished = False
        self._handle: TimerHandle | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        """Chain ran to completion on its own."""
        return self._finished

    @property
    def pending(self) -> bool:
        """A firing is still scheduled."""
        return self._handle is not None and not self._handle.cancelled()

    def cancel(self) -> bool:
        """
        Cancel the chain and its pending handle.

        Returns:
            True if this call stopped a live chain.
        """
        if self._cancelled or self._finished:
            return False
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        return True

    def _attach(self, handle: TimerHandle) -> None:
        self._handle = handle

    def _finish(self) -> None:
        self._finished = True
        self._handle = None

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "finished" if self._finished else "live"
        return f"CancelToken(generation={self.generation}, {state})"


class Ticker:
    """
    One self-advancing timer chain with generation checking.

    ``start`` cancels the previous chain before arming a new one. The
    ``step`` callable runs on every firing and returns True to keep
    ticking or False to stop.

    Example:
        >>> ticker = Ticker(scheduler, name="countdown")
        >>> token = ticker.start(step, interval=1.0)
        >>> ticker.cancel()  # token.cancelled is now True
    """

    def __init__(self, scheduler: Scheduler, name: str = "ticker") -> None:
        self._scheduler = scheduler
        self._name = name
        self._generation = 0
        self._token: CancelToken | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active(self) -> bool:
        token = self._token
        return token is not None and not token.cancelled and not token.finished

    def start(
        self,
        step: Callable[[], bool],
        interval: float,
        initial_delay: float | None = None,
    ) -> CancelToken:
        """
        Arm a new chain, cancelling the current one first.

        Args:
            step: Effect to apply on each firing. Return False to stop.
            interval: Seconds between firings.
            initial_delay: Seconds before the first firing. Defaults to
                           ``interval``.

        Returns:
            The new chain's cancellation token.

        Raises:
            ValueError: If interval is not positive or initial_delay is negative.
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        first_delay = interval if initial_delay is None else initial_delay
        if first_delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {initial_delay}")

        self.cancel()
        self._generation += 1
        token = CancelToken(self._generation)
        self._token = token

        def fire() -> None:
            if token.cancelled or token.generation != self._generation:
                logger.debug(
                    "%s: dropped stale tick (gen %d, current %d)",
                    self._name,
                    token.generation,
                    self._generation,
                )
                return
            if step() and not token.cancelled:
                token._attach(self._scheduler.call_later(interval, fire))
            elif not token.cancelled:
                token._finish()

        token._attach(self._scheduler.call_later(first_delay, fire))
        return token

    def cancel(self) -> bool:
        """Cancel the current chain, if any. Returns True if one was live."""
        if self._token is None:
            return False
        stopped = self._token.cancel()
        if stopped:
            logger.debug("%s: cancelled chain gen %d", self._name, self._token.generation)
        return stopped

    def invalidate(self) -> int:
        """Bump the generation without arming a new chain."""
        self.cancel()
        self._generation += 1
        return self._generation


def call_once(
    scheduler: Scheduler,
    delay: float,
    callback: Callable[[], None],
    generation: int = 0,
    is_current: Optional[Callable[[int], bool]] = None,
) -> CancelToken:
    """
    Schedule a single cancellable firing.

    Args:
        scheduler: Tick source.
        delay: Seconds until the firing.
        callback: Effect to apply.
        generation: Tag stored on the returned token.
        is_current: Optional check run before the effect; a False result
                    drops the firing as stale.

    Returns:
        Token whose ``cancel()`` also cancels the pending handle.
    """
    token = CancelToken(generation)

    def fire() -> None:
        if token.cancelled:
            return
        token._finish()
        if is_current is not None and not is_current(token.generation):
            logger.debug("dropped stale one-shot (gen %d)", token.generation)
            return
        callback()

    token._attach(scheduler.call_later(delay, fire))
    return token
