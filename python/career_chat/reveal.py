"""
Reveal Scheduler.

Types system text out incrementally, either a character or a word per
tick, on the session's shared scheduler. Only one reveal is live per
scheduler instance: starting another cancels the current chain before
the new one is armed, so two reveals can never interleave on the same
visible slot.

Example:
    >>> reveal = RevealScheduler(scheduler, on_update=render)
    >>> state = reveal.start("Hello there, welcome back.", Granularity.WORD)
    >>> state.revealed_prefix
    ''
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .models import Granularity, RevealState
from .scheduler import CancelToken, Scheduler, Ticker


__all__ = [
    "RevealScheduler",
    "RevealTiming",
    "reveal_boundaries",
    "reveal_prefixes",
]


logger = logging.getLogger(__name__)

_WORD_PATTERN = re.compile(r"\S+")

RevealCallback = Callable[[RevealState], None]


@dataclass(frozen=True)
class RevealTiming:
    """Tick intervals for a reveal, in seconds."""

    character_interval: float = 0.03
    word_interval: float = 0.05
    initial_delay: float = 0.15

    def __post_init__(self) -> None:
        if self.character_interval <= 0 or self.word_interval <= 0:
            raise ValueError("reveal intervals must be > 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")

    def interval_for(self, granularity: Granularity) -> float:
        if granularity == Granularity.WORD:
            return self.word_interval
        return self.character_interval


def reveal_boundaries(text: str, granularity: Granularity | str) -> list[int]:
    """
    Prefix lengths a reveal stops at, strictly increasing, ending at len(text).

    Character granularity stops after every character. Word granularity
    stops at the end of each whitespace-delimited word, so a prefix never
    splits a word; trailing whitespace is delivered with the final stop.

    Args:
        text: Text to reveal.
        granularity: ``character`` or ``word``.

    Returns:
        Boundary lengths. Empty for empty text.

    Example:
        >>> reveal_boundaries("hi  there ", Granularity.WORD)
        [2, 9, 10]
    """
    if not text:
        return []
    if Granularity(granularity) == Granularity.CHARACTER:
        return list(range(1, len(text) + 1))

    stops = [match.end() for match in _WORD_PATTERN.finditer(text)]
    if not stops or stops[-1] != len(text):
        stops.append(len(text))
    return stops


def reveal_prefixes(text: str, granularity: Granularity | str) -> list[str]:
    """The sequence of prefixes a reveal of ``text`` displays."""
    return [text[:stop] for stop in reveal_boundaries(text, granularity)]


class RevealScheduler:
    """
    Incrementally discloses one text at a time.

    State is authoritative in ``RevealState.revealed_prefix``; whatever the
    UI shows (text plus a typing cursor while ``active``) is derived from it.

    Callbacks:
        on_update: Called after each tick with the new state.
        on_complete: Called once when a reveal reaches the full text,
                     including the zero-tick completion of empty text.
                     Not called when a reveal is cancelled.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        timing: Optional[RevealTiming] = None,
        on_update: Optional[RevealCallback] = None,
        on_complete: Optional[RevealCallback] = None,
        name: str = "reveal",
    ) -> None:
        self._timing = timing or RevealTiming()
        self._ticker = Ticker(scheduler, name=name)
        self._on_update = on_update
        self._on_complete = on_complete
        self._state: RevealState | None = None
        self._boundaries: list[int] = []
        self._position = 0
        self._token: CancelToken | None = None

    @property
    def timing(self) -> RevealTiming:
        return self._timing

    @property
    def state(self) -> RevealState | None:
        """Snapshot of the current (or last) reveal."""
        if self._state is None:
            return None
        return replace(self._state)

    @property
    def active(self) -> bool:
        return self._state is not None and self._state.active

    @property
    def message_id(self) -> str | None:
        return self._state.message_id if self._state else None

    @property
    def revealed_text(self) -> str:
        return self._state.revealed_prefix if self._state else ""

    def start(
        self,
        source_text: str,
        granularity: Granularity | str = Granularity.WORD,
        message_id: str | None = None,
    ) -> RevealState:
        """
        Begin revealing ``source_text``, cancelling any reveal in flight.

        Args:
            source_text: Full text to disclose.
            granularity: ``character`` or ``word``.
            message_id: Owner of the reveal, used by callers to map the
                        revealed text back onto a transcript message.

        Returns:
            Snapshot of the initial state. For empty text the reveal is
            already complete and inactive.
        """
        granularity = Granularity(granularity)
        self.cancel()

        generation = self._ticker.generation + 1
        self._boundaries = reveal_boundaries(source_text, granularity)
        self._position = 0
        self._state = RevealState(
            source_text=source_text,
            revealed_prefix="",
            granularity=granularity,
            active=bool(self._boundaries),
            message_id=message_id,
            generation=generation,
        )

        if not self._boundaries:
            self._ticker.invalidate()
            logger.debug("Empty reveal for %s completed immediately", message_id)
            if self._on_complete is not None:
                self._on_complete(replace(self._state))
            return replace(self._state)

        self._token = self._ticker.start(
            self._advance,
            interval=self._timing.interval_for(granularity),
            initial_delay=self._timing.initial_delay,
        )
        self._state.generation = self._token.generation
        logger.debug(
            "Reveal started: message=%s granularity=%s stops=%d",
            message_id,
            granularity.value,
            len(self._boundaries),
        )
        return replace(self._state)

    def update_source(self, source_text: str) -> RevealState | None:
        """
        React to the source text changing under an active reveal.

        A changed text restarts from an empty prefix rather than growing
        the old prefix into a string that is not a prefix of the new text.

        Returns:
            The restarted state, or None if nothing needed restarting.
        """
        state = self._state
        if state is None or not state.active or state.source_text == source_text:
            return None
        logger.info("Reveal source changed mid-reveal for %s, restarting", state.message_id)
        return self.start(source_text, state.granularity, state.message_id)

    def cancel(self) -> bool:
        """
        Stop the current reveal where it is.

        Returns:
            True if a live reveal was cancelled.
        """
        stopped = self._ticker.cancel()
        if self._state is not None and self._state.active:
            self._state.active = False
            stopped = True
        self._token = None
        return stopped

    def complete(self) -> RevealState | None:
        """Jump an active reveal straight to its full text."""
        state = self._state
        if state is None or not state.active:
            return None
        self._ticker.cancel()
        self._position = len(self._boundaries)
        state.revealed_prefix = state.source_text
        state.active = False
        self._token = None
        if self._on_update is not None:
            self._on_update(replace(state))
        if self._on_complete is not None:
            self._on_complete(replace(state))
        return replace(state)

    def _advance(self) -> bool:
        state = self._state
        if state is None or not state.active:
            return False

        stop = self._boundaries[self._position]
        self._position += 1
        state.revealed_prefix = state.source_text[:stop]
        finished = self._position >= len(self._boundaries)
        if finished:
            state.active = False
            self._token = None

        if self._on_update is not None:
            self._on_update(replace(state))
        if finished:
            logger.debug("Reveal complete for %s", state.message_id)
            if self._on_complete is not None:
                self._on_complete(replace(state))
        return not finished
