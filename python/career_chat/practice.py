"""
Practice Session Controller.

Runs a timed mock interview: one question at a time, its text typed out
character by character while a per-question countdown runs.

Changing question is a single transition. The outgoing draft answer is
stored under its question id, both timers are cancelled, and only then
are the countdown re-armed and the question reveal restarted for the
incoming question.

Thread Safety:
    This class is NOT thread-safe. All calls must come from the thread
    running the scheduler's event loop.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from .countdown import (
    CountdownClock,
    LOW_TIME_THRESHOLD_SECONDS,
    format_countdown,
    is_low_time,
)
from .models import CountdownState, Granularity, Question, RevealState
from .pubsub import ViewEventPublisher, ViewEventType
from .reveal import RevealScheduler, RevealTiming
from .scheduler import Scheduler


__all__ = [
    "PRACTICE_REVEAL_TIMING",
    "PracticeSessionController",
    "PracticeViewState",
    "SubmitOutcome",
]


logger = logging.getLogger(__name__)

EVENT_SOURCE = "practice"
HOME_TARGET = "/"
SUBMIT_LABEL = "Submit Answer"
FINISH_LABEL = "Finish Interview"

PRACTICE_REVEAL_TIMING = RevealTiming(
    character_interval=0.05,
    word_interval=0.05,
    initial_delay=0.3,
)


class SubmitOutcome(str, Enum):
    """Result of ``submit_answer``."""

    REJECTED = "rejected"
    ADVANCED = "advanced"
    COMPLETED = "completed"


class PracticeViewState(BaseModel):
    """Derived view of the practice screen."""

    title: str
    started: bool
    completed: bool
    question_index: int
    question_number: int
    question_count: int
    question_id: Optional[int] = None
    question_text: str = ""
    revealed_question_text: str = ""
    question_revealing: bool = False
    remaining_seconds: int = 0
    time_display: str = "00:00"
    is_low_time: bool = False
    progress_percent: float = 0.0
    answer_text: str = ""
    can_submit: bool = False
    has_previous: bool = False
    has_next: bool = False
    submit_label: str = SUBMIT_LABEL
    voice_mode: bool = False
    recording: bool = False
    answers: dict[int, str] = Field(default_factory=dict)


class PracticeSessionController:
    """
    Question navigation, answers and submission for a practice interview.

    Example:
        >>> practice = PracticeSessionController(scheduler, questions)
        >>> practice.start()
        >>> practice.set_answer("I would first find out why we slipped.")
        >>> practice.submit_answer()
        <SubmitOutcome.ADVANCED: 'advanced'>
    """

    def __init__(
        self,
        scheduler: Scheduler,
        questions: Sequence[Question],
        title: str = "",
        reveal_timing: Optional[RevealTiming] = None,
        granularity: Granularity = Granularity.CHARACTER,
        low_time_threshold: int = LOW_TIME_THRESHOLD_SECONDS,
        home_target: str = HOME_TARGET,
        publisher: Optional[ViewEventPublisher] = None,
    ) -> None:
        if not questions:
            raise ValueError("A practice session needs at least one question")
        ids = [q.id for q in questions]
        if len(ids) != len(set(ids)):
            raise ValueError("Practice question ids must be unique")

        self._questions = tuple(questions)
        self._title = title
        self._granularity = Granularity(granularity)
        self._low_time_threshold = low_time_threshold
        self._home_target = home_target
        self._publisher = publisher

        self._index = 0
        self._answers: dict[int, str] = {}
        self._draft = ""
        self._started = False
        self._completed = False
        self._closed = False
        self._voice_mode = False
        self._recording = False

        self._countdown = CountdownClock(
            scheduler,
            on_tick=self._on_countdown_tick,
            on_expire=self._on_countdown_expire,
        )
        self._reveal = RevealScheduler(
            scheduler,
            timing=reveal_timing or PRACTICE_REVEAL_TIMING,
            on_update=self._on_reveal_update,
            on_complete=self._on_reveal_complete,
            name="question-reveal",
        )

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def answer_text(self) -> str:
        return self._draft

    @property
    def answers(self) -> dict[int, str]:
        """Stored answers by question id, not including the unsaved draft."""
        return dict(self._answers)

    @property
    def started(self) -> bool:
        return self._started

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def countdown_state(self) -> CountdownState | None:
        return self._countdown.state

    @property
    def reveal_state(self) -> RevealState | None:
        return self._reveal.state

    @property
    def voice_mode(self) -> bool:
        return self._voice_mode

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def has_pending_timers(self) -> bool:
        return self._countdown.running or self._reveal.active

    @property
    def has_previous(self) -> bool:
        return self._index > 0

    @property
    def has_next(self) -> bool:
        return self._index < len(self._questions) - 1

    @property
    def can_submit(self) -> bool:
        return self._accepting_input() and bool(self._draft.strip())

    @property
    def submit_label(self) -> str:
        return FINISH_LABEL if not self.has_next else SUBMIT_LABEL

    @property
    def progress_percent(self) -> float:
        return (self._index + 1) / len(self._questions) * 100

    def start(self) -> Question | None:
        """
        Begin (or restart) the session at the first question.

        Stored answers from a previous run are discarded.
        """
        if self._closed:
            logger.debug("start ignored: session closed")
            return None
        self._answers = {}
        self._draft = ""
        self._completed = False
        self._started = True
        logger.info("Practice session started with %d questions", len(self._questions))
        self._enter(0)
        return self.current_question

    def select_question(self, index: int) -> bool:
        """
        Move to question ``index`` (0-based).

        Returns:
            False, leaving everything unchanged, if ``index`` is outside
            ``[0, question_count - 1]`` or the session is not accepting input.
        """
        if not self._accepting_input():
            logger.debug("select_question(%d) ignored: session not active", index)
            return False
        if index < 0 or index >= len(self._questions):
            logger.debug(
                "select_question(%d) rejected: valid range is 0..%d",
                index,
                len(self._questions) - 1,
            )
            return False
        if index == self._index:
            return True

        self._store_draft()
        self._enter(index)
        return True

    def next_question(self) -> bool:
        return self.select_question(self._index + 1)

    def previous_question(self) -> bool:
        return self.select_question(self._index - 1)

    def set_answer(self, text: str) -> None:
        if not self._accepting_input():
            logger.debug("set_answer ignored: session not active")
            return
        self._draft = text

    def submit_answer(self) -> SubmitOutcome:
        """
        Store the current answer and move on.

        Returns:
            REJECTED when the answer is blank (nothing changes), COMPLETED
            on the last question, ADVANCED otherwise.
        """
        if not self.can_submit:
            logger.debug("submit_answer rejected: blank answer or inactive session")
            return SubmitOutcome.REJECTED

        self._store_draft()
        if self.has_next:
            self._enter(self._index + 1)
            return SubmitOutcome.ADVANCED

        self._stop_timers()
        self._completed = True
        self._recording = False
        logger.info("Practice session completed (%d answers)", len(self._answers))
        self._publish(
            ViewEventType.SESSION_COMPLETED,
            {"answers": {str(k): v for k, v in self._answers.items()}},
        )
        return SubmitOutcome.COMPLETED

    def suspend(self) -> None:
        """
        Stop every timer and stop accepting input until ``start()``.

        Used when the host navigates away from the practice screen.
        """
        self._stop_timers()
        self._recording = False
        if self._started:
            self._started = False
            logger.info("Practice session suspended at question %d", self._index + 1)

    def end_interview(self) -> str:
        """Stop every timer and request navigation home."""
        self.suspend()
        logger.info("Interview ended, navigating to %s", self._home_target)
        self._publish(ViewEventType.NAVIGATION, {"target": self._home_target})
        return self._home_target

    def toggle_voice_mode(self) -> bool:
        """Flip voice mode. Leaving voice mode also stops recording."""
        self._voice_mode = not self._voice_mode
        if not self._voice_mode:
            self._recording = False
        return self._voice_mode

    def toggle_recording(self) -> bool:
        """Flip the recording flag. Only available in voice mode."""
        if not self._voice_mode:
            return False
        self._recording = not self._recording
        return self._recording

    def close(self) -> None:
        if self._closed:
            return
        self._stop_timers()
        self._closed = True
        logger.info("Practice session closed")

    def snapshot(self) -> PracticeViewState:
        question = self.current_question
        countdown = self._countdown.state
        remaining = countdown.remaining_seconds if countdown else question.time_limit_seconds
        reveal = self._reveal.state
        revealed = reveal.revealed_prefix if reveal is not None else ""

        return PracticeViewState(
            title=self._title,
            started=self._started,
            completed=self._completed,
            question_index=self._index,
            question_number=self._index + 1,
            question_count=len(self._questions),
            question_id=question.id,
            question_text=question.text,
            revealed_question_text=revealed,
            question_revealing=self._reveal.active,
            remaining_seconds=remaining,
            time_display=format_countdown(remaining),
            is_low_time=is_low_time(remaining, self._low_time_threshold),
            progress_percent=self.progress_percent,
            answer_text=self._draft,
            can_submit=self.can_submit,
            has_previous=self.has_previous,
            has_next=self.has_next,
            submit_label=self.submit_label,
            voice_mode=self._voice_mode,
            recording=self._recording,
            answers=dict(self._answers),
        )

    def _accepting_input(self) -> bool:
        return self._started and not self._completed and not self._closed

    def _store_draft(self) -> None:
        self._answers[self.current_question.id] = self._draft

    def _stop_timers(self) -> None:
        self._countdown.disarm()
        self._reveal.cancel()

    def _enter(self, index: int) -> None:
        self._stop_timers()
        self._index = index
        question = self._questions[index]
        self._draft = self._answers.get(question.id, "")

        self._countdown.arm(question.id, question.time_limit_seconds)
        self._reveal.start(question.text, self._granularity, message_id=str(question.id))

        logger.info("Question %d/%d active", index + 1, len(self._questions))
        self._publish(
            ViewEventType.QUESTION_CHANGED,
            {
                "index": index,
                "question_id": question.id,
                "time_limit_seconds": question.time_limit_seconds,
                "answer_text": self._draft,
            },
        )

    def _on_countdown_tick(self, state: CountdownState) -> None:
        self._publish(
            ViewEventType.COUNTDOWN_TICK,
            {
                "question_id": state.question_id,
                "remaining_seconds": state.remaining_seconds,
                "display": format_countdown(state.remaining_seconds),
                "low_time": is_low_time(state.remaining_seconds, self._low_time_threshold),
            },
        )

    def _on_countdown_expire(self, state: CountdownState) -> None:
        self._publish(ViewEventType.COUNTDOWN_EXPIRED, {"question_id": state.question_id})

    def _on_reveal_update(self, state: RevealState) -> None:
        self._publish(
            ViewEventType.REVEAL_PROGRESS,
            {"question_id": state.message_id, "text": state.revealed_prefix},
        )

    def _on_reveal_complete(self, state: RevealState) -> None:
        self._publish(ViewEventType.REVEAL_COMPLETE, {"question_id": state.message_id})

    def _publish(self, event_type: ViewEventType, payload: dict[str, object]) -> None:
        if self._publisher is not None:
            self._publisher.publish_event(event_type, payload, source=EVENT_SOURCE)
