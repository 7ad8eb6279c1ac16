"""
Mock data and a virtual clock for Matrixx chat engine testing.

ManualScheduler stands in for the asyncio loop so timer chains can be
advanced deterministically, one virtual second at a time.
"""

from __future__ import annotations

import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from career_chat.models import (
    Attachment,
    CandidateFile,
    ChatHistoryItem,
    Message,
    Question,
    Role,
)


MB = 1024 * 1024

# Float slack when comparing accumulated tick times against a target.
_EPSILON = 1e-9


# =============================================================================
# Virtual Clock
# =============================================================================


class ManualHandle:
    """Timer handle returned by ManualScheduler.call_later."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        self.fired = True
        self._callback(*self._args)


class ManualScheduler:
    """
    Deterministic Scheduler with a virtual clock.

    Callbacks only run inside ``advance``/``run_until_idle``, in due-time
    order (ties in scheduling order), exactly like a single-threaded loop.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, ManualHandle]] = []
        self._counter = itertools.count()
        self.fired_count = 0

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        handle = ManualHandle(self._now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending_count(self) -> int:
        """Scheduled callbacks that are neither cancelled nor fired."""
        return sum(
            1 for _, _, handle in self._queue if not handle.cancelled() and not handle.fired
        )

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that falls due.

        Returns:
            Number of callbacks run.
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target + _EPSILON:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = max(self._now, when)
            handle.run()
            ran += 1
        self._now = max(self._now, target)
        self.fired_count += ran
        return ran

    def run_until_idle(self, max_callbacks: int = 100_000) -> int:
        """Run callbacks in order until none are pending."""
        ran = 0
        while self._queue:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = max(self._now, when)
            handle.run()
            ran += 1
            if ran >= max_callbacks:
                raise RuntimeError("run_until_idle exceeded max_callbacks")
        self.fired_count += ran
        return ran


# =============================================================================
# Data Generators
# =============================================================================


def generate_candidate(
    name: str = "resume.pdf",
    size_bytes: int = 2 * MB,
    mime_type: str = "application/pdf",
) -> CandidateFile:
    return CandidateFile(name=name, mime_type=mime_type, size_bytes=size_bytes)


def generate_attachment(name: str = "notes.txt", size_bytes: int = 1024) -> Attachment:
    return Attachment(name=name, mime_type="text/plain", size_bytes=size_bytes)


def generate_questions(count: int = 5, time_limit_seconds: int = 120) -> list[Question]:
    """Practice questions with ids 1..count."""
    return [
        Question(
            id=i,
            text=f"Practice question number {i}?",
            time_limit_seconds=time_limit_seconds,
        )
        for i in range(1, count + 1)
    ]


def generate_history() -> list[ChatHistoryItem]:
    now = datetime.now(timezone.utc)
    return [
        ChatHistoryItem(
            id="1",
            title="Software Engineer Resume Review",
            tool="resume",
            timestamp=now - timedelta(hours=2),
        ),
        ChatHistoryItem(
            id="2",
            title="Frontend Developer Interview Prep",
            tool="interview",
            timestamp=now - timedelta(days=1),
        ),
    ]


MOCK_TRANSCRIPT: tuple[tuple[Role, str], ...] = (
    (Role.SYSTEM, "Hello! How can I help you today?"),
    (Role.USER, "I need help improving my resume for a software engineering position."),
)


def load_mock_transcript(item: ChatHistoryItem) -> list[Message]:
    return [Message(content=content, role=role) for role, content in MOCK_TRANSCRIPT]


def generate_product_spec_dict(
    questions: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Minimal valid product spec payload."""
    return {
        "product_id": "test-product",
        "display_name": "Test Product",
        "chat": {
            "default_tool": "general",
            "reply_delay_ms": 1000,
            "max_file_size_bytes": 10 * MB,
        },
        "practice": {
            "title": "Test Interview",
            "questions": questions
            if questions is not None
            else [{"id": 1, "text": "Why this role?", "time_limit_seconds": 60}],
        },
        "history": [{"id": "1", "title": "Resume", "tool": "resume", "age_minutes": 5}],
        "mock_transcript": [
            {"role": "system", "content": "Hello! How can I help you today?", "age_minutes": 10}
        ],
    }
