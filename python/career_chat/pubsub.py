"""
View-event Pub/Sub.

In-memory fan-out of observable engine state (transcript changes, reveal
progress, countdown ticks, staging and drag changes) to the rendering
layer, e.g. the server-sent event stream of the local chat server.

Publishing is synchronous because it happens inside timer callbacks;
each subscriber gets an unbounded asyncio queue it drains at its own pace.

Thread Safety:
    Loop thread only. ``publish`` must not be called from other threads.

Example usage:
    publisher = get_publisher()
    queue = publisher.subscribe()
    publisher.publish_event(ViewEventType.MESSAGE_APPENDED, {"id": "m1"})
    event = await queue.get()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


logger = logging.getLogger(__name__)


class ViewEventType(str, Enum):
    """
    Kinds of view updates.

    Attributes:
        MESSAGE_APPENDED: A message was added to the transcript.
        MESSAGES_RESET: The transcript was replaced wholesale.
        REVEAL_PROGRESS: A reveal advanced by one step.
        REVEAL_COMPLETE: A reveal reached its full text.
        COUNTDOWN_TICK: The practice clock decremented.
        COUNTDOWN_EXPIRED: The practice clock reached zero.
        ATTACHMENTS_CHANGED: The pending attachment list changed.
        DRAG_CHANGED: The drag-over overlay flag flipped.
        QUESTION_CHANGED: The practice session moved to another question.
        SESSION_COMPLETED: The last practice answer was submitted.
        NAVIGATION: The engine asked the host to navigate.
        SIDEBAR_CHANGED: The sidebar opened or closed.
    """

    MESSAGE_APPENDED = "message_appended"
    MESSAGES_RESET = "messages_reset"
    REVEAL_PROGRESS = "reveal_progress"
    REVEAL_COMPLETE = "reveal_complete"
    COUNTDOWN_TICK = "countdown_tick"
    COUNTDOWN_EXPIRED = "countdown_expired"
    ATTACHMENTS_CHANGED = "attachments_changed"
    DRAG_CHANGED = "drag_changed"
    QUESTION_CHANGED = "question_changed"
    SESSION_COMPLETED = "session_completed"
    NAVIGATION = "navigation"
    SIDEBAR_CHANGED = "sidebar_changed"


def _get_utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ViewEvent:
    """
    A single observable state change.

    Attributes:
        event_type: What changed.
        source: Which controller published it (``chat`` or ``practice``).
        payload: JSON-ready details of the change.
        timestamp: UTC ISO timestamp of publication.
    """

    event_type: ViewEventType
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_get_utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "source": self.source,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class ViewEventPublisher:
    """
    Broadcasts view events to every subscriber queue.

    New subscribers first receive the retained history so a late
    renderer can rebuild the current view.

    Attributes:
        max_history: Maximum number of events retained for replay.
    """

    def __init__(self, max_history: int = 200) -> None:
        if max_history < 0:
            raise ValueError(f"max_history must be >= 0, got {max_history}")
        self._subscribers: list[asyncio.Queue[ViewEvent]] = []
        self._history: list[ViewEvent] = []
        self._max_history = max_history
        logger.info("ViewEventPublisher initialized with max_history=%d", max_history)

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, replay: bool = True) -> asyncio.Queue[ViewEvent]:
        """
        Register a new subscriber.

        Caller is responsible for calling ``unsubscribe`` when done.

        Args:
            replay: Pre-fill the queue with the retained history.

        Returns:
            Queue that will receive every subsequently published event.
        """
        queue: asyncio.Queue[ViewEvent] = asyncio.Queue()
        if replay:
            for event in self._history:
                queue.put_nowait(event)
        self._subscribers.append(queue)
        logger.debug("New subscriber added. Total: %d", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ViewEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)
        logger.debug("Subscriber removed. Total: %d", len(self._subscribers))

    def publish(self, event: ViewEvent) -> None:
        """Record ``event`` in history and push it to all subscribers."""
        if self._max_history:
            self._history.append(event)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history :]

        for queue in self._subscribers:
            queue.put_nowait(event)

        logger.debug("Published %s event from %s", event.event_type.value, event.source)

    def publish_event(
        self,
        event_type: ViewEventType,
        payload: Optional[dict[str, Any]] = None,
        source: str = "chat",
    ) -> ViewEvent:
        """Build and publish an event. Returns the published event."""
        event = ViewEvent(event_type=event_type, source=source, payload=payload or {})
        self.publish(event)
        return event

    def get_history(self) -> list[ViewEvent]:
        """Copy of the retained history."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
        logger.debug("History cleared")


# Global publisher instance
_publisher: ViewEventPublisher | None = None


def get_publisher() -> ViewEventPublisher:
    """
    Get the global publisher instance, creating it on first use.

    Returns:
        The global ViewEventPublisher instance.
    """
    global _publisher
    if _publisher is None:
        _publisher = ViewEventPublisher()
    return _publisher


def reset_publisher() -> None:
    """
    Reset the global publisher instance.

    Primarily useful for testing to ensure a clean state between tests.
    """
    global _publisher
    _publisher = None
    logger.debug("Global publisher reset")
