"""Build chat engine controllers from a product spec."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from assistant_tools import load_tool
from career_chat.models import ChatHistoryItem, Message, Question
from career_chat.pubsub import ViewEventPublisher
from career_chat.scheduler import Scheduler
from career_chat.session import ChatSessionController, ChatSettings, ChatTool
from career_chat.practice import PracticeSessionController
from matrixx_platform.spec_models import ProductSpec


def build_chat_settings(spec: ProductSpec) -> ChatSettings:
    chat = spec.chat
    return ChatSettings(
        default_tool=chat.default_tool,
        reply_delay_seconds=chat.reply_delay_ms / 1000,
        reveal_timing=chat.reveal.to_timing(),
        granularity=chat.reveal.granularity,
        max_file_size_bytes=chat.max_file_size_bytes,
    )


def build_history(
    spec: ProductSpec, now: Optional[datetime] = None
) -> list[ChatHistoryItem]:
    """Sidebar history with timestamps relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    return [
        ChatHistoryItem(
            id=item.id,
            title=item.title,
            tool=item.tool,
            timestamp=now - timedelta(minutes=item.age_minutes),
        )
        for item in spec.history
    ]


def build_transcript_loader(
    spec: ProductSpec,
) -> Callable[[ChatHistoryItem], Sequence[Message]]:
    """Every history item opens the same stored mock transcript, stamped at load time."""
    entries = spec.mock_transcript

    def load(item: ChatHistoryItem) -> list[Message]:
        now = datetime.now(timezone.utc)
        return [
            Message(
                content=entry.content,
                role=entry.role,
                created_at=now - timedelta(minutes=entry.age_minutes),
            )
            for entry in entries
        ]

    return load


def build_questions(spec: ProductSpec) -> list[Question]:
    return [
        Question(id=q.id, text=q.text, time_limit_seconds=q.time_limit_seconds)
        for q in spec.practice.questions
    ]


def create_chat_controller(
    spec: ProductSpec,
    scheduler: Scheduler,
    publisher: Optional[ViewEventPublisher] = None,
    tool_loader: Callable[[str], ChatTool] = load_tool,
) -> ChatSessionController:
    """
    Chat controller configured from ``spec``.

    Raises:
        RuntimeError: If the default tool or a history item names an unknown tool.
    """
    for tool_id in [spec.chat.default_tool, *(item.tool for item in spec.history)]:
        try:
            tool_loader(tool_id)
        except ValueError as exc:
            raise RuntimeError(
                f"Product spec '{spec.product_id}' references an unknown tool: {exc}"
            ) from exc

    return ChatSessionController(
        scheduler,
        tool_loader,
        settings=build_chat_settings(spec),
        history=build_history(spec),
        transcript_loader=build_transcript_loader(spec),
        publisher=publisher,
    )


def create_practice_controller(
    spec: ProductSpec,
    scheduler: Scheduler,
    publisher: Optional[ViewEventPublisher] = None,
) -> PracticeSessionController:
    practice = spec.practice
    return PracticeSessionController(
        scheduler,
        build_questions(spec),
        title=practice.title,
        reveal_timing=practice.reveal.to_timing(),
        granularity=practice.reveal.granularity,
        low_time_threshold=practice.low_time_threshold_seconds,
        home_target=practice.home_target,
        publisher=publisher,
    )
