"""
Chat Session Controller.

Owns the transcript, the active tool, the input draft and the attachment
stager for the chat surface, and drives the reveal scheduler and the
simulated reply delay on a single scheduler.

Every transition that replaces the transcript (tool change, new chat,
history selection, navigation, reset, close) first cancels every timer
tied to the outgoing transcript. Reply timers additionally check the
transcript epoch they were armed in, so a reply can never land in a
conversation it was not sent from.

Thread Safety:
    This class is NOT thread-safe. All calls must come from the thread
    running the scheduler's event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from .attachments import AttachmentStager, StagerConfig, DEFAULT_MAX_FILE_SIZE_BYTES
from .models import (
    Attachment,
    CandidateFile,
    ChatHistoryItem,
    DragState,
    Granularity,
    Message,
    RevealState,
    Role,
)
from .pubsub import ViewEventPublisher, ViewEventType
from .reveal import RevealScheduler, RevealTiming
from .scheduler import CancelToken, Scheduler, call_once


__all__ = [
    "ChatSessionController",
    "ChatSettings",
    "ChatTool",
    "ChatViewState",
    "MessageView",
]


logger = logging.getLogger(__name__)

EVENT_SOURCE = "chat"


class ChatTool(Protocol):
    """What the controller needs to know about an assistant tool."""

    tool_id: str

    @property
    def placeholder_text(self) -> str: ...

    @property
    def accepted_file_types(self) -> frozenset[str]: ...

    @property
    def file_upload_enabled(self) -> bool: ...

    @property
    def welcome_message(self) -> str | None: ...

    def mock_reply(self, user_text: str) -> str: ...


ToolLoader = Callable[[str], ChatTool]
TranscriptLoader = Callable[[ChatHistoryItem], Sequence[Message]]


@dataclass(frozen=True)
class ChatSettings:
    """Timing and limits for a chat session."""

    default_tool: str = "general"
    reply_delay_seconds: float = 1.0
    reveal_timing: RevealTiming = field(default_factory=RevealTiming)
    granularity: Granularity = Granularity.WORD
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES

    def __post_init__(self) -> None:
        if self.reply_delay_seconds < 0:
            raise ValueError(
                f"reply_delay_seconds must be >= 0, got {self.reply_delay_seconds}"
            )
        if self.max_file_size_bytes <= 0:
            raise ValueError(
                f"max_file_size_bytes must be > 0, got {self.max_file_size_bytes}"
            )


class MessageView(BaseModel):
    """A message as the renderer should show it right now."""

    id: str
    role: Role
    content: str
    displayed_text: str
    revealing: bool
    created_at: datetime
    attachments: list[Attachment] = Field(default_factory=list)


class ChatViewState(BaseModel):
    """Everything the chat surface renders, derived from controller state."""

    current_tool: str
    current_chat_id: Optional[str] = None
    messages: list[MessageView] = Field(default_factory=list)
    input_text: str = ""
    can_send: bool = False
    placeholder_text: str
    accepted_file_types: str
    max_file_size_bytes: int
    file_upload_enabled: bool
    pending_attachments: list[Attachment] = Field(default_factory=list)
    is_drag_over: bool = False
    sidebar_open: bool = False
    profile_menu_open: bool = False
    history: list[ChatHistoryItem] = Field(default_factory=list)
    pending_replies: int = 0


def _no_transcript(item: ChatHistoryItem) -> Sequence[Message]:
    return ()


class ChatSessionController:
    """
    Orchestrates the chat transcript.

    Example:
        >>> controller = ChatSessionController(scheduler, load_tool)
        >>> controller.select_tool("resume")
        >>> controller.send_message("Please review my CV")
        >>> len(controller.messages)  # welcome + user message; reply after 1s
        2
    """

    def __init__(
        self,
        scheduler: Scheduler,
        tool_loader: ToolLoader,
        settings: Optional[ChatSettings] = None,
        history: Sequence[ChatHistoryItem] = (),
        transcript_loader: TranscriptLoader = _no_transcript,
        publisher: Optional[ViewEventPublisher] = None,
    ) -> None:
        """
        Create a controller on the given scheduler.

        Args:
            scheduler: Tick source shared by the reveal and reply timers.
            tool_loader: Resolves a tool id. Raises ValueError for unknown ids.
            settings: Timing and limit overrides.
            history: Sidebar history items, most recent first.
            transcript_loader: Produces the stored transcript of a history item.
            publisher: Optional sink for view events.

        Raises:
            ValueError: If the default tool cannot be loaded.
        """
        self._scheduler = scheduler
        self._load_tool = tool_loader
        self._settings = settings or ChatSettings()
        self._history = list(history)
        self._load_transcript = transcript_loader
        self._publisher = publisher

        self._tool = self._load_tool(self._settings.default_tool)
        self._messages: list[Message] = []
        self._current_chat_id: str | None = None
        self._input_text = ""
        self._sidebar_open = False
        self._profile_menu_open = False
        self._closed = False
        self._epoch = 0
        self._reply_tokens: list[CancelToken] = []

        self._stager = AttachmentStager(
            config=self._stager_config(self._tool),
            on_change=self._on_attachments_changed,
            on_drag_change=self._on_drag_changed,
        )
        self._reveal = RevealScheduler(
            scheduler,
            timing=self._settings.reveal_timing,
            on_update=self._on_reveal_update,
            on_complete=self._on_reveal_complete,
            name="chat-reveal",
        )
        logger.debug("ChatSessionController initialized with tool %s", self._tool.tool_id)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def current_tool(self) -> str:
        return self._tool.tool_id

    @property
    def current_chat_id(self) -> str | None:
        return self._current_chat_id

    @property
    def input_text(self) -> str:
        return self._input_text

    @property
    def pending_attachments(self) -> list[Attachment]:
        return self._stager.pending

    @property
    def drag_state(self) -> DragState:
        return self._stager.drag_state

    @property
    def sidebar_open(self) -> bool:
        return self._sidebar_open

    @property
    def profile_menu_open(self) -> bool:
        return self._profile_menu_open

    @property
    def history(self) -> list[ChatHistoryItem]:
        return list(self._history)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reveal_state(self) -> RevealState | None:
        return self._reveal.state

    @property
    def pending_reply_count(self) -> int:
        return sum(1 for token in self._reply_tokens if token.pending)

    @property
    def has_pending_timers(self) -> bool:
        return self._reveal.active or self.pending_reply_count > 0

    def displayed_text(self, message_id: str) -> str:
        """Text currently visible for a message: its reveal prefix while typing."""
        message = self._find_message(message_id)
        if message is None:
            return ""
        if message.revealing and self._reveal.message_id == message_id:
            return self._reveal.revealed_text
        return message.content

    def snapshot(self) -> ChatViewState:
        config = self._stager.config
        return ChatViewState(
            current_tool=self._tool.tool_id,
            current_chat_id=self._current_chat_id,
            messages=[
                MessageView(
                    id=m.id,
                    role=m.role,
                    content=m.content,
                    displayed_text=self.displayed_text(m.id),
                    revealing=m.revealing,
                    created_at=m.created_at,
                    attachments=list(m.attachments),
                )
                for m in self._messages
            ],
            input_text=self._input_text,
            can_send=self._can_send(),
            placeholder_text=self._tool.placeholder_text,
            accepted_file_types=config.accept_attribute,
            max_file_size_bytes=config.max_file_size_bytes,
            file_upload_enabled=config.file_upload_enabled,
            pending_attachments=self._stager.pending,
            is_drag_over=self._stager.drag_state.is_over,
            sidebar_open=self._sidebar_open,
            profile_menu_open=self._profile_menu_open,
            history=list(self._history),
            pending_replies=self.pending_reply_count,
        )

    # ------------------------------------------------------------------
    # Transcript transitions
    # ------------------------------------------------------------------

    def select_tool(self, tool_id: str) -> Message | None:
        """
        Switch tools and start a fresh transcript.

        Clears messages and staging, then seeds the tool's welcome message
        (if it has one) and starts revealing it.

        Returns:
            The welcome message, or None for tools without one.

        Raises:
            ValueError: If the tool id is unknown. State is left untouched.
        """
        if not self._ensure_open("select_tool"):
            return None
        tool = self._load_tool(tool_id)

        self._teardown()
        self._tool = tool
        self._current_chat_id = None
        self._stager.clear()
        self._stager.configure(self._stager_config(tool))
        self._messages = []
        self._close_menus()

        welcome: Message | None = None
        if tool.welcome_message:
            welcome = Message(content=tool.welcome_message, role=Role.SYSTEM, revealing=True)
            self._messages.append(welcome)

        logger.info("Selected tool %s", tool.tool_id)
        self._publish_reset()
        if welcome is not None:
            self._start_reveal(welcome)
        return welcome

    def new_chat(self) -> None:
        """Empty transcript on the default tool."""
        if not self._ensure_open("new_chat"):
            return
        tool = self._load_tool(self._settings.default_tool)
        self._teardown()
        self._tool = tool
        self._current_chat_id = None
        self._messages = []
        self._stager.clear()
        self._stager.configure(self._stager_config(tool))
        self._close_menus()
        logger.info("Started new chat")
        self._publish_reset()

    def select_chat(self, chat_id: str) -> bool:
        """
        Load the stored transcript of a history item.

        Returns:
            False (and changes nothing) if the id is not in the history.
        """
        if not self._ensure_open("select_chat"):
            return False
        item = next((h for h in self._history if h.id == chat_id), None)
        if item is None:
            logger.info("select_chat(%s): unknown chat id, ignoring", chat_id)
            return False

        self._teardown()
        self._current_chat_id = chat_id
        self._messages = list(self._load_transcript(item))
        self._stager.clear()
        self._close_menus()
        logger.info("Loaded chat %s (%d messages)", chat_id, len(self._messages))
        self._publish_reset()
        return True

    def navigate(self, target: str) -> str:
        """
        Tear down every timer and ask the host to navigate to ``target``.

        Returns:
            The navigation target.
        """
        self._teardown()
        self._close_menus()
        logger.info("Navigation requested: %s", target)
        self._publish(ViewEventType.NAVIGATION, {"target": target})
        return target

    def reset(self) -> None:
        """Back to an empty transcript on the default tool, input and staging cleared."""
        tool = self._load_tool(self._settings.default_tool)
        self._teardown()
        self._tool = tool
        self._current_chat_id = None
        self._messages = []
        self._input_text = ""
        self._stager.clear()
        self._stager.configure(self._stager_config(tool))
        self._close_menus()
        self._closed = False
        logger.info("Chat session reset")
        self._publish_reset()

    def close(self) -> None:
        """Cancel every outstanding timer. Later calls that would arm timers are ignored."""
        if self._closed:
            return
        self._teardown()
        self._closed = True
        logger.info("Chat session closed")

    # ------------------------------------------------------------------
    # Composing and sending
    # ------------------------------------------------------------------

    def set_input(self, text: str) -> None:
        self._input_text = text

    def send_message(
        self,
        text: str | None = None,
        attachments: Sequence[Attachment] | None = None,
    ) -> Message | None:
        """
        Append a user message and schedule the simulated reply.

        Args:
            text: Message text. Defaults to the current input draft.
            attachments: Files to send. Defaults to the pending set, which is
                         moved onto the message in one step.

        Returns:
            The user message, or None when there was nothing to send.
        """
        if not self._ensure_open("send_message"):
            return None
        content = (self._input_text if text is None else text).strip()
        has_files = bool(self._stager.pending) if attachments is None else bool(attachments)
        if not content and not has_files:
            logger.debug("send_message: empty text and no attachments, ignoring")
            return None

        if attachments is None:
            files = self._stager.take_all()
        else:
            files = tuple(attachments)
            self._stager.clear()

        message = Message(content=content, role=Role.USER, attachments=files)
        self._messages.append(message)
        self._input_text = ""
        self._publish_appended(message)

        tool = self._tool
        epoch = self._epoch
        token = call_once(
            self._scheduler,
            self._settings.reply_delay_seconds,
            lambda: self._deliver_reply(tool.mock_reply(content)),
            generation=epoch,
            is_current=lambda generation: generation == self._epoch,
        )
        self._reply_tokens.append(token)
        logger.info(
            "User message sent (%d chars, %d attachments), reply in %.2fs",
            len(content),
            len(files),
            self._settings.reply_delay_seconds,
        )
        return message

    def upload_files(self, raw_files: Sequence[CandidateFile]) -> list[Attachment]:
        """Stage picked files. Oversized files are dropped silently."""
        if not self._ensure_open("upload_files"):
            return []
        return self._stager.stage(raw_files, self._settings.max_file_size_bytes)

    def remove_attachment(self, attachment_id: str) -> bool:
        return self._stager.remove(attachment_id)

    def drag_enter(self) -> bool:
        """Returns True: suppress the platform's default drop handling."""
        return self._stager.drag_over()

    def drag_leave(self) -> bool:
        return self._stager.drag_leave()

    def drop(self, raw_files: Sequence[CandidateFile]) -> list[Attachment]:
        if not self._ensure_open("drop"):
            self._stager.drag_leave()
            return []
        return self._stager.drop(raw_files, self._settings.max_file_size_bytes)

    # ------------------------------------------------------------------
    # Sidebar
    # ------------------------------------------------------------------

    def toggle_sidebar(self) -> bool:
        self._sidebar_open = not self._sidebar_open
        self._publish(ViewEventType.SIDEBAR_CHANGED, {"open": self._sidebar_open})
        return self._sidebar_open

    def toggle_profile_menu(self) -> bool:
        self._profile_menu_open = not self._profile_menu_open
        return self._profile_menu_open

    # Inbound contract names used by the rendering layer.
    on_send_message = send_message
    on_select_tool = select_tool
    on_select_chat = select_chat
    on_file_upload = upload_files
    on_navigate = navigate

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _can_send(self) -> bool:
        return not self._closed and bool(self._input_text.strip() or self._stager.pending)

    def _ensure_open(self, operation: str) -> bool:
        if self._closed:
            logger.debug("%s ignored: session closed", operation)
            return False
        return True

    def _stager_config(self, tool: ChatTool) -> StagerConfig:
        return StagerConfig(
            accepted_file_types=tool.accepted_file_types,
            max_file_size_bytes=self._settings.max_file_size_bytes,
            file_upload_enabled=tool.file_upload_enabled,
        )

    def _close_menus(self) -> None:
        if self._sidebar_open:
            self._sidebar_open = False
            self._publish(ViewEventType.SIDEBAR_CHANGED, {"open": False})
        self._profile_menu_open = False

    def _teardown(self) -> None:
        """Cancel the reveal and every reply timer of the current transcript."""
        self._epoch += 1
        cancelled = sum(1 for token in self._reply_tokens if token.cancel())
        self._reply_tokens = []
        self._finalize_reveal()
        self._stager.drag_leave()
        if cancelled:
            logger.debug("Cancelled %d pending replies", cancelled)

    def _finalize_reveal(self) -> None:
        message_id = self._reveal.message_id
        self._reveal.cancel()
        if message_id is None:
            return
        message = self._find_message(message_id)
        if message is not None and message.mark_revealed():
            logger.debug("Finalized interrupted reveal of %s", message_id)

    def _start_reveal(self, message: Message) -> None:
        self._finalize_reveal()
        self._reveal.start(message.content, self._settings.granularity, message.id)

    def _deliver_reply(self, reply_text: str) -> None:
        self._reply_tokens = [t for t in self._reply_tokens if t.pending]
        reply = Message(content=reply_text, role=Role.SYSTEM, revealing=True)
        self._messages.append(reply)
        logger.info("System reply delivered (%s)", reply.id)
        self._publish_appended(reply)
        self._start_reveal(reply)

    def _find_message(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def _on_reveal_update(self, state: RevealState) -> None:
        self._publish(
            ViewEventType.REVEAL_PROGRESS,
            {"message_id": state.message_id, "text": state.revealed_prefix},
        )

    def _on_reveal_complete(self, state: RevealState) -> None:
        message = self._find_message(state.message_id) if state.message_id else None
        if message is not None:
            message.mark_revealed()
        self._publish(ViewEventType.REVEAL_COMPLETE, {"message_id": state.message_id})

    def _on_attachments_changed(self, pending: list[Attachment]) -> None:
        self._publish(
            ViewEventType.ATTACHMENTS_CHANGED,
            {"attachments": [a.model_dump() for a in pending]},
        )

    def _on_drag_changed(self, state: DragState) -> None:
        self._publish(ViewEventType.DRAG_CHANGED, {"is_over": state.is_over})

    def _publish_appended(self, message: Message) -> None:
        self._publish(ViewEventType.MESSAGE_APPENDED, message.model_dump(mode="json"))

    def _publish_reset(self) -> None:
        self._publish(
            ViewEventType.MESSAGES_RESET,
            {
                "tool": self._tool.tool_id,
                "chat_id": self._current_chat_id,
                "messages": [m.model_dump(mode="json") for m in self._messages],
            },
        )

    def _publish(self, event_type: ViewEventType, payload: dict[str, object]) -> None:
        if self._publisher is not None:
            self._publisher.publish_event(event_type, payload, source=EVENT_SOURCE)
