"""
Matrixx Chat Engine Package.

The time-driven interaction engine behind the Matrixx career assistant:
typed-out system messages, a per-question practice countdown, staged
attachments with drag-and-drop, and the controllers that keep all their
timers consistent as the user switches context.

Components:
    - RevealScheduler: Incremental character/word disclosure of text
    - CountdownClock: 1-second per-question countdown
    - AttachmentStager: Size-validated pending files plus drag state
    - ChatSessionController: Transcript, tools, sending and mock replies
    - PracticeSessionController: Timed practice-interview flow
    - ViewEventPublisher: Pub/sub of view updates for renderers
    - LoopScheduler: asyncio-backed tick source all timers share

Example:
    >>> from career_chat import ChatSessionController, LoopScheduler
    >>> from assistant_tools import load_tool
    >>>
    >>> async def main():
    ...     chat = ChatSessionController(LoopScheduler(), load_tool)
    ...     chat.select_tool("resume")
    ...     chat.send_message("Can you check my resume?")
"""

from .models import (
    Attachment,
    CandidateFile,
    ChatHistoryItem,
    CountdownState,
    DragState,
    Granularity,
    Message,
    Question,
    RevealState,
    Role,
)

from .scheduler import (
    CancelToken,
    LoopScheduler,
    Scheduler,
    Ticker,
    call_once,
)

from .reveal import (
    RevealScheduler,
    RevealTiming,
    reveal_boundaries,
    reveal_prefixes,
)

from .countdown import (
    CountdownClock,
    format_countdown,
    is_low_time,
)

from .attachments import (
    AttachmentStager,
    DEFAULT_MAX_FILE_SIZE_BYTES,
    DragPhase,
    StagerConfig,
    format_file_size,
    parse_accept_attribute,
)

from .pubsub import (
    ViewEvent,
    ViewEventPublisher,
    ViewEventType,
    get_publisher,
    reset_publisher,
)

from .session import (
    ChatSessionController,
    ChatSettings,
    ChatTool,
    ChatViewState,
    MessageView,
)

from .practice import (
    PRACTICE_REVEAL_TIMING,
    PracticeSessionController,
    PracticeViewState,
    SubmitOutcome,
)


__all__ = [
    # Models
    "Attachment",
    "CandidateFile",
    "ChatHistoryItem",
    "CountdownState",
    "DragState",
    "Granularity",
    "Message",
    "Question",
    "RevealState",
    "Role",
    # Scheduling
    "CancelToken",
    "LoopScheduler",
    "Scheduler",
    "Ticker",
    "call_once",
    # Reveal
    "RevealScheduler",
    "RevealTiming",
    "reveal_boundaries",
    "reveal_prefixes",
    # Countdown
    "CountdownClock",
    "format_countdown",
    "is_low_time",
    # Attachments
    "AttachmentStager",
    "DEFAULT_MAX_FILE_SIZE_BYTES",
    "DragPhase",
    "StagerConfig",
    "format_file_size",
    "parse_accept_attribute",
    # Pub/Sub
    "ViewEvent",
    "ViewEventPublisher",
    "ViewEventType",
    "get_publisher",
    "reset_publisher",
    # Controllers
    "ChatSessionController",
    "ChatSettings",
    "ChatTool",
    "ChatViewState",
    "MessageView",
    "PRACTICE_REVEAL_TIMING",
    "PracticeSessionController",
    "PracticeViewState",
    "SubmitOutcome",
]
