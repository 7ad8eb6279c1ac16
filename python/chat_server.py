"""
Matrixx Chat Engine Service

Hosts one chat session and one practice session on the uvicorn event loop
and exposes the engine's inbound contract as JSON endpoints. Every timer
(reveal ticks, reply delay, countdown) runs as a callback on that loop.

Endpoints:
    GET    /health                      - Health check
    GET    /product/spec                - Active product spec summary
    GET    /tools                       - Tool catalog for the sidebar
    GET    /events                      - Server-sent view events
    GET    /chat/state                  - Chat view snapshot
    POST   /chat/tool                   - Select a tool
    POST   /chat/new                    - Start a new chat
    POST   /chat/select                 - Open a history item
    POST   /chat/input                  - Update the input draft
    POST   /chat/send                   - Send a message
    POST   /chat/files                  - Stage picked files
    POST   /chat/drag                   - Drag enter / leave
    POST   /chat/drop                   - Stage dropped files
    DELETE /chat/attachments/{id}       - Remove a pending attachment
    POST   /chat/sidebar/toggle         - Open or close the sidebar
    POST   /chat/profile-menu/toggle    - Open or close the profile menu
    POST   /chat/reset                  - Reset the chat session
    POST   /navigate                    - Tear down all timers and navigate
    GET    /practice/state              - Practice view snapshot
    POST   /practice/start              - Start the practice interview
    POST   /practice/question           - Jump to a question
    POST   /practice/next               - Next question
    POST   /practice/previous           - Previous question
    POST   /practice/answer             - Update the answer draft
    POST   /practice/submit             - Submit the current answer
    POST   /practice/end                - End the interview
    POST   /practice/voice/toggle       - Toggle voice mode
    POST   /practice/recording/toggle   - Toggle recording

Internal binding: configured by CHAT_HOST/CHAT_PORT (default 127.0.0.1:8787)
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, AsyncIterator, Optional, TypedDict

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from assistant_tools import SIDEBAR_TOOLS, available_tools, load_tool
from career_chat.models import Attachment, CandidateFile
from career_chat.practice import PracticeSessionController, PracticeViewState, SubmitOutcome
from career_chat.pubsub import ViewEventPublisher
from career_chat.scheduler import LoopScheduler
from career_chat.session import ChatSessionController, ChatViewState
from matrixx_platform import (
    PLATFORM_NAME,
    create_chat_controller,
    create_practice_controller,
    load_product_spec,
)

load_dotenv(Path(__file__).parent / ".env")

SERVICE_NAME = "Matrixx Chat Engine Service"
SERVICE_VERSION = "1.0.0"


# =============================================================================
# Configuration
# =============================================================================

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class RuntimeConfig:
    """Runtime config for the local chat service."""

    chat_host: str
    chat_port: int
    log_level: str
    product_spec_path: str | None


def load_runtime_config() -> RuntimeConfig:
    """Load runtime config from environment with strict validation."""
    chat_host = (os.environ.get("CHAT_HOST", "127.0.0.1") or "").strip()
    if not chat_host:
        raise RuntimeError("CHAT_HOST resolved to empty value.")

    chat_port_raw = (os.environ.get("CHAT_PORT", "8787") or "").strip()
    if not chat_port_raw:
        raise RuntimeError("CHAT_PORT resolved to empty value.")

    try:
        chat_port = int(chat_port_raw)
    except ValueError as exc:
        raise RuntimeError(f"CHAT_PORT must be an integer. Got: {chat_port_raw}") from exc

    if chat_port < 1 or chat_port > 65535:
        raise RuntimeError(f"CHAT_PORT must be in range 1-65535. Got: {chat_port}.")

    log_level = (os.environ.get("LOG_LEVEL", "INFO") or "").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise RuntimeError(
            f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}. Got: {log_level or '<empty>'}."
        )

    product_spec_path = (os.environ.get("PRODUCT_SPEC_PATH") or "").strip() or None

    return RuntimeConfig(
        chat_host=chat_host,
        chat_port=chat_port,
        log_level=log_level,
        product_spec_path=product_spec_path,
    )


RUNTIME_CONFIG = load_runtime_config()

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=getattr(logging, RUNTIME_CONFIG.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PRODUCT_SPEC, PRODUCT_SPEC_PATH = load_product_spec(RUNTIME_CONFIG.product_spec_path)

# CORS configuration - modify for production
CORS_ORIGINS: list[str] = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
]


# =============================================================================
# Request Models
# =============================================================================


class DragAction(str, Enum):
    """Drag interaction reported by the renderer."""

    ENTER = "enter"
    LEAVE = "leave"


class ToolSelectRequest(BaseModel):
    tool_id: str = Field(..., min_length=1, description="Tool id, e.g. resume")


class ChatSelectRequest(BaseModel):
    chat_id: str = Field(..., min_length=1, description="History item id")


class TextRequest(BaseModel):
    text: str = Field(default="", description="Draft text")


class SendRequest(BaseModel):
    """Send request. Omitted text sends the current input draft."""

    text: str | None = Field(default=None, description="Message text")


class FilesRequest(BaseModel):
    files: list[CandidateFile] = Field(default_factory=list)


class DragRequest(BaseModel):
    action: DragAction


class NavigateRequest(BaseModel):
    target: str = Field(..., min_length=1, description="Route to navigate to")


class QuestionSelectRequest(BaseModel):
    index: int = Field(..., description="0-based question index")


# =============================================================================
# Response Models
# =============================================================================


class BaseResponse(BaseModel):
    """Base response model with common fields."""

    ok: bool = Field(..., description="Whether the operation took effect")
    message: str | None = Field(default=None, description="Optional status message")


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    error: str = Field(..., description="Error description")
    error_code: str | None = Field(default=None, description="Machine-readable error code")


class ChatResponse(BaseResponse):
    state: ChatViewState


class StagedFilesResponse(ChatResponse):
    accepted: list[Attachment] = Field(default_factory=list)


class DragResponse(ChatResponse):
    prevent_default: bool = True


class NavigationResponse(BaseResponse):
    target: str


class PracticeResponse(BaseResponse):
    state: PracticeViewState


class SubmitResponse(PracticeResponse):
    outcome: SubmitOutcome


class ToolInfo(BaseModel):
    tool_id: str
    label: str
    placeholder_text: str
    accepted_file_types: list[str]
    file_upload_enabled: bool
    has_welcome_message: bool
    in_sidebar: bool


class ToolsResponse(BaseModel):
    tools: list[ToolInfo]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
    product_id: str
    subscribers: int
    chat_timers_pending: bool
    practice_timers_pending: bool


class ProductSpecResponse(BaseModel):
    platform: str
    product_id: str
    display_name: str
    spec_path: str
    default_tool: str
    reply_delay_ms: int
    max_file_size_bytes: int
    practice_title: str
    question_count: int
    history: list[dict[str, Any]]


# =============================================================================
# Application State
# =============================================================================


class AppState(TypedDict):
    """Type-safe application state managed by lifespan."""

    scheduler: LoopScheduler
    publisher: ViewEventPublisher
    chat: ChatSessionController
    practice: PracticeSessionController


# =============================================================================
# Custom Exceptions
# =============================================================================


class ChatServiceError(Exception):
    """Base exception for chat service errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class UnknownToolError(ChatServiceError):
    """Raised when a request names a tool that is not registered."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="UNKNOWN_TOOL",
        )


class UnknownChatError(ChatServiceError):
    """Raised when a history item id does not exist."""

    def __init__(self, chat_id: str) -> None:
        super().__init__(
            message=f"Unknown chat id '{chat_id}'.",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="UNKNOWN_CHAT",
        )


class UnknownAttachmentError(ChatServiceError):
    """Raised when removing an attachment that is not pending."""

    def __init__(self, attachment_id: str) -> None:
        super().__init__(
            message=f"No pending attachment with id '{attachment_id}'.",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="UNKNOWN_ATTACHMENT",
        )


# =============================================================================
# Dependencies
# =============================================================================


def get_app_state(request: Request) -> AppState:
    """
    Dependency to retrieve application state from request.

    Raises:
        RuntimeError: If state is not properly initialized.
    """
    state = getattr(request, "state", None)
    if state is None:
        raise RuntimeError("Application state not initialized")
    return AppState(
        scheduler=state.scheduler,
        publisher=state.publisher,
        chat=state.chat,
        practice=state.practice,
    )


# Type alias for dependency injection
AppStateDep = Annotated[AppState, Depends(get_app_state)]


# =============================================================================
# Exception Handlers
# =============================================================================


async def chat_service_error_handler(request: Request, exc: ChatServiceError) -> JSONResponse:
    """Render ChatServiceError as an ErrorResponse."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            ok=False,
            error=exc.message,
            error_code=exc.error_code,
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            ok=False,
            error="Internal server error",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


# =============================================================================
# FastAPI App Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
    """
    Create the shared scheduler, publisher and controllers on the serving loop.

    On shutdown both controllers are closed so no timer outlives the app.
    """
    logger.info("Starting %s", SERVICE_NAME)
    logger.info(
        "Runtime: platform=%s product=%s host=%s port=%d",
        PLATFORM_NAME,
        PRODUCT_SPEC.product_id,
        RUNTIME_CONFIG.chat_host,
        RUNTIME_CONFIG.chat_port,
    )
    logger.info("Product spec path: %s", PRODUCT_SPEC_PATH)

    scheduler = LoopScheduler(asyncio.get_running_loop())
    publisher = ViewEventPublisher()
    chat = create_chat_controller(PRODUCT_SPEC, scheduler, publisher)
    practice = create_practice_controller(PRODUCT_SPEC, scheduler, publisher)

    yield {
        "scheduler": scheduler,
        "publisher": publisher,
        "chat": chat,
        "practice": practice,
    }

    logger.info("Shutting down...")
    chat.close()
    practice.close()


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title=f"{SERVICE_NAME} ({PRODUCT_SPEC.product_id})",
    version=SERVICE_VERSION,
    description="Local host for the Matrixx chat and interview-practice engine",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)

app.add_exception_handler(ChatServiceError, chat_service_error_handler)
app.add_exception_handler(Exception, generic_exception_handler)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Service Endpoints
# =============================================================================


@app.get("/health", response_model=HealthResponse)
async def health(state: AppStateDep) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        timestamp=_utc_now(),
        product_id=PRODUCT_SPEC.product_id,
        subscribers=state["publisher"].subscriber_count,
        chat_timers_pending=state["chat"].has_pending_timers,
        practice_timers_pending=state["practice"].has_pending_timers,
    )


@app.get("/product/spec", response_model=ProductSpecResponse)
async def get_product_spec() -> ProductSpecResponse:
    """Return active product spec summary for client contract discovery."""
    return ProductSpecResponse(
        platform=PLATFORM_NAME,
        product_id=PRODUCT_SPEC.product_id,
        display_name=PRODUCT_SPEC.display_name,
        spec_path=str(PRODUCT_SPEC_PATH),
        default_tool=PRODUCT_SPEC.chat.default_tool,
        reply_delay_ms=PRODUCT_SPEC.chat.reply_delay_ms,
        max_file_size_bytes=PRODUCT_SPEC.chat.max_file_size_bytes,
        practice_title=PRODUCT_SPEC.practice.title,
        question_count=len(PRODUCT_SPEC.practice.questions),
        history=[
            {"id": item.id, "title": item.title, "tool": item.tool}
            for item in PRODUCT_SPEC.history
        ],
    )


@app.get("/tools", response_model=ToolsResponse)
async def list_tools() -> ToolsResponse:
    tools = []
    for tool_id in available_tools():
        plugin = load_tool(tool_id)
        tools.append(
            ToolInfo(
                tool_id=plugin.tool_id,
                label=plugin.ui.label,
                placeholder_text=plugin.placeholder_text,
                accepted_file_types=sorted(plugin.accepted_file_types),
                file_upload_enabled=plugin.file_upload_enabled,
                has_welcome_message=bool(plugin.welcome_message),
                in_sidebar=plugin.tool_id in SIDEBAR_TOOLS,
            )
        )
    return ToolsResponse(tools=tools)


@app.get("/events")
async def stream_events(
    request: Request,
    state: AppStateDep,
    limit: Optional[int] = None,
    replay: bool = True,
) -> StreamingResponse:
    """
    Server-sent event stream of view events.

    Args:
        limit: Close the stream after this many events.
        replay: Start with the publisher's retained history.
    """
    publisher = state["publisher"]
    queue = publisher.subscribe(replay=replay)

    async def event_source() -> AsyncIterator[str]:
        sent = 0
        try:
            while limit is None or sent < limit:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                yield f"event: {event.event_type.value}\ndata: {event.to_json()}\n\n"
                sent += 1
        finally:
            publisher.unsubscribe(queue)

    return StreamingResponse(event_source(), media_type="text/event-stream")


# =============================================================================
# Chat Endpoints
# =============================================================================


def _chat_response(chat: ChatSessionController, ok: bool = True, message: str | None = None) -> ChatResponse:
    return ChatResponse(ok=ok, message=message, state=chat.snapshot())


@app.get("/chat/state", response_model=ChatViewState)
async def get_chat_state(state: AppStateDep) -> ChatViewState:
    return state["chat"].snapshot()


@app.post("/chat/tool", response_model=ChatResponse)
async def select_tool(request: ToolSelectRequest, state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    try:
        chat.on_select_tool(request.tool_id)
    except ValueError as exc:
        raise UnknownToolError(str(exc)) from exc
    return _chat_response(chat)


@app.post("/chat/new", response_model=ChatResponse)
async def new_chat(state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    chat.new_chat()
    return _chat_response(chat)


@app.post("/chat/select", response_model=ChatResponse)
async def select_chat(request: ChatSelectRequest, state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    if not chat.on_select_chat(request.chat_id):
        raise UnknownChatError(request.chat_id)
    return _chat_response(chat)


@app.post("/chat/input", response_model=ChatResponse)
async def set_input(request: TextRequest, state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    chat.set_input(request.text)
    return _chat_response(chat)


@app.post("/chat/send", response_model=ChatResponse)
async def send_message(request: SendRequest, state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    sent = chat.on_send_message(request.text)
    if sent is None:
        return _chat_response(chat, ok=False, message="Nothing to send")
    return _chat_response(chat, message=f"Sent {sent.id}")


@app.post("/chat/files", response_model=StagedFilesResponse)
async def upload_files(request: FilesRequest, state: AppStateDep) -> StagedFilesResponse:
    chat = state["chat"]
    accepted = chat.on_file_upload(request.files)
    return StagedFilesResponse(
        ok=True,
        message=f"Accepted {len(accepted)} of {len(request.files)} files",
        state=chat.snapshot(),
        accepted=accepted,
    )


@app.post("/chat/drag", response_model=DragResponse)
async def drag(request: DragRequest, state: AppStateDep) -> DragResponse:
    chat = state["chat"]
    if request.action == DragAction.ENTER:
        prevent_default = chat.drag_enter()
    else:
        prevent_default = chat.drag_leave()
    return DragResponse(ok=True, state=chat.snapshot(), prevent_default=prevent_default)


@app.post("/chat/drop", response_model=StagedFilesResponse)
async def drop_files(request: FilesRequest, state: AppStateDep) -> StagedFilesResponse:
    chat = state["chat"]
    accepted = chat.drop(request.files)
    return StagedFilesResponse(
        ok=True,
        message=f"Accepted {len(accepted)} of {len(request.files)} files",
        state=chat.snapshot(),
        accepted=accepted,
    )


@app.delete("/chat/attachments/{attachment_id}", response_model=ChatResponse)
async def remove_attachment(attachment_id: str, state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    if not chat.remove_attachment(attachment_id):
        raise UnknownAttachmentError(attachment_id)
    return _chat_response(chat)


@app.post("/chat/sidebar/toggle", response_model=ChatResponse)
async def toggle_sidebar(state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    chat.toggle_sidebar()
    return _chat_response(chat)


@app.post("/chat/profile-menu/toggle", response_model=ChatResponse)
async def toggle_profile_menu(state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    chat.toggle_profile_menu()
    return _chat_response(chat)


@app.post("/chat/reset", response_model=ChatResponse)
async def reset_chat(state: AppStateDep) -> ChatResponse:
    chat = state["chat"]
    chat.reset()
    return _chat_response(chat)


@app.post("/navigate", response_model=NavigationResponse)
async def navigate(request: NavigateRequest, state: AppStateDep) -> NavigationResponse:
    state["practice"].suspend()
    target = state["chat"].on_navigate(request.target)
    return NavigationResponse(ok=True, target=target)


# =============================================================================
# Practice Endpoints
# =============================================================================


def _practice_response(
    practice: PracticeSessionController, ok: bool = True, message: str | None = None
) -> PracticeResponse:
    return PracticeResponse(ok=ok, message=message, state=practice.snapshot())


@app.get("/practice/state", response_model=PracticeViewState)
async def get_practice_state(state: AppStateDep) -> PracticeViewState:
    return state["practice"].snapshot()


@app.post("/practice/start", response_model=PracticeResponse)
async def start_practice(state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    started = practice.start() is not None
    return _practice_response(practice, ok=started)


@app.post("/practice/question", response_model=PracticeResponse)
async def select_question(request: QuestionSelectRequest, state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    moved = practice.select_question(request.index)
    return _practice_response(
        practice,
        ok=moved,
        message=None if moved else f"Question index {request.index} is not available",
    )


@app.post("/practice/next", response_model=PracticeResponse)
async def next_question(state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    return _practice_response(practice, ok=practice.next_question())


@app.post("/practice/previous", response_model=PracticeResponse)
async def previous_question(state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    return _practice_response(practice, ok=practice.previous_question())


@app.post("/practice/answer", response_model=PracticeResponse)
async def set_answer(request: TextRequest, state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    practice.set_answer(request.text)
    return _practice_response(practice)


@app.post("/practice/submit", response_model=SubmitResponse)
async def submit_answer(state: AppStateDep) -> SubmitResponse:
    practice = state["practice"]
    outcome = practice.submit_answer()
    return SubmitResponse(
        ok=outcome != SubmitOutcome.REJECTED,
        outcome=outcome,
        state=practice.snapshot(),
    )


@app.post("/practice/end", response_model=NavigationResponse)
async def end_interview(state: AppStateDep) -> NavigationResponse:
    target = state["practice"].end_interview()
    return NavigationResponse(ok=True, target=target)


@app.post("/practice/voice/toggle", response_model=PracticeResponse)
async def toggle_voice_mode(state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    practice.toggle_voice_mode()
    return _practice_response(practice)


@app.post("/practice/recording/toggle", response_model=PracticeResponse)
async def toggle_recording(state: AppStateDep) -> PracticeResponse:
    practice = state["practice"]
    practice.toggle_recording()
    return _practice_response(practice)


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    logger.info("=" * 60)
    logger.info(SERVICE_NAME)
    logger.info("=" * 60)
    logger.info(
        "Binding to: http://%s:%d",
        RUNTIME_CONFIG.chat_host,
        RUNTIME_CONFIG.chat_port,
    )
    logger.info(
        "Platform: %s, Product: %s (%s)",
        PLATFORM_NAME,
        PRODUCT_SPEC.product_id,
        PRODUCT_SPEC.display_name,
    )
    logger.info("Product spec path: %s", PRODUCT_SPEC_PATH)
    logger.info("=" * 60)

    uvicorn.run(
        app,
        host=RUNTIME_CONFIG.chat_host,
        port=RUNTIME_CONFIG.chat_port,
        log_level=RUNTIME_CONFIG.log_level.lower(),
    )
