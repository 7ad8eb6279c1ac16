"""
Pydantic models for the Matrixx chat engine.

Defines messages, attachments and practice questions (the session's
authoritative records) plus the ephemeral timer states owned by the
reveal scheduler, countdown clock and attachment stager.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


USER_ROLE = "user"
SYSTEM_ROLE = "system"


class Role(str, Enum):
    """Author of a transcript message."""

    USER = USER_ROLE
    SYSTEM = SYSTEM_ROLE


class Granularity(str, Enum):
    """Unit a reveal advances by on each tick."""

    CHARACTER = "character"
    WORD = "word"


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CandidateFile(BaseModel):
    """
    A raw file offered to the attachment stager.

    Mirrors what a file picker or drop event hands over: only the
    descriptor, never the bytes.
    """

    name: str = Field(..., min_length=1, description="File name including extension")
    mime_type: str = Field(default="", description="Reported MIME type, may be empty")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")

    @property
    def extension(self) -> str:
        """Lower-cased extension with leading dot, or empty string."""
        _, dot, ext = self.name.rpartition(".")
        return f".{ext.lower()}" if dot else ""


class Attachment(BaseModel):
    """
    A file accepted by the stager.

    Pending attachments belong to the stager until a message is sent,
    at which point the whole set moves to that message.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Opaque attachment identifier")
    name: str = Field(..., description="File name")
    mime_type: str = Field(default="", description="MIME type")
    size_bytes: int = Field(..., ge=0, description="Size in bytes")
    remote_url: Optional[str] = Field(
        default=None,
        description="Download URL once the file has been uploaded somewhere",
    )


class Message(BaseModel):
    """
    A single transcript message.

    Everything except ``revealing`` is fixed at creation. ``revealing``
    starts True for system messages that should type out and flips to
    False exactly once, through ``mark_revealed``.

    Example:
        >>> msg = Message(content="Welcome!", role=Role.SYSTEM, revealing=True)
        >>> msg.mark_revealed()
        True
        >>> msg.mark_revealed()
        False
    """

    id: str = Field(default_factory=_new_id, description="Opaque message identifier")
    content: str = Field(..., description="Full message text")
    role: Role = Field(..., description="user or system")
    created_at: datetime = Field(default_factory=_utc_now, description="UTC creation time")
    revealing: bool = Field(
        default=False,
        description="Whether the message is still being typed out",
    )
    attachments: tuple[Attachment, ...] = Field(
        default_factory=tuple,
        description="Files sent with the message",
    )

    def __setattr__(self, name: str, value: object) -> None:
        if name == "revealing":
            if value is not False or not self.revealing:
                raise AttributeError("Message.revealing can only change from True to False")
        elif name in type(self).model_fields:
            raise AttributeError(f"Message.{name} is immutable")
        super().__setattr__(name, value)

    def mark_revealed(self) -> bool:
        """Flip ``revealing`` to False. Returns False if it already was."""
        if not self.revealing:
            return False
        self.revealing = False
        return True


class Question(BaseModel):
    """A practice-interview question with its own time limit."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="1-based ordinal shown as Q<id>")
    text: str = Field(..., min_length=1, description="Question text")
    time_limit_seconds: int = Field(default=120, ge=0, description="Answer time limit")


@dataclass
class RevealState:
    """
    Progress of one reveal.

    ``revealed_prefix`` is always ``source_text[:n]`` for a boundary ``n``
    of the chosen granularity.
    """

    source_text: str
    revealed_prefix: str
    granularity: Granularity
    active: bool
    message_id: str | None = None
    generation: int = 0

    @property
    def is_complete(self) -> bool:
        return self.revealed_prefix == self.source_text and not self.active

    @property
    def progress(self) -> float:
        if not self.source_text:
            return 1.0
        return len(self.revealed_prefix) / len(self.source_text)


@dataclass
class CountdownState:
    """Remaining time for the question that armed the clock."""

    remaining_seconds: int
    question_id: int
    time_limit_seconds: int
    generation: int = 0

    @property
    def expired(self) -> bool:
        return self.remaining_seconds == 0


@dataclass
class DragState:
    """Whether a drag is currently hovering over the transcript."""

    is_over: bool = False


class ChatHistoryItem(BaseModel):
    """A previous conversation listed in the sidebar."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    timestamp: datetime
    tool: str = Field(..., min_length=1, description="Tool the conversation used")
