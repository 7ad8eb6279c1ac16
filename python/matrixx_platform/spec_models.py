"""Product spec models for the Matrixx chat product."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from career_chat.models import Granularity, Role
from career_chat.reveal import RevealTiming


class RevealSpec(BaseModel):
    """Typing-animation timings, in milliseconds."""

    granularity: Granularity = Granularity.WORD
    character_interval_ms: int = Field(default=30, gt=0)
    word_interval_ms: int = Field(default=50, gt=0)
    initial_delay_ms: int = Field(default=150, ge=0)

    model_config = {"extra": "forbid"}

    def to_timing(self) -> RevealTiming:
        return RevealTiming(
            character_interval=self.character_interval_ms / 1000,
            word_interval=self.word_interval_ms / 1000,
            initial_delay=self.initial_delay_ms / 1000,
        )


class ChatSpec(BaseModel):
    """Chat surface defaults."""

    default_tool: str = Field(default="general", min_length=1)
    reply_delay_ms: int = Field(default=1000, ge=0)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    reveal: RevealSpec = Field(default_factory=RevealSpec)

    model_config = {"extra": "forbid"}


class QuestionSpec(BaseModel):
    """One practice question."""

    id: int = Field(..., ge=1)
    text: str = Field(..., min_length=1)
    time_limit_seconds: int = Field(default=120, ge=0)

    model_config = {"extra": "forbid"}


class PracticeSpec(BaseModel):
    """Timed practice interview configuration."""

    title: str = Field(..., min_length=1)
    home_target: str = Field(default="/", min_length=1)
    low_time_threshold_seconds: int = Field(default=30, ge=0)
    reveal: RevealSpec = Field(
        default_factory=lambda: RevealSpec(
            granularity=Granularity.CHARACTER,
            character_interval_ms=50,
            initial_delay_ms=300,
        )
    )
    questions: tuple[QuestionSpec, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "PracticeSpec":
        ids = [question.id for question in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("practice.questions must have unique ids")
        return self

    model_config = {"extra": "forbid"}


class HistoryItemSpec(BaseModel):
    """Mock sidebar history entry."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    tool: str = Field(..., min_length=1)
    age_minutes: int = Field(..., ge=0)

    model_config = {"extra": "forbid"}


class TranscriptEntrySpec(BaseModel):
    """One message of the mock transcript shown for any history item."""

    role: Role
    content: str = Field(..., min_length=1)
    age_minutes: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class ProductSpec(BaseModel):
    """Canonical product configuration for one chat deployment."""

    product_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    chat: ChatSpec = Field(default_factory=ChatSpec)
    practice: PracticeSpec
    history: tuple[HistoryItemSpec, ...] = Field(default_factory=tuple)
    mock_transcript: tuple[TranscriptEntrySpec, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def validate_history_ids(self) -> "ProductSpec":
        ids = [item.id for item in self.history]
        if len(ids) != len(set(ids)):
            raise ValueError("history must have unique ids")
        return self

    model_config = {"extra": "forbid"}
