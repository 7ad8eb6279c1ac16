"""Matrixx product-spec platform package."""

from matrixx_platform.factory import (
    build_chat_settings,
    build_history,
    build_questions,
    build_transcript_loader,
    create_chat_controller,
    create_practice_controller,
)
from matrixx_platform.spec_loader import (
    DEFAULT_SPEC_PATH,
    PLATFORM_NAME,
    load_product_spec,
)
from matrixx_platform.spec_models import (
    ChatSpec,
    HistoryItemSpec,
    PracticeSpec,
    ProductSpec,
    QuestionSpec,
    RevealSpec,
    TranscriptEntrySpec,
)

__all__ = [
    "load_product_spec",
    "DEFAULT_SPEC_PATH",
    "PLATFORM_NAME",
    "build_chat_settings",
    "build_history",
    "build_questions",
    "build_transcript_loader",
    "create_chat_controller",
    "create_practice_controller",
    "ChatSpec",
    "HistoryItemSpec",
    "PracticeSpec",
    "ProductSpec",
    "QuestionSpec",
    "RevealSpec",
    "TranscriptEntrySpec",
]
