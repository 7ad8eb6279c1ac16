"""
Assistant tool plugin contracts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from assistant_tools.shared_content import MOCK_REPLY_TEMPLATE


DOCUMENT_FILE_TYPES: frozenset[str] = frozenset({".pdf", ".docx", ".txt"})
MEDIA_FILE_TYPES: frozenset[str] = frozenset({".pdf", ".jpg", ".png", ".gif"})


@dataclass(frozen=True)
class ToolUiConfig:
    """Chat-surface settings a tool contributes."""

    label: str
    placeholder_text: str
    accepted_file_types: frozenset[str] = MEDIA_FILE_TYPES
    file_upload_enabled: bool = False
    welcome_message: str | None = None


class ToolPlugin(Protocol):
    """Runtime contract for an assistant tool."""

    tool_id: str
    display_name: str
    ui: ToolUiConfig

    @property
    def placeholder_text(self) -> str:
        ...

    @property
    def accepted_file_types(self) -> frozenset[str]:
        ...

    @property
    def file_upload_enabled(self) -> bool:
        ...

    @property
    def welcome_message(self) -> str | None:
        ...

    def mock_reply(self, user_text: str) -> str:
        ...


class BaseToolPlugin:
    """Default behavior shared by all tools."""

    tool_id = "general"
    display_name = "General"
    ui = ToolUiConfig(
        label="General",
        placeholder_text="Ask me anything about your career...",
    )

    @property
    def placeholder_text(self) -> str:
        return self.ui.placeholder_text

    @property
    def accepted_file_types(self) -> frozenset[str]:
        return self.ui.accepted_file_types

    @property
    def file_upload_enabled(self) -> bool:
        return self.ui.file_upload_enabled

    @property
    def welcome_message(self) -> str | None:
        return self.ui.welcome_message

    def mock_reply(self, user_text: str) -> str:
        """Canned reply standing in for a real assistant backend."""
        return MOCK_REPLY_TEMPLATE.format(tool=self.tool_id)
