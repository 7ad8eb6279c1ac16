"""
Cover Letter Writer tool plugin.
"""

from __future__ import annotations

from assistant_tools.base import DOCUMENT_FILE_TYPES, BaseToolPlugin, ToolUiConfig
from assistant_tools.shared_content import COVER_LETTER_WELCOME


class CoverLetterToolPlugin(BaseToolPlugin):
    """Cover letters matched to a job description."""

    tool_id = "cover-letter"
    display_name = "Cover Letter Writer"
    ui = ToolUiConfig(
        label="Cover Letter Writer",
        placeholder_text="Paste the job description or describe the role...",
        accepted_file_types=DOCUMENT_FILE_TYPES,
        file_upload_enabled=True,
        welcome_message=COVER_LETTER_WELCOME,
    )
