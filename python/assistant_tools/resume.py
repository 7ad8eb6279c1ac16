"""
Resume Enhancer tool plugin.
"""

from __future__ import annotations

from assistant_tools.base import DOCUMENT_FILE_TYPES, BaseToolPlugin, ToolUiConfig
from assistant_tools.shared_content import RESUME_WELCOME


class ResumeToolPlugin(BaseToolPlugin):
    """ATS-oriented resume review."""

    tool_id = "resume"
    display_name = "Resume Enhancer"
    ui = ToolUiConfig(
        label="Resume Enhancer",
        placeholder_text="Describe your target role or upload your resume...",
        accepted_file_types=DOCUMENT_FILE_TYPES,
        file_upload_enabled=True,
        welcome_message=RESUME_WELCOME,
    )
