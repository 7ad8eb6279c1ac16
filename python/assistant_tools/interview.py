"""
Interview Coach tool plugin.
"""

from __future__ import annotations

from assistant_tools.base import BaseToolPlugin, ToolUiConfig
from assistant_tools.shared_content import INTERVIEW_WELCOME


class InterviewToolPlugin(BaseToolPlugin):
    """Conversational interview preparation. Uploads are not offered."""

    tool_id = "interview"
    display_name = "Interview Coach"
    ui = ToolUiConfig(
        label="Interview Coach",
        placeholder_text="Tell me about the role you're interviewing for...",
        file_upload_enabled=False,
        welcome_message=INTERVIEW_WELCOME,
    )
