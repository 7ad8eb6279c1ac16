"""
Portfolio Builder tool plugin.
"""

from __future__ import annotations

from assistant_tools.base import MEDIA_FILE_TYPES, BaseToolPlugin, ToolUiConfig
from assistant_tools.shared_content import PORTFOLIO_WELCOME


class PortfolioToolPlugin(BaseToolPlugin):
    """Project write-ups and screenshots for a mini portfolio site."""

    tool_id = "portfolio"
    display_name = "Portfolio Builder"
    ui = ToolUiConfig(
        label="Portfolio Builder",
        placeholder_text="Describe your project or what you want to showcase...",
        accepted_file_types=MEDIA_FILE_TYPES,
        file_upload_enabled=True,
        welcome_message=PORTFOLIO_WELCOME,
    )
