"""
Assistant tool plugin entrypoints.
"""

from assistant_tools.base import BaseToolPlugin, ToolPlugin, ToolUiConfig
from assistant_tools.registry import SIDEBAR_TOOLS, available_tools, load_tool

__all__ = [
    "BaseToolPlugin",
    "SIDEBAR_TOOLS",
    "ToolPlugin",
    "ToolUiConfig",
    "available_tools",
    "load_tool",
]
