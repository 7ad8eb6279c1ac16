"""
Assistant tool plugin registry.
"""

from __future__ import annotations

from assistant_tools.base import ToolPlugin
from assistant_tools.cover_letter import CoverLetterToolPlugin
from assistant_tools.general import GeneralToolPlugin
from assistant_tools.interview import InterviewToolPlugin
from assistant_tools.portfolio import PortfolioToolPlugin
from assistant_tools.resume import ResumeToolPlugin


def _build_registry() -> dict[str, ToolPlugin]:
    plugins: tuple[ToolPlugin, ...] = (
        GeneralToolPlugin(),
        ResumeToolPlugin(),
        InterviewToolPlugin(),
        CoverLetterToolPlugin(),
        PortfolioToolPlugin(),
    )
    return {plugin.tool_id: plugin for plugin in plugins}


_REGISTRY = _build_registry()

# Sidebar order.
SIDEBAR_TOOLS: tuple[str, ...] = ("resume", "interview", "cover-letter", "portfolio")


def available_tools() -> tuple[str, ...]:
    """Return all supported tool IDs."""
    return tuple(sorted(_REGISTRY.keys()))


def load_tool(tool_id: str) -> ToolPlugin:
    """Load a tool plugin by ID."""
    normalized = (tool_id or "").strip().lower()
    if not normalized:
        raise ValueError("Tool id is empty.")

    plugin = _REGISTRY.get(normalized)
    if plugin is None:
        supported = ", ".join(available_tools())
        raise ValueError(f"Unknown tool '{tool_id}'. Supported tools: {supported}.")
    return plugin
