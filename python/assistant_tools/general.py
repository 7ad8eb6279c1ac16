"""
General-purpose career chat.
"""

from __future__ import annotations

from assistant_tools.base import BaseToolPlugin


class GeneralToolPlugin(BaseToolPlugin):
    """Open-ended career questions. No welcome message, no uploads."""
