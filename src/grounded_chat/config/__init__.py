"""Configuration package for Grounded Chat.

Re-exports the settings accessor so that callers can write::

    from grounded_chat.config import get_settings
"""

from __future__ import annotations

from grounded_chat.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
