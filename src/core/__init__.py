"""
Core module for Sentinel Auth.

Exports the configuration entry points.
"""

from core.config import Settings, get_settings

__all__ = [
    # Config
    "Settings",
    "get_settings",
]
