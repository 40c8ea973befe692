"""
Configuration package for the tour-guide booking service.

Environment settings live in :mod:`tourguide.config.settings`.
"""

from tourguide.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
