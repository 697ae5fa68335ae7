"""Configuration helpers for the Audiobook Studio service."""

from .loader import StudioSettings, get_settings, load_settings

__all__ = [
    "StudioSettings",
    "get_settings",
    "load_settings",
]
