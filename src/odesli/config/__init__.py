"""Configuration module for odesli."""

from .settings import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    FetchOptions,
    OdesliSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_API_VERSION",
    "DEFAULT_BASE_URL",
    "FetchOptions",
    "OdesliSettings",
    "get_settings",
]
