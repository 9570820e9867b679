"""Configuration module: settings and error message catalog."""

from honeycomb.config.messages import ErrorMessages, get_error_messages, load_error_messages
from honeycomb.config.settings import HoneycombSettings, get_settings

__all__ = [
    "ErrorMessages",
    "HoneycombSettings",
    "get_error_messages",
    "get_settings",
    "load_error_messages",
]
