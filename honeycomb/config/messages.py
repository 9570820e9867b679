"""Error message catalog model and YAML loader.

The catalog holds the user-facing descriptions attached to wrapped API
errors, one template per error class. The bundled English catalog lives in
``honeycomb/lang/en/errors.yaml``; a custom file can be supplied through
``HONEYCOMB_MESSAGES_PATH``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from honeycomb.config.settings import HoneycombSettings, get_settings

logger = logging.getLogger(__name__)

BUNDLED_MESSAGES_PATH = Path(__file__).resolve().parent.parent / "lang" / "en" / "errors.yaml"


class ErrorMessages(BaseModel):
    """User-facing error descriptions, keyed by error class."""

    generic: str = Field(default="An error occurred. Please try again.", min_length=1)
    not_found: str = Field(
        default="The page you are trying to access does not exist.", min_length=1
    )
    authentication: str = Field(
        default="An error occurred. Please make sure you are logged in and try again.",
        min_length=1,
    )
    validation: str = Field(
        default="An error occurred. Please check your data and try again.", min_length=1
    )

    model_config = {"frozen": True, "extra": "ignore"}


_DEFAULT_MESSAGES = ErrorMessages()


def load_error_messages(yaml_path: str | Path) -> ErrorMessages:
    """Parse an error message YAML file into an ErrorMessages catalog.

    Args:
        yaml_path: Path to the YAML catalog.

    Returns:
        The parsed catalog. Keys missing from the file keep their built-in
        defaults; an unreadable or malformed file yields the defaults.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Error messages file not found at %s, using built-in defaults", yaml_path)
        return _DEFAULT_MESSAGES

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Failed to read error messages file at %s: %s", yaml_path, exc)
        return _DEFAULT_MESSAGES
    except yaml.YAMLError as exc:
        logger.error("Failed to parse error messages YAML at %s: %s", yaml_path, exc)
        return _DEFAULT_MESSAGES

    if not isinstance(raw, dict):
        logger.warning("Error messages YAML at %s is not a mapping, using built-in defaults", yaml_path)
        return _DEFAULT_MESSAGES

    try:
        return ErrorMessages.model_validate(raw)
    except Exception as exc:
        logger.error("Invalid error messages at %s: %s, using built-in defaults", yaml_path, exc)
        return _DEFAULT_MESSAGES


@lru_cache(maxsize=8)
def _cached_messages(path: str) -> ErrorMessages:
    return load_error_messages(path)


def get_error_messages(settings: HoneycombSettings | None = None) -> ErrorMessages:
    """Return the catalog configured by *settings* (bundled one by default)."""
    settings = settings or get_settings()
    return _cached_messages(settings.messages_path or str(BUNDLED_MESSAGES_PATH))
