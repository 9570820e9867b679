"""Pydantic Settings for Honeycomb.

All environment variables use the HONEYCOMB_ prefix.
Example: HONEYCOMB_CAMEL_CASE=true, HONEYCOMB_PER_PAGE_MAX=50
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, ImportString
from pydantic_settings import BaseSettings, SettingsConfigDict


class HoneycombSettings(BaseSettings):
    """Process-wide response/error configuration validated from environment variables."""

    # Output
    camel_case: bool = False  # camelCase every response key and query param name
    use_feedback: bool = True  # plain strings instead of Feedback objects when False

    # Pagination
    per_page_min: int = Field(default=10, ge=1)
    per_page_max: int = Field(default=100, ge=1)
    per_page_default: int = Field(default=10, ge=1)

    # Dotted path to an ApiExceptionWrapper subclass, None for the built-in one
    exception_wrapper_class: ImportString[Any] | None = None

    # Error message catalog override (YAML), None for the bundled catalog
    messages_path: str | None = None

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="HONEYCOMB_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> HoneycombSettings:
    return HoneycombSettings()
