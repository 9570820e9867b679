"""Shared test fixtures and hypothesis strategies for the Honeycomb test suite."""

from __future__ import annotations

import os

import pytest
from hypothesis import strategies as st

from honeycomb.config.messages import _cached_messages
from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.feedback import Feedback, FeedbackType


# ---------------------------------------------------------------------------
# Isolate tests from the process environment and cached settings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    """Drop HONEYCOMB_* env vars and reset cached settings around each test."""
    for key in list(os.environ):
        if key.startswith("HONEYCOMB_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    _cached_messages.cache_clear()
    yield
    get_settings.cache_clear()
    _cached_messages.cache_clear()


# ---------------------------------------------------------------------------
# Settings fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> HoneycombSettings:
    """Default settings."""
    return HoneycombSettings()


@pytest.fixture
def string_settings() -> HoneycombSettings:
    """Settings with Feedback objects disabled."""
    return HoneycombSettings(use_feedback=False)


@pytest.fixture
def camel_settings() -> HoneycombSettings:
    """Settings with camelCase output keys."""
    return HoneycombSettings(camel_case=True)


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

feedback_types = st.sampled_from(list(FeedbackType))
non_empty_text = st.text(min_size=1, max_size=50)

feedbacks = st.builds(
    Feedback,
    feedback_types,
    non_empty_text,
    non_empty_text,
)

error_statuses = st.integers(min_value=400, max_value=599)
non_error_statuses = st.one_of(
    st.integers(min_value=-1000, max_value=399),
    st.integers(min_value=600, max_value=10_000),
)

success_statuses = st.integers(min_value=200, max_value=399)

field_names = st.from_regex(r"[a-z]{1,8}(_[a-z]{1,8}){0,2}", fullmatch=True)

feedback_maps = st.dictionaries(
    keys=field_names,
    values=st.lists(feedbacks, min_size=0, max_size=4),
    max_size=5,
)
