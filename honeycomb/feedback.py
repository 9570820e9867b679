"""Feedback value object.

A Feedback pairs an internal message (meant for logs and developers) with a
user-friendly description (ready to be shown to the end user), along with a
type: success, info, warning or error.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field


class FeedbackType(str, Enum):
    """Supported feedback types."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Feedback(BaseModel):
    """Immutable, typed, dual-audience message.

    Construction fails with a ``ValueError`` (pydantic ``ValidationError``)
    when ``type`` is unknown or when ``message``/``description`` is empty.
    """

    type: FeedbackType
    message: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    def __init__(self, type: FeedbackType | str, message: str, description: str) -> None:
        super().__init__(type=type, message=message, description=description)

    @classmethod
    def success(cls, message: str, description: str) -> Feedback:
        return cls(FeedbackType.SUCCESS, message, description)

    @classmethod
    def info(cls, message: str, description: str) -> Feedback:
        return cls(FeedbackType.INFO, message, description)

    @classmethod
    def warning(cls, message: str, description: str) -> Feedback:
        return cls(FeedbackType.WARNING, message, description)

    @classmethod
    def error(cls, message: str, description: str) -> Feedback:
        return cls(FeedbackType.ERROR, message, description)

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type.value,
            "message": self.message,
            "description": self.description,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __str__(self) -> str:
        return self.to_json()


# A feedback entry is a Feedback object, or its plain message when
# ``use_feedback`` is disabled.
FeedbackItem = Union[Feedback, str]


def clean_feedback_map(
    values: Mapping[str, Sequence[Any]] | None,
    use_feedback: bool,
    label: str = "feedback",
) -> dict[str, list[FeedbackItem]] | None:
    """Validate and normalize a ``key -> [Feedback | str, ...]`` mapping.

    Entries with an empty list are dropped. In feedback mode every element
    must be a Feedback; otherwise elements are reduced to plain strings
    (a Feedback contributes its ``message``).

    Returns ``None`` when nothing is left.

    Raises
    ------
    ValueError
        If *values* is not a mapping, an entry is not a list, or an element
        does not match the feedback mode.
    """
    if not values:
        return None

    if not isinstance(values, Mapping):
        raise ValueError(f"{label} must be a mapping")

    cleaned: dict[str, list[FeedbackItem]] = {}
    for key, items in values.items():
        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            raise ValueError(f"{label} values must be lists")

        if not items:
            continue

        if use_feedback:
            for item in items:
                if not isinstance(item, Feedback):
                    raise ValueError(f"{label} contents must be instances of Feedback")
            cleaned[key] = list(items)
        else:
            cleaned[key] = [
                item.message if isinstance(item, Feedback) else str(item) for item in items
            ]

    return cleaned or None


def dump_feedback_map(values: dict[str, list[FeedbackItem]] | None) -> dict[str, list[Any]] | None:
    """Serialize a cleaned feedback mapping, Feedback objects as dicts."""
    if values is None:
        return None
    return {
        key: [item.to_dict() if isinstance(item, Feedback) else item for item in items]
        for key, items in values.items()
    }
