"""Key-casing and collection helpers shared by the response builders."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic.alias_generators import to_camel


_WORD_SEPARATORS = re.compile(r"[-\s]+")


def camel_case(text: str) -> str:
    """``page_count``, ``page-count`` or ``page count`` -> ``pageCount``.

    Already camelCased text is kept.
    """
    return to_camel(_WORD_SEPARATORS.sub("_", text))


def transform_keys(value: Any, transform: Callable[[str], str]) -> Any:
    """Recursively rewrite every string key of nested mappings.

    Lists and tuples are traversed; scalar values are returned untouched.
    """
    if isinstance(value, Mapping):
        return {
            (transform(key) if isinstance(key, str) else key): transform_keys(item, transform)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [transform_keys(item, transform) for item in value]
    return value


def is_sequential(value: Any) -> bool:
    """True for list-like sequences (``list``, ``tuple``, ...), not strings."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
