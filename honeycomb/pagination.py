"""Pagination inputs: lazy list sources and page/per_page query parsing.

Route code resolves ``page``/``per_page`` from the request with the
``page_request`` dependency and hands them to ``ApiResponse.success``
explicitly; the response never reads the request itself.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from fastapi import Request
from pydantic import BaseModel

from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.helpers import camel_case


@runtime_checkable
class QuerySource(Protocol):
    """A lazily evaluated list, e.g. a database query.

    Paginated responses call ``fetch`` so only the requested page is loaded.
    """

    def count(self) -> int: ...

    def fetch(self, offset: int, limit: int) -> Iterable[Any]: ...

    def all(self) -> Iterable[Any]: ...


class PageRequest(BaseModel):
    """Raw pagination arguments taken from the query string."""

    page: int | None = None
    per_page: int | None = None


def query_param_name(field: str, settings: HoneycombSettings | None = None) -> str:
    """Expected query parameter name for *field* (``per_page`` or ``perPage``)."""
    settings = settings or get_settings()
    return camel_case(field) if settings.camel_case else field


def _to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        # unparsable values are rejected later as out of range
        return 0


def parse_page_request(
    query_params: Mapping[str, str], settings: HoneycombSettings | None = None
) -> PageRequest:
    """Read ``page``/``per_page`` from *query_params* honouring ``camel_case``."""
    return PageRequest(
        page=_to_int(query_params.get(query_param_name("page", settings))),
        per_page=_to_int(query_params.get(query_param_name("per_page", settings))),
    )


def page_request(request: Request) -> PageRequest:
    """FastAPI dependency: ``params: PageRequest = Depends(page_request)``."""
    return parse_page_request(request.query_params)
