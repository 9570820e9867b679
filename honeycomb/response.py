"""ApiResponse: the JSON envelope for every API response.

Success envelope::

    {"status": 200, "<name>": <data>, "feedback": {...} | null,
     "metadata": {"name": "<name>", "count"?, "page_count"?, "page"?, "per_page"?}}

Failure envelope (exactly the ApiException)::

    {"status": 4xx|5xx, "error": <Feedback | str>, "errors": {...} | null}

``ApiResponse`` is a Starlette ``JSONResponse`` and can be returned straight
from a route. Every mutator re-renders the body, so the object is always
ready to be sent.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.background import BackgroundTask
from starlette.responses import JSONResponse

from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.exceptions import ApiException, abort_api
from honeycomb.feedback import FeedbackItem, clean_feedback_map, dump_feedback_map
from honeycomb.helpers import camel_case, is_sequential, transform_keys
from honeycomb.pagination import QuerySource, query_param_name

# Envelope keys that cannot be used as the data name
RESERVED_NAMES = frozenset({"status", "feedback", "metadata", "error", "errors"})


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def _clean_name(name: str) -> str:
    if not name:
        raise ValueError("name cannot be empty")

    if name in RESERVED_NAMES:
        raise ValueError(f"{name} is a reserved name")

    return str(name)


def _clean_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    if metadata is not None and not isinstance(metadata, Mapping):
        raise ValueError("metadata must be a mapping")

    return dict(metadata or {})


class ApiResponse(JSONResponse):
    """Success or failure API envelope.

    Build it with ``ApiResponse.success(...)`` or ``ApiResponse.failure(...)``.
    A response is in failure mode exactly when it holds an ApiException, and
    its status code always matches the mode.
    """

    def __init__(
        self,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        background: BackgroundTask | None = None,
        *,
        settings: HoneycombSettings | None = None,
    ) -> None:
        if not is_success_status(status_code):
            raise ValueError(f"invalid status {status_code} for success response")

        self.settings = settings or get_settings()
        self._name = "data"
        self._data: Any = None
        self._feedback: dict[str, list[FeedbackItem]] | None = None
        self._metadata: dict[str, Any] = {}
        self._paginated = False
        self._page: int | None = None
        self._per_page: int | None = None
        self._api_exception: ApiException | None = None

        super().__init__(None, status_code=status_code, headers=headers, background=background)

    @classmethod
    def success(
        cls,
        status_code: int,
        name: str,
        data: Any,
        feedback: Mapping[str, Sequence[Any]] | None = None,
        metadata: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        paginated: bool = False,
        page: int | None = None,
        per_page: int | None = None,
        settings: HoneycombSettings | None = None,
    ) -> ApiResponse:
        """Create a success response.

        Raises
        ------
        ValueError
            On a reserved/empty name, malformed feedback or a non-success status.
        ApiException
            (416) When pagination is requested with an invalid page/per_page.
        """
        response = cls(status_code, headers, settings=settings)

        # validate everything first so a lazy source is rendered only once
        response._name = _clean_name(name)
        response._data = data
        response._feedback = clean_feedback_map(feedback, response.settings.use_feedback)
        response._metadata = _clean_metadata(metadata)
        response._page = page
        response._per_page = per_page
        response._paginated = bool(paginated) and response.is_list()

        return response._update()

    @classmethod
    def failure(
        cls,
        api_exception: ApiException,
        headers: Mapping[str, str] | None = None,
        *,
        settings: HoneycombSettings | None = None,
    ) -> ApiResponse:
        """Create a failure response carrying *api_exception*."""
        # built as 200, set_api_exception switches the status
        response = cls(200, headers, settings=settings)

        return response.set_api_exception(api_exception)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status_code(self, status_code: int) -> ApiResponse:
        status_code = int(status_code)

        if is_success_status(status_code) != self.is_success():
            raise ValueError(
                f"invalid status {status_code} for "
                f"{'success' if self.is_success() else 'failure'} response"
            )

        self.status_code = status_code
        return self._update()

    def is_success(self) -> bool:
        return self._api_exception is None

    # ------------------------------------------------------------------
    # Success
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> ApiResponse:
        self._name = _clean_name(name)
        return self._update()

    def get_data(self) -> Any:
        if self.is_list():
            return self.get_list()
        return self._data

    def get_list(self) -> list[Any] | Sequence[Any]:
        """The list data, limited to the current page when paginated."""
        if not self.is_list():
            raise ValueError("data must be a list")

        if self.is_paginated():
            per_page = self.get_per_page()
            offset = (self.get_page() - 1) * per_page

            if isinstance(self._data, QuerySource):
                return list(self._data.fetch(offset, per_page))
            return list(self._data[offset:offset + per_page])

        if isinstance(self._data, QuerySource):
            return list(self._data.all())
        return self._data

    def set_data(self, data: Any) -> ApiResponse:
        is_list = isinstance(data, QuerySource) or is_sequential(data)
        return self._assign(_data=data, _paginated=self._paginated and is_list)

    def get_feedback(self) -> dict[str, list[FeedbackItem]] | None:
        return self._feedback

    def set_feedback(self, feedback: Mapping[str, Sequence[Any]] | None) -> ApiResponse:
        self._feedback = clean_feedback_map(feedback, self.settings.use_feedback)

        return self._update()

    def get_metadata(self) -> dict[str, Any]:
        metadata = {**self._metadata, "name": self._name}

        if self.is_paginated():
            metadata.update(
                count=self.get_count(),
                page_count=self.get_page_count(),
                page=self.get_page(),
                per_page=self.get_per_page(),
            )

        return metadata

    def set_metadata(self, metadata: Mapping[str, Any] | None) -> ApiResponse:
        self._metadata = _clean_metadata(metadata)
        return self._update()

    # ------------------------------------------------------------------
    # Success - pagination
    # ------------------------------------------------------------------

    def is_list(self) -> bool:
        """Whether data is list-shaped: a sequence or a QuerySource."""
        return isinstance(self._data, QuerySource) or is_sequential(self._data)

    def is_paginated(self) -> bool:
        return self.is_list() and self._paginated

    def set_paginated(self, paginated: bool = True) -> ApiResponse:
        if paginated and not self.is_list():
            raise ValueError("pagination requires a list")

        return self._assign(_paginated=bool(paginated))

    def set_page(self, page: int | None) -> ApiResponse:
        return self._assign(_page=page)

    def set_per_page(self, per_page: int | None) -> ApiResponse:
        return self._assign(_per_page=per_page)

    def get_count(self) -> int | None:
        """Total number of items in the list."""
        if not self.is_paginated():
            return None

        if isinstance(self._data, QuerySource):
            return self._data.count()
        return len(self._data)

    def get_page_count(self) -> int | None:
        if not self.is_paginated():
            return None

        count = self.get_count()
        if count == 0:
            return 1

        return math.ceil(count / self.get_per_page())

    def get_page(self) -> int | None:
        """The requested page, 1 by default.

        Raises an ApiException (416) when outside ``1..page_count``.
        """
        if not self.is_paginated():
            return None

        page = 1 if self._page is None else int(self._page)
        page_count = self.get_page_count()

        if page <= 0 or page > page_count:
            abort_api(416, f"invalid page argument, min:1 max:{page_count}", settings=self.settings)

        return page

    def get_per_page(self) -> int | None:
        """Items per page, clamped into the configured bounds.

        Raises an ApiException (416) when not positive.
        """
        if not self.is_paginated():
            return None

        per_page_min = max(1, self.settings.per_page_min)
        per_page_max = max(1, self.settings.per_page_max)
        per_page_default = max(1, self.settings.per_page_default)

        per_page = per_page_default if self._per_page is None else int(self._per_page)

        if per_page <= 0:
            abort_api(
                416,
                f"invalid per_page argument, min:{per_page_min} max:{per_page_max}",
                settings=self.settings,
            )

        # min wins when the bounds are incompatible
        per_page = min(per_page, per_page_max)
        per_page = max(per_page, per_page_min)

        return per_page

    # ------------------------------------------------------------------
    # Failure
    # ------------------------------------------------------------------

    def get_api_exception(self) -> ApiException | None:
        return self._api_exception

    def set_api_exception(self, api_exception: ApiException | None) -> ApiResponse:
        if api_exception is None:
            status_code = self.status_code if is_success_status(self.status_code) else 200
            return self._assign(_api_exception=None, status_code=status_code)

        if not isinstance(api_exception, ApiException):
            raise ValueError("api_exception must be an instance of ApiException")

        self._api_exception = api_exception
        return self.set_status_code(api_exception.status)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def transform_field_name(self, field: str) -> str:
        return query_param_name(field, self.settings)

    def to_dict(self) -> dict[str, Any]:
        if self._api_exception is None:
            body = {
                "status": self.status_code,
                self._name: self.get_data(),
                "feedback": dump_feedback_map(self._feedback),
                "metadata": self.get_metadata(),
            }
        else:
            body = self._api_exception.to_dict()

        body = jsonable_encoder(body)
        if self.settings.camel_case:
            body = transform_keys(body, camel_case)
        return body

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def _assign(self, **fields: Any) -> ApiResponse:
        """Set *fields* and re-render, restoring them if the new state is rejected.

        A rejected pagination argument (416) leaves the response, body
        included, exactly as it was before the call.
        """
        previous = {name: getattr(self, name) for name in fields}
        for name, value in fields.items():
            setattr(self, name, value)

        try:
            return self._update()
        except ApiException:
            for name, value in previous.items():
                setattr(self, name, value)
            raise

    def _update(self) -> ApiResponse:
        self.body = self.render(self.to_dict())
        self.headers["content-length"] = str(len(self.body))
        return self


def api_response(
    status_code: int,
    name: str,
    data: Any = None,
    feedback: Mapping[str, Sequence[Any]] | None = None,
    metadata: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    **kwargs: Any,
) -> ApiResponse:
    """Shorthand for ``ApiResponse.success``."""
    return ApiResponse.success(status_code, name, data, feedback, metadata, headers, **kwargs)


def api_error(
    api_exception: ApiException, headers: Mapping[str, str] | None = None, **kwargs: Any
) -> ApiResponse:
    """Shorthand for ``ApiResponse.failure``."""
    return ApiResponse.failure(api_exception, headers, **kwargs)
