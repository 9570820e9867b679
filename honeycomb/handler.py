"""FastAPI exception handler integration.

Every exception reaching the application's global handlers is checked
against the host's ``is_api`` predicate. API requests get the Honeycomb
failure envelope (exception → ApiExceptionWrapper → ApiResponse.failure);
other requests keep FastAPI's default behaviour.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse, Response

from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.exceptions import ApiException
from honeycomb.response import ApiResponse
from honeycomb.wrapper import ApiExceptionWrapper, ExceptionWrapper, get_exception_wrapper

logger = logging.getLogger(__name__)

ApiPredicate = Callable[[Request], bool]


def default_is_api(request: Request) -> bool:
    """Treat every path under ``/api`` as an API request."""
    path = request.url.path
    return path == "/api" or path.startswith("/api/")


class ApiExceptionHandler:
    """Renders uncaught exceptions of API requests as failure envelopes."""

    def __init__(
        self,
        is_api: ApiPredicate | None = None,
        wrapper: ApiExceptionWrapper | None = None,
        settings: HoneycombSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.is_api = is_api or default_is_api
        self.wrapper = wrapper or get_exception_wrapper(self.settings)

    def render_api_error(self, request: Request, exc: BaseException) -> ApiResponse:
        """Wrap *exc* and build the failure response for it."""
        api_exception = self.wrapper.wrap(exc)
        self._log(request, exc, api_exception)
        return ApiResponse.failure(api_exception, settings=self.settings)

    async def handle(self, request: Request, exc: Exception) -> Response:
        """Starlette exception handler entry point."""
        if self.is_api(request):
            return self.render_api_error(request, exc)

        return await self.render_exception(request, exc)

    async def render_exception(self, request: Request, exc: Exception) -> Response:
        """Response for non-API requests; FastAPI's defaults unless overridden."""
        if isinstance(exc, RequestValidationError):
            return await request_validation_exception_handler(request, exc)
        if isinstance(exc, HTTPException):
            return await http_exception_handler(request, exc)
        if isinstance(exc, ApiException):
            # raised outside the API, keep the status but not the envelope
            return PlainTextResponse(exc.message, status_code=exc.status)

        logger.error("Unhandled exception: %s", exc, exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    def _log(self, request: Request, exc: BaseException, api_exception: ApiException) -> None:
        extra = {
            "request_id": getattr(request.state, "request_id", None),
            "status": api_exception.status,
            "exception_type": type(exc).__name__,
            "path": request.url.path,
        }
        if api_exception.status >= 500:
            logger.error(
                "Unhandled exception: %s", exc, exc_info=(type(exc), exc, exc.__traceback__), extra=extra
            )
        else:
            logger.warning("API error %d: %s", api_exception.status, api_exception.message, extra=extra)


def register_exception_handlers(
    app: FastAPI,
    is_api: ApiPredicate | None = None,
    wrapper: ApiExceptionWrapper | None = None,
    settings: HoneycombSettings | None = None,
) -> ApiExceptionHandler:
    """Wire the Honeycomb handler into *app* and return it.

    Known exception types, including every type registered on an
    ExceptionWrapper before this call, are handled inside the middleware
    stack. Anything else reaches Starlette's server error middleware through
    ``Exception``. That middleware re-raises after the response is sent, so
    the server logs such errors a second time and response headers set by
    user middleware (X-Request-ID) are missing. Register host exception types
    on the wrapper first to keep them inside the stack.
    """
    handler = ApiExceptionHandler(is_api=is_api, wrapper=wrapper, settings=settings)

    handled: list[type[BaseException]] = [ApiException, HTTPException, RequestValidationError]
    if isinstance(handler.wrapper, ExceptionWrapper):
        handled.extend(handler.wrapper.registered_types())

    for exc_class in dict.fromkeys(handled):
        app.add_exception_handler(exc_class, handler.handle)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handler.handle)  # type: ignore[arg-type]

    return handler
