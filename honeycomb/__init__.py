"""Honeycomb: consistent JSON envelopes and structured errors for FastAPI APIs."""

from honeycomb.config import HoneycombSettings, get_settings
from honeycomb.exceptions import (
    ApiException,
    AuthenticationError,
    FailedRule,
    ModelNotFoundError,
    ResponseException,
    ValidationException,
    abort_api,
)
from honeycomb.feedback import Feedback, FeedbackType
from honeycomb.handler import ApiExceptionHandler, register_exception_handlers
from honeycomb.logging_config import configure_logging
from honeycomb.middleware import RequestIdFilter, RequestIdMiddleware
from honeycomb.pagination import PageRequest, QuerySource, page_request
from honeycomb.response import RESERVED_NAMES, ApiResponse, api_error, api_response
from honeycomb.wrapper import ApiExceptionWrapper, ExceptionWrapper, get_exception_wrapper

__all__ = [
    "RESERVED_NAMES",
    "ApiException",
    "ApiExceptionHandler",
    "ApiExceptionWrapper",
    "ApiResponse",
    "AuthenticationError",
    "ExceptionWrapper",
    "FailedRule",
    "Feedback",
    "FeedbackType",
    "HoneycombSettings",
    "ModelNotFoundError",
    "PageRequest",
    "QuerySource",
    "RequestIdFilter",
    "RequestIdMiddleware",
    "ResponseException",
    "ValidationException",
    "abort_api",
    "api_error",
    "api_response",
    "configure_logging",
    "get_exception_wrapper",
    "get_settings",
    "page_request",
    "register_exception_handlers",
]
