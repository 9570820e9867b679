"""Exception wrapper: turns any caught exception into an ApiException.

``ExceptionWrapper`` keeps a registry mapping exception types to handlers.
A handler is either the name of a wrapper method or a callable taking the
exception. Resolution picks the most specific registered type:

1. an entry for the exception's exact type, otherwise
2. the registered ancestor with the smallest inheritance distance (number of
   ``__bases__`` hops); equidistant ancestors resolve to the one registered
   first, otherwise
3. the ``wrap_exception`` fallback (500).

Host applications add mappings by subclassing and extending ``exceptions``
(method names) or by calling ``register()`` on an instance, and select their
subclass through ``HONEYCOMB_EXCEPTION_WRAPPER_CLASS``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from http import HTTPStatus
from typing import Union

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake
from starlette.exceptions import HTTPException

from honeycomb.config.messages import ErrorMessages, get_error_messages
from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.exceptions import (
    ApiException,
    AuthenticationError,
    ModelNotFoundError,
    ResponseException,
    ValidationException,
)
from honeycomb.feedback import Feedback

logger = logging.getLogger(__name__)

Handler = Union[str, Callable[[BaseException], ApiException]]


class ApiExceptionWrapper(ABC):
    """Contract for turning arbitrary exceptions into ApiExceptions."""

    def __init__(self, settings: HoneycombSettings | None = None) -> None:
        self.settings = settings or get_settings()

    @abstractmethod
    def wrap(self, exception: BaseException) -> ApiException:
        """Wrap *exception* in an ApiException."""


def inheritance_distance(cls: type, ancestor: type) -> int | None:
    """Number of ``__bases__`` hops from *cls* up to *ancestor*.

    Returns ``None`` when *ancestor* is not a superclass of *cls*. Virtual
    subclasses (ABC registration) count as the farthest possible match.
    """
    if not issubclass(cls, ancestor):
        return None

    seen = {cls}
    queue: deque[tuple[type, int]] = deque([(cls, 0)])
    while queue:
        current, depth = queue.popleft()
        if current is ancestor:
            return depth
        for base in current.__bases__:
            if base not in seen:
                seen.add(base)
                queue.append((base, depth + 1))

    return len(cls.__mro__)


class ExceptionWrapper(ApiExceptionWrapper):
    """Registry-driven ApiExceptionWrapper with the built-in handlers.

    Subclasses extend ``exceptions`` with ``{ExceptionType: "method_name"}``
    (or a callable taking the exception). Entries there take precedence over
    the built-in ones for the same type.
    """

    exceptions: dict[type[BaseException], Handler] = {}

    def __init__(self, settings: HoneycombSettings | None = None) -> None:
        super().__init__(settings)
        self._registry: dict[type[BaseException], Handler] = {
            **self.default_exceptions(),
            **self.exceptions,
        }

    @staticmethod
    def default_exceptions() -> dict[type[BaseException], Handler]:
        """Built-in exception → handler mappings."""
        return {
            HTTPException: "wrap_http_exception",
            ResponseException: "wrap_response_exception",
            ModelNotFoundError: "wrap_model_not_found",
            AuthenticationError: "wrap_authentication_error",
            ValidationException: "wrap_validation_exception",
            PydanticValidationError: "wrap_pydantic_validation_error",
            RequestValidationError: "wrap_request_validation_error",
        }

    @property
    def messages(self) -> ErrorMessages:
        return get_error_messages(self.settings)

    def register(self, exception_type: type[BaseException], handler: Handler) -> None:
        """Map *exception_type* to *handler*, replacing any existing entry."""
        if exception_type in self._registry:
            logger.debug("Replacing exception handler for '%s'", exception_type.__name__)
        self._registry[exception_type] = handler

    def registered_types(self) -> list[type[BaseException]]:
        """Registered exception types, in registration order."""
        return list(self._registry.keys())

    def wrap(self, exception: BaseException) -> ApiException:
        if isinstance(exception, ApiException):
            return exception

        handler = self.find_best_match(exception)
        if handler is None:
            return self.wrap_exception(exception)

        if isinstance(handler, str):
            return getattr(self, handler)(exception)
        return handler(exception)

    def find_best_match(self, exception: BaseException) -> Handler | None:
        """Return the handler for the most specific registered type, if any."""
        exception_type = type(exception)

        if exception_type in self._registry:
            return self._registry[exception_type]

        best_match: Handler | None = None
        best_distance: int | None = None
        for registered_type, handler in self._registry.items():
            distance = inheritance_distance(exception_type, registered_type)
            if distance is None:
                continue
            # strict comparison: ties keep the earlier registration
            if best_distance is None or distance < best_distance:
                best_match, best_distance = handler, distance

        if best_match is not None:
            logger.debug(
                "Resolved '%s' to handler %r at distance %d",
                exception_type.__name__,
                best_match,
                best_distance,
            )
        return best_match

    # ------------------------------------------------------------------
    # Built-in handlers
    # ------------------------------------------------------------------

    def wrap_http_exception(self, exception: HTTPException) -> ApiException:
        if exception.status_code == HTTPStatus.NOT_FOUND:
            error = Feedback.error("not found", self.messages.not_found)
            return ApiException(404, error, None, exception, settings=self.settings)
        return self._status_error(exception.status_code, exception)

    def wrap_response_exception(self, exception: ResponseException) -> ApiException:
        return self._status_error(exception.status_code, exception)

    def wrap_model_not_found(self, exception: ModelNotFoundError) -> ApiException:
        error = Feedback.error(f"{to_snake(exception.model_name)} not found", self.messages.not_found)
        return ApiException(404, error, None, exception, settings=self.settings)

    def wrap_authentication_error(self, exception: AuthenticationError) -> ApiException:
        error = Feedback.error("unauthorized", self.messages.authentication)
        return ApiException(401, error, None, exception, settings=self.settings)

    def wrap_validation_exception(self, exception: ValidationException) -> ApiException:
        errors: dict[str, list[Feedback]] = {}
        for field, rules in exception.failures.items():
            errors[field] = [
                Feedback.error(
                    f"{field} field {rule.description} rule failed",
                    rule.message or self.messages.validation,
                )
                for rule in rules
            ]

        error = Feedback.error("validation failed", self.messages.validation)
        return ApiException(422, error, errors, exception, settings=self.settings)

    def wrap_pydantic_validation_error(self, exception: PydanticValidationError) -> ApiException:
        converted = ValidationException.from_pydantic(exception.errors())
        return self._chain(self.wrap_validation_exception(converted), exception)

    def wrap_request_validation_error(self, exception: RequestValidationError) -> ApiException:
        converted = ValidationException.from_pydantic(exception.errors(), strip_location=True)
        return self._chain(self.wrap_validation_exception(converted), exception)

    def wrap_exception(self, exception: BaseException) -> ApiException:
        """Fallback for exceptions without a registered handler."""
        error = Feedback.error("internal server error", self.messages.generic)
        return ApiException(500, error, None, exception, settings=self.settings)

    # ------------------------------------------------------------------

    def _status_error(self, status: int, exception: BaseException) -> ApiException:
        if status < 400 or status >= 600:
            status = HTTPStatus.INTERNAL_SERVER_ERROR
        try:
            message = HTTPStatus(status).phrase.lower()
        except ValueError:
            message = "error"

        error = Feedback.error(message, self.messages.generic)
        return ApiException(int(status), error, None, exception, settings=self.settings)

    @staticmethod
    def _chain(api_exception: ApiException, cause: BaseException) -> ApiException:
        api_exception.__cause__ = cause
        return api_exception


def get_exception_wrapper(settings: HoneycombSettings | None = None) -> ApiExceptionWrapper:
    """Instantiate the configured wrapper class, or the built-in one."""
    settings = settings or get_settings()
    wrapper_class = settings.exception_wrapper_class

    if wrapper_class is None:
        return ExceptionWrapper(settings)

    if isinstance(wrapper_class, type) and issubclass(wrapper_class, ApiExceptionWrapper):
        return wrapper_class(settings)

    logger.warning(
        "Configured exception wrapper %r is not an ApiExceptionWrapper, using the default",
        wrapper_class,
    )
    return ExceptionWrapper(settings)
