"""ApiException and the framework-level errors Honeycomb knows how to wrap.

``ApiException`` is the structured error every failure ends up as: an HTTP
status in the 400-599 range, a primary Feedback (or plain message when
``use_feedback`` is disabled) and optional per-key secondary errors. It
serializes to the ``{status, error, errors}`` failure envelope.

The remaining classes are small, framework-agnostic error types that host
code can raise and that the default exception wrapper maps to 401, 404 and
422 responses.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, NamedTuple, NoReturn

from starlette.responses import Response

from honeycomb.config.messages import get_error_messages
from honeycomb.config.settings import HoneycombSettings, get_settings
from honeycomb.feedback import (
    Feedback,
    FeedbackItem,
    clean_feedback_map,
    dump_feedback_map,
)

# Leading ``loc`` segments FastAPI adds to request validation errors
_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})

# Field name used for errors that are not attached to a single field
NON_FIELD_ERRORS = "__all__"


# ---------------------------------------------------------------------------
# ApiException
# ---------------------------------------------------------------------------


class ApiException(Exception):
    """Structured, serializable API error.

    Parameters
    ----------
    status:
        HTTP status code, 400 <= status < 600.
    error:
        Primary error. Must be a Feedback when ``use_feedback`` is enabled,
        otherwise it is coerced to a string (a Feedback gives its message).
    errors:
        Optional ``key -> [Feedback | str, ...]`` mapping. Keys with an empty
        list are dropped.
    cause:
        Underlying exception, chained as ``__cause__``.

    Raises
    ------
    ValueError
        On an out-of-range status or contents not matching the feedback mode.
    """

    def __init__(
        self,
        status: int,
        error: Feedback | str,
        errors: Mapping[str, Sequence[Any]] | None = None,
        cause: BaseException | None = None,
        *,
        settings: HoneycombSettings | None = None,
    ) -> None:
        use_feedback = (settings or get_settings()).use_feedback

        status = int(status)
        if status < 400 or status >= 600:
            raise ValueError(f"invalid error status {status}")

        if use_feedback:
            if not isinstance(error, Feedback):
                raise ValueError("error must be an instance of Feedback")
        elif isinstance(error, Feedback):
            error = error.message
        else:
            error = str(error)

        self.status: int = status
        self.error: FeedbackItem = error
        self.errors: dict[str, list[FeedbackItem]] | None = clean_feedback_map(
            errors, use_feedback, label="errors"
        )

        super().__init__(error.message if isinstance(error, Feedback) else error)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def message(self) -> str:
        return self.error.message if isinstance(self.error, Feedback) else self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "error": self.error.to_dict() if isinstance(self.error, Feedback) else self.error,
            "errors": dump_feedback_map(self.errors),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status={self.status}, error={self.message!r})"


def abort_api(
    status: int,
    error: Feedback | str,
    errors: Mapping[str, Sequence[Any]] | None = None,
    cause: BaseException | None = None,
    *,
    settings: HoneycombSettings | None = None,
) -> NoReturn:
    """Raise an ApiException.

    A plain string *error* becomes ``Feedback.error(error, <generic message>)``.
    """
    if not isinstance(error, Feedback):
        error = Feedback.error(str(error), get_error_messages(settings).generic)

    raise ApiException(status, error, errors, cause, settings=settings)


# ---------------------------------------------------------------------------
# Wrappable framework errors
# ---------------------------------------------------------------------------


class AuthenticationError(Exception):
    """The request could not be authenticated."""

    def __init__(self, message: str = "Unauthenticated.") -> None:
        self.message = message
        super().__init__(message)


class ModelNotFoundError(LookupError):
    """A requested resource does not exist.

    ``model`` is the resource type (a class or a name), ``ids`` the
    identifiers that were looked up.
    """

    def __init__(self, model: type | str, ids: Iterable[Any] | Any = None) -> None:
        self.model = model
        if ids is None:
            self.ids: list[Any] = []
        elif isinstance(ids, (str, bytes)) or not isinstance(ids, Iterable):
            self.ids = [ids]
        else:
            self.ids = list(ids)

        message = f"No query results for model [{self.model_name}]"
        if self.ids:
            message += " " + ", ".join(str(i) for i in self.ids)
        super().__init__(message)

    @property
    def model_name(self) -> str:
        return self.model if isinstance(self.model, str) else self.model.__name__


class ResponseException(Exception):
    """Carries an already built response that should be sent as-is."""

    def __init__(self, response: Response) -> None:
        self.response = response
        super().__init__(f"response exception with status {response.status_code}")

    @property
    def status_code(self) -> int:
        return self.response.status_code


class FailedRule(NamedTuple):
    """One failed validation rule for a field."""

    rule: str
    params: tuple[str, ...]
    message: str

    @property
    def description(self) -> str:
        """Machine readable rule description: ``rule`` or ``rule:p1,p2``."""
        text = self.rule.lower()
        if self.params:
            text += ":" + ",".join(self.params)
        return text


def _as_failed_rule(rule: FailedRule | tuple) -> FailedRule:
    name, params, message = rule
    if isinstance(params, (str, bytes)):
        params = (params,)
    return FailedRule(str(name), tuple(str(p) for p in params), str(message))


class ValidationException(ValueError):
    """Field validation failed.

    ``failures`` maps each failing field to its failed rules, in the order the
    rules were evaluated.
    """

    def __init__(self, failures: Mapping[str, Sequence[FailedRule | tuple]]) -> None:
        self.failures: dict[str, list[FailedRule]] = {
            field: [_as_failed_rule(rule) for rule in rules] for field, rules in failures.items()
        }
        super().__init__("The given data was invalid.")

    @classmethod
    def from_pydantic(
        cls, errors: Iterable[Mapping[str, Any]], *, strip_location: bool = False
    ) -> ValidationException:
        """Build from pydantic error dicts (``ValidationError.errors()``).

        ``strip_location`` drops the leading ``body``/``query``/... segment
        that FastAPI prepends to request validation errors.
        """
        failures: dict[str, list[FailedRule]] = {}
        for err in errors:
            loc = list(err.get("loc", ()))
            if strip_location and len(loc) > 1 and loc[0] in _REQUEST_LOCATIONS:
                loc = loc[1:]
            field = ".".join(str(part) for part in loc) or NON_FIELD_ERRORS

            ctx = err.get("ctx") or {}
            params = tuple(
                str(value) for value in ctx.values() if not isinstance(value, BaseException)
            )
            failures.setdefault(field, []).append(
                FailedRule(str(err.get("type", "invalid")), params, str(err.get("msg", "")))
            )
        return cls(failures)
