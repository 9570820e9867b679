"""Unit tests for ApiException, abort_api and the wrappable error types."""

from __future__ import annotations

import json

import pytest

from honeycomb.config.settings import HoneycombSettings
from honeycomb.exceptions import (
    ApiException,
    FailedRule,
    ModelNotFoundError,
    ValidationException,
    abort_api,
)
from honeycomb.feedback import Feedback


# ---------------------------------------------------------------------------
# ApiException
# ---------------------------------------------------------------------------


class TestApiException:
    @pytest.mark.parametrize("status", [400, 404, 422, 500, 599])
    def test_accepts_error_statuses(self, status):
        exc = ApiException(status, Feedback.error("boom", "Something broke."))
        assert exc.status == status

    @pytest.mark.parametrize("status", [0, 200, 302, 399, 600, 700])
    def test_rejects_non_error_statuses(self, status):
        with pytest.raises(ValueError, match="invalid error status"):
            ApiException(status, Feedback.error("boom", "Something broke."))

    def test_feedback_mode_requires_feedback(self, settings):
        with pytest.raises(ValueError, match="instance of Feedback"):
            ApiException(400, "bad request", settings=settings)

    def test_string_mode_coerces_error(self, string_settings):
        exc = ApiException(400, Feedback.error("bad request", "Try again."), settings=string_settings)
        assert exc.error == "bad request"

        exc = ApiException(400, "plain", settings=string_settings)
        assert exc.error == "plain"

    def test_errors_drop_empty_entries(self):
        fb = Feedback.error("email field required rule failed", "The email field is required.")
        exc = ApiException(
            422, Feedback.error("validation failed", "Check your data."), {"email": [fb], "name": []}
        )
        assert exc.errors == {"email": [fb]}

    def test_errors_must_match_feedback_mode(self):
        with pytest.raises(ValueError):
            ApiException(422, Feedback.error("validation failed", "x"), {"email": ["required"]})

    def test_errors_string_mode(self, string_settings):
        exc = ApiException(
            422,
            "validation failed",
            {"email": [Feedback.error("email field required rule failed", "Required.")]},
            settings=string_settings,
        )
        assert exc.errors == {"email": ["email field required rule failed"]}

    def test_to_dict(self):
        fb = Feedback.error("name field required rule failed", "The name field is required.")
        exc = ApiException(422, Feedback.error("validation failed", "Check your data."), {"name": [fb]})

        assert exc.to_dict() == {
            "status": 422,
            "error": {
                "type": "error",
                "message": "validation failed",
                "description": "Check your data.",
            },
            "errors": {"name": [fb.to_dict()]},
        }
        assert json.loads(exc.to_json()) == exc.to_dict()

    def test_to_dict_without_errors(self):
        exc = ApiException(404, Feedback.error("not found", "Nothing here."))
        assert exc.to_dict()["errors"] is None

    def test_cause_is_chained(self):
        cause = KeyError("id")
        exc = ApiException(404, Feedback.error("not found", "Nothing here."), cause=cause)
        assert exc.cause is cause
        assert exc.__cause__ is cause

    def test_str_is_message(self):
        exc = ApiException(409, Feedback.error("conflict", "Already exists."))
        assert str(exc) == "conflict"
        assert exc.message == "conflict"


# ---------------------------------------------------------------------------
# abort_api
# ---------------------------------------------------------------------------


class TestAbortApi:
    def test_string_error_gets_generic_description(self):
        with pytest.raises(ApiException) as info:
            abort_api(416, "invalid page argument, min:1 max:3")

        exc = info.value
        assert exc.status == 416
        assert exc.error == Feedback.error(
            "invalid page argument, min:1 max:3", "An error occurred. Please try again."
        )

    def test_feedback_error_is_kept(self):
        fb = Feedback.error("gone", "This resource was removed.")
        with pytest.raises(ApiException) as info:
            abort_api(410, fb)
        assert info.value.error is fb

    def test_string_mode(self):
        with pytest.raises(ApiException) as info:
            abort_api(403, "forbidden", settings=HoneycombSettings(use_feedback=False))
        assert info.value.error == "forbidden"


# ---------------------------------------------------------------------------
# Wrappable error types
# ---------------------------------------------------------------------------


class TestModelNotFoundError:
    def test_model_class(self):
        class UserProfile:
            pass

        err = ModelNotFoundError(UserProfile, 7)
        assert err.model_name == "UserProfile"
        assert err.ids == [7]
        assert "UserProfile" in str(err)

    def test_model_name_string(self):
        err = ModelNotFoundError("Invoice", ["a", "b"])
        assert err.model_name == "Invoice"
        assert err.ids == ["a", "b"]

    def test_is_lookup_error(self):
        assert isinstance(ModelNotFoundError("User"), LookupError)


class TestValidationException:
    def test_tuples_become_failed_rules(self):
        exc = ValidationException({"age": [("min", ["18"], "Too young.")]})
        assert exc.failures == {"age": [FailedRule("min", ("18",), "Too young.")]}

    def test_rule_description(self):
        assert FailedRule("required", (), "x").description == "required"
        assert FailedRule("Between", ("1", "10"), "x").description == "between:1,10"

    def test_from_pydantic_strips_request_location(self):
        errors = [
            {"type": "missing", "loc": ("body", "email"), "msg": "Field required", "input": {}},
            {
                "type": "string_too_short",
                "loc": ("body", "name"),
                "msg": "String should have at least 3 characters",
                "input": "ab",
                "ctx": {"min_length": 3},
            },
        ]
        exc = ValidationException.from_pydantic(errors, strip_location=True)

        assert list(exc.failures) == ["email", "name"]
        assert exc.failures["email"] == [FailedRule("missing", (), "Field required")]
        assert exc.failures["name"] == [
            FailedRule("string_too_short", ("3",), "String should have at least 3 characters")
        ]

    def test_from_pydantic_nested_and_non_field(self):
        errors = [
            {"type": "int_parsing", "loc": ("items", 0, "qty"), "msg": "bad int"},
            {"type": "value_error", "loc": (), "msg": "Value error, nope", "ctx": {"error": ValueError("nope")}},
        ]
        exc = ValidationException.from_pydantic(errors)

        assert exc.failures["items.0.qty"] == [FailedRule("int_parsing", (), "bad int")]
        # exception objects in ctx are not rule params
        assert exc.failures["__all__"] == [FailedRule("value_error", (), "Value error, nope")]
