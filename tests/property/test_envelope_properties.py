"""Property tests for JSON envelope consistency.

Validates that success responses carry exactly ``status``, the data name,
``feedback`` and ``metadata``; that failure responses carry exactly
``status``, ``error`` and ``errors``; and that every uncaught exception on an
API route ends up in the failure envelope.
"""

from __future__ import annotations

import json

from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import error_statuses, feedback_maps, feedbacks, field_names, success_statuses
from honeycomb.config.settings import HoneycombSettings
from honeycomb.exceptions import ApiException, AuthenticationError, ModelNotFoundError, ValidationException
from honeycomb.feedback import Feedback
from honeycomb.handler import register_exception_handlers
from honeycomb.response import RESERVED_NAMES, ApiResponse

_CAMEL = HoneycombSettings(camel_case=True)


# ---------------------------------------------------------------------------
# Minimal test app
# ---------------------------------------------------------------------------

def _create_test_app() -> FastAPI:
    """Create a minimal FastAPI app with the exception handlers registered."""
    app = FastAPI()
    register_exception_handlers(app)

    _raisers = {
        "ModelNotFoundError": lambda: ModelNotFoundError("Order", 1),
        "AuthenticationError": lambda: AuthenticationError(),
        "ValidationException": lambda: ValidationException({"email": [("email", (), "")]}),
        "HTTPException": lambda: HTTPException(status_code=418),
        "KeyError": lambda: KeyError("id"),
        "RuntimeError": lambda: RuntimeError("unexpected failure"),
    }

    for slug, factory in _raisers.items():

        def _make_handler(make_exc):  # noqa: ANN001
            async def handler(request: Request) -> None:
                raise make_exc()
            return handler

        app.add_api_route(f"/api/raise/{slug}", _make_handler(factory), methods=["GET"])

    return app


_app = _create_test_app()
_client = TestClient(_app, raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

data_names = field_names.filter(lambda name: name not in RESERVED_NAMES)
json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(field_names, children, max_size=4),
    max_leaves=10,
)
error_slugs = st.sampled_from([
    "ModelNotFoundError",
    "AuthenticationError",
    "ValidationException",
    "HTTPException",
    "KeyError",
    "RuntimeError",
])


def _all_keys(value) -> list[str]:
    if isinstance(value, dict):
        keys = list(value)
        for item in value.values():
            keys.extend(_all_keys(item))
        return keys
    if isinstance(value, list):
        return [key for item in value for key in _all_keys(item)]
    return []


# ---------------------------------------------------------------------------
# Success envelope
# ---------------------------------------------------------------------------


@settings(max_examples=100)
@given(
    status=success_statuses,
    name=data_names,
    data=json_values,
    feedback=feedback_maps,
    metadata=st.dictionaries(field_names, json_values, max_size=3),
)
def test_success_envelope_shape(status, name, data, feedback, metadata) -> None:
    response = ApiResponse.success(status, name, data, feedback, metadata)
    body = json.loads(response.body)

    assert set(body) == {"status", name, "feedback", "metadata"}
    assert body["status"] == status
    assert body[name] == data
    assert body["metadata"]["name"] == name
    assert response.headers["content-length"] == str(len(response.body))


@settings(max_examples=100)
@given(name=data_names, data=json_values, metadata=st.dictionaries(field_names, json_values, max_size=3))
def test_camel_case_envelope_has_no_snake_keys(name, data, metadata) -> None:
    response = ApiResponse.success(200, name, data, None, metadata, settings=_CAMEL)
    body = json.loads(response.body)

    assert all("_" not in key for key in _all_keys(body))


# ---------------------------------------------------------------------------
# Failure envelope
# ---------------------------------------------------------------------------


@settings(max_examples=100)
@given(status=error_statuses, error=feedbacks, errors=feedback_maps)
def test_failure_envelope_is_the_exception(status: int, error: Feedback, errors) -> None:
    exc = ApiException(status, error, errors)
    body = json.loads(ApiResponse.failure(exc).body)

    assert set(body) == {"status", "error", "errors"}
    assert body == exc.to_dict()


@settings(max_examples=100)
@given(slug=error_slugs)
def test_api_errors_have_failure_envelope(slug: str) -> None:
    resp = _client.get(f"/api/raise/{slug}")
    body = resp.json()

    assert set(body) == {"status", "error", "errors"}
    assert 400 <= resp.status_code < 600
    assert body["status"] == resp.status_code
    assert body["error"]["type"] == "error"
    assert body["error"]["message"]
    assert body["error"]["description"]


def test_unhandled_exceptions_are_generic_500() -> None:
    for slug in ("KeyError", "RuntimeError"):
        body = _client.get(f"/api/raise/{slug}").json()

        assert body["status"] == 500
        assert body["error"]["message"] == "internal server error"
        assert "unexpected failure" not in json.dumps(body)
