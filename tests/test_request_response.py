"""Unit tests for intercepted request and mock response values."""

from __future__ import annotations

import pytest

from request import InterceptedRequest
from response import (
    JSON_CONTENT_TYPE,
    PASS_THROUGH,
    TEXT_CONTENT_TYPE,
    MockResponse,
    error_response,
    json_response,
)


def test_request_normalizes_method_and_header_names() -> None:
    request = InterceptedRequest(
        "put",
        "http://localhost:5173/api/auth",
        headers={"Authorization": "Bearer abcdef", "Content-Type": "application/json"},
        body='{"email":"d@jwt.com"}',
    )

    assert request.method == "PUT"
    assert request.header("content-type") == "application/json"
    assert request.bearer_token == "abcdef"
    assert request.json() == {"email": "d@jwt.com"}


def test_request_exposes_path_and_query_without_altering_url() -> None:
    request = InterceptedRequest(
        "GET", "http://localhost:5173/api/franchise?page=0&limit=3&name=*"
    )

    assert request.url.endswith("?page=0&limit=3&name=*")
    assert request.path == "/api/franchise"
    assert request.query_value("limit") == "3"
    assert request.query_value("missing", "x") == "x"


def test_request_json_handles_empty_and_invalid_bodies() -> None:
    assert InterceptedRequest("GET", "http://host/api").json() is None

    with pytest.raises(ValueError, match="not valid JSON"):
        InterceptedRequest("POST", "http://host/api", body=b"{oops").json()


def test_bearer_token_requires_bearer_scheme() -> None:
    request = InterceptedRequest("GET", "http://host/api", headers={"Authorization": "Basic x"})

    assert request.bearer_token is None


def test_json_response_sets_content_type_and_encodes_body() -> None:
    response = json_response({"message": "valid"}, status=201)

    assert response.status_code == 201
    assert response.reason_phrase == "Created"
    assert response.content_type == JSON_CONTENT_TYPE
    assert response.json() == {"message": "valid"}


def test_fulfill_kwargs_split_content_type_from_headers() -> None:
    response = json_response({"a": 1}, headers={"X-Trace": "t1"})

    kwargs = response.to_fulfill_kwargs()

    assert kwargs["status"] == 200
    assert kwargs["content_type"] == JSON_CONTENT_TYPE
    assert kwargs["headers"] == {"X-Trace": "t1"}
    assert kwargs["body"] == b'{"a": 1}'


def test_plain_response_defaults_to_text() -> None:
    response = MockResponse(status_code=204)

    assert response.content_type == TEXT_CONTENT_TYPE
    assert response.ok is True
    assert error_response("nope", status=403).ok is False


def test_status_outside_http_range_is_rejected() -> None:
    with pytest.raises(ValueError, match="between 100 and 599"):
        MockResponse(status_code=42)


def test_pass_through_is_a_singleton() -> None:
    assert type(PASS_THROUGH)() is PASS_THROUGH
    assert repr(PASS_THROUGH) == "PASS_THROUGH"
