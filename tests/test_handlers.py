"""Unit tests for reusable fixture handler building blocks."""

from __future__ import annotations

import pytest

from handlers.base import CallCounter, JsonHandler, MethodDispatch, SequenceHandler, status_handler
from request import InterceptedRequest
from response import json_response


def test_json_handler_counts_calls_and_keeps_bodies() -> None:
    counter = CallCounter()
    handler = JsonHandler({"message": "logout successful"}, counter=counter)

    response = handler(InterceptedRequest.with_json("DELETE", "http://host/api/auth", {"a": 1}))

    assert response.json() == {"message": "logout successful"}
    assert counter.hits == 1
    assert counter.called is True
    assert counter.last_body == {"a": 1}


def test_counter_keeps_raw_text_for_non_json_bodies() -> None:
    counter = CallCounter()

    counter.record(InterceptedRequest("POST", "http://host/api", body=b"name=test"))

    assert counter.bodies == ["name=test"]


def test_method_dispatch_routes_by_method_and_rejects_others() -> None:
    counter = CallCounter()
    dispatch = MethodDispatch(
        {"get": lambda _r: json_response({"kind": "list"}), "POST": lambda _r: {"kind": "create"}},
        counter=counter,
    )

    listed = dispatch(InterceptedRequest("GET", "http://host/api/franchise"))
    created = dispatch(InterceptedRequest("POST", "http://host/api/franchise"))
    rejected = dispatch(InterceptedRequest("PATCH", "http://host/api/franchise"))

    assert listed.json() == {"kind": "list"}
    assert created == {"kind": "create"}
    assert rejected.status_code == 405
    assert rejected.headers["Allow"] == "GET, POST"
    assert counter.hits == 3


def test_method_dispatch_falls_back_to_otherwise_handler() -> None:
    dispatch = MethodDispatch({}, otherwise=status_handler(418, "teapot"))

    response = dispatch(InterceptedRequest("GET", "http://host/api"))

    assert response.status_code == 418
    assert response.json() == {"message": "teapot"}


def test_sequence_handler_repeats_last_response() -> None:
    handler = SequenceHandler(
        [json_response({"n": 1}), lambda _r: json_response({"n": 2})],
    )
    request = InterceptedRequest("GET", "http://host/api/order")

    seen = [handler(request).json()["n"] for _ in range(4)]

    assert seen == [1, 2, 2, 2]


def test_sequence_handler_requires_responses() -> None:
    with pytest.raises(ValueError, match="cannot be empty"):
        SequenceHandler([])
