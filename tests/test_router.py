"""Unit tests for the responder registry."""

from __future__ import annotations

from request import InterceptedRequest
from response import MockResponse, json_response
from route_matcher import GlobPattern, RegexPattern
from router import ResponderRegistry


def _handler_ok(_request: InterceptedRequest) -> MockResponse:
    return json_response({"ok": True})


def _handler_forbidden(_request: InterceptedRequest) -> MockResponse:
    return json_response({"message": "forbidden"}, status=403)


def test_registry_returns_none_when_nothing_matches() -> None:
    registry = ResponderRegistry()
    registry.register("*/**/api/order/menu", _handler_ok)

    resolved = registry.resolve(InterceptedRequest("GET", "http://host/api/franchise"))

    assert resolved is None


def test_newest_registration_wins_for_overlapping_patterns() -> None:
    registry = ResponderRegistry()
    first = registry.register("*/**/api/franchise", _handler_ok)
    second = registry.register(RegexPattern(r"/api/franchise$"), _handler_forbidden)

    resolved = registry.resolve(InterceptedRequest("GET", "http://host/api/franchise"))

    assert second > first
    assert resolved is not None
    assert resolved.id == second
    assert resolved.handler is _handler_forbidden


def test_unregister_restores_the_older_registration() -> None:
    registry = ResponderRegistry()
    first = registry.register("*/**/api/franchise", _handler_ok)
    second = registry.register("*/**/api/franchise", _handler_forbidden)

    assert registry.unregister(second) is True
    assert registry.unregister(second) is False
    resolved = registry.resolve(InterceptedRequest("GET", "http://host/api/franchise"))

    assert resolved is not None
    assert resolved.id == first


def test_method_scoped_registration_does_not_shadow_other_methods() -> None:
    registry = ResponderRegistry()
    any_method = registry.register("**/api/auth", _handler_ok)
    registry.register("**/api/auth", _handler_forbidden, method="DELETE")

    put = registry.resolve(InterceptedRequest("PUT", "http://host/api/auth"))
    delete = registry.resolve(InterceptedRequest("delete", "http://host/api/auth"))

    assert put is not None and put.id == any_method
    assert delete is not None and delete.handler is _handler_forbidden


def test_unregister_all_is_idempotent_and_ids_keep_increasing() -> None:
    registry = ResponderRegistry()
    first = registry.register(GlobPattern("**/api/docs"), _handler_ok)

    registry.unregister_all()
    registry.unregister_all()

    assert len(registry) == 0
    assert registry.resolve(InterceptedRequest("GET", "http://host/api/docs")) is None
    assert registry.register(GlobPattern("**/api/docs"), _handler_ok) > first


def test_registration_describe_names_method_pattern_and_label() -> None:
    registry = ResponderRegistry()
    registry.register("**/api/auth", _handler_ok, method="put", name="login")

    (registration,) = registry.registrations()

    assert registration.describe() == "#1 PUT glob:**/api/auth (login)"


def test_negative_delay_is_rejected() -> None:
    registry = ResponderRegistry()

    try:
        registry.register("**/api/auth", _handler_ok, delay_ms=-1)
    except ValueError as exc:
        assert "delay_ms" in str(exc)
    else:
        raise AssertionError("expected ValueError")
