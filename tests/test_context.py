"""Tests for per-scenario context isolation."""

from __future__ import annotations

import pytest

from context import open_context, simulated_surface_factory
from handlers.pizza_handlers import install_pizza_fixtures
from scenario_engine import COMPLETED, FAILED, ScenarioAborted
from surface import SimulatedSurface


def test_contexts_share_nothing() -> None:
    first = open_context()
    second = open_context()
    install_pizza_fixtures(first.registry)
    first.store.set("token", "abcdef")

    assert len(second.registry) == 0
    assert second.store.get("token") is None
    assert first.engine.recorder is first.recorder
    assert first.recorder is not second.recorder

    first.close()
    second.close()


def test_context_close_is_idempotent_and_releases_everything() -> None:
    context = open_context(simulated_surface_factory("http://127.0.0.1:4173"))
    install_pizza_fixtures(context.registry)
    context.store.set("token", "abcdef")
    assert isinstance(context.surface, SimulatedSurface)
    assert context.surface.current_url == "http://127.0.0.1:4173"

    context.close()
    context.close()

    assert len(context.registry) == 0
    assert context.store.keys() == []
    assert context.surface.closed is True


def test_context_manager_completes_driver() -> None:
    with open_context(strict=False) as context:
        context.driver.navigate("/")
        outcome = context.surface.fetch("GET", "/api/unmocked")

    assert outcome.status_code == 502
    assert context.driver.state == COMPLETED
    assert context.engine.failures() == []


def test_close_fails_running_driver_with_recorded_interception_failure() -> None:
    context = open_context(strict=True)
    context.driver.navigate("/")
    with pytest.raises(ConnectionError):
        context.surface.fetch("GET", "/api/order/menu")

    context.close()

    assert context.driver.state == FAILED
    assert isinstance(context.driver.failure, ScenarioAborted)
    assert "no_match" in str(context.driver.failure)
    assert context.driver.failure.step == "close"
    assert context.surface.closed is True
    assert len(context.registry) == 0


def test_close_completes_running_driver_without_failures() -> None:
    context = open_context(strict=True)
    install_pizza_fixtures(context.registry)
    context.driver.navigate("/")
    context.surface.fetch("GET", "/api/order/menu")

    context.close()

    assert context.driver.state == COMPLETED
    assert context.driver.failure is None
