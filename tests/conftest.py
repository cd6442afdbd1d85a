"""Shared fixtures: a fresh, isolated interception stack per test."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from call_log import CallRecorder
from fulfillment import FulfillmentEngine
from router import ResponderRegistry
from scenario_engine import ScenarioDriver
from session_store import SessionStateStore
from surface import SimulatedSurface

BASE_URL = "http://localhost:5173"


@pytest.fixture
def registry() -> ResponderRegistry:
    return ResponderRegistry()


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder(buffer_size=100)


@pytest.fixture
def engine(registry: ResponderRegistry, recorder: CallRecorder) -> FulfillmentEngine:
    return FulfillmentEngine(registry, strict=True, recorder=recorder)


@pytest.fixture
def store() -> SessionStateStore:
    return SessionStateStore()


@pytest.fixture
def surface(engine: FulfillmentEngine, store: SessionStateStore) -> Iterator[SimulatedSurface]:
    simulated = SimulatedSurface(engine=engine, store=store, base_url=BASE_URL)
    yield simulated
    simulated.close()


@pytest.fixture
def driver(
    surface: SimulatedSurface,
    engine: FulfillmentEngine,
    store: SessionStateStore,
    registry: ResponderRegistry,
) -> Iterator[ScenarioDriver]:
    scenario = ScenarioDriver(
        surface,
        engine=engine,
        store=store,
        registry=registry,
        poll_interval_ms=10,
        default_timeout_ms=1_000,
        scenario_timeout_ms=10_000,
    )
    yield scenario
    scenario.close()
