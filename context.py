"""Per-scenario bundle of registry, engine, store, surface and driver."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from call_log import CallRecorder
from config import (
    CALL_LOG_BUFFER_SIZE,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_SCENARIO_TIMEOUT_MS,
    LOG_FORMAT,
    STRICT_MODE_DEFAULT,
)
from fulfillment import FulfillmentEngine, ForwardFn
from router import ResponderRegistry
from scenario_engine import ScenarioDriver
from session_store import SessionStateStore
from surface import SimulatedSurface, UISurface

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[FulfillmentEngine, SessionStateStore], UISurface]


def simulated_surface_factory(base_url: str | None = None) -> SurfaceFactory:
    def _factory(engine: FulfillmentEngine, store: SessionStateStore) -> UISurface:
        if base_url is None:
            return SimulatedSurface(engine=engine, store=store)
        return SimulatedSurface(engine=engine, store=store, base_url=base_url)

    return _factory


@dataclass(slots=True)
class ScenarioContext:
    registry: ResponderRegistry
    recorder: CallRecorder
    engine: FulfillmentEngine
    store: SessionStateStore
    surface: UISurface
    driver: ScenarioDriver

    def close(self) -> None:
        self.driver.close()

    def __enter__(self) -> "ScenarioContext":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.driver.__exit__(exc_type, exc, tb)


def open_context(
    surface_factory: SurfaceFactory | None = None,
    *,
    strict: bool = STRICT_MODE_DEFAULT,
    default_delay_ms: int = 0,
    forward: ForwardFn | None = None,
    buffer_size: int = CALL_LOG_BUFFER_SIZE,
    log_format: str = LOG_FORMAT,
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    scenario_timeout_ms: int = DEFAULT_SCENARIO_TIMEOUT_MS,
    on_event: Callable[[str, dict[str, Any]], None] | None = None,
) -> ScenarioContext:
    """Build a fresh, isolated set of collaborators for one scenario.

    Nothing is shared between contexts, so scenarios may run concurrently as
    long as each owns its own context.
    """
    registry = ResponderRegistry()
    recorder = CallRecorder(buffer_size=buffer_size)
    engine = FulfillmentEngine(
        registry,
        strict=strict,
        default_delay_ms=default_delay_ms,
        forward=forward,
        recorder=recorder,
        log_format=log_format,
    )
    store = SessionStateStore()
    factory = surface_factory or simulated_surface_factory()
    surface = factory(engine, store)
    driver = ScenarioDriver(
        surface,
        engine=engine,
        store=store,
        registry=registry,
        poll_interval_ms=poll_interval_ms,
        scenario_timeout_ms=scenario_timeout_ms,
        on_event=on_event,
    )
    logger.debug("Opened scenario context strict=%s", strict)
    return ScenarioContext(
        registry=registry,
        recorder=recorder,
        engine=engine,
        store=store,
        surface=surface,
        driver=driver,
    )
