"""Scenario driver: sequential UI steps with bounded waits and explicit failures."""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from config import (
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_SCENARIO_TIMEOUT_MS,
    DEFAULT_WAIT_TIMEOUT_MS,
    MAX_STEPS_PER_SCENARIO,
)
from fulfillment import FulfillmentEngine
from router import ResponderRegistry
from session_store import NAMESPACES, SessionStateStore
from surface import Selector, UISurface

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, dict[str, Any]], None]

IDLE = "idle"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"

ALLOWED_ACTIONS = {
    "navigate",
    "fill",
    "click",
    "try_click",
    "try_fill",
    "wait_for",
    "assert",
    "seed_storage",
    "attach_navigation",
}
SELECTOR_ACTIONS = {"fill", "click", "try_click", "try_fill"}
CONDITION_KEYS = {"url", "text", "visible", "storage_absent", "storage_equals", "called", "not_called"}


class ScenarioError(Exception):
    code = "scenario_error"

    def __init__(
        self,
        message: str,
        *,
        step: str = "",
        snapshot: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.snapshot = snapshot or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "step": self.step,
            "snapshot": self.snapshot,
        }


class ElementNotFound(ScenarioError):
    code = "element_not_found"


class AmbiguousElement(ScenarioError):
    code = "ambiguous_element"

    def __init__(self, message: str, *, count: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.count = count


class ScenarioTimeout(ScenarioError):
    code = "timeout"

    @property
    def last_observed(self) -> dict[str, Any]:
        return self.snapshot


class AssertionFailed(ScenarioError, AssertionError):
    code = "assertion_failed"

    def __init__(
        self,
        message: str,
        *,
        expected: Any = None,
        actual: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["expected"] = self.expected
        data["actual"] = self.actual
        return data


class ScenarioAborted(ScenarioError):
    """An interception failure (unmatched request, handler fault) ended the scenario."""

    code = "aborted"


class ScenarioValidationError(ValueError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int = 400,
        code: str = "invalid_scenario",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class TryResult(Enum):
    FOUND_AND_ACTED = "found-and-acted"
    NOT_FOUND = "not-found"
    FOUND_BUT_FAILED = "found-but-failed"


@dataclass(slots=True)
class Step:
    action: str
    id: str = ""
    selector: Selector | None = None
    value: Any = None
    path: str = ""
    condition: dict[str, Any] | None = None
    timeout_ms: int | None = None
    namespace: str = "local"

    def describe(self) -> str:
        if self.selector is not None:
            return f"{self.action} {self.selector.describe()}"
        if self.path:
            return f"{self.action} {self.path}"
        if self.condition is not None:
            return f"{self.action} {describe_condition(self.condition)}"
        return self.action


@dataclass(slots=True)
class Scenario:
    name: str
    steps: list[Step]
    id: str = ""
    description: str = ""
    mocks: list[dict[str, Any]] = field(default_factory=list)


class ScenarioDriver:
    def __init__(
        self,
        surface: UISurface,
        *,
        engine: FulfillmentEngine | None = None,
        store: SessionStateStore | None = None,
        registry: ResponderRegistry | None = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        default_timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        scenario_timeout_ms: int = DEFAULT_SCENARIO_TIMEOUT_MS,
        on_event: EventCallback | None = None,
    ) -> None:
        if poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be > 0")
        self.surface = surface
        self.engine = engine
        self.store = store
        self.registry = registry if registry is not None else getattr(engine, "registry", None)
        self.poll_interval_ms = poll_interval_ms
        self.default_timeout_ms = default_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.scenario_timeout_ms = scenario_timeout_ms
        self._on_event = on_event
        self._state = IDLE
        self._deadline: float | None = None
        self._failure: ScenarioError | None = None
        self._released = False
        self.last_try_error: Exception | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def failure(self) -> ScenarioError | None:
        return self._failure

    # actions

    def navigate(self, path: str, *, timeout_ms: int | None = None) -> None:
        label = f"navigate {path}"
        with self._step(label):
            bound = self._bounded(timeout_ms or self.navigation_timeout_ms, label)
            try:
                self.surface.load(path, timeout_ms=bound)
            except TimeoutError as exc:
                raise ScenarioTimeout(
                    f"navigation to {path} did not finish within {bound}ms",
                    step=label,
                    snapshot=self._safe_snapshot(),
                ) from exc

    def fill(self, selector: Selector, value: str) -> None:
        label = f"fill {selector.describe()}"
        with self._step(label):
            self._resolve_one(selector, label).fill(value)

    def click(self, selector: Selector) -> None:
        label = f"click {selector.describe()}"
        with self._step(label):
            self._resolve_one(selector, label).click()

    def try_step(self, action: str, selector: Selector, value: str | None = None) -> TryResult:
        """Act on an optional control; absence is a result, not a failure."""
        if action not in {"click", "fill"}:
            raise ValueError("try_step action must be 'click' or 'fill'")
        label = f"try {action} {selector.describe()}"
        with self._step(label):
            elements = self.surface.query(selector)
            if not elements:
                return TryResult.NOT_FOUND
            target = elements[0]
            try:
                if action == "click":
                    target.click()
                else:
                    target.fill("" if value is None else value)
            except Exception as exc:
                logger.warning("Optional step %s found its target but failed: %s", label, exc)
                self.last_try_error = exc
                return TryResult.FOUND_BUT_FAILED
            return TryResult.FOUND_AND_ACTED

    def wait_for(
        self,
        predicate: Callable[[], Any],
        *,
        timeout_ms: int | None = None,
        description: str = "condition",
    ) -> Any:
        label = f"wait_for {description}"
        with self._step(label):
            bound = self._bounded(timeout_ms or self.default_timeout_ms, label)
            deadline = time.monotonic() + bound / 1000
            while True:
                self._check_interception(label)
                result = predicate()
                if result:
                    return result
                remaining_ms = (deadline - time.monotonic()) * 1000
                if remaining_ms <= 0:
                    raise ScenarioTimeout(
                        f"{description} not met within {bound}ms",
                        step=label,
                        snapshot=self._safe_snapshot(),
                    )
                self.surface.pause(int(min(self.poll_interval_ms, max(1.0, remaining_ms))))

    def assert_that(
        self,
        predicate: Callable[[], Any] | Any,
        *,
        description: str = "assertion",
        expected: Any = True,
        actual: Any = None,
        observe: Callable[[], Any] | None = None,
    ) -> None:
        label = f"assert {description}"
        with self._step(label):
            result = predicate() if callable(predicate) else predicate
            if not result:
                if observe is not None:
                    actual = observe()
                raise AssertionFailed(
                    f"{description} failed",
                    expected=expected,
                    actual=result if actual is None else actual,
                    step=label,
                    snapshot=self._safe_snapshot(),
                )

    def assert_equal(self, actual: Any, expected: Any, *, description: str = "values equal") -> None:
        label = f"assert {description}"
        with self._step(label):
            value = actual() if callable(actual) else actual
            if value != expected:
                raise AssertionFailed(
                    f"{description}: expected {expected!r}, got {value!r}",
                    expected=expected,
                    actual=value,
                    step=label,
                    snapshot=self._safe_snapshot(),
                )

    def assert_url(self, pattern: str) -> None:
        url = self.surface.current_url
        self.assert_that(
            re.search(pattern, url) is not None,
            description=f"url matches /{pattern}/",
            expected=pattern,
            actual=url,
        )

    def assert_visible(self, selector: Selector) -> None:
        label = f"assert visible {selector.describe()}"
        with self._step(label):
            elements = self.surface.query(selector)
            if not any(element.is_visible() for element in elements):
                raise AssertionFailed(
                    f"{selector.describe()} is not visible",
                    expected="visible",
                    actual=f"{len(elements)} match(es), none visible",
                    step=label,
                    snapshot=self._safe_snapshot(),
                )

    # lifecycle

    def complete(self) -> None:
        if self._state in {COMPLETED, FAILED}:
            return
        label = "complete"
        try:
            self._check_interception(label)
        except ScenarioError as exc:
            self._fail(exc)
            raise
        self._state = COMPLETED
        self._emit("scenario.completed", {})

    def close(self) -> None:
        """Release the execution context; safe to call on every exit path."""
        if self._state == RUNNING:
            failure = self._interception_failure("close")
            if failure is not None:
                self._fail(failure)
                return
            self._state = COMPLETED
        if self._released:
            return
        self._released = True
        try:
            self.surface.close()
        finally:
            if self.registry is not None:
                self.registry.unregister_all()
            if self.store is not None:
                self.store.clear()

    def __enter__(self) -> "ScenarioDriver":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc is not None and self._state not in {FAILED, COMPLETED}:
            self._state = FAILED
        elif exc is None and self._state in {IDLE, RUNNING}:
            self.complete()
        self.close()

    # declarative scenarios

    def execute(self, step: Step) -> Any:
        if step.action == "navigate":
            return self.navigate(step.path, timeout_ms=step.timeout_ms)
        if step.action == "fill":
            return self.fill(_require_selector(step), str(step.value))
        if step.action == "click":
            return self.click(_require_selector(step))
        if step.action == "try_click":
            return self.try_step("click", _require_selector(step))
        if step.action == "try_fill":
            return self.try_step("fill", _require_selector(step), str(step.value))
        if step.action == "wait_for":
            condition = step.condition or {}
            return self.wait_for(
                lambda: self.evaluate_condition(condition),
                timeout_ms=step.timeout_ms,
                description=describe_condition(condition),
            )
        if step.action == "assert":
            condition = step.condition or {}
            return self.assert_that(
                lambda: self.evaluate_condition(condition),
                description=describe_condition(condition),
                expected=condition,
                observe=lambda: self.observe_condition(condition),
            )
        if step.action == "seed_storage":
            return self._seed_storage(step)
        if step.action == "attach_navigation":
            return self._attach_navigation(step)
        raise ScenarioValidationError(f"unknown action: {step.action}")

    def run(self, scenario: Scenario) -> dict[str, Any]:
        started_perf = time.perf_counter()
        started_at = utc_now()
        step_results: list[dict[str, Any]] = []
        failure: ScenarioError | None = None
        self._emit("scenario.run.started", {"scenario_id": scenario.id})
        try:
            for step in scenario.steps:
                step_started = time.perf_counter()
                try:
                    result = self.execute(step)
                except ScenarioError as exc:
                    failure = exc
                    step_results.append(
                        _step_result(step, "fail", step_started, error=exc.to_dict())
                    )
                    break
                step_results.append(
                    _step_result(
                        step,
                        "pass",
                        step_started,
                        outcome=result.value if isinstance(result, TryResult) else None,
                    )
                )
            if failure is None:
                try:
                    self.complete()
                except ScenarioError as exc:
                    failure = exc
        finally:
            self.close()

        passed = sum(1 for item in step_results if item["status"] == "pass")
        report = {
            "run_id": uuid.uuid4().hex[:14],
            "scenario_id": scenario.id,
            "name": scenario.name,
            "started_at": started_at,
            "finished_at": utc_now(),
            "status": "pass" if failure is None else "fail",
            "step_results": step_results,
            "summary": {
                "passed": passed,
                "failed": 0 if failure is None else 1,
                "skipped": len(scenario.steps) - len(step_results),
                "duration_ms": round((time.perf_counter() - started_perf) * 1000, 3),
            },
            "failure": None if failure is None else failure.to_dict(),
        }
        self._emit(
            "scenario.run.completed",
            {"scenario_id": scenario.id, "status": report["status"]},
        )
        return report

    def evaluate_condition(self, condition: dict[str, Any]) -> bool:
        if "url" in condition:
            return re.search(str(condition["url"]), self.surface.current_url) is not None
        if "text" in condition:
            return any(
                element.is_visible()
                for element in self.surface.query(Selector.by_text(str(condition["text"])))
            )
        if "visible" in condition:
            selector = Selector.from_dict(condition["visible"])
            return any(element.is_visible() for element in self.surface.query(selector))
        if "storage_absent" in condition:
            store = self._synced_store()
            return not store.has(
                str(condition["storage_absent"]),
                namespace=str(condition.get("namespace", "local")),
            )
        if "storage_equals" in condition:
            store = self._synced_store()
            namespace = str(condition.get("namespace", "local"))
            return all(
                store.get(key, namespace=namespace) == value
                for key, value in dict(condition["storage_equals"]).items()
            )
        if "called" in condition or "not_called" in condition:
            if self.engine is None:
                raise ScenarioValidationError("call conditions need a fulfillment engine")
            wanted = dict(condition.get("called") or condition.get("not_called") or {})
            called = self.engine.recorder.was_called(
                wanted.get("url", "**"),
                method=wanted.get("method"),
            )
            return called if "called" in condition else not called
        raise ScenarioValidationError(f"unknown condition: {sorted(condition)}")

    def observe_condition(self, condition: dict[str, Any]) -> Any:
        """Return the value a condition is checked against, for failure reports."""
        if "url" in condition:
            return self.surface.current_url
        if "text" in condition:
            selector = Selector.by_text(str(condition["text"]))
            return sum(1 for element in self.surface.query(selector) if element.is_visible())
        if "visible" in condition:
            selector = Selector.from_dict(condition["visible"])
            return sum(1 for element in self.surface.query(selector) if element.is_visible())
        namespace = str(condition.get("namespace", "local"))
        if "storage_absent" in condition:
            return self._synced_store().get(str(condition["storage_absent"]), namespace=namespace)
        if "storage_equals" in condition:
            store = self._synced_store()
            return {
                key: store.get(key, namespace=namespace)
                for key in dict(condition["storage_equals"])
            }
        if ("called" in condition or "not_called" in condition) and self.engine is not None:
            wanted = dict(condition.get("called") or condition.get("not_called") or {})
            return self.engine.recorder.count(wanted.get("url", "**"), method=wanted.get("method"))
        return None

    # internals

    @contextmanager
    def _step(self, label: str) -> Iterator[None]:
        self._begin(label)
        step_started = time.perf_counter()
        logger.debug("Step started: %s", label)
        try:
            yield
            self._check_interception(label)
        except ScenarioError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            error = self._interception_failure(label) or ScenarioError(
                f"{label} failed: {exc.__class__.__name__}: {exc}",
                step=label,
                snapshot=self._safe_snapshot(),
            )
            self._fail(error)
            raise error from exc
        logger.debug(
            "Step finished: %s latency_ms=%.2f",
            label,
            (time.perf_counter() - step_started) * 1000,
        )

    def _begin(self, label: str) -> None:
        if self._state in {COMPLETED, FAILED}:
            raise RuntimeError(f"scenario already {self._state}; cannot run {label}")
        if self._state == IDLE:
            self._state = RUNNING
            self._deadline = time.monotonic() + self.scenario_timeout_ms / 1000
            self._emit("scenario.started", {})
        self._emit("scenario.step.started", {"step": label})

    def _bounded(self, timeout_ms: int, label: str) -> int:
        if self._deadline is None:
            return timeout_ms
        remaining_ms = int((self._deadline - time.monotonic()) * 1000)
        if remaining_ms <= 0:
            raise ScenarioTimeout(
                f"scenario exceeded its overall {self.scenario_timeout_ms}ms timeout",
                step=label,
                snapshot=self._safe_snapshot(),
            )
        return min(timeout_ms, remaining_ms)

    def _resolve_one(self, selector: Selector, label: str) -> Any:
        elements = self.surface.query(selector)
        if not elements:
            raise ElementNotFound(
                f"no element matches {selector.describe()}",
                step=label,
                snapshot=self._safe_snapshot(),
            )
        if len(elements) > 1 and selector.nth is None:
            raise AmbiguousElement(
                f"{len(elements)} elements match {selector.describe()}",
                count=len(elements),
                step=label,
                snapshot=self._safe_snapshot(),
            )
        return elements[0]

    def _check_interception(self, label: str) -> None:
        failure = self._interception_failure(label)
        if failure is not None:
            raise failure

    def _interception_failure(self, label: str) -> ScenarioAborted | None:
        if self.engine is None:
            return None
        failures = self.engine.failures()
        if not failures:
            return None
        first = failures[0]
        aborted = ScenarioAborted(
            f"{getattr(first, 'code', 'interception_error')}: {first}",
            step=label,
            snapshot=self._safe_snapshot(),
        )
        aborted.__cause__ = first
        return aborted

    def _fail(self, error: ScenarioError) -> None:
        if self._state == FAILED:
            return
        self._state = FAILED
        self._failure = error
        logger.warning("Scenario failed at %r: %s", error.step, error)
        self._emit("scenario.failed", error.to_dict())
        self.close()

    def _safe_snapshot(self) -> dict[str, Any]:
        try:
            return self.surface.snapshot()
        except Exception as exc:
            return {"error": f"snapshot unavailable: {exc}"}

    def _synced_store(self) -> SessionStateStore:
        if self.store is None:
            raise ScenarioValidationError("storage conditions need a state store")
        read_storage = getattr(self.surface, "read_storage", None)
        if read_storage is not None:
            read_storage(self.store)
        return self.store

    def _seed_storage(self, step: Step) -> None:
        label = f"seed_storage {step.path}"
        with self._step(label):
            if self.store is None:
                raise ScenarioValidationError("seed_storage needs a state store")
            self.store.set(step.path, step.value, namespace=step.namespace)
            apply_storage = getattr(self.surface, "apply_storage", None)
            if apply_storage is not None:
                apply_storage(self.store)

    def _attach_navigation(self, step: Step) -> None:
        label = f"attach_navigation {step.path}"
        with self._step(label):
            if self.store is None:
                raise ScenarioValidationError("attach_navigation needs a state store")
            self.store.attach_navigation_payload(step.path, step.value)

    def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._on_event is not None:
            self._on_event(event_type, payload)


def normalize_scenario(
    payload: dict[str, Any],
    *,
    max_steps: int = MAX_STEPS_PER_SCENARIO,
) -> Scenario:
    if not isinstance(payload, dict):
        raise ScenarioValidationError("scenario must be an object")
    name = str(payload.get("name", "")).strip()
    if not name:
        raise ScenarioValidationError("scenario name is required")

    steps_raw = payload.get("steps", [])
    if not isinstance(steps_raw, list):
        raise ScenarioValidationError("steps must be a list")
    if not steps_raw:
        raise ScenarioValidationError("scenario must contain at least one step")
    if len(steps_raw) > max_steps:
        raise ScenarioValidationError(
            "scenario has too many steps",
            status_code=413,
            code="scenario_too_large",
        )

    mocks_raw = payload.get("mocks", [])
    if mocks_raw is None:
        mocks_raw = []
    if not isinstance(mocks_raw, list):
        raise ScenarioValidationError("mocks must be a list")
    mocks = [_normalize_mock(item, index=index) for index, item in enumerate(mocks_raw)]

    return Scenario(
        id=str(payload.get("id") or uuid.uuid4().hex[:12]),
        name=name,
        description=str(payload.get("description", "")),
        steps=[_normalize_step(raw, index=index) for index, raw in enumerate(steps_raw)],
        mocks=mocks,
    )


def _normalize_step(step_raw: Any, *, index: int) -> Step:
    position = index + 1
    if not isinstance(step_raw, dict):
        raise ScenarioValidationError(f"step {position} must be an object")

    action = str(step_raw.get("action", "")).strip()
    if action not in ALLOWED_ACTIONS:
        raise ScenarioValidationError(f"step {position}: invalid action")

    selector = None
    if action in SELECTOR_ACTIONS:
        selector_raw = step_raw.get("selector")
        if not isinstance(selector_raw, dict):
            raise ScenarioValidationError(f"step {position}: selector must be an object")
        try:
            selector = Selector.from_dict(selector_raw)
        except (ValueError, re.error) as exc:
            raise ScenarioValidationError(f"step {position}: {exc}") from exc

    if action in {"fill", "try_fill"} and "value" not in step_raw:
        raise ScenarioValidationError(f"step {position}: value is required")

    path = str(step_raw.get("path", step_raw.get("key", ""))).strip()
    if action in {"navigate", "attach_navigation"} and not path.startswith("/"):
        raise ScenarioValidationError(f"step {position}: path must start with /")
    if action == "seed_storage" and not path:
        raise ScenarioValidationError(f"step {position}: key is required")

    namespace = str(step_raw.get("namespace", "local"))
    if namespace not in NAMESPACES:
        raise ScenarioValidationError(f"step {position}: invalid storage namespace")

    condition = None
    if action in {"wait_for", "assert"}:
        condition = step_raw.get("condition")
        if not isinstance(condition, dict) or len(set(condition) & CONDITION_KEYS) != 1:
            raise ScenarioValidationError(
                f"step {position}: condition must carry exactly one of {sorted(CONDITION_KEYS)}"
            )

    timeout_raw = step_raw.get("timeout_ms")
    timeout_ms = None if timeout_raw is None else int(timeout_raw)
    if timeout_ms is not None and timeout_ms <= 0:
        raise ScenarioValidationError(f"step {position}: timeout_ms must be > 0")

    return Step(
        action=action,
        id=str(step_raw.get("id") or f"step-{position}"),
        selector=selector,
        value=step_raw.get("value", step_raw.get("payload")),
        path=path,
        condition=condition,
        timeout_ms=timeout_ms,
        namespace=namespace,
    )


def _normalize_mock(mock_raw: Any, *, index: int) -> dict[str, Any]:
    position = index + 1
    if not isinstance(mock_raw, dict):
        raise ScenarioValidationError(f"mock {position} must be an object")
    url = str(mock_raw.get("url", "")).strip()
    if not url:
        raise ScenarioValidationError(f"mock {position}: url is required")
    try:
        status = int(mock_raw.get("status", 200))
    except (TypeError, ValueError) as exc:
        raise ScenarioValidationError(f"mock {position}: status must be an integer") from exc
    if status < 100 or status > 599:
        raise ScenarioValidationError(f"mock {position}: status must be between 100 and 599")
    method = mock_raw.get("method")
    delay_raw = mock_raw.get("delay_ms")
    delay_ms = None if delay_raw is None else int(delay_raw)
    if delay_ms is not None and delay_ms < 0:
        raise ScenarioValidationError(f"mock {position}: delay_ms must be >= 0")
    return {
        "url": url,
        "regex": bool(mock_raw.get("regex", False)),
        "method": None if method is None else str(method).upper(),
        "status": status,
        "json": mock_raw.get("json", {}),
        "delay_ms": delay_ms,
    }


def describe_condition(condition: dict[str, Any]) -> str:
    for key in sorted(condition):
        if key in CONDITION_KEYS:
            return f"{key}={condition[key]!r}"
    return "condition"


def _require_selector(step: Step) -> Selector:
    if step.selector is None:
        raise ScenarioValidationError(f"{step.id}: selector is required")
    return step.selector


def _step_result(
    step: Step,
    status: str,
    started: float,
    *,
    error: dict[str, Any] | None = None,
    outcome: str | None = None,
) -> dict[str, Any]:
    return {
        "step_id": step.id,
        "action": step.action,
        "description": step.describe(),
        "status": status,
        "outcome": outcome,
        "latency_ms": round((time.perf_counter() - started) * 1000, 3),
        "error": error,
    }


def utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
