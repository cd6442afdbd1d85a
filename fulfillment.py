"""Fulfillment engine: resolve, invoke and record mocked responses."""

from __future__ import annotations

import json
import logging
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from call_log import CallRecorder
from config import LOG_FORMAT, PASSTHROUGH_TIMEOUT_SECS, STRICT_MODE_DEFAULT
from request import InterceptedRequest
from response import PASS_THROUGH, MockResponse, json_response
from router import ResponderRegistry, RouteRegistration

logger = logging.getLogger(__name__)

FULFILLED = "fulfilled"
PASSTHROUGH = "passthrough"
NO_MATCH = "no_match"
HANDLER_FAULT = "handler_fault"
FORWARD_ERROR = "forward_error"

ForwardFn = Callable[[InterceptedRequest], MockResponse]


class UnmatchedRequestError(LookupError):
    """An intercepted request had no registered handler in strict mode."""

    def __init__(self, request: InterceptedRequest) -> None:
        super().__init__(f"no handler registered for {request.method} {request.url}")
        self.request = request
        self.code = "no_match"


class HandlerFaultError(RuntimeError):
    """A fixture handler raised or produced something that is not a response."""

    def __init__(
        self,
        message: str,
        *,
        request: InterceptedRequest,
        registration_id: int | None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.registration_id = registration_id
        self.code = "handler_fault"


class ForwardError(ConnectionError):
    """Permissive-mode forwarding to the real network failed."""

    def __init__(self, message: str, *, request: InterceptedRequest) -> None:
        super().__init__(message)
        self.request = request
        self.code = "forward_error"


@dataclass(frozen=True, slots=True)
class InterceptOutcome:
    kind: str
    request: InterceptedRequest
    response: MockResponse | None = None
    registration_id: int | None = None
    error: Exception | None = None
    latency_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.kind in {NO_MATCH, HANDLER_FAULT, FORWARD_ERROR}

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error


class FulfillmentEngine:
    def __init__(
        self,
        registry: ResponderRegistry,
        *,
        strict: bool = STRICT_MODE_DEFAULT,
        default_delay_ms: int = 0,
        forward: ForwardFn | None = None,
        recorder: CallRecorder | None = None,
        log_format: str = LOG_FORMAT,
    ) -> None:
        if default_delay_ms < 0:
            raise ValueError("default_delay_ms must be >= 0")
        self.registry = registry
        self.strict = strict
        self.default_delay_ms = default_delay_ms
        self.recorder = recorder or CallRecorder()
        self.log_format = log_format
        self._forward = forward
        self._dispatch_lock = threading.Lock()
        self._failures_lock = threading.Lock()
        self._failures: list[Exception] = []

    def intercept(self, request: InterceptedRequest) -> InterceptOutcome:
        started = time.perf_counter()
        registration = self.registry.resolve(request)
        if registration is None:
            outcome = self._unmatched(request, started)
        else:
            delay_ms = registration.delay_ms
            if delay_ms is None:
                delay_ms = self.default_delay_ms
            if delay_ms > 0:
                time.sleep(delay_ms / 1000)
            with self._dispatch_lock:
                outcome = self._invoke(registration, request, started)

        if outcome.error is not None:
            with self._failures_lock:
                self._failures.append(outcome.error)
        self.recorder.record(
            request,
            outcome=outcome.kind,
            status=None if outcome.response is None else outcome.response.status_code,
            registration_id=outcome.registration_id,
            latency_ms=outcome.latency_ms,
        )
        self._log(outcome)
        return outcome

    def failures(self) -> list[Exception]:
        with self._failures_lock:
            return list(self._failures)

    def raise_for_failures(self) -> None:
        with self._failures_lock:
            first = self._failures[0] if self._failures else None
        if first is not None:
            raise first

    def reset(self) -> None:
        with self._failures_lock:
            self._failures.clear()
        self.recorder.clear()

    def _invoke(
        self,
        registration: RouteRegistration,
        request: InterceptedRequest,
        started: float,
    ) -> InterceptOutcome:
        try:
            produced = registration.handler(request)
        except Exception as exc:
            logger.exception("Fixture handler %s raised", registration.describe())
            fault = HandlerFaultError(
                f"handler {registration.describe()} raised {exc.__class__.__name__}: {exc}",
                request=request,
                registration_id=registration.id,
            )
            fault.__cause__ = exc
            return self._fault(fault, request, registration.id, started)

        if produced is PASS_THROUGH:
            return self._pass_through(request, started, registration_id=registration.id)

        response = coerce_response(produced)
        if response is None:
            fault = HandlerFaultError(
                (
                    f"handler {registration.describe()} returned "
                    f"{type(produced).__name__} instead of a response"
                ),
                request=request,
                registration_id=registration.id,
            )
            return self._fault(fault, request, registration.id, started)

        return InterceptOutcome(
            kind=FULFILLED,
            request=request,
            response=response,
            registration_id=registration.id,
            latency_ms=_elapsed_ms(started),
        )

    def _unmatched(self, request: InterceptedRequest, started: float) -> InterceptOutcome:
        if self.strict:
            return InterceptOutcome(
                kind=NO_MATCH,
                request=request,
                error=UnmatchedRequestError(request),
                latency_ms=_elapsed_ms(started),
            )
        return self._pass_through(request, started, registration_id=None)

    def _pass_through(
        self,
        request: InterceptedRequest,
        started: float,
        *,
        registration_id: int | None,
    ) -> InterceptOutcome:
        if self._forward is None:
            return InterceptOutcome(
                kind=PASSTHROUGH,
                request=request,
                registration_id=registration_id,
                latency_ms=_elapsed_ms(started),
            )
        try:
            response = self._forward(request)
        except Exception as exc:
            logger.exception("Forwarding %s %s failed", request.method, request.url)
            error = ForwardError(
                f"forwarding {request.method} {request.url} failed: {exc.__class__.__name__}: {exc}",
                request=request,
            )
            error.__cause__ = exc
            return InterceptOutcome(
                kind=FORWARD_ERROR,
                request=request,
                response=json_response({"message": str(error)}, status=502),
                registration_id=registration_id,
                error=error,
                latency_ms=_elapsed_ms(started),
            )
        return InterceptOutcome(
            kind=PASSTHROUGH,
            request=request,
            response=response,
            registration_id=registration_id,
            latency_ms=_elapsed_ms(started),
        )

    def _fault(
        self,
        fault: HandlerFaultError,
        request: InterceptedRequest,
        registration_id: int,
        started: float,
    ) -> InterceptOutcome:
        return InterceptOutcome(
            kind=HANDLER_FAULT,
            request=request,
            response=json_response({"message": str(fault)}, status=500),
            registration_id=registration_id,
            error=fault,
            latency_ms=_elapsed_ms(started),
        )

    def _log(self, outcome: InterceptOutcome) -> None:
        event = {
            "method": outcome.request.method,
            "url": outcome.request.url,
            "outcome": outcome.kind,
            "status": None if outcome.response is None else outcome.response.status_code,
            "registration_id": outcome.registration_id,
            "latency_ms": round(outcome.latency_ms, 3),
        }
        level = logging.WARNING if outcome.failed else logging.INFO
        if self.log_format == "json":
            logger.log(level, json.dumps(event, sort_keys=True))
            return

        logger.log(
            level,
            "method=%s url=%s outcome=%s status=%s registration_id=%s latency_ms=%.2f",
            event["method"],
            event["url"],
            event["outcome"],
            event["status"],
            event["registration_id"],
            outcome.latency_ms,
        )


def coerce_response(produced: Any) -> MockResponse | None:
    """Accept a MockResponse or a bare JSON document; anything else is a fault."""
    if isinstance(produced, MockResponse):
        return produced
    if isinstance(produced, (dict, list)):
        return json_response(produced)
    return None


def forward_via_urllib(
    request: InterceptedRequest,
    *,
    timeout_secs: int = PASSTHROUGH_TIMEOUT_SECS,
) -> MockResponse:
    headers = {k: v for k, v in request.headers.items() if k not in {"host", "content-length"}}
    req = urllib.request.Request(
        url=request.url,
        method=request.method,
        headers=headers,
        data=request.body or None,
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_secs) as resp:
            return MockResponse(
                status_code=int(resp.status),
                headers=dict(resp.headers.items()),
                body=resp.read(),
            )
    except urllib.error.HTTPError as exc:
        return MockResponse(
            status_code=int(exc.code),
            headers=dict(exc.headers.items()),
            body=exc.read(),
        )


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
