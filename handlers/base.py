"""Reusable fixture handler building blocks."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from request import InterceptedRequest
from response import MockResponse, error_response, json_response

Handler = Callable[[InterceptedRequest], Any]


class CallCounter:
    """Explicit per-scenario hit counter handed to handlers at construction."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0
        self._bodies: list[Any] = []

    def record(self, request: InterceptedRequest) -> None:
        try:
            body = request.json()
        except ValueError:
            body = request.text
        with self._lock:
            self._hits += 1
            self._bodies.append(body)

    @property
    def hits(self) -> int:
        with self._lock:
            return self._hits

    @property
    def called(self) -> bool:
        return self.hits > 0

    @property
    def bodies(self) -> list[Any]:
        with self._lock:
            return list(self._bodies)

    @property
    def last_body(self) -> Any:
        with self._lock:
            return self._bodies[-1] if self._bodies else None


class JsonHandler:
    def __init__(
        self,
        payload: Any,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
        counter: CallCounter | None = None,
    ) -> None:
        self._payload = payload
        self._status = status
        self._headers = dict(headers or {})
        self._counter = counter

    def __call__(self, request: InterceptedRequest) -> MockResponse:
        if self._counter is not None:
            self._counter.record(request)
        return json_response(self._payload, status=self._status, headers=self._headers)


class MethodDispatch:
    """One URL pattern, different behavior per HTTP method."""

    def __init__(
        self,
        routes: Mapping[str, Handler],
        *,
        otherwise: Handler | None = None,
        counter: CallCounter | None = None,
    ) -> None:
        self._routes = {method.upper().strip(): handler for method, handler in routes.items()}
        self._otherwise = otherwise
        self._counter = counter

    @property
    def methods(self) -> list[str]:
        return sorted(self._routes)

    def __call__(self, request: InterceptedRequest) -> Any:
        if self._counter is not None:
            self._counter.record(request)
        handler = self._routes.get(request.method)
        if handler is not None:
            return handler(request)
        if self._otherwise is not None:
            return self._otherwise(request)
        return json_response(
            {"message": f"{request.method} is not mocked for this route"},
            status=405,
            headers={"Allow": ", ".join(self.methods)},
        )


class SequenceHandler:
    """Serve responses in order, repeating the last one once exhausted."""

    def __init__(
        self,
        responses: Sequence[MockResponse | Handler],
        *,
        counter: CallCounter | None = None,
    ) -> None:
        if not responses:
            raise ValueError("responses cannot be empty")
        self._responses = list(responses)
        self._lock = threading.Lock()
        self._position = 0
        self._counter = counter

    def __call__(self, request: InterceptedRequest) -> Any:
        if self._counter is not None:
            self._counter.record(request)
        with self._lock:
            item = self._responses[min(self._position, len(self._responses) - 1)]
            self._position += 1
        if isinstance(item, MockResponse):
            return item
        return item(request)


def status_handler(status: int, message: str, *, counter: CallCounter | None = None) -> Handler:
    """A handler that always answers ``{"message": ...}`` with ``status``."""

    def _handler(request: InterceptedRequest) -> MockResponse:
        if counter is not None:
            counter.record(request)
        return error_response(message, status=status)

    return _handler
