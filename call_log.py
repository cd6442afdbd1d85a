"""Bounded in-memory log of intercepted calls for "was this endpoint called" checks."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any

from config import CALL_LOG_BUFFER_SIZE
from request import InterceptedRequest
from route_matcher import as_pattern, matches


@dataclass(frozen=True, slots=True)
class RecordedCall:
    id: int
    ts: str
    method: str
    url: str
    body: bytes
    outcome: str
    status: int | None
    registration_id: int | None
    latency_ms: float

    def json(self) -> Any:
        return InterceptedRequest(method=self.method, url=self.url, body=self.body).json()


class CallRecorder:
    def __init__(self, *, buffer_size: int = CALL_LOG_BUFFER_SIZE) -> None:
        self._buffer_size = max(10, buffer_size)
        self._lock = threading.Lock()
        self._calls: deque[RecordedCall] = deque(maxlen=self._buffer_size)
        self._next_id = 1

    def record(
        self,
        request: InterceptedRequest,
        *,
        outcome: str,
        status: int | None,
        registration_id: int | None,
        latency_ms: float = 0.0,
    ) -> RecordedCall:
        with self._lock:
            call = RecordedCall(
                id=self._next_id,
                ts=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                method=request.method,
                url=request.url,
                body=request.body,
                outcome=outcome,
                status=status,
                registration_id=registration_id,
                latency_ms=round(latency_ms, 3),
            )
            self._next_id += 1
            self._calls.append(call)
            return call

    def calls(
        self,
        pattern: object | None = None,
        *,
        method: str | None = None,
    ) -> list[RecordedCall]:
        with self._lock:
            snapshot = list(self._calls)
        if pattern is None and method is None:
            return snapshot
        if pattern is None:
            wanted = method.upper().strip() if method else None
            return [call for call in snapshot if call.method == wanted]
        route_pattern = as_pattern(pattern, method=method)
        return [call for call in snapshot if matches(route_pattern, call.method, call.url)]

    def count(self, pattern: object | None = None, *, method: str | None = None) -> int:
        return len(self.calls(pattern, method=method))

    def was_called(self, pattern: object | None = None, *, method: str | None = None) -> bool:
        return self.count(pattern, method=method) > 0

    def last(
        self,
        pattern: object | None = None,
        *,
        method: str | None = None,
    ) -> RecordedCall | None:
        found = self.calls(pattern, method=method)
        return found[-1] if found else None

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._calls)
