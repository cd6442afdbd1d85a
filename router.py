"""Ordered responder registry with newest-registration-wins resolution."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from request import InterceptedRequest
from route_matcher import RoutePattern, as_pattern, matches

Handler = Callable[[InterceptedRequest], Any]


@dataclass(frozen=True, slots=True)
class RouteRegistration:
    id: int
    pattern: RoutePattern
    handler: Handler
    registered_at: float
    delay_ms: int | None = None
    name: str = ""

    def describe(self) -> str:
        method = self.pattern.method or "*"
        label = f" ({self.name})" if self.name else ""
        return f"#{self.id} {method} {self.pattern.describe()}{label}"


class ResponderRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._registrations: list[RouteRegistration] = []
        self._next_id = 1

    def register(
        self,
        pattern: object,
        handler: Handler,
        *,
        method: str | None = None,
        delay_ms: int | None = None,
        name: str = "",
    ) -> int:
        route_pattern = as_pattern(pattern, method=method)
        if delay_ms is not None and delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        with self._lock:
            registration = RouteRegistration(
                id=self._next_id,
                pattern=route_pattern,
                handler=handler,
                registered_at=time.monotonic(),
                delay_ms=delay_ms,
                name=name,
            )
            self._next_id += 1
            self._registrations.append(registration)
            return registration.id

    def resolve(self, request: InterceptedRequest) -> RouteRegistration | None:
        with self._lock:
            candidates = list(self._registrations)
        for registration in reversed(candidates):
            if matches(registration.pattern, request.method, request.url):
                return registration
        return None

    def unregister(self, registration_id: int) -> bool:
        with self._lock:
            for index, registration in enumerate(self._registrations):
                if registration.id == registration_id:
                    del self._registrations[index]
                    return True
        return False

    def unregister_all(self) -> None:
        with self._lock:
            self._registrations.clear()

    def registrations(self) -> list[RouteRegistration]:
        with self._lock:
            return list(self._registrations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._registrations)
