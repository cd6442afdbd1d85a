"""Per-scenario in-memory stand-in for browser storage and navigation state."""

from __future__ import annotations

import copy
import threading
from typing import Any

LOCAL = "local"
SESSION = "session"
NAMESPACES = (LOCAL, SESSION)

_MISSING = object()


class SessionStateStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, dict[str, Any]] = {name: {} for name in NAMESPACES}
        self._navigation: dict[str, Any] = {}

    def set(self, key: str, value: Any, *, namespace: str = LOCAL) -> None:
        bucket = self._bucket(namespace)
        if not key:
            raise ValueError("key cannot be empty")
        with self._lock:
            bucket[key] = copy.deepcopy(value)

    def get(self, key: str, default: Any = None, *, namespace: str = LOCAL) -> Any:
        bucket = self._bucket(namespace)
        with self._lock:
            value = bucket.get(key, _MISSING)
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def has(self, key: str, *, namespace: str = LOCAL) -> bool:
        bucket = self._bucket(namespace)
        with self._lock:
            return key in bucket

    def delete(self, key: str, *, namespace: str = LOCAL) -> bool:
        bucket = self._bucket(namespace)
        with self._lock:
            return bucket.pop(key, _MISSING) is not _MISSING

    def keys(self, *, namespace: str = LOCAL) -> list[str]:
        bucket = self._bucket(namespace)
        with self._lock:
            return sorted(bucket)

    def clear(self, namespace: str | None = None) -> None:
        """Clear one namespace, or everything including navigation payloads."""
        with self._lock:
            if namespace is None:
                for bucket in self._values.values():
                    bucket.clear()
                self._navigation.clear()
                return
        bucket = self._bucket(namespace)
        with self._lock:
            bucket.clear()

    def attach_navigation_payload(self, route_key: str, payload: Any) -> None:
        if not route_key.startswith("/"):
            raise ValueError("route_key must start with '/'")
        with self._lock:
            self._navigation[route_key] = copy.deepcopy(payload)

    def read_navigation_payload(self, route_key: str, default: Any = None) -> Any:
        with self._lock:
            payload = self._navigation.get(route_key, _MISSING)
        if payload is _MISSING:
            return default
        return copy.deepcopy(payload)

    def pop_navigation_payload(self, route_key: str, default: Any = None) -> Any:
        with self._lock:
            payload = self._navigation.pop(route_key, _MISSING)
        return default if payload is _MISSING else payload

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(
                {
                    LOCAL: self._values[LOCAL],
                    SESSION: self._values[SESSION],
                    "navigation": self._navigation,
                }
            )

    def _bucket(self, namespace: str) -> dict[str, Any]:
        try:
            return self._values[namespace]
        except KeyError:
            raise ValueError(f"unknown storage namespace: {namespace}") from None
