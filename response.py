"""Synthetic response model produced by fixture handlers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    201: "Created",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class MockResponse:
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        if self.status_code < 100 or self.status_code > 599:
            raise ValueError("status must be between 100 and 599")
        headers = dict(self.headers)
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = TEXT_CONTENT_TYPE
        object.__setattr__(self, "headers", headers)

    @property
    def reason_phrase(self) -> str:
        return REASON_PHRASES.get(self.status_code, "Unknown")

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return TEXT_CONTENT_TYPE

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))

    def to_fulfill_kwargs(self) -> dict[str, Any]:
        """Keyword arguments accepted by Playwright's ``route.fulfill``."""
        headers = {k: v for k, v in self.headers.items() if k.lower() != "content-type"}
        return {
            "status": self.status_code,
            "headers": headers,
            "content_type": self.content_type,
            "body": self.body,
        }


class _PassThrough:
    """Handler directive: let the request continue to the real network."""

    _instance: "_PassThrough | None" = None

    def __new__(cls) -> "_PassThrough":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PASS_THROUGH"


PASS_THROUGH = _PassThrough()


def json_response(
    payload: Any,
    *,
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> MockResponse:
    merged = dict(headers or {})
    merged.setdefault("Content-Type", JSON_CONTENT_TYPE)
    return MockResponse(
        status_code=status,
        headers=merged,
        body=json.dumps(payload).encode("utf-8"),
    )


def text_response(
    body: str,
    *,
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> MockResponse:
    merged = dict(headers or {})
    merged.setdefault("Content-Type", TEXT_CONTENT_TYPE)
    return MockResponse(status_code=status, headers=merged, body=body)


def error_response(message: str, *, status: int) -> MockResponse:
    return json_response({"message": message}, status=status)
