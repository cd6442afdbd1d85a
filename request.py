"""Intercepted outbound request model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlsplit


@dataclass(frozen=True, slots=True)
class InterceptedRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper().strip())
        object.__setattr__(
            self,
            "headers",
            {str(k).lower(): str(v) for k, v in self.headers.items()},
        )
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        elif self.body is None:
            object.__setattr__(self, "body", b"")

    @classmethod
    def with_json(
        cls,
        method: str,
        url: str,
        payload: Any,
        *,
        headers: dict[str, str] | None = None,
    ) -> "InterceptedRequest":
        merged = {"content-type": "application/json"}
        merged.update(headers or {})
        return cls(
            method=method,
            url=url,
            headers=merged,
            body=json.dumps(payload).encode("utf-8"),
        )

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def query_params(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    def query_value(self, name: str, default: str | None = None) -> str | None:
        values = self.query_params.get(name)
        if not values:
            return default
        return values[0]

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    @property
    def bearer_token(self) -> str | None:
        value = self.header("authorization", "") or ""
        scheme, _, token = value.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON; an empty body decodes to None."""
        if not self.body:
            return None
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"request body is not valid JSON: {exc}") from exc
