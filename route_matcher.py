"""Route patterns and the (method, URL) match predicate."""

from __future__ import annotations

import re
from dataclasses import dataclass, field


class PatternError(ValueError):
    def __init__(self, message: str, *, code: str = "invalid_pattern") -> None:
        super().__init__(message)
        self.code = code


def _normalize_method(method: str | None) -> str | None:
    if method is None:
        return None
    normalized = method.upper().strip()
    if not normalized:
        raise PatternError("method cannot be empty")
    return normalized


@dataclass(frozen=True, slots=True)
class ExactPattern:
    url: str
    method: str | None = None

    def __post_init__(self) -> None:
        if not self.url:
            raise PatternError("exact url cannot be empty")
        object.__setattr__(self, "method", _normalize_method(self.method))

    def matches_url(self, url: str) -> bool:
        return url == self.url

    def describe(self) -> str:
        return f"exact:{self.url}"


@dataclass(frozen=True, slots=True)
class GlobPattern:
    glob: str
    method: str | None = None
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.glob:
            raise PatternError("glob cannot be empty")
        object.__setattr__(self, "method", _normalize_method(self.method))
        object.__setattr__(self, "_compiled", compile_glob(self.glob))

    def matches_url(self, url: str) -> bool:
        return self._compiled.fullmatch(url) is not None

    def describe(self) -> str:
        return f"glob:{self.glob}"


@dataclass(frozen=True, slots=True)
class RegexPattern:
    regex: str
    method: str | None = None
    flags: int = 0
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", _normalize_method(self.method))
        try:
            compiled = re.compile(self.regex, self.flags)
        except re.error as exc:
            raise PatternError(f"invalid regex {self.regex!r}: {exc}") from exc
        object.__setattr__(self, "_compiled", compiled)

    def matches_url(self, url: str) -> bool:
        return self._compiled.search(url) is not None

    def describe(self) -> str:
        return f"regex:{self.regex}"


RoutePattern = ExactPattern | GlobPattern | RegexPattern


def compile_glob(glob: str) -> re.Pattern[str]:
    """Translate a URL glob into an anchored regular expression.

    ``**`` matches any run of characters including ``/``; ``*`` matches any
    run that stays within one path segment. Everything else is literal.
    """
    parts: list[str] = []
    index = 0
    while index < len(glob):
        char = glob[index]
        if char == "*":
            if glob.startswith("**", index):
                parts.append(".*")
                index += 2
                while index < len(glob) and glob[index] == "*":
                    index += 1
                continue
            parts.append("[^/]*")
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts), re.DOTALL)


def matches(pattern: RoutePattern, method: str, url: str) -> bool:
    if pattern.method is not None and pattern.method != method.upper().strip():
        return False
    return pattern.matches_url(url)


def as_pattern(value: object, *, method: str | None = None) -> RoutePattern:
    """Coerce a string, compiled regex or existing pattern into a RoutePattern."""
    if isinstance(value, (ExactPattern, GlobPattern, RegexPattern)):
        if method is None:
            return value
        if isinstance(value, ExactPattern):
            return ExactPattern(value.url, method=method)
        if isinstance(value, GlobPattern):
            return GlobPattern(value.glob, method=method)
        return RegexPattern(value.regex, method=method, flags=value.flags)
    if isinstance(value, re.Pattern):
        return RegexPattern(value.pattern, method=method, flags=value.flags)
    if isinstance(value, str):
        if "*" in value:
            return GlobPattern(value, method=method)
        return ExactPattern(value, method=method)
    raise PatternError(f"unsupported route pattern: {value!r}")
