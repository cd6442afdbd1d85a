"""UI surfaces the scenario driver acts on, plus an in-process simulated one."""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from config import DEFAULT_BASE_URL, DEFAULT_NAVIGATION_TIMEOUT_MS
from fulfillment import PASSTHROUGH, FulfillmentEngine
from request import InterceptedRequest
from response import MockResponse, text_response
from session_store import SessionStateStore

logger = logging.getLogger(__name__)

TEXT_INPUT_ROLES = {"textbox", "searchbox", "combobox", "spinbutton"}


@dataclass(frozen=True, slots=True)
class Selector:
    role: str | None = None
    name: str | re.Pattern[str] | None = None
    text: str | re.Pattern[str] | None = None
    css: str | None = None
    exact: bool = False
    nth: int | None = None

    def __post_init__(self) -> None:
        kinds = [item for item in (self.role, self.text, self.css) if item is not None]
        if len(kinds) != 1:
            raise ValueError("selector needs exactly one of role, text or css")
        if self.name is not None and self.role is None:
            raise ValueError("name only applies to role selectors")
        if self.nth is not None and self.nth < 0:
            raise ValueError("nth must be >= 0")

    @classmethod
    def by_role(
        cls,
        role: str,
        name: str | re.Pattern[str] | None = None,
        *,
        exact: bool = False,
    ) -> "Selector":
        return cls(role=role, name=name, exact=exact)

    @classmethod
    def by_text(cls, text: str | re.Pattern[str], *, exact: bool = False) -> "Selector":
        return cls(text=text, exact=exact)

    @classmethod
    def by_css(cls, css: str) -> "Selector":
        return cls(css=css)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Selector":
        """Build a selector from JSON; ``*_regex`` keys compile case-insensitively."""
        name: str | re.Pattern[str] | None = raw.get("name")
        if raw.get("name_regex") is not None:
            name = re.compile(str(raw["name_regex"]), re.IGNORECASE)
        text: str | re.Pattern[str] | None = raw.get("text")
        if raw.get("text_regex") is not None:
            text = re.compile(str(raw["text_regex"]), re.IGNORECASE)
        nth = raw.get("nth")
        return cls(
            role=raw.get("role"),
            name=name,
            text=text,
            css=raw.get("css"),
            exact=bool(raw.get("exact", False)),
            nth=None if nth is None else int(nth),
        )

    def first(self) -> "Selector":
        return replace(self, nth=0)

    def at(self, index: int) -> "Selector":
        return replace(self, nth=index)

    def describe(self) -> str:
        if self.role is not None:
            base = f"role={self.role}"
            if self.name is not None:
                base += f" name={_describe_text(self.name)}"
        elif self.text is not None:
            base = f"text={_describe_text(self.text)}"
        else:
            base = f"css={self.css}"
        if self.exact:
            base += " exact"
        if self.nth is not None:
            base += f" nth={self.nth}"
        return base

    def text_matches(self, expected: str | re.Pattern[str] | None, candidate: str) -> bool:
        if expected is None:
            return True
        if isinstance(expected, re.Pattern):
            return expected.search(candidate) is not None
        if self.exact:
            return candidate == expected
        return expected.lower() in candidate.lower()


def _describe_text(value: str | re.Pattern[str]) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return repr(value)


class UIElement(Protocol):
    def fill(self, value: str) -> None: ...

    def click(self) -> None: ...

    def is_visible(self) -> bool: ...

    def text_content(self) -> str: ...


class UISurface(Protocol):
    @property
    def current_url(self) -> str: ...

    def load(self, path: str, *, timeout_ms: int) -> None: ...

    def query(self, selector: Selector) -> list[Any]: ...

    def snapshot(self) -> dict[str, Any]: ...

    def pause(self, ms: int) -> None: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class SimulatedElement:
    role: str
    name: str = ""
    text: str = ""
    element_id: str = ""
    value: str = ""
    visible: bool = True
    disabled: bool = False
    on_click: Callable[[], None] | None = field(default=None, repr=False)
    on_fill: Callable[[str], None] | None = field(default=None, repr=False)

    def fill(self, value: str) -> None:
        if self.role not in TEXT_INPUT_ROLES:
            raise ValueError(f"cannot fill a {self.role} element")
        if self.disabled:
            raise RuntimeError(f"{self.role} {self.name!r} is disabled")
        self.value = value
        if self.on_fill is not None:
            self.on_fill(value)

    def click(self) -> None:
        if self.disabled:
            raise RuntimeError(f"{self.role} {self.name!r} is disabled")
        if self.on_click is not None:
            self.on_click()

    def is_visible(self) -> bool:
        return self.visible

    def text_content(self) -> str:
        return self.text or self.name

    def describe(self) -> str:
        label = self.name or self.text
        return f"{self.role}:{label}" if label else self.role


PageBuilder = Callable[["SimulatedSurface"], list[SimulatedElement]]


def _not_found_page(surface: "SimulatedSurface") -> list[SimulatedElement]:
    _ = surface
    return [
        SimulatedElement(role="heading", name="Oops"),
        SimulatedElement(role="paragraph", text="It looks like we have dropped a pizza on the floor."),
    ]


class SimulatedSurface:
    """A browser stand-in whose pages are Python builders.

    Page builders receive the surface and return the elements to render.
    Application code issues HTTP calls through ``fetch``/``fetch_async`` so
    they pass through the fulfillment engine exactly as a browser page's
    requests would, and keeps its storage in the scenario's state store.
    """

    def __init__(
        self,
        *,
        engine: FulfillmentEngine,
        store: SessionStateStore | None = None,
        base_url: str = DEFAULT_BASE_URL,
        max_inflight: int = 4,
    ) -> None:
        self.engine = engine
        self.store = store or SessionStateStore()
        self.base_url = base_url.rstrip("/")
        self._lock = threading.RLock()
        self._pages: dict[str, PageBuilder] = {}
        self._elements: list[SimulatedElement] = []
        self._path = ""
        self._history: list[str] = []
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_inflight),
            thread_name_prefix="simulated-fetch",
        )
        self._inflight: set[Future[MockResponse]] = set()
        self._closed = False

    # page model

    def add_page(self, path: str, builder: PageBuilder) -> None:
        if not path.startswith("/"):
            raise ValueError("path must start with '/'")
        self._pages[path] = builder

    @property
    def current_path(self) -> str:
        return self._path

    @property
    def current_url(self) -> str:
        return f"{self.base_url}{self._path}"

    @property
    def history(self) -> list[str]:
        return list(self._history)

    @property
    def navigation_state(self) -> Any:
        return self.store.read_navigation_payload(self._path or "/")

    def load(self, path: str, *, timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS) -> None:
        self._ensure_open()
        started = time.monotonic()
        self.redirect(path)
        elapsed_ms = (time.monotonic() - started) * 1000
        if elapsed_ms > timeout_ms:
            raise TimeoutError(
                f"navigation to {path} took {elapsed_ms:.0f}ms, limit {timeout_ms}ms"
            )

    def redirect(self, path: str) -> None:
        """Application-side navigation, e.g. after a successful form submit."""
        self._ensure_open()
        route = path.split("?", 1)[0] or "/"
        builder = self._pages.get(route, _not_found_page)
        with self._lock:
            self._path = path
            self._history.append(path)
        elements = builder(self)
        with self._lock:
            if self._path == path:
                self._elements = list(elements)

    def reload(self) -> None:
        self.redirect(self._path or "/")

    def add_element(self, element: SimulatedElement) -> None:
        with self._lock:
            self._elements.append(element)

    def remove_elements(self, predicate: Callable[[SimulatedElement], bool]) -> int:
        with self._lock:
            kept = [element for element in self._elements if not predicate(element)]
            removed = len(self._elements) - len(kept)
            self._elements = kept
            return removed

    def elements(self) -> list[SimulatedElement]:
        with self._lock:
            return list(self._elements)

    def query(self, selector: Selector) -> list[SimulatedElement]:
        self._ensure_open()
        found = [element for element in self.elements() if self._selects(selector, element)]
        if selector.nth is None:
            return found
        if selector.nth < len(found):
            return [found[selector.nth]]
        return []

    def text_content(self) -> str:
        return "\n".join(
            element.text_content() for element in self.elements() if element.is_visible()
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "url": self.current_url,
            "elements": [element.describe() for element in self.elements() if element.visible],
            "storage": self.store.snapshot(),
        }

    def pause(self, ms: int) -> None:
        time.sleep(max(0, ms) / 1000)

    # network

    def fetch(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> MockResponse:
        self._ensure_open()
        url = path if "://" in path else f"{self.base_url}{path}"
        if json is None:
            request = InterceptedRequest(method=method, url=url, headers=dict(headers or {}))
        else:
            request = InterceptedRequest.with_json(method, url, json, headers=headers)
        outcome = self.engine.intercept(request)
        if outcome.failed:
            raise ConnectionError(f"request aborted: {request.method} {request.url}")
        if outcome.response is not None:
            return outcome.response
        if outcome.kind == PASSTHROUGH:
            return text_response("network unavailable in simulated surface", status=502)
        raise ConnectionError(f"request produced no response: {request.method} {request.url}")

    def fetch_async(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        on_response: Callable[[MockResponse], None] | None = None,
    ) -> Future[MockResponse]:
        self._ensure_open()

        def _run() -> MockResponse:
            response = self.fetch(method, path, json=json, headers=headers)
            if on_response is not None and not self._closed:
                on_response(response)
            return response

        future = self._executor.submit(_run)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._forget)
        return future

    def auth_headers(self) -> dict[str, str]:
        token = self.store.get("token")
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def inflight(self) -> int:
        with self._lock:
            return len(self._inflight)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._elements = []
        self._executor.shutdown(wait=True, cancel_futures=True)

    @property
    def closed(self) -> bool:
        return self._closed

    def _forget(self, future: Future[MockResponse]) -> None:
        with self._lock:
            self._inflight.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.warning("Simulated fetch failed: %s", future.exception())

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("surface is closed")

    def _selects(self, selector: Selector, element: SimulatedElement) -> bool:
        if selector.role is not None:
            if element.role != selector.role:
                return False
            return selector.text_matches(selector.name, element.name)
        if selector.text is not None:
            return element.visible and selector.text_matches(
                selector.text, element.text_content()
            )
        css = selector.css or ""
        if css.startswith("#"):
            return element.element_id == css[1:]
        raise ValueError(f"unsupported css selector for simulated surface: {css}")
