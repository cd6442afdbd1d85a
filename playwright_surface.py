"""Bind the fulfillment engine and scenario driver to a Playwright page."""

from __future__ import annotations

import json
import logging
from typing import Any

from playwright.sync_api import Locator, Page, Route
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from config import DEFAULT_BASE_URL, DEFAULT_NAVIGATION_TIMEOUT_MS
from fulfillment import PASSTHROUGH, FulfillmentEngine
from request import InterceptedRequest
from session_store import LOCAL, SESSION, SessionStateStore
from surface import Selector

logger = logging.getLogger(__name__)

DEFAULT_INTERCEPT_PATTERN = "**/api/**"

_APPLY_STORAGE_JS = """
(state) => {
  for (const [key, value] of Object.entries(state.local)) {
    localStorage.setItem(key, value);
  }
  for (const [key, value] of Object.entries(state.session)) {
    sessionStorage.setItem(key, value);
  }
  if (state.navigation !== null) {
    window.history.replaceState(state.navigation, '', window.location.pathname);
  }
}
"""

_READ_STORAGE_JS = """
() => ({ local: { ...localStorage }, session: { ...sessionStorage } })
"""


def request_from_route(route: Route) -> InterceptedRequest:
    pw_request = route.request
    return InterceptedRequest(
        method=pw_request.method,
        url=pw_request.url,
        headers=dict(pw_request.headers),
        body=pw_request.post_data_buffer or b"",
    )


class PlaywrightInterceptor:
    def __init__(
        self,
        engine: FulfillmentEngine,
        *,
        url_pattern: str = DEFAULT_INTERCEPT_PATTERN,
        abort_error_code: str = "failed",
    ) -> None:
        self._engine = engine
        self._url_pattern = url_pattern
        self._abort_error_code = abort_error_code
        self._pages: list[Page] = []

    def attach(self, page: Page) -> None:
        page.route(self._url_pattern, self.handle_route)
        self._pages.append(page)

    def detach(self) -> None:
        while self._pages:
            page = self._pages.pop()
            if page.is_closed():
                continue
            page.unroute(self._url_pattern, self.handle_route)

    def handle_route(self, route: Route) -> None:
        outcome = self._engine.intercept(request_from_route(route))
        if outcome.failed:
            route.abort(self._abort_error_code)
            return
        if outcome.kind == PASSTHROUGH and outcome.response is None:
            route.continue_()
            return
        route.fulfill(**outcome.response.to_fulfill_kwargs())


class PlaywrightElement:
    def __init__(self, locator: Locator) -> None:
        self._locator = locator

    def fill(self, value: str) -> None:
        self._locator.fill(value)

    def click(self) -> None:
        self._locator.click()

    def is_visible(self) -> bool:
        return self._locator.is_visible()

    def text_content(self) -> str:
        return self._locator.text_content() or ""


class PlaywrightSurface:
    def __init__(
        self,
        page: Page,
        *,
        base_url: str = DEFAULT_BASE_URL,
        interceptor: PlaywrightInterceptor | None = None,
        close_page: bool = True,
    ) -> None:
        self.page = page
        self.base_url = base_url.rstrip("/")
        self._interceptor = interceptor
        self._close_page = close_page
        self._closed = False
        if interceptor is not None:
            interceptor.attach(page)

    @property
    def current_url(self) -> str:
        return self.page.url

    def load(self, path: str, *, timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS) -> None:
        url = path if "://" in path else f"{self.base_url}{path}"
        try:
            self.page.goto(url, timeout=timeout_ms, wait_until="load")
        except PlaywrightTimeoutError as exc:
            raise TimeoutError(f"navigation to {path} exceeded {timeout_ms}ms") from exc

    def query(self, selector: Selector) -> list[PlaywrightElement]:
        locator = self._locator(selector)
        if selector.nth is not None:
            locator = locator.nth(selector.nth)
            return [PlaywrightElement(locator)] if locator.count() > 0 else []
        return [PlaywrightElement(locator.nth(index)) for index in range(locator.count())]

    def text_content(self) -> str:
        return self.page.locator("body").inner_text()

    def snapshot(self) -> dict[str, Any]:
        return {"url": self.page.url, "title": self.page.title()}

    def pause(self, ms: int) -> None:
        # Lets Playwright dispatch route callbacks while the driver polls.
        self.page.wait_for_timeout(ms)

    def apply_storage(self, store: SessionStateStore) -> None:
        """Seed browser storage and the current history entry from the store."""
        path = self.page.evaluate("() => window.location.pathname")
        state = {
            "local": {key: _as_storage_value(store.get(key)) for key in store.keys()},
            "session": {
                key: _as_storage_value(store.get(key, namespace=SESSION))
                for key in store.keys(namespace=SESSION)
            },
            "navigation": store.read_navigation_payload(path),
        }
        self.page.evaluate(_APPLY_STORAGE_JS, state)

    def read_storage(self, store: SessionStateStore) -> None:
        """Mirror the page's localStorage/sessionStorage back into the store."""
        state = self.page.evaluate(_READ_STORAGE_JS)
        store.clear(LOCAL)
        store.clear(SESSION)
        for key, value in (state.get("local") or {}).items():
            store.set(key, value)
        for key, value in (state.get("session") or {}).items():
            store.set(key, value, namespace=SESSION)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._interceptor is not None:
            self._interceptor.detach()
        if self._close_page and not self.page.is_closed():
            self.page.close()

    def _locator(self, selector: Selector) -> Locator:
        if selector.role is not None:
            if selector.name is None:
                return self.page.get_by_role(selector.role)
            return self.page.get_by_role(selector.role, name=selector.name, exact=selector.exact)
        if selector.text is not None:
            return self.page.get_by_text(selector.text, exact=selector.exact)
        return self.page.locator(selector.css or "")


def _as_storage_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)
