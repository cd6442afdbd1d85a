"""Stateful fixture backend for the pizza storefront API.

One ``PizzaBackend`` is created per scenario. It owns copies of the canned
records in ``pizza_data`` and mutates them as mocked calls arrive, so a
franchise created by one request shows up in the next listing. Handlers
echo request-supplied fields back where the request determines the result.
"""

from __future__ import annotations

import copy
import re
import threading
from typing import Any

from config import DUPLICATE_REGISTRATION_POLICY
from handlers import pizza_data
from handlers.base import CallCounter, MethodDispatch
from request import InterceptedRequest
from response import MockResponse, error_response, json_response
from route_matcher import GlobPattern, RegexPattern, compile_glob
from router import ResponderRegistry

DUPLICATE_POLICIES = {"allow", "reject"}

AUTH_PATTERN = GlobPattern("*/**/api/auth")
USER_ME_PATTERN = GlobPattern("*/**/api/user/me")
USER_UPDATE_PATTERN = RegexPattern(r"/api/user/\d+$")
FRANCHISES_PATTERN = RegexPattern(r"/api/franchise(\?.*)?$")
FRANCHISE_ITEM_PATTERN = RegexPattern(r"/api/franchise/\d+$")
STORES_PATTERN = RegexPattern(r"/api/franchise/\d+/store$")
STORE_ITEM_PATTERN = RegexPattern(r"/api/franchise/\d+/store/\d+$")
MENU_PATTERN = GlobPattern("*/**/api/order/menu")
ORDERS_PATTERN = GlobPattern("*/**/api/order")
VERIFY_PATTERN = GlobPattern("*/**/api/order/verify")
DOCS_PATTERN = GlobPattern("**/api/docs")

_USER_ID_RE = re.compile(r"/api/user/(\d+)")
_FRANCHISE_ID_RE = re.compile(r"/api/franchise/(\d+)")
_STORE_ID_RE = re.compile(r"/api/franchise/(\d+)/store/(\d+)")


class PizzaBackend:
    def __init__(
        self,
        *,
        duplicate_registration: str = DUPLICATE_REGISTRATION_POLICY,
        default_user: dict[str, Any] | None = None,
        require_token: bool = False,
    ) -> None:
        if duplicate_registration not in DUPLICATE_POLICIES:
            raise ValueError("duplicate_registration must be 'allow' or 'reject'")
        self.duplicate_registration = duplicate_registration
        self.require_token = require_token
        self._lock = threading.Lock()
        self._accounts = copy.deepcopy(pizza_data.ACCOUNTS)
        self._sessions: dict[str, dict[str, Any]] = {}
        self._default_user = copy.deepcopy(default_user)
        self._franchises = copy.deepcopy(pizza_data.FRANCHISES)
        self._user_franchises = copy.deepcopy(pizza_data.USER_FRANCHISES)
        self._menu = copy.deepcopy(pizza_data.MENU)
        self._orders = copy.deepcopy(pizza_data.ORDER_HISTORY)
        self._next_user_id = 100
        self._next_franchise_id = 1 + max((f["id"] for f in self._franchises), default=0)
        self._next_store_id = 1 + max(
            (
                store["id"]
                for franchise in self._all_franchises_locked()
                for store in franchise["stores"]
            ),
            default=0,
        )
        self._next_order_id = 1 + max((o["id"] for o in self._orders), default=0)
        self._next_admin_id = 1 + max(
            (
                admin["id"]
                for franchise in self._all_franchises_locked()
                for admin in franchise["admins"]
            ),
            default=0,
        )
        self.counters: dict[str, CallCounter] = {
            name: CallCounter()
            for name in (
                "auth",
                "user_me",
                "user_update",
                "franchises",
                "franchise_item",
                "stores",
                "store_item",
                "menu",
                "orders",
                "verify",
                "docs",
            )
        }

    # auth

    def auth(self, request: InterceptedRequest) -> MockResponse:
        if request.method == "DELETE":
            return self.logout(request)
        try:
            body = request.json() or {}
        except ValueError:
            return error_response("invalid request body", status=400)
        if not isinstance(body, dict):
            return error_response("invalid request body", status=400)
        if request.method == "POST" and "name" in body:
            return self.register(body)
        if request.method in {"PUT", "POST"}:
            return self.login(body)
        return error_response(f"{request.method} is not mocked for this route", status=405)

    def login(self, body: dict[str, Any]) -> MockResponse:
        email = str(body.get("email", ""))
        password = str(body.get("password", ""))
        with self._lock:
            account = self._accounts.get(email)
            if account is None or account[0] != password:
                return error_response("Unauthorized", status=401)
            _, user, token = account
            self._sessions[token] = user
            return json_response({"user": copy.deepcopy(user), "token": token})

    def register(self, body: dict[str, Any]) -> MockResponse:
        name = str(body.get("name", "")).strip()
        email = str(body.get("email", "")).strip()
        password = str(body.get("password", ""))
        if not name or not email or not password:
            return error_response("name, email, and password are required", status=400)
        with self._lock:
            if email in self._accounts and self.duplicate_registration == "reject":
                return error_response("user already exists", status=409)
            user_id = str(self._next_user_id)
            self._next_user_id += 1
            user = {"id": user_id, "name": name, "email": email, "roles": [{"role": "diner"}]}
            token = f"diner-token-{user_id}"
            self._accounts[email] = (password, user, token)
            self._sessions[token] = user
            return json_response({"user": copy.deepcopy(user), "token": token})

    def logout(self, request: InterceptedRequest) -> MockResponse:
        token = request.bearer_token
        with self._lock:
            if token is not None:
                self._sessions.pop(token, None)
        return json_response({"message": "logout successful"})

    def user_me(self, request: InterceptedRequest) -> MockResponse:
        user = self.user_for(request)
        if user is None:
            return error_response("Unauthorized", status=401)
        return json_response(user)

    def update_user(self, request: InterceptedRequest) -> MockResponse:
        """Merge name, email and password into the addressed user and echo it back."""
        body = _json_object(request)
        if body is None:
            return error_response("invalid request body", status=400)
        user_id = str(_path_int(_USER_ID_RE, request.path, group=1))
        changes = {key: body[key] for key in ("name", "email") if key in body}
        with self._lock:
            found = None
            for email, (password, user, token) in self._accounts.items():
                if str(user.get("id")) == user_id:
                    found = (email, password, user, token)
                    break
            if found is None:
                updated = {"id": user_id, "roles": [{"role": "diner"}]}
                updated.update(changes)
                token = request.bearer_token or f"diner-token-{user_id}"
                self._sessions[token] = updated
                return json_response({"user": copy.deepcopy(updated), "token": token})
            email, password, user, token = found
            updated = dict(user)
            updated.update(changes)
            if body.get("password"):
                password = str(body["password"])
            del self._accounts[email]
            self._accounts[str(updated.get("email", email))] = (password, updated, token)
            for known_token, session_user in list(self._sessions.items()):
                if str(session_user.get("id")) == user_id:
                    self._sessions[known_token] = updated
            return json_response({"user": copy.deepcopy(updated), "token": token})

    def user_for(self, request: InterceptedRequest) -> dict[str, Any] | None:
        token = request.bearer_token
        with self._lock:
            if token is not None and token in self._sessions:
                return copy.deepcopy(self._sessions[token])
            if token is not None:
                for _password, user, known_token in self._accounts.values():
                    if known_token == token:
                        return copy.deepcopy(user)
            if self.require_token:
                return None
            return copy.deepcopy(self._default_user)

    # franchises and stores

    def list_franchises(self, request: InterceptedRequest) -> MockResponse:
        name_filter = request.query_value("name", "*") or "*"
        try:
            page = max(0, int(request.query_value("page", "0") or 0))
            limit = max(1, int(request.query_value("limit", "10") or 10))
        except ValueError:
            return error_response("page and limit must be integers", status=400)
        matcher = compile_glob(name_filter)
        with self._lock:
            selected = [f for f in self._franchises if matcher.fullmatch(f["name"])]
            window = selected[page * limit : (page + 1) * limit]
            return json_response(
                {
                    "franchises": copy.deepcopy(window),
                    "more": len(selected) > (page + 1) * limit,
                }
            )

    def create_franchise(self, request: InterceptedRequest) -> MockResponse:
        body = _json_object(request)
        if body is None or not str(body.get("name", "")).strip():
            return error_response("franchise name is required", status=400)
        admins_raw = body.get("admins") or []
        if not isinstance(admins_raw, list):
            return error_response("admins must be a list", status=400)
        with self._lock:
            admins = []
            for raw in admins_raw:
                if not isinstance(raw, dict):
                    continue
                admins.append(
                    {
                        "id": self._next_admin_id,
                        "name": raw.get("name", "New Admin"),
                        "email": raw.get("email", ""),
                    }
                )
                self._next_admin_id += 1
            created = {
                "id": self._next_franchise_id,
                "name": body["name"],
                "admins": admins,
                "stores": [],
            }
            self._next_franchise_id += 1
            self._franchises.append(created)
            return json_response(copy.deepcopy(created))

    def user_franchises(self, request: InterceptedRequest) -> MockResponse:
        user_id = _path_int(_FRANCHISE_ID_RE, request.path, group=1)
        with self._lock:
            return json_response(copy.deepcopy(self._user_franchises.get(str(user_id), [])))

    def delete_franchise(self, request: InterceptedRequest) -> MockResponse:
        franchise_id = _path_int(_FRANCHISE_ID_RE, request.path, group=1)
        with self._lock:
            self._franchises = [f for f in self._franchises if f["id"] != franchise_id]
        return json_response({"message": "franchise deleted"})

    def create_store(self, request: InterceptedRequest) -> MockResponse:
        franchise_id = _path_int(_FRANCHISE_ID_RE, request.path, group=1)
        body = _json_object(request)
        if body is None or not str(body.get("name", "")).strip():
            return error_response("store name is required", status=400)
        with self._lock:
            store = {"id": self._next_store_id, "franchiseId": franchise_id, "name": body["name"]}
            self._next_store_id += 1
            for franchise in self._all_franchises_locked():
                if franchise["id"] == franchise_id:
                    franchise["stores"].append(
                        {"id": store["id"], "name": store["name"], "totalRevenue": 0}
                    )
            return json_response(dict(store))

    def delete_store(self, request: InterceptedRequest) -> MockResponse:
        franchise_id = _path_int(_STORE_ID_RE, request.path, group=1)
        store_id = _path_int(_STORE_ID_RE, request.path, group=2)
        with self._lock:
            for franchise in self._all_franchises_locked():
                if franchise["id"] == franchise_id:
                    franchise["stores"] = [s for s in franchise["stores"] if s["id"] != store_id]
        return json_response({"message": "store deleted"})

    # orders

    def menu(self, request: InterceptedRequest) -> MockResponse:
        _ = request
        with self._lock:
            return json_response(copy.deepcopy(self._menu))

    def order_history(self, request: InterceptedRequest) -> MockResponse:
        user = self.user_for(request)
        diner_id = 3 if user is None else _as_int(user.get("id"), default=3)
        with self._lock:
            return json_response(
                {"dinerId": diner_id, "orders": copy.deepcopy(self._orders), "page": 1}
            )

    def create_order(self, request: InterceptedRequest) -> MockResponse:
        body = _json_object(request)
        if body is None:
            return error_response("order body is required", status=400)
        with self._lock:
            order = dict(body)
            order["id"] = self._next_order_id
            self._next_order_id += 1
            self._orders.append(copy.deepcopy(order))
        return json_response({"order": order, "jwt": pizza_data.ORDER_JWT})

    def verify_order(self, request: InterceptedRequest) -> MockResponse:
        body = _json_object(request)
        if body is None or not body.get("jwt"):
            return error_response("invalid", status=400)
        return json_response(
            {
                "message": "valid",
                "payload": {"jwt": body["jwt"]},
                "pizzas": copy.deepcopy(pizza_data.VERIFIED_PIZZAS),
            }
        )

    def docs(self, request: InterceptedRequest) -> MockResponse:
        if "factory" in request.url:
            return json_response(copy.deepcopy(pizza_data.FACTORY_DOCS))
        return json_response(copy.deepcopy(pizza_data.SERVICE_DOCS))

    # views for assertions

    def franchises(self) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._franchises)

    def active_tokens(self) -> list[str]:
        with self._lock:
            return sorted(self._sessions)

    def _all_franchises_locked(self) -> list[dict[str, Any]]:
        merged = list(self._franchises)
        for franchises in self._user_franchises.values():
            merged.extend(franchises)
        return merged


def install_pizza_fixtures(
    registry: ResponderRegistry,
    backend: PizzaBackend | None = None,
    *,
    delay_ms: int | None = None,
) -> PizzaBackend:
    """Register the default storefront fixtures; later registrations override them."""
    backend = backend or PizzaBackend()
    method_tables = {
        "auth": (
            AUTH_PATTERN,
            {"PUT": backend.auth, "POST": backend.auth, "DELETE": backend.auth},
        ),
        "user_me": (USER_ME_PATTERN, {"GET": backend.user_me}),
        "user_update": (USER_UPDATE_PATTERN, {"PUT": backend.update_user}),
        "franchises": (
            FRANCHISES_PATTERN,
            {"GET": backend.list_franchises, "POST": backend.create_franchise},
        ),
        "franchise_item": (
            FRANCHISE_ITEM_PATTERN,
            {"GET": backend.user_franchises, "DELETE": backend.delete_franchise},
        ),
        "stores": (STORES_PATTERN, {"POST": backend.create_store}),
        "store_item": (STORE_ITEM_PATTERN, {"DELETE": backend.delete_store}),
        "orders": (
            ORDERS_PATTERN,
            {"GET": backend.order_history, "POST": backend.create_order},
        ),
        "menu": (MENU_PATTERN, {"GET": backend.menu}),
        "verify": (VERIFY_PATTERN, {"POST": backend.verify_order}),
        "docs": (DOCS_PATTERN, {"GET": backend.docs}),
    }
    for name, (pattern, table) in method_tables.items():
        handler = MethodDispatch(table, counter=backend.counters[name])
        registry.register(pattern, handler, delay_ms=delay_ms, name=name)
    return backend


def _json_object(request: InterceptedRequest) -> dict[str, Any] | None:
    try:
        body = request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _path_int(pattern: re.Pattern[str], path: str, *, group: int) -> int:
    found = pattern.search(path)
    if found is None:
        raise ValueError(f"path {path!r} does not carry an id")
    return int(found.group(group))


def _as_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
