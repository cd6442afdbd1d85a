"""Fixture backend tests driven through the fulfillment engine."""

from __future__ import annotations

from typing import Any

from fulfillment import FULFILLED, FulfillmentEngine
from handlers.base import status_handler
from handlers.pizza_handlers import PizzaBackend, install_pizza_fixtures
from request import InterceptedRequest
from response import MockResponse
from router import ResponderRegistry

API = "http://localhost:5173/api"


def _call(
    engine: FulfillmentEngine,
    method: str,
    path: str,
    payload: Any = None,
    *,
    token: str | None = None,
) -> MockResponse:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    if payload is None:
        request = InterceptedRequest(method, f"{API}{path}", headers=headers)
    else:
        request = InterceptedRequest.with_json(method, f"{API}{path}", payload, headers=headers)
    outcome = engine.intercept(request)
    assert outcome.kind == FULFILLED, outcome.error
    assert outcome.response is not None
    return outcome.response


def test_admin_login_returns_user_and_token(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    response = _call(engine, "PUT", "/auth", {"email": "admin@jwt.com", "password": "admin"})

    assert response.status_code == 200
    body = response.json()
    assert body["token"] == "admin-token-123"
    assert body["user"]["roles"] == [{"role": "admin"}]


def test_bad_credentials_are_unauthorized(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    response = _call(engine, "PUT", "/auth", {"email": "admin@jwt.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"message": "Unauthorized"}
    assert engine.failures() == []


def test_register_then_fetch_current_user(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    registered = _call(
        engine, "POST", "/auth", {"name": "pizza diner", "email": "new@jwt.com", "password": "p"}
    ).json()
    me = _call(engine, "GET", "/user/me", token=registered["token"]).json()

    assert registered["user"]["name"] == "pizza diner"
    assert me["email"] == "new@jwt.com"


def test_update_user_echoes_changes_and_keeps_session(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    backend = install_pizza_fixtures(registry)
    _call(engine, "PUT", "/auth", {"email": "d@jwt.com", "password": "a"})

    response = _call(
        engine, "PUT", "/user/3", {"name": "pizza dinerx", "email": "d@jwt.com"}, token="abcdef"
    )
    me = _call(engine, "GET", "/user/me", token="abcdef").json()

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == "3"
    assert body["user"]["name"] == "pizza dinerx"
    assert body["token"] == "abcdef"
    assert me["name"] == "pizza dinerx"
    assert backend.counters["user_update"].hits == 1


def test_update_user_with_new_password_changes_login(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    _call(engine, "PUT", "/user/3", {"email": "kai@jwt.com", "password": "new"})

    stale = _call(engine, "PUT", "/auth", {"email": "d@jwt.com", "password": "a"})
    assert stale.status_code == 401
    login = _call(engine, "PUT", "/auth", {"email": "kai@jwt.com", "password": "new"})
    assert login.json()["user"]["name"] == "Kai Chen"


def test_duplicate_registration_is_rejected_when_configured(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry, PizzaBackend(duplicate_registration="reject"))

    response = _call(
        engine, "POST", "/auth", {"name": "Kai", "email": "d@jwt.com", "password": "a"}
    )

    assert response.status_code == 409
    assert response.json() == {"message": "user already exists"}


def test_logout_drops_session(registry: ResponderRegistry, engine: FulfillmentEngine) -> None:
    backend = install_pizza_fixtures(registry)
    _call(engine, "PUT", "/auth", {"email": "d@jwt.com", "password": "a"})

    response = _call(engine, "DELETE", "/auth", token="abcdef")

    assert response.json() == {"message": "logout successful"}
    assert backend.active_tokens() == []
    assert backend.counters["auth"].hits == 2


def test_user_me_requires_token_when_configured(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry, PizzaBackend(require_token=True))

    assert _call(engine, "GET", "/user/me").status_code == 401
    assert _call(engine, "GET", "/user/me", token="abcdef").json()["name"] == "Kai Chen"


def test_create_franchise_echoes_name_and_assigns_next_id(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    backend = install_pizza_fixtures(registry)

    created = _call(
        engine,
        "POST",
        "/franchise",
        {"name": "Test Franchise", "admins": [{"email": "f@jwt.com"}]},
        token="admin-token-123",
    ).json()

    assert created["id"] == 4
    assert created["name"] == "Test Franchise"
    assert created["admins"][0]["email"] == "f@jwt.com"
    assert backend.counters["franchises"].last_body["name"] == "Test Franchise"
    assert "Test Franchise" in [item["name"] for item in backend.franchises()]


def test_user_and_admin_ids_keep_their_own_types_and_sequences(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    first = _call(
        engine, "POST", "/auth", {"name": "one", "email": "one@jwt.com", "password": "p"}
    ).json()["user"]
    franchise = _call(
        engine,
        "POST",
        "/franchise",
        {"name": "Ids", "admins": [{"email": "a@jwt.com"}, {"email": "b@jwt.com"}]},
    ).json()
    second = _call(
        engine, "POST", "/auth", {"name": "two", "email": "two@jwt.com", "password": "p"}
    ).json()["user"]

    assert (first["id"], second["id"]) == ("100", "101")
    assert [admin["id"] for admin in franchise["admins"]] == [8, 9]


def test_list_franchises_filters_and_paginates(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    filtered = _call(engine, "GET", "/franchise?page=0&limit=10&name=Pizza*").json()
    first_page = _call(engine, "GET", "/franchise?page=0&limit=2&name=*").json()

    assert [item["name"] for item in filtered["franchises"]] == ["PizzaCorp"]
    assert len(first_page["franchises"]) == 2
    assert first_page["more"] is True


def test_delete_franchise_succeeds_and_can_be_overridden_to_forbidden(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    deleted = _call(engine, "DELETE", "/franchise/1", token="admin-token-123")
    registry.register(r"/api/franchise/\d+$", status_handler(403, "unauthorized"), method="DELETE")
    forbidden = _call(engine, "DELETE", "/franchise/1", token="admin-token-123")

    assert deleted.status_code == 200
    assert deleted.json() == {"message": "franchise deleted"}
    assert forbidden.status_code == 403
    assert engine.failures() == []


def test_store_create_and_delete(registry: ResponderRegistry, engine: FulfillmentEngine) -> None:
    install_pizza_fixtures(registry)

    created = _call(engine, "POST", "/franchise/1/store", {"name": "Orem"}).json()
    removed = _call(engine, "DELETE", f"/franchise/1/store/{created['id']}").json()

    assert created["name"] == "Orem"
    assert created["franchiseId"] == 1
    assert removed == {"message": "store deleted"}


def test_user_franchises_are_looked_up_by_user_id(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    owned = _call(engine, "GET", "/franchise/5", token="franchisee-token-456").json()

    assert owned[0]["name"] == "pizzaPocket"
    assert [store["name"] for store in owned[0]["stores"]] == ["SLC", "Provo"]


def test_order_flow_menu_create_and_verify(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    menu = _call(engine, "GET", "/order/menu").json()
    order = _call(
        engine,
        "POST",
        "/order",
        {"items": [{"menuId": 1, "description": "Veggie", "price": 0.0038}], "storeId": "1"},
        token="abcdef",
    ).json()
    verified = _call(engine, "POST", "/order/verify", {"jwt": order["jwt"]}).json()
    history = _call(engine, "GET", "/order", token="abcdef").json()

    assert [item["title"] for item in menu] == ["Veggie", "Pepperoni", "Margarita"]
    assert order["order"]["storeId"] == "1"
    assert order["order"]["id"] == 3
    assert verified["message"] == "valid"
    assert verified["payload"] == {"jwt": order["jwt"]}
    assert history["dinerId"] == 3
    assert len(history["orders"]) == 3


def test_verify_without_jwt_is_invalid(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    response = _call(engine, "POST", "/order/verify", {})

    assert response.status_code == 400
    assert response.json() == {"message": "invalid"}


def test_docs_switch_on_factory_host(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    service = engine.intercept(InterceptedRequest("GET", f"{API}/docs")).response
    factory = engine.intercept(
        InterceptedRequest("GET", "https://pizza-factory.cs329.click/api/docs")
    ).response

    assert service is not None and service.json()["version"] == "20240518.0.1"
    assert factory is not None and factory.json()["version"] == "20240518.0.2"


def test_unmapped_method_is_method_not_allowed(
    registry: ResponderRegistry, engine: FulfillmentEngine
) -> None:
    install_pizza_fixtures(registry)

    response = _call(engine, "PATCH", "/order/menu")

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET"


def test_backends_are_isolated_between_scenarios() -> None:
    first_registry = ResponderRegistry()
    second_registry = ResponderRegistry()
    first = install_pizza_fixtures(first_registry)
    second = install_pizza_fixtures(second_registry)

    _call(FulfillmentEngine(first_registry), "POST", "/franchise", {"name": "Only Here"})

    assert "Only Here" in [item["name"] for item in first.franchises()]
    assert "Only Here" not in [item["name"] for item in second.franchises()]
