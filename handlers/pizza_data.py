"""Canned storefront records used by the default fixture backend."""

from __future__ import annotations

from typing import Any

ADMIN_USER: dict[str, Any] = {
    "id": "1",
    "name": "Admin User",
    "email": "admin@jwt.com",
    "roles": [{"role": "admin"}],
}
FRANCHISEE_USER: dict[str, Any] = {
    "id": "5",
    "name": "Franchise Owner",
    "email": "franchisee@jwt.com",
    "roles": [{"role": "franchisee", "object": "pizza"}],
}
DINER_USER: dict[str, Any] = {
    "id": "3",
    "name": "Kai Chen",
    "email": "d@jwt.com",
    "roles": [{"role": "diner"}],
}

# email -> (password, user, token)
ACCOUNTS: dict[str, tuple[str, dict[str, Any], str]] = {
    "admin@jwt.com": ("admin", ADMIN_USER, "admin-token-123"),
    "franchisee@jwt.com": ("franchisee", FRANCHISEE_USER, "franchisee-token-456"),
    "d@jwt.com": ("a", DINER_USER, "abcdef"),
}

FRANCHISES: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "LotaPizza",
        "admins": [{"id": 5, "name": "franchise admin", "email": "f@jwt.com"}],
        "stores": [
            {"id": 1, "name": "Lehi", "totalRevenue": 1234.56},
            {"id": 2, "name": "Springville", "totalRevenue": 987.65},
        ],
    },
    {
        "id": 2,
        "name": "PizzaCorp",
        "admins": [{"id": 6, "name": "corp admin", "email": "corp@jwt.com"}],
        "stores": [{"id": 3, "name": "Spanish Fork", "totalRevenue": 555.55}],
    },
    {
        "id": 3,
        "name": "topSpot",
        "admins": [{"id": 7, "name": "top admin", "email": "top@jwt.com"}],
        "stores": [],
    },
]

USER_FRANCHISES: dict[str, list[dict[str, Any]]] = {
    "5": [
        {
            "id": 1,
            "name": "pizzaPocket",
            "admins": [{"id": 5, "name": "Franchise Owner", "email": "franchisee@jwt.com"}],
            "stores": [
                {"id": 1, "name": "SLC", "totalRevenue": 9876.54},
                {"id": 2, "name": "Provo", "totalRevenue": 5432.10},
            ],
        }
    ],
}

MENU: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "Veggie",
        "image": "pizza1.png",
        "price": 0.0038,
        "description": "A garden of delight",
    },
    {
        "id": 2,
        "title": "Pepperoni",
        "image": "pizza2.png",
        "price": 0.0042,
        "description": "Spicy treat",
    },
    {
        "id": 3,
        "title": "Margarita",
        "image": "pizza3.png",
        "price": 0.0014,
        "description": "Essential classic",
    },
]

ORDER_HISTORY: list[dict[str, Any]] = [
    {
        "id": 1,
        "franchiseId": 1,
        "storeId": 1,
        "date": "2024-06-05T05:14:40.000Z",
        "items": [
            {"id": 1, "menuId": 1, "description": "Veggie", "price": 0.0038},
            {"id": 2, "menuId": 2, "description": "Pepperoni", "price": 0.0042},
        ],
    },
    {
        "id": 2,
        "franchiseId": 2,
        "storeId": 4,
        "date": "2024-06-06T12:30:00.000Z",
        "items": [{"id": 3, "menuId": 3, "description": "Margarita", "price": 0.0014}],
    },
]

ORDER_JWT = (
    "eyJpYXQiOjE3MDk3NjAyNjEsImV4cCI6MTcwOTc2Mzg2MSwiaXNzIjoiY3MzMjkuY2xpY2siLCJhbGci"
    "OiJSUzI1NiIsImp0aSI6ImQ4N2ZkMmVkLTE2ZjAtNGFiMC04NGNkLWU3MmFhOGNkM2I1MCJ9"
)

VERIFIED_PIZZAS: list[dict[str, Any]] = [
    {"id": 1, "description": "Veggie", "price": 0.0038},
    {"id": 2, "description": "Pepperoni", "price": 0.0042},
]

SERVICE_DOCS: dict[str, Any] = {
    "version": "20240518.0.1",
    "endpoints": [
        {
            "method": "GET",
            "path": "/api/order/menu",
            "description": "Get the pizza menu",
            "example": "curl localhost:3000/api/order/menu",
            "response": {
                "statusCode": 200,
                "contentType": "application/json",
                "body": [MENU[0]],
            },
        },
        {
            "method": "PUT",
            "path": "/api/auth",
            "description": "Login a user",
            "example": (
                "curl -X PUT localhost:3000/api/auth "
                "-d '{\"email\":\"a@jwt.com\", \"password\":\"admin\"}'"
            ),
            "response": {
                "statusCode": 200,
                "contentType": "application/json",
                "body": {
                    "user": {
                        "id": 1,
                        "name": "pizza diner",
                        "email": "a@jwt.com",
                        "roles": [{"role": "diner"}],
                    },
                    "token": "tttttt",
                },
            },
        },
    ],
}

FACTORY_DOCS: dict[str, Any] = {
    "version": "20240518.0.2",
    "endpoints": [
        {
            "method": "POST",
            "path": "/api/order/verify",
            "description": "Verify pizza order JWT",
        }
    ],
}
