"""CLI tests for the scenario runner tool."""

from __future__ import annotations

import importlib.util
import json
import subprocess
import sys
from pathlib import Path
from types import ModuleType

from fulfillment import FulfillmentEngine
from handlers.pizza_handlers import install_pizza_fixtures
from request import InterceptedRequest
from router import ResponderRegistry

REPO_ROOT = Path(__file__).resolve().parent.parent


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "tools/scenario_runner.py", *args],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
        check=False,
    )


def _load_runner() -> ModuleType:
    spec = importlib.util.spec_from_file_location(
        "scenario_runner", REPO_ROOT / "tools" / "scenario_runner.py"
    )
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_cli_validate_only_accepts_scenario_file(tmp_path: Path) -> None:
    scenario_file = tmp_path / "scenario.json"
    scenario_file.write_text(
        json.dumps(
            {
                "name": "admin login",
                "steps": [
                    {"action": "navigate", "path": "/login"},
                    {
                        "action": "fill",
                        "selector": {"role": "textbox", "name": "Email address"},
                        "value": "admin@jwt.com",
                    },
                ],
                "mocks": [{"method": "GET", "url": "*/**/api/user/me", "json": {"id": "1"}}],
            }
        ),
        encoding="utf-8",
    )

    result = _run_cli(str(scenario_file), "--validate-only")

    assert result.returncode == 0, result.stderr
    assert "OK admin login: 2 steps, 1 mocks" in result.stdout


def test_cli_rejects_invalid_scenario_with_exit_code_2(tmp_path: Path) -> None:
    scenario_file = tmp_path / "bad.json"
    scenario_file.write_text(json.dumps({"name": "bad", "steps": [{"action": "hover"}]}))

    result = _run_cli(str(scenario_file), "--validate-only")

    assert result.returncode == 2
    assert "invalid action" in result.stderr


def test_cli_rejects_malformed_json(tmp_path: Path) -> None:
    scenario_file = tmp_path / "broken.json"
    scenario_file.write_text("{not json", encoding="utf-8")

    result = _run_cli(str(scenario_file), "--validate-only")

    assert result.returncode == 2
    assert "invalid JSON" in result.stderr


def test_cli_reports_missing_file(tmp_path: Path) -> None:
    result = _run_cli(str(tmp_path / "missing.json"))

    assert result.returncode == 2
    assert "not found" in result.stderr


def test_mock_overrides_shadow_default_fixtures() -> None:
    runner = _load_runner()
    registry = ResponderRegistry()
    install_pizza_fixtures(registry)
    engine = FulfillmentEngine(registry)

    ids = runner.register_mock_overrides(
        registry,
        [
            {
                "method": "DELETE",
                "url": r"/api/franchise/\d+$",
                "regex": True,
                "status": 403,
                "json": {"message": "unauthorized"},
            },
            {"method": None, "url": "*/**/api/order/menu", "status": 200, "json": []},
        ],
    )

    deleted = engine.intercept(InterceptedRequest("DELETE", "http://localhost:5173/api/franchise/2"))
    listed = engine.intercept(InterceptedRequest("GET", "http://localhost:5173/api/franchise/5"))
    menu = engine.intercept(InterceptedRequest("GET", "http://localhost:5173/api/order/menu"))

    assert len(ids) == 2
    assert deleted.response is not None and deleted.response.status_code == 403
    assert listed.response is not None and listed.response.json()[0]["name"] == "pizzaPocket"
    assert menu.response is not None and menu.response.json() == []
