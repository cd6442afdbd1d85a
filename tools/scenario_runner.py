#!/usr/bin/env python3
"""CLI scenario runner: play a JSON storefront scenario against mocked APIs in Chromium."""
# ruff: noqa: E402

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

from playwright.sync_api import sync_playwright

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import DEFAULT_BASE_URL, DEFAULT_SCENARIO_TIMEOUT_MS, LOG_FORMAT
from handlers.base import JsonHandler
from handlers.pizza_handlers import install_pizza_fixtures
from playwright_surface import PlaywrightInterceptor, PlaywrightSurface
from route_matcher import GlobPattern, RegexPattern, as_pattern
from router import ResponderRegistry
from scenario_engine import Scenario, ScenarioValidationError, normalize_scenario
from context import ScenarioContext, open_context

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_INVALID = 2


def register_mock_overrides(registry: ResponderRegistry, mocks: list[dict[str, Any]]) -> list[int]:
    """Register scenario-level mocks after the defaults so they take priority."""
    ids = []
    for mock in mocks:
        if mock.get("regex"):
            pattern = RegexPattern(mock["url"], method=mock.get("method"))
        elif "*" in mock["url"]:
            pattern = GlobPattern(mock["url"], method=mock.get("method"))
        else:
            pattern = as_pattern(mock["url"], method=mock.get("method"))
        ids.append(
            registry.register(
                pattern,
                JsonHandler(mock.get("json", {}), status=int(mock.get("status", 200))),
                delay_ms=mock.get("delay_ms"),
                name=f"mock {mock['url']}",
            )
        )
    return ids


def load_scenario(path: Path) -> Scenario:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ScenarioValidationError(f"invalid JSON: {exc}") from exc
    return normalize_scenario(payload)


def _print_pretty(run: dict[str, Any]) -> None:
    summary = run.get("summary", {})
    print(f"Run: {run.get('run_id')} | Scenario: {run.get('name')} ({run.get('scenario_id')})")
    print(
        f"Status: {run.get('status')} | Passed: {summary.get('passed')} | "
        f"Failed: {summary.get('failed')} | Skipped: {summary.get('skipped')} | "
        f"Duration: {summary.get('duration_ms')}ms"
    )
    print("-" * 72)
    for step in run.get("step_results", []):
        outcome = f" outcome={step['outcome']}" if step.get("outcome") else ""
        print(
            f"{step.get('status').upper():4} {step.get('step_id'):12} "
            f"{step.get('description')} latency={step.get('latency_ms')}ms{outcome}"
        )
        error = step.get("error")
        if error:
            print(f"      {error.get('code')}: {error.get('message')}")
            if error.get("snapshot", {}).get("url"):
                print(f"      at: {error['snapshot']['url']}")


def _live_event(event_type: str, payload: dict[str, Any]) -> None:
    if event_type == "scenario.step.started":
        print(f"STEP START {payload.get('step')}")
    elif event_type == "scenario.failed":
        print(f"STEP FAIL  {payload.get('step')} code={payload.get('code')}")


def run_in_browser(scenario: Scenario, args: argparse.Namespace) -> dict[str, Any]:
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=not args.headed)
        try:
            page = browser.new_page()

            def _surface(engine, store):
                _ = store
                interceptor = PlaywrightInterceptor(engine, url_pattern=args.intercept)
                return PlaywrightSurface(page, base_url=args.base_url, interceptor=interceptor)

            context: ScenarioContext = open_context(
                _surface,
                strict=not args.permissive,
                log_format=args.log_format,
                scenario_timeout_ms=args.timeout_ms,
                on_event=_live_event if args.live else None,
            )
            install_pizza_fixtures(context.registry)
            register_mock_overrides(context.registry, scenario.mocks)
            return context.driver.run(scenario)
        finally:
            browser.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a storefront scenario against mocked APIs")
    parser.add_argument("file", help="path to a scenario JSON file")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument(
        "--intercept",
        default="**/api/**",
        help="Playwright URL glob routed through the fixture engine",
    )
    parser.add_argument(
        "--permissive",
        action="store_true",
        help="let unmatched requests reach the network instead of failing",
    )
    parser.add_argument("--headed", action="store_true", help="show the browser window")
    parser.add_argument("--format", choices=["pretty", "json"], default="pretty")
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    parser.add_argument("--timeout-ms", type=int, default=DEFAULT_SCENARIO_TIMEOUT_MS)
    parser.add_argument("--live", action="store_true", help="print step events as they happen")
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="check the scenario file and exit without launching a browser",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    scenario_path = Path(args.file)
    if not scenario_path.exists():
        print(f"Scenario file not found: {scenario_path}", file=sys.stderr)
        return EXIT_INVALID

    try:
        scenario = load_scenario(scenario_path)
    except ScenarioValidationError as exc:
        print(f"Scenario validation error: {exc}", file=sys.stderr)
        return EXIT_INVALID

    if args.validate_only:
        print(f"OK {scenario.name}: {len(scenario.steps)} steps, {len(scenario.mocks)} mocks")
        return EXIT_PASS

    run = run_in_browser(scenario, args)
    if args.format == "json":
        print(json.dumps(run, indent=2, sort_keys=True, default=_json_default))
    else:
        _print_pretty(run)
    return EXIT_PASS if run.get("status") == "pass" else EXIT_FAIL


def _json_default(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        return value.pattern
    return str(value)


if __name__ == "__main__":
    raise SystemExit(main())
