from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from app.services import alerts


class _Response:
    def raise_for_status(self) -> None:
        return None


class _Client:
    def __init__(self, calls: list[dict[str, Any]], *, fail_urls: set[str] | None = None) -> None:
        self._calls = calls
        self._fail_urls = fail_urls or set()

    async def __aenter__(self) -> "_Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        return None

    async def post(self, url: str, json: dict[str, object]) -> _Response:
        self._calls.append({"url": url, "json": json})
        if url in self._fail_urls:
            raise httpx.HTTPError("delivery failed")
        return _Response()


def _settings(**overrides: object) -> SimpleNamespace:
    base = {
        "app_env": "test",
        "ops_alert_webhook_url": "",
        "ops_alert_slack_webhook_url": "",
    }
    base.update(overrides)
    return SimpleNamespace(**base)


def _patch_http_client(
    monkeypatch: pytest.MonkeyPatch,
    calls: list[dict[str, Any]],
    *,
    fail_urls: set[str] | None = None,
) -> None:
    def factory(timeout: float) -> _Client:  # noqa: ARG001
        return _Client(calls, fail_urls=fail_urls)

    monkeypatch.setattr(alerts.httpx, "AsyncClient", factory)


@pytest.mark.asyncio
async def test_send_ops_alert_returns_false_when_no_targets_configured(monkeypatch) -> None:
    monkeypatch.setattr(alerts, "get_settings", lambda: _settings())
    sent = await alerts.send_ops_alert(event="test_event", payload={"k": "v"})
    assert sent is False


@pytest.mark.asyncio
async def test_send_ops_alert_posts_to_generic_webhook(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(ops_alert_webhook_url="https://ops.example.local/hook"),
    )
    _patch_http_client(monkeypatch, calls)

    sent = await alerts.send_ops_alert(event="unrouted_event", payload={"diff_count": 2})

    assert sent is True
    assert len(calls) == 1
    assert calls[0]["url"] == "https://ops.example.local/hook"
    body = calls[0]["json"]
    assert body["event"] == "unrouted_event"
    assert body["payload"] == {"diff_count": 2}
    assert body["severity"] == "warning"
    assert body["env"] == "test"


@pytest.mark.asyncio
async def test_send_ops_alert_routes_drift_to_slack_and_generic(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(
            ops_alert_webhook_url="https://ops.example.local/hook",
            ops_alert_slack_webhook_url="https://slack.example.local/hook",
        ),
    )
    _patch_http_client(monkeypatch, calls)

    sent = await alerts.send_ops_alert(
        event="ledger_reconciliation_drift_detected",
        payload={"diff_count": 3},
    )

    assert sent is True
    assert [call["url"] for call in calls] == [
        "https://slack.example.local/hook",
        "https://ops.example.local/hook",
    ]
    assert "CRITICAL" in calls[0]["json"]["text"]
    assert calls[1]["json"]["severity"] == "critical"


@pytest.mark.asyncio
async def test_send_ops_alert_survives_partial_delivery_failure(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(
            ops_alert_webhook_url="https://ops.example.local/hook",
            ops_alert_slack_webhook_url="https://slack.example.local/hook",
        ),
    )
    _patch_http_client(monkeypatch, calls, fail_urls={"https://slack.example.local/hook"})

    sent = await alerts.send_ops_alert(
        event="ledger_schema_not_initialized",
        payload={"missing": ["promo_codes.deleted_at"]},
    )

    assert sent is True
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_send_ops_alert_returns_false_when_all_targets_fail(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(ops_alert_webhook_url="https://ops.example.local/hook"),
    )
    _patch_http_client(monkeypatch, calls, fail_urls={"https://ops.example.local/hook"})

    sent = await alerts.send_ops_alert(event="unrouted_event", payload={})

    assert sent is False
    assert len(calls) == 1


def test_resolve_targets_skips_unconfigured_channels() -> None:
    route = alerts.EVENT_ALERT_ROUTES["ledger_reconciliation_drift_detected"]

    targets = alerts.resolve_targets(
        route=route,
        settings=_settings(ops_alert_webhook_url="  https://ops.example.local/hook  "),
    )

    assert targets == [alerts.AlertTarget(channel="generic", url="https://ops.example.local/hook")]


def test_build_channel_payload_rejects_unknown_channel() -> None:
    with pytest.raises(ValueError):
        alerts.build_channel_payload(
            channel="pager",
            event="unrouted_event",
            payload={},
            sent_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            route=alerts.DEFAULT_ALERT_ROUTE,
            app_env="test",
        )
