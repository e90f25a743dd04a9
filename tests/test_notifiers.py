"""Tests for the Slack and PagerDuty transports (HTTP mocked with httpx)."""

import asyncio
import json

import httpx
import pytest

from deadman.config import Settings
from deadman.notifiers import (
    NotificationError,
    NotifierSetupError,
    PagerDutyNotifier,
    SlackNotifier,
    build_notifiers,
    setup_notifiers,
)
from deadman.notifiers.formatting import format_labels, pretty_alert
from deadman.registry import WatchedHeartbeat


@pytest.fixture
def heartbeat():
    return WatchedHeartbeat(
        fingerprint="abc",
        payload={
            "fingerprint": "abc",
            "labels": {"severity": "none", "alertname": "Watchdog"},
            "annotations": {"summary": "Always firing"},
        },
        expires_at=1_700_001_800.0,
    )


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ═══════════════════════════════════════════════════════════════
# 1. FORMATTING + FACTORY
# ═══════════════════════════════════════════════════════════════

class TestFormatting:

    def test_labels_sorted(self, heartbeat):
        assert format_labels(heartbeat) == "alertname = Watchdog\nseverity = none\n"
        assert format_labels(heartbeat, prefix="- ").startswith("- alertname")

    def test_pretty_alert(self, heartbeat):
        text = pretty_alert(heartbeat)
        assert json.loads(text) == heartbeat.payload
        assert "\n    " in text


class TestBuildNotifiers:

    def test_nothing_configured(self):
        assert build_notifiers(Settings()) == []

    def test_configured_transports_only(self):
        notifiers = build_notifiers(Settings(pagerduty_token="pd-key"))
        assert [n.name for n in notifiers] == ["pagerduty"]

    def test_both(self):
        notifiers = build_notifiers(Settings(
            slack_token="xoxb-1", slack_channel="#ops", pagerduty_token="pd-key",
            notify_timeout="5s"))

        assert [n.name for n in notifiers] == ["slack", "pagerduty"]
        assert notifiers[0].channel == "ops"
        assert notifiers[0].timeout == 5


# ═══════════════════════════════════════════════════════════════
# 2. SLACK
# ═══════════════════════════════════════════════════════════════

class TestSlack:

    def test_setup_resolves_channel_across_pages(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            assert request.headers["Authorization"] == "Bearer xoxb-1"
            if request.url.path == "/api/auth.test":
                return httpx.Response(200, json={"ok": True, "user": "deadman"})
            cursor = request.url.params.get("cursor")
            if not cursor:
                return httpx.Response(200, json={
                    "ok": True,
                    "channels": [{"id": "C001", "name": "random"}],
                    "response_metadata": {"next_cursor": "page2"},
                })
            return httpx.Response(200, json={
                "ok": True,
                "channels": [{"id": "C002", "name": "Alerts"}],
                "response_metadata": {"next_cursor": ""},
            })

        notifier = SlackNotifier("xoxb-1", channel="alerts", http_client=_client(handler))
        asyncio.run(notifier.setup())

        assert notifier.channel_id == "C002"
        assert calls == [
            "/api/auth.test", "/api/conversations.list", "/api/conversations.list"]

    def test_setup_accepts_channel_id(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/auth.test"
            return httpx.Response(200, json={"ok": True})

        notifier = SlackNotifier("xoxb-1", channel="C0123ABCDE", http_client=_client(handler))
        asyncio.run(notifier.setup())
        assert notifier.channel_id == "C0123ABCDE"

    def test_setup_bad_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "error": "invalid_auth"})

        notifier = SlackNotifier("bad", http_client=_client(handler))
        with pytest.raises(NotifierSetupError, match="invalid_auth"):
            asyncio.run(notifier.setup())

    def test_setup_unknown_channel(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth.test":
                return httpx.Response(200, json={"ok": True})
            return httpx.Response(200, json={"ok": True, "channels": []})

        notifier = SlackNotifier("xoxb-1", channel="nowhere", http_client=_client(handler))
        with pytest.raises(NotifierSetupError, match="nowhere"):
            asyncio.run(notifier.setup())

    def test_setup_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable")

        notifier = SlackNotifier("xoxb-1", http_client=_client(handler))
        with pytest.raises(NotifierSetupError):
            asyncio.run(notifier.setup())

    def test_notify_posts_message(self, heartbeat):
        posted = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        notifier = SlackNotifier("xoxb-1", http_client=_client(handler))
        notifier.channel_id = "C002"
        asyncio.run(notifier.notify(heartbeat))

        body = posted[0]
        assert body["channel"] == "C002"
        assert body["icon_emoji"] == ":skull:"
        assert "- alertname = Watchdog" in body["blocks"][1]["text"]["text"]
        assert body["attachments"][0]["color"] == "#a10606"
        assert '"fingerprint": "abc"' in body["attachments"][0]["text"]

    def test_notify_api_error(self, heartbeat):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "error": "ratelimited"})

        notifier = SlackNotifier("xoxb-1", http_client=_client(handler))
        with pytest.raises(NotificationError, match="ratelimited"):
            asyncio.run(notifier.notify(heartbeat))

    def test_notify_http_error(self, heartbeat):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        notifier = SlackNotifier("xoxb-1", http_client=_client(handler))
        with pytest.raises(NotificationError):
            asyncio.run(notifier.notify(heartbeat))


# ═══════════════════════════════════════════════════════════════
# 3. PAGERDUTY
# ═══════════════════════════════════════════════════════════════

class TestPagerDuty:

    def test_notify_triggers_event(self, heartbeat):
        events = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == PagerDutyNotifier.EVENTS_URL
            events.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "success", "incident_key": "x"})

        notifier = PagerDutyNotifier("pd-key", http_client=_client(handler))
        asyncio.run(notifier.notify(heartbeat))

        event = events[0]
        assert event["service_key"] == "pd-key"
        assert event["event_type"] == "trigger"
        assert event["incident_key"] == "deadman/abc"
        assert event["description"] == "Watchdog monitored alert is missing for too long"
        assert event["details"].startswith("A MONITORED WATCHDOG ALERT IS MISSING !")
        assert "alertname = Watchdog\nseverity = none\n" in event["details"]

    def test_notify_rejected(self, heartbeat):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"status": "invalid event"})

        notifier = PagerDutyNotifier("pd-key", http_client=_client(handler))
        with pytest.raises(NotificationError, match="400"):
            asyncio.run(notifier.notify(heartbeat))

    def test_notify_network_error(self, heartbeat):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow")

        notifier = PagerDutyNotifier("pd-key", http_client=_client(handler))
        with pytest.raises(NotificationError):
            asyncio.run(notifier.notify(heartbeat))

    def test_setup_needs_no_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        notifier = PagerDutyNotifier("pd-key", http_client=_client(handler))
        asyncio.run(setup_notifiers([notifier]))


class TestSetupNotifiers:

    def test_unexpected_error_becomes_setup_error(self):
        class Exploding(PagerDutyNotifier):
            async def setup(self) -> None:
                raise RuntimeError("boom")

        with pytest.raises(NotifierSetupError, match="boom"):
            asyncio.run(setup_notifiers([Exploding("pd-key")]))
