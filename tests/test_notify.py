"""Tests for Slack message formatting and delivery."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import orjson
import pytest

from promowatch.core.config.models import NotificationConfig
from promowatch.core.detect.diff import build_result
from promowatch.core.detect.models import Promotion, PromotionChange
from promowatch.core.notify import (
    NotificationError,
    escape_mrkdwn,
    format_slack_message,
    format_timestamp,
    send_slack_notification,
)


WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"
URL = "https://deals.example.com/offers"
NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)


def _texts(message: dict) -> list[str]:
    texts = []
    for block in message["blocks"]:
        if "text" in block:
            texts.append(block["text"]["text"])
        for element in block.get("elements", []):
            texts.append(element["text"])
    return texts


class TestFormatting:
    def test_escape_mrkdwn(self):
        assert escape_mrkdwn("a*b_c <d> & e") == "a\\*b\\_c &lt;d&gt; &amp; e"
        assert escape_mrkdwn(None) == ""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=2), "2 hours ago"),
            (timedelta(days=3), "Jan 05, 2025 at 12:00 UTC"),
        ],
    )
    def test_format_timestamp(self, delta, expected):
        assert format_timestamp(NOW - delta, now=NOW) == expected

    def test_format_timestamp_iso_string(self):
        assert format_timestamp("2025-01-08T11:00:00Z", now=NOW) == "1 hour ago"
        assert format_timestamp("not a date", now=NOW) == "not a date"

    def test_message_structure(self, promotion):
        changed = PromotionChange(previous=promotion, current=Promotion(
            id=promotion.id,
            title=promotion.title,
            perk=promotion.perk,
            dates=promotion.dates,
            price="$1,499 per person",
        ))
        result = build_result([Promotion(id="n", title="Tokyo Explorer")], [], [changed])

        message = format_slack_message("Hawaii Deals", URL, result, NOW)

        assert message["text"] == "Hawaii Deals: 1 new promotion and 1 promotion updated"
        assert message["blocks"][0]["type"] == "header"
        assert message["blocks"][0]["text"]["text"] == "🔔 Hawaii Deals"
        texts = _texts(message)
        assert any("New Promotions (1)" in t for t in texts)
        assert any("Updated Promotions (1)" in t for t in texts)
        assert not any("Removed Promotions" in t for t in texts)
        assert any("~$1,299 per person~ → $1,499 per person" in t for t in texts)
        orjson.dumps(message)

    def test_default_target_name(self):
        result = build_result([Promotion(id="n", title="Tokyo Explorer")], [], [])
        message = format_slack_message(None, URL, result, NOW)
        assert message["blocks"][0]["text"]["text"] == "🔔 Travel Deal"

    def test_truncates_long_sections(self):
        added = [Promotion(id=str(i), title=f"Deal number {i}") for i in range(5)]
        message = format_slack_message(
            "Deals", URL, build_result(added, [], []), NOW,
            config=NotificationConfig(max_items_per_section=3),
        )
        texts = _texts(message)
        assert sum(1 for t in texts if t.startswith("*Deal number")) == 3
        assert "... and 2 more new promotions" in texts


class TestDelivery:
    def _send(self, handler, webhook: str = WEBHOOK, message: dict | None = None):
        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await send_slack_notification(
                    webhook, message or {"text": "hello"}, client=client
                )

        return asyncio.run(run())

    def test_posts_json(self):
        received = {}

        def handler(request: httpx.Request) -> httpx.Response:
            received["body"] = orjson.loads(request.content)
            return httpx.Response(200, text="ok")

        response = self._send(handler)
        assert response.status_code == 200
        assert received["body"] == {"text": "hello"}

    def test_rejects_non_slack_webhook(self):
        with pytest.raises(NotificationError, match="webhook"):
            self._send(lambda request: httpx.Response(200), webhook="https://example.com/hook")

    def test_rejects_empty_message(self):
        async def run():
            await send_slack_notification(WEBHOOK, {})

        with pytest.raises(NotificationError):
            asyncio.run(run())

    def test_http_error(self):
        with pytest.raises(NotificationError) as excinfo:
            self._send(lambda request: httpx.Response(500, text="invalid_payload"))
        assert excinfo.value.status_code == 500
