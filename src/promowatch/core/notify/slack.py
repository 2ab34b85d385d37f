"""
Slack notifications for material promotion changes.

Renders a ChangeResult as Block Kit blocks and posts it to an incoming
webhook.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from ... import __version__
from ..config.models import NotificationConfig
from ..detect.models import ChangeResult, Promotion, PromotionChange


logger = logging.getLogger(__name__)

SLACK_WEBHOOK_PREFIX = "https://hooks.slack.com/"
USER_AGENT = f"PromoWatch/{__version__}"

FIELD_LABELS = (
    ("perk", "Perk"),
    ("dates", "Dates"),
    ("price", "Price"),
)


class NotificationError(Exception):
    """Notification could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Formatting
# =============================================================================


def escape_mrkdwn(text: str | None) -> str:
    """Escape text for Slack mrkdwn (entities first, then formatting characters)."""
    if not text:
        return ""
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    for char in ("*", "_", "~", "`"):
        text = text.replace(char, f"\\{char}")
    return text


def format_timestamp(timestamp: str | datetime, now: datetime | None = None) -> str:
    """Relative time for recent timestamps, absolute date otherwise."""
    if isinstance(timestamp, str):
        try:
            moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            return timestamp
    else:
        moment = timestamp
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    seconds = (now - moment).total_seconds()

    if 0 <= seconds < 60:
        return "just now"
    if 0 <= seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    if 0 <= seconds < 86400:
        hours = int(seconds // 3600)
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    return moment.astimezone(timezone.utc).strftime("%b %d, %Y at %H:%M UTC")


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _promotion_text(promo: Promotion) -> str:
    lines = [f"*{escape_mrkdwn(promo.title) or 'Untitled promotion'}*"]
    for name, label in FIELD_LABELS:
        value = getattr(promo, name)
        if value:
            lines.append(f"*{label}:* {escape_mrkdwn(value)}")
    return "\n".join(lines)


def _change_text(change: PromotionChange) -> str:
    before, after = change.previous, change.current
    lines = [f"*{escape_mrkdwn(after.title or before.title) or 'Untitled promotion'}*"]
    if before.title != after.title and before.title:
        lines.append(f"*Title:* ~{escape_mrkdwn(before.title)}~ → {escape_mrkdwn(after.title)}")
    for name, label in FIELD_LABELS:
        old, new = getattr(before, name), getattr(after, name)
        if old == new:
            if new:
                lines.append(f"*{label}:* {escape_mrkdwn(new)}")
        elif old:
            lines.append(f"*{label}:* ~{escape_mrkdwn(old)}~ → {escape_mrkdwn(new) or '_(removed)_'}")
        else:
            lines.append(f"*{label}:* {escape_mrkdwn(new)}")
    return "\n".join(lines)


def _category_blocks(
    heading: str,
    noun: str,
    texts: list[str],
    max_items: int,
) -> list[dict[str, Any]]:
    if not texts:
        return []
    blocks = [{"type": "divider"}, _section(f"*{heading} ({len(texts)})*")]
    blocks.extend(_section(text) for text in texts[:max_items])
    hidden = len(texts) - max_items
    if hidden > 0:
        blocks.append(_context(f"... and {hidden} more {noun}{'' if hidden == 1 else 's'}"))
    return blocks


def format_slack_message(
    target_name: str | None,
    url: str,
    result: ChangeResult,
    timestamp: str | datetime,
    *,
    config: NotificationConfig | None = None,
) -> dict[str, Any]:
    """Build a Block Kit message describing a ChangeResult.

    Args:
        target_name: Display name (falls back to the configured default)
        url: Monitored page
        result: Material changes to report
        timestamp: When the change was detected (ISO string or datetime)
        config: Item limits and default name

    Returns:
        Slack payload with ``text`` fallback and ``blocks``
    """
    config = config or NotificationConfig()
    name = (target_name or "").strip() or config.default_target_name
    max_items = config.max_items_per_section

    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"🔔 {name}", "emoji": True},
        },
        _context(f"<{url}|{escape_mrkdwn(url)}> • {format_timestamp(timestamp)}"),
        _section(f"*Changes detected:* {escape_mrkdwn(result.summary)}"),
    ]

    blocks.extend(_category_blocks(
        "🆕 New Promotions",
        "new promotion",
        [_promotion_text(p) for p in result.added],
        max_items,
    ))
    blocks.extend(_category_blocks(
        "🔄 Updated Promotions",
        "updated promotion",
        [_change_text(c) for c in result.changed],
        max_items,
    ))
    blocks.extend(_category_blocks(
        "❌ Removed Promotions",
        "removed promotion",
        [_promotion_text(p) for p in result.removed],
        max_items,
    ))

    return {"text": f"{name}: {result.summary}", "blocks": blocks}


# =============================================================================
# Delivery
# =============================================================================


def is_valid_webhook(url: str | None) -> bool:
    return bool(url) and url.startswith(SLACK_WEBHOOK_PREFIX)


async def send_slack_notification(
    webhook_url: str,
    message: dict[str, Any],
    *,
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> httpx.Response:
    """Post a message to a Slack incoming webhook.

    Raises:
        NotificationError: Invalid webhook or message, HTTP error, or timeout
    """
    if not is_valid_webhook(webhook_url):
        raise NotificationError("Invalid Slack webhook URL")
    if not message or not (message.get("blocks") or message.get("text")):
        raise NotificationError("Slack message must have text or blocks")

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    try:
        response = await client.post(
            webhook_url,
            json=message,
            headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
            timeout=timeout,
        )
    except httpx.TimeoutException as e:
        raise NotificationError(f"Slack notification timeout after {timeout:g}s") from e
    except httpx.TransportError as e:
        raise NotificationError(f"Slack notification failed: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if not response.is_success:
        raise NotificationError(
            f"Slack API error {response.status_code}: {response.text}",
            status_code=response.status_code,
        )

    logger.debug("Slack notification delivered")
    return response
