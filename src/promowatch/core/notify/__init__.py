"""Change notifications."""

from .slack import (
    NotificationError,
    escape_mrkdwn,
    format_slack_message,
    format_timestamp,
    is_valid_webhook,
    send_slack_notification,
)

__all__ = [
    "NotificationError",
    "escape_mrkdwn",
    "format_slack_message",
    "format_timestamp",
    "is_valid_webhook",
    "send_slack_notification",
]
