"""Payload formatters for webhook targets.

Each formatter turns a Notification into the JSON body a platform's
incoming-webhook endpoint expects.
"""

from typing import Any, Dict, Optional

from infrastructure.notifications.models import Notification, Severity
from infrastructure.notifications.preferences import (
    WebhookFormat,
    WebhookKind,
    WebhookTarget,
)

FOOTER = "Notification Delivery"

SEVERITY_MARKERS = {
    Severity.CRITICAL: "🚨",
    Severity.HIGH: "⚠️",
    Severity.MEDIUM: "📢",
    Severity.LOW: "ℹ️",
}

# Slack attachment colors
SLACK_COLORS = {
    Severity.CRITICAL: "danger",
    Severity.HIGH: "warning",
    Severity.MEDIUM: "good",
    Severity.LOW: "#36a64f",
}

HEX_COLORS = {
    Severity.CRITICAL: "#DC2626",
    Severity.HIGH: "#F59E0B",
    Severity.MEDIUM: "#3B82F6",
    Severity.LOW: "#10B981",
}


def _label(value: str) -> str:
    return value[:1].upper() + value[1:]


def _display_time(notification: Notification) -> str:
    return notification.created_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _headline(notification: Notification) -> str:
    return f"{SEVERITY_MARKERS[notification.severity]} {notification.title}"


def format_slack(
    notification: Notification,
    channel: Optional[str] = None,
    username: str = "Notifications",
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "username": username,
        "icon_emoji": ":bell:",
        "attachments": [
            {
                "color": SLACK_COLORS[notification.severity],
                "title": _headline(notification),
                "text": notification.body,
                "fields": [
                    {
                        "title": "Type",
                        "value": _label(notification.category.value),
                        "short": True,
                    },
                    {
                        "title": "Severity",
                        "value": _label(notification.severity.value),
                        "short": True,
                    },
                    {
                        "title": "Time",
                        "value": _display_time(notification),
                        "short": True,
                    },
                ],
                "footer": FOOTER,
                "ts": int(notification.created_at.timestamp()),
            }
        ],
    }
    if channel:
        payload["channel"] = channel
    return payload


def format_discord(
    notification: Notification, username: str = "Notifications"
) -> Dict[str, Any]:
    return {
        "username": username,
        "embeds": [
            {
                "title": _headline(notification),
                "description": notification.body,
                "color": int(HEX_COLORS[notification.severity].lstrip("#"), 16),
                "fields": [
                    {
                        "name": "Type",
                        "value": _label(notification.category.value),
                        "inline": True,
                    },
                    {
                        "name": "Severity",
                        "value": _label(notification.severity.value),
                        "inline": True,
                    },
                    {
                        "name": "Time",
                        "value": _display_time(notification),
                        "inline": True,
                    },
                ],
                "footer": {"text": FOOTER},
                "timestamp": notification.created_at.isoformat(),
            }
        ],
    }


def format_teams(notification: Notification) -> Dict[str, Any]:
    category = _label(notification.category.value)
    severity = _label(notification.severity.value)
    return {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "summary": notification.title,
        "themeColor": HEX_COLORS[notification.severity].lstrip("#"),
        "sections": [
            {
                "activityTitle": _headline(notification),
                "activitySubtitle": f"{category} - {severity}",
                "facts": [
                    {"name": "Type:", "value": category},
                    {"name": "Severity:", "value": severity},
                    {"name": "Time:", "value": _display_time(notification)},
                ],
                "text": notification.body,
            }
        ],
    }


def format_generic(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.body,
        "type": notification.category.value,
        "severity": notification.severity.value,
        "timestamp": notification.created_at.isoformat(),
        "userId": notification.recipient_user_id,
        "attributes": notification.attributes,
    }


def format_for_target(
    notification: Notification, target: WebhookTarget, username: str = "Notifications"
) -> Dict[str, Any]:
    """Build the payload for one target.

    Custom targets use their configured format; other kinds always use
    their platform's shape.
    """
    kind = target.kind
    if kind == WebhookKind.CUSTOM:
        if target.format == WebhookFormat.JSON:
            return format_generic(notification)
        kind = WebhookKind(target.format.value)

    if kind == WebhookKind.SLACK:
        return format_slack(notification, target.channel, username)
    if kind == WebhookKind.DISCORD:
        return format_discord(notification, username)
    return format_teams(notification)
