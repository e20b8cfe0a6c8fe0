"""Jinja2 templates for the mail channel.

One HTML template and one text template per category, sharing a base
layout. HTML templates are autoescaped; text templates are not.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from jinja2 import DictLoader, Environment, select_autoescape

from infrastructure.notifications.models import Category, Notification, Severity

ALERT_ICONS = {
    Severity.CRITICAL: "🚨",
    Severity.HIGH: "⚠️",
    Severity.MEDIUM: "📊",
    Severity.LOW: "ℹ️",
}

_BASE_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{% block title %}{{ notification.title }}{% endblock %}</title>
  <style>
    body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8fafc; }
    .container { background: white; border-radius: 8px; padding: 30px; }
    .header { text-align: center; margin-bottom: 30px; padding-bottom: 20px; border-bottom: 2px solid #e2e8f0; }
    .badge { display: inline-block; padding: 4px 12px; border-radius: 20px; font-size: 12px; font-weight: 600; text-transform: uppercase; }
    .severity-critical { background: #fee2e2; color: #dc2626; }
    .severity-high { background: #fef3c7; color: #d97706; }
    .severity-medium { background: #dbeafe; color: #2563eb; }
    .severity-low { background: #f0fdf4; color: #16a34a; }
    .button { display: inline-block; padding: 12px 24px; background: #2563eb; color: white; text-decoration: none; border-radius: 6px; }
    .footer { margin-top: 30px; padding-top: 20px; border-top: 1px solid #e2e8f0; font-size: 14px; color: #64748b; text-align: center; }
    .data-table { width: 100%; border-collapse: collapse; margin: 20px 0; }
    .data-table th, .data-table td { padding: 12px; text-align: left; border-bottom: 1px solid #e2e8f0; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><div>{% block subtitle %}Notification{% endblock %}</div></div>
    {% block content %}
    <h2>{{ notification.title }}</h2>
    {% endblock %}
    <div class="content">
      <p>{{ notification.body }}</p>
      {% if rows %}
      <table class="data-table">
        <thead><tr><th>Property</th><th>Value</th></tr></thead>
        <tbody>
        {% for key, value in rows %}
          <tr><td><strong>{{ key }}</strong></td><td>{{ value }}</td></tr>
        {% endfor %}
        </tbody>
      </table>
      {% endif %}
    </div>
    <a href="{{ action_url }}" class="button">{% block action %}Go to Dashboard{% endblock %}</a>
    <div class="footer">
      <p><a href="{{ unsubscribe_url }}">Unsubscribe</a> | <a href="{{ dashboard_url }}">View Dashboard</a></p>
    </div>
  </div>
</body>
</html>
"""

_HTML_TEMPLATES = {
    "base.html": _BASE_HTML,
    "alert.html": """{% extends "base.html" %}
{% block title %}Alert: {{ notification.title }}{% endblock %}
{% block subtitle %}Alert Notification{% endblock %}
{% block content %}
<div class="badge severity-{{ notification.severity.value }}">{{ icon }} {{ notification.severity.value | upper }} ALERT</div>
<h2>{{ notification.title }}</h2>
{% endblock %}
{% block action %}View All Alerts{% endblock %}
""",
    "report.html": """{% extends "base.html" %}
{% block title %}Report: {{ notification.title }}{% endblock %}
{% block subtitle %}Scheduled Report{% endblock %}
{% block content %}<h2>📊 {{ notification.title }}</h2>{% endblock %}
{% block action %}View Full Report{% endblock %}
""",
    "system.html": """{% extends "base.html" %}
{% block title %}System: {{ notification.title }}{% endblock %}
{% block subtitle %}System Notification{% endblock %}
{% block content %}<h2>🔧 {{ notification.title }}</h2>{% endblock %}
""",
    "default.html": """{% extends "base.html" %}""",
}

_TEXT_TEMPLATES = {
    "alert.txt": "{{ notification.title }}\n\n{{ notification.body }}\n{{ table }}\nSeverity: {{ notification.severity.value }}\n\nView dashboard: {{ dashboard_url }}",
    "report.txt": "Report: {{ notification.title }}\n\n{{ notification.body }}\n{{ table }}\nView dashboard: {{ dashboard_url }}",
    "system.txt": "System: {{ notification.title }}\n\n{{ notification.body }}\n{{ table }}\nView dashboard: {{ dashboard_url }}",
    "default.txt": "{{ notification.title }}\n\n{{ notification.body }}\n{{ table }}\nView dashboard: {{ dashboard_url }}",
}

_TEMPLATE_NAMES = {
    Category.ALERT: "alert",
    Category.REPORT: "report",
    Category.SYSTEM: "system",
}

_ACTION_PATHS = {
    Category.ALERT: "/alerts",
    Category.REPORT: "/reports",
}

_env = Environment(
    loader=DictLoader({**_HTML_TEMPLATES, **_TEXT_TEMPLATES}),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=False,
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def format_key(key: str) -> str:
    """Humanize an attribute key: 'stock_level' and 'stockLevel' become 'Stock level' / 'Stock Level'."""
    spaced = re.sub(r"([A-Z])", r" \1", key.replace("_", " "))
    spaced = " ".join(spaced.split())
    return spaced[:1].upper() + spaced[1:]


def format_value(value: Any) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:,.3f}".rstrip("0").rstrip(".")
    if isinstance(value, dict):
        return json.dumps(value, indent=2, sort_keys=True)
    return str(value)


def attribute_rows(attributes: Dict[str, Any]) -> List[Tuple[str, str]]:
    return [(format_key(k), format_value(v)) for k, v in attributes.items()]


def subject_for(notification: Notification) -> str:
    if notification.category == Category.ALERT:
        icon = ALERT_ICONS[notification.severity]
        return f"{icon} [{notification.severity.value.upper()}] {notification.title}"
    if notification.category == Category.REPORT:
        return f"📊 Report: {notification.title}"
    if notification.category == Category.SYSTEM:
        return f"🔧 System: {notification.title}"
    return notification.title


def render_email(notification: Notification, dashboard_url: str) -> RenderedEmail:
    """Render subject, HTML and plain-text parts for a notification.

    Args:
        notification: Notification to render
        dashboard_url: Base URL linked from the message

    Returns:
        RenderedEmail with all three parts
    """
    dashboard_url = dashboard_url.rstrip("/")
    name = _TEMPLATE_NAMES.get(notification.category, "default")
    rows = attribute_rows(notification.attributes)
    table = "".join(f"\n{key}: {value}" for key, value in rows)
    context = {
        "notification": notification,
        "icon": ALERT_ICONS[notification.severity],
        "rows": rows,
        "table": table + "\n" if table else "",
        "dashboard_url": dashboard_url,
        "action_url": dashboard_url + _ACTION_PATHS.get(notification.category, ""),
        "unsubscribe_url": f"{dashboard_url}/settings/notifications",
    }
    return RenderedEmail(
        subject=subject_for(notification),
        html=_env.get_template(f"{name}.html").render(**context),
        text=_env.get_template(f"{name}.txt").render(**context),
    )
