"""Log processors for the notification delivery service.

Processors here are structlog processors: callables taking
(logger, method_name, event_dict) and returning the event dict.

Usage:
    from infrastructure.logging.formatters import mask_contact_details

Dependencies:
    - structlog processors
"""

import re
from typing import Any


def add_deployment_info(git_sha: str, prefix: str = ""):
    """Create a processor that stamps log entries with deployment info.

    Args:
        git_sha: Commit the running build was made from.
        prefix: Environment prefix, empty in production.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("git_sha", git_sha)
        event_dict.setdefault("environment", prefix or "production")
        return event_dict

    return processor


# Keys whose values are credentials and never logged
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "p256dh",
        "auth_key",
    }
)


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that redacts credential-bearing keys.

    Matching is case-insensitive on substrings of the key name.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra key patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked = {}
        for key, value in event_dict.items():
            key_lower = key.lower()
            if value is not None and any(p in key_lower for p in patterns):
                masked[key] = mask_value
            else:
                masked[key] = value
        return masked

    return processor


_PHONE_RE = re.compile(r"\+\d{6,14}(\d{4})")
_EMAIL_RE = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*(@[A-Za-z0-9.-]+)")


def _mask_contact(value: str) -> str:
    value = _PHONE_RE.sub(lambda m: "+***" + m.group(1), value)
    return _EMAIL_RE.sub(lambda m: m.group(1) + "***" + m.group(2), value)


def mask_contact_details():
    """Create a processor that masks phone numbers and e-mail addresses.

    Phone numbers in E.164 form keep their last four digits and e-mail
    addresses keep their first character and domain, so delivery logs stay
    useful for support without carrying full recipient addresses.

    Returns:
        A structlog processor function.

    Example:
        >>> processor = mask_contact_details()
        >>> processor(None, "info", {"to": "+15555551234"})
        {'to': '+***1234'}
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if key == "event":
                continue
            if isinstance(value, str):
                event_dict[key] = _mask_contact(value)
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Rendered mail bodies and webhook payloads can be large; this keeps a
    single log line bounded.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
