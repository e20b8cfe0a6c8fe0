"""Fixtures for provider tests."""

from unittest.mock import MagicMock

import pytest

from infrastructure.notifications.channels.rate_limiter import SmsRateLimiter
from infrastructure.operations import OperationResult


@pytest.fixture
def sms_gateway():
    """Configured SMS gateway stand-in accepting every message."""
    gateway = MagicMock()
    gateway.is_configured = True
    gateway.send.return_value = OperationResult.success(
        data={"message_id": "SM123"}, message="SMS submitted"
    )
    gateway.start_verification.return_value = OperationResult.success(data={})
    gateway.check_verification.return_value = OperationResult.success(data={})
    return gateway


@pytest.fixture
def rate_limiter_factory(fake_clock):
    """Factory for rate limiters on the test clock."""

    def _factory(**kwargs) -> SmsRateLimiter:
        kwargs.setdefault("clock", fake_clock)
        return SmsRateLimiter(**kwargs)

    return _factory


@pytest.fixture
def mail_transport():
    """Configured mail transport stand-in accepting every message."""
    transport = MagicMock()
    transport.is_configured = True
    transport.send.return_value = OperationResult.success(
        data={"message_id": "<abc@example.com>"}, message="Message accepted"
    )
    return transport


@pytest.fixture
def push_gateway():
    gateway = MagicMock()
    gateway.is_configured = True
    gateway.send.return_value = OperationResult.success(data={"status_code": 201})
    return gateway
