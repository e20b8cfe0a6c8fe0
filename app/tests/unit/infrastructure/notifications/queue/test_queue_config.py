"""Unit tests for QueueConfig."""

import pytest

from infrastructure.configuration import QueueSettings
from infrastructure.notifications.queue import QueueConfig


@pytest.mark.unit
class TestQueueConfig:
    """Tests for QueueConfig defaults and validation."""

    def test_defaults(self):
        config = QueueConfig()

        assert config.max_concurrent == 5
        assert config.retry_delays_seconds == (1.0, 5.0, 15.0, 60.0)
        assert config.max_queue_size == 1000
        assert config.tick_interval_seconds == 1.0
        assert config.dead_letter_size == 100
        assert config.retry_policy_rejections is True

    def test_max_attempts_defaults_to_one_more_than_delays(self):
        assert QueueConfig().max_attempts == 5
        assert QueueConfig(retry_delays_seconds=(1, 2)).max_attempts == 3

    def test_explicit_max_attempts_is_kept(self):
        assert QueueConfig(max_attempts=3).max_attempts == 3

    @pytest.mark.parametrize(
        "delays",
        [(), (5, 1), (1, 1), (-1, 2)],
    )
    def test_invalid_delay_schedules_rejected(self, delays):
        with pytest.raises(ValueError):
            QueueConfig(retry_delays_seconds=delays)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_concurrent", 0),
            ("max_attempts", 0),
            ("max_queue_size", 0),
            ("tick_interval_seconds", 0),
            ("dead_letter_size", 0),
        ],
    )
    def test_invalid_limits_rejected(self, field, value):
        with pytest.raises(ValueError):
            QueueConfig(**{field: value})

    def test_retry_delay_indexes_schedule_by_attempts(self):
        config = QueueConfig()

        assert config.retry_delay(1) == 1.0
        assert config.retry_delay(2) == 5.0
        assert config.retry_delay(3) == 15.0
        assert config.retry_delay(4) == 60.0

    def test_retry_delay_clamps_to_last_entry(self):
        config = QueueConfig(max_attempts=10)

        assert config.retry_delay(9) == 60.0

    def test_from_settings_derives_max_attempts_when_zero(self):
        settings = QueueSettings(
            QUEUE_MAX_CONCURRENT=2,
            QUEUE_RETRY_DELAYS_SECONDS=[0.5, 2.0],
            QUEUE_MAX_ATTEMPTS=0,
            QUEUE_MAX_SIZE=10,
            QUEUE_RETRY_POLICY_REJECTIONS=False,
        )

        config = QueueConfig.from_settings(settings)

        assert config.max_concurrent == 2
        assert config.retry_delays_seconds == (0.5, 2.0)
        assert config.max_attempts == 3
        assert config.max_queue_size == 10
        assert config.retry_policy_rejections is False

    def test_from_settings_uses_explicit_max_attempts(self):
        settings = QueueSettings(QUEUE_MAX_ATTEMPTS=7)

        assert QueueConfig.from_settings(settings).max_attempts == 7
