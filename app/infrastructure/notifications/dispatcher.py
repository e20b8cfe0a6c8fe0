"""Synchronous notification dispatcher.

Entry point for time-sensitive single sends, and the unit of work the
delivery queue runs for every attempt:

1. Expired notifications are reported as EXPIRED without touching providers
2. The preference matcher selects the applicable channels
3. Each applicable provider is invoked sequentially, in CHANNEL_ORDER,
   under a fixed timeout
4. Every attempt is appended to the delivery log
5. The outcome is DELIVERED if at least one provider succeeded

Usage Example:
    from infrastructure.notifications import (
        NotificationDispatcher,
        InMemoryDeliveryLog,
        Notification,
        Category,
        Severity,
    )

    dispatcher = NotificationDispatcher(
        channels=[email_channel, webhook_channel],
        delivery_log=InMemoryDeliveryLog(),
        provider_timeout_seconds=45,
    )

    outcome = dispatcher.dispatch(notification, preferences)
    if outcome.is_delivered:
        ...
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from threading import Event, Lock
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from infrastructure.logging import bind_delivery_context
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.delivery_log import (
    DeliveryLog,
    DeliveryLogEntry,
    InMemoryDeliveryLog,
)
from infrastructure.notifications.models import (
    CHANNEL_ORDER,
    ChannelId,
    DeliveryResult,
    DispatchOutcome,
    DispatchStatus,
    Notification,
    utc_now,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    applicable_channels,
)
from infrastructure.operations import OperationResult

logger = structlog.get_logger()


class NotificationDispatcher:
    """Routes one notification to every applicable provider.

    Providers run one after another so failures stay isolated and the SMS
    rate limiter sees one send at a time per dispatch. Each call is
    submitted to a small thread pool purely to enforce the timeout; a
    provider that overruns is reported as a TIMEOUT transport error and
    left to finish in the background.

    Attributes:
        provider_timeout_seconds: Timeout applied to every provider call
        delivery_log: Append-only log receiving one entry per attempt

    Example:
        dispatcher = NotificationDispatcher(
            channels=[EmailChannel.from_settings(settings.mail)],
            delivery_log=InMemoryDeliveryLog(),
        )
    """

    def __init__(
        self,
        channels: Optional[Iterable[NotificationChannel]] = None,
        delivery_log: Optional[DeliveryLog] = None,
        provider_timeout_seconds: float = 45.0,
        max_provider_workers: int = 16,
        clock: Callable[[], datetime] = utc_now,
    ):
        if provider_timeout_seconds <= 0:
            raise ValueError("provider_timeout_seconds must be positive")
        self._channels: Dict[ChannelId, NotificationChannel] = {}
        self._lock = Lock()
        self.delivery_log = delivery_log if delivery_log is not None else InMemoryDeliveryLog()
        self.provider_timeout_seconds = provider_timeout_seconds
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_provider_workers, thread_name_prefix="provider"
        )

        for channel in channels or []:
            self.register_channel(channel)

        logger.info(
            "initialized_notification_dispatcher",
            channels=[c.value for c in self._channels],
            provider_timeout_seconds=provider_timeout_seconds,
        )

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a provider, replacing any provider for the same channel."""
        with self._lock:
            replaced = channel.channel_id in self._channels
            self._channels[channel.channel_id] = channel
        logger.info(
            "channel_registered",
            channel=channel.channel_name,
            configured=channel.is_configured,
            replaced=replaced,
        )

    def get_channel(self, channel_id: ChannelId) -> Optional[NotificationChannel]:
        with self._lock:
            return self._channels.get(channel_id)

    def list_channels(self) -> List[ChannelId]:
        with self._lock:
            return [c for c in CHANNEL_ORDER if c in self._channels]

    def provider_status(self) -> Dict[str, Dict[str, bool]]:
        """Registration and configuration state of every channel."""
        status = {}
        for channel_id in CHANNEL_ORDER:
            channel = self.get_channel(channel_id)
            status[channel_id.value] = {
                "registered": channel is not None,
                "configured": bool(channel and channel.is_configured),
            }
        return status

    def health_check(self) -> Dict[str, OperationResult]:
        with self._lock:
            channels = list(self._channels.values())
        return {c.channel_name: c.health_check() for c in channels}

    def dispatch(
        self,
        notification: Notification,
        preferences: Optional[DeliveryPreferences],
        queue_id: Optional[str] = None,
    ) -> DispatchOutcome:
        """Deliver a notification through every applicable channel.

        Args:
            notification: Notification to deliver
            preferences: Recipient preferences; None matches no channel
            queue_id: Queue item id when called by the delivery queue

        Returns:
            DispatchOutcome with one DeliveryResult per attempted provider
        """
        now = self._clock()
        with bind_delivery_context(
            notification_id=notification.id,
            queue_id=queue_id,
            user_id=notification.recipient_user_id,
        ):
            if notification.is_expired(now):
                logger.info(
                    "notification_expired",
                    expires_at=notification.expires_at.isoformat(),
                )
                return DispatchOutcome(
                    notification_id=notification.id, status=DispatchStatus.EXPIRED
                )

            channels = applicable_channels(notification, preferences, now)
            if not channels:
                logger.info(
                    "no_applicable_channel",
                    category=notification.category.value,
                    severity=notification.severity.value,
                )
                return DispatchOutcome(
                    notification_id=notification.id,
                    status=DispatchStatus.NO_APPLICABLE_CHANNEL,
                )

            results: List[DeliveryResult] = []
            for channel_id in CHANNEL_ORDER:
                if channel_id not in channels:
                    continue
                provider = self.get_channel(channel_id)
                if provider is None or not provider.is_configured:
                    logger.warning(
                        "provider_unavailable",
                        channel=channel_id.value,
                        registered=provider is not None,
                    )
                    continue

                result = self._invoke(provider, notification, preferences)
                results.append(result)
                self.delivery_log.append(
                    DeliveryLogEntry.from_result(notification, result, queue_id=queue_id)
                )

            if not results:
                logger.warning(
                    "no_available_provider",
                    applicable=[c.value for c in channels],
                )
                return DispatchOutcome(
                    notification_id=notification.id,
                    status=DispatchStatus.NO_APPLICABLE_CHANNEL,
                )

            outcome = DispatchOutcome.from_results(notification.id, results)
            logger.info(
                "notification_dispatched",
                status=outcome.status.value,
                success_count=sum(1 for r in results if r.success),
                total_attempts=len(results),
                errors=outcome.error_summary,
            )
            return outcome

    def _invoke(
        self,
        provider: NotificationChannel,
        notification: Notification,
        preferences: DeliveryPreferences,
    ) -> DeliveryResult:
        """Run one provider call under the dispatcher timeout.

        The timeout runs from the moment the call starts on a worker. A call
        still waiting for a worker after the timeout is cancelled unrun.
        """
        started = Event()

        def _call():
            started.set()
            return provider.send(notification, preferences)

        # Carry the bound log context into the worker thread
        context = contextvars.copy_context()
        future = self._executor.submit(context.run, _call)
        try:
            if not started.wait(self.provider_timeout_seconds) and future.cancel():
                logger.warning(
                    "provider_not_started",
                    channel=provider.channel_name,
                    timeout_seconds=self.provider_timeout_seconds,
                )
                return DeliveryResult.transport_error(
                    provider.channel_id,
                    "TIMEOUT",
                    f"{provider.channel_name} did not start within "
                    f"{self.provider_timeout_seconds}s, provider workers busy",
                )
            result = future.result(timeout=self.provider_timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            logger.warning(
                "provider_timeout",
                channel=provider.channel_name,
                timeout_seconds=self.provider_timeout_seconds,
            )
            return DeliveryResult.transport_error(
                provider.channel_id,
                "TIMEOUT",
                f"{provider.channel_name} did not respond within "
                f"{self.provider_timeout_seconds}s",
            )
        except Exception as e:
            logger.error(
                "provider_exception",
                channel=provider.channel_name,
                error=str(e),
                exc_info=True,
            )
            return DeliveryResult.transport_error(
                provider.channel_id,
                "PROVIDER_EXCEPTION",
                f"{type(e).__name__}: {e}",
            )

        if not isinstance(result, DeliveryResult):
            logger.error(
                "provider_invalid_result",
                channel=provider.channel_name,
                result_type=type(result).__name__,
            )
            return DeliveryResult.transport_error(
                provider.channel_id,
                "PROVIDER_EXCEPTION",
                f"{provider.channel_name} returned {type(result).__name__}",
            )
        return result

    def shutdown(self, wait: bool = False) -> None:
        """Release the timeout executor. Idempotent."""
        self._executor.shutdown(wait=wait)
        logger.info("notification_dispatcher_shut_down")
