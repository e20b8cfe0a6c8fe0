"""Per-user SMS rate and spend limiter.

Each user has one window holding an hourly send count and a daily spend,
each with its own reset instant. Windows reset lazily the first time they
are looked at after the reset instant; there is no background timer. A
window whose resets have both passed is dropped, and `usage` never creates
one.

Count and cost are always changed together under the limiter's lock:
`acquire` reserves one message against both ceilings before the gateway is
called, and `release` returns the reservation if the gateway fails, so the
two counters can never drift apart and concurrent sends cannot overshoot.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from threading import Lock
from typing import Callable, Dict, Optional

import structlog

from infrastructure.notifications.models import utc_now

logger = structlog.get_logger()

HOURLY_LIMIT_EXCEEDED = "HOURLY_LIMIT_EXCEEDED"
DAILY_COST_LIMIT_EXCEEDED = "DAILY_COST_LIMIT_EXCEEDED"


def next_utc_midnight(now: datetime) -> datetime:
    return (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class RateLimitWindow:
    hourly_count: int
    hourly_reset_at: datetime
    daily_cost: Decimal
    daily_reset_at: datetime


@dataclass(frozen=True)
class SmsUsage:
    hourly_sent: int
    daily_cost: Decimal
    remaining_hourly: int
    remaining_daily_cost: Decimal


@dataclass(frozen=True)
class Reservation:
    """Proof of a reserved send, needed to roll it back."""

    user_id: str
    cost: Decimal
    hourly_reset_at: datetime
    daily_reset_at: datetime


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reservation: Optional[Reservation] = None
    error_code: Optional[str] = None
    reason: Optional[str] = None


class SmsRateLimiter:
    """Hourly count and daily cost ceilings per user.

    Args:
        max_hourly_count: Messages allowed per user per hourly window
        max_daily_cost: Spend allowed per user per UTC day
        cost_per_message: Fixed cost of one message
        clock: Returns the current aware datetime; injectable for tests
    """

    def __init__(
        self,
        max_hourly_count: int = 10,
        max_daily_cost: Decimal = Decimal("50.00"),
        cost_per_message: Decimal = Decimal("0.0075"),
        clock: Callable[[], datetime] = utc_now,
    ):
        if max_hourly_count < 0:
            raise ValueError("max_hourly_count must be non-negative")
        if max_daily_cost < 0 or cost_per_message < 0:
            raise ValueError("SMS costs must be non-negative")
        self.max_hourly_count = max_hourly_count
        self.max_daily_cost = Decimal(max_daily_cost)
        self.cost_per_message = Decimal(cost_per_message)
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._last_pruned_at: Optional[datetime] = None
        self._lock = Lock()

    def _current(self, user_id: str, now: datetime) -> Optional[RateLimitWindow]:
        """Get the user's window with elapsed counters reset. Caller holds the lock.

        A window whose hourly and daily resets have both passed is dropped
        and None is returned.
        """
        window = self._windows.get(user_id)
        if window is None:
            return None
        if now >= window.hourly_reset_at and now >= window.daily_reset_at:
            del self._windows[user_id]
            return None

        if now >= window.hourly_reset_at:
            window.hourly_count = 0
            window.hourly_reset_at = now + timedelta(hours=1)
        if now >= window.daily_reset_at:
            window.daily_cost = Decimal("0")
            window.daily_reset_at = next_utc_midnight(now)
        return window

    def _window(self, user_id: str, now: datetime) -> RateLimitWindow:
        """Get or create the user's window. Caller holds the lock."""
        window = self._current(user_id, now)
        if window is None:
            self._prune(now)
            window = RateLimitWindow(
                hourly_count=0,
                hourly_reset_at=now + timedelta(hours=1),
                daily_cost=Decimal("0"),
                daily_reset_at=next_utc_midnight(now),
            )
            self._windows[user_id] = window
        return window

    def _prune(self, now: datetime) -> None:
        """Drop every fully elapsed window, at most once per hour. Caller holds the lock."""
        last = self._last_pruned_at
        if last is not None and now - last < timedelta(hours=1):
            return
        self._last_pruned_at = now
        stale = [
            user_id
            for user_id, window in self._windows.items()
            if now >= window.hourly_reset_at and now >= window.daily_reset_at
        ]
        for user_id in stale:
            del self._windows[user_id]
        if stale:
            logger.debug("sms_rate_windows_pruned", count=len(stale))

    def acquire(self, user_id: str) -> RateLimitDecision:
        """Reserve one message for the user if both ceilings allow it."""
        now = self._clock()
        with self._lock:
            window = self._window(user_id, now)

            if window.hourly_count >= self.max_hourly_count:
                minutes = max(
                    1, int((window.hourly_reset_at - now).total_seconds() // 60)
                )
                return RateLimitDecision(
                    allowed=False,
                    error_code=HOURLY_LIMIT_EXCEEDED,
                    reason=f"Hourly SMS limit exceeded. Resets in {minutes} minutes",
                )

            if window.daily_cost + self.cost_per_message > self.max_daily_cost:
                return RateLimitDecision(
                    allowed=False,
                    error_code=DAILY_COST_LIMIT_EXCEEDED,
                    reason=f"Daily SMS cost limit exceeded ({self.max_daily_cost})",
                )

            window.hourly_count += 1
            window.daily_cost += self.cost_per_message
            reservation = Reservation(
                user_id=user_id,
                cost=self.cost_per_message,
                hourly_reset_at=window.hourly_reset_at,
                daily_reset_at=window.daily_reset_at,
            )
        return RateLimitDecision(allowed=True, reservation=reservation)

    def release(self, reservation: Reservation) -> None:
        """Return a reservation whose message was never sent.

        Counters of a window that has since reset are left alone.
        """
        with self._lock:
            window = self._windows.get(reservation.user_id)
            if window is None:
                return
            if window.hourly_reset_at == reservation.hourly_reset_at:
                window.hourly_count = max(0, window.hourly_count - 1)
            if window.daily_reset_at == reservation.daily_reset_at:
                window.daily_cost = max(Decimal("0"), window.daily_cost - reservation.cost)
        logger.debug("sms_reservation_released", user_id=reservation.user_id)

    def usage(self, user_id: str) -> SmsUsage:
        """Report the user's current usage. Unknown users are not tracked."""
        now = self._clock()
        with self._lock:
            window = self._current(user_id, now)
            if window is None:
                return SmsUsage(
                    hourly_sent=0,
                    daily_cost=Decimal("0"),
                    remaining_hourly=self.max_hourly_count,
                    remaining_daily_cost=self.max_daily_cost,
                )
            return SmsUsage(
                hourly_sent=window.hourly_count,
                daily_cost=window.daily_cost,
                remaining_hourly=max(0, self.max_hourly_count - window.hourly_count),
                remaining_daily_cost=max(
                    Decimal("0"), self.max_daily_cost - window.daily_cost
                ),
            )

    def reset(self, user_id: Optional[str] = None) -> None:
        with self._lock:
            if user_id is None:
                self._windows.clear()
            else:
                self._windows.pop(user_id, None)
