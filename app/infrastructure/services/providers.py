"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.notifications.service import NotificationService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Usage:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_notification_service() -> NotificationService:
    """
    Get application-scoped notification service singleton.

    The service owns the rate limiter, delivery log and queue state, so
    exactly one instance must exist per process.

    Returns:
        NotificationService: Cached service built from application settings.

    Usage:
        service = get_notification_service()
        service.init()
        service.enqueue(notification, preferences)
    """
    return NotificationService(settings=get_settings())
