"""Shared base classes for settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class IntegrationSettings(BaseSettings):
    """Base class for transport back-end settings.

    Mail relay, SMS gateway, webhook and push relay settings inherit from
    this class so every transport reads `.env` the same way.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class InfrastructureSettings(BaseSettings):
    """Base class for delivery pipeline settings.

    Controls queue scheduling, retry schedule and dispatcher timeouts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
