from .settings import (
    ClientSettings,
    ConnectionConfig,
    LoggingConfig,
    SessionConfig,
    SubscriptionConfig,
    load_settings,
)

__all__ = [
    "ClientSettings",
    "ConnectionConfig",
    "LoggingConfig",
    "SessionConfig",
    "SubscriptionConfig",
    "load_settings",
]
