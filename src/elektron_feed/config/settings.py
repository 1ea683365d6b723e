"""Configuration settings using Pydantic for validation."""

import os
import re
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..status import (
    DEFAULT_APPLICATION_ID,
    DEFAULT_POSITION,
    MARKET_PRICE_DOMAIN,
    WS_PATH,
    WS_SUBPROTOCOL,
)


class ConnectionConfig(BaseModel):
    """Elektron WebSocket server and DACS login configuration."""
    server: str = Field(default="localhost:15000", description="ADS address as hostname:port")
    user: str = Field(default="user", description="DACS user name")
    application_id: str = Field(default=DEFAULT_APPLICATION_ID, description="DACS application id")
    position: str = Field(default=DEFAULT_POSITION, description="DACS position")
    path: str = Field(default=WS_PATH, description="WebSocket endpoint path")
    subprotocol: str = Field(default=WS_SUBPROTOCOL, description="WebSocket subprotocol")

    @field_validator('server')
    @classmethod
    def validate_server(cls, v):
        if not v or '/' in v:
            raise ValueError("Server must be given as hostname:port")
        return v


class SessionConfig(BaseModel):
    """Session behaviour configuration."""
    clear_state_on_disconnect: bool = Field(
        default=False,
        description="Drop subscriptions and pending news envelopes when the connection closes",
    )


class SubscriptionConfig(BaseModel):
    """Items requested once the session is logged in."""
    items: List[str] = Field(default_factory=list, description="Item names to request")
    domain: str = Field(default=MARKET_PRICE_DOMAIN, description="Domain model for the items")
    service: Optional[str] = Field(default=None, description="Service name; ADS default when unset")
    streaming: Optional[bool] = Field(default=None, description="False requests snapshots")
    view: Optional[List[str]] = Field(default=None, description="Fields to retrieve")
    news_items: List[str] = Field(default_factory=list, description="MRN content sets to request")
    news_service: Optional[str] = Field(default=None, description="Service carrying MRN")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")
    output: str = Field(default="stdout", description="Log output destination")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()


class ClientSettings(BaseSettings):
    """Main feed client settings."""

    model_config = SettingsConfigDict(
        env_prefix="ELEKTRON_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="elektron-feed", description="Service name")
    environment: str = Field(default="local", description="Environment: local, dev, prod")

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    subscriptions: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['local', 'dev', 'prod']:
            raise ValueError("Environment must be 'local', 'dev', or 'prod'")
        return v


def substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in configuration objects.

    Supports syntax:
    - ${VAR_NAME} - Required variable (raises error if not found)
    - ${VAR_NAME:-default} - Optional variable with default value

    Raises:
        ValueError: If required environment variable is not found
    """
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_env_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default_value = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default_value)

            var_name = var_expr.strip()
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable '{var_name}' is not set")
            return value

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, obj)
    else:
        return obj


def load_settings(config_file: Optional[str] = None) -> ClientSettings:
    """
    Load settings from a YAML config file and environment variables.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        ClientSettings: Validated configuration object

    Raises:
        ValueError: If required environment variables are missing
        FileNotFoundError: If config file doesn't exist
    """
    if config_file and os.path.exists(config_file):
        import yaml

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        config_data = substitute_env_vars(raw_config)
        return ClientSettings(**config_data)

    elif config_file:
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    return ClientSettings()
