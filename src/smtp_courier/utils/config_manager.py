"""Configuration models and loader for the SMTP courier.

Configuration is optional: ``ClientConfig()`` holds working defaults, and a
JSON file is read only when a path is passed explicitly. Nothing is ever
written back to disk.
"""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import (
    ConfigurationError,
    CourierError,
    InvalidConfigError,
    MissingConfigError,
)
from .logging import get_logger, log_call

logger = get_logger(__name__)


class ConnectionConfig(BaseModel):
    """Pydantic model for connection settings.

    Timeouts are in seconds; ``None`` waits forever.
    """

    connect_timeout: Optional[float] = 30.0
    command_timeout: Optional[float] = 60.0
    data_timeout: Optional[float] = 300.0
    verify_tls: bool = True
    ehlo_hostname: Optional[str] = None

    @field_validator("connect_timeout", "command_timeout", "data_timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive or null")
        return value


class LoggingConfig(BaseModel):
    """Pydantic model for logging settings."""

    log_level: str = "INFO"
    console_level: str = "WARNING"
    log_dir: Optional[str] = None
    max_file_size: int = 5_242_880  # 5 MB
    backup_count: int = 5
    mask_emails: bool = False


class ClientConfig(BaseModel):
    """Pydantic model for overall client configuration."""

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigManager:
    """Loads and holds the client configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.path = Path(config_path) if config_path else None
        self.config = self._load_config()

    def _load_config(self) -> ClientConfig:
        """Load configuration from file, or return defaults when no path is set."""

        if self.path is None:
            logger.debug("No config file given, using default configuration.")
            return ClientConfig()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = ClientConfig(**data)
            logger.debug(f"Configuration loaded from {self.path}")
            return config

        except FileNotFoundError as e:
            raise MissingConfigError(
                f"Configuration file not found: {self.path}"
            ) from e
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse config file: {e}")
            raise InvalidConfigError(
                f"Configuration file is not valid JSON: {str(e)}"
            ) from e
        except (TypeError, ValidationError) as e:
            logger.debug(f"Failed to validate config file: {e}")
            raise InvalidConfigError(
                f"Configuration data does not match expected schema: {str(e)}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration: {str(e)}"
            ) from e

    @log_call
    def get_config(self, key_path: str, default: Any = None) -> Any:
        """Get a configuration value using a dot-separated key path."""

        obj: Any = self.config
        for key in key_path.split("."):
            if not hasattr(obj, key):
                return default
            obj = getattr(obj, key)
        return obj

    @log_call
    def set_config(self, key_path: str, value: Any):
        """Set a configuration value in memory using a dot-separated key path."""

        try:
            keys = key_path.split(".")
            obj = self.config

            for key in keys[:-1]:
                if not hasattr(obj, key):
                    raise MissingConfigError(
                        f"Configuration path '{key_path}' is invalid: '{key}' not found"
                    )
                obj = getattr(obj, key)

            if keys[-1] not in type(obj).model_fields:
                raise MissingConfigError(
                    f"Configuration key '{keys[-1]}' does not exist in path '{key_path}'"
                )

            updated = obj.model_validate({**obj.model_dump(), keys[-1]: value})
            setattr(obj, keys[-1], getattr(updated, keys[-1]))

            logger.debug(f"Config key '{key_path}' updated.")

        except CourierError:
            raise
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid value for configuration key '{key_path}': {str(e)}"
            ) from e


def load_config(config_path: Optional[Path] = None) -> ClientConfig:
    """Load a ClientConfig from an optional JSON file."""
    return ConfigManager(config_path).config
