"""smtp_courier - asyncio SMTP client with AUTH LOGIN, implicit TLS and MIME attachments."""

from .core.email.smtp import SMTPClient, get_smtp_client
from .core.models import Attachment, Credentials
from .utils.config_manager import ClientConfig, ConnectionConfig, LoggingConfig
from .utils.errors import (
    AddressFormatError,
    AuthenticationError,
    CourierError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from .utils.logging import init_logging

__version__ = "0.1.0"

__all__ = [
    "AddressFormatError",
    "Attachment",
    "AuthenticationError",
    "ClientConfig",
    "ConnectionConfig",
    "CourierError",
    "Credentials",
    "LoggingConfig",
    "ProtocolError",
    "SMTPClient",
    "TransportError",
    "ValidationError",
    "get_smtp_client",
    "init_logging",
]
