"""Error taxonomy for the SMTP courier."""

from enum import Enum
from typing import Any, Dict

## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    NETWORK = "network"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class CourierError(Exception):
    """Base exception for all courier errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise CourierError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Validation Errors


class ValidationError(CourierError):
    """Exception for invalid call arguments."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


class AddressFormatError(ValidationError):
    """Exception for a server address that cannot be parsed."""

    user_message = "Cannot parse server address"


## Network Errors


class TransportError(CourierError):
    """Exception for failures below the SMTP layer (DNS, TCP, stream I/O).

    The message is the native description of the underlying error, which is
    kept as ``__cause__``.
    """

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


## Protocol Errors


class ProtocolError(CourierError):
    """Exception for any unexpected reply from the server.

    ``details`` names the phase that failed and the expected reply code.
    """

    category = ErrorCategory.PROTOCOL
    user_message = "Unexpected response from mail server"


## Authentication Errors


class AuthenticationError(CourierError):
    """Exception for credentials rejected during AUTH LOGIN."""

    category = ErrorCategory.AUTHENTICATION
    user_message = "Invalid email or password"


## Configuration Errors


class ConfigurationError(CourierError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class MissingConfigError(ConfigurationError):
    """Exception for missing configuration settings."""

    user_message = "Missing configuration settings"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Utility Functions


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    match error:
        case AuthenticationError():
            return f"Login rejected: {error.message}"
        case AddressFormatError():
            return f"Bad server address: {error.message}"
        case ProtocolError(details={"phase": phase}):
            return f"SMTP {phase} failed: {error.message}"
        case TransportError():
            return f"Connection failed: {error.message}"
        case CourierError():
            return error.message
        case _:
            return "An unexpected error occurred - check logs for details."
