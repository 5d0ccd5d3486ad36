"""SMTP constants and protocol values."""

from enum import Enum


class SMTPResponse:
    """Reply-code prefixes checked by the session.

    Each prefix includes the trailing space that marks the final line of a
    reply; ``EHLO_CONTINUATION`` marks a continued multi-line reply.
    """

    SERVICE_READY = "220 "  # Greeting
    OK = "250 "  # Requested mail action okay, completed
    EHLO_CONTINUATION = "250-"
    AUTH_SUCCESS = "235 "  # Authentication successful
    AUTH_CHALLENGE = "334 "  # Server challenge
    START_MAIL = "354 "  # Start mail input; end with <CRLF>.<CRLF>
    PERMANENT_FAILURE = "5"  # Any 5xx reply


class SMTPCommand:
    """Command verbs written by the session."""

    EHLO = "EHLO"
    AUTH_LOGIN = "AUTH LOGIN"
    MAIL_FROM = "MAIL FROM"
    RCPT_TO = "RCPT TO"
    DATA = "DATA"
    END_OF_DATA = "\r\n.\r\n"


class AuthChallenge:
    """Decoded AUTH LOGIN challenges, compared case-insensitively."""

    USERNAME = "username:"
    PASSWORD = "password:"


class SMTPPorts:
    """Standard SMTP port numbers."""

    SMTP = 25  # Plain SMTP
    SUBMISSION_SSL = 465  # Implicit TLS/SSL

    MIN = 1
    MAX = 65535

    @classmethod
    def default_for(cls, encrypted: bool) -> int:
        """Return the default port for a plain or implicit-TLS connection.

        Args:
            encrypted: Whether the connection uses implicit TLS

        Returns:
            465 when encrypted, 25 otherwise
        """
        return cls.SUBMISSION_SSL if encrypted else cls.SMTP


class SessionState(Enum):
    """States of a single SMTP send session."""

    CONNECTED = "connected"
    GREETED = "greeted"
    AUTHENTICATED = "authenticated"
    SENT = "sent"
    CLOSED = "closed"

