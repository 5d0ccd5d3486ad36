"""Email sending: SMTP session handling and MIME message framing."""

from .mime import MIMEMessageWriter, encode_extended_word, generate_boundary
from .smtp import SMTPClient, get_smtp_client

__all__ = [
    # MIME
    "MIMEMessageWriter",
    "encode_extended_word",
    "generate_boundary",
    # SMTP
    "SMTPClient",
    "get_smtp_client",
]
