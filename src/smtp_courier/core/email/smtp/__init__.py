"""SMTP protocol implementation.

Low-level SMTP components:
- parse_address: Resolve ``host[:port]`` into a ServerEndpoint
- open_channel / LineChannel: TCP or implicit-TLS stream with line I/O
- SMTPProtocol: Handshake, AUTH LOGIN and message transfer state machine
- SMTPClient: One-call send that ties the pieces together

Architecture
------------
- ServerEndpoint: Immutable host, port and TLS flag
- LineChannel: One buffered channel per session, flushed after every write
- SMTPProtocol: Validates every reply code, fails on the first mismatch
- SMTPClient: Opens the channel, runs the session, always closes it

Usage
-----
    >>> from smtp_courier.core.email.smtp import SMTPClient
    >>> from smtp_courier.core.models import Attachment
    >>>
    >>> client = SMTPClient("smtp.example.com", use_ssl=True)
    >>> await client.send(
    ...     "Alice",
    ...     "alice@example.com",
    ...     "secret",
    ...     ["bob@example.com"],
    ...     subject="Report",
    ...     content="<p>Attached.</p>",
    ...     is_html=True,
    ...     attachments=[Attachment.from_path("report.pdf")],
    ... )
"""

from .address import ServerEndpoint, parse_address
from .client import SMTPClient, get_smtp_client
from .connection import LineChannel, open_channel
from .constants import SessionState
from .protocol import SMTPProtocol

__all__ = [
    "LineChannel",
    "SMTPClient",
    "SMTPProtocol",
    "ServerEndpoint",
    "SessionState",
    "get_smtp_client",
    "open_channel",
    "parse_address",
]
