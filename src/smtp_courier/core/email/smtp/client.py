"""SMTP client for sending one email per connection via an SMTP server"""

import asyncio
import ssl
import time
from typing import Iterable, Optional, Sequence

from smtp_courier.core.email.mime import MIMEMessageWriter, ProgressCallback
from smtp_courier.core.models.attachment import Attachment
from smtp_courier.core.models.credentials import Credentials
from smtp_courier.utils.config_manager import ClientConfig
from smtp_courier.utils.errors import ValidationError
from smtp_courier.utils.logging import get_logger

from .address import ServerEndpoint, parse_address
from .connection import open_channel
from .protocol import SMTPProtocol


class SMTPClient:
    """Asynchronous SMTP client: connect, log in with AUTH LOGIN, send, close.

    Every ``send`` opens its own connection and closes it before returning,
    so independent sends may run concurrently on one client.
    Logging is not configured here; pass ``config.logging`` to
    ``init_logging`` to attach handlers.
    """

    def __init__(
        self,
        address: str,
        use_ssl: bool = False,
        config: Optional[ClientConfig] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        """Initialise SMTP client for a server address.

        Args:
            address: ``host`` or ``host:port``; the port defaults to 465
                with SSL and 25 without
            use_ssl: Whether to use implicit TLS
            config: Optional client configuration
            ssl_context: Optional TLS context for the connection

        Raises:
            AddressFormatError: If the address cannot be parsed
        """
        self.endpoint: ServerEndpoint = parse_address(address, use_ssl)
        self.config = config or ClientConfig()
        self._ssl_context = ssl_context

    @property
    def host(self) -> str:
        return self.endpoint.host

    @property
    def port(self) -> int:
        return self.endpoint.port

    @property
    def ssl(self) -> bool:
        return self.endpoint.encrypted

    async def send(
        self,
        friendly_name: str,
        username: str,
        password: str,
        to: Sequence[str],
        subject: str,
        content: str,
        is_html: bool = False,
        attachments: Optional[Iterable[Attachment]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Send an email with optional HTML body and attachments.

        Args:
            friendly_name: Sender display name
            username: Sender address, also the login user name
            password: Login password
            to: Recipient addresses, in order
            subject: Email subject line
            content: Body text or HTML
            is_html: Whether the body is HTML
            attachments: Optional attachments
            progress: Optional callback(name, bytes_sent, total_bytes)
                called after each attachment chunk is written

        Raises:
            ValidationError: If no recipient is given or an address is not ASCII
            TransportError: If the server cannot be reached
            ProtocolError: If the server replies unexpectedly
            AuthenticationError: If the credentials are rejected
        """
        if isinstance(to, str):
            to = [to]
        recipients = list(to)
        if not recipients:
            raise ValidationError("At least one recipient is required")

        non_ascii = [address for address in [username, *recipients] if not address.isascii()]
        if non_ascii:
            raise ValidationError(
                "Mailbox addresses must be ASCII", details={"addresses": non_ascii}
            )

        credentials = Credentials(username, password)
        connection_config = self.config.connection
        send_start = time.time()
        send_logger = get_logger(__name__, server=str(self.endpoint), username=username)

        send_logger.info(
            "Sending email",
            extra={
                "recipients": len(recipients),
                "subject": subject[:50] if subject else "",
            },
        )

        async with await open_channel(
            self.endpoint, connection_config, self._ssl_context
        ) as channel:
            session = SMTPProtocol(
                channel, self.host, ehlo_hostname=connection_config.ehlo_hostname
            )
            try:
                await session.handshake()
                await session.login(credentials)
                await session.send_message(
                    friendly_name,
                    username,
                    recipients,
                    subject,
                    content,
                    is_html=is_html,
                    attachments=attachments,
                    progress=progress,
                    writer=MIMEMessageWriter(),
                )
            finally:
                await session.close()

        send_logger.info(
            "Email sent successfully",
            extra={
                "recipients": len(recipients),
                "duration_seconds": round(time.time() - send_start, 2),
                "bytes_written": channel.bytes_written,
            },
        )

    async def send_text(
        self, username: str, password: str, to: str, subject: str, content: str
    ) -> None:
        """Send a plain-text email to a single recipient.

        The sender display name is the user name.
        """
        await self.send(username, username, password, [to], subject, content)

    def send_sync(self, *args, **kwargs) -> None:
        """Blocking wrapper around ``send`` for callers without an event loop."""
        asyncio.run(self.send(*args, **kwargs))


## SMTP Client Factory


def get_smtp_client(
    address: str, use_ssl: bool = False, config: Optional[ClientConfig] = None
) -> SMTPClient:
    """Factory function to get an SMTPClient instance."""
    return SMTPClient(address, use_ssl, config)
