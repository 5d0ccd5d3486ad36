"""SMTP transport - opens the (optionally TLS) stream and wraps it in a line channel."""

import asyncio
import ssl
from typing import Optional, Union

from smtp_courier.core.email.constants import MIME
from smtp_courier.utils.config_manager import ConnectionConfig
from smtp_courier.utils.errors import ProtocolError, TransportError, ValidationError
from smtp_courier.utils.logging import get_logger

from .address import ServerEndpoint

logger = get_logger(__name__)


class LineChannel:
    """Buffered line-oriented channel owned by one SMTP session.

    Every write is drained immediately so the server never waits on a
    buffered command.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        command_timeout: Optional[float] = None,
        data_timeout: Optional[float] = None,
    ):
        """Initialise the channel over an open stream pair.

        Args:
            reader: Stream reader of the connection
            writer: Stream writer of the connection
            command_timeout: Deadline in seconds for each command read/write
            data_timeout: Deadline in seconds for each DATA payload write
        """
        self._reader = reader
        self._writer = writer
        self.command_timeout = command_timeout
        self.data_timeout = data_timeout
        self._closed = False
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def read_line(self) -> str:
        """Read one reply line with the CRLF stripped.

        Raises:
            ProtocolError: If the server closes the connection or the
                read times out
            TransportError: If the stream fails
        """
        raw = await self._guard(
            self._reader.readline(), self.command_timeout, "waiting for reply"
        )
        if not raw:
            raise ProtocolError(
                "Connection closed by server", details={"phase": "read"}
            )

        line = raw.decode("ascii", errors="replace").rstrip("\r\n")
        logger.debug(f"S: {line}")
        return line

    async def write_line(self, text: str, sensitive: bool = False) -> None:
        """Write one command line terminated by CRLF and flush it."""
        logger.debug(f"C: {'[REDACTED]' if sensitive else text}")
        try:
            data = (text + MIME.CRLF).encode("ascii")
        except UnicodeEncodeError as e:
            raise ValidationError("SMTP commands must be ASCII") from e
        await self._write(data, self.command_timeout)

    async def write_raw(self, data: Union[str, bytes]) -> None:
        """Write payload data without a line terminator and flush it."""
        if isinstance(data, str):
            data = data.encode("ascii")
        await self._write(data, self.data_timeout)

    async def _write(self, data: bytes, timeout: Optional[float]) -> None:
        self._writer.write(data)
        await self._guard(self._writer.drain(), timeout, "sending data")
        self.bytes_written += len(data)

    async def _guard(self, awaitable, timeout: Optional[float], action: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProtocolError(
                f"Timed out after {timeout}s {action}",
                details={"phase": "io", "timeout": timeout},
            ) from e
        except (asyncio.LimitOverrunError, ValueError) as e:
            # StreamReader.readline reports an over-long line as ValueError
            raise ProtocolError(
                f"Malformed data while {action}",
                details={"phase": "io", "reason": str(e)},
            ) from e
        except (ConnectionError, OSError) as e:
            raise TransportError(str(e) or e.__class__.__name__) from e

    async def close(self) -> None:
        """Close the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError, ssl.SSLError) as e:
            logger.debug(f"Error while closing SMTP connection: {str(e)}")

        logger.debug("SMTP connection closed", extra={"bytes_written": self.bytes_written})

    ## Context Manager Support

    async def __aenter__(self):
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        await self.close()


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Build the client TLS context.

    Args:
        verify: Whether to verify the server certificate and host name

    Returns:
        SSL context for the client side of an implicit-TLS connection
    """
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def open_channel(
    endpoint: ServerEndpoint,
    config: Optional[ConnectionConfig] = None,
    ssl_context: Optional[ssl.SSLContext] = None,
) -> LineChannel:
    """Connect to the SMTP server and return a line channel over the stream.

    Args:
        endpoint: Resolved server host, port and TLS flag
        config: Connection settings (timeouts, TLS verification)
        ssl_context: Optional TLS context overriding the one built from config

    Returns:
        LineChannel over a plain or TLS stream

    Raises:
        TransportError: If the TCP connection cannot be established
        ProtocolError: If the TLS handshake fails
    """
    config = config or ConnectionConfig()

    logger.info(
        "Connecting to SMTP server",
        extra={
            "server": endpoint.host,
            "port": endpoint.port,
            "ssl_mode": "implicit" if endpoint.encrypted else "none",
        },
    )

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port),
            timeout=config.connect_timeout,
        )
    except asyncio.TimeoutError as e:
        raise TransportError(
            f"Connection to {endpoint} timed out",
            details={"server": endpoint.host, "port": endpoint.port},
        ) from e
    except OSError as e:
        raise TransportError(
            str(e) or e.__class__.__name__,
            details={"server": endpoint.host, "port": endpoint.port},
        ) from e

    if endpoint.encrypted:
        context = ssl_context or create_ssl_context(config.verify_tls)
        try:
            await asyncio.wait_for(
                writer.start_tls(context, server_hostname=endpoint.host),
                timeout=config.connect_timeout,
            )
        except (ssl.SSLError, ssl.CertificateError, OSError, asyncio.TimeoutError) as e:
            writer.close()
            raise ProtocolError(
                "Cannot complete TLS authentication",
                details={"phase": "tls", "server": endpoint.host},
            ) from e

    return LineChannel(
        reader,
        writer,
        command_timeout=config.command_timeout,
        data_timeout=config.data_timeout,
    )
