"""MIME multipart/mixed writer that streams the DATA payload.

The document is written straight to the session channel: headers and the
body part first, then each attachment read in fixed-size chunks whose
length is a multiple of 3, so every chunk except the last of a stream
encodes to base64 without padding and the chunks can be concatenated.
"""

import asyncio
import base64
import binascii
import secrets
import time
from typing import (
    TYPE_CHECKING,
    AsyncIterator,
    BinaryIO,
    Callable,
    Iterable,
    Optional,
    Sequence,
)

from smtp_courier.core.email.constants import MIME
from smtp_courier.core.models.attachment import Attachment
from smtp_courier.utils.logging import get_logger

if TYPE_CHECKING:
    from smtp_courier.core.email.smtp.connection import LineChannel

logger = get_logger(__name__)

ProgressCallback = Callable[[str, int, Optional[int]], None]


## Encoding Helpers


def encode_base64(data: Optional[str], encoding: str = "utf-8") -> str:
    """Base64-encode a string using the given character set."""
    if data is None:
        return ""
    return base64.b64encode(data.encode(encoding)).decode("ascii")


def decode_base64(data: Optional[str], encoding: str = "utf-8") -> str:
    """Decode a base64 string back to text.

    Raises:
        ValueError: If the input is not valid base64 or not valid text
    """
    if data is None:
        return ""
    try:
        return base64.b64decode(data, validate=True).decode(encoding)
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid base64 text: {data!r}") from e


def encode_extended_word(data: Optional[str]) -> str:
    """Encode header text as ``=?UTF-8?B?...?=``, whatever its characters."""
    if data is None:
        return ""
    return f"=?{MIME.CHARSET}?B?{encode_base64(data, MIME.CHARSET)}?="


def merge_recipients(recipients: Sequence[str]) -> str:
    """Join recipients into a ``To`` header value: ``<a>, <b>``."""
    return ", ".join(f"<{address}>" for address in recipients)


def generate_boundary() -> str:
    """Generate a multipart boundary unique to one message."""
    return (
        f"{MIME.BOUNDARY_PREFIX}{time.monotonic_ns():x}"
        f"{secrets.token_hex(8)}{MIME.BOUNDARY_SUFFIX}"
    )


## Message Writer


class MIMEMessageWriter:
    """Serialises one multipart/mixed message onto a line channel."""

    def __init__(self, boundary: Optional[str] = None, chunk_size: int = MIME.CHUNK_SIZE):
        if chunk_size <= 0 or chunk_size % 3:
            raise ValueError("chunk_size must be a positive multiple of 3")
        self.boundary = boundary or generate_boundary()
        self.chunk_size = chunk_size

    def build_headers(
        self,
        friendly_name: str,
        sender: str,
        recipients: Sequence[str],
        subject: str,
    ) -> str:
        """Build the top-level header block and preamble."""
        crlf = MIME.CRLF
        lines = [
            f'From: "{encode_extended_word(friendly_name)}" <{sender}>',
            f"To: {merge_recipients(recipients)}",
            f"Subject: {encode_extended_word(subject)}",
            "Mime-Version: 1.0",
            "Content-Type: multipart/mixed;",
            f'\tboundary="{self.boundary}"',
            "Content-Transfer-Encoding: 7bit",
            "",
            MIME.PREAMBLE,
        ]
        return crlf.join(lines) + crlf

    def build_body_part(self, content: str, is_html: bool) -> str:
        """Build the delimiter, headers and encoded text of the body part."""
        crlf = MIME.CRLF
        subtype = "html" if is_html else "plain"
        lines = [
            "",
            self.delimiter,
            f'Content-Type: text/{subtype}; charset="utf-8"',
            "Content-Transfer-Encoding: base64",
            "",
            encode_base64(content or ""),
        ]
        return crlf.join(lines) + crlf

    def build_attachment_header(self, name: str) -> str:
        """Build the delimiter and headers opening one attachment part."""
        crlf = MIME.CRLF
        encoded_name = encode_extended_word(name)
        lines = [
            "",
            self.delimiter,
            f'Content-Type: application/octet-stream; name="{encoded_name}"',
            "Content-Transfer-Encoding: base64",
            f'Content-Disposition: attachment; filename="{encoded_name}"',
            "",
        ]
        return crlf.join(lines) + crlf

    @property
    def delimiter(self) -> str:
        return f"--{self.boundary}"

    @property
    def close_delimiter(self) -> str:
        return f"--{self.boundary}--"

    def _read_chunk(self, stream: BinaryIO) -> bytes:
        chunk = stream.read(self.chunk_size) or b""
        # Short reads from raw streams would break the 3-byte alignment
        while chunk and len(chunk) < self.chunk_size:
            more = stream.read(self.chunk_size - len(chunk))
            if not more:
                break
            chunk += more
        return chunk

    async def iter_attachment_chunks(self, attachment: Attachment) -> AsyncIterator[bytes]:
        """Yield the attachment bytes from the start of its stream in chunks.

        Reads run in a worker thread so file-backed attachments do not block
        the event loop.
        """
        await asyncio.to_thread(attachment.rewind)
        while True:
            chunk = await asyncio.to_thread(self._read_chunk, attachment.stream)
            if not chunk:
                return
            yield chunk

    async def write(
        self,
        channel: "LineChannel",
        friendly_name: str,
        sender: str,
        recipients: Sequence[str],
        subject: str,
        content: str,
        is_html: bool = False,
        attachments: Optional[Iterable[Attachment]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Write the whole MIME document to the channel.

        Args:
            channel: LineChannel of the session, after a 354 reply
            friendly_name: Sender display name
            sender: Sender address
            recipients: Recipient addresses in order
            subject: Subject line
            content: Body text or HTML
            is_html: Whether the body is HTML
            attachments: Attachments to append as parts
            progress: Optional callback(name, bytes_sent, total_bytes)
                called after each attachment chunk
        """
        await channel.write_raw(
            self.build_headers(friendly_name, sender, recipients, subject)
            + self.build_body_part(content, is_html)
        )

        for index, attachment in enumerate(attachments or (), start=1):
            await channel.write_raw(self.build_attachment_header(attachment.name))

            total = attachment.size()
            sent = 0
            async for chunk in self.iter_attachment_chunks(attachment):
                await channel.write_raw(base64.b64encode(chunk))
                sent += len(chunk)
                if progress:
                    progress(attachment.name, sent, total)

            await channel.write_raw(MIME.CRLF)
            logger.debug(
                f"Attachment {index} written",
                extra={"attachment": attachment.name, "bytes": sent},
            )

        await channel.write_raw(MIME.CRLF + self.close_delimiter)

