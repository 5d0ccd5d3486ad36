"""SMTP session - drives handshake, AUTH LOGIN and message transfer over one channel."""

from typing import Iterable, Optional, Sequence

from smtp_courier.core.email.mime import (
    MIMEMessageWriter,
    ProgressCallback,
    decode_base64,
    encode_base64,
)
from smtp_courier.core.models.attachment import Attachment
from smtp_courier.core.models.credentials import Credentials
from smtp_courier.utils.errors import AuthenticationError, ProtocolError
from smtp_courier.utils.logging import async_log_call, get_logger

from .connection import LineChannel
from .constants import AuthChallenge, SessionState, SMTPCommand, SMTPResponse

logger = get_logger(__name__)


class SMTPProtocol:
    """State machine for a single SMTP send.

    Phases must run in order: ``handshake``, ``login``, ``send_message``.
    Every reply is checked against the expected code prefix and the first
    mismatch raises.
    """

    def __init__(self, channel: LineChannel, host: str, ehlo_hostname: Optional[str] = None):
        """Initialise the session over an open channel.

        Args:
            channel: Line channel connected to the server
            host: Resolved server host, announced in EHLO by default
            ehlo_hostname: Optional name to announce in EHLO instead
        """
        self.channel = channel
        self.host = host
        self.ehlo_hostname = ehlo_hostname or host
        self.state = SessionState.CONNECTED

    def _require(self, state: SessionState, phase: str) -> None:
        if self.state is not state:
            raise ProtocolError(
                f"Cannot run {phase} in state {self.state.value}",
                details={"phase": phase, "state": self.state.value},
            )

    async def _expect(self, prefix: str, phase: str, message: str) -> str:
        """Read one line and check it starts with the expected prefix."""
        line = await self.channel.read_line()
        if not line.startswith(prefix):
            raise ProtocolError(
                message,
                details={"phase": phase, "expected": prefix.strip(), "reply": line},
            )
        return line

    ## Handshake

    @async_log_call
    async def handshake(self) -> None:
        """Read the greeting and exchange EHLO.

        Raises:
            ProtocolError: If the greeting is not 220 or EHLO is not accepted
        """
        self._require(SessionState.CONNECTED, "handshake")

        await self._expect(
            SMTPResponse.SERVICE_READY, "handshake", "Cannot complete SMTP handshake (220)"
        )

        await self.channel.write_line(f"{SMTPCommand.EHLO} {self.ehlo_hostname}")

        line = await self.channel.read_line()
        while line.startswith(SMTPResponse.EHLO_CONTINUATION):
            line = await self.channel.read_line()

        if not line.startswith(SMTPResponse.OK):
            raise ProtocolError(
                "Cannot complete SMTP handshake (250)",
                details={"phase": "handshake", "expected": "250", "reply": line},
            )

        self.state = SessionState.GREETED

    ## Authentication

    async def _answer_challenge(self, expected: str, answer: str) -> None:
        line = await self._expect(
            SMTPResponse.AUTH_CHALLENGE,
            "login",
            f"Unrecognised response during login, expected 334 {expected}",
        )

        try:
            challenge = decode_base64(line[len(SMTPResponse.AUTH_CHALLENGE):].strip())
        except ValueError as e:
            raise ProtocolError(
                f"Malformed login challenge, expected {expected}",
                details={"phase": "login", "expected": "334", "reply": line},
            ) from e

        if challenge.lower() != expected:
            raise ProtocolError(
                f"Unrecognised login challenge, expected {expected}",
                details={"phase": "login", "expected": "334", "reply": line},
            )

        await self.channel.write_line(encode_base64(answer), sensitive=True)

    @async_log_call
    async def login(self, credentials: Credentials) -> None:
        """Authenticate with AUTH LOGIN.

        Raises:
            ProtocolError: If a challenge is missing or malformed
            AuthenticationError: If the server rejects the credentials
        """
        self._require(SessionState.GREETED, "login")

        await self.channel.write_line(SMTPCommand.AUTH_LOGIN)
        await self._answer_challenge(AuthChallenge.USERNAME, credentials.username)
        await self._answer_challenge(AuthChallenge.PASSWORD, credentials.password)

        line = await self.channel.read_line()
        if line.startswith(SMTPResponse.PERMANENT_FAILURE):
            raise AuthenticationError(
                "Cannot log in", details={"username": credentials.username, "reply": line}
            )
        if not line.startswith(SMTPResponse.AUTH_SUCCESS):
            raise AuthenticationError(
                "Incorrect login credentials",
                details={"username": credentials.username, "reply": line},
            )

        self.state = SessionState.AUTHENTICATED
        logger.debug("SMTP login accepted", extra={"username": credentials.username})

    ## Transfer

    @async_log_call
    async def send_message(
        self,
        friendly_name: str,
        sender: str,
        recipients: Sequence[str],
        subject: str,
        content: str,
        is_html: bool = False,
        attachments: Optional[Iterable[Attachment]] = None,
        progress: Optional[ProgressCallback] = None,
        writer: Optional[MIMEMessageWriter] = None,
    ) -> None:
        """Run MAIL FROM, RCPT TO and DATA, streaming the MIME document.

        Raises:
            ProtocolError: On the first unexpected reply; a rejected
                recipient aborts the send with no further commands
        """
        self._require(SessionState.AUTHENTICATED, "send")

        await self.channel.write_line(f"{SMTPCommand.MAIL_FROM}: <{sender}>")
        await self._expect(SMTPResponse.OK, "mail_from", "Unexpected response to MAIL FROM")

        for recipient in recipients:
            await self.channel.write_line(f"{SMTPCommand.RCPT_TO}: <{recipient}>")
            await self._expect(
                SMTPResponse.OK, "rcpt_to", f"Unexpected response to RCPT TO <{recipient}>"
            )

        await self.channel.write_line(SMTPCommand.DATA)
        await self._expect(SMTPResponse.START_MAIL, "data", "Unexpected response to DATA")

        writer = writer or MIMEMessageWriter()
        await writer.write(
            self.channel,
            friendly_name,
            sender,
            recipients,
            subject,
            content,
            is_html=is_html,
            attachments=attachments,
            progress=progress,
        )

        await self.channel.write_raw(SMTPCommand.END_OF_DATA)
        await self._expect(SMTPResponse.OK, "end_of_data", "Send failed")

        self.state = SessionState.SENT

    async def close(self) -> None:
        """Close the channel and mark the session closed."""
        await self.channel.close()
        self.state = SessionState.CLOSED
