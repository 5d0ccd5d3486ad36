"""
Tests for the SMTP session state machine

Tests cover:
- Greeting and EHLO handshake, including continuation lines
- AUTH LOGIN challenge/response and credential rejection
- MAIL FROM / RCPT TO / DATA transfer and end-of-data
- Phase ordering guard
"""
import pytest

from smtp_courier.core.email.mime import MIMEMessageWriter
from smtp_courier.core.email.smtp.constants import SessionState
from smtp_courier.core.email.smtp.protocol import SMTPProtocol
from smtp_courier.core.models.credentials import Credentials
from smtp_courier.utils.errors import AuthenticationError, ProtocolError

from .test_helpers import FakeChannel, auth_script, b64

CREDENTIALS = Credentials("user@example.com", "s3cret")


def make_session(replies, state=SessionState.CONNECTED, **kwargs):
    channel = FakeChannel(replies)
    session = SMTPProtocol(channel, "smtp.example.com", **kwargs)
    session.state = state
    return session, channel


class TestHandshake:
    """Tests for greeting and EHLO"""

    @pytest.mark.asyncio
    async def test_handshake_with_continuation_lines(self):
        session, channel = make_session(["220 ok", "250-EXT", "250-SIZE 1000", "250 ok"])
        await session.handshake()

        assert session.state is SessionState.GREETED
        assert channel.lines == ["EHLO smtp.example.com"]
        assert channel.replies == []

    @pytest.mark.asyncio
    async def test_ehlo_uses_configured_hostname(self):
        session, channel = make_session(["220 ok", "250 ok"], ehlo_hostname="client.local")
        await session.handshake()
        assert channel.lines == ["EHLO client.local"]

    @pytest.mark.asyncio
    async def test_bad_greeting(self):
        session, channel = make_session(["554 go away"])
        with pytest.raises(ProtocolError) as exc_info:
            await session.handshake()

        assert exc_info.value.details["expected"] == "220"
        assert exc_info.value.details["phase"] == "handshake"
        assert channel.lines == []

    @pytest.mark.asyncio
    async def test_greeting_code_needs_trailing_space(self):
        session, _ = make_session(["220-multi line greeting"])
        with pytest.raises(ProtocolError):
            await session.handshake()

    @pytest.mark.asyncio
    async def test_ehlo_rejected(self):
        session, _ = make_session(["220 ok", "250-EXT", "502 not implemented"])
        with pytest.raises(ProtocolError) as exc_info:
            await session.handshake()
        assert exc_info.value.details["expected"] == "250"
        assert session.state is SessionState.CONNECTED


class TestLogin:
    """Tests for AUTH LOGIN"""

    @pytest.mark.asyncio
    async def test_successful_login(self):
        session, channel = make_session(auth_script(), SessionState.GREETED)
        await session.login(CREDENTIALS)

        assert session.state is SessionState.AUTHENTICATED
        assert channel.lines == ["AUTH LOGIN", b64("user@example.com"), b64("s3cret")]

    @pytest.mark.asyncio
    async def test_challenge_is_case_insensitive(self):
        replies = [f"334 {b64('USERNAME:')}", f"334 {b64('password:')}", "235 ok"]
        session, _ = make_session(replies, SessionState.GREETED)
        await session.login(CREDENTIALS)
        assert session.state is SessionState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_non_ascii_credentials_are_utf8_encoded(self):
        session, channel = make_session(auth_script(), SessionState.GREETED)
        await session.login(Credentials("usér", "pässword"))
        assert channel.lines[1] == b64("usér")
        assert channel.lines[2] == b64("pässword")

    @pytest.mark.asyncio
    async def test_permanent_failure_raises_authentication_error(self):
        session, _ = make_session(auth_script("535 bad credentials"), SessionState.GREETED)
        with pytest.raises(AuthenticationError) as exc_info:
            await session.login(CREDENTIALS)
        assert exc_info.value.message == "Cannot log in"

    @pytest.mark.asyncio
    async def test_other_final_reply_raises_authentication_error(self):
        session, _ = make_session(auth_script("454 try later"), SessionState.GREETED)
        with pytest.raises(AuthenticationError) as exc_info:
            await session.login(CREDENTIALS)
        assert exc_info.value.message == "Incorrect login credentials"

    @pytest.mark.asyncio
    async def test_missing_challenge(self):
        session, channel = make_session(["504 mechanism not supported"], SessionState.GREETED)
        with pytest.raises(ProtocolError):
            await session.login(CREDENTIALS)
        assert channel.lines == ["AUTH LOGIN"]

    @pytest.mark.asyncio
    async def test_unexpected_challenge_text(self):
        session, channel = make_session([f"334 {b64('Password:')}"], SessionState.GREETED)
        with pytest.raises(ProtocolError):
            await session.login(CREDENTIALS)
        assert channel.lines == ["AUTH LOGIN"]

    @pytest.mark.asyncio
    async def test_malformed_challenge(self):
        session, _ = make_session(["334 !!!not-base64"], SessionState.GREETED)
        with pytest.raises(ProtocolError) as exc_info:
            await session.login(CREDENTIALS)
        assert exc_info.value.details["phase"] == "login"

    @pytest.mark.asyncio
    async def test_login_requires_handshake(self):
        session, channel = make_session(auth_script())
        with pytest.raises(ProtocolError):
            await session.login(CREDENTIALS)
        assert channel.lines == []


class TestTransfer:
    """Tests for MAIL FROM, RCPT TO and DATA"""

    async def _send(self, session, recipients, **kwargs):
        await session.send_message(
            "Alice",
            "alice@example.com",
            recipients,
            "Subject",
            "Body",
            writer=MIMEMessageWriter(boundary="BOUNDARY"),
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_full_transfer(self):
        replies = ["250 ok", "250 ok", "250 ok", "354 go", "250 queued"]
        session, channel = make_session(replies, SessionState.AUTHENTICATED)

        await self._send(session, ["bob@example.com", "carol@example.com"])

        assert session.state is SessionState.SENT
        assert channel.lines == [
            "MAIL FROM: <alice@example.com>",
            "RCPT TO: <bob@example.com>",
            "RCPT TO: <carol@example.com>",
            "DATA",
        ]
        assert channel.payload.endswith("--BOUNDARY--\r\n.\r\n")

    @pytest.mark.asyncio
    async def test_duplicate_recipients_are_kept(self):
        replies = ["250 ok", "250 ok", "250 ok", "354 go", "250 queued"]
        session, channel = make_session(replies, SessionState.AUTHENTICATED)
        await self._send(session, ["bob@example.com", "bob@example.com"])
        assert channel.lines.count("RCPT TO: <bob@example.com>") == 2

    @pytest.mark.asyncio
    async def test_sender_rejected(self):
        session, channel = make_session(["550 no"], SessionState.AUTHENTICATED)
        with pytest.raises(ProtocolError) as exc_info:
            await self._send(session, ["bob@example.com"])
        assert exc_info.value.details["phase"] == "mail_from"
        assert channel.lines == ["MAIL FROM: <alice@example.com>"]

    @pytest.mark.asyncio
    async def test_rejected_recipient_stops_the_send(self):
        replies = ["250 ok", "250 ok", "550 no such user", "354 go", "250 queued"]
        session, channel = make_session(replies, SessionState.AUTHENTICATED)

        with pytest.raises(ProtocolError) as exc_info:
            await self._send(session, ["bob@example.com", "nobody@example.com"])

        assert exc_info.value.details["phase"] == "rcpt_to"
        assert channel.lines[-1] == "RCPT TO: <nobody@example.com>"
        assert "DATA" not in channel.lines
        assert channel.raw == []

    @pytest.mark.asyncio
    async def test_data_refused(self):
        replies = ["250 ok", "250 ok", "451 later"]
        session, channel = make_session(replies, SessionState.AUTHENTICATED)
        with pytest.raises(ProtocolError) as exc_info:
            await self._send(session, ["bob@example.com"])
        assert exc_info.value.details["expected"] == "354"
        assert channel.raw == []

    @pytest.mark.asyncio
    async def test_message_rejected_after_data(self):
        replies = ["250 ok", "250 ok", "354 go", "554 rejected as spam"]
        session, _ = make_session(replies, SessionState.AUTHENTICATED)
        with pytest.raises(ProtocolError) as exc_info:
            await self._send(session, ["bob@example.com"])
        assert exc_info.value.message == "Send failed"
        assert session.state is SessionState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_send_requires_login(self):
        session, channel = make_session([], SessionState.GREETED)
        with pytest.raises(ProtocolError):
            await self._send(session, ["bob@example.com"])
        assert channel.lines == []


class TestClose:
    """Tests for closing the session"""

    @pytest.mark.asyncio
    async def test_close_marks_session_closed(self):
        session, channel = make_session([], SessionState.SENT)
        await session.close()
        assert session.state is SessionState.CLOSED
        assert channel.close_calls == 1
