"""
Shared test fixtures and configuration for pytest
"""
import io
import ssl
from pathlib import Path

import pytest

from smtp_courier.core.models.attachment import Attachment
from smtp_courier.utils.config_manager import ClientConfig, ConnectionConfig

from .test_helpers import ScriptedSMTPServer

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fast_config():
    """Client configuration with short timeouts for local servers"""
    return ClientConfig(
        connection=ConnectionConfig(
            connect_timeout=5.0,
            command_timeout=5.0,
            data_timeout=5.0,
        )
    )


@pytest.fixture
def server_tls_context():
    """Server-side TLS context with the self-signed localhost certificate"""
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(FIXTURES / "localhost.pem", FIXTURES / "localhost.key")
    return context


@pytest.fixture
def client_tls_context():
    """Client-side TLS context trusting only the test certificate"""
    return ssl.create_default_context(cafile=str(FIXTURES / "localhost.pem"))


@pytest.fixture
def sample_attachment():
    """Small in-memory attachment"""
    return Attachment("report.bin", io.BytesIO(b"\x00\x01\x02binary payload\xff"))


@pytest.fixture
def test_email():
    """Arguments for a full send"""
    return {
        "friendly_name": "Test Sender",
        "username": "sender@example.com",
        "password": "testpass",
        "to": ["recipient@example.com"],
        "subject": "Test Subject",
        "content": "Test email body",
    }


@pytest.fixture
async def smtp_server():
    """Scripted SMTP server with default (accepting) replies"""
    server = await ScriptedSMTPServer().start()
    yield server
    await server.stop()


@pytest.fixture
async def make_server():
    """Factory for scripted SMTP servers with custom replies"""
    servers = []

    async def _make(**replies):
        server = await ScriptedSMTPServer(**replies).start()
        servers.append(server)
        return server

    yield _make

    for server in servers:
        await server.stop()
