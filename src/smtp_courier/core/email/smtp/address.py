"""Server address parsing."""

import re
from dataclasses import dataclass

from smtp_courier.utils.errors import AddressFormatError

from .constants import SMTPPorts

_ADDRESS_RE = re.compile(r"([^:]+):?(\d*)", re.ASCII)


@dataclass(frozen=True)
class ServerEndpoint:
    """Resolved SMTP server location."""

    host: str
    port: int
    encrypted: bool = False

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_address(address: str, encrypted: bool = False) -> ServerEndpoint:
    """Parse ``host`` or ``host:port`` into a ServerEndpoint.

    Args:
        address: Server address, optionally with a port
        encrypted: Whether the connection will use implicit TLS; picks the
            default port when none is given

    Returns:
        ServerEndpoint for the address

    Raises:
        AddressFormatError: If the address or port cannot be parsed
    """
    match = _ADDRESS_RE.fullmatch(address or "")
    if match is None:
        raise AddressFormatError(
            "Cannot parse server address", details={"address": address}
        )

    host, port_text = match.group(1), match.group(2)

    if not port_text:
        return ServerEndpoint(host, SMTPPorts.default_for(encrypted), encrypted)

    port = int(port_text)
    if not SMTPPorts.MIN <= port <= SMTPPorts.MAX:
        raise AddressFormatError(
            f"Port out of range: {port}", details={"address": address}
        )

    return ServerEndpoint(host, port, encrypted)
