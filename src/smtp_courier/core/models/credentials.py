"""Login credentials for AUTH LOGIN."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Username and password held for the duration of one send."""

    username: str
    password: str = field(repr=False)
