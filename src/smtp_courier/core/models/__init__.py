"""Value objects passed into a send."""

from .attachment import Attachment
from .credentials import Credentials

__all__ = ["Attachment", "Credentials"]
