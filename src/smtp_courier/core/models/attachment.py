"""Attachment model - a named binary stream to send as a MIME part."""

import io
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional


@dataclass
class Attachment:
    """A named binary content source supplied by the caller.

    The stream is rewound to its start before it is read and is consumed
    completely; it stays open afterwards and the caller keeps ownership.
    Attachments created with ``from_path`` own their file and close it when
    used as a context manager.
    """

    name: str
    stream: BinaryIO
    _owns_stream: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "Attachment":
        """Create an attachment over in-memory bytes."""
        return cls(name, io.BytesIO(data))

    @classmethod
    def from_path(cls, path: str | os.PathLike, name: Optional[str] = None) -> "Attachment":
        """Open a file as an attachment, named after the file unless given."""
        path = Path(path)
        return cls(name or path.name, open(path, "rb"), _owns_stream=True)

    def rewind(self) -> None:
        """Move the stream back to its start when it can seek."""
        if self.stream.seekable():
            self.stream.seek(0)

    def size(self) -> Optional[int]:
        """Return the stream length in bytes, or None when it cannot seek."""
        if not self.stream.seekable():
            return None
        position = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(position)
        return end

    def close(self) -> None:
        if self._owns_stream:
            self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
