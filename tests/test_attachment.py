"""
Tests for the attachment and credentials models

Tests cover:
- Constructors from bytes and from a file path
- Stream size and rewinding
- Ownership of opened files
- Password hidden from repr
"""
import io

from smtp_courier.core.models.attachment import Attachment
from smtp_courier.core.models.credentials import Credentials


class TestAttachment:
    """Tests for Attachment"""

    def test_from_bytes(self):
        attachment = Attachment.from_bytes("a.txt", b"hello")
        assert attachment.name == "a.txt"
        assert attachment.stream.read() == b"hello"

    def test_size_keeps_position(self, sample_attachment):
        sample_attachment.stream.seek(3)
        assert sample_attachment.size() == len(b"\x00\x01\x02binary payload\xff")
        assert sample_attachment.stream.tell() == 3

    def test_rewind(self, sample_attachment):
        sample_attachment.stream.read()
        sample_attachment.rewind()
        assert sample_attachment.stream.tell() == 0

    def test_size_of_unseekable_stream(self):
        class Pipe(io.RawIOBase):
            def readable(self):
                return True

        assert Attachment("pipe", Pipe()).size() is None

    def test_from_path_owns_file(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF")

        with Attachment.from_path(path) as attachment:
            assert attachment.name == "report.pdf"
            assert attachment.stream.read() == b"%PDF"

        assert attachment.stream.closed

    def test_from_path_custom_name(self, tmp_path):
        path = tmp_path / "x.bin"
        path.write_bytes(b"")
        with Attachment.from_path(path, name="renamed.bin") as attachment:
            assert attachment.name == "renamed.bin"

    def test_caller_stream_left_open(self, sample_attachment):
        with sample_attachment:
            pass
        assert not sample_attachment.stream.closed


class TestCredentials:
    """Tests for Credentials"""

    def test_password_not_in_repr(self):
        credentials = Credentials("user@example.com", "s3cret")
        assert "s3cret" not in repr(credentials)
        assert "user@example.com" in repr(credentials)
