"""Shared constants for message framing.

Values used when serialising the DATA payload:
- Line ending and header character set
- MIME preamble and boundary token layout
- Attachment read chunk size

Chunk Size:
-----------
Attachments are read and encoded one chunk at a time, so memory use stays
flat for large files. The size must be a multiple of 3: base64 turns every
3 input bytes into 4 output characters, and only a multiple of 3 lets the
encoded chunks be concatenated with no padding in between.
"""


class MIME:
    """Values used when framing the DATA payload."""

    CRLF = "\r\n"
    CHARSET = "UTF-8"
    PREAMBLE = "This is a multi-part message in MIME format."
    BOUNDARY_PREFIX = "=====NextPart_"
    BOUNDARY_SUFFIX = "====="

    CHUNK_SIZE = 1024 * 40 * 3  # 120 KiB
