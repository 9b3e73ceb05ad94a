"""
multipart/form-data encoding for record requests that carry files.
"""

import logging
import mimetypes
import uuid
from collections.abc import Mapping
from pathlib import Path

from pb_cli.core.errors import InvalidValueError, UnsupportedFileTypeError
from pb_cli.core.types import FileRefs, Scalar, StringList, Value

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(path: str | Path) -> str:
    """
    Guess a file's content type from its extension.

    Raises:
        UnsupportedFileTypeError: If the extension is unknown

    """
    content_type, _ = mimetypes.guess_type(str(path))
    if content_type is None:
        raise UnsupportedFileTypeError(f"Unknown content type for '{path}'", details={"path": str(path)})
    return content_type


def _file_content_type(path: Path) -> str:
    try:
        return content_type_for(path)
    except UnsupportedFileTypeError:
        logger.warning("Unknown file type for %s, sending as %s", path, DEFAULT_CONTENT_TYPE)
        return DEFAULT_CONTENT_TYPE


def _quote_header_value(value: str) -> str:
    """Make a name safe inside a quoted Content-Disposition parameter."""
    return value.replace("\r", "").replace("\n", "").replace('"', "%22")


def _text_part(name: str, text: str) -> tuple[bytes, bytes]:
    header = f'Content-Disposition: form-data; name="{_quote_header_value(name)}"\r\n\r\n'
    return header.encode("utf-8"), text.encode("utf-8")


def _file_part(name: str, path: Path) -> tuple[bytes, bytes]:
    filename = _quote_header_value(path.name)
    header = (
        f'Content-Disposition: form-data; name="{_quote_header_value(name)}"; filename="{filename}"\r\n'
        f"Content-Type: {_file_content_type(path)}\r\n\r\n"
    )
    return header.encode("utf-8"), path.read_bytes()


def _parts(fields: Mapping[str, Value | None]) -> list[tuple[bytes, bytes]]:
    parts: list[tuple[bytes, bytes]] = []
    for name, value in fields.items():
        if value is None:
            # An empty value clears the field
            parts.append(_text_part(name, ""))
        elif isinstance(value, Scalar):
            parts.append(_text_part(name, value.text))
        elif isinstance(value, StringList):
            # Repeated parts with the same name form a multi-value field
            parts.extend(_text_part(name, item) for item in value.items)
        elif isinstance(value, FileRefs):
            parts.extend(_file_part(name, Path(p)) for p in value.paths)
        else:
            raise InvalidValueError(f"Field '{name}' has unsupported value {value!r}", details={"field": name})
    return parts


def _new_boundary(parts: list[tuple[bytes, bytes]]) -> str:
    while True:
        boundary = uuid.uuid4().hex
        token = boundary.encode("ascii")
        if not any(token in header or token in content for header, content in parts):
            return boundary


def encode_multipart(fields: Mapping[str, Value | None]) -> tuple[bytes, str]:
    """
    Encode a field map as a multipart/form-data body.

    Scalars become one text part, StringLists one text part per item and
    FileRefs one file part per path, all named after their field. File
    contents are read in full here.

    Returns:
        Tuple of (body, boundary); send with
        "Content-Type: multipart/form-data; boundary=<boundary>"

    """
    parts = _parts(fields)
    boundary = _new_boundary(parts)
    delimiter = f"--{boundary}\r\n".encode("ascii")

    chunks: list[bytes] = []
    for header, content in parts:
        chunks.extend((delimiter, header, content, b"\r\n"))
    chunks.append(f"--{boundary}--\r\n".encode("ascii"))
    return b"".join(chunks), boundary
