"""
File encoding helpers
Converts uploaded image files to base64 payloads and back
"""

import asyncio
import base64
import logging
import mimetypes
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class EncodingError(Exception):
    """Base class for local file encoding failures."""


class ReadError(EncodingError):
    """The underlying file read failed."""


class ExtractionError(EncodingError):
    """The data URL did not contain a base64 payload."""


def guess_mime_type(file: Any) -> str:
    """Best-effort MIME type for a file-like object."""
    mime_type = getattr(file, "mime_type", None) or getattr(file, "type", None)
    if mime_type:
        return mime_type
    name = getattr(file, "name", None)
    if name:
        guessed, _ = mimetypes.guess_type(name)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def _read_bytes(file: Any) -> bytes:
    if isinstance(file, (bytes, bytearray)):
        return bytes(file)
    content = getattr(file, "content", None)
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if hasattr(file, "getvalue"):
        return file.getvalue()
    return file.read()


def read_as_data_url(file: Any, mime_type: Optional[str] = None) -> str:
    """Read a file and return it as a ``data:<mime>;base64,<payload>`` URL.

    Raises:
        ReadError: if reading the file fails.
    """
    try:
        data = _read_bytes(file)
    except (OSError, ValueError) as e:
        raise ReadError(f"Failed to read file: {e}") from e

    mime_type = mime_type or guess_mime_type(file)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def extract_base64(data_url: str) -> str:
    """Strip the data URL prefix (e.g. ``data:image/png;base64,``).

    Raises:
        ExtractionError: if there is no comma-delimited payload.
    """
    _, sep, payload = data_url.partition(",")
    if not sep or not payload:
        raise ExtractionError("Failed to extract base64 data from file.")
    return payload


async def file_to_base64(file: Any) -> str:
    """
    Convert a file to a base64 encoded string, stripping the data URL prefix.

    The read runs in a worker thread so the event loop stays responsive.

    Args:
        file: An uploaded file, ``UploadedImage``, bytes or any object with
            ``read()``/``getvalue()``

    Returns:
        The base64 payload without the ``data:`` prefix
    """
    data_url = await asyncio.to_thread(read_as_data_url, file)
    payload = extract_base64(data_url)
    logger.debug(f"Encoded file to {len(payload)} base64 characters")
    return payload


def decode_image_reference(reference: str) -> bytes:
    """Decode a ``data:`` image reference (or a bare base64 string) to bytes."""
    payload = extract_base64(reference) if reference.startswith("data:") else reference
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise ExtractionError(f"Invalid base64 image data: {e}") from e
