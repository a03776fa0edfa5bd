"""Logo loading — resolve a logo handle and decode it to an RGBA image."""

import asyncio
import base64
import binascii
import io
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlparse
from urllib.request import url2pathname

from PIL import Image, UnidentifiedImageError

from qrstyle.errors import DecodeError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("logo")


def _data_uri_bytes(uri: str) -> bytes:
    """Payload of a ``data:[<mime>][;base64],<data>`` URI."""
    header, sep, payload = uri[5:].partition(",")
    if not sep:
        raise DecodeError("Malformed data URI: missing ','")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Malformed base64 in data URI: {exc}") from exc
    return unquote_to_bytes(payload)


def _read_source(source) -> bytes | Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, Path):
        path = source
    elif isinstance(source, str):
        if source.startswith("data:"):
            return _data_uri_bytes(source)
        if source.startswith("file://"):
            path = Path(url2pathname(unquote(urlparse(source).path)))
        else:
            path = Path(source)
    else:
        raise DecodeError(f"Unsupported logo source type: {type(source).__name__}")

    try:
        return path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"Could not read logo '{path}': {exc}") from exc


@trace
def load_logo(source) -> Image.Image:
    """Decode a logo handle to a new RGBA image.

    Accepts a filesystem path, a ``file://`` or ``data:`` URI, raw encoded
    bytes, or an already decoded image (copied, never shared).

    Raises:
        DecodeError: The source is unreadable or not an image.
    """
    raw = _read_source(source)
    if isinstance(raw, Image.Image):
        return raw.convert("RGBA")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            logo = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Could not decode logo image: {exc}") from exc

    audit("logo.decoded", logger=log, size=f"{logo.width}x{logo.height}", bytes=len(raw))
    return logo


async def load_logo_async(source) -> Image.Image:
    """``load_logo`` off the event loop."""
    return await asyncio.to_thread(load_logo, source)
