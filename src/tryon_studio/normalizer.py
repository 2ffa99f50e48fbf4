"""
Conversion of user-selected image files into transmittable records.

Normalization is a two-stage pipeline: the file is read into a data URL, then the
data URL is decoded as an image to learn its dimensions. Each stage raises its own
typed failure so callers can tell an unreadable file from an unusable one.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import mimetypes
import os
import re
import struct
from typing import IO, Union

from PIL import Image

from .errors import DecodeError, FormatError
from .types import NormalizedImage

logger = logging.getLogger(__name__)

FileHandle = Union[str, "os.PathLike[str]", bytes, bytearray, memoryview, IO[bytes]]

DEFAULT_MEDIA_TYPE = "application/octet-stream"
_MEDIA_TYPE_PATTERN = re.compile(r":(.*?);")


def sniff_media_type(data: bytes, name: str | None = None) -> str:
    """Guess the media type from magic bytes, then from the file name."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data.startswith(b"GIF8"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:2] == b"BM":
        return "image/bmp"
    if data[:4] in {b"II*\x00", b"MM\x00*"}:
        return "image/tiff"
    if name:
        guessed, _ = mimetypes.guess_type(name)
        if guessed:
            return guessed
    return DEFAULT_MEDIA_TYPE


def _read_bytes(handle: FileHandle) -> tuple[bytes, str | None]:
    if isinstance(handle, (bytes, bytearray, memoryview)):
        return bytes(handle), None
    if isinstance(handle, (str, os.PathLike)):
        path = os.fspath(handle)
        with open(path, "rb") as stream:
            return stream.read(), os.path.basename(path)

    read = getattr(handle, "read", None)
    if read is None:
        raise DecodeError(f"Unsupported file handle: {type(handle).__name__}")
    data = read()
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError("File handle did not return binary data.")
    name = getattr(handle, "name", None)
    return bytes(data), os.path.basename(name) if isinstance(name, str) else None


def encode_data_url(data: bytes, media_type: str) -> str:
    body = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{body}"


async def read_data_url(handle: FileHandle) -> str:
    """Read the whole file and return it as a ``data:`` URL.

    Raises
    ------
    DecodeError
        If the handle cannot be read as binary data.
    """
    try:
        data, name = await asyncio.to_thread(_read_bytes, handle)
    except (OSError, ValueError) as exc:
        raise DecodeError(f"Could not read file: {exc}") from exc
    return encode_data_url(data, sniff_media_type(data, name))


def split_data_url(data_url: str) -> tuple[str, str]:
    header, _, payload = data_url.partition(",")
    if not header or not payload:
        raise FormatError("Invalid file format")
    return header, payload


def media_type_from_header(header: str) -> str:
    match = _MEDIA_TYPE_PATTERN.search(header)
    return (match.group(1) if match else "") or DEFAULT_MEDIA_TYPE


def _decode_dimensions(payload: str) -> tuple[int, int]:
    try:
        raw = base64.b64decode(payload, validate=True)
        with Image.open(io.BytesIO(raw)) as image:
            image.load()
            return image.size
    except (
        binascii.Error,
        OSError,
        ValueError,
        SyntaxError,
        struct.error,
        Image.DecompressionBombError,
    ) as exc:
        raise FormatError(f"File is not a decodable image: {exc}") from exc


async def decode_dimensions(payload: str) -> tuple[int, int]:
    """Decode a base64 image body and return its ``(width, height)``.

    Raises
    ------
    FormatError
        If the body is not valid image data or has a zero dimension.
    """
    width, height = await asyncio.to_thread(_decode_dimensions, payload)
    if width < 1 or height < 1:
        raise FormatError(f"Image has invalid dimensions: {width}x{height}")
    return width, height


async def normalize(handle: FileHandle) -> NormalizedImage:
    """Turn a selected file into a :class:`NormalizedImage`.

    An unrecognised media-type annotation falls back to
    ``application/octet-stream``; only undecodable pixel data is a ``FormatError``.
    """
    data_url = await read_data_url(handle)
    header, payload = split_data_url(data_url)
    media_type = media_type_from_header(header)
    width, height = await decode_dimensions(payload)

    logger.debug("Normalized %s image (%dx%d)", media_type, width, height)
    return NormalizedImage(
        payload=payload,
        media_type=media_type,
        preview_handle=data_url,
        width=width,
        height=height,
    )
