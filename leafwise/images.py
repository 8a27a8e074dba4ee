from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Union

import httpx
from PIL import Image, UnidentifiedImageError

from leafwise.report.errors import ImageDecodeError, MissingInputError


logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str, Path]

_DATA_URI_PATTERN = re.compile(
    r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]+)*?);base64,(?P<data>.*)$',
    re.DOTALL,
)


@dataclass(frozen=True)
class ResolvedImage:
    data: bytes
    mime_type: str
    width_px: int
    height_px: int

    @property
    def aspect_ratio(self) -> float:
        return self.width_px / self.height_px


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode('ascii')
    return f'data:{mime_type};base64,{encoded}'


def parse_data_uri(value: str) -> tuple[bytes, str | None]:
    match = _DATA_URI_PATTERN.match(str(value or '').strip())
    if match is None:
        raise ImageDecodeError('Image data URI must look like data:<mime>;base64,<data>')
    try:
        data = base64.b64decode(match.group('data'), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f'Image data URI is not valid base64: {exc}') from exc
    return data, match.group('mime')


def _is_url(value: str) -> bool:
    lowered = value.lower()
    return lowered.startswith('http://') or lowered.startswith('https://')


async def _fetch_url(url: str, *, timeout_seconds: int) -> tuple[bytes, str | None]:
    try:
        async with httpx.AsyncClient(timeout=max(5, int(timeout_seconds)), follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ImageDecodeError(f'Failed to fetch image from {url}: {exc}') from exc
    content_type = str(response.headers.get('content-type') or '').split(';', 1)[0].strip() or None
    return response.content, content_type


async def _read_file(path: Path) -> bytes:
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise ImageDecodeError(f'Failed to read image file {path}: {exc}') from exc


async def load_image_bytes(
    source: ImageSource | None,
    *,
    max_bytes: int | None = None,
    timeout_seconds: int = 30,
) -> tuple[bytes, str | None]:
    if source is None:
        raise MissingInputError('No image was provided.')

    if isinstance(source, bytes):
        data, declared_mime = source, None
    elif isinstance(source, Path):
        data, declared_mime = await _read_file(source.expanduser()), None
    else:
        token = str(source).strip()
        if not token:
            raise MissingInputError('No image was provided.')
        if token.startswith('data:'):
            data, declared_mime = parse_data_uri(token)
        elif _is_url(token):
            data, declared_mime = await _fetch_url(token, timeout_seconds=timeout_seconds)
        else:
            data, declared_mime = await _read_file(Path(token).expanduser()), None

    if not data:
        raise MissingInputError('Image is empty.')
    if max_bytes is not None and len(data) > int(max_bytes):
        raise ImageDecodeError(f'Image too large: {len(data)} bytes, max allowed {int(max_bytes)} bytes')
    return data, declared_mime


def probe_image(data: bytes) -> tuple[int, int, str]:
    try:
        with Image.open(BytesIO(data)) as img:
            # load() forces a full decode so truncated files fail here, not at render time
            img.load()
            width, height = img.size
            mime_type = Image.MIME.get(str(img.format or '').upper(), 'application/octet-stream')
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f'Image could not be decoded: {exc}') from exc
    if width <= 0 or height <= 0:
        raise ImageDecodeError(f'Image has invalid dimensions: {width}x{height}')
    return width, height, mime_type


async def resolve_image(
    source: ImageSource | None,
    *,
    max_bytes: int | None = None,
    timeout_seconds: int = 30,
) -> ResolvedImage:
    data, declared_mime = await load_image_bytes(
        source,
        max_bytes=max_bytes,
        timeout_seconds=timeout_seconds,
    )
    width, height, detected_mime = await asyncio.to_thread(probe_image, data)
    if declared_mime and declared_mime != detected_mime:
        logger.info('Image declared as %s but decoded as %s', declared_mime, detected_mime)
    return ResolvedImage(
        data=data,
        mime_type=detected_mime,
        width_px=width,
        height_px=height,
    )
