from __future__ import annotations

from pathlib import Path

import pytest
from conftest import make_png

from leafwise import images
from leafwise.images import parse_data_uri, probe_image, resolve_image, to_data_uri
from leafwise.report.errors import ImageDecodeError, MissingInputError


def test_data_uri_round_trip_keeps_mime() -> None:
    data = make_png()

    decoded, mime = parse_data_uri(to_data_uri(data, 'image/png'))

    assert decoded == data
    assert mime == 'image/png'


@pytest.mark.parametrize('value', ['data:image/png,abc', 'data:image/png;base64,@@@', 'image/png;base64,AA=='])
def test_malformed_data_uri_is_rejected(value) -> None:
    with pytest.raises(ImageDecodeError):
        parse_data_uri(value)


def test_probe_reports_pixel_size_and_format() -> None:
    assert probe_image(make_png(64, 48)) == (64, 48, 'image/png')


async def test_resolve_from_bytes_path_and_data_uri(tmp_path) -> None:
    data = make_png(30, 60)
    path = tmp_path / 'leaf.png'
    path.write_bytes(data)

    for source in (data, path, str(path), to_data_uri(data, 'image/png')):
        resolved = await resolve_image(source)
        assert resolved.data == data
        assert (resolved.width_px, resolved.height_px) == (30, 60)
        assert resolved.aspect_ratio == pytest.approx(0.5)


async def test_declared_mime_is_replaced_by_detected_format() -> None:
    resolved = await resolve_image(to_data_uri(make_png(), 'image/jpeg'))

    assert resolved.mime_type == 'image/png'


async def test_url_sources_are_fetched(monkeypatch) -> None:
    data = make_png()
    fetched: list[str] = []

    async def fake_fetch(url: str, *, timeout_seconds: int):
        fetched.append(url)
        return data, 'image/png'

    monkeypatch.setattr(images, '_fetch_url', fake_fetch)

    resolved = await resolve_image('https://example.test/leaf.png')

    assert fetched == ['https://example.test/leaf.png']
    assert resolved.data == data


@pytest.mark.parametrize('source', [None, '', '   ', b''])
async def test_missing_sources_are_reported(source) -> None:
    with pytest.raises(MissingInputError):
        await resolve_image(source)


async def test_unreadable_file_is_a_decode_error(tmp_path) -> None:
    with pytest.raises(ImageDecodeError):
        await resolve_image(Path(tmp_path / 'missing.png'))


async def test_oversized_image_is_rejected() -> None:
    with pytest.raises(ImageDecodeError, match='too large'):
        await resolve_image(make_png(), max_bytes=10)


async def test_non_image_bytes_are_rejected() -> None:
    with pytest.raises(ImageDecodeError):
        await resolve_image(b'definitely not an image')
