"""Tests for the image codec."""

import io

import pytest
from PIL import Image

from atelier_catalog.utils.errors import ImageCodecError
from atelier_catalog.utils.image_codec import (
    ImageCodec,
    parse_data_url,
    to_data_url,
)


def _encode(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _decode(data_url: str) -> Image.Image:
    _, data = parse_data_url(data_url)
    return Image.open(io.BytesIO(data))


@pytest.fixture
def codec():
    return ImageCodec(max_width=800, quality=0.85)


def test_opaque_png_is_downscaled_and_lossy(codec):
    data = _encode(Image.new("RGBA", (2000, 1000), (10, 120, 200, 255)))

    result = codec.encode_bytes(data, "image/png")

    assert (result.width, result.height) == (800, 400)
    assert result.mime_type == "image/jpeg"
    assert not result.lossless
    decoded = _decode(result.data_url)
    assert decoded.format == "JPEG"
    assert decoded.size == (800, 400)


def test_single_transparent_pixel_keeps_lossless_path(codec):
    image = Image.new("RGBA", (2000, 1000), (10, 120, 200, 255))
    image.putpixel((1999, 999), (0, 0, 0, 0))

    result = codec.encode_bytes(_encode(image), "image/png")

    assert result.mime_type == "image/png"
    assert result.lossless
    decoded = _decode(result.data_url)
    assert decoded.size == (800, 400)
    assert decoded.mode == "RGBA"


def test_small_image_keeps_its_dimensions(codec):
    data = _encode(Image.new("RGB", (320, 240), (255, 0, 0)), "JPEG")

    result = codec.encode_bytes(data, "image/jpeg")

    assert (result.width, result.height) == (320, 240)
    assert result.mime_type == "image/jpeg"


def test_jpeg_source_never_takes_alpha_path(codec):
    data = _encode(Image.new("RGB", (900, 300), (0, 0, 0)), "JPEG")

    result = codec.encode_bytes(data)

    assert result.mime_type == "image/jpeg"
    assert (result.width, result.height) == (800, 267)


def test_target_size_rounds_half_up():
    codec = ImageCodec(max_width=100)

    assert codec.target_size(200, 101) == (100, 51)
    assert codec.target_size(50, 20) == (50, 20)
    assert codec.target_size(10_000, 1) == (100, 1)


def test_lossy_path_flattens_onto_background():
    codec = ImageCodec(max_width=800, background=(255, 255, 255))
    # Fully opaque RGBA goes through the flatten step
    data = _encode(Image.new("RGBA", (40, 40), (0, 0, 0, 255)))

    decoded = _decode(codec.encode_bytes(data, "image/png").data_url).convert("RGB")

    r, g, b = decoded.getpixel((20, 20))
    assert max(r, g, b) < 20


def test_encode_data_url_round_trip(codec):
    source = to_data_url("image/png", _encode(Image.new("RGB", (1000, 500), (0, 255, 0))))

    result = codec.encode_data_url(source)

    assert result.data_url.startswith("data:image/jpeg;base64,")
    assert (result.source_width, result.source_height) == (1000, 500)


@pytest.mark.parametrize("data", [b"", b"not an image", b"\x89PNG\r\n\x1a\n broken"])
def test_undecodable_input_raises(codec, data):
    with pytest.raises(ImageCodecError):
        codec.encode_bytes(data)


@pytest.mark.parametrize("value", ["hello", "data:image/png,notbase64", "http://example.com/a.png"])
def test_parse_data_url_rejects_non_base64_urls(value):
    with pytest.raises(ImageCodecError):
        parse_data_url(value)


def test_invalid_settings():
    with pytest.raises(ValueError):
        ImageCodec(max_width=0)
    with pytest.raises(ValueError):
        ImageCodec(quality=1.5)


@pytest.mark.asyncio
async def test_compress_bytes_runs_off_loop(codec):
    data = _encode(Image.new("RGB", (1600, 200), (1, 2, 3)))

    data_url = await codec.compress_bytes(data, "image/png")

    assert _decode(data_url).size == (800, 100)
