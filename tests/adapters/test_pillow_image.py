from __future__ import annotations

import io

import pytest
from PIL import Image

from adapters.imaging.pillow_image import PillowImageDecoder, PillowLuminanceSampler
from domain.errors import ImageDecodeFailed
from domain.models import DecodedImage
from domain.services.placement import cover_fit
from tests.helpers.fakes import solid_image_bytes


def test_decode_png() -> None:
    data = solid_image_bytes((10, 20, 30), (4, 3))

    image = PillowImageDecoder().decode(data)

    assert (image.width, image.height) == (4, 3)
    assert image.mime_type == "image/png"
    assert image.pixels[:3] == bytes((10, 20, 30))
    assert image.source == data


def test_decode_jpeg_reports_mime_type() -> None:
    image = PillowImageDecoder().decode(solid_image_bytes((200, 200, 200), (8, 8), "JPEG"))

    assert image.mime_type == "image/jpeg"


def test_decode_converts_palette_and_alpha_to_rgb() -> None:
    buffer = io.BytesIO()
    Image.new("RGBA", (2, 2), (255, 0, 0, 128)).save(buffer, format="PNG")

    image = PillowImageDecoder().decode(buffer.getvalue())

    assert len(image.pixels) == 2 * 2 * 3


@pytest.mark.parametrize("data", [b"", b"garbage bytes", b"\x89PNG\r\n\x1a\n truncated"])
def test_decode_failures_are_typed(data: bytes) -> None:
    with pytest.raises(ImageDecodeFailed):
        PillowImageDecoder().decode(data)


def test_decode_rejects_oversized_images() -> None:
    with pytest.raises(ImageDecodeFailed, match="too large"):
        PillowImageDecoder(max_pixels=10).decode(solid_image_bytes((0, 0, 0), (4, 4)))


def test_sampler_averages_visible_region_only() -> None:
    left = Image.new("RGB", (10, 10), (0, 0, 0))
    right = Image.new("RGB", (10, 10), (255, 255, 255))
    canvas = Image.new("RGB", (20, 10))
    canvas.paste(left, (0, 0))
    canvas.paste(right, (10, 0))
    image = DecodedImage(pixels=canvas.tobytes(), width=20, height=10)
    sampler = PillowLuminanceSampler()

    assert sampler.average_luminance(image, (10, 0, 20, 10), 8) == pytest.approx(255)
    assert sampler.average_luminance(image, (0, 0, 10, 10), 8) == pytest.approx(0)
    assert sampler.average_luminance(image, (0, 0, 20, 10), 8) == pytest.approx(127.5, abs=1)


def test_sampler_uses_cover_fit_source_box() -> None:
    canvas = Image.new("RGB", (40, 10), (255, 255, 255))
    canvas.paste(Image.new("RGB", (10, 10), (0, 0, 0)), (15, 0))
    image = DecodedImage(pixels=canvas.tobytes(), width=40, height=10)
    fit = cover_fit(40, 10, 10, 10)

    value = PillowLuminanceSampler().average_luminance(image, fit.source_box, 4)

    assert value == pytest.approx(0)


def test_sampler_rejects_inconsistent_pixels() -> None:
    image = DecodedImage(pixels=b"\x00" * 5, width=4, height=4)

    with pytest.raises(ImageDecodeFailed):
        PillowLuminanceSampler().average_luminance(image, (0, 0, 4, 4), 2)
