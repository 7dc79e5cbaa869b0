from __future__ import annotations

import io

import pytest
from PIL import Image

from adapters.fonts.pillow_fonts import PillowFontCatalog, PillowFontMetrics
from adapters.imaging.pillow_image import PillowImageDecoder, PillowLuminanceSampler
from adapters.raster.pillow_compositor import PillowRasterCompositor, linear_gradient
from domain.errors import EncodeFailed
from domain.models import GradientPair, ImageBackground, RenderSettings, SolidColor
from domain.services.render_quote import QuoteRenderer
from tests.helpers.fakes import solid_image_bytes
from tests.helpers.readback import watermark_region


@pytest.fixture(scope="module")
def fonts() -> PillowFontCatalog:
    return PillowFontCatalog()


def _renderer(fonts: PillowFontCatalog, image_format: str = "png") -> QuoteRenderer:
    return QuoteRenderer(
        metrics=PillowFontMetrics(fonts),
        decoder=PillowImageDecoder(),
        sampler=PillowLuminanceSampler(),
        raster=PillowRasterCompositor(fonts, image_format=image_format),
    )


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGB")


def test_gradient_runs_corner_to_corner() -> None:
    image = linear_gradient((200, 100), (0, 0, 0), (250, 100, 50)).convert("RGB")

    assert image.getpixel((0, 0)) == (0, 0, 0)
    red, green, blue = image.getpixel((199, 99))
    assert red > 240 and 90 < green <= 100 and 45 < blue <= 50
    middle = image.getpixel((100, 50))
    assert 110 < middle[0] < 140


def test_output_matches_canvas_size(fonts: PillowFontCatalog) -> None:
    output = _renderer(fonts).render("Hello <b>world</b>", RenderSettings())

    image = _open(output.raster)
    assert image.size == (800, 400)
    assert output.raster_mime_type == "image/png"


def test_text_is_drawn_in_contrast_colour(fonts: PillowFontCatalog) -> None:
    settings = RenderSettings(background=SolidColor(color="#000000"), include_watermark=False)
    output = _renderer(fonts).render("WWWW MMMM", settings)

    image = _open(output.raster)
    assert output.contrast.foreground == "light"
    assert image.getpixel((0, 0)) == (0, 0, 0)
    red_min, red_max = image.getextrema()[0]
    assert red_min == 0
    assert red_max > 200


def test_no_watermark_when_disabled(fonts: PillowFontCatalog) -> None:
    settings = RenderSettings(background=SolidColor(color="#000000"), include_watermark=False)
    output = _renderer(fonts).render("Hi", settings)

    corner = _open(output.raster).crop(watermark_region(settings))
    assert corner.getextrema() == ((0, 0), (0, 0), (0, 0))


def test_watermark_drawn_when_enabled(fonts: PillowFontCatalog) -> None:
    settings = RenderSettings(background=SolidColor(color="#000000"))
    output = _renderer(fonts).render("Hi", settings)

    corner = _open(output.raster).crop(watermark_region(settings))
    highest = max(channel_max for _, channel_max in corner.getextrema())
    assert 0 < highest <= round(255 * 0.6) + 1


def test_image_background_is_cover_fitted(fonts: PillowFontCatalog) -> None:
    settings = RenderSettings(
        background=ImageBackground(data=solid_image_bytes((250, 250, 250), (40, 10))),
        include_watermark=False,
    )
    output = _renderer(fonts).render("Hi", settings)

    image = _open(output.raster)
    assert image.size == (800, 400)
    assert image.getpixel((5, 5)) == (250, 250, 250)
    assert output.contrast.foreground == "dark"


def test_broken_image_falls_back_to_gradient(fonts: PillowFontCatalog) -> None:
    settings = RenderSettings(background=ImageBackground(data=b"definitely not an image"))
    output = _renderer(fonts).render("Hi", settings)

    image = _open(output.raster)
    assert image.getpixel((0, 0)) == (0x66, 0x7E, 0xEA)


def test_jpeg_output(fonts: PillowFontCatalog) -> None:
    output = _renderer(fonts, "jpeg").render(
        "Hi", RenderSettings(background=GradientPair(start="#000", end="#fff"))
    )

    assert output.raster_mime_type == "image/jpeg"
    assert output.raster[:3] == b"\xff\xd8\xff"


def test_unknown_format_is_rejected(fonts: PillowFontCatalog) -> None:
    with pytest.raises(ValueError):
        PillowRasterCompositor(fonts, image_format="bmp-ish")


def test_encode_errors_are_wrapped(
    fonts: PillowFontCatalog, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_save(self: Image.Image, *args: object, **kwargs: object) -> None:
        raise OSError("disk on fire")

    monkeypatch.setattr(Image.Image, "save", broken_save)

    with pytest.raises(EncodeFailed):
        _renderer(fonts).render("Hi", RenderSettings())
