from __future__ import annotations

import io
from typing import Dict, Tuple

from PIL import Image, ImageDraw, ImageFont

from adapters.fonts.pillow_fonts import FontHandle, PillowFontCatalog
from domain.errors import EncodeFailed
from domain.models import (
    RGB,
    BitmapBackground,
    ContrastDecision,
    FontStyle,
    GradientPair,
    LayoutResult,
    PreparedBackground,
    RenderSettings,
    SolidColor,
    hex_to_rgb,
)
from domain.ports.rendering import RasterCompositor
from domain.services.placement import place_lines, place_watermark, underline_bars

RGBA = Tuple[int, int, int, int]

IMAGE_FORMATS: Dict[str, Tuple[str, str]] = {
    "png": ("PNG", "image/png"),
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "webp": ("WEBP", "image/webp"),
}


def linear_gradient(size: Tuple[int, int], start: RGB, end: RGB) -> Image.Image:
    """Gradient from the top-left to the bottom-right corner.

    Each pixel takes the colour of its projection onto the (0,0)->(W,H) diagonal,
    which matches a canvas or SVG linear gradient spanning the same vector.
    """
    width, height = size
    ramp = Image.linear_gradient("L").transpose(Image.Transpose.TRANSPOSE)
    factor = 255 / float(width * width + height * height)
    coefficients = (width * factor, height * factor, 0, 0, 0, 0)
    mask = ramp.transform(size, Image.Transform.AFFINE, coefficients)
    first = Image.new("RGBA", size, (*start, 255))
    last = Image.new("RGBA", size, (*end, 255))
    return Image.composite(last, first, mask)


class PillowRasterCompositor(RasterCompositor):
    def __init__(
        self, fonts: PillowFontCatalog, image_format: str = "png", quality: int = 92
    ) -> None:
        key = image_format.strip().lower()
        if key not in IMAGE_FORMATS:
            msg = f"Unsupported raster format {image_format!r}"
            raise ValueError(msg)
        self.fonts = fonts
        self.format, self.mime_type = IMAGE_FORMATS[key]
        self.quality = quality

    def render(
        self,
        layout: LayoutResult,
        background: PreparedBackground,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> bytes:
        size = (settings.canvas_width, settings.canvas_height)
        surface = self._paint_background(background, size)
        draw = ImageDraw.Draw(surface)
        ink: RGBA = (*contrast.foreground_rgb, 255)

        for placement in place_lines(layout, settings):
            for run in placement.runs:
                font = self.fonts.load(layout.font_family, layout.font_size, run.run.font_style)
                self._draw_text(draw, (run.x, run.baseline_y), run.run.text, font, ink, "ls")
            for bar in underline_bars(placement, layout.font_size):
                draw.rectangle(
                    (bar.x, bar.y, bar.x + bar.width - 1, bar.y + bar.height - 1),
                    fill=ink,
                )

        if settings.include_watermark:
            surface = self._draw_watermark(surface, contrast, settings)
        return self._encode(surface)

    def _paint_background(
        self, background: PreparedBackground, size: Tuple[int, int]
    ) -> Image.Image:
        if isinstance(background, SolidColor):
            return Image.new("RGBA", size, (*hex_to_rgb(background.color), 255))
        if isinstance(background, GradientPair):
            return linear_gradient(size, hex_to_rgb(background.start), hex_to_rgb(background.end))
        if isinstance(background, BitmapBackground):
            image, fit = background.image, background.fit
            try:
                source = Image.frombytes("RGB", (image.width, image.height), image.pixels)
            except ValueError as exc:
                msg = f"Background pixels are unusable: {exc}"
                raise EncodeFailed(msg) from exc
            scaled = source.resize((fit.width, fit.height), Image.Resampling.LANCZOS)
            box = (fit.offset_x, fit.offset_y, fit.offset_x + size[0], fit.offset_y + size[1])
            return scaled.crop(box).convert("RGBA")
        msg = f"Unsupported background: {type(background).__name__}"
        raise TypeError(msg)

    def _draw_watermark(
        self, surface: Image.Image, contrast: ContrastDecision, settings: RenderSettings
    ) -> Image.Image:
        placement = place_watermark(settings)
        overlay = Image.new("RGBA", surface.size, (0, 0, 0, 0))
        font = self.fonts.load(
            placement.font_family, placement.font_size, FontStyle(bold=placement.bold)
        )
        alpha = round(contrast.watermark_opacity * 255)
        self._draw_text(
            ImageDraw.Draw(overlay),
            (placement.x, placement.baseline_y),
            placement.text,
            font,
            (*contrast.watermark_rgb, alpha),
            "rs",
        )
        return Image.alpha_composite(surface, overlay)

    def _draw_text(
        self,
        draw: ImageDraw.ImageDraw,
        xy: Tuple[float, float],
        text: str,
        font: FontHandle,
        fill: RGBA,
        anchor: str,
    ) -> None:
        if not text:
            return
        if isinstance(font, ImageFont.FreeTypeFont):
            draw.text(xy, text, font=font, fill=fill, anchor=anchor)
            return
        # Bitmap fonts have no anchors: shift so the glyph box sits on the baseline.
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x, y = xy
        if anchor.startswith("r"):
            x -= right - left
        draw.text((x, y - bottom), text, font=font, fill=fill)

    def _encode(self, surface: Image.Image) -> bytes:
        buffer = io.BytesIO()
        options: Dict[str, int] = {}
        if self.format in {"JPEG", "WEBP"}:
            options["quality"] = self.quality
        try:
            surface.convert("RGB").save(buffer, format=self.format, **options)
        except (OSError, ValueError, KeyError) as exc:
            msg = f"Failed to encode {self.format} image: {exc}"
            raise EncodeFailed(msg) from exc
        return buffer.getvalue()
