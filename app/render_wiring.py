from __future__ import annotations

import random

from adapters.fonts.pillow_fonts import PillowFontCatalog, PillowFontMetrics
from adapters.imaging.pillow_image import PillowImageDecoder, PillowLuminanceSampler
from adapters.raster.pillow_compositor import PillowRasterCompositor
from app.config import AppSettings
from domain.gradients import resolve_gradient
from domain.models import BackgroundSpec, ImageBackground, SolidColor
from domain.services.render_quote import QuoteRenderer


def build_renderer(settings: AppSettings) -> QuoteRenderer:
    fonts = PillowFontCatalog(settings.fonts.font_dirs)
    return QuoteRenderer(
        metrics=PillowFontMetrics(fonts),
        decoder=PillowImageDecoder(max_pixels=settings.render.max_image_pixels),
        sampler=PillowLuminanceSampler(),
        raster=PillowRasterCompositor(
            fonts,
            image_format=settings.render.image_format,
            quality=settings.render.image_quality,
        ),
        contrast_policy=settings.contrast.to_policy(),
        fallback_background=resolve_gradient(settings.render.fallback_gradient),
    )


def build_background(
    settings: AppSettings,
    *,
    gradient: str | None = None,
    color: str | None = None,
    image: bytes | None = None,
    rng: random.Random | None = None,
) -> BackgroundSpec:
    """Image wins over a solid colour, which wins over a named gradient."""
    if image is not None:
        return ImageBackground(data=image)
    if color:
        return SolidColor(color=color)
    return resolve_gradient(gradient or settings.render.gradient, rng)
