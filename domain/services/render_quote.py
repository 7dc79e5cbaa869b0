from __future__ import annotations

import logging
from typing import Tuple

from domain.errors import ImageDecodeFailed, InvalidFontSize
from domain.models import (
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    BackgroundSpec,
    BitmapBackground,
    ContrastDecision,
    ContrastPolicy,
    GradientPair,
    ImageBackground,
    LayoutResult,
    PreparedBackground,
    RenderOutput,
    RenderSettings,
)
from domain.ports.rendering import (
    FontMetricsProvider,
    ImageDecoder,
    ImageSampler,
    RasterCompositor,
)
from domain.services.compose_svg import SvgCompositor
from domain.services.layout_text import TextLayoutEngine
from domain.services.markup_tokenizer import tokenize_markup
from domain.services.placement import cover_fit
from domain.services.select_contrast import select_contrast

logger = logging.getLogger(__name__)


def validate_font_size(font_size: int) -> int:
    if font_size < MIN_FONT_SIZE or font_size > MAX_FONT_SIZE:
        raise InvalidFontSize(font_size, MIN_FONT_SIZE, MAX_FONT_SIZE)
    return font_size


class QuoteRenderer:
    def __init__(
        self,
        metrics: FontMetricsProvider,
        decoder: ImageDecoder,
        sampler: ImageSampler,
        raster: RasterCompositor,
        vector: SvgCompositor | None = None,
        layout_engine: TextLayoutEngine | None = None,
        contrast_policy: ContrastPolicy | None = None,
        fallback_background: GradientPair | None = None,
    ) -> None:
        self.metrics = metrics
        self.decoder = decoder
        self.sampler = sampler
        self.raster = raster
        self.vector = vector or SvgCompositor()
        self.layout_engine = layout_engine or TextLayoutEngine()
        self.contrast_policy = contrast_policy or ContrastPolicy()
        self.fallback_background = fallback_background or GradientPair(
            start="#667eea", end="#764ba2"
        )

    def render(self, rich_text: str, settings: RenderSettings) -> RenderOutput:
        layout = self.build_layout(rich_text, settings)
        background, contrast = self.resolve_background(settings.background, settings)
        raster = self.raster.render(layout, background, contrast, settings)
        vector = self.vector.render(layout, background, contrast, settings)
        logger.info(
            "Rendered %d line(s) on %s background (%s text, watermark=%s).",
            len(layout.lines),
            settings.background.kind,
            contrast.foreground,
            settings.include_watermark,
        )
        return RenderOutput(
            raster=raster,
            raster_mime_type=self.raster.mime_type,
            vector=vector,
            layout=layout,
            contrast=contrast,
        )

    def build_layout(self, rich_text: str, settings: RenderSettings) -> LayoutResult:
        validate_font_size(settings.font_size_px)
        segments = tokenize_markup(rich_text)
        return self.layout_engine.layout(
            segments,
            settings.max_text_width,
            settings.font_family,
            settings.font_size_px,
            self.metrics,
            settings.canvas_height,
        )

    def resolve_background(
        self, requested: BackgroundSpec, settings: RenderSettings
    ) -> Tuple[PreparedBackground, ContrastDecision]:
        if not isinstance(requested, ImageBackground):
            return requested, select_contrast(requested, self.sampler, self.contrast_policy)
        try:
            background = self._decode_background(requested, settings)
            contrast = select_contrast(background, self.sampler, self.contrast_policy)
        except ImageDecodeFailed as exc:
            logger.warning(
                "Background image unusable (%s); falling back to gradient %s -> %s.",
                exc,
                self.fallback_background.start,
                self.fallback_background.end,
            )
            fallback = self.fallback_background
            return fallback, select_contrast(fallback, self.sampler, self.contrast_policy)
        return background, contrast

    def _decode_background(
        self, requested: ImageBackground, settings: RenderSettings
    ) -> BitmapBackground:
        image = self.decoder.decode(requested.data)
        try:
            fit = cover_fit(
                image.width, image.height, settings.canvas_width, settings.canvas_height
            )
        except ValueError as exc:
            raise ImageDecodeFailed(str(exc)) from exc
        logger.debug(
            "Decoded %sx%s %s background, cover scale %.4f.",
            image.width,
            image.height,
            image.mime_type,
            fit.scale,
        )
        return BitmapBackground(image=image, fit=fit)
