from __future__ import annotations

from typing import Protocol, Tuple

from domain.models import (
    ContrastDecision,
    DecodedImage,
    FontStyle,
    LayoutResult,
    PreparedBackground,
    RenderSettings,
)


class FontMetricsProvider(Protocol):
    def measure(self, text: str, font_family: str, font_size: int, style: FontStyle) -> float:
        ...


class ImageDecoder(Protocol):
    def decode(self, data: bytes) -> DecodedImage:
        ...


class ImageSampler(Protocol):
    def average_luminance(
        self,
        image: DecodedImage,
        crop_box: Tuple[float, float, float, float],
        grid_size: int,
    ) -> float:
        ...


class RasterCompositor(Protocol):
    mime_type: str

    def render(
        self,
        layout: LayoutResult,
        background: PreparedBackground,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> bytes:
        ...
