from __future__ import annotations

import io
from typing import List, Tuple

from PIL import Image

from domain.errors import EncodeFailed, ImageDecodeFailed, MetricsUnavailable
from domain.models import (
    ContrastDecision,
    DecodedImage,
    FontStyle,
    LayoutResult,
    PreparedBackground,
    RenderSettings,
)


class FixedWidthMetrics:
    """Every character is `ratio * font_size` wide, whatever the style."""

    def __init__(self, ratio: float = 0.75) -> None:
        self.ratio = ratio
        self.calls: List[Tuple[str, FontStyle]] = []

    def measure(self, text: str, font_family: str, font_size: int, style: FontStyle) -> float:
        self.calls.append((text, style))
        return len(text) * font_size * self.ratio


class FailingMetrics:
    def __init__(self) -> None:
        self.calls = 0

    def measure(self, text: str, font_family: str, font_size: int, style: FontStyle) -> float:
        self.calls += 1
        raise MetricsUnavailable(f"no font for {font_family}")


class StubSampler:
    def __init__(self, value: float) -> None:
        self.value = value
        self.requests: List[Tuple[Tuple[float, float, float, float], int]] = []

    def average_luminance(
        self,
        image: DecodedImage,
        crop_box: Tuple[float, float, float, float],
        grid_size: int,
    ) -> float:
        self.requests.append((crop_box, grid_size))
        return self.value


class StubDecoder:
    def __init__(self, image: DecodedImage | None = None) -> None:
        self.image = image

    def decode(self, data: bytes) -> DecodedImage:
        if self.image is None:
            raise ImageDecodeFailed("cannot decode")
        return self.image


class RecordingRaster:
    mime_type = "image/png"

    def __init__(self) -> None:
        self.backgrounds: List[PreparedBackground] = []

    def render(
        self,
        layout: LayoutResult,
        background: PreparedBackground,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> bytes:
        self.backgrounds.append(background)
        return b"raster"


class FailingRaster:
    mime_type = "image/png"

    def render(
        self,
        layout: LayoutResult,
        background: PreparedBackground,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> bytes:
        raise EncodeFailed("encoder exploded")


def solid_image_bytes(
    color: Tuple[int, int, int], size: Tuple[int, int] = (40, 20), image_format: str = "PNG"
) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def decoded_image(color: Tuple[int, int, int], width: int, height: int) -> DecodedImage:
    return DecodedImage(
        pixels=bytes(color) * (width * height),
        width=width,
        height=height,
        source=solid_image_bytes(color, (width, height)),
    )
