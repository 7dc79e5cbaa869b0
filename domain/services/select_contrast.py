from __future__ import annotations

import logging

from domain.models import (
    RGB,
    BitmapBackground,
    ContrastDecision,
    ContrastPolicy,
    GradientPair,
    PreparedBackground,
    SolidColor,
    hex_to_rgb,
)
from domain.ports.rendering import ImageSampler

logger = logging.getLogger(__name__)

TRANSLUCENT_BLACK: RGB = (0, 0, 0)
TRANSLUCENT_WHITE: RGB = (255, 255, 255)


def luminance(rgb: RGB) -> float:
    red, green, blue = rgb
    return (red * 299 + green * 587 + blue * 114) / 1000


def hex_luminance(value: str) -> float:
    return luminance(hex_to_rgb(value))


def background_luminance(
    background: PreparedBackground, sampler: ImageSampler, grid_size: int
) -> float:
    if isinstance(background, SolidColor):
        return hex_luminance(background.color)
    if isinstance(background, GradientPair):
        return (hex_luminance(background.start) + hex_luminance(background.end)) / 2
    if isinstance(background, BitmapBackground):
        return float(
            sampler.average_luminance(background.image, background.fit.source_box, grid_size)
        )
    msg = f"Unsupported background: {type(background).__name__}"
    raise TypeError(msg)


def decide_contrast(value: float, policy: ContrastPolicy) -> ContrastDecision:
    foreground = "dark" if value > policy.foreground_threshold else "light"
    watermark_rgb = TRANSLUCENT_BLACK if value > policy.watermark_threshold else TRANSLUCENT_WHITE
    return ContrastDecision(
        foreground=foreground,
        luminance=value,
        watermark_rgb=watermark_rgb,
        watermark_opacity=policy.watermark_opacity,
    )


def select_contrast(
    background: PreparedBackground,
    sampler: ImageSampler,
    policy: ContrastPolicy | None = None,
) -> ContrastDecision:
    policy = policy or ContrastPolicy()
    value = background_luminance(background, sampler, policy.sample_grid)
    decision = decide_contrast(value, policy)
    logger.debug(
        "Background luminance %.2f -> %s text, %s watermark.",
        value,
        decision.foreground,
        decision.watermark_rgba,
    )
    return decision
