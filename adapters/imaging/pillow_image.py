from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from domain.errors import ImageDecodeFailed
from domain.models import DecodedImage
from domain.ports.rendering import ImageDecoder, ImageSampler
from domain.services.select_contrast import luminance

DEFAULT_MAX_PIXELS = 40_000_000


class PillowImageDecoder(ImageDecoder):
    def __init__(self, max_pixels: int = DEFAULT_MAX_PIXELS) -> None:
        self.max_pixels = max_pixels

    def decode(self, data: bytes) -> DecodedImage:
        if not data:
            raise ImageDecodeFailed("Background image is empty")
        try:
            source = Image.open(io.BytesIO(data))
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            msg = f"Could not decode background image: {exc}"
            raise ImageDecodeFailed(msg) from exc
        with source:
            image_format = source.format or ""
            if source.width * source.height > self.max_pixels:
                msg = f"Background image too large: {source.width}x{source.height}"
                raise ImageDecodeFailed(msg)
            try:
                image = ImageOps.exif_transpose(source).convert("RGB")
            except (OSError, ValueError) as exc:
                msg = f"Could not decode background image: {exc}"
                raise ImageDecodeFailed(msg) from exc
        return DecodedImage(
            pixels=image.tobytes(),
            width=image.width,
            height=image.height,
            mime_type=Image.MIME.get(image_format, "image/png"),
            source=data,
        )


class PillowLuminanceSampler(ImageSampler):
    def average_luminance(
        self,
        image: DecodedImage,
        crop_box: Tuple[float, float, float, float],
        grid_size: int,
    ) -> float:
        try:
            surface = Image.frombytes("RGB", (image.width, image.height), image.pixels)
        except ValueError as exc:
            msg = f"Decoded pixels do not match {image.width}x{image.height}: {exc}"
            raise ImageDecodeFailed(msg) from exc
        grid = max(1, int(grid_size))
        sample = surface.resize((grid, grid), Image.Resampling.BOX, box=crop_box)
        raw = sample.tobytes()
        values = [luminance(pixel) for pixel in zip(raw[0::3], raw[1::3], raw[2::3])]
        return sum(values) / len(values)
