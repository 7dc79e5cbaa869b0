from __future__ import annotations


class QuoteRenderError(ValueError):
    code = "render_error"


class InvalidFontSize(QuoteRenderError):
    code = "invalid_font_size"

    def __init__(self, font_size: int, minimum: int, maximum: int) -> None:
        super().__init__(
            f"Font size must be between {minimum}px and {maximum}px, got {font_size}px"
        )
        self.font_size = font_size
        self.minimum = minimum
        self.maximum = maximum


class ImageDecodeFailed(QuoteRenderError):
    code = "image_decode_failed"


class MetricsUnavailable(QuoteRenderError):
    code = "metrics_unavailable"


class EncodeFailed(QuoteRenderError):
    code = "encode_failed"
