from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Annotated, Literal, Tuple, Union
from urllib.parse import quote

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 60
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_FONT_SIZE = 28
DEFAULT_CANVAS_WIDTH = 800
DEFAULT_CANVAS_HEIGHT = 400
DEFAULT_HORIZONTAL_INSET = 40
DEFAULT_WATERMARK_TEXT = "made with Quotura"
LINE_HEIGHT_RATIO = 1.3
FALLBACK_CHAR_WIDTH_RATIO = 0.55

DARK_TEXT_HEX = "#000000"
LIGHT_TEXT_HEX = "#ffffff"

_HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

TextAlign = Literal["left", "center", "right"]
Foreground = Literal["dark", "light"]
RGB = Tuple[int, int, int]


def _normalize_hex_color(value: str) -> str:
    match = _HEX_COLOR_RE.match(str(value or "").strip())
    if not match:
        msg = f"Invalid hex color: {value!r}"
        raise ValueError(msg)
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    return f"#{digits}"


HexColor = Annotated[str, AfterValidator(_normalize_hex_color)]


def hex_to_rgb(value: str) -> RGB:
    digits = _normalize_hex_color(value)[1:]
    rgb = int(digits, 16)
    return (rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF


class SolidColor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["solid"] = "solid"
    color: HexColor


class GradientPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["gradient"] = "gradient"
    start: HexColor
    end: HexColor


class ImageBackground(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes = Field(..., repr=False)


BackgroundSpec = Annotated[
    Union[SolidColor, GradientPair, ImageBackground], Field(discriminator="kind")
]


def _default_background() -> GradientPair:
    return GradientPair(start="#667eea", end="#764ba2")


class RenderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    font_family: str = Field(default=DEFAULT_FONT_FAMILY, min_length=1)
    font_size_px: int = DEFAULT_FONT_SIZE
    include_watermark: bool = True
    background: BackgroundSpec = Field(default_factory=_default_background)
    canvas_width: int = Field(default=DEFAULT_CANVAS_WIDTH, gt=0)
    canvas_height: int = Field(default=DEFAULT_CANVAS_HEIGHT, gt=0)
    horizontal_inset: int = Field(default=DEFAULT_HORIZONTAL_INSET, ge=0)
    text_align: TextAlign = "center"
    watermark_text: str = DEFAULT_WATERMARK_TEXT

    @property
    def max_text_width(self) -> int:
        return max(1, self.canvas_width - 2 * self.horizontal_inset)


@dataclass(frozen=True)
class FontStyle:
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class TextSegment:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class LineBreak:
    pass


Segment = Union[TextSegment, LineBreak]


@dataclass(frozen=True)
class StyledRun:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    width: float = 0.0

    @property
    def font_style(self) -> FontStyle:
        return FontStyle(bold=self.bold, italic=self.italic)


@dataclass(frozen=True)
class Line:
    runs: Tuple[StyledRun, ...] = ()
    width: float = 0.0

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def is_empty(self) -> bool:
        return not self.runs


@dataclass(frozen=True)
class LayoutResult:
    lines: Tuple[Line, ...]
    line_height: int
    start_y: float
    font_family: str
    font_size: int
    max_width: float

    @property
    def texts(self) -> list[str]:
        return [line.text for line in self.lines]


@dataclass(frozen=True)
class DecodedImage:
    pixels: bytes = field(repr=False)
    width: int
    height: int
    mime_type: str = "image/png"
    source: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class CoverFit:
    scale: float
    width: int
    height: int
    offset_x: int
    offset_y: int
    target_width: int
    target_height: int

    @property
    def source_box(self) -> Tuple[float, float, float, float]:
        left = self.offset_x / self.scale
        top = self.offset_y / self.scale
        right = (self.offset_x + self.target_width) / self.scale
        bottom = (self.offset_y + self.target_height) / self.scale
        return left, top, right, bottom


@dataclass(frozen=True)
class BitmapBackground:
    image: DecodedImage
    fit: CoverFit


PreparedBackground = Union[SolidColor, GradientPair, BitmapBackground]


@dataclass(frozen=True)
class ContrastPolicy:
    foreground_threshold: float = 200.0
    watermark_threshold: float = 150.0
    watermark_opacity: float = 0.6
    sample_grid: int = 8


@dataclass(frozen=True)
class ContrastDecision:
    foreground: Foreground
    luminance: float
    watermark_rgb: RGB
    watermark_opacity: float

    @property
    def foreground_hex(self) -> str:
        return DARK_TEXT_HEX if self.foreground == "dark" else LIGHT_TEXT_HEX

    @property
    def foreground_rgb(self) -> RGB:
        return hex_to_rgb(self.foreground_hex)

    @property
    def watermark_hex(self) -> str:
        red, green, blue = self.watermark_rgb
        return f"#{red:02x}{green:02x}{blue:02x}"

    @property
    def watermark_rgba(self) -> str:
        red, green, blue = self.watermark_rgb
        return f"rgba({red},{green},{blue},{self.watermark_opacity:g})"


@dataclass(frozen=True)
class VectorDocument:
    markup: str
    mime_type: str = "image/svg+xml"

    def to_bytes(self) -> bytes:
        return self.markup.encode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};charset=utf-8,{quote(self.markup, safe='')}"


@dataclass(frozen=True)
class RenderOutput:
    raster: bytes = field(repr=False)
    raster_mime_type: str
    vector: VectorDocument = field(repr=False)
    layout: LayoutResult
    contrast: ContrastDecision
