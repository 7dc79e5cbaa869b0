from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from domain.models import CoverFit, LayoutResult, Line, RenderSettings, StyledRun
from domain.services.markup_tokenizer import strip_xml_illegal

BASELINE_RATIO = 0.35
WATERMARK_FONT_FAMILY = "Arial"
# (font size below, watermark size, inset)
WATERMARK_TIERS: Tuple[Tuple[int, int, int], ...] = ((24, 14, 12), (40, 16, 15))
WATERMARK_LARGE_TIER: Tuple[int, int] = (18, 18)


@dataclass(frozen=True)
class RunPlacement:
    run: StyledRun
    x: float
    baseline_y: float


@dataclass(frozen=True)
class LinePlacement:
    index: int
    line: Line
    x: float
    center_y: float
    baseline_y: float
    runs: Tuple[RunPlacement, ...]


@dataclass(frozen=True)
class UnderlineBar:
    x: float
    y: float
    width: float
    height: int


@dataclass(frozen=True)
class WatermarkPlacement:
    text: str
    x: float
    baseline_y: float
    font_size: int
    font_family: str = WATERMARK_FONT_FAMILY
    bold: bool = True


def cover_fit(
    source_width: int, source_height: int, target_width: int, target_height: int
) -> CoverFit:
    if source_width <= 0 or source_height <= 0:
        msg = f"Cannot fit an empty image ({source_width}x{source_height})"
        raise ValueError(msg)
    scale = max(target_width / source_width, target_height / source_height)
    width = max(target_width, round(source_width * scale))
    height = max(target_height, round(source_height * scale))
    return CoverFit(
        scale=scale,
        width=width,
        height=height,
        offset_x=(width - target_width) // 2,
        offset_y=(height - target_height) // 2,
        target_width=target_width,
        target_height=target_height,
    )


def baseline_offset(font_size: int) -> int:
    return round(font_size * BASELINE_RATIO)


def underline_thickness(font_size: int) -> int:
    return max(1, round(font_size / 16))


def line_start_x(line_width: float, settings: RenderSettings) -> float:
    if settings.text_align == "left":
        return float(settings.horizontal_inset)
    if settings.text_align == "right":
        return settings.canvas_width - settings.horizontal_inset - line_width
    return settings.canvas_width / 2 - line_width / 2


def place_lines(layout: LayoutResult, settings: RenderSettings) -> List[LinePlacement]:
    placements: List[LinePlacement] = []
    offset = baseline_offset(layout.font_size)
    for index, line in enumerate(layout.lines):
        center_y = layout.start_y + index * layout.line_height
        baseline_y = center_y + offset
        start_x = line_start_x(line.width, settings)
        pen_x = start_x
        runs: List[RunPlacement] = []
        for run in line.runs:
            runs.append(RunPlacement(run=run, x=pen_x, baseline_y=baseline_y))
            pen_x += run.width
        placements.append(
            LinePlacement(
                index=index,
                line=line,
                x=start_x,
                center_y=center_y,
                baseline_y=baseline_y,
                runs=tuple(runs),
            )
        )
    return placements


def underline_bars(placement: LinePlacement, font_size: int) -> List[UnderlineBar]:
    thickness = underline_thickness(font_size)
    return [
        UnderlineBar(
            x=run.x,
            y=run.baseline_y + thickness,
            width=run.run.width,
            height=thickness,
        )
        for run in placement.runs
        if run.run.underline and run.run.width > 0
    ]


def watermark_tier(font_size: int) -> Tuple[int, int]:
    for upper, size, inset in WATERMARK_TIERS:
        if font_size < upper:
            return size, inset
    return WATERMARK_LARGE_TIER


def place_watermark(settings: RenderSettings) -> WatermarkPlacement:
    size, inset = watermark_tier(settings.font_size_px)
    return WatermarkPlacement(
        text=strip_xml_illegal(settings.watermark_text),
        x=settings.canvas_width - inset,
        baseline_y=settings.canvas_height - inset,
        font_size=size,
    )


def format_number(value: float) -> str:
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")
