from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from domain.errors import MetricsUnavailable
from domain.models import (
    FALLBACK_CHAR_WIDTH_RATIO,
    LINE_HEIGHT_RATIO,
    FontStyle,
    LayoutResult,
    Line,
    LineBreak,
    Segment,
    StyledRun,
)
from domain.ports.rendering import FontMetricsProvider

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"(\s+)")


@dataclass(frozen=True)
class Piece:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    width: float = 0.0

    @property
    def style_key(self) -> Tuple[bool, bool, bool]:
        return self.bold, self.italic, self.underline


Word = Tuple[Piece, ...]


def split_paragraphs(segments: Iterable[Segment]) -> List[List[Word]]:
    paragraphs: List[List[Word]] = []
    words: List[Word] = []
    pieces: List[Piece] = []

    def end_word() -> None:
        if pieces:
            words.append(tuple(pieces))
            pieces.clear()

    for segment in segments:
        if isinstance(segment, LineBreak):
            end_word()
            paragraphs.append(list(words))
            words.clear()
            continue
        for part in _WHITESPACE_RE.split(segment.text):
            if not part:
                continue
            if part.isspace():
                end_word()
                continue
            pieces.append(
                Piece(
                    part,
                    bold=segment.bold,
                    italic=segment.italic,
                    underline=segment.underline,
                )
            )
    end_word()
    paragraphs.append(list(words))
    return paragraphs


class TextMeasurer:
    def __init__(
        self,
        metrics: FontMetricsProvider,
        font_family: str,
        font_size: int,
        fallback_char_ratio: float = FALLBACK_CHAR_WIDTH_RATIO,
    ) -> None:
        self.metrics = metrics
        self.font_family = font_family
        self.font_size = font_size
        self.fallback_char_ratio = fallback_char_ratio
        self._widths: Dict[Tuple[str, FontStyle], float] = {}
        self._degraded: set[FontStyle] = set()

    def width(self, text: str, style: FontStyle) -> float:
        key = (text, style)
        if key not in self._widths:
            self._widths[key] = self._measure(text, style)
        return self._widths[key]

    def measure_piece(self, piece: Piece) -> Piece:
        style = FontStyle(bold=piece.bold, italic=piece.italic)
        return Piece(
            piece.text,
            bold=piece.bold,
            italic=piece.italic,
            underline=piece.underline,
            width=self.width(piece.text, style),
        )

    def fallback_width(self, text: str) -> float:
        return len(text) * self.font_size * self.fallback_char_ratio

    def _measure(self, text: str, style: FontStyle) -> float:
        try:
            width = float(self.metrics.measure(text, self.font_family, self.font_size, style))
        except MetricsUnavailable as exc:
            self._warn_degraded(style, str(exc))
            return self.fallback_width(text)
        if not math.isfinite(width) or width < 0 or (width == 0 and text.strip()):
            self._warn_degraded(style, f"degenerate width {width!r} for {text!r}")
            return self.fallback_width(text)
        return width

    def _warn_degraded(self, style: FontStyle, reason: str) -> None:
        if style in self._degraded:
            return
        self._degraded.add(style)
        logger.warning(
            "Font metrics unavailable for %s %spx (bold=%s, italic=%s): %s; "
            "using %.2f em per character.",
            self.font_family,
            self.font_size,
            style.bold,
            style.italic,
            reason,
            self.fallback_char_ratio,
        )


class TextLayoutEngine:
    def __init__(
        self,
        fallback_char_ratio: float = FALLBACK_CHAR_WIDTH_RATIO,
        line_height_ratio: float = LINE_HEIGHT_RATIO,
    ) -> None:
        self.fallback_char_ratio = fallback_char_ratio
        self.line_height_ratio = line_height_ratio

    def layout(
        self,
        segments: Sequence[Segment],
        max_width: float,
        font_family: str,
        font_size: int,
        metrics: FontMetricsProvider,
        canvas_height: int,
    ) -> LayoutResult:
        measurer = TextMeasurer(metrics, font_family, font_size, self.fallback_char_ratio)
        lines: List[Line] = []
        for paragraph in split_paragraphs(segments):
            lines.extend(self._wrap_paragraph(paragraph, max_width, measurer))

        line_height = round(font_size * self.line_height_ratio)
        start_y = canvas_height / 2 - ((len(lines) - 1) * line_height) / 2
        logger.debug(
            "Laid out %d line(s) at %spx %s within %spx.",
            len(lines),
            font_size,
            font_family,
            max_width,
        )
        return LayoutResult(
            lines=tuple(lines),
            line_height=line_height,
            start_y=start_y,
            font_family=font_family,
            font_size=font_size,
            max_width=max_width,
        )

    def _wrap_paragraph(
        self, words: Sequence[Word], max_width: float, measurer: TextMeasurer
    ) -> List[Line]:
        if not words:
            return [Line()]

        lines: List[Line] = []
        current: List[Piece] = []
        current_width = 0.0
        for word in words:
            pieces = [measurer.measure_piece(piece) for piece in word]
            word_width = sum(piece.width for piece in pieces)
            if not current:
                # An empty line always takes the word, even when it overflows.
                current = pieces
                current_width = word_width
                continue
            space = self._space_between(current[-1], pieces[0], measurer)
            if current_width + space.width + word_width > max_width:
                lines.append(_build_line(current))
                current = pieces
                current_width = word_width
            else:
                current.append(space)
                current.extend(pieces)
                current_width += space.width + word_width
        lines.append(_build_line(current))
        return lines

    def _space_between(self, before: Piece, after: Piece, measurer: TextMeasurer) -> Piece:
        return measurer.measure_piece(
            Piece(
                " ",
                bold=before.bold,
                italic=before.italic,
                underline=before.underline and after.underline,
            )
        )


def _build_line(pieces: Sequence[Piece]) -> Line:
    runs: List[StyledRun] = []
    buffer: List[Piece] = []

    def flush() -> None:
        if not buffer:
            return
        first = buffer[0]
        runs.append(
            StyledRun(
                text="".join(piece.text for piece in buffer),
                bold=first.bold,
                italic=first.italic,
                underline=first.underline,
                width=sum(piece.width for piece in buffer),
            )
        )
        buffer.clear()

    for piece in pieces:
        if buffer and buffer[-1].style_key != piece.style_key:
            flush()
        buffer.append(piece)
    flush()
    return Line(runs=tuple(runs), width=sum(run.width for run in runs))

