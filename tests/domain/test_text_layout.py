from __future__ import annotations

import logging

import pytest

from domain.models import StyledRun
from domain.services.layout_text import TextLayoutEngine, split_paragraphs
from domain.services.markup_tokenizer import tokenize_markup
from tests.helpers.fakes import FailingMetrics, FixedWidthMetrics

QUICK_FOX = "The quick brown fox jumps over the lazy dog"


def _layout(text: str, metrics: object, max_width: float = 720, font_size: int = 28):
    return TextLayoutEngine().layout(
        tokenize_markup(text), max_width, "Arial", font_size, metrics, 400
    )


def test_quick_brown_fox_wraps_to_two_lines(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout(QUICK_FOX, fixed_metrics)

    assert result.texts == ["The quick brown fox jumps over the", "lazy dog"]
    assert result.line_height == 36
    assert result.start_y == pytest.approx(182.0)


def test_lines_never_exceed_max_width_unless_single_word(
    fixed_metrics: FixedWidthMetrics,
) -> None:
    text = "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod tempor"
    result = _layout(text, fixed_metrics, max_width=300)

    assert len(result.lines) > 1
    for line in result.lines:
        assert line.width <= 300 or " " not in line.text
    assert " ".join(result.texts) == text


def test_oversized_word_gets_its_own_line(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout("a Pneumonoultramicroscopicsilicovolcanoconiosis b", fixed_metrics, 200)

    assert result.texts == ["a", "Pneumonoultramicroscopicsilicovolcanoconiosis", "b"]
    assert result.lines[1].width > 200


def test_blank_lines_are_preserved(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout("A\n\nB", fixed_metrics)

    assert result.texts == ["A", "", "B"]
    assert result.lines[1].is_empty
    assert result.lines[1].width == 0


def test_empty_input_yields_one_empty_line(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout("", fixed_metrics)

    assert result.texts == [""]
    assert result.start_y == 200


def test_runs_merge_by_style_and_keep_widths(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout("plain <b>bold words</b> tail", fixed_metrics, font_size=20)
    line = result.lines[0]

    assert line.runs == (
        StyledRun("plain ", width=90.0),
        StyledRun("bold words ", bold=True, width=165.0),
        StyledRun("tail", width=60.0),
    )
    assert line.width == pytest.approx(sum(run.width for run in line.runs))


def test_underline_spans_inner_spaces_only(fixed_metrics: FixedWidthMetrics) -> None:
    result = _layout("x <u>under lined</u> y", fixed_metrics, font_size=20)

    assert [(run.text, run.underline) for run in result.lines[0].runs] == [
        ("x ", False),
        ("under lined", True),
        (" y", False),
    ]


def test_word_spanning_styles_stays_together(fixed_metrics: FixedWidthMetrics) -> None:
    paragraphs = split_paragraphs(tokenize_markup("un<b>break</b>able word"))

    assert len(paragraphs) == 1
    assert ["".join(piece.text for piece in word) for word in paragraphs[0]] == [
        "unbreakable",
        "word",
    ]


def test_metrics_failure_uses_heuristic_and_warns_once(
    caplog: pytest.LogCaptureFixture,
) -> None:
    metrics = FailingMetrics()
    with caplog.at_level(logging.WARNING, logger="domain.services.layout_text"):
        result = _layout("hello there world", metrics, font_size=20)

    assert result.texts == ["hello there world"]
    assert result.lines[0].width == pytest.approx(17 * 20 * 0.55)
    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1


def test_layout_is_deterministic(fixed_metrics: FixedWidthMetrics) -> None:
    first = _layout(QUICK_FOX * 3, fixed_metrics, max_width=400)
    second = _layout(QUICK_FOX * 3, FixedWidthMetrics(), max_width=400)

    assert first == second
