from __future__ import annotations

from pathlib import Path

import pytest
from PIL import ImageFont

from adapters.fonts.pillow_fonts import BOLD, REGULAR, PillowFontCatalog, PillowFontMetrics
from domain.errors import MetricsUnavailable
from domain.models import FontStyle


def test_known_family_lists_vendor_files_then_substitutes() -> None:
    names = PillowFontCatalog().candidates("Arial", BOLD)

    assert names[0] == "arialbd.ttf"
    assert "LiberationSans-Bold.ttf" in names
    assert names.index("LiberationSans-Bold.ttf") < names.index("arial.ttf")


def test_unknown_family_guesses_file_names() -> None:
    names = PillowFontCatalog().candidates("Roboto", REGULAR)

    assert names[:2] == ["Roboto.ttf", "Roboto-Regular.ttf"]
    assert names[-1] == "DejaVuSans.ttf"


def test_load_always_returns_a_font_and_caches_it() -> None:
    catalog = PillowFontCatalog()

    first = catalog.load("No Such Family", 20, FontStyle())
    second = catalog.load("no such family", 20, FontStyle())

    assert first is second
    assert isinstance(first, (ImageFont.FreeTypeFont, ImageFont.ImageFont))


def test_font_dirs_are_searched_first(tmp_path: Path) -> None:
    catalog = PillowFontCatalog([tmp_path])
    (tmp_path / "Roboto.ttf").write_bytes(b"not a real font")

    expanded = list(catalog._expand(["Roboto.ttf"]))

    assert expanded == [str(tmp_path / "Roboto.ttf"), "Roboto.ttf"]


def test_metrics_measure_is_additive_enough() -> None:
    metrics = PillowFontMetrics(PillowFontCatalog())

    word = metrics.measure("hello", "Arial", 28, FontStyle())
    longer = metrics.measure("hello hello", "Arial", 28, FontStyle())

    assert word > 0
    assert longer > word * 2


def test_metrics_wrap_font_errors() -> None:
    class BrokenCatalog(PillowFontCatalog):
        def load(self, family: str, size: int, style: FontStyle):
            raise OSError("cannot open resource")

    with pytest.raises(MetricsUnavailable):
        PillowFontMetrics(BrokenCatalog()).measure("x", "Arial", 20, FontStyle())
