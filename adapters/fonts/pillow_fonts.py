from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from PIL import ImageFont

from domain.errors import MetricsUnavailable
from domain.models import FontStyle
from domain.ports.rendering import FontMetricsProvider

logger = logging.getLogger(__name__)

FontHandle = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]
StyleKey = Tuple[bool, bool]

REGULAR: StyleKey = (False, False)
BOLD: StyleKey = (True, False)
ITALIC: StyleKey = (False, True)
BOLD_ITALIC: StyleKey = (True, True)

_SANS = {
    REGULAR: ["LiberationSans-Regular.ttf", "DejaVuSans.ttf"],
    BOLD: ["LiberationSans-Bold.ttf", "DejaVuSans-Bold.ttf"],
    ITALIC: ["LiberationSans-Italic.ttf", "DejaVuSans-Oblique.ttf"],
    BOLD_ITALIC: ["LiberationSans-BoldItalic.ttf", "DejaVuSans-BoldOblique.ttf"],
}
_SERIF = {
    REGULAR: ["LiberationSerif-Regular.ttf", "DejaVuSerif.ttf"],
    BOLD: ["LiberationSerif-Bold.ttf", "DejaVuSerif-Bold.ttf"],
    ITALIC: ["LiberationSerif-Italic.ttf", "DejaVuSerif-Italic.ttf"],
    BOLD_ITALIC: ["LiberationSerif-BoldItalic.ttf", "DejaVuSerif-BoldItalic.ttf"],
}
_MONO = {
    REGULAR: ["LiberationMono-Regular.ttf", "DejaVuSansMono.ttf"],
    BOLD: ["LiberationMono-Bold.ttf", "DejaVuSansMono-Bold.ttf"],
    ITALIC: ["LiberationMono-Italic.ttf", "DejaVuSansMono-Oblique.ttf"],
    BOLD_ITALIC: ["LiberationMono-BoldItalic.ttf", "DejaVuSansMono-BoldOblique.ttf"],
}


def _family(
    files: Dict[StyleKey, List[str]], substitutes: Dict[StyleKey, List[str]]
) -> Dict[StyleKey, List[str]]:
    return {key: [*files.get(key, []), *substitutes[key]] for key in substitutes}


FONT_FILES: Dict[str, Dict[StyleKey, List[str]]] = {
    "arial": _family(
        {
            REGULAR: ["arial.ttf", "Arial.ttf"],
            BOLD: ["arialbd.ttf", "Arial Bold.ttf"],
            ITALIC: ["ariali.ttf", "Arial Italic.ttf"],
            BOLD_ITALIC: ["arialbi.ttf", "Arial Bold Italic.ttf"],
        },
        _SANS,
    ),
    "helvetica": _family({REGULAR: ["Helvetica.ttc"]}, _SANS),
    "verdana": _family(
        {
            REGULAR: ["verdana.ttf", "Verdana.ttf"],
            BOLD: ["verdanab.ttf", "Verdana Bold.ttf"],
            ITALIC: ["verdanai.ttf", "Verdana Italic.ttf"],
            BOLD_ITALIC: ["verdanaz.ttf", "Verdana Bold Italic.ttf"],
        },
        _SANS,
    ),
    "times new roman": _family(
        {
            REGULAR: ["times.ttf", "Times New Roman.ttf"],
            BOLD: ["timesbd.ttf", "Times New Roman Bold.ttf"],
            ITALIC: ["timesi.ttf", "Times New Roman Italic.ttf"],
            BOLD_ITALIC: ["timesbi.ttf", "Times New Roman Bold Italic.ttf"],
        },
        _SERIF,
    ),
    "georgia": _family(
        {
            REGULAR: ["georgia.ttf", "Georgia.ttf"],
            BOLD: ["georgiab.ttf", "Georgia Bold.ttf"],
            ITALIC: ["georgiai.ttf", "Georgia Italic.ttf"],
            BOLD_ITALIC: ["georgiaz.ttf", "Georgia Bold Italic.ttf"],
        },
        _SERIF,
    ),
    "courier new": _family(
        {
            REGULAR: ["cour.ttf", "Courier New.ttf"],
            BOLD: ["courbd.ttf", "Courier New Bold.ttf"],
            ITALIC: ["couri.ttf", "Courier New Italic.ttf"],
            BOLD_ITALIC: ["courbi.ttf", "Courier New Bold Italic.ttf"],
        },
        _MONO,
    ),
    "sans-serif": _SANS,
    "serif": _SERIF,
    "monospace": _MONO,
}

_GENERIC_SUFFIXES: Dict[StyleKey, List[str]] = {
    REGULAR: ["", "-Regular"],
    BOLD: ["-Bold", " Bold"],
    ITALIC: ["-Italic", " Italic", "-Oblique"],
    BOLD_ITALIC: ["-BoldItalic", " Bold Italic", "-BoldOblique"],
}


class PillowFontCatalog:
    def __init__(self, font_dirs: Sequence[Path] = ()) -> None:
        self.font_dirs = [Path(directory) for directory in font_dirs]
        self._fonts: Dict[Tuple[str, int, StyleKey], FontHandle] = {}
        self._lock = threading.Lock()

    def load(self, family: str, size: int, style: FontStyle) -> FontHandle:
        key = (family.strip().lower(), int(size), (style.bold, style.italic))
        with self._lock:
            font = self._fonts.get(key)
            if font is None:
                font = self._open(family, int(size), key[2])
                self._fonts[key] = font
        return font

    def candidates(self, family: str, style: StyleKey) -> List[str]:
        name = family.strip()
        known = FONT_FILES.get(name.lower())
        names: List[str] = []
        if known:
            names.extend(known[style])
            if style != REGULAR:
                names.extend(known[REGULAR])
        else:
            names.extend(f"{name}{suffix}.ttf" for suffix in _GENERIC_SUFFIXES[style])
            if style != REGULAR:
                names.extend(f"{name}{suffix}.ttf" for suffix in _GENERIC_SUFFIXES[REGULAR])
            names.extend(_SANS[style])
        return list(dict.fromkeys(names))

    def _open(self, family: str, size: int, style: StyleKey) -> FontHandle:
        for candidate in self._expand(self.candidates(family, style)):
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue
        logger.warning(
            "No font file found for %r (bold=%s, italic=%s); using Pillow's default font.",
            family,
            style[0],
            style[1],
        )
        return ImageFont.load_default(size=size)

    def _expand(self, names: Iterable[str]) -> Iterable[str]:
        for name in names:
            for directory in self.font_dirs:
                path = directory / name
                if path.exists():
                    yield str(path)
            yield name


class PillowFontMetrics(FontMetricsProvider):
    def __init__(self, catalog: PillowFontCatalog) -> None:
        self.catalog = catalog

    def measure(self, text: str, font_family: str, font_size: int, style: FontStyle) -> float:
        try:
            font = self.catalog.load(font_family, font_size, style)
            return float(font.getlength(text))
        except (OSError, ValueError) as exc:
            msg = f"Cannot measure {text!r} in {font_family} {font_size}px: {exc}"
            raise MetricsUnavailable(msg) from exc
