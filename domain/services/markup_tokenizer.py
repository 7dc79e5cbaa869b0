from __future__ import annotations

import html
import re
from enum import Enum
from typing import Dict, List

from domain.models import LineBreak, Segment, TextSegment

STYLE_TAGS: Dict[str, str] = {
    "b": "bold",
    "strong": "bold",
    "i": "italic",
    "em": "italic",
    "u": "underline",
}
BREAK_TAGS = {"br"}
BLOCK_TAGS = {"p", "div"}

_TAG_RE = re.compile(r"^(/?)([a-zA-Z][a-zA-Z0-9]*)(?:\s[^<>]*|/)?$")
_ENTITY_CHAR_RE = re.compile(r"[#a-zA-Z0-9]")
_MAX_ENTITY_LENGTH = 10
# Code points XML 1.0 cannot carry.
_XML_ILLEGAL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class _State(Enum):
    TEXT = "text"
    TAG = "tag"
    ENTITY = "entity"


class _SegmentBuilder:
    def __init__(self) -> None:
        self.segments: List[Segment] = []
        self.depth: Dict[str, int] = {"bold": 0, "italic": 0, "underline": 0}
        self._buffer: List[str] = []
        self._buffer_style: tuple[bool, bool, bool] | None = None
        self._line_has_content = False
        self._pending_block_break = False

    @property
    def style(self) -> tuple[bool, bool, bool]:
        return (
            self.depth["bold"] > 0,
            self.depth["italic"] > 0,
            self.depth["underline"] > 0,
        )

    def add_text(self, text: str) -> None:
        text = strip_xml_illegal(text)
        if not text:
            return
        if text.strip():
            self._materialize_block_break()
            self._line_has_content = True
        style = self.style
        if self._buffer and self._buffer_style != style:
            self._flush()
        self._buffer_style = style
        self._buffer.append(text)

    def hard_break(self) -> None:
        self._flush()
        # A newline after a closed block ends that block; it is not a second break.
        self._pending_block_break = False
        self.segments.append(LineBreak())
        self._line_has_content = False

    def block_boundary(self) -> None:
        self._flush()
        if self._line_has_content:
            self._pending_block_break = True

    def open_style(self, name: str) -> None:
        self.depth[name] += 1

    def close_style(self, name: str) -> None:
        if self.depth[name] > 0:
            self.depth[name] -= 1

    def finish(self) -> List[Segment]:
        self._flush()
        return self.segments

    def _materialize_block_break(self) -> None:
        if self._pending_block_break and self._line_has_content:
            self.segments.append(LineBreak())
            self._line_has_content = False
        self._pending_block_break = False

    def _flush(self) -> None:
        if not self._buffer:
            return
        bold, italic, underline = self._buffer_style or (False, False, False)
        self.segments.append(
            TextSegment("".join(self._buffer), bold=bold, italic=italic, underline=underline)
        )
        self._buffer = []
        self._buffer_style = None


def tokenize_markup(rich_text: str) -> List[Segment]:
    text = str(rich_text or "").replace("\r\n", "\n").replace("\r", "\n")
    builder = _SegmentBuilder()
    state = _State.TEXT
    pending: List[str] = []

    def emit_text(chunk: str) -> None:
        parts = chunk.split("\n")
        for index, part in enumerate(parts):
            if index:
                builder.hard_break()
            builder.add_text(part)

    for char in text:
        if state is _State.TEXT:
            if char == "<":
                state = _State.TAG
                pending = []
            elif char == "&":
                state = _State.ENTITY
                pending = []
            else:
                emit_text(char)
        elif state is _State.TAG:
            if char == ">":
                body = "".join(pending)
                if not _apply_tag(builder, body):
                    emit_text(f"<{body}>")
                state = _State.TEXT
            elif char == "<":
                # The previous "<" never closed: keep it as text and reopen.
                emit_text("<" + "".join(pending))
                pending = []
            else:
                pending.append(char)
        else:
            if char == ";" and pending:
                builder.add_text(_decode_entity("".join(pending)))
                state = _State.TEXT
            elif _ENTITY_CHAR_RE.match(char) and len(pending) < _MAX_ENTITY_LENGTH:
                pending.append(char)
            else:
                emit_text("&" + "".join(pending))
                state = _State.TEXT
                if char == "<":
                    state = _State.TAG
                    pending = []
                elif char == "&":
                    state = _State.ENTITY
                    pending = []
                else:
                    emit_text(char)

    if state is _State.TAG:
        emit_text("<" + "".join(pending))
    elif state is _State.ENTITY:
        emit_text("&" + "".join(pending))
    return builder.finish()


def strip_xml_illegal(text: str) -> str:
    return _XML_ILLEGAL_RE.sub("", text)


def _apply_tag(builder: _SegmentBuilder, body: str) -> bool:
    match = _TAG_RE.match(body)
    if not match:
        return False
    closing = bool(match.group(1))
    name = match.group(2).lower()
    if name in BREAK_TAGS:
        builder.hard_break()
    elif name in BLOCK_TAGS:
        builder.block_boundary()
    elif name in STYLE_TAGS and not body.endswith("/"):
        if closing:
            builder.close_style(STYLE_TAGS[name])
        else:
            builder.open_style(STYLE_TAGS[name])
    return True


def _decode_entity(name: str) -> str:
    literal = f"&{name};"
    if name.lower() == "nbsp":
        return " "
    decoded = html.unescape(literal)
    return decoded.replace("\xa0", " ")
