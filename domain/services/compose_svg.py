from __future__ import annotations

import base64
import xml.etree.ElementTree as ET
from typing import Dict

from domain.errors import EncodeFailed
from domain.models import (
    BitmapBackground,
    ContrastDecision,
    GradientPair,
    LayoutResult,
    PreparedBackground,
    RenderSettings,
    SolidColor,
    VectorDocument,
)
from domain.services.placement import (
    format_number,
    place_lines,
    place_watermark,
    underline_bars,
)

SVG_NS = "http://www.w3.org/2000/svg"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


class SvgCompositor:
    def __init__(self, gradient_id: str = "quote-background") -> None:
        self.gradient_id = gradient_id

    def render(
        self,
        layout: LayoutResult,
        background: PreparedBackground,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> VectorDocument:
        width = str(settings.canvas_width)
        height = str(settings.canvas_height)
        root = ET.Element(
            "svg",
            {
                "xmlns": SVG_NS,
                "width": width,
                "height": height,
                "viewBox": f"0 0 {width} {height}",
            },
        )
        self._build_background(root, background, settings)
        self._build_text(root, layout, contrast, settings)
        if settings.include_watermark:
            self._build_watermark(root, contrast, settings)

        try:
            markup = ET.tostring(root, encoding="unicode")
            # Lone surrogates only fail once the document is encoded.
            markup.encode("utf-8")
        except (TypeError, ValueError) as exc:
            msg = f"Failed to serialize SVG document: {exc}"
            raise EncodeFailed(msg) from exc
        return VectorDocument(markup=XML_DECLARATION + markup)

    def _build_background(
        self, root: ET.Element, background: PreparedBackground, settings: RenderSettings
    ) -> None:
        size = {"width": str(settings.canvas_width), "height": str(settings.canvas_height)}
        if isinstance(background, SolidColor):
            ET.SubElement(
                root,
                "rect",
                {"class": "background", "x": "0", "y": "0", **size, "fill": background.color},
            )
            return
        if isinstance(background, GradientPair):
            defs = ET.SubElement(root, "defs")
            gradient = ET.SubElement(
                defs,
                "linearGradient",
                {
                    "id": self.gradient_id,
                    "gradientUnits": "userSpaceOnUse",
                    "x1": "0",
                    "y1": "0",
                    "x2": str(settings.canvas_width),
                    "y2": str(settings.canvas_height),
                },
            )
            ET.SubElement(gradient, "stop", {"offset": "0", "stop-color": background.start})
            ET.SubElement(gradient, "stop", {"offset": "1", "stop-color": background.end})
            ET.SubElement(
                root,
                "rect",
                {
                    "class": "background",
                    "x": "0",
                    "y": "0",
                    **size,
                    "fill": f"url(#{self.gradient_id})",
                },
            )
            return
        if isinstance(background, BitmapBackground):
            fit = background.fit
            payload = base64.b64encode(background.image.source).decode("ascii")
            ET.SubElement(
                root,
                "image",
                {
                    "class": "background",
                    "href": f"data:{background.image.mime_type};base64,{payload}",
                    "x": str(-fit.offset_x),
                    "y": str(-fit.offset_y),
                    "width": str(fit.width),
                    "height": str(fit.height),
                    "preserveAspectRatio": "none",
                },
            )
            return
        msg = f"Unsupported background: {type(background).__name__}"
        raise TypeError(msg)

    def _build_text(
        self,
        root: ET.Element,
        layout: LayoutResult,
        contrast: ContrastDecision,
        settings: RenderSettings,
    ) -> None:
        group = ET.SubElement(
            root,
            "g",
            {
                "class": "quote-text",
                "font-family": layout.font_family,
                "font-size": str(layout.font_size),
                "fill": contrast.foreground_hex,
            },
        )
        for placement in place_lines(layout, settings):
            text = ET.SubElement(
                group,
                "text",
                {
                    "class": "quote-line",
                    "x": format_number(placement.x),
                    "y": format_number(placement.baseline_y),
                    XML_SPACE: "preserve",
                },
            )
            for run in placement.runs:
                attributes: Dict[str, str] = {"x": format_number(run.x)}
                if run.run.bold:
                    attributes["font-weight"] = "bold"
                if run.run.italic:
                    attributes["font-style"] = "italic"
                tspan = ET.SubElement(text, "tspan", attributes)
                tspan.text = run.run.text
            for bar in underline_bars(placement, layout.font_size):
                ET.SubElement(
                    group,
                    "rect",
                    {
                        "class": "underline",
                        "x": format_number(bar.x),
                        "y": format_number(bar.y),
                        "width": format_number(bar.width),
                        "height": str(bar.height),
                    },
                )

    def _build_watermark(
        self, root: ET.Element, contrast: ContrastDecision, settings: RenderSettings
    ) -> None:
        placement = place_watermark(settings)
        label = ET.SubElement(
            root,
            "text",
            {
                "class": "watermark",
                "x": format_number(placement.x),
                "y": format_number(placement.baseline_y),
                "text-anchor": "end",
                "font-family": placement.font_family,
                "font-size": str(placement.font_size),
                "font-weight": "bold" if placement.bold else "normal",
                "fill": contrast.watermark_hex,
                "fill-opacity": format_number(contrast.watermark_opacity),
            },
        )
        label.text = placement.text
