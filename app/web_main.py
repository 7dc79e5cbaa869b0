from __future__ import annotations

import base64
import logging
from typing import Annotated, Any, Literal, Union

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import ORJSONResponse, Response
from pydantic import BaseModel, Field

from app.config import AppSettings, load_settings
from app.render_wiring import build_background, build_renderer
from domain.errors import EncodeFailed, QuoteRenderError
from domain.gradients import list_presets
from domain.models import (
    BackgroundSpec,
    GradientPair,
    RenderOutput,
    RenderSettings,
    SolidColor,
    TextAlign,
)

logger = logging.getLogger(__name__)


class PresetBackground(BaseModel):
    kind: Literal["preset"] = "preset"
    name: str | None = None


BackgroundRequest = Annotated[
    Union[PresetBackground, SolidColor, GradientPair], Field(discriminator="kind")
]


class RenderRequest(BaseModel):
    text: str = Field(min_length=1)
    font_family: str | None = None
    font_size_px: int | None = None
    include_watermark: bool | None = None
    text_align: TextAlign | None = None
    background: BackgroundRequest | None = None


def render_payload(output: RenderOutput) -> dict[str, Any]:
    layout = output.layout
    contrast = output.contrast
    return {
        "raster": {
            "mime_type": output.raster_mime_type,
            "data": base64.b64encode(output.raster).decode("ascii"),
        },
        "vector": {"mime_type": output.vector.mime_type, "markup": output.vector.markup},
        "lines": layout.texts,
        "line_height": layout.line_height,
        "start_y": layout.start_y,
        "foreground": contrast.foreground,
        "foreground_color": contrast.foreground_hex,
        "luminance": round(contrast.luminance, 2),
        "watermark_color": contrast.watermark_rgba,
    }


def error_detail(exc: QuoteRenderError) -> dict[str, str]:
    return {"code": exc.code, "message": str(exc)}


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.server.title)
    renderer = build_renderer(settings)
    app.state.settings = settings
    app.state.renderer = renderer

    def resolve_request_background(request: RenderRequest) -> BackgroundSpec:
        background = request.background
        if background is None or isinstance(background, PresetBackground):
            name = background.name if background is not None else None
            try:
                return build_background(settings, gradient=name)
            except ValueError as exc:
                raise HTTPException(
                    status_code=422,
                    detail={"code": "invalid_background", "message": str(exc)},
                ) from exc
        return background

    def run_render(
        text: str,
        background: BackgroundSpec,
        *,
        font_family: str | None = None,
        font_size_px: int | None = None,
        include_watermark: bool | None = None,
        text_align: TextAlign | None = None,
    ) -> RenderOutput:
        try:
            render_settings: RenderSettings = settings.render.to_render_settings(
                background,
                font_family=font_family,
                font_size_px=font_size_px,
                include_watermark=include_watermark,
                text_align=text_align,
            )
        except ValueError as exc:
            raise HTTPException(
                status_code=422,
                detail={"code": "invalid_settings", "message": str(exc)},
            ) from exc
        try:
            return renderer.render(text, render_settings)
        except EncodeFailed as exc:
            logger.exception("Failed to encode quote image.")
            raise HTTPException(status_code=500, detail=error_detail(exc)) from exc
        except QuoteRenderError as exc:
            raise HTTPException(status_code=422, detail=error_detail(exc)) from exc

    def render_request(request: RenderRequest) -> RenderOutput:
        return run_render(
            request.text,
            resolve_request_background(request),
            font_family=request.font_family,
            font_size_px=request.font_size_px,
            include_watermark=request.include_watermark,
            text_align=request.text_align,
        )

    @app.get("/health")
    def health() -> ORJSONResponse:
        return ORJSONResponse({"status": "ok"})

    @app.get("/api/gradients")
    def api_gradients() -> ORJSONResponse:
        return ORJSONResponse(
            [
                {
                    "name": preset.name,
                    "title": preset.title,
                    "start": preset.start,
                    "end": preset.end,
                }
                for preset in list_presets()
            ]
        )

    @app.post("/api/render")
    def api_render(request: RenderRequest) -> ORJSONResponse:
        return ORJSONResponse(render_payload(render_request(request)))

    @app.post("/api/render.png")
    def api_render_raster(request: RenderRequest) -> Response:
        output = render_request(request)
        return Response(content=output.raster, media_type=output.raster_mime_type)

    @app.post("/api/render.svg")
    def api_render_vector(request: RenderRequest) -> Response:
        output = render_request(request)
        return Response(content=output.vector.to_bytes(), media_type=output.vector.mime_type)

    @app.post("/api/render/upload")
    def api_render_upload(
        text: str = Form(..., min_length=1),
        image: UploadFile = File(...),
        font_family: str | None = Form(None),
        font_size_px: int | None = Form(None),
        include_watermark: bool | None = Form(None),
        text_align: TextAlign | None = Form(None),
    ) -> ORJSONResponse:
        limit = settings.server.max_upload_bytes
        raw_bytes = image.file.read(limit + 1)
        if not raw_bytes:
            raise HTTPException(status_code=400, detail="Empty upload")
        if len(raw_bytes) > limit:
            raise HTTPException(status_code=413, detail=f"Upload exceeds {limit} bytes")
        output = run_render(
            text,
            build_background(settings, image=raw_bytes),
            font_family=font_family,
            font_size_px=font_size_px,
            include_watermark=include_watermark,
            text_align=text_align,
        )
        return ORJSONResponse(render_payload(output))

    return app


app = create_app(load_settings())
