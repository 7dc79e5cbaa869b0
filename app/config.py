from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.imaging.pillow_image import DEFAULT_MAX_PIXELS
from adapters.raster.pillow_compositor import IMAGE_FORMATS
from domain.gradients import (
    DEFAULT_FALLBACK_GRADIENT,
    GRADIENT_PRESETS,
    RANDOM_GRADIENT,
)
from domain.models import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_HORIZONTAL_INSET,
    DEFAULT_WATERMARK_TEXT,
    BackgroundSpec,
    ContrastPolicy,
    RenderSettings,
    TextAlign,
)

DEFAULT_CONFIG_PATH = Path("config/quote.yaml")


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if not raw:
        return []
    if (
        (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'"))
    ) and len(raw) >= 2:
        raw = raw[1:-1].strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


def _normalize_preset_name(value: object) -> str:
    return str(value or "").strip().lower().replace("_", "-").replace(" ", "-")


class RenderDefaults(BaseModel):
    font_family: str = DEFAULT_FONT_FAMILY
    font_size_px: int = DEFAULT_FONT_SIZE
    include_watermark: bool = True
    canvas_width: int = Field(default=DEFAULT_CANVAS_WIDTH, gt=0)
    canvas_height: int = Field(default=DEFAULT_CANVAS_HEIGHT, gt=0)
    horizontal_inset: int = Field(default=DEFAULT_HORIZONTAL_INSET, ge=0)
    text_align: TextAlign = "center"
    watermark_text: str = DEFAULT_WATERMARK_TEXT
    gradient: str = RANDOM_GRADIENT
    fallback_gradient: str = DEFAULT_FALLBACK_GRADIENT
    image_format: str = "png"
    image_quality: int = Field(default=92, ge=1, le=100)
    max_image_pixels: int = Field(default=DEFAULT_MAX_PIXELS, gt=0)

    @field_validator("gradient", mode="before")
    @classmethod
    def normalize_gradient(cls, value: object) -> str:
        name = _normalize_preset_name(value) or RANDOM_GRADIENT
        if name != RANDOM_GRADIENT and name not in GRADIENT_PRESETS:
            msg = f"render.gradient must be '{RANDOM_GRADIENT}' or a preset name, got {value!r}"
            raise ValueError(msg)
        return name

    @field_validator("fallback_gradient", mode="before")
    @classmethod
    def normalize_fallback_gradient(cls, value: object) -> str:
        name = _normalize_preset_name(value) or DEFAULT_FALLBACK_GRADIENT
        if name not in GRADIENT_PRESETS:
            msg = f"render.fallback_gradient must be a preset name, got {value!r}"
            raise ValueError(msg)
        return name

    @field_validator("image_format", mode="before")
    @classmethod
    def normalize_image_format(cls, value: object) -> str:
        name = str(value or "png").strip().lower()
        if name not in IMAGE_FORMATS:
            msg = f"render.image_format must be one of {sorted(IMAGE_FORMATS)}, got {value!r}"
            raise ValueError(msg)
        return name

    def to_render_settings(self, background: BackgroundSpec, **overrides: object) -> RenderSettings:
        values: dict[str, object] = {
            "font_family": self.font_family,
            "font_size_px": self.font_size_px,
            "include_watermark": self.include_watermark,
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "horizontal_inset": self.horizontal_inset,
            "text_align": self.text_align,
            "watermark_text": self.watermark_text,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return RenderSettings(background=background, **values)


class ContrastSettings(BaseModel):
    foreground_threshold: float = Field(default=200.0, ge=0, le=255)
    watermark_threshold: float = Field(default=150.0, ge=0, le=255)
    watermark_opacity: float = Field(default=0.6, ge=0, le=1)
    sample_grid: int = Field(default=8, ge=1, le=64)

    def to_policy(self) -> ContrastPolicy:
        return ContrastPolicy(
            foreground_threshold=self.foreground_threshold,
            watermark_threshold=self.watermark_threshold,
            watermark_opacity=self.watermark_opacity,
            sample_grid=self.sample_grid,
        )


class FontSettings(BaseModel):
    font_dirs: Annotated[list[Path], NoDecode] = Field(default_factory=list)

    @field_validator("font_dirs", mode="before")
    @classmethod
    def normalize_font_dirs(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            normalized: list[str] = []
            for item in value:
                normalized.extend(_split_string_list_value(str(item)))
            return normalized
        return _split_string_list_value(str(value))


class ServerSettings(BaseModel):
    title: str = "Quote Compositor"
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUOTE_", env_nested_delimiter="__")

    render: RenderDefaults = RenderDefaults()
    contrast: ContrastSettings = ContrastSettings()
    fonts: FontSettings = FontSettings()
    server: ServerSettings = ServerSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("QUOTE_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
