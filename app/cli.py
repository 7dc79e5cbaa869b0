from __future__ import annotations

import logging
import random
import sys
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from app.config import AppSettings, load_settings
from app.render_wiring import build_background, build_renderer
from domain.errors import QuoteRenderError
from domain.gradients import list_presets

app = typer.Typer(no_args_is_help=True)
console = Console()

RASTER_SUFFIXES = {"image/png": ".png", "image/jpeg": ".jpg", "image/webp": ".webp"}


def _load_settings(config_path: Path | None) -> AppSettings:
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _read_text(text: str | None, input_path: Path | None) -> str:
    if input_path is not None:
        if not input_path.exists():
            console.print(f"[red]File not found:[/] {input_path}")
            raise typer.Exit(code=1)
        return input_path.read_text(encoding="utf-8")
    if text is not None:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    console.print("[red]Provide quote text as an argument, with --input, or on stdin.[/]")
    raise typer.Exit(code=1)


@app.command("render")
def render(
    text: str | None = typer.Argument(None, help="Quote text; supports <b>, <i>, <u> and <br>."),
    input_path: Path | None = typer.Option(
        None, "--input", "-i", help="Read the quote markup from a file."
    ),
    font: str | None = typer.Option(None, "--font", help="Font family name."),
    size: int | None = typer.Option(None, "--size", help="Font size in pixels (12-60)."),
    gradient: str | None = typer.Option(
        None, "--gradient", help="Gradient preset name, or 'random'."
    ),
    color: str | None = typer.Option(None, "--color", help="Solid background colour, #rrggbb."),
    image: Path | None = typer.Option(None, "--image", help="Background image file."),
    no_watermark: bool = typer.Option(False, "--no-watermark", help="Skip the corner watermark."),
    align: str | None = typer.Option(None, "--align", help="left, center or right."),
    seed: int | None = typer.Option(None, "--seed", help="Seed for the random gradient."),
    output_dir: Path = typer.Option(Path("out"), help="Directory to write the images to."),
    name: str = typer.Option("quote", help="Base file name for the outputs."),
    config: Path | None = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    settings = _load_settings(config)
    rich_text = _read_text(text, input_path)
    if image is not None and not image.exists():
        console.print(f"[red]File not found:[/] {image}")
        raise typer.Exit(code=1)

    try:
        background = build_background(
            settings,
            gradient=gradient,
            color=color,
            image=image.read_bytes() if image is not None else None,
            rng=random.Random(seed) if seed is not None else None,
        )
        render_settings = settings.render.to_render_settings(
            background,
            font_family=font,
            font_size_px=size,
            include_watermark=False if no_watermark else None,
            text_align=align,
        )
        output = build_renderer(settings).render(rich_text, render_settings)
    except QuoteRenderError as exc:
        console.print(f"[red]Render failed ({exc.code}):[/] {exc}")
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(f"[red]Invalid options:[/] {exc}")
        raise typer.Exit(code=1) from exc

    output_dir.mkdir(parents=True, exist_ok=True)
    raster_path = output_dir / f"{name}{RASTER_SUFFIXES.get(output.raster_mime_type, '.png')}"
    raster_path.write_bytes(output.raster)
    console.print(f"[green]Wrote[/] {raster_path}")
    vector_path = output_dir / f"{name}.svg"
    vector_path.write_bytes(output.vector.to_bytes())
    console.print(f"[green]Wrote[/] {vector_path}")
    console.print(
        f"{len(output.layout.lines)} line(s), {output.contrast.foreground} text "
        f"(background luminance {output.contrast.luminance:.1f})"
    )


@app.command("layout")
def layout(
    text: str | None = typer.Argument(None, help="Quote text to wrap."),
    input_path: Path | None = typer.Option(None, "--input", "-i", help="Read markup from a file."),
    font: str | None = typer.Option(None, "--font", help="Font family name."),
    size: int | None = typer.Option(None, "--size", help="Font size in pixels (12-60)."),
    config: Path | None = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    settings = _load_settings(config)
    rich_text = _read_text(text, input_path)
    try:
        render_settings = settings.render.to_render_settings(
            build_background(settings, gradient=settings.render.fallback_gradient),
            font_family=font,
            font_size_px=size,
        )
        result = build_renderer(settings).build_layout(rich_text, render_settings)
    except QuoteRenderError as exc:
        console.print(f"[red]Layout failed ({exc.code}):[/] {exc}")
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(f"[red]Invalid options:[/] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title=f"{result.font_family} {result.font_size}px, max width {result.max_width}")
    table.add_column("#", justify="right")
    table.add_column("Text")
    table.add_column("Width", justify="right")
    table.add_column("Center y", justify="right")
    for index, line in enumerate(result.lines):
        table.add_row(
            str(index + 1),
            line.text,
            f"{line.width:.1f}",
            f"{result.start_y + index * result.line_height:.1f}",
        )
    console.print(table)


@app.command("gradients")
def gradients() -> None:
    table = Table(title="Gradient presets")
    table.add_column("Name")
    table.add_column("Title")
    table.add_column("Start")
    table.add_column("End")
    for preset in list_presets():
        table.add_row(preset.name, preset.title, preset.start, preset.end)
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    config: Path | None = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    from app.web_main import create_app

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(_load_settings(config)), host=host, port=port)


if __name__ == "__main__":
    app()
