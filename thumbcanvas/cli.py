from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Any, NoReturn

import typer

from thumbcanvas.config import load_config, resolve_store_dir, write_default_config
from thumbcanvas.constants import EXPORT_FORMATS
from thumbcanvas.models import ThumbnailConfig
from thumbcanvas.normalize import config_to_dict, default_config, normalize_config
from thumbcanvas.render.images import ImageCache, decode_image_source
from thumbcanvas.render.renderer import CanvasRenderer
from thumbcanvas.render.typography import add_font_directories
from thumbcanvas.storage import ThumbnailNotFoundError, ThumbnailStore
from thumbcanvas.template_loader import apply_template, list_builtin_templates, load_template

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Thumbnail canvas compositor CLI.")
LOGGER = logging.getLogger("thumbcanvas")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(1)


def _resolve_output_format(fmt: str | None, out: Path | None, fallback: str) -> str:
    if fmt:
        key = fmt.lower()
    elif out is not None and out.suffix:
        key = out.suffix.lower().lstrip(".")
    else:
        key = fallback.lower()
    if key not in EXPORT_FORMATS:
        raise ValueError(f"output format must be png, jpg or webp, got: {key!r}")
    return key


def _build_renderer(cfg: dict[str, Any]) -> CanvasRenderer:
    font_dirs = cfg.get("font_dirs") or []
    if font_dirs:
        add_font_directories([str(item) for item in font_dirs])
    timeout = float(cfg.get("image_timeout") or 30.0)
    images = ImageCache(functools.partial(decode_image_source, timeout=timeout))
    return CanvasRenderer(images, font_path=str(cfg.get("font_path") or "") or None)


def _open_store(cfg: dict[str, Any], store_dir: Path | None) -> ThumbnailStore:
    return ThumbnailStore(store_dir or resolve_store_dir(cfg))


def _read_config_file(path: Path) -> ThumbnailConfig:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"cannot read thumbnail config {path}: {exc}") from exc
    # accept both a bare config and a stored record
    if isinstance(raw, dict) and isinstance(raw.get("config"), dict):
        raw = raw["config"]
    return normalize_config(raw)


def _write_output(renderer: CanvasRenderer, config: ThumbnailConfig, out: Path, fmt: str, quality: int) -> None:
    data = renderer.export(config, fmt=fmt, quality=quality)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)


@app.command()
def render(
    config_path: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    out: Path = typer.Option(..., "--out", help="Output image path."),
    output_format: str | None = typer.Option(None, "--format", help="Output format: png|jpg|webp"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Render a thumbnail config JSON file to an image."""
    _setup_logging(log_level)
    cfg = load_config()
    try:
        config = _read_config_file(config_path)
        fmt = _resolve_output_format(output_format, out, str(cfg.get("output_format") or "png"))
    except ValueError as exc:
        _fail(str(exc))

    renderer = _build_renderer(cfg)
    try:
        _write_output(renderer, config, out, fmt, quality or int(cfg.get("quality") or 90))
    except OSError as exc:
        _fail(f"Render failed: {exc}")
    finally:
        renderer.images.close()
    typer.echo(f"Rendered: {out}")


@app.command()
def save(
    config_path: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    title: str = typer.Option("Untitled", "--title"),
    store_dir: Path | None = typer.Option(None, "--store", help="Thumbnail store directory."),
) -> None:
    """Save a thumbnail config JSON file into the store."""
    cfg = load_config()
    try:
        config = _read_config_file(config_path)
    except ValueError as exc:
        _fail(str(exc))
    thumbnail_id = _open_store(cfg, store_dir).save(config, title=title)
    typer.echo(thumbnail_id)


@app.command("list")
def list_thumbnails(
    store_dir: Path | None = typer.Option(None, "--store", help="Thumbnail store directory."),
) -> None:
    """List saved thumbnails, newest first."""
    cfg = load_config()
    records = _open_store(cfg, store_dir).list()
    if not records:
        typer.echo("No saved thumbnails.")
        return
    for record in records:
        typer.echo(f"{record.id}  {record.updated_at}  {record.title}")


@app.command()
def show(
    thumbnail_id: str = typer.Argument(...),
    store_dir: Path | None = typer.Option(None, "--store", help="Thumbnail store directory."),
) -> None:
    """Print a saved thumbnail's config as JSON."""
    cfg = load_config()
    try:
        record = _open_store(cfg, store_dir).get(thumbnail_id)
    except (ThumbnailNotFoundError, ValueError) as exc:
        _fail(f"Thumbnail not found: {exc}")
    payload = {
        "id": record.id,
        "title": record.title,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "config": config_to_dict(record.config),
    }
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command()
def export(
    thumbnail_id: str = typer.Argument(...),
    out: Path = typer.Option(..., "--out", help="Output image path."),
    output_format: str | None = typer.Option(None, "--format", help="Output format: png|jpg|webp"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    store_dir: Path | None = typer.Option(None, "--store", help="Thumbnail store directory."),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Render a saved thumbnail to an image."""
    _setup_logging(log_level)
    cfg = load_config()
    try:
        config = _open_store(cfg, store_dir).load(thumbnail_id)
        fmt = _resolve_output_format(output_format, out, str(cfg.get("output_format") or "png"))
    except ThumbnailNotFoundError as exc:
        _fail(f"Thumbnail not found: {exc}")
    except ValueError as exc:
        _fail(str(exc))

    renderer = _build_renderer(cfg)
    try:
        _write_output(renderer, config, out, fmt, quality or int(cfg.get("quality") or 90))
    except OSError as exc:
        _fail(f"Export failed: {exc}")
    finally:
        renderer.images.close()
    typer.echo(f"Exported: {out}")


@app.command()
def delete(
    thumbnail_id: str = typer.Argument(...),
    store_dir: Path | None = typer.Option(None, "--store", help="Thumbnail store directory."),
) -> None:
    """Delete a saved thumbnail."""
    cfg = load_config()
    try:
        removed = _open_store(cfg, store_dir).delete(thumbnail_id)
    except ValueError as exc:
        _fail(str(exc))
    if not removed:
        _fail(f"Thumbnail not found: {thumbnail_id}")
    typer.echo(f"Deleted: {thumbnail_id}")


@app.command()
def templates() -> None:
    """List built-in templates."""
    for name in list_builtin_templates():
        template = load_template(name)
        typer.echo(f"{name:<20} {template.category:<10} {template.name}")


@app.command()
def new(
    out: Path = typer.Option(..., "--out", help="Where to write the config JSON."),
    template: str | None = typer.Option(None, "--template", help="Template name or .json file path."),
) -> None:
    """Write a starter thumbnail config."""
    cfg = load_config()
    config = default_config(
        width=cfg.get("width"),
        height=cfg.get("height"),
        backgroundColor=cfg.get("background_color"),
    )
    if template:
        try:
            config = apply_template(config, load_template(template))
        except (FileNotFoundError, ValueError) as exc:
            _fail(f"Template load failed: {exc}")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(config_to_dict(config), ensure_ascii=False, indent=2), encoding="utf-8")
    typer.echo(f"Config written: {out}")


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


@app.command()
def gui(
    file: Path | None = typer.Option(
        None,
        "--file",
        exists=True,
        resolve_path=True,
        dir_okay=False,
        help="Open this thumbnail config JSON on startup.",
    ),
) -> None:
    try:
        from thumbcanvas.gui import launch_gui
    except Exception as exc:
        typer.secho(f"GUI is unavailable: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    try:
        launch_gui(startup_file=file)
    except Exception as exc:
        typer.secho(f"GUI failed to start: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
