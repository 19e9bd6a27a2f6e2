from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path

from thumbcanvas.config import get_user_data_dir, load_config

_log = logging.getLogger("main")


def _setup_logging(level: str) -> Path | None:
    log_dir = get_user_data_dir() / "Logs"
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file: Path | None = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "thumbcanvas.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    except OSError:
        log_file = None
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )
    return log_file


def _filter_platform_startup_args(argv: list[str]) -> list[str]:
    """Drop arguments injected by the macOS launcher."""
    filtered_args: list[str] = []
    for arg in argv:
        if sys.platform == "darwin" and arg.startswith("-psn_"):
            continue
        filtered_args.append(arg)
    return filtered_args


def _install_exception_logging() -> None:
    """Windowed builds have no console; write uncaught exceptions to the log."""

    def _log_uncaught_exception(exc_type, exc_value, exc_tb) -> None:
        message = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        _log.error("uncaught exception\n%s", message.rstrip())
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _log_uncaught_exception


def main() -> None:
    cfg = load_config()
    log_file = _setup_logging(str(cfg.get("log_level") or "INFO"))
    _install_exception_logging()
    _log.info("startup argv=%s", sys.argv[1:])
    if log_file:
        _log.info("log file=%s", log_file)

    parser = argparse.ArgumentParser(description="Launch the ThumbCanvas editor.")
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Open this thumbnail config JSON on startup.",
    )
    args = parser.parse_args(_filter_platform_startup_args(sys.argv[1:]))
    startup_file = args.file.resolve(strict=False) if args.file else None

    try:
        from thumbcanvas.gui import launch_gui
    except Exception as exc:
        _log.error("GUI import failed: %s", exc)
        raise SystemExit(f"GUI is unavailable: {exc}") from exc

    _log.info("launching GUI")
    launch_gui(startup_file=startup_file)
    _log.info("GUI returned normally")


if __name__ == "__main__":
    main()
