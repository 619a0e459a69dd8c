from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

from dotenv import load_dotenv
from waitress import serve

from . import create_app
from .config import AppConfig, configure_logging
from .errors import TruthLensError
from .media import check_content_type, check_size, decode_image
from .watermark import compose_watermark, describe_font, download_name

logger = logging.getLogger(__name__)


def _load_config() -> AppConfig:
    load_dotenv()
    cfg = AppConfig.load()
    configure_logging(cfg.log_level)
    return cfg


def _cmd_self_check(_args: argparse.Namespace) -> int:
    cfg = _load_config()
    create_app(cfg)
    print("OK")
    print("max upload bytes:", cfg.max_upload_bytes)
    print("default watermark text:", cfg.default_watermark_text)
    print("font:", describe_font(cfg.font_path))
    print("detection delay:", cfg.detection_delay)
    print("report delay:", cfg.report_delay)
    print("max sessions:", cfg.max_sessions)
    return 0


def _cmd_watermark(args: argparse.Namespace) -> int:
    cfg = _load_config()
    src = Path(args.input)
    text = cfg.default_watermark_text if args.text is None else args.text

    try:
        content_type = mimetypes.guess_type(src.name)[0] or ""
        check_content_type(content_type)
        check_size(src.stat().st_size, cfg.max_upload_bytes)
        handle = decode_image(src.read_bytes(), content_type, src.name)
        result = compose_watermark(handle, text, font_path=cfg.font_path)
    except (TruthLensError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if result is None:
        print("error: watermark text is empty", file=sys.stderr)
        return 2

    dst = Path(args.output) if args.output else src.parent / download_name()
    dst.parent.mkdir(parents=True, exist_ok=True)
    dst.write_bytes(result.data)
    print(dst)
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    cfg = _load_config()
    app = create_app(cfg)
    host = args.host
    port = int(args.port)

    if args.debug:
        app.run(host=host, port=port, debug=True)
        return 0

    logger.info("serving on http://%s:%d", host, port)
    serve(app, host=host, port=port)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="truthlens", description="TruthLens deepfake awareness demo")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("self-check", help="Print effective configuration and font")
    p_check.set_defaults(func=_cmd_self_check)

    p_wm = sub.add_parser("watermark", help="Watermark an image file")
    p_wm.add_argument("input", help="Source image path")
    p_wm.add_argument("--text", default=None, help="Watermark text (defaults to DEFAULT_WATERMARK_TEXT)")
    p_wm.add_argument("--output", default=None, help="Output PNG path (default: watermarked-<millis>.png)")
    p_wm.set_defaults(func=_cmd_watermark)

    p_run = sub.add_parser("run", help="Start the web server")
    p_run.add_argument("--host", default="127.0.0.1")
    p_run.add_argument("--port", default="5000")
    p_run.add_argument("--debug", action="store_true", help="Use the Flask development server")
    p_run.set_defaults(func=_cmd_run)

    args = parser.parse_args(argv)
    return int(args.func(args))
