"""
Slide Deck PDF Converter

Application entry point.
Converts PowerPoint packages to fixed-layout PDF documents.
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from config.defaults import APP_NAME, APP_VERSION
from config.settings_manager import SettingsManager
from core.errors import ConversionError
from core.models import ConversionProgress
from core.pipeline import ConversionPipeline

# Configure root logger
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


def on_progress(progress: ConversionProgress) -> None:
    """Log progress notifications."""
    logger.info(
        f"[{progress.percentage:5.1f}%] {progress.stage} "
        f"({progress.current}/{progress.total})"
    )


def cmd_info(args: argparse.Namespace, settings_manager: SettingsManager) -> int:
    """Print package metadata as JSON."""
    pipeline = ConversionPipeline(settings_manager.settings)
    try:
        metadata = pipeline.get_metadata(args.input)
    except ConversionError as e:
        logger.error(str(e))
        return 2

    print(json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_convert(args: argparse.Namespace, settings_manager: SettingsManager) -> int:
    """Convert a package and write the PDF."""
    input_path = Path(args.input)
    output_path = Path(args.out) if args.out else input_path.with_suffix(".pdf")
    if not output_path.suffix:
        output_path = output_path.with_suffix(".pdf")

    overrides = {}
    if args.workers is not None:
        overrides["render_workers"] = args.workers
    if args.skip_bad_images:
        overrides["skip_undecodable_media"] = True
    # Per-run overrides, not persisted
    run_settings = replace(settings_manager.settings, **overrides)

    pipeline = ConversionPipeline(run_settings, progress_callback=on_progress)
    logger.info(f"Starting conversion: {input_path.name}")

    try:
        pdf_bytes = pipeline.convert_with_retry(input_path, args.retries)
    except (ConversionError, ValueError) as e:
        logger.error(str(e))
        return 2

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(pdf_bytes)
    settings_manager.update(last_output_dir=str(output_path.parent.resolve()))

    logger.info(f"Saved to: {output_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slide-deck-pdf", description=f"{APP_NAME} v{APP_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_info = sub.add_parser("info", help="print slide count, canvas size and title")
    p_info.add_argument("input", help="path to .pptx file")
    p_info.set_defaults(func=cmd_info)

    p_conv = sub.add_parser("convert", help="convert a .pptx file to PDF")
    p_conv.add_argument("input", help="path to .pptx file")
    p_conv.add_argument("-o", "--out", help="output .pdf path (default: next to input)")
    p_conv.add_argument("--retries", type=int, default=None, help="retries after the first attempt")
    p_conv.add_argument("--workers", type=int, default=None, help="parallel slide render workers")
    p_conv.add_argument(
        "--skip-bad-images",
        action="store_true",
        help="drop undecodable images instead of failing the slide",
    )
    p_conv.set_defaults(func=cmd_convert)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Command-line main function.

    Args:
        argv: Arguments (sys.argv when omitted).

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    settings_manager = SettingsManager()
    return args.func(args, settings_manager)


if __name__ == "__main__":
    raise SystemExit(main())
