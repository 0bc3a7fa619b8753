"""CLI parsing and main orchestration."""

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import config
from . import console_styles as cs
from . import pipeline
from . import validation
from .catalog import load_catalog
from .console_styles import Verbosity, get_console
from .errors import CatalogValidationError, EngineConnectionError

console = get_console()
MeasureConfig = config.MeasureConfig

EXIT_CATALOG_INVALID = 1
EXIT_ENGINE_UNAVAILABLE = 2
EXIT_PERSISTENCE_FAILED = 3
EXIT_INTERRUPTED = 130

DEFAULT_OUTPUTS = {
    ("characters", "per-font"): "google-fonts",
    ("characters", "aggregate"): "google-fonts-characters.json",
    ("scale", "per-font"): "google-fonts-scale",
    ("scale", "aggregate"): "google-fonts.json",
}
DEFAULT_PERSISTENCE = {"characters": "per-font", "scale": "aggregate"}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    defaults = MeasureConfig()
    parser = argparse.ArgumentParser(
        description="Measure web font glyph widths and size scale in headless Chromium",
        epilog="Input: JSON object of font key -> {importUrl, cssFamily}",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--characters",
        dest="mode",
        action="store_const",
        const="characters",
        help="Measure per-character advance widths (default)",
    )
    mode.add_argument(
        "--scale",
        dest="mode",
        action="store_const",
        const="scale",
        help="Measure size relative to the baseline font",
    )
    parser.set_defaults(mode="characters")

    parser.add_argument(
        "-i", "--input", default="fonts.json", help="Catalog file (default: fonts.json)"
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output directory (per-font) or file (aggregate); default depends on mode",
    )

    persistence = parser.add_mutually_exclusive_group()
    persistence.add_argument(
        "--per-font",
        dest="persistence",
        action="store_const",
        const="per-font",
        help="One file per font plus index.json, written as fonts finish "
        "(default for --characters)",
    )
    persistence.add_argument(
        "--aggregate",
        dest="persistence",
        action="store_const",
        const="aggregate",
        help="One file for the whole run, written at the end (default for --scale)",
    )

    tuning = parser.add_argument_group("measurement tuning")
    tuning.add_argument(
        "--batch-size",
        type=int,
        default=defaults.batch_size,
        metavar="N",
        help=f"Characters per document (default: {defaults.batch_size})",
    )
    tuning.add_argument(
        "--test-size",
        type=int,
        default=defaults.test_size,
        metavar="PX",
        help=f"Font size used for rendering (default: {defaults.test_size}px)",
    )
    tuning.add_argument(
        "--max-retries",
        type=int,
        default=defaults.max_retries,
        metavar="N",
        help=f"Attempts per batch or font before falling back (default: {defaults.max_retries})",
    )
    tuning.add_argument(
        "--backoff",
        type=float,
        default=defaults.backoff_unit,
        metavar="SECONDS",
        help="Backoff unit; attempt n waits n x unit (default: %(default)s)",
    )
    tuning.add_argument(
        "--font-load-timeout",
        type=int,
        default=defaults.font_load_timeout,
        metavar="MS",
        help="Best-effort wait for a font to become ready (default: %(default)s)",
    )
    tuning.add_argument(
        "--page-timeout",
        type=int,
        default=defaults.page_timeout,
        metavar="MS",
        help="Wait for a document to become ready (default: %(default)s)",
    )
    tuning.add_argument(
        "--no-signal-epsilon",
        type=float,
        default=defaults.no_signal_epsilon,
        metavar="PX",
        help="Target within this distance of the baseline counts as not loaded "
        "(default: %(default)s)",
    )
    tuning.add_argument(
        "--sessions",
        type=int,
        default=defaults.sessions,
        metavar="N",
        help="Browser pages measuring in parallel (default: %(default)s)",
    )

    scale_opts = parser.add_argument_group("scale mode")
    scale_opts.add_argument(
        "--multi-font-batch",
        action="store_true",
        help="Render several fonts per document against one baseline",
    )
    scale_opts.add_argument(
        "--scale-batch-size",
        type=int,
        default=defaults.scale_batch_size,
        metavar="N",
        help="Fonts per document with --multi-font-batch (default: %(default)s)",
    )
    scale_opts.add_argument(
        "--width-only",
        action="store_true",
        help="Only compute widthScale (no heightScale)",
    )

    parser.add_argument(
        "--no-headless", action="store_true", help="Show the browser window"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity level. Use -v for VERBOSE, -vv for DEBUG level output",
    )
    args = parser.parse_args(argv)
    if args.persistence is None:
        args.persistence = DEFAULT_PERSISTENCE[args.mode]
    if args.output is None:
        args.output = DEFAULT_OUTPUTS[(args.mode, args.persistence)]
    return args


def build_config(args: argparse.Namespace) -> MeasureConfig:
    return MeasureConfig(
        test_size=args.test_size,
        batch_size=args.batch_size,
        scale_batch_size=args.scale_batch_size,
        font_load_timeout=args.font_load_timeout,
        page_timeout=args.page_timeout,
        max_retries=args.max_retries,
        backoff_unit=args.backoff,
        no_signal_epsilon=args.no_signal_epsilon,
        detect_no_signal=args.no_signal_epsilon > 0,
        sessions=args.sessions,
        multi_font_batch=args.multi_font_batch,
        scale_dimensions="width" if args.width_only else "both",
        persistence=args.persistence,
        headless=not args.no_headless,
    )


def main(argv: Optional[List[str]] = None) -> None:
    start_time = time.time()
    args = parse_args(argv)
    validation.validate_args(args)

    # Map verbose count to Verbosity enum: 0=BRIEF, 1=VERBOSE, 2+=DEBUG
    verbosity = (
        Verbosity.DEBUG
        if args.verbose >= 2
        else (Verbosity.VERBOSE if args.verbose >= 1 else Verbosity.BRIEF)
    )

    try:
        measure_config = build_config(args)
    except ValueError as e:
        cs.StatusIndicator("error").add_message(f"Invalid settings: {e}").emit(console)
        sys.exit(EXIT_CATALOG_INVALID)

    try:
        catalog = load_catalog(Path(args.input))
    except CatalogValidationError as e:
        cs.StatusIndicator("error").add_message(str(e)).emit(console)
        sys.exit(EXIT_CATALOG_INVALID)

    cs.StatusIndicator("info").add_message(
        f"Loaded {cs.fmt_count(len(catalog))} font(s) from"
    ).add_file(args.input).emit(console)

    try:
        summary = asyncio.run(
            pipeline.run_with_chromium(
                catalog, args.mode, measure_config, Path(args.output), verbosity
            )
        )
    except EngineConnectionError as e:
        cs.StatusIndicator("error").add_message(str(e)).emit(console)
        sys.exit(EXIT_ENGINE_UNAVAILABLE)
    except KeyboardInterrupt:
        cs.emit("", console=console)
        message = "Measurement interrupted."
        if measure_config.persistence == "per-font":
            message += f" Finished fonts are in {args.output}"
        else:
            message += " Nothing was written (aggregate mode)"
        cs.StatusIndicator("warning").add_message(message).emit(console)
        sys.exit(EXIT_INTERRUPTED)

    cs.emit(
        f"{cs.INDENT}[dim]Total time: [bold]{time.time() - start_time:.1f}[/bold]s[/dim]",
        console=console,
    )
    if summary.persistence_failed:
        sys.exit(EXIT_PERSISTENCE_FAILED)
