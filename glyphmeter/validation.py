"""Argument sanity checks and warnings."""

import argparse

from . import console_styles as cs
from .console_styles import get_console

console = get_console()


def validate_args(args: argparse.Namespace) -> None:
    """Warn about unusual settings; hard errors are left to argparse/config."""
    if args.batch_size > 2000:
        cs.StatusIndicator("warning").add_message(
            f"batch-size {args.batch_size} is very large - documents may time out"
        ).emit(console)

    if args.test_size < 24:
        cs.StatusIndicator("warning").add_message(
            f"test-size {args.test_size}px is small - rounding will dominate widths"
        ).emit(console)

    if args.no_signal_epsilon <= 0:
        cs.StatusIndicator("warning").add_message(
            "no-signal-epsilon <= 0 disables fallback detection"
        ).emit(console)

    if args.max_retries == 1:
        cs.StatusIndicator("info").add_message(
            "max-retries 1: failing batches fall back without a second attempt"
        ).emit(console)

    if args.mode == "characters":
        if args.multi_font_batch or args.width_only:
            cs.StatusIndicator("warning").add_message(
                "--multi-font-batch and --width-only only apply to --scale (ignored)"
            ).emit(console)

    if args.sessions > 1:
        cs.StatusIndicator("info").add_message(
            f"Running {cs.fmt_count(args.sessions)} browser sessions in parallel"
        ).add_item(
            "Output order still follows the catalog", indent_level=1
        ).emit(console)

    if args.persistence == "aggregate" and args.mode == "characters":
        cs.StatusIndicator("info").add_message(
            "Aggregate output is written once at the end; an interrupted run saves nothing"
        ).emit(console)
