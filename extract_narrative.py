#!/usr/bin/env python3
"""
Narrative extraction: CLI entry point.

Extracts the readable narrative text of a PDF (running headers, footers,
watermarks, equations and front matter removed, columns in reading
order) and optionally anchors a selected word onto it.

Usage::

    python extract_narrative.py paper.pdf
    python extract_narrative.py paper.pdf -o paper.txt --pages 1-12
    python extract_narrative.py paper.pdf --report
    python extract_narrative.py paper.pdf --anchor CD16+ --page 3 --y 0.42
    python extract_narrative.py paper.pdf --debug-overlay debug/paper/ -v 2

Verbosity levels::

    -v 0   Quiet: warnings and errors only.
    -v 1   Normal: phase summaries and progress bars (default).
    -v 2   Debug: per-page decisions and anchoring diagnostics.
"""

import argparse
import logging
import sys
from pathlib import Path

from narrative.anchor.models import AnchorRequest
from narrative.anchor.resolver import AnchorResolver
from narrative.errors import DocumentUnavailableError
from narrative.pipeline import ExtractionConfig, NarrativePipeline

logger = logging.getLogger("narrative")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_page_range(value: str):
    """
    Parse a 1-based page range string (e.g. ``"3-10"``) into a
    0-based ``(start, end)`` tuple.

    Raises:
        argparse.ArgumentTypeError: On malformed input.
    """
    parts = value.split("-")
    try:
        start = int(parts[0])
        end = int(parts[1]) if len(parts) > 1 else start
    except (ValueError, IndexError):
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Use N or N-M (1-based)."
        )
    if start < 1 or end < start:
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Start must be >= 1 and end >= start."
        )
    return (start - 1, end - 1)


def _fraction(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid fraction '{value}'")
    if not 0.0 <= f <= 1.0:
        raise argparse.ArgumentTypeError(f"Fraction must be within 0..1, got {f}")
    return f


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all pipeline options."""
    p = argparse.ArgumentParser(
        description="Extract the narrative text of a PDF and anchor selections onto it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python extract_narrative.py paper.pdf -o paper.txt\n"
            "  python extract_narrative.py paper.pdf --report --pages 1-5\n"
            "  python extract_narrative.py paper.pdf --anchor apple --page 2 --y 0.6\n"
            "  python extract_narrative.py paper.pdf --debug-overlay debug/ -v 2\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument("input", help="Path to the input PDF file")
    p.add_argument(
        "-o",
        "--output",
        default=None,
        metavar="FILE",
        help="Write the narrative text to FILE (default: stdout)",
    )

    # -- Pages -------------------------------------------------------------
    p.add_argument(
        "--pages",
        type=_parse_page_range,
        default=None,
        metavar="N-M",
        help="Page range, 1-based inclusive (e.g. 1-10). Default: all.",
    )
    p.add_argument(
        "--max-pages",
        type=int,
        default=200,
        metavar="N",
        help="Never read more than N pages (default: 200)",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=1,
        metavar="N",
        help="Threads for per-page line building (default: 1)",
    )

    # -- Content -----------------------------------------------------------
    content = p.add_argument_group("content")
    content.add_argument(
        "--keep-front-matter",
        action="store_true",
        help="Keep first-page portal chrome and affiliations",
    )
    content.add_argument(
        "--no-headings",
        action="store_true",
        help="Do not mark heading lines with [H<level>]",
    )

    # -- Anchoring ---------------------------------------------------------
    anchor = p.add_argument_group("anchoring")
    anchor.add_argument(
        "--anchor",
        default=None,
        metavar="TEXT",
        help="Resolve TEXT to a word index and print it",
    )
    anchor.add_argument(
        "--page",
        type=int,
        default=None,
        metavar="N",
        help="1-based page hint for --anchor",
    )
    anchor.add_argument(
        "--y",
        type=_fraction,
        default=None,
        metavar="F",
        help="Vertical selection position on the page, 0 (top) to 1",
    )
    anchor.add_argument(
        "--x",
        type=_fraction,
        default=None,
        metavar="F",
        help="Horizontal selection position on the page, 0 to 1",
    )
    anchor.add_argument(
        "--probe",
        default=None,
        metavar="TEXT",
        help="Words following the selection, to disambiguate repeats",
    )

    # -- Debug / output control --------------------------------------------
    debug = p.add_argument_group("debug & output")
    debug.add_argument(
        "--report",
        action="store_true",
        help="Print the per-page removal report",
    )
    debug.add_argument(
        "--debug-overlay",
        default=None,
        metavar="DIR",
        help="Save colour-coded kept/removed overlays to DIR",
    )
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``narrative`` logger.

    At verbosity 0 (WARNING), uses a minimal format. At 1+ (INFO /
    DEBUG), includes the module name for traceability.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    for name in ("narrative", "core"):
        root = logging.getLogger(name)
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_anchor(args: argparse.Namespace, index) -> int:
    """Resolve ``--anchor`` and print the word index; returns the exit code."""
    request = AnchorRequest(
        selection=args.anchor,
        page_index=args.page - 1 if args.page else None,
        y_fraction=args.y,
        x_fraction=args.x,
        probe=args.probe,
    )
    result = AnchorResolver(index).resolve(request)
    if not result.found:
        logger.warning("Could not anchor %r: %s", args.anchor, result.reason)
        logger.info("%s", result.diagnostics.format())
        return 2

    i = result.index
    lo, hi = max(0, i - 5), min(len(index.tokens), i + 6)
    context = " ".join(
        f"[{tok}]" if k == i else tok for k, tok in zip(range(lo, hi), index.tokens[lo:hi])
    )
    print(f"{i}\tpage {index.page_of_word(i) + 1}\t{result.stage}\t{context}")
    return 0


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the pipeline."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    disable_tqdm = args.no_progress or args.verbose == 0
    _configure_logging(args.verbose)

    # Validate input file
    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input file not found: {input_path}")
    if input_path.suffix.lower() != ".pdf":
        parser.error(f"Input must be a PDF file: {input_path}")
    if args.page is not None and args.page < 1:
        parser.error("--page is 1-based")

    config = ExtractionConfig(
        max_pages=args.max_pages,
        page_range=args.pages,
        strip_front_matter=not args.keep_front_matter,
        workers=max(1, args.workers),
        debug_overlay_dir=args.debug_overlay,
        disable_tqdm=disable_tqdm,
    )
    config.classifier.annotate_headings = not args.no_headings

    # Log run header
    logger.info("Narrative extraction")
    logger.info("  Input:  %s", input_path)
    if args.output:
        logger.info("  Output: %s", args.output)
    if config.page_range:
        s, e = config.page_range
        logger.info("  Pages:  %d-%d", s + 1, e + 1)
    if args.debug_overlay:
        logger.info("  Mode:   overlays → %s", args.debug_overlay)

    try:
        result = NarrativePipeline(config).build_from_pdf(str(input_path))
    except DocumentUnavailableError as e:
        logger.error("%s", e)
        sys.exit(1)

    index = result.index
    logger.info("\n%s", result.summary())

    if args.report and index.report is not None:
        print(index.report.format())

    if args.anchor:
        sys.exit(_cmd_anchor(args, index))

    if args.output:
        Path(args.output).write_text(index.full_text + "\n", encoding="utf-8")
        logger.info("Wrote %d words to %s", index.word_count, args.output)
    elif not args.report:
        print(index.full_text)

    if index.is_empty:
        logger.warning("No narrative text was extracted")
        sys.exit(1)


if __name__ == "__main__":
    main()
