"""Command-line entry point: render a rustdoc JSON file as a crate skeleton."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from rustskel.assemble_output import dump_raw
from rustskel.deep_merge import deep_merge
from rustskel.errors import RuskelError
from rustskel.load_config import load_config
from rustskel.render_options import RenderOptions
from rustskel.run_pipeline import run_pipeline_file

logger = logging.getLogger(__name__)

EXIT_DIAGNOSTICS = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``rustskel`` command."""
    ap = argparse.ArgumentParser(
        description=(
            "Render the public API of a crate from its rustdoc JSON as skeleton "
            "Rust source with every body elided."
        ),
    )
    ap.add_argument(
        "metadata",
        type=Path,
        help="rustdoc JSON file (or a YAML file with the same shape)",
    )
    ap.add_argument(
        "--private",
        action="store_true",
        help="Include private and restricted items",
    )
    ap.add_argument(
        "--auto-impls",
        action="store_true",
        help="Include auto-trait, synthetic and derived impls in full",
    )
    ap.add_argument(
        "--blanket-impls",
        action="store_true",
        help="Include blanket impls that are not standard-library noise",
    )
    ap.add_argument(
        "--no-docs",
        action="store_true",
        help="Leave doc comments out of the skeleton",
    )
    features = ap.add_mutually_exclusive_group()
    features.add_argument(
        "--features",
        help="Comma-separated features to enable (default: none)",
    )
    features.add_argument(
        "--all-features",
        action="store_true",
        help="Enable every feature",
    )
    ap.add_argument(
        "--raw",
        action="store_true",
        help="Print the canonical JSON form instead of skeleton text",
    )
    ap.add_argument(
        "--config",
        help="Path to a YAML configuration file",
    )
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any item was degraded",
    )
    ap.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log stage progress and per-item decisions to stderr",
    )
    return ap


def config_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Merge command-line flags over the configuration file."""
    config = load_config(args.config)
    render: dict[str, Any] = {}
    if args.private:
        render["include_private"] = True
    if args.auto_impls:
        render["include_auto_impls"] = True
    if args.blanket_impls:
        render["include_blanket_impls"] = True
    if args.no_docs:
        render["include_docs"] = False
    if args.all_features:
        render["features"] = "all"
    elif args.features is not None:
        render["features"] = args.features
    if args.raw:
        render["raw"] = True
    return deep_merge(config, {"render": render})


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline and print the result."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.metadata.is_file():
        msg = f"Metadata file not found: {args.metadata}"
        raise SystemExit(msg)

    config = config_from_args(args)
    options = RenderOptions.from_config(config)
    schema = config["schema"]
    try:
        result = run_pipeline_file(
            args.metadata,
            options,
            min_version=int(schema["min_format_version"]),
            max_version=int(schema["max_format_version"]),
        )
    except RuskelError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FATAL

    if isinstance(result.output, dict):
        sys.stdout.write(dump_raw(result.output))
    else:
        sys.stdout.write(result.output)

    if args.strict and result.degraded:
        logger.error("%d items were degraded", len(result.diagnostics))
        return EXIT_DIAGNOSTICS
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
