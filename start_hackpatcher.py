#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
hackpatcher - Startup Script

Command line entry point. Modes:

  patch BASE_ROM   apply every IPS patch under the downloads directory
  unzip            unpack zip/rar/7z archives under the downloads directory
  filetypes        list the file extensions found under the downloads directory
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from hackpatcher.config import PatcherConfig, load_config
from hackpatcher.core import (
    BatchSummary,
    ExtensionScanAction,
    PatchAction,
    UnarchiveAction,
    open_log,
    process_directory,
)
from hackpatcher.exceptions import ConfigurationError, ScannerError
from hackpatcher.logging_config import cleanup_logging, setup_logging
from hackpatcher.version import load_version

logger = logging.getLogger("hackpatcher.cli")


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {number}")
    return number


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(
        prog="hackpatcher",
        description="hackpatcher - batch IPS patching for ROM hack collections",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: ./hackpatcher.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--version", action="store_true", help="Show version information")

    sub = parser.add_subparsers(dest="mode")

    patch = sub.add_parser("patch", help="Apply every IPS patch to a copy of BASE_ROM")
    patch.add_argument("base_rom", help="Unmodified base ROM")
    patch.add_argument("--root", help="Directory to search for patches")
    patch.add_argument("--output", help="Root of the patched output tree")
    patch.add_argument("--workers", type=positive_int, help="Number of patches applied in parallel")

    unzip = sub.add_parser("unzip", help="Unpack zip, rar and 7z archives in place")
    unzip.add_argument("--root", help="Directory to search for archives")

    filetypes = sub.add_parser("filetypes", help="List the file extensions present")
    filetypes.add_argument("--root", help="Directory to scan")

    args = parser.parse_args(argv)
    if not args.version and not args.mode:
        parser.error("a mode is required: patch, unzip or filetypes")
    return args


def _report(summary: BatchSummary) -> None:
    print(f"{summary.action}: {summary.succeeded} ok, {summary.failed} failed")
    for path in summary.failed_paths:
        print(f"  failed: {path}")


def run_mode(args: argparse.Namespace, config: PatcherConfig) -> BatchSummary:
    root = Path(args.root or config.downloads_dir)
    log_dir = Path(config.log_dir)

    if args.mode == "patch":
        action = PatchAction(
            args.base_rom,
            output_root=args.output or config.output_dir,
            walk_root=root,
            extensions=config.patch_extensions,
        )
        workers = args.workers if args.workers is not None else config.max_workers
        with open_log(log_dir / "patch.txt", mirror=logger) as log:
            return process_directory(action, root, log, max_workers=workers)

    if args.mode == "unzip":
        action = UnarchiveAction(extensions=config.archive_extensions)
        with open_log(log_dir / "unzip.txt", mirror=logger) as log:
            return process_directory(action, root, log)

    scan = ExtensionScanAction()
    with open_log(log_dir / "filetypes.txt", mirror=logger) as log:
        summary = process_directory(scan, root, log)
    print(f"extensions: {sorted(scan.extensions)}")
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to start the application."""
    args = parse_arguments(argv)

    if args.version:
        print(f"hackpatcher v{load_version()}")
        return 0

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level="DEBUG" if args.debug else config.log_level,
        log_dir=config.log_dir,
        structured_json=config.log_json or None,
    )
    logger.info("Starting hackpatcher %s (%s)", load_version(), args.mode)

    try:
        summary = run_mode(args, config)
    except ScannerError as e:
        logger.error("Cannot walk directory: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        cleanup_logging()

    _report(summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
