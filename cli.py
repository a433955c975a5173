# --- cli.py ---

import argparse
import logging
from typing import List, Optional, Sequence

from models import MAX_DEPTH, Filter, ScanConfig

DEFAULT_LOG_FILE = "disk-stats.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _depth(value: str) -> int:
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid depth: {value!r}")
    if not 1 <= depth <= MAX_DEPTH:
        raise argparse.ArgumentTypeError(f"depth must be between 1 and {MAX_DEPTH}")
    return depth


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="disk-stats",
        description="Interactive disk usage: folder sizes and file counts rolled up to a chosen depth."
    )
    p.add_argument("-p", "--path", default=None,
                   help="Directory to scan (default: ask with a folder chooser, else '.')")
    p.add_argument("-d", "--depth", type=_depth, default=1,
                   help=f"Folder depth to report on, 1..{MAX_DEPTH} (default: 1)")
    p.add_argument("-f", "--filter", dest="name_filters", action="append", default=[],
                   metavar="TEXT", help="Only count files whose name contains TEXT (repeatable)")
    p.add_argument("-e", "--extension", dest="extension_filters", action="append", default=[],
                   metavar="EXT", help="Only count files whose extension contains EXT (repeatable)")
    p.add_argument("-i", "--no-ignores", action="store_true",
                   help="Do not honor .gitignore / .ignore files")
    p.add_argument("-H", "--hidden", action="store_true",
                   help="Include hidden files and folders")
    p.add_argument("--log-file", default=DEFAULT_LOG_FILE,
                   help=f"Where to write the log (default: {DEFAULT_LOG_FILE})")
    return p.parse_args(argv)


def filters_from_args(args: argparse.Namespace) -> List[Filter]:
    filters = [Filter.file_name(text) for text in args.name_filters]
    filters += [Filter.extension(text.lstrip(".")) for text in args.extension_filters]
    return filters


def build_config(args: argparse.Namespace, path: Optional[str] = None) -> ScanConfig:
    """
    Turns parsed arguments into a validated ScanConfig.
    Raises ScanConfigError if the path is not a readable directory.
    """
    return ScanConfig.from_path(
        path or args.path or ".",
        filters=filters_from_args(args),
        respect_ignore_files=not args.no_ignores,
        include_hidden=args.hidden,
        depth=args.depth,
    )


def setup_logging(path: str = DEFAULT_LOG_FILE, level: int = logging.INFO):
    """Logs go to a file so they never draw over the UI."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)
    return handler
