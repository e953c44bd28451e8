#!/usr/bin/env python3
"""Find which plugin files mention a string (usually a site URL).

Read-only. Prints each matching file with the matching lines.

Usage:
  python -m plugin_tools.maintenance.search_plugins https://example.com --dir plugins/english
  python -m plugin_tools.maintenance.search_plugins https://example.com --recursive --only-name sources.json
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from plugin_tools.helpers.file_search import (
    DEFAULT_EXTENSIONS,
    SearchOptions,
    display_results,
    search_files_for_string,
)
from plugin_tools.helpers.log_utils import setup_logger
from plugin_tools.helpers.settings import load_settings

LOG = logging.getLogger("search_plugins")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Search plugin sources for a string.")
    parser.add_argument("needle", help="Text to look for.")
    parser.add_argument("--dir", help="Directory to search (default: the plugins directory).")
    parser.add_argument("--recursive", action="store_true", help="Descend into sub-directories.")
    parser.add_argument("--case-sensitive", action="store_true")
    parser.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        help=f"File extension to include; repeatable (default: {' '.join(DEFAULT_EXTENSIONS)}).",
    )
    parser.add_argument("--all-extensions", action="store_true", help="Search files of any extension.")
    parser.add_argument("--only-name", help="Only search files with exactly this name, e.g. sources.json.")
    parser.add_argument("--quiet", action="store_true", help="Log at INFO instead of TRACE.")
    args = parser.parse_args(argv)

    setup_logger(verbose=not args.quiet)

    directory = args.dir or load_settings().plugins_dir
    if args.all_extensions:
        extensions = None
    elif args.extensions:
        extensions = tuple(e if e.startswith(".") else f".{e}" for e in args.extensions)
    else:
        extensions = DEFAULT_EXTENSIONS

    options = SearchOptions(
        recursive=args.recursive,
        file_extensions=extensions,
        restrict_to_basename=args.only_name,
        show_line_numbers=True,
        case_sensitive=args.case_sensitive,
    )
    LOG.trace("Searching %s for %r", directory, args.needle)
    results = search_files_for_string(directory, args.needle, options)
    display_results(results, args.needle)
    return 0 if results else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
