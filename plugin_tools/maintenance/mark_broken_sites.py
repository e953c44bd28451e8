#!/usr/bin/env python3
"""
mark_broken_sites.py

Disable every plugin listed in broken-sites-report.json.

For each reported site (processed one at a time, in report order):

1. Map its language code to the plugin directory (plugins/<language>).
   Unknown languages go straight to the missed list.
2. Search that directory (not recursively) for .ts/.js/.json files that
   mention the site URL and rename each match to <name>.broken.<ext>.
   Generated plugins (name[template].ts) are never renamed.
3. Sites with no match, or with a rename that failed, are retried against
   the multi-source plugins: every sources.json under plugins/multisrc that
   mentions the URL gets options.down / options.downSince set on the entry
   whose sourceSite equals the URL.
4. Whatever is left is written to missed-sites-report.json for manual
   follow-up. That file is rewritten on every run.

Usage:
  python -m plugin_tools.maintenance.mark_broken_sites
  python -m plugin_tools.maintenance.mark_broken_sites --report-only
  python -m plugin_tools.maintenance.mark_broken_sites --report https://host/broken-sites-report.json

Exit code:
  0  - run completed (missed sites are reported, not enforced)
  1  - the broken-sites report or the language table could not be loaded
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from plugin_tools.helpers.broken_report import (
    BrokenReportError,
    BrokenSiteRecord,
    load_broken_sites,
    write_missed_report,
)
from plugin_tools.helpers.file_search import (
    SearchOptions,
    display_results,
    search_files_for_string,
)
from plugin_tools.helpers.languages import LanguageDirectoryMap, LanguageTableError
from plugin_tools.helpers.log_utils import setup_logger
from plugin_tools.helpers.multisrc import mark_multisrc_down
from plugin_tools.helpers.plugin_rename import rename_plugin_file
from plugin_tools.helpers.settings import load_settings

LOG = logging.getLogger("mark_broken_sites")

MULTISRC_CONFIG_NAME = "sources.json"


@dataclass
class ReconcileResult:
    total: int = 0
    resolved_standalone: List[BrokenSiteRecord] = field(default_factory=list)
    resolved_multisrc: List[BrokenSiteRecord] = field(default_factory=list)
    missed: List[BrokenSiteRecord] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        return len(self.resolved_standalone) + len(self.resolved_multisrc)


def _disable_standalone(
    site: BrokenSiteRecord,
    lang_dir: str,
    dry_run: bool,
    show_matches: bool,
) -> bool:
    options = SearchOptions(show_line_numbers=show_matches)
    results = search_files_for_string(lang_dir, site.url, options)
    if show_matches:
        display_results(results, site.url)

    if not results:
        LOG.warning("No match for %s", site.url)
        return False

    ok = True
    for result in results:
        if not rename_plugin_file(result.file, dry_run=dry_run):
            LOG.warning("Bad rename for %s (%s)", site.url, result.file)
            ok = False
    return ok


def _disable_multisrc(
    site: BrokenSiteRecord,
    multisrc_dir: str,
    dry_run: bool,
    backup: bool,
    backed_up: Set[str],
) -> bool:
    options = SearchOptions(recursive=True, restrict_to_basename=MULTISRC_CONFIG_NAME)
    results = search_files_for_string(multisrc_dir, site.url, options)

    if not results:
        LOG.warning("No multisrc match for %s", site.url)
        return False

    ok = True
    for result in results:
        if not mark_multisrc_down(
            result.file, site.url, dry_run=dry_run, backup=backup, backed_up=backed_up
        ):
            ok = False
    return ok


def reconcile(
    sites: List[BrokenSiteRecord],
    languages: LanguageDirectoryMap,
    plugins_dir: str,
    multisrc_dir: str,
    dry_run: bool = False,
    backup: bool = False,
    show_matches: bool = False,
) -> ReconcileResult:
    """Disable every site, standalone plugins first, then multi-source entries.

    Sites are handled strictly one after another; several sites may point at
    the same directory or the same sources.json, and renames and rewrites are
    plain filesystem operations. Every site ends up in exactly one of the
    result lists, each kept in report order.
    """
    result = ReconcileResult(total=len(sites))
    retry: List[Tuple[int, BrokenSiteRecord]] = []
    missed: List[Tuple[int, BrokenSiteRecord]] = []
    backed_up: Set[str] = set()

    for idx, site in enumerate(sites):
        lang = languages.directory_for(site.lang)
        if lang is None:
            LOG.warning("Unknown language %r for %s", site.lang, site.url)
            missed.append((idx, site))
            continue

        lang_dir = os.path.join(plugins_dir, lang)
        LOG.trace("Searching %s for %s", lang_dir, site.url)
        if _disable_standalone(site, lang_dir, dry_run, show_matches):
            result.resolved_standalone.append(site)
        else:
            retry.append((idx, site))

    for idx, site in retry:
        LOG.trace("Retrying %s against multisrc plugins in %s", site.url, multisrc_dir)
        if _disable_multisrc(site, multisrc_dir, dry_run, backup, backed_up):
            result.resolved_multisrc.append(site)
        else:
            missed.append((idx, site))

    # Language misses land before retry misses; restore report order.
    missed.sort(key=lambda item: item[0])
    result.missed = [site for _, site in missed]
    return result


def _print_summary(result: ReconcileResult, missed_path: Optional[str]) -> None:
    print()
    print("=" * 80)
    print("Summary:")
    print("=" * 80)
    print(f"  Sites in report:           {result.total}")
    print(f"  Standalone plugins marked: {len(result.resolved_standalone)}")
    print(f"  Multisrc sources marked:   {len(result.resolved_multisrc)}")
    print(f"  Missed:                    {len(result.missed)}")

    if result.missed:
        print()
        print("Missed:")
        for site in result.missed:
            print(f"  - [{site.lang}] {site.url}")
        if missed_path:
            print(f"\nDetailed report saved to: {missed_path}")
    else:
        print("\nAll sites marked!")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Disable plugins for sites listed in the broken-sites report."
    )
    parser.add_argument("--repo-root", help="Plugin repository root (default: $PLUGIN_TOOLS_REPO_ROOT or cwd).")
    parser.add_argument("--report", help="Broken-sites report path or http(s) URL.")
    parser.add_argument("--missed-report", help="Where to write the missed-sites report.")
    parser.add_argument("--plugins-dir", help="Plugins directory (default: <repo-root>/plugins).")
    parser.add_argument("--multisrc-dir", help="Multi-source plugins directory (default: <plugins-dir>/multisrc).")
    parser.add_argument("--languages", help="JSON file mapping language display names to codes.")
    parser.add_argument(
        "--report-only",
        action="store_true",
        help="Only report what would change; do not rename, patch, or write any file.",
    )
    parser.add_argument("--backup", action="store_true", help="Back up each sources.json before rewriting it.")
    parser.add_argument("--show-matches", action="store_true", help="Print matching lines for each site.")
    parser.add_argument("--quiet", action="store_true", help="Log at INFO instead of TRACE.")
    args = parser.parse_args(argv)

    setup_logger(verbose=not args.quiet)

    settings = load_settings(
        repo_root=args.repo_root,
        report=args.report,
        missed_report=args.missed_report,
        plugins_dir=args.plugins_dir,
        multisrc_dir=args.multisrc_dir,
    )

    try:
        languages = (
            LanguageDirectoryMap.from_json(args.languages) if args.languages else LanguageDirectoryMap.default()
        )
    except LanguageTableError as e:
        LOG.error("%s", e)
        return 1

    LOG.info("Loading %s...", settings.report)
    try:
        sites = load_broken_sites(settings.report, timeout=settings.http_timeout_seconds)
    except BrokenReportError as e:
        LOG.error("%s", e)
        return 1
    LOG.info("Successfully indexed %d plugins.", len(sites))

    if args.report_only:
        LOG.info("Running in report-only mode. No changes will be written.")

    result = reconcile(
        sites,
        languages,
        settings.plugins_dir,
        settings.multisrc_dir,
        dry_run=args.report_only,
        backup=args.backup,
        show_matches=args.show_matches,
    )

    missed_path: Optional[str] = None
    if not args.report_only:
        try:
            missed_path = write_missed_report(settings.missed_report, result.missed)
        except OSError as e:
            LOG.error("Could not write missed-sites report %s: %s", settings.missed_report, e)

    _print_summary(result, missed_path)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
