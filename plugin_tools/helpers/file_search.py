"""
Substring search over plugin source trees.

Used by the broken-site tools to find which plugin file (or which shared
``sources.json``) mentions a site URL. The search is a plain substring test
on the whole file; it never parses the plugin code.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

LOG = logging.getLogger("file_search")

DEFAULT_EXTENSIONS = (".ts", ".js", ".json")


@dataclass(frozen=True)
class SearchOptions:
    recursive: bool = False
    # None disables the extension filter.
    file_extensions: Optional[Sequence[str]] = DEFAULT_EXTENSIONS
    # Exact file name filter (e.g. "sources.json").
    restrict_to_basename: Optional[str] = None
    show_line_numbers: bool = False
    case_sensitive: bool = False


@dataclass(frozen=True)
class LineMatch:
    line: int
    content: str


@dataclass
class SearchMatch:
    file: str
    matches: List[LineMatch] = field(default_factory=list)


def _wanted(name: str, options: SearchOptions) -> bool:
    if options.file_extensions is not None:
        if os.path.splitext(name)[1] not in options.file_extensions:
            return False
    if options.restrict_to_basename is not None and name != options.restrict_to_basename:
        return False
    return True


def _match_file(path: str, needle: str, options: SearchOptions) -> Optional[SearchMatch]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        LOG.warning("Could not read file: %s (%s)", path, e)
        return None

    term = needle if options.case_sensitive else needle.lower()
    haystack = content if options.case_sensitive else content.lower()
    if term not in haystack:
        return None

    result = SearchMatch(file=path)
    if options.show_line_numbers:
        for idx, line in enumerate(content.split("\n"), start=1):
            check = line if options.case_sensitive else line.lower()
            if term in check:
                result.matches.append(LineMatch(line=idx, content=line.strip()))
    return result


def search_files_for_string(
    directory: str,
    needle: str,
    options: Optional[SearchOptions] = None,
) -> List[SearchMatch]:
    """Return every file under ``directory`` whose content contains ``needle``.

    Entries are visited in the order the filesystem lists them. Files that
    cannot be read as UTF-8 text are skipped with a warning and a directory
    that cannot be listed contributes nothing; neither stops the search.
    An empty list means no file matched.
    """
    options = options or SearchOptions()
    results: List[SearchMatch] = []

    def _search_dir(current: str) -> None:
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            LOG.error("Error reading directory %s: %s", current, e)
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError as e:
                LOG.warning("Could not stat entry: %s (%s)", entry.path, e)
                continue

            if is_dir:
                if options.recursive:
                    _search_dir(entry.path)
                continue
            if not is_file or not _wanted(entry.name, options):
                continue

            match = _match_file(entry.path, needle, options)
            if match is not None:
                results.append(match)

    _search_dir(directory)
    return results


def display_results(results: List[SearchMatch], needle: str) -> None:
    if not results:
        print(f'\nNo files found containing "{needle}"\n')
        return

    print(f'\nFound "{needle}" in {len(results)} file(s):\n')
    for result in results:
        print(f"- {result.file}")
        for match in result.matches:
            print(f"   Line {match.line}: {match.content}")
        print()
