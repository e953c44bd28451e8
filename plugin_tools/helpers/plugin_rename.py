"""Disable standalone plugin files by renaming them.

A standalone plugin is disabled when its file name carries the marker token
right before the extension (``site.ts`` -> ``site.broken.ts``). The plugin
loader skips those files, so the filename is the only place the state lives.
``is_disabled`` is the single reader of that encoding.
"""

import logging
import os
import re

LOG = logging.getLogger("plugin_rename")

BROKEN_MARKER = ".broken"

# Generated plugins carry their template in brackets: "novelsite[madara].ts".
GENERATED_STEM_RX = re.compile(r"\[[^\[\]]*\]$")


def _split(name: str):
    base = os.path.basename(name)
    stem, ext = os.path.splitext(base)
    return stem, ext


def is_disabled(name: str, marker: str = BROKEN_MARKER) -> bool:
    stem, _ = _split(name)
    return marker in stem


def is_generated(name: str) -> bool:
    stem, _ = _split(name)
    return bool(GENERATED_STEM_RX.search(stem))


def disabled_name(name: str, marker: str = BROKEN_MARKER) -> str:
    stem, ext = _split(name)
    return f"{stem}{marker}{ext}"


def rename_plugin_file(path: str, marker: str = BROKEN_MARKER, dry_run: bool = False) -> bool:
    """Rename ``path`` to its disabled name.

    Returns True when the file is disabled afterwards (including when it
    already was), False when the file must not or could not be renamed.
    Generated plugins are never renamed: regeneration would bring them back
    without the marker.
    """
    base = os.path.basename(path)

    if is_generated(base):
        LOG.warning("Skipping generated plugin: %s", path)
        return False
    if is_disabled(base, marker):
        LOG.info("Already disabled: %s", base)
        return True

    new_name = disabled_name(base, marker)
    new_path = os.path.join(os.path.dirname(path), new_name)

    if dry_run:
        LOG.info("[dry-run] Would rename: %s -> %s", base, new_name)
        return True

    if os.path.exists(new_path):
        LOG.error("Cannot rename %s: %s already exists", path, new_name)
        return False

    try:
        os.rename(path, new_path)
    except OSError as e:
        LOG.error("Error renaming %s: %s", path, e)
        return False

    LOG.info("Successfully renamed: %s -> %s", base, new_name)
    return True
