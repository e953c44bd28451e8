"""Mark multi-source entries as down inside a shared ``sources.json``.

A ``sources.json`` is a JSON array; each element describes one site served
by a shared plugin template::

    [
      {
        "id": "somesite",
        "sourceSite": "https://somesite.com",
        "sourceName": "Some Site",
        "options": {"lang": "English", "down": true, "downSince": 1712345678901}
      }
    ]

Only ``options.down`` and ``options.downSince`` are ever touched.
"""

import json
import logging
import shutil
import time
from typing import Optional, Set

from plugin_tools.helpers.json_io import dump_json, load_json, make_backup_path

LOG = logging.getLogger("multisrc")


def _now_ms() -> int:
    return int(time.time() * 1000)


def mark_multisrc_down(
    config_path: str,
    url: str,
    now_ms: Optional[int] = None,
    dry_run: bool = False,
    backup: bool = False,
    backed_up: Optional[Set[str]] = None,
) -> bool:
    """Set ``options.down`` on the entry whose ``sourceSite`` equals ``url``.

    With ``backup`` the file is copied aside before it is rewritten. Paths
    listed in ``backed_up`` are not copied again, and freshly backed-up paths
    are added to it, so a run keeps one backup of the original document per file.

    Returns True if the entry is down afterwards, False if the file holds no
    such entry or could not be read or written. An entry that is already
    down is left alone and the file is not rewritten, so ``downSince`` keeps
    its original value. Only the first matching entry is patched.
    """
    try:
        data = load_json(config_path)
    except (OSError, json.JSONDecodeError) as e:
        LOG.error("Could not load %s: %s", config_path, e)
        return False

    if not isinstance(data, list):
        LOG.error("%s format invalid: expected a list of sources.", config_path)
        return False

    source = None
    for entry in data:
        if isinstance(entry, dict) and entry.get("sourceSite") == url:
            source = entry
            break

    if source is None:
        LOG.warning("No sourceSite entry equal to %s in %s", url, config_path)
        return False

    options = source.get("options")
    if isinstance(options, dict) and options.get("down") is True:
        LOG.info("Already down: %s in %s", url, config_path)
        return True

    if dry_run:
        LOG.info("[dry-run] Would mark %s down in %s", url, config_path)
        return True

    if not isinstance(options, dict):
        options = {}
        source["options"] = options
    options["down"] = True
    options["downSince"] = now_ms if now_ms is not None else _now_ms()

    try:
        if backup and (backed_up is None or config_path not in backed_up):
            backup_path = make_backup_path(config_path)
            shutil.copy2(config_path, backup_path)
            if backed_up is not None:
                backed_up.add(config_path)
            LOG.trace("Backup of %s written to: %s", config_path, backup_path)
        dump_json(config_path, data)
    except OSError as e:
        LOG.error("Error rewriting %s: %s", config_path, e)
        return False

    LOG.info("Successfully rewrote: %s for %s", config_path, url)
    return True
