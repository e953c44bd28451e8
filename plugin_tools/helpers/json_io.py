import contextlib
import datetime
import json
import os
from typing import Any


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def dump_json(path: str, data: Any) -> None:
    """Write ``data`` with two-space indentation and a trailing newline.

    The document goes to a sibling temp file first and is swapped in with
    ``os.replace`` so a failed write never leaves a truncated file behind.
    """
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(tmp)
        raise


def make_backup_path(path: str) -> str:
    """Return a timestamped backup path next to ``path`` that does not exist yet."""
    base_dir = os.path.dirname(path)
    base_name = os.path.basename(path)
    ts = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    candidate = os.path.join(base_dir, f"{base_name}.backup-{ts}")
    n = 1
    while os.path.exists(candidate):
        candidate = os.path.join(base_dir, f"{base_name}.backup-{ts}-{n}")
        n += 1
    return candidate
