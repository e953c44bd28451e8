"""Read the broken-sites report and write the missed-sites report.

Input (``broken-sites-report.json``)::

    {"brokenSites": [{"lang": "en", "url": "https://example.com"}, ...]}

Output (``missed-sites-report.json``)::

    {"timestamp": "2026-01-01T00:00:00.000Z", "total": 1, "brokenSites": [...]}
"""

from __future__ import annotations

import warnings

# Suppress the LibreSSL/OpenSSL compatibility warning from urllib3 v2
warnings.filterwarnings(
    "ignore",
    message="urllib3 v2 only supports OpenSSL 1.1.1+",
    module="urllib3",
)

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from plugin_tools.helpers.json_io import dump_json

LOG = logging.getLogger("broken_report")


class BrokenReportError(ValueError):
    """The broken-sites report is missing or malformed."""


@dataclass(frozen=True)
class BrokenSiteRecord:
    lang: str
    url: str
    # Entry exactly as it appeared in the report.
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        if self.raw:
            return dict(self.raw)
        return {"lang": self.lang, "url": self.url}


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _fetch_report(url: str, timeout: float) -> Any:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.RequestException as e:
        raise BrokenReportError(f"Could not fetch broken-sites report from {url}: {e}") from e
    except ValueError as e:
        raise BrokenReportError(f"Broken-sites report at {url} is not valid JSON: {e}") from e


def _read_report(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise BrokenReportError(f"Broken-sites report not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise BrokenReportError(f"Could not read broken-sites report {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise BrokenReportError(f"Failed to parse broken-sites report {path}: {e}") from e


def parse_broken_sites(data: Any, source: str = "<report>") -> List[BrokenSiteRecord]:
    if not isinstance(data, dict):
        raise BrokenReportError(f"{source} format invalid: expected an object with a 'brokenSites' array.")
    sites = data.get("brokenSites")
    if not isinstance(sites, list):
        raise BrokenReportError(f"{source} format invalid: 'brokenSites' must be a list.")

    records: List[BrokenSiteRecord] = []
    for idx, entry in enumerate(sites):
        if not isinstance(entry, dict):
            raise BrokenReportError(f"{source}: brokenSites[{idx}] is not an object.")
        lang = entry.get("lang")
        url = entry.get("url")
        if not isinstance(lang, str) or not lang.strip():
            raise BrokenReportError(f"{source}: brokenSites[{idx}] has no 'lang'.")
        if not isinstance(url, str) or not url.strip():
            raise BrokenReportError(f"{source}: brokenSites[{idx}] has no 'url'.")
        records.append(BrokenSiteRecord(lang=lang.strip(), url=url.strip(), raw=dict(entry)))
    return records


def load_broken_sites(location: str, timeout: float = 15.0) -> List[BrokenSiteRecord]:
    """Load the report from a file path or an http(s) URL, keeping input order.

    Raises BrokenReportError for anything short of a well-formed report; there
    is no partial load.
    """
    if is_url(location):
        LOG.trace("Fetching broken-sites report from %s", location)
        data = _fetch_report(location, timeout)
    else:
        data = _read_report(location)
    return parse_broken_sites(data, source=location)


def _iso_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def write_missed_report(
    path: str,
    records: Sequence[BrokenSiteRecord],
    now: Optional[datetime] = None,
) -> str:
    """Overwrite ``path`` with the records that could not be resolved."""
    payload = {
        "timestamp": _iso_timestamp(now),
        "total": len(records),
        "brokenSites": [r.to_dict() for r in records],
    }
    dump_json(path, payload)
    return path
