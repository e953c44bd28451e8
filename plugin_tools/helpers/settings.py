"""
Environment-driven settings for the plugin maintenance tools.

Every path can be overridden from the command line; the environment only
supplies defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_REPORT_NAME = "broken-sites-report.json"
DEFAULT_MISSED_REPORT_NAME = "missed-sites-report.json"
DEFAULT_PLUGINS_DIR_NAME = "plugins"
DEFAULT_MULTISRC_DIR_NAME = "multisrc"
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class Settings:
    repo_root: str
    report: str
    missed_report: str
    plugins_dir: str
    multisrc_dir: str
    http_timeout_seconds: float


def _get_str_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _abspath(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def load_settings(
    repo_root: Optional[str] = None,
    report: Optional[str] = None,
    missed_report: Optional[str] = None,
    plugins_dir: Optional[str] = None,
    multisrc_dir: Optional[str] = None,
) -> Settings:
    """Resolve settings: explicit argument, then environment, then default."""

    root = _abspath(repo_root or _get_str_env("PLUGIN_TOOLS_REPO_ROOT") or os.getcwd())

    report = report or _get_str_env("PLUGIN_TOOLS_REPORT") or os.path.join(root, DEFAULT_REPORT_NAME)
    # Report URLs are fetched as-is.
    if not report.startswith(("http://", "https://")):
        report = _abspath(report)

    missed_report = _abspath(
        missed_report
        or _get_str_env("PLUGIN_TOOLS_MISSED_REPORT")
        or os.path.join(root, DEFAULT_MISSED_REPORT_NAME)
    )
    plugins_dir = _abspath(
        plugins_dir
        or _get_str_env("PLUGIN_TOOLS_PLUGINS_DIR")
        or os.path.join(root, DEFAULT_PLUGINS_DIR_NAME)
    )
    multisrc_dir = _abspath(
        multisrc_dir
        or _get_str_env("PLUGIN_TOOLS_MULTISRC_DIR")
        or os.path.join(plugins_dir, DEFAULT_MULTISRC_DIR_NAME)
    )

    return Settings(
        repo_root=root,
        report=report,
        missed_report=missed_report,
        plugins_dir=plugins_dir,
        multisrc_dir=multisrc_dir,
        http_timeout_seconds=max(
            1.0,
            _get_float_env("PLUGIN_TOOLS_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
        ),
    )
