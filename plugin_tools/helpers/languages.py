"""Language code <-> plugin directory lookup.

Plugins live in one directory per language, named after the lower-cased
display name of the language (``plugins/english``, ``plugins/arabic``...).
Broken-site reports only carry the short language code, so the table below
is inverted once at startup into a :class:`LanguageDirectoryMap` that is
handed to whoever needs it.
"""

from __future__ import annotations

import json
from typing import Dict, Mapping, Optional

# Display name -> language code, as declared by the plugins.
LANGUAGES: Dict[str, str] = {
    "Arabic": "ar",
    "Chinese": "zh",
    "English": "en",
    "French": "fr",
    "German": "de",
    "Indonesian": "id",
    "Italian": "it",
    "Japanese": "ja",
    "Korean": "ko",
    "Multi": "multi",
    "Polish": "pl",
    "Portuguese": "pt",
    "Russian": "ru",
    "Spanish": "es",
    "Thai": "th",
    "Turkish": "tr",
    "Ukrainian": "uk",
    "Vietnamese": "vi",
}


class LanguageTableError(ValueError):
    """Raised when a language table cannot be used to build the lookup."""


def _norm_code(code: str) -> str:
    return code.strip().lower()


class LanguageDirectoryMap:
    """Read-only, bidirectional mapping between language codes and directories."""

    def __init__(self, code_to_dir: Mapping[str, str]) -> None:
        self._code_to_dir: Dict[str, str] = {}
        self._dir_to_code: Dict[str, str] = {}
        for code, directory in code_to_dir.items():
            key = _norm_code(code)
            if key in self._code_to_dir:
                raise LanguageTableError(f"Duplicate language code in table: {code!r}")
            self._code_to_dir[key] = directory
            self._dir_to_code[directory] = key

    @classmethod
    def from_table(cls, table: Mapping[str, str]) -> "LanguageDirectoryMap":
        """Invert a ``{display name: code}`` table; directories are lower-cased names."""
        code_to_dir: Dict[str, str] = {}
        for name, code in table.items():
            if not isinstance(name, str) or not isinstance(code, str) or not name.strip() or not code.strip():
                raise LanguageTableError(f"Invalid language table entry: {name!r} -> {code!r}")
            if code in code_to_dir:
                raise LanguageTableError(f"Duplicate language code in table: {code!r}")
            code_to_dir[code] = name.strip().lower()
        return cls(code_to_dir)

    @classmethod
    def from_json(cls, path: str) -> "LanguageDirectoryMap":
        try:
            with open(path, "r", encoding="utf-8") as f:
                table = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LanguageTableError(f"Could not load language table {path}: {e}") from e
        if not isinstance(table, dict):
            raise LanguageTableError(f"Language table {path} must be a JSON object of name -> code")
        return cls.from_table(table)

    @classmethod
    def default(cls) -> "LanguageDirectoryMap":
        return cls.from_table(LANGUAGES)

    def directory_for(self, code: str) -> Optional[str]:
        """Return the plugin directory name for ``code``, or None if unknown."""
        if not isinstance(code, str):
            return None
        return self._code_to_dir.get(_norm_code(code))

    def code_for(self, directory: str) -> Optional[str]:
        return self._dir_to_code.get(directory)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and _norm_code(code) in self._code_to_dir

    def __len__(self) -> int:
        return len(self._code_to_dir)
