import json
import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def plugin_repo(tmp_path):
    """A small plugin repository on disk.

    plugins/english/a.ts            -> https://example.com/a
    plugins/english/b.ts            -> https://example.com/b
    plugins/english/gen[madara].ts  -> https://generated.example.com
    plugins/multisrc/madara/sources.json
        -> https://multi.example.com (up), https://down.example.com (down)
    """
    plugins = tmp_path / "plugins"
    english = plugins / "english"
    english.mkdir(parents=True)
    (english / "a.ts").write_text("class A {\n  site = 'https://example.com/a';\n}\n", encoding="utf-8")
    (english / "b.ts").write_text("class B {\n  site = 'https://example.com/b';\n}\n", encoding="utf-8")
    (english / "gen[madara].ts").write_text("export default { site: 'https://generated.example.com' };\n", encoding="utf-8")

    write_json(
        plugins / "multisrc" / "madara" / "sources.json",
        [
            {"id": "multi", "sourceSite": "https://multi.example.com", "sourceName": "Multi"},
            {
                "id": "down",
                "sourceSite": "https://down.example.com",
                "sourceName": "Down",
                "options": {"lang": "English", "down": True, "downSince": 1700000000000},
            },
        ],
    )
    return tmp_path
