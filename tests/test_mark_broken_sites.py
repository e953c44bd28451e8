import json
import os

import pytest

from plugin_tools.helpers.broken_report import BrokenSiteRecord
from plugin_tools.helpers.languages import LanguageDirectoryMap
from plugin_tools.maintenance.mark_broken_sites import main, reconcile

from conftest import write_json


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("PLUGIN_TOOLS_"):
            monkeypatch.delenv(name)


def _run(repo, sites, **kwargs):
    plugins = repo / "plugins"
    return reconcile(
        sites,
        LanguageDirectoryMap.default(),
        str(plugins),
        str(plugins / "multisrc"),
        **kwargs,
    )


def _sources(repo):
    return json.loads((repo / "plugins" / "multisrc" / "madara" / "sources.json").read_text(encoding="utf-8"))


def _english(repo):
    return sorted(os.listdir(repo / "plugins" / "english"))


def test_standalone_plugin_is_renamed(plugin_repo):
    site = BrokenSiteRecord("en", "https://example.com/a")
    result = _run(plugin_repo, [site])

    assert result.resolved_standalone == [site]
    assert result.missed == []
    assert _english(plugin_repo) == ["a.broken.ts", "b.ts", "gen[madara].ts"]


def test_already_renamed_plugin_counts_as_resolved(plugin_repo):
    english = plugin_repo / "plugins" / "english"
    os.rename(english / "a.ts", english / "a.broken.ts")

    result = _run(plugin_repo, [BrokenSiteRecord("en", "https://example.com/a")])
    assert len(result.resolved_standalone) == 1
    assert _english(plugin_repo) == ["a.broken.ts", "b.ts", "gen[madara].ts"]


def test_unknown_language_goes_to_missed(plugin_repo):
    site = BrokenSiteRecord("xx", "https://example.com/a")
    result = _run(plugin_repo, [site])

    assert result.missed == [site]
    assert _english(plugin_repo) == ["a.ts", "b.ts", "gen[madara].ts"]


def test_multisrc_fallback_marks_source_down(plugin_repo):
    site = BrokenSiteRecord("en", "https://multi.example.com")
    result = _run(plugin_repo, [site])

    assert result.resolved_multisrc == [site]
    entry = _sources(plugin_repo)[0]
    assert entry["options"]["down"] is True
    assert isinstance(entry["options"]["downSince"], int)


def test_multisrc_already_down_leaves_file_untouched(plugin_repo):
    path = plugin_repo / "plugins" / "multisrc" / "madara" / "sources.json"
    before = path.read_bytes()

    result = _run(plugin_repo, [BrokenSiteRecord("en", "https://down.example.com")])
    assert len(result.resolved_multisrc) == 1
    assert path.read_bytes() == before


def test_generated_plugin_is_left_alone_and_missed(plugin_repo):
    site = BrokenSiteRecord("en", "https://generated.example.com")
    result = _run(plugin_repo, [site])

    assert result.missed == [site]
    assert "gen[madara].ts" in _english(plugin_repo)


def test_substring_hit_without_exact_source_is_missed(plugin_repo):
    path = plugin_repo / "plugins" / "multisrc" / "madara" / "sources.json"
    before = path.read_bytes()

    site = BrokenSiteRecord("en", "https://multi.example")
    result = _run(plugin_repo, [site])
    assert result.missed == [site]
    assert path.read_bytes() == before


def test_failed_rename_falls_back_then_misses(plugin_repo, monkeypatch):
    def _boom(src, dst):
        raise PermissionError("denied")

    monkeypatch.setattr(os, "rename", _boom)
    site = BrokenSiteRecord("en", "https://example.com/a")
    result = _run(plugin_repo, [site])

    assert result.resolved_standalone == []
    assert result.missed == [site]


def test_every_site_lands_in_exactly_one_bucket_in_report_order(plugin_repo):
    sites = [
        BrokenSiteRecord("en", "https://nowhere.example.org"),
        BrokenSiteRecord("en", "https://example.com/a"),
        BrokenSiteRecord("xx", "https://unknown-lang.example.org"),
        BrokenSiteRecord("en", "https://multi.example.com"),
        BrokenSiteRecord("en", "https://generated.example.com"),
        BrokenSiteRecord("en", "https://example.com/b"),
    ]
    result = _run(plugin_repo, sites)

    assert result.total == len(sites)
    assert result.resolved_standalone == [sites[1], sites[5]]
    assert result.resolved_multisrc == [sites[3]]
    assert result.missed == [sites[0], sites[2], sites[4]]
    assert len(result.missed) == result.total - result.resolved


def test_dry_run_changes_nothing(plugin_repo):
    sources = plugin_repo / "plugins" / "multisrc" / "madara" / "sources.json"
    before = sources.read_bytes()

    result = _run(
        plugin_repo,
        [BrokenSiteRecord("en", "https://example.com/a"), BrokenSiteRecord("en", "https://multi.example.com")],
        dry_run=True,
    )
    assert len(result.resolved_standalone) == 1
    assert len(result.resolved_multisrc) == 1
    assert _english(plugin_repo) == ["a.ts", "b.ts", "gen[madara].ts"]
    assert sources.read_bytes() == before


def test_fixture_language_map(tmp_path):
    (tmp_path / "plugins" / "klingon").mkdir(parents=True)
    (tmp_path / "plugins" / "klingon" / "qapla.ts").write_text("site = 'https://qapla.example'", encoding="utf-8")

    result = reconcile(
        [BrokenSiteRecord("tlh", "https://qapla.example")],
        LanguageDirectoryMap.from_table({"Klingon": "tlh"}),
        str(tmp_path / "plugins"),
        str(tmp_path / "plugins" / "multisrc"),
    )
    assert len(result.resolved_standalone) == 1
    assert (tmp_path / "plugins" / "klingon" / "qapla.broken.ts").exists()


def test_backup_keeps_one_pristine_copy_per_file(tmp_path):
    sources = write_json(
        tmp_path / "plugins" / "multisrc" / "madara" / "sources.json",
        [{"sourceSite": "https://one.com"}, {"sourceSite": "https://two.com"}],
    )
    (tmp_path / "plugins" / "english").mkdir(parents=True)
    before = sources.read_bytes()

    result = _run(
        tmp_path,
        [BrokenSiteRecord("en", "https://one.com"), BrokenSiteRecord("en", "https://two.com")],
        backup=True,
    )

    assert len(result.resolved_multisrc) == 2
    backups = list(sources.parent.glob("sources.json.backup-*"))
    assert len(backups) == 1
    assert backups[0].read_bytes() == before


def test_url_in_two_sources_files_with_one_exact_entry_is_missed_once(plugin_repo):
    write_json(
        plugin_repo / "plugins" / "multisrc" / "lightnovelwp" / "sources.json",
        [{"sourceSite": "https://multi.example.com/novels"}],
    )
    site = BrokenSiteRecord("en", "https://multi.example.com")

    result = _run(plugin_repo, [site])

    assert result.missed == [site]
    assert result.resolved_multisrc == []
    assert _sources(plugin_repo)[0]["options"]["down"] is True


# ----------------------------
# Command line
# ----------------------------


def _report(repo, sites):
    return write_json(repo / "broken-sites-report.json", {"brokenSites": sites})


def test_main_end_to_end(plugin_repo, capsys):
    _report(
        plugin_repo,
        [
            {"lang": "en", "url": "https://example.com/a"},
            {"lang": "en", "url": "https://nowhere.example.org"},
        ],
    )

    assert main(["--repo-root", str(plugin_repo), "--quiet"]) == 0

    assert "a.broken.ts" in _english(plugin_repo)
    missed = json.loads((plugin_repo / "missed-sites-report.json").read_text(encoding="utf-8"))
    assert missed["total"] == 1
    assert missed["brokenSites"] == [{"lang": "en", "url": "https://nowhere.example.org"}]
    assert missed["timestamp"].endswith("Z")

    out = capsys.readouterr().out
    assert "Missed:                    1" in out
    assert "Detailed report saved to:" in out


def test_main_writes_empty_missed_report_when_everything_resolves(plugin_repo, capsys):
    _report(plugin_repo, [{"lang": "en", "url": "https://example.com/b"}])
    write_json(plugin_repo / "missed-sites-report.json", {"timestamp": "old", "total": 5, "brokenSites": []})

    assert main(["--repo-root", str(plugin_repo), "--quiet"]) == 0
    missed = json.loads((plugin_repo / "missed-sites-report.json").read_text(encoding="utf-8"))
    assert missed["total"] == 0
    assert "All sites marked!" in capsys.readouterr().out


def test_main_missing_report_exits_nonzero(plugin_repo):
    assert main(["--repo-root", str(plugin_repo), "--quiet"]) == 1
    assert not (plugin_repo / "missed-sites-report.json").exists()


def test_main_malformed_report_exits_nonzero(plugin_repo):
    (plugin_repo / "broken-sites-report.json").write_text('{"brokenSites": [', encoding="utf-8")
    assert main(["--repo-root", str(plugin_repo), "--quiet"]) == 1
    assert _english(plugin_repo) == ["a.ts", "b.ts", "gen[madara].ts"]
    assert not (plugin_repo / "missed-sites-report.json").exists()


def test_main_report_only_writes_nothing(plugin_repo):
    _report(plugin_repo, [{"lang": "en", "url": "https://example.com/a"}, {"lang": "xx", "url": "https://x.org"}])

    assert main(["--repo-root", str(plugin_repo), "--report-only", "--quiet"]) == 0
    assert _english(plugin_repo) == ["a.ts", "b.ts", "gen[madara].ts"]
    assert not (plugin_repo / "missed-sites-report.json").exists()


def test_main_explicit_paths_and_env(plugin_repo, tmp_path, monkeypatch):
    report = write_json(tmp_path / "in" / "report.json", {"brokenSites": [{"lang": "en", "url": "https://x.org"}]})
    out = tmp_path / "out" / "missed.json"
    out.parent.mkdir()
    monkeypatch.setenv("PLUGIN_TOOLS_PLUGINS_DIR", str(plugin_repo / "plugins"))

    assert main(["--report", str(report), "--missed-report", str(out), "--quiet"]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["total"] == 1


def test_main_bad_language_table_exits_nonzero(plugin_repo, tmp_path):
    _report(plugin_repo, [{"lang": "en", "url": "https://example.com/a"}])
    table = tmp_path / "languages.json"
    table.write_text('["en"]', encoding="utf-8")

    assert main(["--repo-root", str(plugin_repo), "--languages", str(table), "--quiet"]) == 1
    assert "a.ts" in _english(plugin_repo)


def test_main_show_matches_prints_lines(plugin_repo, capsys):
    _report(plugin_repo, [{"lang": "en", "url": "https://example.com/a"}])
    assert main(["--repo-root", str(plugin_repo), "--show-matches", "--report-only", "--quiet"]) == 0
    assert "Line 2: site = 'https://example.com/a';" in capsys.readouterr().out
