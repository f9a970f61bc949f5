"""Tests for snapshot validation."""

import json

from conftest import NOW
from fetch_plugins import build_snapshot, write_snapshot
from models import PluginsData
from validate_snapshot import check_snapshot, load_snapshot, main


def scored(make_plugin, **overrides):
    fields = {"payload_version_major": [3], "health_score": 50}
    fields.update(overrides)
    return make_plugin(**fields)


def test_clean_snapshot_has_no_issues(make_plugin):
    data = build_snapshot(
        [scored(make_plugin, id="a", stars=3), scored(make_plugin, id="b", stars=1)],
        generated_at=NOW,
    )
    assert check_snapshot(data) == []


def test_duplicate_ids(make_plugin):
    data = build_snapshot(
        [scored(make_plugin, id="a"), scored(make_plugin, id="a")], generated_at=NOW
    )
    assert check_snapshot(data) == ["ERROR: Duplicate plugin id 'a' (2 times)"]


def test_total_count_mismatch(make_plugin):
    data = PluginsData(last_updated=NOW, total_count=5, plugins=[scored(make_plugin)])
    issues = check_snapshot(data)
    assert issues == ["ERROR: totalCount is 5 but snapshot has 1 plugins"]


def test_community_shadowing_official(make_plugin):
    data = build_snapshot(
        [
            scored(make_plugin, id="official-plugin-seo", package_name="@payloadcms/plugin-seo"),
            scored(make_plugin, id="7-root", package_name="@PayloadCMS/plugin-seo"),
        ],
        generated_at=NOW,
    )
    issues = check_snapshot(data)
    assert len(issues) == 1
    assert issues[0].startswith("ERROR: Community plugin '7-root' shadows")


def test_warnings(make_plugin):
    data = PluginsData(
        last_updated=NOW,
        total_count=2,
        plugins=[
            scored(make_plugin, id="a", stars=1, payload_version_major=[0]),
            scored(make_plugin, id="b", stars=9, health_score=None),
        ],
    )
    assert check_snapshot(data) == [
        "WARNING: Plugins are not sorted by stars",
        "WARNING: Plugin 'a' has unknown Payload version",
        "WARNING: Plugin 'b' has no health score",
    ]


def test_load_snapshot_round_trips_written_file(tmp_path, make_plugin):
    path = write_snapshot(
        build_snapshot([scored(make_plugin, package_name="x")], generated_at=NOW),
        tmp_path / "plugins.json",
    )

    data = load_snapshot(path)

    assert data.total_count == 1
    assert data.plugins[0].package_name == "x"
    assert data.last_updated == NOW


def test_main_exit_codes(tmp_path, make_plugin):
    good = write_snapshot(
        build_snapshot([scored(make_plugin)], generated_at=NOW), tmp_path / "good.json"
    )
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"lastUpdated": "2025-06-01T00:00:00Z", "totalCount": 1}))
    broken = tmp_path / "broken.json"
    broken.write_text("{ not json")

    assert main(["--input", str(good)]) == 0
    assert main(["--input", str(bad)]) == 1
    assert main(["--input", str(broken)]) == 1
    assert main(["--input", str(tmp_path / "missing.json")]) == 1
