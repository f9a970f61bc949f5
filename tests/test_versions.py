"""Tests for version range parsing and dependency resolution."""

import pytest

from models import UNKNOWN_MAJOR, Manifest
from versions import detect_major_versions, parse_major_versions, resolve_dependency_version


@pytest.mark.parametrize(
    "version_range, expected",
    [
        ("^2.0.13", [2]),
        ("3.0.0-beta.130", [3]),
        ("2.0.13 || 3.1.0", [2, 3]),
        ("^3.2.0", [3]),
        ("~1.4.2", [1]),
        (">=2.0.0", [2]),
        ("3.0.0", [3]),
        ("^1.0.0 || ^2.0.0 || ^3.0.0", [1, 2, 3]),
        ("^3.1.0 || ^2.5.0", [2, 3]),
        ("^2.1.0 || ^2.3.0", [2]),
        ("4", [4]),
    ],
)
def test_parse_major_versions(version_range, expected):
    assert parse_major_versions(version_range) == expected


@pytest.mark.parametrize(
    "version_range",
    ["3.0.0-beta.130", "^2.0.0-BETA.1", "1.0.0-Beta || ^2.0.0", "beta"],
)
def test_beta_ranges_pin_to_major_three(version_range):
    assert parse_major_versions(version_range) == [3]


@pytest.mark.parametrize("version_range", ["latest", "*", "workspace:*", "", "x.y"])
def test_unparseable_ranges_yield_empty(version_range):
    assert parse_major_versions(version_range) == []


def test_output_sorted_and_deduplicated():
    result = parse_major_versions("^3.0.0 || 1.2.3 || ^3.4.0 || 2.x || 1.0.0")
    assert result == sorted(set(result))
    assert result == [1, 2, 3]


def test_detect_major_versions_defaults_to_unknown():
    assert detect_major_versions(None) == [UNKNOWN_MAJOR]
    assert detect_major_versions("workspace:*") == [UNKNOWN_MAJOR]
    assert detect_major_versions("^2.0.0") == [2]


def test_detect_major_versions_custom_default():
    assert detect_major_versions(None, default=3) == [3]


def test_resolve_prefers_peer_dependencies():
    manifest = Manifest.model_validate(
        {
            "peerDependencies": {"payload": "^3.0.0"},
            "dependencies": {"payload": "^2.0.0"},
            "devDependencies": {"payload": "^1.0.0"},
        }
    )
    assert resolve_dependency_version(manifest) == "^3.0.0"


def test_resolve_falls_back_to_runtime_then_dev():
    runtime = Manifest.model_validate(
        {"dependencies": {"payload": "^2.0.0"}, "devDependencies": {"payload": "^1.0.0"}}
    )
    dev = Manifest.model_validate({"devDependencies": {"payload": "^1.0.0"}})

    assert resolve_dependency_version(runtime) == "^2.0.0"
    assert resolve_dependency_version(dev) == "^1.0.0"


def test_resolve_returns_none_when_absent():
    manifest = Manifest.model_validate({"name": "x", "dependencies": {"react": "^18"}})
    assert resolve_dependency_version(manifest) is None


def test_resolve_other_dependency():
    manifest = Manifest.model_validate({"peerDependencies": {"next": "^15.0.0"}})
    assert resolve_dependency_version(manifest, "next") == "^15.0.0"


def test_manifest_ignores_malformed_fields():
    manifest = Manifest.model_validate(
        {
            "name": {"not": "a string"},
            "dependencies": ["payload"],
            "peerDependencies": {"payload": 3, "react": "^18"},
        }
    )
    assert manifest.name is None
    assert manifest.dependencies == {}
    assert resolve_dependency_version(manifest) is None
