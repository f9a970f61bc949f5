#!/usr/bin/env python3
"""
Validate the plugin directory snapshot (data/plugins.json).

Checks for:
- Snapshot that does not match the expected shape
- Duplicate plugin ids
- Empty version sets
- Community plugins shadowing an official package name
- totalCount that disagrees with the plugin list
- Warnings for plugins with an unknown Payload version
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

from models import PluginsData

DEFAULT_INPUT = Path(__file__).parent.parent / "data" / "plugins.json"


def load_snapshot(file_path: Path) -> PluginsData:
    """Load and validate a snapshot file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If it is not valid JSON or not a valid snapshot.
    """
    with open(file_path, encoding="utf-8") as f:
        return PluginsData.model_validate(json.load(f))


def check_snapshot(data: PluginsData) -> list[str]:
    """Return validation issues, each prefixed with its severity."""
    issues = []

    if data.total_count != len(data.plugins):
        issues.append(
            f"ERROR: totalCount is {data.total_count} but snapshot has "
            f"{len(data.plugins)} plugins"
        )

    id_counts = Counter(plugin.id for plugin in data.plugins)
    for plugin_id, count in sorted(id_counts.items()):
        if count > 1:
            issues.append(f"ERROR: Duplicate plugin id '{plugin_id}' ({count} times)")

    official_names = {
        p.package_name.lower()
        for p in data.plugins
        if p.id.startswith("official-") and p.package_name
    }
    for plugin in data.plugins:
        if plugin.id.startswith("official-") or not plugin.package_name:
            continue
        if plugin.package_name.lower() in official_names:
            issues.append(
                f"ERROR: Community plugin '{plugin.id}' shadows official "
                f"package '{plugin.package_name}'"
            )

    stars = [plugin.stars for plugin in data.plugins]
    if stars != sorted(stars, reverse=True):
        issues.append("WARNING: Plugins are not sorted by stars")

    for plugin in data.plugins:
        if plugin.version_unknown:
            issues.append(f"WARNING: Plugin '{plugin.id}' has unknown Payload version")
        if plugin.health_score is None:
            issues.append(f"WARNING: Plugin '{plugin.id}' has no health score")

    return issues


def print_report(data: PluginsData, issues: list[str]) -> int:
    """Print validation report and return exit code."""
    print("\n" + "=" * 70)
    print("Plugin Snapshot Validation Report")
    print("=" * 70 + "\n")

    errors = [i for i in issues if i.startswith("ERROR")]
    warnings = [i for i in issues if i.startswith("WARNING")]

    if errors:
        print("ERRORS:")
        for error in errors:
            print(f"  ✗ {error}")
        print()

    if warnings:
        print("WARNINGS:")
        for warning in warnings:
            print(f"  ⚠ {warning}")
        print()

    print("Summary Statistics:")
    print(f"  Generated: {data.last_updated.isoformat()}")
    print(f"  Total plugins: {len(data.plugins)}")
    print(f"  Official: {sum(1 for p in data.plugins if p.is_official)}")
    print(f"  With npm data: {sum(1 for p in data.plugins if p.npm)}")
    print(f"  Unknown version: {sum(1 for p in data.plugins if p.version_unknown)}")

    print("\n" + "=" * 70)

    if errors:
        print("Status: FAILED (fix errors above)")
        return 1
    elif warnings:
        print("Status: PASSED WITH WARNINGS (review warnings above)")
        return 0
    else:
        print("Status: PASSED")
        return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate the plugin snapshot")
    parser.add_argument(
        "--input",
        type=Path,
        default=DEFAULT_INPUT,
        help=f"Snapshot file to validate (default: {DEFAULT_INPUT})",
    )
    args = parser.parse_args(argv)

    if not args.input.exists():
        print(f"ERROR: Snapshot file not found: {args.input}")
        return 1

    print(f"Validating: {args.input}")

    try:
        data = load_snapshot(args.input)
    except ValueError as e:
        print(f"ERROR: Invalid snapshot: {e}")
        return 1

    return print_report(data, check_snapshot(data))


if __name__ == "__main__":
    sys.exit(main())
