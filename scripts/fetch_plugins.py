#!/usr/bin/env python3
"""Fetch all Payload CMS plugins and write the directory snapshot.

Finds official plugins in the payloadcms/payload monorepo and community
plugins by GitHub topic, enriches them with npm stats and health scores,
and replaces data/plugins.json.

Usage:
    python fetch_plugins.py                          # Full run
    python fetch_plugins.py --output /tmp/plugins.json
    python fetch_plugins.py --skip-npm --limit 20    # Quick local run

Set GITHUB_TOKEN for the authenticated rate limit (5000 requests/hour
instead of 60).
"""

import argparse
import json
import os
import stat
import sys
import tempfile
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests
from tabulate import tabulate

from collectors.base import ClientConfig, FetchClient, FetchError, get_session
from collectors.community import CommunityCollector
from collectors.github import SEARCH_RESULT_CAP, search_repositories
from collectors.npm import NpmEnricher
from collectors.official import OfficialCollector
from models import Plugin, PluginsData
from scoring import apply_health_scores
from versions import DEFAULT_DEPENDENCY

DEFAULT_OUTPUT = Path(__file__).parent.parent / "data" / "plugins.json"
DEFAULT_TOPIC = "payload-plugin"
TOKEN_VARIABLES = ("GITHUB_TOKEN", "FINE_GRAINED_PERSONAL_ACCESS_TOKEN")
SNAPSHOT_MODE = 0o644


def load_client_config(environ=None) -> ClientConfig:
    """Build the GitHub client configuration from the environment."""
    environ = os.environ if environ is None else environ
    token = next((environ[v] for v in TOKEN_VARIABLES if environ.get(v)), None)

    if token:
        print("Using authenticated GitHub API requests")
    else:
        print(
            "Warning: No GITHUB_TOKEN found - using unauthenticated requests "
            "(lower rate limits)"
        )
    return ClientConfig(token=token)


def merge_plugins(official: list[Plugin], community: list[Plugin]) -> list[Plugin]:
    """Combine official and community plugins.

    A community plugin whose package name matches an official plugin's
    (case-insensitive) is dropped; the official record wins.
    """
    official_names = {
        p.package_name.lower() for p in official if p.package_name
    }
    filtered = [
        p
        for p in community
        if not (p.package_name and p.package_name.lower() in official_names)
    ]
    return official + filtered


def build_snapshot(
    plugins: list[Plugin], generated_at: Optional[datetime] = None
) -> PluginsData:
    """Sort plugins by stars, most first, and wrap them in the snapshot."""
    ordered = sorted(plugins, key=lambda p: p.stars, reverse=True)
    return PluginsData(
        last_updated=generated_at or datetime.now(timezone.utc),
        total_count=len(ordered),
        plugins=ordered,
    )


def write_snapshot(data: PluginsData, output_path: Path) -> Path:
    """Write the snapshot, replacing any previous file in one step.

    The JSON goes to a temporary file next to the target and is renamed
    over it, so readers never see a partial snapshot.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # mkstemp creates 0600 files; carry over the previous mode instead
    mode = (
        stat.S_IMODE(output_path.stat().st_mode)
        if output_path.exists()
        else SNAPSHOT_MODE
    )

    fd, tmp_name = tempfile.mkstemp(
        dir=output_path.parent, prefix=f".{output_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data.to_json(), f, indent=2)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, output_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return output_path


def run_pipeline(
    client: FetchClient,
    session: requests.Session,
    topic: str = DEFAULT_TOPIC,
    dependency: str = DEFAULT_DEPENDENCY,
    max_results: int = SEARCH_RESULT_CAP,
    limit: Optional[int] = None,
    skip_official: bool = False,
    skip_npm: bool = False,
) -> tuple[PluginsData, dict[str, list[str]]]:
    """Run every collection stage and return the snapshot and per-stage errors.

    Raises:
        FetchError: If discovery or the official listing fails.
    """
    errors: dict[str, list[str]] = {}

    official: list[Plugin] = []
    if not skip_official:
        official_collector = OfficialCollector(client, session, dependency=dependency)
        official = official_collector.collect(limit=limit)
        errors[official_collector.source_name] = official_collector.errors
        print(f"Found {len(official)} official plugins from payload monorepo\n")

    repos = search_repositories(client, topic=topic, max_results=max_results)
    community_collector = CommunityCollector(client, session, dependency=dependency)
    community = community_collector.collect(repos, limit=limit)
    errors[community_collector.source_name] = community_collector.errors

    plugins = merge_plugins(official, community)
    print(
        f"\nMerged {len(plugins)} plugins "
        f"({len(official)} official, {len(plugins) - len(official)} community)"
    )

    if not skip_npm:
        enricher = NpmEnricher(session, sleep=client.sleep)
        enricher.enrich(plugins)
        errors["npm"] = enricher.errors

    avg, low, high = apply_health_scores(plugins)
    print(f"Health scores computed: avg={avg}, min={low}, max={high}")

    return build_snapshot(plugins), errors


def print_summary(data: PluginsData, errors: dict[str, list[str]]) -> None:
    """Print version coverage and any per-item errors."""
    versions = Counter(
        major for plugin in data.plugins for major in plugin.payload_version_major
    )
    rows = [
        ["unknown" if major == 0 else f"v{major}", count]
        for major, count in sorted(versions.items())
    ]

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    print(tabulate(rows, headers=["Payload version", "Plugins"], tablefmt="grid"))

    for source_name, source_errors in errors.items():
        if source_errors:
            print(f"  {source_name}: {len(source_errors)} errors")
            for error in source_errors:
                print(f"    - {error}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Fetch Payload CMS plugins and write the directory snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s                              # Full run
    %(prog)s --skip-npm                   # Skip npm enrichment
    %(prog)s --limit 20 --output /tmp/p.json
        """,
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Snapshot file to write (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--topic",
        default=DEFAULT_TOPIC,
        help=f"GitHub topic marking plugins (default: {DEFAULT_TOPIC})",
    )
    parser.add_argument(
        "--dependency",
        default=DEFAULT_DEPENDENCY,
        help=f"Framework package to detect versions of (default: {DEFAULT_DEPENDENCY})",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=SEARCH_RESULT_CAP,
        help=f"Stop repository search after this many results (default: {SEARCH_RESULT_CAP})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Limit repositories and official plugins processed (default: none)",
    )
    parser.add_argument(
        "--skip-official",
        action="store_true",
        help="Do not fetch official plugins from the payload monorepo",
    )
    parser.add_argument(
        "--skip-npm",
        action="store_true",
        help="Do not fetch npm registry stats",
    )

    args = parser.parse_args(argv)

    print("Starting plugin fetch...\n")
    start_time = time.time()

    client = FetchClient(load_client_config())
    session = get_session()

    try:
        data, errors = run_pipeline(
            client,
            session,
            topic=args.topic,
            dependency=args.dependency,
            max_results=args.max_results,
            limit=args.limit,
            skip_official=args.skip_official,
            skip_npm=args.skip_npm,
        )
    except (FetchError, requests.RequestException, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Snapshot not written; the previous file is unchanged.", file=sys.stderr)
        return 1

    output_path = write_snapshot(data, args.output)
    print_summary(data, errors)

    official_count = sum(1 for p in data.plugins if p.id.startswith("official-"))
    elapsed = time.time() - start_time
    print(
        f"\nDone! Found {data.total_count} plugins "
        f"({official_count} official, {data.total_count - official_count} community) "
        f"in {elapsed:.1f}s"
    )
    print(f"Output saved to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
