"""npm registry enrichment: downloads, latest version, size, dependencies."""

import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional
from urllib.parse import quote

import requests

from collectors.base import get_session, run_in_batches
from models import Plugin, RegistryStats

# Names that show up in templated or placeholder manifests. Looking them
# up would attach some unrelated package's stats.
INVALID_PACKAGE_NAMES = {
    "dev", "test", "tests", "example", "examples", "demo", "sample",
    "app", "web", "client", "server", "api", "core", "lib", "utils",
    "config", "docs", "packages", "src", "dist", "build", "scripts",
    "undefined", "null", "true", "false",
}

PACKAGE_NAME_RE = re.compile(
    r"^(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*$"
)


def is_valid_package_name(name: Optional[str]) -> bool:
    """Check that a name is a real, non-placeholder npm package name."""
    if not name:
        return False
    if name.lower() in INVALID_PACKAGE_NAMES:
        return False
    return PACKAGE_NAME_RE.match(name) is not None


class NpmEnricher:
    """Attach npm registry stats to plugins in place."""

    REGISTRY_URL = "https://registry.npmjs.org/{name}"
    WEEKLY_URL = "https://api.npmjs.org/downloads/point/last-week/{name}"
    MONTHLY_URL = "https://api.npmjs.org/downloads/point/last-month/{name}"

    BATCH_SIZE = 10
    BATCH_DELAY = 0.3

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or get_session()
        self.sleep = sleep
        self.errors: list[str] = []

    def _get(self, url_template: str, name: str) -> Optional[requests.Response]:
        url = url_template.format(name=quote(name, safe=""))
        response = self.session.get(url, timeout=30)
        return response if response.ok else None

    def fetch_stats(self, name: str) -> Optional[RegistryStats]:
        """Fetch registry stats for one package.

        Metadata and both download counts are requested in parallel.

        Returns:
            RegistryStats, or None if the package is not on the registry
            or the lookup failed.
        """
        try:
            with ThreadPoolExecutor(max_workers=3) as executor:
                meta_future = executor.submit(self._get, self.REGISTRY_URL, name)
                weekly_future = executor.submit(self._get, self.WEEKLY_URL, name)
                monthly_future = executor.submit(self._get, self.MONTHLY_URL, name)
                meta_res = meta_future.result()
                weekly_res = weekly_future.result()
                monthly_res = monthly_future.result()

            if meta_res is None:
                return None

            meta = meta_res.json()
            weekly = weekly_res.json() if weekly_res is not None else {}
            monthly = monthly_res.json() if monthly_res is not None else {}

            latest = (meta.get("dist-tags") or {}).get("latest")
            if not latest:
                return None

            latest_meta = (meta.get("versions") or {}).get(latest) or {}
            publish_time = (meta.get("time") or {}).get(latest)

            return RegistryStats(
                weekly_downloads=weekly.get("downloads") or 0,
                monthly_downloads=monthly.get("downloads") or 0,
                latest_version=latest,
                unpacked_size=(latest_meta.get("dist") or {}).get("unpackedSize"),
                last_publish=publish_time or None,
                dependency_count=len(latest_meta.get("dependencies") or {}),
            )
        except Exception as e:
            message = f"Failed to fetch npm data for {name}: {e}"
            self.errors.append(message)
            print(f"  Warning: {message}")
            return None

    def enrich(self, plugins: list[Plugin]) -> int:
        """Attach npm stats to every plugin with a usable package name.

        Returns:
            Number of plugins that received stats.
        """
        candidates = [p for p in plugins if is_valid_package_name(p.package_name)]
        print(f"\nFetching npm data for {len(candidates)} plugins...")

        def enrich_one(plugin: Plugin) -> bool:
            stats = self.fetch_stats(plugin.package_name)
            if stats is None:
                return False
            plugin.npm = stats
            return True

        def report(done: int, results: list[bool]) -> None:
            print(f"  npm: {done}/{len(candidates)} checked ({sum(results)} found)")

        results = run_in_batches(
            candidates,
            enrich_one,
            batch_size=self.BATCH_SIZE,
            delay=self.BATCH_DELAY,
            sleep=self.sleep,
            on_batch=report,
        )
        found = sum(results)

        print(
            f"npm enrichment complete: {found}/{len(candidates)} plugins have npm data"
        )
        return found
