"""Official plugin collector for the payloadcms/payload monorepo."""

from typing import Optional

from collectors.base import BaseCollector, FetchClient
from collectors.github import fetch_manifest_at, fetch_repository, list_directory
from models import Plugin
from versions import DEFAULT_DEPENDENCY, detect_major_versions, resolve_dependency_version


class OfficialCollector(BaseCollector):
    """Collect the plugins published from the framework's own monorepo.

    Every ``packages/plugin-*`` directory becomes one plugin. Repository
    stats (stars, forks, timestamps, license) are shared by all of them.
    """

    source_name = "official"

    OWNER = "payloadcms"
    REPO = "payload"
    BRANCH = "main"
    PACKAGES_DIR = "packages"
    DIR_PREFIX = "plugin-"

    # Official plugins without a detectable range target the newest major
    LATEST_MAJOR = 3
    DEFAULT_LICENSE = "MIT"
    TOPICS = ["payload-plugin", "official"]

    # Raw content is fetched unauthenticated, so pace the requests
    REQUEST_DELAY = 0.05

    def __init__(
        self,
        client: FetchClient,
        session=None,
        dependency: str = DEFAULT_DEPENDENCY,
    ):
        super().__init__(client, session)
        self.dependency = dependency

    def collect(self, limit: Optional[int] = None) -> list[Plugin]:
        """Collect official plugins.

        Args:
            limit: Optional limit on number of plugin directories.

        Returns:
            List of Plugin objects, one per plugin directory with a manifest.

        Raises:
            FetchError: If the repository metadata or the packages listing
                cannot be fetched.
        """
        print(f"Fetching official plugins from {self.OWNER}/{self.REPO}...")

        repo = fetch_repository(self.client, self.OWNER, self.REPO)
        entries = list_directory(
            self.client, self.OWNER, self.REPO, self.PACKAGES_DIR, self.BRANCH
        )
        if not entries:
            print(f"Warning: No packages directory found in {self.OWNER}/{self.REPO}")
            return []

        plugin_dirs = [
            entry.name
            for entry in entries
            if entry.is_dir and entry.name.startswith(self.DIR_PREFIX)
        ]
        if limit:
            plugin_dirs = plugin_dirs[:limit]
        print(f"Found {len(plugin_dirs)} official plugins")

        plugins = []
        for dir_name in plugin_dirs:
            try:
                plugin = self._build_plugin(repo, dir_name)
                if plugin is not None:
                    plugins.append(plugin)
            except Exception as e:
                self.record_error(f"Error fetching {dir_name}: {e}")

            self.sleep(self.REQUEST_DELAY)

        print(f"Collected {len(plugins)} official plugins")
        return plugins

    def _build_plugin(self, repo, dir_name: str) -> Optional[Plugin]:
        path = f"{self.PACKAGES_DIR}/{dir_name}"
        manifest = fetch_manifest_at(
            self.session, self.OWNER, self.REPO, self.BRANCH, path
        )
        if manifest is None:
            print(f"Warning: No package.json for {path}, skipping")
            return None

        version = resolve_dependency_version(manifest, self.dependency)
        # "plugin-form-builder" -> "form builder"
        display_name = dir_name[len(self.DIR_PREFIX) :].replace("-", " ")

        return Plugin(
            id=f"official-{dir_name}",
            name=display_name,
            package_name=manifest.name or f"@{self.OWNER}/{dir_name}",
            collection=self.REPO,
            description=(
                manifest.description or f"Official Payload CMS {display_name} plugin"
            ),
            stars=repo.stars,
            forks=repo.forks,
            last_update=repo.pushed_at,
            created_at=repo.created_at,
            owner=self.OWNER,
            owner_avatar=repo.owner.avatar_url,
            url=f"https://github.com/{self.OWNER}/{self.REPO}/tree/{self.BRANCH}/{path}",
            topics=list(self.TOPICS),
            is_official=True,
            payload_version=version,
            payload_version_major=detect_major_versions(
                version, default=self.LATEST_MAJOR
            ),
            license=repo.license_id or self.DEFAULT_LICENSE,
            # Issues are tracked for the whole monorepo, not per plugin
            open_issues=0,
            is_archived=False,
        )
