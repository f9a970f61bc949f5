"""Community plugin collector.

Turns repositories found by topic search into plugin records. A
repository is either a single package (one plugin, id ``{repo_id}-root``)
or a monorepo with one plugin per ``packages/*`` directory that depends
on the framework (ids ``{repo_id}-{dir}``).
"""

from typing import Optional

from collectors.base import BaseCollector, FetchClient, FetchError, run_in_batches
from collectors.github import fetch_manifest, fetch_readme_preview, list_directory
from models import DirectoryEntry, Manifest, Plugin, Repository
from versions import DEFAULT_DEPENDENCY, detect_major_versions, resolve_dependency_version

NO_DESCRIPTION = "No description available"


def humanize(name: str) -> str:
    """Turn a repository or directory name into a display name."""
    return name.replace("-", " ")


class CommunityCollector(BaseCollector):
    """Collect plugins from community repositories."""

    source_name = "community"

    ORGANIZATION = "payloadcms"
    PACKAGES_DIR = "packages"

    REPO_BATCH_SIZE = 10
    REPO_BATCH_DELAY = 0.2
    MANIFEST_BATCH_SIZE = 5

    def __init__(
        self,
        client: FetchClient,
        session=None,
        dependency: str = DEFAULT_DEPENDENCY,
        organization: Optional[str] = None,
    ):
        super().__init__(client, session)
        self.dependency = dependency
        self.organization = (organization or self.ORGANIZATION).lower()

    def collect(
        self, repos: list[Repository], limit: Optional[int] = None
    ) -> list[Plugin]:
        """Extract plugins from every repository, ten repositories at a time.

        Args:
            repos: Repositories from topic search.
            limit: Optional limit on number of repositories to process.

        Returns:
            List of Plugin objects in repository order.
        """
        if limit:
            repos = repos[:limit]

        print(f"\nProcessing {len(repos)} repositories...")

        def report(done: int, results: list[list[Plugin]]) -> None:
            found = sum(len(plugins) for plugins in results)
            print(f"Processed {done}/{len(repos)} repositories ({found} plugins found)")

        results = run_in_batches(
            repos,
            self.extract_plugins,
            batch_size=self.REPO_BATCH_SIZE,
            delay=self.REPO_BATCH_DELAY,
            sleep=self.sleep,
            on_batch=report,
        )
        return [plugin for plugins in results for plugin in plugins]

    def extract_plugins(self, repo: Repository) -> list[Plugin]:
        """Extract the plugins of one repository. Never raises.

        Returns:
            The repository's plugins, or an empty list if processing failed.
        """
        try:
            return self._extract(repo)
        except Exception as e:
            self.record_error(f"Error processing {repo.full_name or repo.name}: {e}")
            return []

    def _extract(self, repo: Repository) -> list[Plugin]:
        manifest = fetch_manifest(self.session, repo)
        if manifest is None:
            return [self._root_plugin(repo, None, None)]

        version = resolve_dependency_version(manifest, self.dependency)
        if version:
            return [self._root_plugin(repo, manifest, version)]

        members = self._collection_plugins(repo)
        if members:
            return members

        # Root manifest without the dependency and no qualifying packages
        return [self._root_plugin(repo, manifest, None)]

    def _is_official(self, repo: Repository) -> bool:
        return repo.owner.login.lower() == self.organization

    def _root_plugin(
        self,
        repo: Repository,
        manifest: Optional[Manifest],
        version: Optional[str],
    ) -> Plugin:
        description = (
            (manifest.description if manifest else None)
            or repo.description
            or NO_DESCRIPTION
        )
        return Plugin(
            id=f"{repo.id}-root",
            name=humanize(repo.name),
            package_name=manifest.name if manifest else None,
            description=description,
            stars=repo.stars,
            forks=repo.forks,
            last_update=repo.pushed_at,
            created_at=repo.created_at,
            owner=repo.owner.login,
            owner_avatar=repo.owner.avatar_url,
            url=repo.html_url,
            topics=list(repo.topics),
            is_official=self._is_official(repo),
            payload_version=version,
            payload_version_major=detect_major_versions(version),
            license=repo.license_id,
            open_issues=repo.open_issues,
            is_archived=repo.archived,
            readme=fetch_readme_preview(self.session, repo),
        )

    def _collection_plugins(self, repo: Repository) -> list[Plugin]:
        plugins = []
        for entry, manifest in self._package_manifests(repo):
            version = resolve_dependency_version(manifest, self.dependency)
            if not version:
                continue

            path = f"{self.PACKAGES_DIR}/{entry.name}"
            plugins.append(
                Plugin(
                    id=f"{repo.id}-{entry.name}",
                    name=humanize(entry.name),
                    package_name=manifest.name,
                    collection=repo.name,
                    description=manifest.description or repo.description or NO_DESCRIPTION,
                    stars=repo.stars,
                    forks=repo.forks,
                    last_update=repo.pushed_at,
                    created_at=repo.created_at,
                    owner=repo.owner.login,
                    owner_avatar=repo.owner.avatar_url,
                    url=f"{repo.html_url}/tree/{repo.default_branch}/{path}",
                    topics=list(repo.topics),
                    is_official=self._is_official(repo),
                    payload_version=version,
                    payload_version_major=detect_major_versions(version),
                    license=repo.license_id,
                    open_issues=repo.open_issues,
                    is_archived=repo.archived,
                )
            )
        return plugins

    def _package_manifests(
        self, repo: Repository
    ) -> list[tuple[DirectoryEntry, Manifest]]:
        """Fetch package.json for each directory under packages/."""
        try:
            entries = list_directory(
                self.client,
                repo.owner.login,
                repo.name,
                self.PACKAGES_DIR,
                repo.default_branch,
            )
        except FetchError as e:
            print(f"Warning: Could not list packages for {repo.full_name or repo.name}: {e}")
            return []
        directories = [entry for entry in entries if entry.is_dir]
        if not directories:
            return []

        manifests = run_in_batches(
            directories,
            lambda entry: fetch_manifest(
                self.session, repo, f"{self.PACKAGES_DIR}/{entry.name}"
            ),
            batch_size=self.MANIFEST_BATCH_SIZE,
        )
        return [
            (entry, manifest)
            for entry, manifest in zip(directories, manifests)
            if manifest is not None
        ]
