"""Data models for plugin collection.

External JSON (GitHub repositories, package.json manifests, directory
listings) is validated into these models at the fetch boundary. ``Plugin``
and ``PluginsData`` define the snapshot written to ``data/plugins.json``.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinel major version meaning "not detected". Serialized as 0.
UNKNOWN_MAJOR = 0

# Plugin keys that are left out of the snapshot entirely when unset.
# payloadVersion and license stay in as explicit nulls.
OMIT_WHEN_NONE = ("packageName", "collection", "readme", "npm", "healthScore")


class Owner(BaseModel):
    """Repository owner as returned by the GitHub API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    login: str
    avatar_url: str = ""


class License(BaseModel):
    """Repository license as returned by the GitHub API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    spdx_id: Optional[str] = None
    name: Optional[str] = None


class Repository(BaseModel):
    """A GitHub repository from search or repository metadata endpoints."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int
    name: str
    full_name: str = ""
    owner: Owner
    description: Optional[str] = None
    stars: int = Field(default=0, alias="stargazers_count")
    forks: int = Field(default=0, alias="forks_count")
    created_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    html_url: str = ""
    topics: list[str] = Field(default_factory=list)
    default_branch: str = "main"
    license: Optional[License] = None
    open_issues: int = Field(default=0, alias="open_issues_count")
    archived: bool = False

    @field_validator("topics", mode="before")
    @classmethod
    def _none_topics(cls, value: Any) -> Any:
        return value or []

    @field_validator("default_branch", mode="before")
    @classmethod
    def _none_branch(cls, value: Any) -> Any:
        return value or "main"

    @property
    def license_id(self) -> Optional[str]:
        """SPDX identifier of the license, or None when undeclared."""
        if self.license is None:
            return None
        return self.license.spdx_id or None


class Manifest(BaseModel):
    """The parts of a package.json the pipeline reads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    peer_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="peerDependencies"
    )
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strings_only(cls, value: Any) -> Any:
        # Templated manifests sometimes carry objects or numbers here
        return value if isinstance(value, str) else None

    @field_validator(
        "dependencies", "peer_dependencies", "dev_dependencies", mode="before"
    )
    @classmethod
    def _clean_dependency_map(cls, value: Any) -> dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {k: v for k, v in value.items() if isinstance(v, str)}


class DirectoryEntry(BaseModel):
    """One entry of a GitHub contents API directory listing."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    type: str
    path: str = ""

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


class RegistryStats(BaseModel):
    """npm registry statistics for one package."""

    model_config = ConfigDict(populate_by_name=True)

    weekly_downloads: int = Field(default=0, alias="weeklyDownloads")
    monthly_downloads: int = Field(default=0, alias="monthlyDownloads")
    latest_version: str = Field(alias="latestVersion")
    unpacked_size: Optional[int] = Field(
        default=None, alias="unpackedSize", description="Unpacked size in bytes"
    )
    last_publish: Optional[datetime] = Field(
        default=None,
        alias="lastPublish",
        description="Publish time of the latest version",
    )
    dependency_count: int = Field(default=0, alias="dependencyCount")


class Plugin(BaseModel):
    """One catalog entry in the plugins snapshot."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(description="Unique id, e.g. '123-root' or 'official-plugin-seo'")
    name: str = Field(description="Human readable display name")
    package_name: Optional[str] = Field(default=None, alias="packageName")
    collection: Optional[str] = Field(
        default=None, description="Parent monorepo name for collection members"
    )
    description: str

    # Repository activity, shared by every plugin of a monorepo
    stars: int = 0
    forks: int = 0
    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    owner: str
    owner_avatar: str = Field(default="", alias="ownerAvatar")
    url: str
    topics: list[str] = Field(default_factory=list)

    is_official: bool = Field(default=False, alias="isOfficial")
    payload_version: Optional[str] = Field(default=None, alias="payloadVersion")
    payload_version_major: list[int] = Field(
        alias="payloadVersionMajor",
        description="Supported major versions; [0] when undetermined",
    )
    license: Optional[str] = None
    open_issues: int = Field(default=0, alias="openIssues")
    is_archived: bool = Field(default=False, alias="isArchived")

    readme: Optional[str] = None
    npm: Optional[RegistryStats] = None
    health_score: Optional[int] = Field(
        default=None, alias="healthScore", ge=0, le=100
    )

    @field_validator("payload_version_major")
    @classmethod
    def _non_empty_majors(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("payloadVersionMajor must not be empty")
        return value

    @property
    def version_unknown(self) -> bool:
        """True when no framework version could be detected."""
        return self.payload_version_major == [UNKNOWN_MAJOR]

    def to_json(self) -> dict:
        """Serialize with snapshot key names, dropping unset optional keys."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in OMIT_WHEN_NONE:
            if data.get(key) is None:
                data.pop(key, None)
        return data


class PluginsData(BaseModel):
    """The persisted snapshot consumed by the directory site."""

    model_config = ConfigDict(populate_by_name=True)

    last_updated: datetime = Field(alias="lastUpdated")
    total_count: int = Field(alias="totalCount")
    plugins: list[Plugin] = Field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "lastUpdated": self.last_updated.isoformat().replace("+00:00", "Z"),
            "totalCount": self.total_count,
            "plugins": [plugin.to_json() for plugin in self.plugins],
        }
