"""Framework version detection from package.json dependency ranges."""

import re
from typing import Optional

from models import UNKNOWN_MAJOR, Manifest

DEFAULT_DEPENDENCY = "payload"

COMPARATORS_RE = re.compile(r"[\^~>=<]")
# major.0.0 or major.0.0-beta marks a release/prerelease boundary
BOUNDARY_RE = re.compile(r"^(\d+)\.0\.0(-beta)?")
LEADING_MAJOR_RE = re.compile(r"^(\d+)")


def resolve_dependency_version(
    manifest: Manifest, dependency: str = DEFAULT_DEPENDENCY
) -> Optional[str]:
    """Return the declared version range for ``dependency``.

    Peer dependencies win over runtime dependencies, which win over dev
    dependencies. Returns None if the manifest does not mention it.
    """
    for deps in (
        manifest.peer_dependencies,
        manifest.dependencies,
        manifest.dev_dependencies,
    ):
        version = deps.get(dependency)
        if version:
            return version
    return None


def parse_major_versions(version_range: str) -> list[int]:
    """Parse a semver range into the sorted major versions it can satisfy.

    Any range mentioning "beta" is pinned to major 3, whatever its numbers
    say. Otherwise each ``||`` alternative contributes its leading major.
    Returns an empty list when no alternative starts with a number.
    """
    if "beta" in version_range.lower():
        return [3]

    majors = set()
    for alternative in version_range.split("||"):
        cleaned = COMPARATORS_RE.sub("", alternative.strip()).strip()

        match = BOUNDARY_RE.match(cleaned)
        if match:
            majors.add(int(match.group(1)))
            continue

        match = LEADING_MAJOR_RE.match(cleaned)
        if match:
            majors.add(int(match.group(1)))

    return sorted(majors)


def detect_major_versions(
    version_range: Optional[str], default: int = UNKNOWN_MAJOR
) -> list[int]:
    """Like parse_major_versions, but never empty.

    A missing or unparseable range yields ``[default]``.
    """
    if not version_range:
        return [default]
    return parse_major_versions(version_range) or [default]
