"""Plugin health scoring.

The score is a 0-100 composite of repository and npm signals. Each signal
is capped independently and the total is capped at 100. Archived
repositories always score 0.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from models import Plugin

MAX_SCORE = 100

# (days, points) buckets, checked in order; older than the last bucket scores 0
REPO_RECENCY_BUCKETS = [(30, 20), (90, 15), (180, 10), (365, 5)]
PUBLISH_RECENCY_BUCKETS = [(30, 15), (90, 12), (180, 8), (365, 4)]

# (upper bound inclusive, points)
DEPENDENCY_BUCKETS = [(3, 10), (8, 7), (15, 4)]

# (upper bound exclusive in bytes, points)
SIZE_BUCKETS = [(50 * 1024, 5), (200 * 1024, 3), (1024 * 1024, 1)]

STAR_SCALE = 1000
DOWNLOAD_SCALE = 10000

OFFICIAL_BONUS = 5
LICENSE_POINTS = 5


def _days_since(moment: datetime, now: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds() / 86400


def _recency_points(
    moment: Optional[datetime], now: datetime, buckets: list[tuple[int, int]]
) -> int:
    if moment is None:
        return 0
    days = _days_since(moment, now)
    for limit, points in buckets:
        if days < limit:
            return points
    return 0


def _log_points(value: int, scale: int, max_points: int) -> int:
    if value <= 0:
        return 0
    points = min(math.log10(value) / math.log10(scale), 1) * max_points
    # Half rounds up, not to even
    return math.floor(points + 0.5)


def _issue_points(stars: int, open_issues: int) -> int:
    if stars > 0:
        ratio = open_issues / stars
        if ratio < 0.05:
            return 10
        if ratio < 0.1:
            return 7
        if ratio < 0.2:
            return 4
        return 0
    return 10 if open_issues == 0 else 0


def _dependency_points(count: int) -> int:
    for limit, points in DEPENDENCY_BUCKETS:
        if count <= limit:
            return points
    return 0


def _size_points(size: Optional[int]) -> int:
    if size is None:
        return 0
    for limit, points in SIZE_BUCKETS:
        if size < limit:
            return points
    return 0


def compute_health_score(plugin: Plugin, now: Optional[datetime] = None) -> int:
    """Compute the health score for one plugin.

    Args:
        plugin: The plugin to score. It is not modified.
        now: Reference time for the recency signals. Defaults to the
            current UTC time.

    Returns:
        An integer between 0 and 100.
    """
    if plugin.is_archived:
        return 0

    now = now or datetime.now(timezone.utc)
    score = 0

    score += _recency_points(plugin.last_update, now, REPO_RECENCY_BUCKETS)
    score += _log_points(plugin.stars, STAR_SCALE, 15)
    score += _issue_points(plugin.stars, plugin.open_issues)
    if plugin.license:
        score += LICENSE_POINTS

    npm = plugin.npm
    if npm is not None:
        score += _log_points(npm.weekly_downloads, DOWNLOAD_SCALE, 20)
        score += _recency_points(npm.last_publish, now, PUBLISH_RECENCY_BUCKETS)
        score += _dependency_points(npm.dependency_count)
        score += _size_points(npm.unpacked_size)

    if plugin.is_official:
        score += OFFICIAL_BONUS

    return min(score, MAX_SCORE)


def apply_health_scores(
    plugins: list[Plugin], now: Optional[datetime] = None
) -> tuple[int, int, int]:
    """Attach a health score to every plugin.

    Returns:
        Tuple of (average, minimum, maximum) score, all 0 for an empty list.
    """
    now = now or datetime.now(timezone.utc)
    for plugin in plugins:
        plugin.health_score = compute_health_score(plugin, now=now)

    scores = [plugin.health_score for plugin in plugins]
    if not scores:
        return 0, 0, 0
    return round(sum(scores) / len(scores)), min(scores), max(scores)
