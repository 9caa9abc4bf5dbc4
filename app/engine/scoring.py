"""
Confidence and familiarity scores for an item.

Both scores are pure functions of the item's counters (and the current time
for familiarity). They are always recomputed from scratch after a vote or a
skip; nothing here patches a previous value.

Familiarity combines four normalized factors:

| Factor     | Default weight | Definition                                   |
|------------|----------------|----------------------------------------------|
| exposure   | 0.40           | min(1, comparisons / saturation point)       |
| win rate   | 0.25           | wins / comparisons                           |
| recency    | 0.20           | linear decay over recency_decay_days         |
| engagement | 0.15           | 1 - skips / (comparisons + skips)            |

The weighted sum is scaled to 0-100 and clamped.
"""
from datetime import datetime, timezone
from typing import Any, NamedTuple, Optional

from app.engine.config import ScoringConfig

SECONDS_PER_DAY = 24 * 60 * 60


class ItemScores(NamedTuple):
    familiarity_score: float
    rating_confidence: float


def rating_confidence(comparison_count: int, config: ScoringConfig) -> float:
    if comparison_count <= 0:
        return 0.0
    return min(1.0, comparison_count / config.min_comparisons_for_confidence)


def exposure_factor(comparison_count: int, config: ScoringConfig) -> float:
    if comparison_count <= 0:
        return 0.0
    return min(1.0, comparison_count / config.comparison_saturation_point)


def win_rate_factor(wins: int, comparison_count: int) -> float:
    if comparison_count <= 0:
        return 0.0
    return wins / comparison_count


def recency_factor(
    last_compared_at: Optional[datetime], now: datetime, config: ScoringConfig
) -> float:
    if last_compared_at is None:
        return 0.0
    # SQLite hands back naive datetimes; everything is stored as UTC
    if last_compared_at.tzinfo is None:
        last_compared_at = last_compared_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    days_since = (now - last_compared_at).total_seconds() / SECONDS_PER_DAY
    days_since = max(0.0, days_since)
    return max(0.0, 1.0 - days_since / config.recency_decay_days)


def engagement_factor(skip_count: int, comparison_count: int) -> float:
    total = comparison_count + skip_count
    if total <= 0:
        # Never shown to anyone: no engagement signal yet
        return 0.0
    return max(0.0, 1.0 - skip_count / total)


def familiarity_score(
    comparison_count: int,
    wins: int,
    skip_count: int,
    last_compared_at: Optional[datetime],
    config: ScoringConfig,
    now: Optional[datetime] = None,
) -> float:
    now = now or datetime.now(timezone.utc)

    score = (
        exposure_factor(comparison_count, config) * config.comparison_factor_weight
        + win_rate_factor(wins, comparison_count) * config.win_rate_factor_weight
        + recency_factor(last_compared_at, now, config) * config.recency_factor_weight
        + engagement_factor(skip_count, comparison_count)
        * config.engagement_factor_weight
    ) * 100.0

    return max(0.0, min(100.0, score))


def score_item(
    item: Any, config: ScoringConfig, now: Optional[datetime] = None
) -> ItemScores:
    """
    Compute both derived scores for an item.

    ``item`` is anything exposing ``comparison_count``, ``wins``,
    ``skip_count`` and ``last_compared_at`` (an ORM ``Item`` or a plain
    record); missing counters are read as zero.
    """
    comparison_count = getattr(item, "comparison_count", 0) or 0
    wins = getattr(item, "wins", 0) or 0
    skip_count = getattr(item, "skip_count", 0) or 0
    last_compared_at = getattr(item, "last_compared_at", None)

    return ItemScores(
        familiarity_score=familiarity_score(
            comparison_count, wins, skip_count, last_compared_at, config, now=now
        ),
        rating_confidence=rating_confidence(comparison_count, config),
    )
