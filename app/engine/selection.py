"""
Weighted-random pair selection.

PURPOSE & MOTIVATION:
---------------------
The catalogue keeps growing, and new items start with no votes. Picking pairs
uniformly would take a very long time to give new items a settled rating,
and the same voter would regularly see the same item (or two near-identical
items) a few comparisons apart. Each candidate therefore gets a weight:

    weight = vote_count_weight(comparison_count)
             x recency_decay(comparisons ago the item was shown to this voter)
             x diversity_penalty(comparisons ago its similarity group was shown)

With the default tiers an item with no votes is 1000x more likely to be
drawn than an item with more than 20 votes, and an item the voter saw in
their last five comparisons is 10x less likely to come back.

THE ALGORITHM:
--------------
1. The service layer fetches a random candidate pool (bounded size) of
   eligible items and the voter's most recent comparisons (bounded, newest
   first).
2. ``SessionRecency.from_history`` turns that history into
   ``item id -> comparisons ago`` and ``group -> comparisons ago`` maps.
3. ``candidate_weight`` scores every candidate.
4. ``draw_pair`` draws two distinct candidates, weighted, without
   replacement. A zero or non-finite total weight falls back to a uniform
   draw over the same pool instead of failing.

The result is probabilistic: nothing guarantees every item is shown within a
session.
"""
import math
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from app.engine.config import SelectionConfig, Tier
from app.engine.exceptions import InsufficientPoolError
from app.engine.similarity import classify_similarity

logger = structlog.get_logger()


def _tier_multiplier(value: int, tiers: Sequence[Tier], default: float = 1.0) -> float:
    for bound, multiplier in tiers:
        if value <= bound:
            return multiplier
    return default


def vote_count_weight(comparison_count: int, config: SelectionConfig) -> float:
    """Favour under-voted items: 0 -> 1000x, 1-5 -> 100x, 6-20 -> 10x, else 1x."""
    return _tier_multiplier(max(0, comparison_count or 0), config.vote_count_tiers)


def recency_decay(comparisons_ago: Optional[int], config: SelectionConfig) -> float:
    """Dampen items the voter has just seen; never seen (or no voter) -> 1.0."""
    if comparisons_ago is None:
        return 1.0
    return _tier_multiplier(comparisons_ago, config.recency_tiers)


def diversity_penalty(comparisons_ago: Optional[int], config: SelectionConfig) -> float:
    """
    Dampen items whose similarity group was shown recently.

    The tier value is softened by the penalty strength: with strength 0.8 a
    base penalty of 0.2 becomes 0.2 + 0.8 * 0.2 = 0.36. Strength 1.0 applies
    the tier value as is, strength 0.0 disables the penalty.
    """
    if comparisons_ago is None or not config.diversity_filtering_enabled:
        return 1.0

    base = _tier_multiplier(comparisons_ago, config.diversity_tiers)
    if base >= 1.0:
        return 1.0
    return base + (1.0 - base) * (1.0 - config.diversity_penalty_strength)


@dataclass
class SeenPair:
    """One past comparison as needed by the recency map."""

    item1_id: str
    item2_id: str
    item1_title: Optional[str] = None
    item2_title: Optional[str] = None


@dataclass
class SessionRecency:
    """
    How many comparisons ago a voter last saw each item and similarity group.

    1 means "in the most recent comparison".
    """

    items: Dict[str, int] = field(default_factory=dict)
    groups: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_history(
        cls, history: Iterable[SeenPair], config: SelectionConfig
    ) -> "SessionRecency":
        """
        Build the maps from comparisons ordered newest first.

        Only the first (most recent) occurrence of an item or group counts.
        Groups are tracked within ``diversity_lookback_count`` comparisons.
        """
        recency = cls()
        for index, seen in enumerate(history):
            comparisons_ago = index + 1
            for item_id, title in (
                (seen.item1_id, seen.item1_title),
                (seen.item2_id, seen.item2_title),
            ):
                recency.items.setdefault(str(item_id), comparisons_ago)
                if comparisons_ago > config.diversity_lookback_count:
                    continue
                group = classify_similarity(title)
                if group:
                    recency.groups.setdefault(group, comparisons_ago)
        return recency

    def item_comparisons_ago(self, item_id: Any) -> Optional[int]:
        return self.items.get(str(item_id))

    def group_comparisons_ago(self, group: Optional[str]) -> Optional[int]:
        if group is None:
            return None
        return self.groups.get(group)


def candidate_weight(
    item: Any, recency: Optional[SessionRecency], config: SelectionConfig
) -> float:
    """
    Selection weight for one candidate.

    ``item`` needs ``id``, ``title`` and ``comparison_count``. Without a
    recency map (anonymous request) only the vote-count weight applies.
    """
    weight = vote_count_weight(getattr(item, "comparison_count", 0) or 0, config)
    if recency is None:
        return weight

    weight *= recency_decay(recency.item_comparisons_ago(item.id), config)
    if config.diversity_filtering_enabled:
        group = classify_similarity(getattr(item, "title", None))
        weight *= diversity_penalty(recency.group_comparisons_ago(group), config)
    return weight


def _weighted_index(weights: Sequence[float], rng: random.Random) -> Optional[int]:
    total = sum(weights)
    if not math.isfinite(total) or total <= 0:
        return None

    threshold = rng.random() * total
    cumulative = 0.0
    for index, weight in enumerate(weights):
        cumulative += weight
        if threshold < cumulative:
            return index
    # Floating point rounding can leave threshold == total
    for index in range(len(weights) - 1, -1, -1):
        if weights[index] > 0:
            return index
    return None


def draw_pair(
    candidates: Sequence[Any],
    weights: Sequence[float],
    rng: Optional[random.Random] = None,
) -> Tuple[Any, Any]:
    """
    Draw two distinct candidates, weighted, without replacement.

    Falls back to a uniform draw whenever the weights cannot be used
    (all zero, negative total, NaN or inf).
    """
    if len(candidates) < 2:
        raise InsufficientPoolError(len(candidates))
    rng = rng or random.Random()

    pool: List[Any] = list(candidates)
    pool_weights: List[float] = [
        w if math.isfinite(w) and w > 0 else 0.0 for w in weights
    ]

    first_index = _weighted_index(pool_weights, rng)
    if first_index is None:
        logger.warning("selection_uniform_fallback", pool_size=len(pool))
        first, second = rng.sample(pool, 2)
        return first, second

    first = pool.pop(first_index)
    pool_weights.pop(first_index)

    second_index = _weighted_index(pool_weights, rng)
    if second_index is None:
        second = rng.choice(pool)
    else:
        second = pool[second_index]
    return first, second


def select_pair(
    candidates: Sequence[Any],
    recency: Optional[SessionRecency],
    config: SelectionConfig,
    rng: Optional[random.Random] = None,
) -> Tuple[Any, Any]:
    """
    Pick the next comparison pair from a candidate pool.

    Args:
        candidates: Eligible items (``id``, ``title``, ``comparison_count``)
        recency: Voter history, or None for anonymous requests
        config: Selection parameters
        rng: Random source, injectable for reproducible runs

    Returns:
        Two distinct items; their order carries no meaning.

    Raises:
        InsufficientPoolError: fewer than two candidates
    """
    if len(candidates) < 2:
        raise InsufficientPoolError(len(candidates))

    weights = [candidate_weight(item, recency, config) for item in candidates]
    item_a, item_b = draw_pair(candidates, weights, rng)

    logger.debug(
        "pair_drawn",
        pool_size=len(candidates),
        total_weight=sum(weights),
        personalized=recency is not None,
    )
    return item_a, item_b
