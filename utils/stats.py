from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from models.item import VocabularyItem
from models.stats import FlashcardStatus, StatCounters, Stats

# (lower bound of rank point, level), checked from the top
LEVEL_THRESHOLDS: Tuple[Tuple[int, int], ...] = (
    (32, 6),
    (16, 5),
    (8, 4),
    (4, 3),
    (1, 2),
)

# (minimum days since practice, recency weight), checked from the top
RECENCY_STEPS: Tuple[Tuple[float, float], ...] = (
    (10, 1.0),
    (5, 0.8),
    (2, 0.5),
)
RECENCY_FLOOR = 0.1

SECONDS_PER_DAY = 86400
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def level_from_rank_point(rank_point: int) -> int:
    for lower_bound, level in LEVEL_THRESHOLDS:
        if rank_point >= lower_bound:
            return level
    return 1


def recompute_stats(counters: Union[StatCounters, Stats, dict, None] = None) -> Stats:
    """Derive the full stats block from the raw lifetime counters.

    This is the only place rank point, level and the rates are computed.
    """
    if counters is None:
        counters = StatCounters()
    elif isinstance(counters, dict):
        counters = StatCounters(**counters)
    passed1 = counters.passed1 or 0
    passed2 = counters.passed2 or 0
    failed = counters.failed or 0

    total_attempts = passed1 + passed2 + failed
    failure_rate = failed / total_attempts if total_attempts > 0 else 0.0
    rank_point = (passed1 + passed2) - failed
    return Stats(
        passed1=passed1,
        passed2=passed2,
        failed=failed,
        total_attempts=total_attempts,
        failure_rate=failure_rate,
        success_rate=1 - failure_rate,
        rank_point=rank_point,
        level=level_from_rank_point(rank_point),
        in_queue_count=counters.in_queue_count or 0,
        quit_flag=bool(counters.quit_flag),
        last_practiced_at=counters.last_practiced_at or None,
        flashcard_status=counters.flashcard_status or FlashcardStatus.NONE,
    )


def _parse_ts(ts_value: Optional[str]) -> datetime:
    if not ts_value:
        return EPOCH
    try:
        parsed = datetime.fromisoformat(ts_value)
    except ValueError:
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since_practice(last_practiced_at: Optional[str], now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - _parse_ts(last_practiced_at)).total_seconds() / SECONDS_PER_DAY


def recency_weight(days: float) -> float:
    for min_days, weight in RECENCY_STEPS:
        if days >= min_days:
            return weight
    return RECENCY_FLOOR


def priority_score(
    item: VocabularyItem,
    max_in_queue_in_table: int,
    now: Optional[datetime] = None,
) -> float:
    """Heuristic review urgency; higher means the item should be studied sooner.

    ``max_in_queue_in_table`` must be taken from the item's own table since
    queue counts are not comparable across tables.
    """
    stats = item.stats
    g = recency_weight(days_since_practice(stats.last_practiced_at, now))
    # clamp just above -1 so the denominator stays small and positive
    rank_component = 1 / (max(stats.rank_point, -0.999) + 1)
    normalized_queue = (
        stats.in_queue_count / max_in_queue_in_table if max_in_queue_in_table > 0 else 0
    )
    return (
        0.2 * rank_component
        + 0.2 * stats.failure_rate
        + 0.1 * (1 / (stats.level + 1))
        + 0.2 * g
        + 0.2 * (1 if stats.quit_flag else 0)
        + 0.1 * (1 - normalized_queue)
    )


def max_in_queue_by_table(items: Iterable[VocabularyItem]) -> Dict[int, int]:
    maxima: Dict[int, int] = defaultdict(int)
    for item in items:
        maxima[item.table_id] = max(maxima[item.table_id], item.stats.in_queue_count)
    return dict(maxima)


def score_items(
    items: Iterable[VocabularyItem],
    now: Optional[datetime] = None,
) -> List[Tuple[VocabularyItem, float]]:
    items = list(items)
    maxima = max_in_queue_by_table(items)
    return [(item, priority_score(item, maxima.get(item.table_id, 0), now)) for item in items]


def rank_by_priority(
    items: Iterable[VocabularyItem],
    now: Optional[datetime] = None,
) -> List[Tuple[VocabularyItem, float]]:
    """Rank items (possibly from several tables) by priority score, highest first."""
    return sorted(score_items(items, now), key=lambda pair: pair[1], reverse=True)
