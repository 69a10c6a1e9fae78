from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from models.item import VocabularyItem
from models.session import SortCriterion
from utils.stats import days_since_practice, score_items

MAX_SORT_LAYERS = 3


def _sort_keys(
    items: List[VocabularyItem],
    criterion: SortCriterion,
    rng: random.Random,
    now: Optional[datetime],
) -> Callable[[VocabularyItem], float]:
    """Ascending sort key for one layer; every criterion puts the most urgent first."""
    if criterion == SortCriterion.PRIORITY_SCORE:
        scores: Dict[int, float] = {item.id: score for item, score in score_items(items, now)}
        return lambda item: -scores[item.id]
    if criterion == SortCriterion.RANDOM:
        draws = {item.id: rng.random() for item in items}
        return lambda item: draws[item.id]
    if criterion == SortCriterion.LOWEST_RANK_POINT:
        return lambda item: item.stats.rank_point
    if criterion == SortCriterion.LOWEST_SUCCESS_RATE:
        return lambda item: item.stats.success_rate
    if criterion == SortCriterion.LONGEST_SINCE_PRACTICE:
        # never practised counts from the epoch, so it sorts first
        return lambda item: -days_since_practice(item.stats.last_practiced_at, now)
    if criterion == SortCriterion.PRIORITIZE_QUIT:
        return lambda item: 0 if item.stats.quit_flag else 1
    raise ValueError(f"Unknown sort criterion: {criterion}")


def filter_by_tags(items: Iterable[VocabularyItem], tags: Sequence[str]) -> List[VocabularyItem]:
    """Keep items carrying every requested tag."""
    wanted = {tag.lower() for tag in tags}
    if not wanted:
        return list(items)
    return [item for item in items if wanted <= {tag.lower() for tag in item.tags}]


def order_words(
    items: Iterable[VocabularyItem],
    criteria: Sequence[SortCriterion],
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[VocabularyItem]:
    rng = rng or random.Random()
    items = list(items)
    criteria = list(criteria)[:MAX_SORT_LAYERS]
    if not criteria:
        return items
    keys = [_sort_keys(items, criterion, rng, now) for criterion in criteria]
    return sorted(items, key=lambda item: tuple(key(item) for key in keys))


def select_words(
    items: Iterable[VocabularyItem],
    criteria: Sequence[SortCriterion],
    count: int,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[VocabularyItem]:
    """Pick the first ``count`` words after layered sorting."""
    return order_words(items, criteria, rng, now)[:max(0, count)]
