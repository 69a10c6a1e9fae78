from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional

from models.item import VocabularyItem
from models.relation import QuizMode, Relation
from models.session import StudyConfig
from utils.logging_util import setup_logger

logger = setup_logger(__name__)

UNTOUCHED = "untouched"
FAIL = "fail"
PASS1 = "pass1"
PASS2 = "pass2"
WORD_STATUSES = (UNTOUCHED, FAIL, PASS1, PASS2)

# Slot a failed item is re-inserted at, counted from the new front of the queue
FAIL_REINSERT_INDEX = 2


@dataclass(frozen=True)
class QueueItem:
    item: VocabularyItem
    relation: Relation
    mode: QuizMode

    @property
    def item_id(self) -> int:
        return self.item.id


@dataclass(frozen=True)
class WordProgress:
    status: str = UNTOUCHED
    session_fails: int = 0
    session_passes: int = 0


@dataclass(frozen=True)
class AdvanceResult:
    queue: List[QueueItem]
    progress: Dict[int, WordProgress]
    item_id: Optional[int]
    previous_status: Optional[str]
    new_status: Optional[str]

    @property
    def reinserted(self) -> bool:
        return self.new_status in (PASS1, FAIL)


def next_status(current: str, correct: bool) -> str:
    """Per-item ladder: untouched/fail -> pass1 -> pass2; any miss drops to fail."""
    if current == PASS2:
        return PASS2
    if not correct:
        return FAIL
    if current == PASS1:
        return PASS2
    return PASS1


def _enabled_modes(relation: Relation, modes: Iterable[QuizMode]) -> List[QuizMode]:
    enabled = set(modes)
    return [mode for mode in relation.modes if mode in enabled]


def _is_applicable(relation: Relation, word: VocabularyItem, modes: List[QuizMode]) -> bool:
    if relation.table_id != word.table_id:
        return False
    return not modes or bool(_enabled_modes(relation, modes))


def pick_mode(relation: Relation, modes: List[QuizMode], rng: random.Random) -> QuizMode:
    """Random enabled mode of the relation; any mode it supports if none is enabled."""
    candidates = _enabled_modes(relation, modes)
    if not candidates:
        candidates = list(relation.modes)
    return rng.choice(candidates)


def pick_relation(
    word: VocabularyItem,
    relations: List[Relation],
    modes: List[QuizMode],
    rng: random.Random,
) -> Optional[Relation]:
    applicable = [relation for relation in relations if _is_applicable(relation, word, modes)]
    if not applicable:
        return None
    return rng.choice(applicable)


def session_relations(config: StudyConfig, relations: Iterable[Relation]) -> List[Relation]:
    """Relations usable in this session: the selected ones, or every one in random mode."""
    relations = list(relations)
    if config.use_random_relation:
        return relations
    selected = set(config.relation_ids)
    return [relation for relation in relations if relation.id in selected]


def build_queue(
    config: StudyConfig,
    relations: Iterable[Relation],
    rng: Optional[random.Random] = None,
) -> List[QueueItem]:
    """Shuffle the session words and attach a relation and quiz mode to each.

    Words that no relation can quiz are dropped.
    """
    rng = rng or random.Random()
    modes = list(config.modes)
    usable = session_relations(config, relations)
    words = list(config.words)
    rng.shuffle(words)

    queue: List[QueueItem] = []
    assigned = set()
    if not config.use_random_relation and len(usable) > 1:
        # each selected relation gets at least one word before random fill
        pending = deque(usable)
        for word in words:
            if not pending:
                break
            relation = next((r for r in pending if _is_applicable(r, word, modes)), None)
            if relation is None:
                continue
            pending.remove(relation)
            queue.append(QueueItem(word, relation, pick_mode(relation, modes, rng)))
            assigned.add(word.id)
        if pending:
            logger.debug(f"{len(pending)} selected relation(s) matched no word")

    for word in words:
        if word.id in assigned:
            continue
        relation = pick_relation(word, usable, modes, rng)
        if relation is None:
            logger.debug(f"Dropping word {word.id} ({word.keyword!r}): no applicable relation")
            continue
        queue.append(QueueItem(word, relation, pick_mode(relation, modes, rng)))
    return queue


def initial_progress(queue: Iterable[QueueItem]) -> Dict[int, WordProgress]:
    """Fresh session progress for every queued item."""
    return {entry.item_id: WordProgress() for entry in queue}


def advance(
    queue: List[QueueItem],
    progress: Dict[int, WordProgress],
    was_correct: bool,
    reroll: Optional[Callable[[QueueItem], QueueItem]] = None,
) -> AdvanceResult:
    """Answer the front item and return the next queue and progress.

    Inputs are not mutated. A pass2 item leaves the queue; a pass1 item goes to
    the back; a failed item resurfaces at index 2 (or at the end when fewer
    than two items remain).
    """
    if not queue:
        return AdvanceResult(list(queue), dict(progress), None, None, None)

    remaining = list(queue[1:])
    front = queue[0]
    current = progress.get(front.item_id, WordProgress())
    status = next_status(current.status, was_correct)
    if was_correct:
        updated = replace(current, status=status, session_passes=current.session_passes + 1)
    else:
        updated = replace(current, status=status, session_fails=current.session_fails + 1)

    if current.status == PASS2:
        # already mastered; drop it without counting
        updated = current
    elif status == PASS1:
        remaining.append(reroll(front) if reroll else front)
    elif status == FAIL:
        remaining.insert(FAIL_REINSERT_INDEX, reroll(front) if reroll else front)

    new_progress = dict(progress)
    new_progress[front.item_id] = updated
    return AdvanceResult(remaining, new_progress, front.item_id, current.status, updated.status)


def is_complete(queue: List[QueueItem], progress: Dict[int, WordProgress]) -> bool:
    return (
        not queue
        and bool(progress)
        and all(entry.status == PASS2 for entry in progress.values())
    )


def status_counts(progress: Dict[int, WordProgress]) -> Dict[str, int]:
    counts = {status: 0 for status in WORD_STATUSES}
    for entry in progress.values():
        counts[entry.status] += 1
    return counts


def rerolling(
    relations: List[Relation],
    modes: List[QuizMode],
    rng: random.Random,
) -> Callable[[QueueItem], QueueItem]:
    """Reroll function for random-relation sessions: new relation/mode per lap."""
    def _reroll(entry: QueueItem) -> QueueItem:
        relation = pick_relation(entry.item, relations, modes, rng) or entry.relation
        return QueueItem(entry.item, relation, pick_mode(relation, modes, rng))
    return _reroll
