from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, ContextManager, Dict, Iterable, List, Optional, Protocol

from models.item import VocabularyItem
from models.relation import Relation
from models.session import (
    GlobalStats,
    RewardEvent,
    RewardEventType,
    SessionRecord,
    SessionStatus,
    StudyConfig,
)
from models.stats import Stats
from utils.logging_util import log_session_commit, setup_logger
from utils.milestones import MilestoneEvaluator
from utils.queue import PASS2, WordProgress
from utils.stats import recompute_stats

logger = setup_logger(__name__)

DEFAULT_COMPLETION_XP = 50
DEFAULT_MASTERED_WORD_XP = 10
DEFAULT_QUIT_PENALTY = 30


class ItemStore(Protocol):
    def list_items(
        self,
        table_ids: Optional[Iterable[int]] = None,
        item_ids: Optional[Iterable[int]] = None,
    ) -> List[VocabularyItem]: ...

    def update_stats(self, item_id: int, stats: Stats) -> None: ...

    def list_relations(self, table_ids: Optional[Iterable[int]] = None) -> List[Relation]: ...


class ProgressionStore(Protocol):
    def get_global_stats(self) -> GlobalStats: ...

    def set_global_stats(self, stats: GlobalStats) -> None: ...

    def append_session_record(self, record: SessionRecord) -> None: ...

    def append_reward_event(self, event: RewardEvent) -> None: ...


@dataclass(frozen=True)
class CommitResult:
    status: SessionStatus
    xp_delta: int
    global_stats: GlobalStats
    events: List[RewardEvent] = field(default_factory=list)
    updated_item_ids: List[int] = field(default_factory=list)


def completion_xp(
    progress: Dict[int, WordProgress],
    base: int = DEFAULT_COMPLETION_XP,
    per_mastered: int = DEFAULT_MASTERED_WORD_XP,
) -> int:
    mastered = sum(1 for entry in progress.values() if entry.status == PASS2)
    return base + per_mastered * mastered


def completed_stats(stats: Stats, progress: WordProgress, now_iso: str) -> Stats:
    """Fold one finished session into an item's lifetime counters.

    Only pass1 reaches before the final one count towards passed1; the final
    pass1 -> pass2 climb is credited to passed2. A clean untouched -> pass1 ->
    pass2 run therefore adds 0 to passed1 and 1 to passed2.
    """
    counters = stats.counters()
    counters.passed1 += max(0, progress.session_passes - 2)
    counters.passed2 += 1
    counters.failed += progress.session_fails
    counters.in_queue_count += 1
    counters.last_practiced_at = now_iso
    counters.quit_flag = False
    return recompute_stats(counters)


def quit_stats(stats: Stats) -> Stats:
    counters = stats.counters()
    counters.quit_flag = True
    return recompute_stats(counters)


class CommitGuard:
    """Session-scoped commit state shared by every commit attempt for one session."""

    def __init__(self):
        self.state: Optional[str] = None  # committing | completed | quit


class SessionCommitService:
    """Writes the outcome of one study session exactly once.

    Completion runs at most once. Quit may be triggered more than once (explicit
    quit plus a lifecycle timeout) but only the first call applies, and it is
    ignored once the session has completed. A failed write releases the guard
    so the caller can retry with the same progress map.
    """

    def __init__(
        self,
        session_id: str,
        config: StudyConfig,
        item_store: ItemStore,
        progression_store: ProgressionStore,
        *,
        completion_base_xp: int = DEFAULT_COMPLETION_XP,
        mastered_word_xp: int = DEFAULT_MASTERED_WORD_XP,
        quit_penalty: int = DEFAULT_QUIT_PENALTY,
        milestones: Optional[MilestoneEvaluator] = None,
        table_names: Optional[List[str]] = None,
        transaction: Optional[Callable[[], ContextManager]] = None,
        guard: Optional[CommitGuard] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_id = session_id
        self.config = config
        self.item_store = item_store
        self.progression_store = progression_store
        self.completion_base_xp = completion_base_xp
        self.mastered_word_xp = mastered_word_xp
        self.quit_penalty = quit_penalty
        self.milestones = milestones or MilestoneEvaluator()
        self.table_names = table_names or []
        self._transaction = transaction or nullcontext
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.guard = guard or CommitGuard()

    @property
    def committed_status(self) -> Optional[SessionStatus]:
        if self.guard.state == "completed":
            return SessionStatus.COMPLETED
        if self.guard.state == "quit":
            return SessionStatus.QUIT
        return None

    def _live_stats(self, item_ids: Iterable[int]) -> Dict[int, Stats]:
        """Current stats of the given items, read inside the commit transaction.

        Session deltas are applied on top of these rather than the
        session-start snapshot. Deleted items are absent.
        """
        return {item.id: item.stats for item in self.item_store.list_items(item_ids=list(item_ids))}

    def _record(self, status: SessionStatus, now_iso: str) -> SessionRecord:
        return SessionRecord(
            id=self.session_id,
            created_at=now_iso,
            status=status,
            table_ids=list(self.config.table_ids),
            table_names=list(self.table_names),
            modes=list(self.config.modes),
            word_count=len(self.config.words),
        )

    def _apply_global(
        self,
        status: SessionStatus,
        xp_delta: int,
        now_iso: str,
    ) -> tuple:
        global_stats = self.progression_store.get_global_stats()
        updated = global_stats.model_copy(update={"xp": global_stats.xp + xp_delta})
        if status == SessionStatus.COMPLETED:
            updated.completed_session_count += 1
            event = RewardEvent(
                timestamp=now_iso,
                type=RewardEventType.SESSION_COMPLETE,
                description=f"Completed a session of {len(self.config.words)} words",
                xp_delta=xp_delta,
            )
        else:
            updated.abandoned_session_count += 1
            event = RewardEvent(
                timestamp=now_iso,
                type=RewardEventType.SESSION_QUIT,
                description=f"Quit a session of {len(self.config.words)} words",
                xp_delta=xp_delta,
            )
        events = [event]
        highest, unlocks = self.milestones.detect_unlocks(
            updated.xp, updated.highest_milestone_index, now_iso
        )
        updated.highest_milestone_index = highest
        events.extend(unlocks)
        for unlock in unlocks:
            logger.info(unlock.description)

        self.progression_store.set_global_stats(updated)
        self.progression_store.append_session_record(self._record(status, now_iso))
        for entry in events:
            self.progression_store.append_reward_event(entry)
        return updated, events

    def on_completion(
        self,
        progress: Dict[int, WordProgress],
        xp_delta: Optional[int] = None,
    ) -> Optional[CommitResult]:
        if self.guard.state is not None:
            logger.info(f"Session {self.session_id}: completion ignored, already {self.guard.state}")
            return None
        self.guard.state = "committing"
        if xp_delta is None:
            xp_delta = completion_xp(progress, self.completion_base_xp, self.mastered_word_xp)
        now_iso = self._clock().isoformat()
        known = {word.id for word in self.config.words}
        try:
            with self._transaction():
                live = self._live_stats(progress)
                updated_ids = []
                for item_id, entry in progress.items():
                    if item_id not in known or item_id not in live:
                        logger.warning(f"Session {self.session_id}: progress for unknown item {item_id}")
                        continue
                    self.item_store.update_stats(item_id, completed_stats(live[item_id], entry, now_iso))
                    updated_ids.append(item_id)
                global_stats, events = self._apply_global(SessionStatus.COMPLETED, xp_delta, now_iso)
        except Exception:
            self.guard.state = None
            raise
        self.guard.state = "completed"
        log_session_commit(logger, self.session_id, "completed", len(self.config.words), xp_delta)
        return CommitResult(SessionStatus.COMPLETED, xp_delta, global_stats, events, updated_ids)

    def on_quit(
        self,
        progress: Dict[int, WordProgress],
        xp_delta: Optional[int] = None,
    ) -> Optional[CommitResult]:
        if self.guard.state is not None:
            logger.info(f"Session {self.session_id}: quit ignored, already {self.guard.state}")
            return None
        self.guard.state = "committing"
        if xp_delta is None:
            xp_delta = -self.quit_penalty
        now_iso = self._clock().isoformat()
        try:
            with self._transaction():
                live = self._live_stats(word.id for word in self.config.words)
                flagged = []
                for word in self.config.words:
                    entry = progress.get(word.id)
                    if (entry is not None and entry.status == PASS2) or word.id not in live:
                        continue
                    self.item_store.update_stats(word.id, quit_stats(live[word.id]))
                    flagged.append(word.id)
                global_stats, events = self._apply_global(SessionStatus.QUIT, xp_delta, now_iso)
        except Exception:
            self.guard.state = None
            raise
        self.guard.state = "quit"
        log_session_commit(logger, self.session_id, "quit", len(self.config.words), xp_delta)
        return CommitResult(SessionStatus.QUIT, xp_delta, global_stats, events, flagged)
