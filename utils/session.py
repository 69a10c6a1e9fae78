from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.relation import Relation
from models.session import StudyConfig
from utils.commit import CommitGuard, ItemStore, ProgressionStore, SessionCommitService
from utils.queue import (
    QueueItem,
    WordProgress,
    advance,
    build_queue,
    initial_progress,
    is_complete,
    rerolling,
    session_relations,
    status_counts,
)
from utils.questions import Question, build_question, check_answer


class StudySession:
    """One learner's live practice run: queue, progress and the question on screen.

    The question for the front item is built once and kept until it is
    answered, so a quit in the middle of a question simply drops it.
    """

    def __init__(
        self,
        config: StudyConfig,
        relations: List[Relation],
        rng: Optional[random.Random] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.config = config
        self.relations = list(relations)
        self.rng = rng or random.Random()
        self.created_at = datetime.now(timezone.utc).isoformat()
        self.queue: List[QueueItem] = build_queue(config, self.relations, self.rng)
        self.progress: Dict[int, WordProgress] = initial_progress(self.queue)
        self.guard = CommitGuard()
        self._question: Optional[Question] = None
        self._reroll = None
        if config.use_random_relation:
            self._reroll = rerolling(
                session_relations(config, self.relations), list(config.modes), self.rng
            )

    @property
    def complete(self) -> bool:
        return is_complete(self.queue, self.progress)

    @property
    def current(self) -> Optional[QueueItem]:
        return self.queue[0] if self.queue else None

    def current_question(self) -> Optional[Question]:
        if not self.queue:
            return None
        if self._question is None:
            self._question = build_question(
                self.queue[0], self.config.words, self.relations, self.rng
            )
        return self._question

    def submit(
        self,
        *,
        user_text: Optional[str] = None,
        choice: Optional[str] = None,
        verdict: Optional[bool] = None,
        near_miss_threshold: float = 0.85,
    ) -> Dict[str, Any]:
        """Grade the answer to the current question and advance the queue."""
        entry = self.current
        question = self.current_question()
        if entry is None or question is None:
            raise ValueError("Session has no pending question")
        outcome = check_answer(
            entry,
            question,
            user_text=user_text,
            choice=choice,
            verdict=verdict,
            near_miss_threshold=near_miss_threshold,
        )
        self.record_answer(outcome["correct"])
        result = self.progress[entry.item_id]
        outcome.update({
            "item_id": entry.item_id,
            "keyword": entry.item.keyword,
            "status": result.status,
        })
        return outcome

    def record_answer(self, was_correct: bool) -> WordProgress:
        """Apply a verdict to the front item without question checking."""
        result = advance(self.queue, self.progress, was_correct, self._reroll)
        self.queue = result.queue
        self.progress = result.progress
        self._question = None
        return self.progress[result.item_id]

    def commit_service(
        self,
        item_store: ItemStore,
        progression_store: ProgressionStore,
        **kwargs,
    ) -> SessionCommitService:
        """A commit worker bound to this session's guard and the given stores."""
        return SessionCommitService(
            self.id,
            self.config,
            item_store,
            progression_store,
            guard=self.guard,
            **kwargs,
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "created_at": self.created_at,
            "remaining": len(self.queue),
            "word_count": len(self.progress),
            "counts": status_counts(self.progress),
            "queue": [
                {"item_id": entry.item_id, "status": self.progress[entry.item_id].status}
                for entry in self.queue
            ],
            "complete": self.complete,
            "committed": self.guard.state,
        }
