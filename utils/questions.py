from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from Levenshtein import ratio as lev_ratio

from models.item import VocabularyItem
from models.relation import QuizMode, Relation
from utils.queue import QueueItem

ANSWER_SEPARATOR = " / "
MCQ_DISTRACTORS = 3


@dataclass(frozen=True)
class TypingResult:
    correct: bool
    expected: str
    similarity: float
    near_miss: bool


@dataclass(frozen=True)
class TrueFalseStatement:
    question_parts: List[Tuple[str, str]]
    answer_col: str
    answer_value: str
    is_true: bool


@dataclass(frozen=True)
class Question:
    mode: QuizMode
    relation_name: str
    prompt: List[Tuple[str, str]]
    options: List[str] = field(default_factory=list)
    statement: Optional[TrueFalseStatement] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mode": self.mode.value,
            "relation": self.relation_name,
            "prompt": [{"column": col, "value": value} for col, value in self.prompt],
            "text": " ".join(value for _, value in self.prompt if value),
        }
        if self.mode == QuizMode.MULTIPLE_CHOICE:
            data["options"] = list(self.options)
        if self.statement is not None:
            data["statement"] = {
                "column": self.statement.answer_col,
                "value": self.statement.answer_value,
            }
        return data


def question_parts(item: VocabularyItem, relation: Relation) -> List[Tuple[str, str]]:
    return [(col, item.display_value(col)) for col in relation.question_cols]


def answer_text(item: VocabularyItem, relation: Relation) -> str:
    return ANSWER_SEPARATOR.join(item.display_value(col) for col in relation.answer_cols)


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def grade_typing(user_text: Optional[str], expected: str, near_miss_threshold: float = 0.85) -> TypingResult:
    """Exact case-insensitive match decides; an empty answer never passes.

    Similarity only feeds the near-miss hint.
    """
    given = _normalize(user_text)
    target = _normalize(expected)
    correct = bool(given) and given == target
    similarity = 1.0 if correct else (lev_ratio(given, target) if given else 0.0)
    return TypingResult(
        correct=correct,
        expected=expected,
        similarity=similarity,
        near_miss=not correct and similarity >= near_miss_threshold,
    )


def _distractor_relation(
    word: VocabularyItem,
    relation: Relation,
    relations: Iterable[Relation],
) -> Relation:
    """A relation of the distractor's own table with the same answer columns, if any."""
    if word.table_id == relation.table_id:
        return relation
    signature = relation.answer_signature()
    for candidate in relations:
        if candidate.table_id == word.table_id and candidate.answer_signature() == signature:
            return candidate
    return relation


def multiple_choice_options(
    entry: QueueItem,
    session_words: Iterable[VocabularyItem],
    relations: Iterable[Relation],
    rng: random.Random,
    distractor_count: int = MCQ_DISTRACTORS,
) -> List[str]:
    correct = answer_text(entry.item, entry.relation)
    relations = list(relations)
    pool = [word for word in session_words if word.id != entry.item_id]
    rng.shuffle(pool)
    options = [correct]
    for word in pool:
        if len(options) > distractor_count:
            break
        candidate = answer_text(word, _distractor_relation(word, entry.relation, relations))
        if not candidate.strip() or candidate in options:
            continue
        options.append(candidate)
    rng.shuffle(options)
    return options


def true_false_statement(
    entry: QueueItem,
    session_words: Iterable[VocabularyItem],
    rng: random.Random,
) -> TrueFalseStatement:
    answer_col = rng.choice(entry.relation.answer_cols)
    genuine = entry.item.display_value(answer_col)
    value = genuine
    if rng.random() < 0.5:
        distractors = [word for word in session_words if word.id != entry.item_id]
        if distractors:
            value = rng.choice(distractors).display_value(answer_col)
    # a swapped value identical to the real one still reads as true
    return TrueFalseStatement(
        question_parts=question_parts(entry.item, entry.relation),
        answer_col=answer_col,
        answer_value=value,
        is_true=value == genuine,
    )


def build_question(
    entry: QueueItem,
    session_words: Iterable[VocabularyItem],
    relations: Iterable[Relation],
    rng: Optional[random.Random] = None,
) -> Question:
    rng = rng or random.Random()
    session_words = list(session_words)
    prompt = question_parts(entry.item, entry.relation)
    if entry.mode == QuizMode.MULTIPLE_CHOICE:
        options = multiple_choice_options(entry, session_words, relations, rng)
        return Question(entry.mode, entry.relation.name, prompt, options=options)
    if entry.mode == QuizMode.TRUE_FALSE:
        statement = true_false_statement(entry, session_words, rng)
        return Question(entry.mode, entry.relation.name, prompt, statement=statement)
    return Question(entry.mode, entry.relation.name, prompt)


def check_answer(
    entry: QueueItem,
    question: Question,
    *,
    user_text: Optional[str] = None,
    choice: Optional[str] = None,
    verdict: Optional[bool] = None,
    near_miss_threshold: float = 0.85,
) -> Dict[str, Any]:
    """Evaluate a submission against the displayed question."""
    expected = answer_text(entry.item, entry.relation)
    if question.mode == QuizMode.TYPING:
        result = grade_typing(user_text, expected, near_miss_threshold)
        return {
            "correct": result.correct,
            "expected": expected,
            "similarity": round(result.similarity, 3),
            "near_miss": result.near_miss,
        }
    if question.mode == QuizMode.MULTIPLE_CHOICE:
        return {"correct": choice is not None and choice == expected, "expected": expected}
    statement = question.statement
    correct = statement is not None and verdict is not None and verdict == statement.is_true
    return {
        "correct": correct,
        "expected": expected,
        "statement_was_true": statement.is_true if statement else None,
    }
