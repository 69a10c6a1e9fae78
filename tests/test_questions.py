import random

from models.item import VocabularyItem
from models.relation import QuizMode, Relation
from utils.queue import QueueItem
from utils.questions import (
    answer_text,
    build_question,
    check_answer,
    grade_typing,
    multiple_choice_options,
    true_false_statement,
)


def _word(word_id, meaning=None, table_id=1, **extra):
    data = {"meaning": f"meaning {word_id}" if meaning is None else meaning}
    data.update(extra)
    return VocabularyItem(id=word_id, table_id=table_id, keyword=f"w{word_id}", data=data)


def _relation(answer_cols=("meaning",), modes=(QuizMode.TYPING,), relation_id=1, table_id=1):
    return Relation(
        id=relation_id,
        table_id=table_id,
        name="keyword->meaning",
        question_cols=["keyword"],
        answer_cols=list(answer_cols),
        modes=list(modes),
    )


def test_grade_typing_ignores_case_and_padding():
    result = grade_typing("  Hola ", "hola")
    assert result.correct is True
    assert result.similarity == 1.0
    assert result.near_miss is False


def test_grade_typing_reports_near_miss_without_accepting_it():
    result = grade_typing("holla", "hola", near_miss_threshold=0.85)
    assert result.correct is False
    assert result.near_miss is True


def test_grade_typing_far_answer_is_plain_miss():
    result = grade_typing("xyz", "hola")
    assert result.correct is False
    assert result.near_miss is False
    assert grade_typing("", "hola").similarity == 0.0


def test_answer_text_joins_multiple_columns():
    word = _word(1, meaning="hello", note="greeting")
    relation = _relation(answer_cols=("meaning", "note"))
    assert answer_text(word, relation) == "hello / greeting"


def test_typing_question_and_check():
    word = _word(1, meaning="hello")
    entry = QueueItem(word, _relation(), QuizMode.TYPING)
    question = build_question(entry, [word], [entry.relation], random.Random(0))
    data = question.to_dict()
    assert data["mode"] == "Typing"
    assert data["text"] == "w1"
    assert "options" not in data

    assert check_answer(entry, question, user_text="HELLO")["correct"] is True
    outcome = check_answer(entry, question, user_text="helo")
    assert outcome["correct"] is False
    assert outcome["expected"] == "hello"
    assert outcome["near_miss"] is True


def test_multiple_choice_has_correct_and_unique_options():
    words = [_word(i) for i in range(1, 7)]
    relation = _relation(modes=(QuizMode.MULTIPLE_CHOICE,))
    entry = QueueItem(words[0], relation, QuizMode.MULTIPLE_CHOICE)
    options = multiple_choice_options(entry, words, [relation], random.Random(4))
    assert len(options) == 4
    assert "meaning 1" in options
    assert len(set(options)) == 4


def test_multiple_choice_skips_blank_and_duplicate_distractors():
    words = [_word(1, meaning="cat"), _word(2, meaning=""), _word(3, meaning="cat"), _word(4, meaning="dog")]
    relation = _relation(modes=(QuizMode.MULTIPLE_CHOICE,))
    entry = QueueItem(words[0], relation, QuizMode.MULTIPLE_CHOICE)
    options = multiple_choice_options(entry, words, [relation], random.Random(1))
    assert sorted(options) == ["cat", "dog"]


def test_multiple_choice_check_uses_exact_option():
    words = [_word(i) for i in range(1, 5)]
    relation = _relation(modes=(QuizMode.MULTIPLE_CHOICE,))
    entry = QueueItem(words[0], relation, QuizMode.MULTIPLE_CHOICE)
    question = build_question(entry, words, [relation], random.Random(2))
    assert check_answer(entry, question, choice="meaning 1")["correct"] is True
    assert check_answer(entry, question, choice="meaning 2")["correct"] is False
    assert check_answer(entry, question)["correct"] is False


def test_true_false_statement_truth_matches_value():
    words = [_word(i) for i in range(1, 6)]
    relation = _relation(modes=(QuizMode.TRUE_FALSE,))
    entry = QueueItem(words[0], relation, QuizMode.TRUE_FALSE)
    rng = random.Random(9)
    seen = set()
    for _ in range(40):
        statement = true_false_statement(entry, words, rng)
        assert statement.is_true == (statement.answer_value == "meaning 1")
        seen.add(statement.is_true)
    assert seen == {True, False}


def test_true_false_without_other_words_is_genuine():
    word = _word(1)
    entry = QueueItem(word, _relation(modes=(QuizMode.TRUE_FALSE,)), QuizMode.TRUE_FALSE)
    rng = random.Random(0)
    for _ in range(10):
        assert true_false_statement(entry, [word], rng).is_true is True


def test_true_false_check_compares_verdict():
    words = [_word(i) for i in range(1, 4)]
    relation = _relation(modes=(QuizMode.TRUE_FALSE,))
    entry = QueueItem(words[0], relation, QuizMode.TRUE_FALSE)
    question = build_question(entry, words, [relation], random.Random(3))
    truth = question.statement.is_true
    assert check_answer(entry, question, verdict=truth)["correct"] is True
    assert check_answer(entry, question, verdict=not truth)["correct"] is False
    assert check_answer(entry, question)["correct"] is False
    assert "statement" in question.to_dict()


def test_empty_answer_never_passes_even_against_blank_value():
    assert grade_typing("", "").correct is False
    assert grade_typing("   ", "").correct is False
    assert grade_typing(None, "hola").correct is False
