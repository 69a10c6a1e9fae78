import random

from models.item import VocabularyItem
from models.relation import QuizMode, Relation
from models.session import StudyConfig
from utils.queue import (
    FAIL,
    PASS1,
    PASS2,
    QueueItem,
    UNTOUCHED,
    WordProgress,
    advance,
    build_queue,
    initial_progress,
    is_complete,
    next_status,
    rerolling,
    status_counts,
)


def _word(word_id, table_id=1):
    return VocabularyItem(
        id=word_id,
        table_id=table_id,
        keyword=f"w{word_id}",
        data={"meaning": f"m{word_id}", "example": f"e{word_id}"},
    )


def _relation(relation_id=1, table_id=1, answer="meaning", modes=(QuizMode.TYPING,)):
    return Relation(
        id=relation_id,
        table_id=table_id,
        name=f"keyword->{answer}",
        question_cols=["keyword"],
        answer_cols=[answer],
        modes=list(modes),
    )


def _queue(count):
    relation = _relation()
    return [QueueItem(_word(i), relation, QuizMode.TYPING) for i in range(1, count + 1)]


def test_next_status_ladder():
    assert next_status(UNTOUCHED, True) == PASS1
    assert next_status(FAIL, True) == PASS1
    assert next_status(PASS1, True) == PASS2
    assert next_status(UNTOUCHED, False) == FAIL
    assert next_status(PASS1, False) == FAIL


def test_failed_item_reinserted_at_index_two():
    queue = _queue(5)
    result = advance(queue, initial_progress(queue), False)
    assert [entry.item_id for entry in result.queue] == [2, 3, 1, 4, 5]
    assert result.progress[1] == WordProgress(status=FAIL, session_fails=1)


def test_failed_item_goes_to_end_of_short_queue():
    queue = _queue(2)
    result = advance(queue, initial_progress(queue), False)
    assert [entry.item_id for entry in result.queue] == [2, 1]

    single = _queue(1)
    result = advance(single, initial_progress(single), False)
    assert [entry.item_id for entry in result.queue] == [1]


def test_pass1_goes_to_back_and_pass2_leaves():
    queue = _queue(3)
    first = advance(queue, initial_progress(queue), True)
    assert [entry.item_id for entry in first.queue] == [2, 3, 1]
    assert first.new_status == PASS1

    progress = dict(first.progress)
    progress[2] = WordProgress(status=PASS1, session_passes=1)
    second = advance(first.queue, progress, True)
    assert [entry.item_id for entry in second.queue] == [3, 1]
    assert second.progress[2].status == PASS2


def test_advance_does_not_mutate_inputs():
    queue = _queue(4)
    progress = initial_progress(queue)
    advance(queue, progress, False)
    assert [entry.item_id for entry in queue] == [1, 2, 3, 4]
    assert all(entry.status == UNTOUCHED for entry in progress.values())


def test_advance_on_empty_queue_is_a_no_op():
    result = advance([], {}, True)
    assert result.queue == []
    assert result.item_id is None


def test_five_word_session_end_to_end():
    words = [_word(i) for i in range(1, 6)]
    config = StudyConfig(table_ids=[1], words=words, relation_ids=[1], modes=[QuizMode.TYPING])
    queue = build_queue(config, [_relation()], random.Random(7))
    progress = initial_progress(queue)
    assert len(queue) == 5

    missed = queue[0].item_id
    result = advance(queue, progress, False)
    assert result.queue[2].item_id == missed
    queue, progress = result.queue, result.progress

    steps = 0
    while queue:
        result = advance(queue, progress, True)
        queue, progress = result.queue, result.progress
        steps += 1
    assert steps == 10
    assert is_complete(queue, progress)
    assert progress[missed] == WordProgress(status=PASS2, session_fails=1, session_passes=2)
    assert status_counts(progress) == {UNTOUCHED: 0, FAIL: 0, PASS1: 0, PASS2: 5}


def test_queue_terminates_after_long_failure_streak():
    queue = _queue(120)
    progress = initial_progress(queue)
    for _ in range(600):
        result = advance(queue, progress, False)
        queue, progress = result.queue, result.progress
    assert len(queue) == 120
    assert not is_complete(queue, progress)

    steps = 0
    while queue:
        result = advance(queue, progress, True)
        queue, progress = result.queue, result.progress
        steps += 1
    assert steps == 240
    assert is_complete(queue, progress)


def test_queue_terminates_with_random_answers():
    rng = random.Random(1234)
    queue = _queue(150)
    progress = initial_progress(queue)
    steps = 0
    while queue and steps < 100000:
        result = advance(queue, progress, rng.random() < 0.6)
        queue, progress = result.queue, result.progress
        steps += 1
    assert queue == []
    assert is_complete(queue, progress)


def test_every_selected_relation_gets_a_word():
    words = [_word(i) for i in range(1, 6)]
    relations = [_relation(1, answer="meaning"), _relation(2, answer="example")]
    config = StudyConfig(table_ids=[1], words=words, relation_ids=[1, 2], modes=[QuizMode.TYPING])
    for seed in range(20):
        queue = build_queue(config, relations, random.Random(seed))
        assert len(queue) == 5
        assert {entry.relation.id for entry in queue} == {1, 2}


def test_words_without_a_relation_are_dropped():
    words = [_word(1), _word(2), _word(3, table_id=2)]
    config = StudyConfig(table_ids=[1, 2], words=words, relation_ids=[1], modes=[QuizMode.TYPING])
    queue = build_queue(config, [_relation()], random.Random(3))
    assert sorted(entry.item_id for entry in queue) == [1, 2]
    progress = initial_progress(queue)
    assert 3 not in progress

    while queue:
        result = advance(queue, progress, True)
        queue, progress = result.queue, result.progress
    assert is_complete(queue, progress)


def test_mode_filter_drops_relations_without_enabled_modes():
    words = [_word(1), _word(2)]
    relation = _relation(modes=(QuizMode.MULTIPLE_CHOICE,))
    config = StudyConfig(table_ids=[1], words=words, relation_ids=[1], modes=[QuizMode.TYPING])
    assert build_queue(config, [relation], random.Random(0)) == []


def test_random_relation_reroll_keeps_item_and_uses_table_relation():
    relations = [_relation(1, answer="meaning"), _relation(2, answer="example"), _relation(3, table_id=2)]
    reroll = rerolling(relations, [QuizMode.TYPING], random.Random(5))
    entry = QueueItem(_word(1), relations[0], QuizMode.TYPING)
    for _ in range(20):
        rerolled = reroll(entry)
        assert rerolled.item_id == 1
        assert rerolled.relation.table_id == 1
        assert rerolled.mode == QuizMode.TYPING
