import random
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from config import load_config
from db.database import get_db, transaction
from db.stores import SqliteItemStore, SqliteProgressionStore, table_names
from models.session import AnswerSubmit, StudyConfig, StudyStart, WordSelect
from utils.commit import CommitResult
from utils.logging_util import setup_logger
from utils.selection import filter_by_tags, select_words
from utils.session import StudySession
from utils.stats import score_items

logger = setup_logger(__name__)

router = APIRouter()

# Live sessions by id; at most one of them is uncommitted at a time.
SESSIONS: Dict[str, StudySession] = {}


def _require_session(session_id: str) -> StudySession:
    session = SESSIONS.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _commit_service(conn, session: StudySession, config: dict):
    session_cfg = config["session"]
    return session.commit_service(
        SqliteItemStore(conn),
        SqliteProgressionStore(conn),
        completion_base_xp=session_cfg["completion_xp"],
        mastered_word_xp=session_cfg["mastered_word_xp"],
        quit_penalty=session_cfg["quit_penalty"],
        table_names=table_names(conn, session.config.table_ids),
        transaction=lambda: transaction(conn),
    )


def _commit_payload(result: Optional[CommitResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "status": result.status.value,
        "xp_delta": result.xp_delta,
        "global_stats": result.global_stats.model_dump(),
        "events": [event.model_dump(mode="json") for event in result.events],
    }


def _session_payload(session: StudySession) -> dict:
    question = session.current_question()
    payload = session.summary()
    payload["question"] = question.to_dict() if question else None
    return payload


def _abandon_active(conn, config: dict) -> None:
    """Quit whatever session is still open before a new one starts."""
    for session in list(SESSIONS.values()):
        if session.guard.state is None:
            logger.info(f"Abandoning open session {session.id}")
            _commit_service(conn, session, config).on_quit(session.progress)
        SESSIONS.pop(session.id, None)


@router.post("/select")
async def select_study_words(payload: WordSelect, conn = Depends(get_db)):
    """Preview the words a selection would put into a session."""
    items = filter_by_tags(SqliteItemStore(conn).list_items(payload.table_ids), payload.tags)
    chosen = select_words(items, payload.sort_criteria, payload.word_count, random.Random(payload.seed))
    scores = {item.id: score for item, score in score_items(items)}
    return [
        {
            "id": item.id,
            "table_id": item.table_id,
            "keyword": item.keyword,
            "priority_score": scores[item.id],
            "rank_point": item.stats.rank_point,
            "quit_flag": item.stats.quit_flag,
        }
        for item in chosen
    ]


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def start_session(payload: StudyStart, conn = Depends(get_db)):
    """Build the practice queue and return the first question."""
    config = load_config()
    rng = random.Random(payload.seed)
    store = SqliteItemStore(conn)
    if payload.word_ids:
        words = store.list_items(payload.table_ids, payload.word_ids)
    elif payload.selection is not None:
        candidates = filter_by_tags(store.list_items(payload.table_ids), payload.selection.tags)
        words = select_words(
            candidates, payload.selection.sort_criteria, payload.selection.word_count, rng
        )
    else:
        raise HTTPException(status_code=400, detail="Provide word_ids or a selection")

    min_words = config["session"]["min_words"]
    if len(words) < min_words:
        raise HTTPException(status_code=400, detail=f"A session needs at least {min_words} words")

    study_config = StudyConfig(
        table_ids=payload.table_ids,
        words=words,
        relation_ids=payload.relation_ids,
        modes=payload.modes,
        use_random_relation=payload.use_random_relation,
    )
    session = StudySession(study_config, store.list_relations(payload.table_ids), rng)
    if not session.queue:
        raise HTTPException(status_code=400, detail="No selected relation can quiz these words")

    _abandon_active(conn, config)
    SESSIONS[session.id] = session
    logger.info(f"Session {session.id} started with {len(session.queue)} of {len(words)} words")
    return _session_payload(session)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    return _session_payload(_require_session(session_id))


@router.post("/sessions/{session_id}/answer")
async def answer(session_id: str, payload: AnswerSubmit, conn = Depends(get_db)):
    """Grade the current question, advance the queue and commit on completion."""
    config = load_config()
    session = _require_session(session_id)
    if session.guard.state is not None:
        raise HTTPException(status_code=409, detail=f"Session already {session.guard.state}")
    try:
        outcome = session.submit(
            user_text=payload.user_text,
            choice=payload.choice,
            verdict=payload.verdict,
            near_miss_threshold=config["grading"]["near_miss_threshold"],
        )
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    commit = None
    if session.complete:
        commit = _commit_payload(_commit_service(conn, session, config).on_completion(session.progress))
    return {
        "result": outcome,
        "feedback_delay_ms": config["session"]["feedback_delay_ms"],
        "session": _session_payload(session),
        "commit": commit,
    }


@router.post("/sessions/{session_id}/complete")
async def complete(session_id: str, conn = Depends(get_db)):
    """Retry a completion commit; a no-op once it has been written."""
    config = load_config()
    session = _require_session(session_id)
    if not session.complete:
        raise HTTPException(status_code=409, detail="Session is not finished")
    result = _commit_service(conn, session, config).on_completion(session.progress)
    return {"commit": _commit_payload(result), "committed": session.guard.state}


@router.post("/sessions/{session_id}/quit")
async def quit_session(session_id: str, conn = Depends(get_db)):
    """Abandon the session; safe to call more than once."""
    config = load_config()
    session = _require_session(session_id)
    result = _commit_service(conn, session, config).on_quit(session.progress)
    return {"commit": _commit_payload(result), "committed": session.guard.state}
