from typing import List

from fastapi import APIRouter, Depends, Query

from db.database import get_db
from db.stores import SqliteProgressionStore
from models.session import SessionRecord

router = APIRouter()


@router.get("/", response_model=List[SessionRecord])
async def session_history(limit: int = Query(default=100, ge=1, le=1000), conn = Depends(get_db)):
    """Committed study sessions, newest first."""
    return SqliteProgressionStore(conn).list_session_records(limit)
