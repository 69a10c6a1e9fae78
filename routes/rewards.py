from fastapi import APIRouter, Depends, Query

from db.database import get_db
from db.stores import SqliteProgressionStore
from utils.milestones import MilestoneEvaluator

router = APIRouter()


@router.get("/")
async def rewards(limit: int = Query(default=50, ge=1, le=500), conn = Depends(get_db)):
    """XP, milestone ladder position and the latest reward events."""
    store = SqliteProgressionStore(conn)
    stats = store.get_global_stats()
    summary = MilestoneEvaluator().summary(stats.xp, stats.highest_milestone_index)
    summary["global_stats"] = stats.model_dump()
    summary["events"] = [event.model_dump(mode="json") for event in store.list_reward_events(limit)]
    return summary
