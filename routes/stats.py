from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from db.database import get_db
from db.stores import SqliteItemStore, list_tables
from utils.stats import rank_by_priority

router = APIRouter()


@router.get("/")
async def overview(
    table_id: Optional[List[int]] = Query(default=None),
    top: int = Query(default=10, ge=1, le=100),
    conn = Depends(get_db),
):
    """Per-table learning stats plus the words most in need of practice."""
    tables = list_tables(conn)
    if table_id:
        tables = [table for table in tables if table.id in table_id]
    names = {table.id: table.name for table in tables}
    items = SqliteItemStore(conn).list_items(list(names)) if names else []

    table_stats = []
    for table in tables:
        words = [item for item in items if item.table_id == table.id]
        count = len(words)
        table_stats.append({
            "table_id": table.id,
            "name": table.name,
            "word_count": count,
            "mastered_total": sum(item.stats.passed2 for item in words),
            "quit_flagged": sum(1 for item in words if item.stats.quit_flag),
            "avg_rank_point": round(sum(item.stats.rank_point for item in words) / count, 2) if count else 0,
            "avg_failure_rate": round(sum(item.stats.failure_rate for item in words) / count, 4) if count else 0,
        })

    top_words = [
        {
            "id": item.id,
            "table_id": item.table_id,
            "table_name": names[item.table_id],
            "keyword": item.keyword,
            "priority_score": score,
            "level": item.stats.level,
        }
        for item, score in rank_by_priority(items)[:top]
    ]
    return {"tables": table_stats, "top_priority": top_words}
