import json
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from db.database import get_db
from db.stores import SqliteItemStore, get_table
from models.item import KEYWORD_COLUMN
from models.relation import Relation, RelationCreate

router = APIRouter()


@router.post("/", response_model=Relation, status_code=status.HTTP_201_CREATED)
async def create_relation(payload: RelationCreate, conn = Depends(get_db)):
    """Create a question/answer column mapping for a table."""
    table = get_table(conn, payload.table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    known = {KEYWORD_COLUMN} | {column.name for column in table.columns}
    unknown = sorted(set(payload.question_cols + payload.answer_cols) - known)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown column(s): {', '.join(unknown)}")
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO relations (table_id, name, question_cols, answer_cols, modes)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            payload.table_id,
            payload.name.strip(),
            json.dumps(payload.question_cols, ensure_ascii=False),
            json.dumps(payload.answer_cols, ensure_ascii=False),
            json.dumps([mode.value for mode in payload.modes]),
        ),
    )
    relation_id = cursor.lastrowid
    conn.commit()
    return Relation(id=relation_id, **payload.model_dump())


@router.get("/", response_model=List[Relation])
async def list_relations(
    table_id: Optional[List[int]] = Query(default=None),
    conn = Depends(get_db),
):
    return SqliteItemStore(conn).list_relations(table_id)


@router.delete("/{relation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relation(relation_id: int, conn = Depends(get_db)):
    cursor = conn.cursor()
    cursor.execute("DELETE FROM relations WHERE id = ?", (relation_id,))
    if cursor.rowcount == 0:
        raise HTTPException(status_code=404, detail="Relation not found")
    conn.commit()
