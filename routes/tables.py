import json
import sqlite3
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from db.database import get_db
from db.stores import (
    SqliteItemStore,
    get_item,
    get_table,
    insert_item,
    insert_table,
    keyword_exists,
    list_tables,
)
from models.item import (
    ColumnDef,
    ItemWithPriority,
    VocabTable,
    VocabTableCreate,
    VocabularyItem,
    VocabularyItemCreate,
    validate_item_data,
)
from utils.stats import recompute_stats, score_items
from utils.tags import add_item_tags, parse_tag_names, set_item_tags

router = APIRouter()


def _require_table(conn, table_id: int) -> VocabTable:
    table = get_table(conn, table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


def _require_item(conn, table_id: int, item_id: int) -> VocabularyItem:
    item = get_item(conn, item_id)
    if not item or item.table_id != table_id:
        raise HTTPException(status_code=404, detail="Word not found")
    return item


@router.post("/", response_model=VocabTable, status_code=status.HTTP_201_CREATED)
async def create_table(payload: VocabTableCreate, conn = Depends(get_db)):
    """Create a vocabulary table with its column schema."""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        table_id = insert_table(conn, name, payload.columns)
        conn.commit()
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail="Table with this name already exists")
    return get_table(conn, table_id)


@router.get("/", response_model=List[VocabTable])
async def get_tables(conn = Depends(get_db)):
    return list_tables(conn)


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(table_id: int, conn = Depends(get_db)):
    _require_table(conn, table_id)
    conn.execute("DELETE FROM vocab_tables WHERE id = ?", (table_id,))
    conn.commit()


@router.post("/{table_id}/columns", response_model=VocabTable)
async def add_column(table_id: int, column: ColumnDef, conn = Depends(get_db)):
    """Add a column; existing words get an empty value for it."""
    table = _require_table(conn, table_id)
    if any(existing.name == column.name for existing in table.columns):
        raise HTTPException(status_code=409, detail="Column already exists")
    conn.execute(
        "INSERT INTO table_columns (table_id, name, type, position) VALUES (?, ?, ?, ?)",
        (table_id, column.name, column.type.value, len(table.columns)),
    )
    for item in SqliteItemStore(conn).list_items([table_id]):
        data = dict(item.data)
        data[column.name] = ""
        conn.execute("UPDATE items SET data = ? WHERE id = ?", (json.dumps(data, ensure_ascii=False), item.id))
    conn.commit()
    return get_table(conn, table_id)


@router.patch("/{table_id}/columns/{column_name}", response_model=VocabTable)
async def rename_column(
    table_id: int,
    column_name: str,
    new_name: str = Body(..., embed=True),
    conn = Depends(get_db),
):
    table = _require_table(conn, table_id)
    try:
        renamed = ColumnDef(name=new_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    names = [column.name for column in table.columns]
    if column_name not in names:
        raise HTTPException(status_code=404, detail="Column not found")
    if renamed.name in names:
        raise HTTPException(status_code=409, detail="Column already exists")
    store = SqliteItemStore(conn)
    conn.execute(
        "UPDATE table_columns SET name = ? WHERE table_id = ? AND name = ?",
        (renamed.name, table_id, column_name),
    )
    for relation in store.list_relations([table_id]):
        question_cols = [renamed.name if col == column_name else col for col in relation.question_cols]
        answer_cols = [renamed.name if col == column_name else col for col in relation.answer_cols]
        conn.execute(
            "UPDATE relations SET question_cols = ?, answer_cols = ? WHERE id = ?",
            (json.dumps(question_cols, ensure_ascii=False), json.dumps(answer_cols, ensure_ascii=False), relation.id),
        )
    for item in store.list_items([table_id]):
        data = {renamed.name if key == column_name else key: value for key, value in item.data.items()}
        conn.execute("UPDATE items SET data = ? WHERE id = ?", (json.dumps(data, ensure_ascii=False), item.id))
    conn.commit()
    return get_table(conn, table_id)


@router.delete("/{table_id}/columns/{column_name}", response_model=VocabTable)
async def remove_column(table_id: int, column_name: str, conn = Depends(get_db)):
    table = _require_table(conn, table_id)
    if column_name not in [column.name for column in table.columns]:
        raise HTTPException(status_code=404, detail="Column not found")
    used_by = [
        relation.name
        for relation in SqliteItemStore(conn).list_relations([table_id])
        if column_name in relation.question_cols + relation.answer_cols
    ]
    if used_by:
        raise HTTPException(
            status_code=409,
            detail=f"Column is used by relation(s): {', '.join(used_by)}",
        )
    conn.execute(
        "DELETE FROM table_columns WHERE table_id = ? AND name = ?",
        (table_id, column_name),
    )
    for item in SqliteItemStore(conn).list_items([table_id]):
        data = {key: value for key, value in item.data.items() if key != column_name}
        conn.execute("UPDATE items SET data = ? WHERE id = ?", (json.dumps(data, ensure_ascii=False), item.id))
    conn.commit()
    return get_table(conn, table_id)


@router.get("/{table_id}/items", response_model=List[ItemWithPriority])
async def list_items(
    table_id: int,
    tag: List[str] = Query(default=[]),
    conn = Depends(get_db),
):
    """Words of a table with their priority score, most urgent first."""
    table = _require_table(conn, table_id)
    items = SqliteItemStore(conn).list_items([table_id])
    wanted = set(parse_tag_names(tag))
    scored = [
        ItemWithPriority(**item.model_dump(), priority_score=score, table_name=table.name)
        for item, score in score_items(items)
        if wanted <= set(item.tags)
    ]
    return sorted(scored, key=lambda entry: entry.priority_score, reverse=True)


@router.post("/{table_id}/items", response_model=VocabularyItem, status_code=status.HTTP_201_CREATED)
async def add_item(table_id: int, payload: VocabularyItemCreate, conn = Depends(get_db)):
    table = _require_table(conn, table_id)
    try:
        data = validate_item_data(payload.data, table.columns)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if keyword_exists(conn, table_id, payload.keyword):
        raise HTTPException(status_code=409, detail=f'The keyword "{payload.keyword}" already exists in this table')
    try:
        item_id = insert_item(conn, table_id, payload.keyword, data, recompute_stats())
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail=f'The keyword "{payload.keyword}" already exists in this table')
    set_item_tags(conn, item_id, parse_tag_names(payload.tags))
    conn.commit()
    return get_item(conn, item_id)


@router.put("/{table_id}/items/{item_id}", response_model=VocabularyItem)
async def update_item(table_id: int, item_id: int, payload: VocabularyItemCreate, conn = Depends(get_db)):
    """Edit keyword, attributes and tags; stats are left alone."""
    table = _require_table(conn, table_id)
    _require_item(conn, table_id, item_id)
    try:
        data = validate_item_data(payload.data, table.columns)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if keyword_exists(conn, table_id, payload.keyword, exclude_item_id=item_id):
        raise HTTPException(status_code=409, detail=f'The keyword "{payload.keyword}" already exists in this table')
    conn.execute(
        "UPDATE items SET keyword = ?, data = ? WHERE id = ?",
        (payload.keyword, json.dumps(data, ensure_ascii=False), item_id),
    )
    set_item_tags(conn, item_id, parse_tag_names(payload.tags))
    conn.commit()
    return get_item(conn, item_id)


@router.delete("/{table_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(table_id: int, item_id: int, conn = Depends(get_db)):
    _require_item(conn, table_id, item_id)
    conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
    conn.commit()


@router.post("/{table_id}/items/{item_id}/reset", response_model=VocabularyItem)
async def reset_item_stats(table_id: int, item_id: int, conn = Depends(get_db)):
    """Wipe a word's learning history back to a fresh stats block."""
    _require_item(conn, table_id, item_id)
    SqliteItemStore(conn).update_stats(item_id, recompute_stats())
    conn.commit()
    return get_item(conn, item_id)


@router.post("/{table_id}/tags")
async def bulk_tag(
    table_id: int,
    item_ids: List[int] = Body(...),
    tags: List[str] = Body(...),
    conn = Depends(get_db),
):
    _require_table(conn, table_id)
    owned = {item.id for item in SqliteItemStore(conn).list_items([table_id], item_ids)}
    missing = sorted(set(item_ids) - owned)
    if missing:
        raise HTTPException(status_code=404, detail=f"Words not in table: {missing}")
    add_item_tags(conn, item_ids, tags)
    conn.commit()
    return {"tagged": len(owned), "tags": parse_tag_names(tags)}
