from __future__ import annotations

import re
from typing import Dict, Iterable, List


_TAG_SPLIT_RE = re.compile(r"[,\n]+")


def parse_tag_names(raw) -> List[str]:
    """Normalize a comma/newline separated string (or a list) into unique lowercase tags."""
    if not raw:
        return []
    parts = _TAG_SPLIT_RE.split(raw) if isinstance(raw, str) else list(raw)
    seen = set()
    tags: List[str] = []
    for part in parts:
        name = part.strip()
        if not name:
            continue
        normalized = name.lower()
        if normalized in seen:
            continue
        seen.add(normalized)
        tags.append(normalized)
    return tags


def upsert_tags(conn, tag_names: Iterable[str]) -> List[int]:
    names = list(tag_names)
    if not names:
        return []
    cursor = conn.cursor()
    cursor.executemany(
        "INSERT OR IGNORE INTO tags (name) VALUES (?)",
        [(name,) for name in names],
    )
    placeholders = ",".join("?" for _ in names)
    cursor.execute(
        f"SELECT id, name FROM tags WHERE name IN ({placeholders})",
        names,
    )
    id_map = {row["name"]: row["id"] for row in cursor.fetchall()}
    return [id_map[name] for name in names if name in id_map]


def set_item_tags(conn, item_id: int, tag_names: Iterable[str]) -> None:
    cursor = conn.cursor()
    cursor.execute("DELETE FROM item_tags WHERE item_id = ?", (item_id,))
    add_item_tags(conn, [item_id], tag_names)


def add_item_tags(conn, item_ids: Iterable[int], tag_names: Iterable[str]) -> None:
    """Bulk-tag items, keeping the tags they already have."""
    item_ids = list(item_ids)
    tag_ids = upsert_tags(conn, parse_tag_names(list(tag_names)))
    if not tag_ids or not item_ids:
        return
    conn.cursor().executemany(
        "INSERT OR IGNORE INTO item_tags (item_id, tag_id) VALUES (?, ?)",
        [(item_id, tag_id) for item_id in item_ids for tag_id in tag_ids],
    )


def get_item_tags(conn, item_ids: Iterable[int]) -> Dict[int, List[str]]:
    item_ids = list(item_ids)
    tags: Dict[int, List[str]] = {item_id: [] for item_id in item_ids}
    if not item_ids:
        return tags
    placeholders = ",".join("?" for _ in item_ids)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT it.item_id, t.name
        FROM item_tags it
        JOIN tags t ON t.id = it.tag_id
        WHERE it.item_id IN ({placeholders})
        ORDER BY t.name
        """,
        item_ids,
    )
    for row in cursor.fetchall():
        tags[row["item_id"]].append(row["name"])
    return tags
