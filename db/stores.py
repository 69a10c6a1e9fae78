"""SQLite implementations of the item and progression stores.

Writes never commit on their own; callers commit (or wrap the work in
``db.database.transaction``) so a session commit lands atomically.
"""
import json
import sqlite3
from typing import Iterable, List, Optional

from models.item import ColumnDef, VocabTable, VocabularyItem
from models.relation import Relation
from models.session import GlobalStats, RewardEvent, SessionRecord
from models.stats import Stats
from utils.tags import get_item_tags

STATS_COLUMNS = (
    "passed1",
    "passed2",
    "failed",
    "total_attempts",
    "success_rate",
    "failure_rate",
    "rank_point",
    "level",
    "in_queue_count",
    "quit_flag",
    "last_practiced_at",
    "flashcard_status",
)


def _placeholders(values: List) -> str:
    return ",".join("?" for _ in values)


def row_to_stats(row: sqlite3.Row) -> Stats:
    data = {column: row[column] for column in STATS_COLUMNS}
    data["quit_flag"] = bool(data["quit_flag"])
    return Stats(**data)


def stats_params(stats: Stats) -> tuple:
    values = stats.model_dump(mode="json")
    values["quit_flag"] = 1 if stats.quit_flag else 0
    return tuple(values[column] for column in STATS_COLUMNS)


def row_to_item(row: sqlite3.Row, tags: Optional[List[str]] = None) -> VocabularyItem:
    return VocabularyItem(
        id=row["id"],
        table_id=row["table_id"],
        keyword=row["keyword"],
        data=json.loads(row["data"] or "{}"),
        tags=tags or [],
        stats=row_to_stats(row),
    )


def row_to_relation(row: sqlite3.Row) -> Relation:
    return Relation(
        id=row["id"],
        table_id=row["table_id"],
        name=row["name"],
        question_cols=json.loads(row["question_cols"]),
        answer_cols=json.loads(row["answer_cols"]),
        modes=json.loads(row["modes"]),
    )


def get_table(conn, table_id: int) -> Optional[VocabTable]:
    cursor = conn.cursor()
    cursor.execute("SELECT id, name FROM vocab_tables WHERE id = ?", (table_id,))
    row = cursor.fetchone()
    if not row:
        return None
    cursor.execute(
        "SELECT name, type FROM table_columns WHERE table_id = ? ORDER BY position, name",
        (table_id,),
    )
    columns = [ColumnDef(name=col["name"], type=col["type"]) for col in cursor.fetchall()]
    return VocabTable(id=row["id"], name=row["name"], columns=columns)


def list_tables(conn) -> List[VocabTable]:
    cursor = conn.cursor()
    cursor.execute("SELECT id FROM vocab_tables ORDER BY name")
    return [get_table(conn, row["id"]) for row in cursor.fetchall()]


def table_names(conn, table_ids: Iterable[int]) -> List[str]:
    table_ids = list(table_ids)
    if not table_ids:
        return []
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT id, name FROM vocab_tables WHERE id IN ({_placeholders(table_ids)})",
        table_ids,
    )
    names = {row["id"]: row["name"] for row in cursor.fetchall()}
    return [names[table_id] for table_id in table_ids if table_id in names]


def insert_table(conn, name: str, columns: List[ColumnDef]) -> int:
    cursor = conn.cursor()
    cursor.execute("INSERT INTO vocab_tables (name) VALUES (?)", (name,))
    table_id = cursor.lastrowid
    cursor.executemany(
        "INSERT INTO table_columns (table_id, name, type, position) VALUES (?, ?, ?, ?)",
        [(table_id, col.name, col.type.value, position) for position, col in enumerate(columns)],
    )
    return table_id


def get_item(conn, item_id: int) -> Optional[VocabularyItem]:
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM items WHERE id = ?", (item_id,))
    row = cursor.fetchone()
    if not row:
        return None
    return row_to_item(row, get_item_tags(conn, [item_id])[item_id])


def insert_item(conn, table_id: int, keyword: str, data: dict, stats: Optional[Stats] = None) -> int:
    stats = stats or Stats()
    cursor = conn.cursor()
    cursor.execute(
        f"""
        INSERT INTO items (table_id, keyword, data, {", ".join(STATS_COLUMNS)})
        VALUES (?, ?, ?, {_placeholders(list(STATS_COLUMNS))})
        """,
        (table_id, keyword, json.dumps(data, ensure_ascii=False)) + stats_params(stats),
    )
    return cursor.lastrowid


def keyword_exists(conn, table_id: int, keyword: str, exclude_item_id: Optional[int] = None) -> bool:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT id FROM items WHERE table_id = ? AND keyword = ? COLLATE NOCASE AND id != ?",
        (table_id, keyword.strip(), exclude_item_id or -1),
    )
    return cursor.fetchone() is not None


class SqliteItemStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_items(
        self,
        table_ids: Optional[Iterable[int]] = None,
        item_ids: Optional[Iterable[int]] = None,
    ) -> List[VocabularyItem]:
        filters = []
        params: List[object] = []
        if table_ids is not None:
            table_ids = list(table_ids)
            if not table_ids:
                return []
            filters.append(f"table_id IN ({_placeholders(table_ids)})")
            params.extend(table_ids)
        if item_ids is not None:
            item_ids = list(item_ids)
            if not item_ids:
                return []
            filters.append(f"id IN ({_placeholders(item_ids)})")
            params.extend(item_ids)
        where_clause = f"WHERE {' AND '.join(filters)}" if filters else ""
        cursor = self.conn.cursor()
        cursor.execute(f"SELECT * FROM items {where_clause} ORDER BY table_id, id", params)
        rows = cursor.fetchall()
        tags = get_item_tags(self.conn, [row["id"] for row in rows])
        return [row_to_item(row, tags[row["id"]]) for row in rows]

    def update_stats(self, item_id: int, stats: Stats) -> None:
        assignments = ", ".join(f"{column} = ?" for column in STATS_COLUMNS)
        self.conn.execute(
            f"UPDATE items SET {assignments} WHERE id = ?",
            stats_params(stats) + (item_id,),
        )

    def list_relations(self, table_ids: Optional[Iterable[int]] = None) -> List[Relation]:
        cursor = self.conn.cursor()
        if table_ids is None:
            cursor.execute("SELECT * FROM relations ORDER BY id")
        else:
            table_ids = list(table_ids)
            if not table_ids:
                return []
            cursor.execute(
                f"SELECT * FROM relations WHERE table_id IN ({_placeholders(table_ids)}) ORDER BY id",
                table_ids,
            )
        return [row_to_relation(row) for row in cursor.fetchall()]


class SqliteProgressionStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_global_stats(self) -> GlobalStats:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT xp, completed_session_count, abandoned_session_count, highest_milestone_index
            FROM global_stats WHERE id = 1
            """
        )
        row = cursor.fetchone()
        if not row:
            return GlobalStats()
        return GlobalStats(**dict(row))

    def set_global_stats(self, stats: GlobalStats) -> None:
        self.conn.execute(
            """
            INSERT INTO global_stats (id, xp, completed_session_count, abandoned_session_count, highest_milestone_index)
            VALUES (1, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                xp = excluded.xp,
                completed_session_count = excluded.completed_session_count,
                abandoned_session_count = excluded.abandoned_session_count,
                highest_milestone_index = excluded.highest_milestone_index
            """,
            (
                stats.xp,
                stats.completed_session_count,
                stats.abandoned_session_count,
                stats.highest_milestone_index,
            ),
        )

    def append_session_record(self, record: SessionRecord) -> None:
        data = record.model_dump(mode="json")
        self.conn.execute(
            """
            INSERT OR IGNORE INTO study_sessions (id, created_at, status, table_ids, table_names, modes, word_count)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data["id"],
                data["created_at"],
                data["status"],
                json.dumps(data["table_ids"]),
                json.dumps(data["table_names"], ensure_ascii=False),
                json.dumps(data["modes"]),
                data["word_count"],
            ),
        )

    def append_reward_event(self, event: RewardEvent) -> None:
        self.conn.execute(
            "INSERT INTO reward_events (ts, type, description, xp_delta) VALUES (?, ?, ?, ?)",
            (event.timestamp, event.type.value, event.description, event.xp_delta),
        )

    def list_session_records(self, limit: int = 100) -> List[SessionRecord]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM study_sessions ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        )
        return [
            SessionRecord(
                id=row["id"],
                created_at=row["created_at"],
                status=row["status"],
                table_ids=json.loads(row["table_ids"]),
                table_names=json.loads(row["table_names"]),
                modes=json.loads(row["modes"]),
                word_count=row["word_count"],
            )
            for row in cursor.fetchall()
        ]

    def list_reward_events(self, limit: int = 100) -> List[RewardEvent]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT ts, type, description, xp_delta FROM reward_events ORDER BY id DESC LIMIT ?",
            (limit,),
        )
        return [
            RewardEvent(
                timestamp=row["ts"],
                type=row["type"],
                description=row["description"],
                xp_delta=row["xp_delta"],
            )
            for row in cursor.fetchall()
        ]
