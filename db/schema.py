# SQL schema for VocabQuest database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Vocabulary tables (user-defined word lists)
CREATE TABLE IF NOT EXISTS vocab_tables (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Column schema per table (keyword is implicit)
CREATE TABLE IF NOT EXISTS table_columns (
    table_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'text' CHECK(type IN ('text', 'image')),
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (table_id, name),
    FOREIGN KEY (table_id) REFERENCES vocab_tables (id) ON DELETE CASCADE
);

-- Vocabulary items; data is a JSON object of column -> value
CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    table_id INTEGER NOT NULL,
    keyword TEXT NOT NULL COLLATE NOCASE,
    data TEXT NOT NULL DEFAULT '{}',
    passed1 INTEGER NOT NULL DEFAULT 0,
    passed2 INTEGER NOT NULL DEFAULT 0,
    failed INTEGER NOT NULL DEFAULT 0,
    total_attempts INTEGER NOT NULL DEFAULT 0,
    success_rate REAL NOT NULL DEFAULT 1.0,
    failure_rate REAL NOT NULL DEFAULT 0.0,
    rank_point INTEGER NOT NULL DEFAULT 0,
    level INTEGER NOT NULL DEFAULT 1 CHECK(level BETWEEN 1 AND 6),
    in_queue_count INTEGER NOT NULL DEFAULT 0,
    quit_flag INTEGER NOT NULL DEFAULT 0,
    last_practiced_at TEXT,
    flashcard_status TEXT NOT NULL DEFAULT 'None' CHECK(flashcard_status IN ('None', 'Hard', 'Good', 'Easy')),
    FOREIGN KEY (table_id) REFERENCES vocab_tables (id) ON DELETE CASCADE
);

-- Question/answer column mappings
CREATE TABLE IF NOT EXISTS relations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    table_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    question_cols TEXT NOT NULL,
    answer_cols TEXT NOT NULL,
    modes TEXT NOT NULL,
    FOREIGN KEY (table_id) REFERENCES vocab_tables (id) ON DELETE CASCADE
);

-- Tags
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS item_tags (
    item_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (item_id, tag_id),
    FOREIGN KEY (item_id) REFERENCES items (id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags (id) ON DELETE CASCADE
);

-- Single-row global progression
CREATE TABLE IF NOT EXISTS global_stats (
    id INTEGER PRIMARY KEY CHECK(id = 1),
    xp INTEGER NOT NULL DEFAULT 0,
    completed_session_count INTEGER NOT NULL DEFAULT 0,
    abandoned_session_count INTEGER NOT NULL DEFAULT 0,
    highest_milestone_index INTEGER NOT NULL DEFAULT -1
);

-- Session history, keyed by session id so a retried commit cannot duplicate it
CREATE TABLE IF NOT EXISTS study_sessions (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    status TEXT NOT NULL CHECK(status IN ('completed', 'quit')),
    table_ids TEXT NOT NULL DEFAULT '[]',
    table_names TEXT NOT NULL DEFAULT '[]',
    modes TEXT NOT NULL DEFAULT '[]',
    word_count INTEGER NOT NULL DEFAULT 0
);

-- Reward/audit log
CREATE TABLE IF NOT EXISTS reward_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ts TEXT NOT NULL,
    type TEXT NOT NULL CHECK(type IN ('milestone_unlocked', 'session_complete', 'session_quit')),
    description TEXT NOT NULL,
    xp_delta INTEGER NOT NULL DEFAULT 0
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_items_table_keyword ON items (table_id, keyword COLLATE NOCASE);
CREATE INDEX IF NOT EXISTS idx_items_table ON items (table_id);
CREATE INDEX IF NOT EXISTS idx_relations_table ON relations (table_id);
CREATE INDEX IF NOT EXISTS idx_table_columns_table ON table_columns (table_id, position);
CREATE INDEX IF NOT EXISTS idx_tags_name ON tags (name);
CREATE INDEX IF NOT EXISTS idx_item_tags_item ON item_tags (item_id);
CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags (tag_id);
CREATE INDEX IF NOT EXISTS idx_study_sessions_created ON study_sessions (created_at);
CREATE INDEX IF NOT EXISTS idx_reward_events_ts ON reward_events (ts);
"""
