"""Database schema creation and versioning.

All CREATE TABLE statements for uploaded transcripts.
Uses IF NOT EXISTS for idempotent runs.
"""
from __future__ import annotations

import logging

import aiosqlite

logger = logging.getLogger("vibedash.db")

SCHEMA_VERSION = 1

_TABLES = """
-- ── Schema version tracking ────────────────────────────────────────
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied   TEXT NOT NULL DEFAULT (datetime('now'))
);

-- ── 1. Projects (one per uploader working directory) ───────────────
CREATE TABLE IF NOT EXISTS projects (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    folder_path  TEXT NOT NULL UNIQUE,
    created_at   TEXT NOT NULL
);

-- ── 2. Transcript files and their processing checkpoint ────────────
CREATE TABLE IF NOT EXISTS transcript_files (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id         INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    session_name       TEXT NOT NULL,
    file_name          TEXT NOT NULL,
    file_path          TEXT DEFAULT '',
    file_size          INTEGER DEFAULT 0,
    processing_status  TEXT NOT NULL DEFAULT 'pending',
    processing_error   TEXT,
    processed_lines    INTEGER NOT NULL DEFAULT 0,
    uploaded_at        TEXT NOT NULL,
    updated_at         TEXT NOT NULL,
    UNIQUE (project_id, session_name)
);

CREATE INDEX IF NOT EXISTS idx_transcript_files_project ON transcript_files(project_id, updated_at DESC);
CREATE INDEX IF NOT EXISTS idx_transcript_files_status  ON transcript_files(processing_status);

-- ── 3. Classified transcript lines ─────────────────────────────────
CREATE TABLE IF NOT EXISTS transcript_lines (
    file_id            INTEGER NOT NULL REFERENCES transcript_files(id) ON DELETE CASCADE,
    line_number        INTEGER NOT NULL,
    raw_text           TEXT NOT NULL,
    role               TEXT NOT NULL,
    entry_type         TEXT DEFAULT '',
    category           TEXT NOT NULL,
    message_timestamp  TEXT,
    is_sidechain       INTEGER NOT NULL DEFAULT 0,
    subagent_label     TEXT,
    search_text        TEXT DEFAULT '',  -- lowercased
    record_json        TEXT NOT NULL,
    PRIMARY KEY (file_id, line_number)
);

CREATE INDEX IF NOT EXISTS idx_lines_category ON transcript_lines(file_id, category);
CREATE INDEX IF NOT EXISTS idx_lines_subagent ON transcript_lines(file_id, is_sidechain, subagent_label);
"""


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Create all tables. Idempotent."""
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cur:
            row = await cur.fetchone()
            current_version = row[0] if row and row[0] else 0
    except Exception:
        current_version = 0

    if current_version >= SCHEMA_VERSION:
        logger.info("Schema is up to date (version %s)", current_version)
        return

    logger.info("Running migrations: %s → %s", current_version, SCHEMA_VERSION)

    await db.executescript(_TABLES)

    await db.execute(
        "INSERT INTO schema_version (version) VALUES (?)",
        (SCHEMA_VERSION,),
    )
    await db.commit()
    logger.info("Migrations complete, schema version %s", SCHEMA_VERSION)
