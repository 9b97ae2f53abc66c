"""SQLite storage for uploaded transcript files and their classified lines."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

import aiosqlite

from vibedash.transcripts.filters import RecordFilter, SidechainScope, searchable_text
from vibedash.transcripts.processor import ProcessingCheckpoint
from vibedash.transcripts.records import TranscriptRecord


class SqliteTranscriptRepository:
    """SQLite-backed project, transcript file and transcript line storage."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    # ── Projects ────────────────────────────────────────────────────

    async def get_or_create_project(self, name: str, folder_path: str) -> dict:
        async with self.db.execute(
            "SELECT * FROM projects WHERE folder_path = ?", (folder_path,)
        ) as cur:
            row = await cur.fetchone()
        if row:
            return dict(row)

        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            "INSERT INTO projects (name, folder_path, created_at) VALUES (?, ?, ?)",
            (name, folder_path, now),
        )
        await self.db.commit()
        async with self.db.execute(
            "SELECT * FROM projects WHERE folder_path = ?", (folder_path,)
        ) as cur:
            row = await cur.fetchone()
        return dict(row)

    # ── Transcript files ────────────────────────────────────────────

    async def get_or_create_file(
        self,
        project_id: int,
        session_name: str,
        file_name: str,
        file_path: str = "",
        file_size: int = 0,
    ) -> dict:
        """Return the file row for ``(project_id, session_name)``; size and name are refreshed."""
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """INSERT INTO transcript_files (
                project_id, session_name, file_name, file_path, file_size,
                processing_status, processed_lines, uploaded_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, 'pending', 0, ?, ?)
            ON CONFLICT(project_id, session_name) DO UPDATE SET
                file_name=excluded.file_name,
                file_path=excluded.file_path,
                file_size=excluded.file_size,
                updated_at=excluded.updated_at
            """,
            (project_id, session_name, file_name, file_path, file_size, now, now),
        )
        await self.db.commit()
        async with self.db.execute(
            "SELECT * FROM transcript_files WHERE project_id = ? AND session_name = ?",
            (project_id, session_name),
        ) as cur:
            row = await cur.fetchone()
        return dict(row)

    async def get_file(self, file_id: int) -> dict | None:
        async with self.db.execute(
            """SELECT f.*, p.name AS project_name, p.folder_path AS project_path
               FROM transcript_files f JOIN projects p ON p.id = f.project_id
               WHERE f.id = ?""",
            (file_id,),
        ) as cur:
            row = await cur.fetchone()
            return dict(row) if row else None

    async def list_files(self, offset: int, limit: int, project_id: int | None = None) -> list[dict]:
        query = """SELECT f.*, p.name AS project_name, p.folder_path AS project_path
                   FROM transcript_files f JOIN projects p ON p.id = f.project_id"""
        params: list[Any] = []
        if project_id is not None:
            query += " WHERE f.project_id = ?"
            params.append(project_id)
        query += " ORDER BY f.updated_at DESC, f.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
            return [dict(r) for r in rows]

    async def count_files(self, project_id: int | None = None) -> int:
        if project_id is not None:
            async with self.db.execute(
                "SELECT COUNT(*) FROM transcript_files WHERE project_id = ?", (project_id,)
            ) as cur:
                row = await cur.fetchone()
        else:
            async with self.db.execute("SELECT COUNT(*) FROM transcript_files") as cur:
                row = await cur.fetchone()
        return row[0] if row else 0

    async def set_status(self, file_id: int, status: str, error: str | None = None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """UPDATE transcript_files
               SET processing_status = ?, processing_error = ?, updated_at = ?
               WHERE id = ?""",
            (status, error, now, file_id),
        )
        await self.db.commit()

    # ── Checkpoint ──────────────────────────────────────────────────

    async def get_checkpoint(self, file_id: int) -> ProcessingCheckpoint:
        async with self.db.execute(
            "SELECT processed_lines FROM transcript_files WHERE id = ?", (file_id,)
        ) as cur:
            row = await cur.fetchone()
        count = int(row[0] or 0) if row else 0
        return ProcessingCheckpoint(existingLineCount=max(0, count))

    async def advance_checkpoint(self, file_id: int, processed_lines: int) -> ProcessingCheckpoint:
        """Raise the stored line count; a smaller value leaves it unchanged."""
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """UPDATE transcript_files
               SET processed_lines = MAX(processed_lines, ?), updated_at = ?
               WHERE id = ?""",
            (max(0, int(processed_lines)), now, file_id),
        )
        await self.db.commit()
        return await self.get_checkpoint(file_id)

    # ── Lines ───────────────────────────────────────────────────────

    async def insert_lines(self, file_id: int, records: Iterable[TranscriptRecord]) -> int:
        """Store records; lines already stored for the file are left untouched."""
        rows = [
            (
                file_id,
                record.sequenceNumber,
                record.rawText,
                record.role.value,
                record.entryType,
                record.category.value,
                record.timestampRaw,
                1 if record.isSidechain else 0,
                record.subagentLabel,
                searchable_text(record).lower(),
                record.model_dump_json(),
            )
            for record in records
        ]
        if not rows:
            return 0
        before = self.db.total_changes
        await self.db.executemany(
            """INSERT OR IGNORE INTO transcript_lines (
                file_id, line_number, raw_text, role, entry_type, category,
                message_timestamp, is_sidechain, subagent_label, search_text, record_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            rows,
        )
        await self.db.commit()
        return self.db.total_changes - before

    def _build_where_clause(self, file_id: int, record_filter: RecordFilter | None = None) -> tuple[str, list[Any]]:
        clauses = ["file_id = ?"]
        params: list[Any] = [file_id]
        if record_filter is None:
            return " AND ".join(clauses), params

        if record_filter.categories:
            values = sorted(category.value for category in record_filter.categories)
            clauses.append(f"category IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        if record_filter.scope == SidechainScope.MAIN_ONLY:
            clauses.append("is_sidechain = 0")
        elif record_filter.scope == SidechainScope.SUBAGENT_ONLY:
            clauses.append("is_sidechain = 1")
        if record_filter.subagentLabels:
            labels = sorted(record_filter.subagentLabels)
            clauses.append(f"subagent_label IN ({', '.join('?' for _ in labels)})")
            params.extend(labels)
        if record_filter.search:
            clauses.append("instr(search_text, ?) > 0")
            params.append(record_filter.search.lower())

        return " AND ".join(clauses), params

    async def list_lines(
        self,
        file_id: int,
        record_filter: RecordFilter | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TranscriptRecord]:
        where, params = self._build_where_clause(file_id, record_filter)
        query = f"SELECT record_json FROM transcript_lines WHERE {where} ORDER BY line_number"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
        return [TranscriptRecord.model_validate_json(row[0]) for row in rows]

    async def count_lines(self, file_id: int, record_filter: RecordFilter | None = None) -> int:
        where, params = self._build_where_clause(file_id, record_filter)
        async with self.db.execute(f"SELECT COUNT(*) FROM transcript_lines WHERE {where}", params) as cur:
            row = await cur.fetchone()
        return row[0] if row else 0

    async def category_counts(self, file_id: int) -> dict[str, int]:
        async with self.db.execute(
            "SELECT category, COUNT(*) FROM transcript_lines WHERE file_id = ? GROUP BY category",
            (file_id,),
        ) as cur:
            rows = await cur.fetchall()
        return {row[0]: row[1] for row in rows}

    async def subagent_counts(self, file_id: int) -> dict[str, int]:
        async with self.db.execute(
            """SELECT subagent_label, COUNT(*) FROM transcript_lines
               WHERE file_id = ? AND is_sidechain = 1 AND subagent_label IS NOT NULL
               GROUP BY subagent_label""",
            (file_id,),
        ) as cur:
            rows = await cur.fetchall()
        return {row[0]: row[1] for row in rows}
