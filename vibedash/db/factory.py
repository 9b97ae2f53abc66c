"""Repository factory."""
from __future__ import annotations

from typing import Any

from vibedash.db.repositories.transcripts import SqliteTranscriptRepository


def get_transcript_repository(db: Any) -> SqliteTranscriptRepository:
    return SqliteTranscriptRepository(db)
