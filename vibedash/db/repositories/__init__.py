"""Repository package for database access."""

from .transcripts import SqliteTranscriptRepository

__all__ = [
    "SqliteTranscriptRepository",
]
