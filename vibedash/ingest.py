"""Upload ingestion: classify uploaded transcript text and store the new lines."""
from __future__ import annotations

import logging
import time

from pydantic import BaseModel

from vibedash import config
from vibedash.db.repositories.transcripts import SqliteTranscriptRepository
from vibedash.observability import otel
from vibedash.transcripts.categories import category_counts
from vibedash.transcripts.processor import process_content

logger = logging.getLogger("vibedash.ingest")

DEFAULT_PROJECT_NAME = "default-project"


class IngestResult(BaseModel):
    sessionId: int
    projectId: int
    processedLines: int = 0
    newLines: int = 0
    errors: int = 0


def clean_project_name(project_name: str | None, project_path: str | None = None) -> str:
    """Strip the uploader's working-directory prefix from a Claude project folder name.

    Claude Code names project folders after the absolute path with ``/`` replaced
    by ``-``; with ``project_path=/home/me/work`` the folder
    ``-home-me-work-api`` becomes ``api``.
    """
    name = (project_name or "").strip()
    if name and project_path:
        prefix = project_path.strip().rstrip("/").replace("/", "-")
        if prefix and name.startswith(prefix):
            name = name[len(prefix):].lstrip("-")
    return name or DEFAULT_PROJECT_NAME


def session_name_for(file_name: str) -> str:
    return file_name[: -len(".jsonl")] if file_name.endswith(".jsonl") else file_name


class TranscriptIngestor:
    def __init__(self, repository: SqliteTranscriptRepository, batch_size: int | None = None):
        self.repository = repository
        self.batch_size = max(1, batch_size or config.INGEST_BATCH_SIZE)

    async def ingest(
        self,
        project_name: str | None,
        file_name: str,
        content: str,
        project_path: str | None = None,
    ) -> IngestResult:
        """Store the lines of ``content`` not yet stored for this file.

        Lines up to the stored checkpoint are classified again but not re-inserted.
        The checkpoint advances after every stored batch, so a failed upload resumes
        where it stopped.
        """
        started = time.monotonic()
        cleaned = clean_project_name(project_name, project_path)
        project = await self.repository.get_or_create_project(cleaned, cleaned)
        transcript = await self.repository.get_or_create_file(
            project["id"],
            session_name_for(file_name),
            file_name,
            file_path=f"{cleaned}/{file_name}",
            file_size=len(content.encode("utf-8")),
        )
        file_id = transcript["id"]

        with otel.start_span("vibedash.ingest", {"project": cleaned, "file_id": file_id}):
            try:
                await self.repository.set_status(file_id, "processing")
                checkpoint = await self.repository.get_checkpoint(file_id)
                result = process_content(content, checkpoint)
                new_records = result.new_records()

                for start in range(0, len(new_records), self.batch_size):
                    batch = new_records[start:start + self.batch_size]
                    await self.repository.insert_lines(file_id, batch)
                    await self.repository.advance_checkpoint(file_id, batch[-1].sequenceNumber)
                await self.repository.advance_checkpoint(file_id, result.nextCheckpoint.existingLineCount)
                await self.repository.set_status(file_id, "completed")
            except Exception as exc:
                logger.exception("Failed to ingest %s for project %s", file_name, cleaned)
                await self.repository.set_status(file_id, "error", str(exc))
                otel.record_parser_failure("ingest", project=cleaned)
                otel.record_ingestion("error", (time.monotonic() - started) * 1000, project=cleaned)
                raise

        otel.record_ingestion("success", (time.monotonic() - started) * 1000, project=cleaned)
        otel.record_parser_failure("line", project=cleaned, count=result.errorCount)
        otel.record_line_categories(category_counts(new_records), project=cleaned)
        logger.info(
            "Ingested %s: %d lines, %d new, %d unparseable (checkpoint %d)",
            file_name,
            result.totalProcessed,
            result.newCount,
            result.errorCount,
            result.nextCheckpoint.existingLineCount,
        )
        return IngestResult(
            sessionId=file_id,
            projectId=project["id"],
            processedLines=result.totalProcessed,
            newLines=result.newCount,
            errors=result.errorCount,
        )
