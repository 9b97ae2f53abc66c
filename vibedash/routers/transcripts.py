"""API routers for transcript upload, browsing and presentation lookups."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from vibedash import config
from vibedash.db import connection
from vibedash.db.factory import get_transcript_repository
from vibedash.formatting import (
    calculate_duration,
    count_lines,
    extract_command,
    extract_file_name,
    format_bytes,
    format_date,
    format_timestamp,
    format_token_usage,
    relative_time,
)
from vibedash.ingest import TranscriptIngestor
from vibedash.models import (
    PaginatedResponse,
    TranscriptFileSummary,
    TranscriptLine,
    TranscriptStats,
    UploadRequest,
    UploadResponse,
)
from vibedash.transcripts.categories import MessageCategory
from vibedash.transcripts.content import ToolUseItem
from vibedash.transcripts.filters import RecordFilter, SidechainScope
from vibedash.transcripts.presentation import (
    SUBAGENT_PRESENTATION,
    TOOL_PRESENTATION,
    SubagentPresentation,
    ToolPresentation,
    subagent_presentation,
    tool_presentation,
)
from vibedash.transcripts.prompts import first_user_prompt, user_prompts
from vibedash.transcripts.records import TranscriptRecord


def _file_summary(row: dict) -> TranscriptFileSummary:
    return TranscriptFileSummary(
        id=row["id"],
        projectId=row["project_id"],
        projectName=row.get("project_name") or "",
        sessionName=row["session_name"],
        fileName=row["file_name"],
        filePath=row.get("file_path") or "",
        fileSize=row.get("file_size") or 0,
        fileSizeDisplay=format_bytes(row.get("file_size") or 0),
        processingStatus=row.get("processing_status") or "pending",
        processingError=row.get("processing_error"),
        processedLines=row.get("processed_lines") or 0,
        uploadedAt=row.get("uploaded_at") or "",
        uploadedDate=format_date(row["uploaded_at"]) if row.get("uploaded_at") else "",
        updatedAt=row.get("updated_at") or "",
        updatedAgo=relative_time(row.get("updated_at")),
    )


def _tool_target(tool: ToolUseItem) -> str:
    """What a tool call acts on: the command word, or the base name of the file."""
    params = tool.input if isinstance(tool.input, dict) else {}
    command = params.get("command")
    if isinstance(command, str) and command.strip():
        return extract_command(command)
    for key in ("file_path", "notebook_path", "path"):
        value = params.get(key)
        if isinstance(value, str) and value.strip():
            return extract_file_name(value)
    return ""


def _result_line_count(record: TranscriptRecord) -> int:
    outcome = record.toolExecutionResult
    if outcome is None or not outcome.stdout:
        return 0
    return count_lines(outcome.stdout)


def _transcript_line(record: TranscriptRecord, include_raw: bool = False) -> TranscriptLine:
    return TranscriptLine(
        sequenceNumber=record.sequenceNumber,
        role=record.role,
        entryType=record.entryType,
        category=record.category,
        timestamp=record.timestampRaw,
        timeDisplay=format_timestamp(record.timestampRaw) if record.timestampRaw else "",
        payload=record.payload,
        isSidechain=record.isSidechain,
        subagentLabel=record.subagentLabel,
        subagent=subagent_presentation(record.subagentLabel) if record.isSidechain else None,
        tools=[tool_presentation(tool.name) for tool in record.tool_uses()],
        toolTargets=[_tool_target(tool) for tool in record.tool_uses()],
        toolExecutionResult=record.toolExecutionResult,
        resultLineCount=_result_line_count(record),
        usage=record.usage,
        tokenSummary=format_token_usage(record.usage),
        model=record.model,
        parseError=record.parseError,
        raw=dict(record.source()) if include_raw and record.data is not None else None,
    )


async def _require_file(repo, file_id: int) -> dict:
    row = await repo.get_file(file_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Transcript {file_id} not found")
    return row


# ── Upload router ───────────────────────────────────────────────────

upload_router = APIRouter(prefix="/api/upload", tags=["upload"])


@upload_router.post("", response_model=UploadResponse)
async def upload_transcript(req: UploadRequest):
    """Ingest a transcript file; re-uploads only store the appended lines."""
    if not req.fileName.strip() or not req.content:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if len(req.content.encode("utf-8")) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Transcript exceeds the upload size limit")

    db = await connection.get_connection()
    ingestor = TranscriptIngestor(get_transcript_repository(db))
    try:
        result = await ingestor.ingest(req.projectName, req.fileName.strip(), req.content, req.projectPath)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Failed to process transcript: {exc}") from exc

    return UploadResponse(
        success=True,
        message=f"Processed {result.processedLines} lines ({result.newLines} new)",
        sessionId=result.sessionId,
        processedLines=result.processedLines,
        newLines=result.newLines,
        errors=result.errors,
    )


# ── Transcripts router ──────────────────────────────────────────────

transcripts_router = APIRouter(prefix="/api/transcripts", tags=["transcripts"])


@transcripts_router.get("", response_model=PaginatedResponse[TranscriptFileSummary])
async def list_transcripts(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    project_id: int | None = Query(None, description="Filter by project"),
):
    db = await connection.get_connection()
    repo = get_transcript_repository(db)
    rows = await repo.list_files(offset, limit, project_id)
    total = await repo.count_files(project_id)
    return PaginatedResponse(
        items=[_file_summary(row) for row in rows],
        total=total,
        offset=offset,
        limit=limit,
    )


@transcripts_router.get("/{file_id}", response_model=TranscriptFileSummary)
async def get_transcript(file_id: int):
    db = await connection.get_connection()
    repo = get_transcript_repository(db)
    return _file_summary(await _require_file(repo, file_id))


@transcripts_router.get("/{file_id}/lines", response_model=PaginatedResponse[TranscriptLine])
async def list_transcript_lines(
    file_id: int,
    offset: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    filter_tokens: list[str] | None = Query(
        None,
        alias="filter",
        description="Category names, main-only/subagent-only, or subagent labels",
    ),
    search: str = Query("", description="Case-insensitive text search"),
    include_raw: bool = Query(False, description="Include the parsed source JSON"),
):
    """Return classified lines of one transcript, filtered like the session viewer."""
    db = await connection.get_connection()
    repo = get_transcript_repository(db)
    await _require_file(repo, file_id)

    record_filter = RecordFilter.from_tokens(filter_tokens, search)
    records = await repo.list_lines(file_id, record_filter, offset, limit)
    total = await repo.count_lines(file_id, record_filter)
    return PaginatedResponse(
        items=[_transcript_line(record, include_raw) for record in records],
        total=total,
        offset=offset,
        limit=limit,
    )


@transcripts_router.get("/{file_id}/stats", response_model=TranscriptStats)
async def get_transcript_stats(file_id: int):
    db = await connection.get_connection()
    repo = get_transcript_repository(db)
    await _require_file(repo, file_id)

    records = await repo.list_lines(file_id)
    stored_counts = await repo.category_counts(file_id)
    category_counts = {category.value: stored_counts.get(category.value, 0) for category in MessageCategory}
    timestamps = [record.timestampRaw for record in records if record.timestampRaw]
    started_at = timestamps[0] if timestamps else None
    ended_at = timestamps[-1] if timestamps else None

    return TranscriptStats(
        fileId=file_id,
        totalLines=len(records),
        mainLines=await repo.count_lines(file_id, RecordFilter(scope=SidechainScope.MAIN_ONLY)),
        sidechainLines=await repo.count_lines(file_id, RecordFilter(scope=SidechainScope.SUBAGENT_ONLY)),
        categoryCounts=category_counts,
        subagentCounts=await repo.subagent_counts(file_id),
        firstUserPrompt=first_user_prompt(records),
        startedAt=started_at,
        endedAt=ended_at,
        duration=calculate_duration(started_at, ended_at),
    )


@transcripts_router.get("/{file_id}/prompts", response_model=list[str])
async def get_transcript_prompts(
    file_id: int,
    include_sidechains: bool = Query(False, description="Include prompts sent to subagents"),
):
    db = await connection.get_connection()
    repo = get_transcript_repository(db)
    await _require_file(repo, file_id)
    records = await repo.list_lines(
        file_id,
        RecordFilter(categories=frozenset({MessageCategory.USER_TEXT})),
    )
    return user_prompts(records, include_sidechains=include_sidechains)


# ── Presentation router ─────────────────────────────────────────────

presentation_router = APIRouter(prefix="/api/presentation", tags=["presentation"])


@presentation_router.get("/subagents", response_model=dict[str, SubagentPresentation])
async def list_subagent_presentation():
    return dict(SUBAGENT_PRESENTATION)


@presentation_router.get("/tools", response_model=dict[str, ToolPresentation])
async def list_tool_presentation():
    return dict(TOOL_PRESENTATION)
