"""Incremental processing of newline-delimited transcript records."""
from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from vibedash.transcripts.categories import MessageRole
from vibedash.transcripts.records import TranscriptRecord, build_record, parse_line
from vibedash.transcripts.subagents import detect_subagent, is_spawning_tool


class ProcessingCheckpoint(BaseModel):
    """Number of lines of a file already handled by an earlier pass."""

    model_config = ConfigDict(frozen=True)

    existingLineCount: int = Field(default=0, ge=0)

    def advance(self, total_processed: int) -> "ProcessingCheckpoint":
        return ProcessingCheckpoint(existingLineCount=max(self.existingLineCount, max(0, total_processed)))


class ProcessResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    totalProcessed: int = 0
    newCount: int = 0
    errorCount: int = 0
    records: list[TranscriptRecord] = Field(default_factory=list)
    checkpoint: ProcessingCheckpoint = Field(default_factory=ProcessingCheckpoint)
    nextCheckpoint: ProcessingCheckpoint = Field(default_factory=ProcessingCheckpoint)

    def new_records(self) -> list[TranscriptRecord]:
        """Records positioned after the checkpoint this pass started from."""
        boundary = self.checkpoint.existingLineCount
        return [record for record in self.records if record.sequenceNumber > boundary]


def split_lines(content: str) -> list[str]:
    """Split uploaded transcript text into its non-blank lines."""
    if not content:
        return []
    return [line for line in content.splitlines() if line.strip()]


def _tool_result_ids(data: dict[str, Any]) -> set[str]:
    message = data.get("message")
    if not isinstance(message, dict):
        return set()
    content = message.get("content")
    if not isinstance(content, list):
        return set()
    ids: set[str] = set()
    for block in content:
        if isinstance(block, dict) and block.get("type") == "tool_result":
            tool_use_id = block.get("tool_use_id")
            if isinstance(tool_use_id, str) and tool_use_id:
                ids.add(tool_use_id)
    return ids


def process_lines(
    raw_lines: Iterable[str],
    checkpoint: ProcessingCheckpoint | None = None,
    *,
    rules: list[dict[str, Any]] | None = None,
) -> ProcessResult:
    """Parse and classify every line, reporting how many lie beyond ``checkpoint``.

    Sequence numbers are 1-based positions in ``raw_lines``. Invalid lines become
    ``unknown`` records and never stop the batch. Subagent inference uses the assistant
    turns whose delegating tool call (``Task`` or an MCP tool) is still awaiting its
    result; the line carrying that result belongs to the main conversation again.
    """
    checkpoint = checkpoint or ProcessingCheckpoint()
    records: list[TranscriptRecord] = []
    open_spawns: dict[str, TranscriptRecord] = {}
    error_count = 0

    for sequence_number, raw_line in enumerate(raw_lines, start=1):
        data, error = parse_line(raw_line)
        if data is None:
            error_count += 1
            records.append(build_record(sequence_number, raw_line, None, error))
            continue

        closing = _tool_result_ids(data) & open_spawns.keys()
        if closing:
            for tool_use_id in closing:
                open_spawns.pop(tool_use_id, None)
            detection = detect_subagent(data, None, rules)
        else:
            context: list[TranscriptRecord] = []
            for spawn in open_spawns.values():
                if not any(spawn.sequenceNumber == seen.sequenceNumber for seen in context):
                    context.append(spawn)
            detection = detect_subagent(data, context, rules)

        record = build_record(
            sequence_number,
            raw_line,
            data,
            is_sidechain=detection.isSidechain,
            subagent_label=detection.label,
        )
        records.append(record)

        if record.role == MessageRole.ASSISTANT and not record.isSidechain:
            for tool in record.tool_uses():
                if tool.id and is_spawning_tool(tool):
                    open_spawns[tool.id] = record

    total = len(records)
    return ProcessResult(
        totalProcessed=total,
        newCount=max(0, total - checkpoint.existingLineCount),
        errorCount=error_count,
        records=records,
        checkpoint=checkpoint,
        nextCheckpoint=checkpoint.advance(total),
    )


def process_content(
    content: str,
    checkpoint: ProcessingCheckpoint | None = None,
    *,
    rules: list[dict[str, Any]] | None = None,
) -> ProcessResult:
    return process_lines(split_lines(content), checkpoint, rules=rules)
