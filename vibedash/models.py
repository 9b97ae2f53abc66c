"""Pydantic models for the HTTP API."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Optional, Generic, TypeVar

from vibedash.transcripts.categories import MessageCategory, MessageRole
from vibedash.transcripts.content import ContentItem
from vibedash.transcripts.presentation import SubagentPresentation, ToolPresentation
from vibedash.transcripts.records import TokenUsage, ToolExecutionOutcome

T = TypeVar("T")

class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int

# ── Upload ──────────────────────────────────────────────────────────

class UploadRequest(BaseModel):
    projectName: str = ""
    projectPath: Optional[str] = None
    fileName: str = ""
    content: str = ""


class UploadResponse(BaseModel):
    success: bool = True
    message: str = ""
    sessionId: int
    processedLines: int = 0
    newLines: int = 0
    errors: int = 0

# ── Transcripts ─────────────────────────────────────────────────────

class TranscriptFileSummary(BaseModel):
    id: int
    projectId: int
    projectName: str = ""
    sessionName: str
    fileName: str
    filePath: str = ""
    fileSize: int = 0
    fileSizeDisplay: str = ""
    processingStatus: str = "pending"
    processingError: Optional[str] = None
    processedLines: int = 0
    uploadedAt: str = ""
    uploadedDate: str = ""
    updatedAt: str = ""
    updatedAgo: str = ""


class TranscriptLine(BaseModel):
    """One stored transcript line, shaped for the session viewer."""
    sequenceNumber: int
    role: MessageRole
    entryType: str = ""
    category: MessageCategory
    timestamp: Optional[str] = None
    timeDisplay: str = ""
    payload: str | list[ContentItem] = ""
    isSidechain: bool = False
    subagentLabel: Optional[str] = None
    subagent: Optional[SubagentPresentation] = None
    tools: list[ToolPresentation] = Field(default_factory=list)
    toolTargets: list[str] = Field(default_factory=list)
    toolExecutionResult: Optional[ToolExecutionOutcome] = None
    resultLineCount: int = 0
    usage: Optional[TokenUsage] = None
    tokenSummary: str = ""
    model: str = ""
    parseError: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


class TranscriptStats(BaseModel):
    fileId: int
    totalLines: int = 0
    mainLines: int = 0
    sidechainLines: int = 0
    categoryCounts: dict[str, int] = Field(default_factory=dict)
    subagentCounts: dict[str, int] = Field(default_factory=dict)
    firstUserPrompt: str = ""
    startedAt: Optional[str] = None
    endedAt: Optional[str] = None
    duration: Optional[str] = None
