"""Transcript record model and per-line parsing."""
from __future__ import annotations

import json
import re
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from vibedash.transcripts.categories import MessageCategory, MessageRole, categorize, resolve_role
from vibedash.transcripts.content import ContentItem, ToolResultItem, ToolUseItem, classify_payload


def _coerce_count(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return count if count >= 0 else None


# Lone UTF-16 surrogates, escaped or literal, appear when a message is cut mid-emoji.
_SURROGATE = re.compile(r"\\u[dD][89a-fA-F][0-9a-fA-F]{2}|[\ud800-\udfff]")
_SURROGATE_CHAR = re.compile(r"[\ud800-\udfff]")


def _scrub_text(value: str) -> str:
    return _SURROGATE_CHAR.sub("\ufffd", value)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _scrub_text(value)
    if isinstance(value, dict):
        return {_scrub_text(key) if isinstance(key, str) else key: _scrub(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    inputTokens: Optional[int] = None
    outputTokens: Optional[int] = None
    cacheReadInputTokens: Optional[int] = None
    cacheCreationInputTokens: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "TokenUsage | None":
        """Build from a ``message.usage`` object; snake_case or camelCase keys."""
        if isinstance(raw, TokenUsage):
            return raw
        if not isinstance(raw, dict):
            return None
        return cls(
            inputTokens=_coerce_count(_first_present(raw, "input_tokens", "inputTokens")),
            outputTokens=_coerce_count(_first_present(raw, "output_tokens", "outputTokens")),
            cacheReadInputTokens=_coerce_count(
                _first_present(raw, "cache_read_input_tokens", "cacheReadInputTokens")
            ),
            cacheCreationInputTokens=_coerce_count(
                _first_present(raw, "cache_creation_input_tokens", "cacheCreationInputTokens")
            ),
        )


class ToolExecutionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    stdout: str = ""
    stderr: str = ""
    interrupted: bool = False
    isImage: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> "ToolExecutionOutcome | None":
        if not isinstance(raw, dict):
            return None
        stdout = raw.get("stdout")
        stderr = raw.get("stderr")
        return cls(
            stdout=stdout if isinstance(stdout, str) else "",
            stderr=stderr if isinstance(stderr, str) else "",
            interrupted=bool(raw.get("interrupted", False)),
            isImage=bool(raw.get("isImage", False)),
        )


class TranscriptRecord(BaseModel):
    """One classified transcript line. Read-only once built.

    ``data`` is the parsed source object; read it through :meth:`source`.
    """

    model_config = ConfigDict(frozen=True)

    sequenceNumber: int
    rawText: str = ""
    timestampRaw: Optional[str] = None
    role: MessageRole = MessageRole.UNKNOWN
    entryType: str = ""
    category: MessageCategory = MessageCategory.OTHER
    payload: str | list[ContentItem] = ""
    isSidechain: bool = False
    subagentLabel: Optional[str] = None
    toolExecutionResult: Optional[ToolExecutionOutcome] = None
    usage: Optional[TokenUsage] = None
    model: str = ""
    uuid: str = ""
    parentUuid: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    parseError: Optional[str] = None

    def source(self) -> Mapping[str, Any]:
        """Read-only view of the parsed source object; empty for unparseable lines."""
        return MappingProxyType(self.data if self.data is not None else {})

    def items(self) -> list:
        return list(self.payload) if isinstance(self.payload, list) else []

    def tool_uses(self) -> list[ToolUseItem]:
        return [item for item in self.items() if isinstance(item, ToolUseItem)]

    def tool_result_ids(self) -> set[str]:
        return {
            item.toolUseId
            for item in self.items()
            if isinstance(item, ToolResultItem) and item.toolUseId
        }


def parse_line(raw_line: str) -> tuple[dict[str, Any] | None, str | None]:
    """Parse one JSONL line. Returns ``(data, error)``; exactly one is set.

    Lone surrogates in strings are replaced with U+FFFD so the record stays storable.
    """
    try:
        parsed = json.loads(raw_line)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError) as exc:
        return None, f"invalid JSON: {exc}"
    if not isinstance(parsed, dict):
        return None, "line is not a JSON object"
    if _SURROGATE.search(raw_line):
        try:
            parsed = _scrub(parsed)
        except RecursionError:
            return None, "line is nested too deeply"
    return parsed, None


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def build_record(
    sequence_number: int,
    raw_line: str,
    data: dict[str, Any] | None,
    parse_error: str | None = None,
    *,
    is_sidechain: bool = False,
    subagent_label: str | None = None,
) -> TranscriptRecord:
    """Construct the immutable record for a parsed (or unparseable) line."""
    if data is None:
        return TranscriptRecord(
            sequenceNumber=sequence_number,
            rawText=_scrub_text(raw_line) if isinstance(raw_line, str) else "",
            parseError=parse_error or "unparseable line",
        )

    role = resolve_role(data)
    entry_type = data.get("type")
    message = data.get("message")
    if not isinstance(message, dict):
        message = {}

    payload: Any = ""
    usage = None
    model = ""
    tool_result = None
    if role != MessageRole.UNKNOWN:
        payload = classify_payload(message.get("content"))
        usage = TokenUsage.from_raw(message.get("usage"))
        model = message.get("model") if isinstance(message.get("model"), str) else ""
    else:
        is_sidechain = False
        subagent_label = None
    if role == MessageRole.USER:
        tool_result = ToolExecutionOutcome.from_raw(data.get("toolUseResult"))

    return TranscriptRecord(
        sequenceNumber=sequence_number,
        rawText=_scrub_text(raw_line),
        timestampRaw=_optional_str(data.get("timestamp")),
        role=role,
        entryType=entry_type if isinstance(entry_type, str) else "",
        category=categorize(role, payload),
        payload=payload,
        isSidechain=is_sidechain,
        subagentLabel=subagent_label if is_sidechain else None,
        toolExecutionResult=tool_result,
        usage=usage,
        model=model,
        uuid=_optional_str(data.get("uuid")) or "",
        parentUuid=_optional_str(data.get("parentUuid")),
        data=data,
    )
