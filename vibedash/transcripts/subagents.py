"""Sidechain (delegated sub-conversation) detection and subagent labelling."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from vibedash import config
from vibedash.transcripts.categories import MessageRole, resolve_role
from vibedash.transcripts.content import ToolUseItem, classify_payload
from vibedash.transcripts.presentation import UNKNOWN_SUBAGENT
from vibedash.transcripts.records import TranscriptRecord
from vibedash.transcripts.subagent_rules import get_subagent_rules, match_subagent_rule

TASK_TOOL_NAME = "Task"

SOURCE_EXPLICIT_NAME = "explicit_name"
SOURCE_EXPLICIT_FLAG = "explicit_flag"
SOURCE_TASK_TOOL = "task_tool"
SOURCE_MCP_TOOL = "mcp_tool"
SOURCE_NONE = "none"


class SubagentDetection(BaseModel):
    model_config = ConfigDict(frozen=True)

    isSidechain: bool = False
    label: Optional[str] = None
    source: str = SOURCE_NONE


NOT_A_SIDECHAIN = SubagentDetection()


def _record_data(record: Any) -> tuple[Mapping[str, Any] | None, MessageRole]:
    if isinstance(record, TranscriptRecord):
        return (record.source() if record.data is not None else None), record.role
    if isinstance(record, dict):
        return record, resolve_role(record)
    return None, MessageRole.UNKNOWN


def _explicit_name(data: Mapping[str, Any]) -> str | None:
    for key in ("subagentName", "subagent_name"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _explicit_flag(data: Mapping[str, Any]) -> bool | None:
    for key in ("isSidechain", "is_sidechain"):
        value = data.get(key)
        if isinstance(value, bool):
            return value
    return None


def _tool_uses(entry: Any) -> list[ToolUseItem]:
    """Collect tool calls from one prior-context entry.

    Entries may be records, already-classified content items, raw content blocks or
    raw transcript lines.
    """
    if isinstance(entry, TranscriptRecord):
        return entry.tool_uses()
    if isinstance(entry, ToolUseItem):
        return [entry]
    if not isinstance(entry, dict):
        return []
    if entry.get("type") == "tool_use":
        payload = classify_payload(entry)
    else:
        message = entry.get("message")
        if not isinstance(message, dict):
            return []
        payload = classify_payload(message.get("content"))
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, ToolUseItem)]


def _task_subagent_type(tool: ToolUseItem) -> str | None:
    if not isinstance(tool.input, dict):
        return None
    value = tool.input.get("subagent_type")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def detect_subagent(
    record: Any,
    prior_context: Iterable[Any] | None = None,
    rules: list[dict[str, Any]] | None = None,
) -> SubagentDetection:
    """Decide whether ``record`` belongs to a sidechain and which subagent produced it.

    ``prior_context`` holds the assistant turn(s) that may have spawned the record,
    oldest first; the newest entry is consulted first. Explicit metadata on the record
    always wins over inference from the context. Never raises; no signal resolves to
    :data:`NOT_A_SIDECHAIN`.
    """
    data, role = _record_data(record)
    if data is None or role == MessageRole.UNKNOWN:
        return NOT_A_SIDECHAIN

    name = _explicit_name(data)
    if name:
        return SubagentDetection(isSidechain=True, label=name, source=SOURCE_EXPLICIT_NAME)

    flag = _explicit_flag(data)
    if flag is not None:
        return SubagentDetection(
            isSidechain=flag,
            label=UNKNOWN_SUBAGENT if flag else None,
            source=SOURCE_EXPLICIT_FLAG,
        )

    tools: list[ToolUseItem] = []
    for entry in reversed(list(prior_context or [])):
        tools.extend(_tool_uses(entry))
    if not tools:
        return NOT_A_SIDECHAIN

    for tool in tools:
        if tool.name == TASK_TOOL_NAME:
            subagent_type = _task_subagent_type(tool)
            if subagent_type:
                return SubagentDetection(isSidechain=True, label=subagent_type, source=SOURCE_TASK_TOOL)

    prefix = config.MCP_TOOL_PREFIX
    active_rules = rules if rules is not None else get_subagent_rules()
    for tool in tools:
        if not prefix or not tool.name.startswith(prefix):
            continue
        rule = match_subagent_rule(tool.name[len(prefix):], active_rules)
        if rule:
            return SubagentDetection(isSidechain=True, label=str(rule["label"]), source=SOURCE_MCP_TOOL)

    if any(tool.name == TASK_TOOL_NAME for tool in tools):
        return SubagentDetection(isSidechain=True, label=UNKNOWN_SUBAGENT, source=SOURCE_TASK_TOOL)

    return NOT_A_SIDECHAIN


def is_spawning_tool(tool: ToolUseItem) -> bool:
    """True for tool calls that open a delegated sub-conversation."""
    if tool.name == TASK_TOOL_NAME:
        return True
    prefix = config.MCP_TOOL_PREFIX
    return bool(prefix) and tool.name.startswith(prefix)
