"""Message role and filter-category resolution for transcript records."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from vibedash.transcripts.content import TextItem, ThinkingItem, ToolResultItem, ToolUseItem

if TYPE_CHECKING:
    from vibedash.transcripts.records import TranscriptRecord


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    UNKNOWN = "unknown"


class MessageCategory(str, Enum):
    USER_TEXT = "user_text"
    TOOL_RESULT = "tool_result"
    ASSISTANT_TEXT = "assistant_text"
    TOOL_USE = "tool_use"
    THINKING = "thinking"
    OTHER = "other"


def resolve_role(data: Any) -> MessageRole:
    """Return the top-level role from a parsed transcript line's ``type`` field."""
    if not isinstance(data, dict):
        return MessageRole.UNKNOWN
    entry_type = data.get("type")
    if entry_type == "user":
        return MessageRole.USER
    if entry_type == "assistant":
        return MessageRole.ASSISTANT
    return MessageRole.UNKNOWN


def _has_item(payload: Any, item_cls: type) -> bool:
    if not isinstance(payload, list):
        return False
    return any(isinstance(item, item_cls) for item in payload)


def categorize(role: MessageRole, payload: Any) -> MessageCategory:
    # Rule order matters: a mixed assistant turn is filed under its first match.
    if role == MessageRole.USER:
        if _has_item(payload, ToolResultItem):
            return MessageCategory.TOOL_RESULT
        return MessageCategory.USER_TEXT
    if role == MessageRole.ASSISTANT:
        if _has_item(payload, ThinkingItem):
            return MessageCategory.THINKING
        if _has_item(payload, ToolUseItem):
            return MessageCategory.TOOL_USE
        if _has_item(payload, TextItem):
            return MessageCategory.ASSISTANT_TEXT
    return MessageCategory.OTHER


def resolve_category(record: "TranscriptRecord") -> MessageCategory:
    """Assign exactly one filter category to a record."""
    return categorize(record.role, record.payload)


def category_counts(records: Iterable["TranscriptRecord"]) -> dict[str, int]:
    counts = {category.value: 0 for category in MessageCategory}
    for record in records:
        counts[resolve_category(record).value] += 1
    return counts
