"""Category, sidechain and text filters over classified transcript records."""
from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from vibedash.transcripts.categories import MessageCategory, resolve_category
from vibedash.transcripts.content import TextItem, ThinkingItem, ToolResultItem, ToolUseItem
from vibedash.transcripts.records import TranscriptRecord


class SidechainScope(str, Enum):
    ALL = "all"
    MAIN_ONLY = "main-only"
    SUBAGENT_ONLY = "subagent-only"


_CATEGORY_VALUES = {category.value for category in MessageCategory}
_SCOPE_VALUES = {SidechainScope.MAIN_ONLY.value, SidechainScope.SUBAGENT_ONLY.value}


class RecordFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    categories: frozenset[MessageCategory] = Field(default_factory=frozenset)
    scope: SidechainScope = SidechainScope.ALL
    subagentLabels: frozenset[str] = Field(default_factory=frozenset)
    search: str = ""

    @classmethod
    def from_tokens(cls, tokens: Iterable[str] | None, search: str = "") -> "RecordFilter":
        """Build a filter from the viewer's toggle list.

        Category names select categories; ``main-only`` and ``subagent-only`` set the
        scope (both together cancel out); any other token is a subagent label.
        """
        categories: set[MessageCategory] = set()
        scopes: set[str] = set()
        labels: set[str] = set()
        for raw in tokens or []:
            token = (raw or "").strip()
            if not token:
                continue
            if token in _CATEGORY_VALUES:
                categories.add(MessageCategory(token))
            elif token in _SCOPE_VALUES:
                scopes.add(token)
            else:
                labels.add(token)
        scope = SidechainScope(scopes.pop()) if len(scopes) == 1 else SidechainScope.ALL
        return cls(
            categories=frozenset(categories),
            scope=scope,
            subagentLabels=frozenset(labels),
            search=(search or "").strip(),
        )

    def matches(self, record: TranscriptRecord) -> bool:
        if self.categories and resolve_category(record) not in self.categories:
            return False
        if self.scope == SidechainScope.MAIN_ONLY and record.isSidechain:
            return False
        if self.scope == SidechainScope.SUBAGENT_ONLY and not record.isSidechain:
            return False
        if self.subagentLabels and record.subagentLabel not in self.subagentLabels:
            return False
        if self.search and self.search.lower() not in searchable_text(record).lower():
            return False
        return True


def searchable_text(record: TranscriptRecord) -> str:
    """Text a search query is matched against: message text, tool names and results."""
    if isinstance(record.payload, str):
        return record.payload
    chunks: list[str] = []
    for item in record.items():
        if isinstance(item, (TextItem, ThinkingItem)):
            chunks.append(item.text)
        elif isinstance(item, ToolUseItem):
            chunks.append(item.name)
        elif isinstance(item, ToolResultItem):
            chunks.append(item.text())
    return "\n".join(chunks)


def filter_records(records: Iterable[TranscriptRecord], record_filter: RecordFilter | None) -> list[TranscriptRecord]:
    if record_filter is None:
        return list(records)
    return [record for record in records if record_filter.matches(record)]


def subagent_label_counts(records: Iterable[TranscriptRecord]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for record in records:
        if record.isSidechain and record.subagentLabel:
            counts[record.subagentLabel] = counts.get(record.subagentLabel, 0) + 1
    return counts
