"""User prompt extraction for session titles and prompt lists."""
from __future__ import annotations

from typing import Iterable

from vibedash.formatting import truncate_text
from vibedash.transcripts.categories import MessageCategory, MessageRole
from vibedash.transcripts.content import TextItem
from vibedash.transcripts.records import TranscriptRecord


def prompt_text(record: TranscriptRecord) -> str:
    """Return what the user typed, or ``""`` for tool results and non-user records."""
    if record.role != MessageRole.USER or record.category != MessageCategory.USER_TEXT:
        return ""
    if isinstance(record.payload, str):
        return record.payload.strip()
    texts = [item.text for item in record.items() if isinstance(item, TextItem) and item.text.strip()]
    return "\n".join(texts).strip()


def user_prompts(records: Iterable[TranscriptRecord], include_sidechains: bool = False) -> list[str]:
    prompts = []
    for record in records:
        if record.isSidechain and not include_sidechains:
            continue
        text = prompt_text(record)
        if text:
            prompts.append(text)
    return prompts


def first_user_prompt(records: Iterable[TranscriptRecord], limit: int = 100) -> str:
    for text in user_prompts(records):
        return truncate_text(text, limit)
    return ""
