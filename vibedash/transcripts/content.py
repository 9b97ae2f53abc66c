"""Content-item models and the classifier for transcript message content blocks."""
from __future__ import annotations

import json
from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _ContentModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextItem(_ContentModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseItem(_ContentModel):
    type: Literal["tool_use"] = "tool_use"
    id: str = ""
    name: str = ""
    input: Any = Field(default_factory=dict)


class ToolResultItem(_ContentModel):
    type: Literal["tool_result"] = "tool_result"
    toolUseId: str = ""
    content: Any = ""
    isError: bool = False

    def text(self) -> str:
        """Flatten the result content into display text."""
        return tool_result_to_text(self.content)


class ThinkingItem(_ContentModel):
    type: Literal["thinking"] = "thinking"
    text: str = ""


class ImageItem(_ContentModel):
    type: Literal["image"] = "image"
    mediaType: str = ""
    data: str = ""


class OpaqueItem(_ContentModel):
    """Content block of an unrecognized shape, rendered as raw JSON."""

    type: Literal["opaque"] = "opaque"
    sourceType: str = ""
    raw: Any = None


ContentItem = Annotated[
    Union[TextItem, ToolUseItem, ToolResultItem, ThinkingItem, ImageItem, OpaqueItem],
    Field(discriminator="type"),
]


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def tool_result_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict):
                text = block.get("text")
                if isinstance(text, str) and text.strip():
                    chunks.append(text)
                elif isinstance(block.get("content"), str):
                    chunks.append(block["content"])
        return "\n".join(chunks)
    if content is None:
        return ""
    try:
        return json.dumps(content)
    except Exception:
        return str(content)


def _text_item(item: dict[str, Any]) -> TextItem:
    return TextItem(text=_as_str(item.get("text")))


def _tool_use_item(item: dict[str, Any]) -> ToolUseItem:
    return ToolUseItem(
        id=_as_str(item.get("id")),
        name=_as_str(item.get("name")),
        input=item.get("input", {}),
    )


def _tool_result_item(item: dict[str, Any]) -> ToolResultItem:
    return ToolResultItem(
        toolUseId=_as_str(item.get("tool_use_id")),
        content=item.get("content", ""),
        isError=bool(item.get("is_error", False)),
    )


def _thinking_item(item: dict[str, Any]) -> ThinkingItem:
    # Claude Code writes the block under "thinking"; older exports used "text".
    value = item.get("thinking")
    if not isinstance(value, str):
        value = item.get("text")
    return ThinkingItem(text=_as_str(value))


def _image_item(item: dict[str, Any]) -> ImageItem:
    source = item.get("source")
    if not isinstance(source, dict):
        source = {}
    return ImageItem(
        mediaType=_as_str(source.get("media_type")),
        data=_as_str(source.get("data")),
    )


_CLASSIFIERS: dict[str, Callable[[dict[str, Any]], Any]] = {
    "text": _text_item,
    "tool_use": _tool_use_item,
    "tool_result": _tool_result_item,
    "thinking": _thinking_item,
    "image": _image_item,
}


def classify_content_item(item: Any) -> TextItem | ToolUseItem | ToolResultItem | ThinkingItem | ImageItem | OpaqueItem:
    """Classify one raw content block by its ``type`` discriminator.

    Blocks that are not mappings, or whose ``type`` is missing or unknown, become
    an :class:`OpaqueItem` carrying the raw value. This never raises.
    """
    if not isinstance(item, dict):
        return OpaqueItem(raw=item)
    item_type = item.get("type")
    classifier = _CLASSIFIERS.get(item_type) if isinstance(item_type, str) else None
    if classifier is None:
        return OpaqueItem(sourceType=_as_str(item_type), raw=item)
    return classifier(item)


def classify_payload(content: Any) -> str | list:
    """Normalize a ``message.content`` value into a string or a list of content items."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return [classify_content_item(item) for item in content]
    return [classify_content_item(content)]
