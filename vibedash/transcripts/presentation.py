"""Static presentation lookups for tools and subagent labels."""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict

UNKNOWN_SUBAGENT = "unknown-subagent"


class ToolPresentation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    icon: str
    label: str
    color: str


class SubagentPresentation(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str = ""
    icon: str
    displayName: str
    color: str


def _tool(name: str, icon: str, label: str, color: str) -> ToolPresentation:
    return ToolPresentation(name=name, icon=icon, label=label, color=color)


TOOL_PRESENTATION: Mapping[str, ToolPresentation] = MappingProxyType({
    "Bash": _tool("Bash", "💻", "Terminal", "purple"),
    "Read": _tool("Read", "📖", "Read File", "blue"),
    "Write": _tool("Write", "✏️", "Write File", "green"),
    "Edit": _tool("Edit", "✂️", "Edit File", "yellow"),
    "MultiEdit": _tool("MultiEdit", "📝", "Multi Edit", "orange"),
    "TodoWrite": _tool("TodoWrite", "✅", "Todo List", "indigo"),
    "Grep": _tool("Grep", "🔍", "Search", "teal"),
    "Glob": _tool("Glob", "📁", "Find Files", "cyan"),
    "WebSearch": _tool("WebSearch", "🌐", "Web Search", "pink"),
    "WebFetch": _tool("WebFetch", "🔗", "Fetch URL", "rose"),
    "ExitPlanMode": _tool("ExitPlanMode", "📋", "Exit Plan", "gray"),
    "Task": _tool("Task", "🤖", "Agent Task", "violet"),
    "BashOutput": _tool("BashOutput", "📟", "Output", "slate"),
    "KillBash": _tool("KillBash", "⛔", "Kill Process", "red"),
    "LS": _tool("LS", "📂", "List Files", "emerald"),
    "NotebookEdit": _tool("NotebookEdit", "📓", "Notebook", "amber"),
})

DEFAULT_TOOL_PRESENTATION = ToolPresentation(icon="🔧", label="Tool", color="gray")


def _subagent(label: str, icon: str, display_name: str, color: str) -> SubagentPresentation:
    return SubagentPresentation(label=label, icon=icon, displayName=display_name, color=color)


SUBAGENT_PRESENTATION: Mapping[str, SubagentPresentation] = MappingProxyType({
    "general-purpose": _subagent("general-purpose", "🤖", "General Purpose", "purple"),
    "code-reviewer": _subagent("code-reviewer", "🔍", "Code Reviewer", "violet"),
    "design-analyst": _subagent("design-analyst", "🎨", "Design Analyst", "pink"),
    "Explore": _subagent("Explore", "🧭", "Explorer", "teal"),
    "Plan": _subagent("Plan", "📋", "Planner", "indigo"),
    "statusline-setup": _subagent("statusline-setup", "⚙️", "Statusline Setup", "slate"),
    UNKNOWN_SUBAGENT: _subagent(UNKNOWN_SUBAGENT, "❔", "Unknown Sub Agent", "gray"),
})

DEFAULT_SUBAGENT_PRESENTATION = SubagentPresentation(icon="🤖", displayName="Sub Agent", color="purple")


def tool_presentation(tool_name: str | None) -> ToolPresentation:
    entry = TOOL_PRESENTATION.get(tool_name or "")
    if entry is not None:
        return entry
    return DEFAULT_TOOL_PRESENTATION.model_copy(update={"name": tool_name or ""})


def subagent_presentation(label: str | None) -> SubagentPresentation:
    """Return display metadata for a subagent label, or the generic entry."""
    entry = SUBAGENT_PRESENTATION.get(label or "")
    if entry is not None:
        return entry
    return DEFAULT_SUBAGENT_PRESENTATION.model_copy(update={"label": label or ""})
