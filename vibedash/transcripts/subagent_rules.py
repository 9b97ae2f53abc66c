"""Configurable MCP tool-name rules used to guess a subagent label."""
from __future__ import annotations

import logging
from copy import deepcopy
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from vibedash import config

logger = logging.getLogger("vibedash.transcripts")

_DEFAULT_SUBAGENT_RULES: list[dict[str, Any]] = [
    {
        "id": "mcp-figma",
        "pattern": "figma",
        "label": "design-analyst",
        "priority": 100,
        "enabled": True,
    },
    {
        "id": "mcp-code",
        "pattern": "code",
        "label": "code-reviewer",
        "priority": 50,
        "enabled": True,
    },
]


def default_subagent_rules() -> list[dict[str, Any]]:
    """Return a deep copy of built-in rules."""
    return deepcopy(_DEFAULT_SUBAGENT_RULES)


def _coerce_rule(raw: dict[str, Any], idx: int) -> dict[str, Any]:
    rule_id = str(raw.get("id") or f"custom-{idx}").strip() or f"custom-{idx}"
    pattern = str(raw.get("pattern") or "").strip().lower()
    label = str(raw.get("label") or "").strip()
    enabled = bool(raw.get("enabled", True))
    try:
        priority = int(raw.get("priority", 10))
    except Exception:
        priority = 10

    return {
        "id": rule_id,
        "pattern": pattern,
        "label": label,
        "priority": priority,
        "enabled": enabled,
    }


def normalize_subagent_rules(raw: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Merge user-provided rules over the defaults, highest priority first."""
    merged_by_id: dict[str, dict[str, Any]] = {
        item["id"]: item for item in default_subagent_rules()
    }
    if isinstance(raw, list):
        for idx, candidate in enumerate(raw):
            if not isinstance(candidate, dict):
                continue
            rule = _coerce_rule(candidate, idx)
            if not rule["pattern"] or not rule["label"]:
                continue
            merged_by_id[rule["id"]] = rule

    merged = list(merged_by_id.values())
    merged.sort(key=lambda item: int(item.get("priority", 0)), reverse=True)
    return merged


def match_subagent_rule(tool_name: str, rules: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Return the first enabled rule whose pattern occurs in the tool name."""
    lowered = (tool_name or "").lower()
    if not lowered:
        return None
    for rule in sorted(rules, key=lambda item: int(item.get("priority", 0)), reverse=True):
        if not rule.get("enabled", True):
            continue
        pattern = str(rule.get("pattern") or "").lower()
        if pattern and pattern in lowered:
            return rule
    return None


def load_subagent_rules(path: str | Path | None) -> list[dict[str, Any]]:
    """Load rules from a YAML file.

    The file holds either a list of rules or a mapping with a ``rules`` key.
    A missing or malformed file falls back to the defaults.
    """
    if not path:
        return normalize_subagent_rules(None)
    rules_path = Path(path)
    try:
        raw = yaml.safe_load(rules_path.read_text(encoding="utf-8")) or []
    except FileNotFoundError:
        logger.warning("Subagent rules file not found: %s", rules_path)
        return normalize_subagent_rules(None)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read subagent rules from %s: %s", rules_path, exc)
        return normalize_subagent_rules(None)

    if isinstance(raw, dict):
        raw = raw.get("rules")
    if not isinstance(raw, list):
        logger.warning("Subagent rules in %s must be a list; using defaults", rules_path)
        return normalize_subagent_rules(None)
    return normalize_subagent_rules(raw)


@lru_cache(maxsize=4)
def _cached_rules(path: str) -> tuple[dict[str, Any], ...]:
    return tuple(load_subagent_rules(path))


def get_subagent_rules() -> list[dict[str, Any]]:
    """Rules for the configured rules file, loaded once per path."""
    return [dict(rule) for rule in _cached_rules(config.SUBAGENT_RULES_PATH)]
