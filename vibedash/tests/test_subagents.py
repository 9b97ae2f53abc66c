import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from vibedash.transcripts import subagent_rules
from vibedash.transcripts.content import ToolUseItem
from vibedash.transcripts.presentation import (
    UNKNOWN_SUBAGENT,
    subagent_presentation,
    tool_presentation,
)
from vibedash.transcripts.subagent_rules import (
    default_subagent_rules,
    load_subagent_rules,
    match_subagent_rule,
    normalize_subagent_rules,
)
from vibedash.transcripts.subagents import detect_subagent


def _assistant(*tools: dict) -> dict:
    return {"type": "assistant", "message": {"content": [{"type": "tool_use", **tool} for tool in tools]}}


_USER = {"type": "user", "message": {"content": "inspect the layout"}}


class DetectSubagentTests(unittest.TestCase):
    def test_explicit_name_wins(self) -> None:
        record = {**_USER, "subagentName": "design-analyst", "isSidechain": False}
        detection = detect_subagent(record, [_assistant({"name": "Task", "input": {"subagent_type": "Plan"}})])
        self.assertTrue(detection.isSidechain)
        self.assertEqual(detection.label, "design-analyst")
        self.assertEqual(detection.source, "explicit_name")

    def test_explicit_flag_without_name(self) -> None:
        flagged = detect_subagent({**_USER, "isSidechain": True})
        self.assertTrue(flagged.isSidechain)
        self.assertEqual(flagged.label, UNKNOWN_SUBAGENT)

        main = detect_subagent(
            {**_USER, "isSidechain": False},
            [_assistant({"name": "Task", "input": {"subagent_type": "Plan"}})],
        )
        self.assertFalse(main.isSidechain)
        self.assertIsNone(main.label)

    def test_non_boolean_flag_is_ignored(self) -> None:
        detection = detect_subagent({**_USER, "isSidechain": "yes"})
        self.assertFalse(detection.isSidechain)

    def test_task_subagent_type_from_prior_context(self) -> None:
        context = [_assistant({"id": "toolu_1", "name": "Task", "input": {"subagent_type": "code-reviewer"}})]
        detection = detect_subagent(_USER, context)
        self.assertTrue(detection.isSidechain)
        self.assertEqual(detection.label, "code-reviewer")
        self.assertEqual(detection.source, "task_tool")

    def test_newest_context_entry_is_consulted_first(self) -> None:
        context = [
            _assistant({"name": "Task", "input": {"subagent_type": "Explore"}}),
            _assistant({"name": "Task", "input": {"subagent_type": "Plan"}}),
        ]
        self.assertEqual(detect_subagent(_USER, context).label, "Plan")

    def test_context_accepts_content_items(self) -> None:
        context = [ToolUseItem(id="t", name="Task", input={"subagent_type": "general-purpose"})]
        self.assertEqual(detect_subagent(_USER, context).label, "general-purpose")

    def test_mcp_tool_substring_rules(self) -> None:
        figma = detect_subagent(_USER, [_assistant({"name": "mcp__figma__get_code"})], default_subagent_rules())
        self.assertEqual(figma.label, "design-analyst")
        self.assertEqual(figma.source, "mcp_tool")

        code = detect_subagent(_USER, [_assistant({"name": "mcp__code_search__query"})], default_subagent_rules())
        self.assertEqual(code.label, "code-reviewer")

    def test_unmatched_mcp_tool_is_not_a_signal(self) -> None:
        detection = detect_subagent(_USER, [_assistant({"name": "mcp__slack__post"})], default_subagent_rules())
        self.assertFalse(detection.isSidechain)
        self.assertIsNone(detection.label)

    def test_task_without_type_defaults_to_unknown_subagent(self) -> None:
        detection = detect_subagent(_USER, [_assistant({"name": "Task", "input": {"prompt": "go"}})])
        self.assertTrue(detection.isSidechain)
        self.assertEqual(detection.label, UNKNOWN_SUBAGENT)

    def test_no_signal(self) -> None:
        detection = detect_subagent(_USER, [_assistant({"name": "Bash", "input": {"command": "ls"}})])
        self.assertFalse(detection.isSidechain)
        self.assertIsNone(detection.label)
        self.assertFalse(detect_subagent(_USER).isSidechain)

    def test_unknown_role_is_never_a_sidechain(self) -> None:
        detection = detect_subagent({"type": "summary", "subagentName": "Plan"})
        self.assertFalse(detection.isSidechain)
        self.assertIsNone(detection.label)
        self.assertFalse(detect_subagent("garbage").isSidechain)

    def test_detection_is_idempotent(self) -> None:
        context = [_assistant({"name": "Task", "input": {"subagent_type": "code-reviewer"}})]
        self.assertEqual(detect_subagent(_USER, context), detect_subagent(_USER, context))

    def test_custom_prefix_from_config(self) -> None:
        with patch("vibedash.config.MCP_TOOL_PREFIX", "ext::"):
            detection = detect_subagent(_USER, [_assistant({"name": "ext::figma"})], default_subagent_rules())
        self.assertEqual(detection.label, "design-analyst")


class SubagentRulesTests(unittest.TestCase):
    def test_normalize_merges_by_id_and_sorts_by_priority(self) -> None:
        rules = normalize_subagent_rules(
            [
                {"id": "mcp-code", "pattern": "code", "label": "reviewer-v2", "priority": 5},
                {"id": "mcp-linear", "pattern": "Linear", "label": "planner", "priority": 200},
                {"pattern": "", "label": "ignored"},
                "not-a-rule",
            ]
        )
        self.assertEqual([rule["id"] for rule in rules], ["mcp-linear", "mcp-figma", "mcp-code"])
        self.assertEqual(rules[0]["pattern"], "linear")
        self.assertEqual(rules[2]["label"], "reviewer-v2")

    def test_disabled_rules_do_not_match(self) -> None:
        rules = normalize_subagent_rules([{"id": "mcp-figma", "pattern": "figma", "label": "x", "enabled": False}])
        self.assertIsNone(match_subagent_rule("figma__frames", rules))
        self.assertIsNone(match_subagent_rule("", rules))

    def test_load_rules_from_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rules.yaml"
            path.write_text(
                "rules:\n"
                "  - id: mcp-sentry\n"
                "    pattern: sentry\n"
                "    label: incident-responder\n"
                "    priority: 120\n",
                encoding="utf-8",
            )
            rules = load_subagent_rules(path)
        self.assertEqual(rules[0]["label"], "incident-responder")
        self.assertEqual(match_subagent_rule("sentry__issues", rules)["id"], "mcp-sentry")

    def test_missing_or_invalid_file_falls_back_to_defaults(self) -> None:
        defaults = normalize_subagent_rules(None)
        with self.assertLogs("vibedash.transcripts", level="WARNING"):
            self.assertEqual(load_subagent_rules(os.path.join(tempfile.gettempdir(), "missing-rules.yaml")), defaults)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.yaml"
            path.write_text("rules: [unterminated", encoding="utf-8")
            with self.assertLogs("vibedash.transcripts", level="WARNING"):
                self.assertEqual(load_subagent_rules(path), defaults)
            scalar = Path(tmpdir) / "scalar.yaml"
            scalar.write_text("just a string", encoding="utf-8")
            with self.assertLogs("vibedash.transcripts", level="WARNING"):
                self.assertEqual(load_subagent_rules(scalar), defaults)

    def test_get_subagent_rules_uses_configured_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rules.yml"
            path.write_text("- id: mcp-jira\n  pattern: jira\n  label: planner\n", encoding="utf-8")
            subagent_rules._cached_rules.cache_clear()
            with patch("vibedash.config.SUBAGENT_RULES_PATH", str(path)):
                rules = subagent_rules.get_subagent_rules()
            subagent_rules._cached_rules.cache_clear()
        self.assertIn("mcp-jira", {rule["id"] for rule in rules})


class PresentationTests(unittest.TestCase):
    def test_known_and_unknown_subagent_labels(self) -> None:
        self.assertEqual(subagent_presentation("code-reviewer").icon, "🔍")
        fallback = subagent_presentation("data-wrangler")
        self.assertEqual(fallback.displayName, "Sub Agent")
        self.assertEqual(fallback.label, "data-wrangler")

    def test_tool_presentation_fallback(self) -> None:
        self.assertEqual(tool_presentation("Task").label, "Agent Task")
        generic = tool_presentation("mcp__figma__get_code")
        self.assertEqual(generic.label, "Tool")
        self.assertEqual(generic.name, "mcp__figma__get_code")


if __name__ == "__main__":
    unittest.main()
