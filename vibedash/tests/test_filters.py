import json
import unittest

from vibedash.transcripts.categories import MessageCategory
from vibedash.transcripts.filters import (
    RecordFilter,
    SidechainScope,
    filter_records,
    subagent_label_counts,
)
from vibedash.transcripts.processor import process_lines
from vibedash.transcripts.prompts import first_user_prompt, prompt_text, user_prompts


def _transcript():
    lines = [
        {"type": "user", "message": {"content": "Refactor the upload handler"}},
        {
            "type": "assistant",
            "message": {
                "content": [
                    {"type": "thinking", "thinking": "Need a reviewer"},
                    {"type": "tool_use", "id": "toolu_1", "name": "Task", "input": {"subagent_type": "code-reviewer"}},
                ]
            },
        },
        {"type": "user", "message": {"content": [{"type": "text", "text": "Check upload.py for bugs"}]}},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "Found a missing await"}]}},
        {
            "type": "user",
            "message": {"content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "missing await"}]},
        },
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "Fixed the handler"}]}},
        {"type": "user", "message": {"content": "Thanks"}},
    ]
    return process_lines([json.dumps(line) for line in lines]).records


class RecordFilterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.records = _transcript()

    def test_from_tokens_splits_categories_scope_and_labels(self) -> None:
        record_filter = RecordFilter.from_tokens(["user_text", "subagent-only", "code-reviewer", ""], "  await ")
        self.assertEqual(record_filter.categories, frozenset({MessageCategory.USER_TEXT}))
        self.assertEqual(record_filter.scope, SidechainScope.SUBAGENT_ONLY)
        self.assertEqual(record_filter.subagentLabels, frozenset({"code-reviewer"}))
        self.assertEqual(record_filter.search, "await")

    def test_both_scopes_cancel_out(self) -> None:
        record_filter = RecordFilter.from_tokens(["main-only", "subagent-only"])
        self.assertEqual(record_filter.scope, SidechainScope.ALL)

    def test_category_filter(self) -> None:
        matched = filter_records(self.records, RecordFilter.from_tokens(["assistant_text"]))
        self.assertEqual([r.sequenceNumber for r in matched], [4, 6])

    def test_scope_filters(self) -> None:
        main = filter_records(self.records, RecordFilter(scope=SidechainScope.MAIN_ONLY))
        sub = filter_records(self.records, RecordFilter(scope=SidechainScope.SUBAGENT_ONLY))
        self.assertEqual([r.sequenceNumber for r in sub], [3, 4])
        self.assertEqual(len(main) + len(sub), len(self.records))

    def test_search_covers_text_and_tool_results(self) -> None:
        matched = filter_records(self.records, RecordFilter(search="AWAIT"))
        self.assertEqual([r.sequenceNumber for r in matched], [4, 5])

    def test_no_filter_returns_everything(self) -> None:
        self.assertEqual(len(filter_records(self.records, None)), 7)
        self.assertEqual(len(filter_records(self.records, RecordFilter())), 7)

    def test_subagent_label_counts(self) -> None:
        self.assertEqual(subagent_label_counts(self.records), {"code-reviewer": 2})


class PromptTests(unittest.TestCase):
    def setUp(self) -> None:
        self.records = _transcript()

    def test_user_prompts_skip_tool_results_and_sidechains(self) -> None:
        self.assertEqual(user_prompts(self.records), ["Refactor the upload handler", "Thanks"])
        self.assertEqual(
            user_prompts(self.records, include_sidechains=True),
            ["Refactor the upload handler", "Check upload.py for bugs", "Thanks"],
        )

    def test_prompt_text_ignores_assistant_records(self) -> None:
        self.assertEqual(prompt_text(self.records[3]), "")

    def test_first_user_prompt_truncates(self) -> None:
        long_prompt = "x" * 150
        records = process_lines([json.dumps({"type": "user", "message": {"content": long_prompt}})]).records
        self.assertEqual(first_user_prompt(records), "x" * 100 + "...")
        self.assertEqual(first_user_prompt(self.records), "Refactor the upload handler")
        self.assertEqual(first_user_prompt([]), "")


if __name__ == "__main__":
    unittest.main()
