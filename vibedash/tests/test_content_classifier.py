import unittest

from vibedash.transcripts.content import (
    ImageItem,
    OpaqueItem,
    TextItem,
    ThinkingItem,
    ToolResultItem,
    ToolUseItem,
    classify_content_item,
    classify_payload,
)


class ContentClassifierTests(unittest.TestCase):
    def test_dispatches_on_type(self) -> None:
        self.assertEqual(classify_content_item({"type": "text", "text": "hi"}), TextItem(text="hi"))
        tool = classify_content_item({"type": "tool_use", "id": "toolu_1", "name": "Bash", "input": {"command": "ls"}})
        self.assertIsInstance(tool, ToolUseItem)
        self.assertEqual(tool.input, {"command": "ls"})
        image = classify_content_item(
            {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "iVBOR"}}
        )
        self.assertEqual(image, ImageItem(mediaType="image/png", data="iVBOR"))

    def test_thinking_reads_thinking_field_then_text(self) -> None:
        self.assertEqual(classify_content_item({"type": "thinking", "thinking": "hmm"}), ThinkingItem(text="hmm"))
        self.assertEqual(classify_content_item({"type": "thinking", "text": "older"}), ThinkingItem(text="older"))

    def test_tool_result_defaults_is_error_to_false(self) -> None:
        result = classify_content_item({"type": "tool_result", "tool_use_id": "toolu_1", "content": "ok"})
        self.assertIsInstance(result, ToolResultItem)
        self.assertFalse(result.isError)
        self.assertEqual(result.toolUseId, "toolu_1")

    def test_tool_result_list_content_is_passed_through_and_flattened(self) -> None:
        content = [{"type": "text", "text": "line one"}, {"type": "text", "text": "line two"}]
        result = classify_content_item({"type": "tool_result", "tool_use_id": "t", "content": content, "is_error": True})
        self.assertEqual(result.content, content)
        self.assertTrue(result.isError)
        self.assertEqual(result.text(), "line one\nline two")

    def test_malformed_nested_input_is_not_validated(self) -> None:
        tool = classify_content_item({"type": "tool_use", "name": "Edit", "input": "not-a-map"})
        self.assertEqual(tool.input, "not-a-map")

    def test_unknown_or_missing_type_becomes_opaque(self) -> None:
        unknown = classify_content_item({"type": "server_tool_use", "foo": 1})
        self.assertIsInstance(unknown, OpaqueItem)
        self.assertEqual(unknown.sourceType, "server_tool_use")
        self.assertEqual(unknown.raw, {"type": "server_tool_use", "foo": 1})
        self.assertIsInstance(classify_content_item({"text": "no type"}), OpaqueItem)
        self.assertIsInstance(classify_content_item("plain string"), OpaqueItem)
        self.assertIsInstance(classify_content_item(None), OpaqueItem)

    def test_classify_payload_shapes(self) -> None:
        self.assertEqual(classify_payload(None), "")
        self.assertEqual(classify_payload("fix the bug"), "fix the bug")
        items = classify_payload([{"type": "text", "text": "a"}, 42])
        self.assertIsInstance(items[0], TextItem)
        self.assertIsInstance(items[1], OpaqueItem)
        single = classify_payload({"type": "text", "text": "wrapped"})
        self.assertEqual(single, [TextItem(text="wrapped")])


if __name__ == "__main__":
    unittest.main()
