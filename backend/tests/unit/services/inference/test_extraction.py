"""
Tests for recovering JSON payloads from free-form model output.
"""
import pytest

from og_gateway.services.inference.exceptions import InvalidFormat
from og_gateway.services.inference.extraction import (
    extract_json,
    extract_json_payload,
    find_balanced,
    parse_json_array,
    parse_json_object,
)


class TestExtractJson:
    """Naive fenced-block / first-last brace heuristic."""

    def test_fenced_json_block(self):
        assert extract_json('```json\n{"a":1}\n```') == '{"a":1}'

    def test_fenced_block_without_tag(self):
        assert extract_json('Here:\n```\n{"a": 2}\n```\nThanks') == '{"a": 2}'

    def test_fence_tag_is_case_insensitive(self):
        assert extract_json('```JSON\n{"a": 3}\n```') == '{"a": 3}'

    def test_brace_span_inside_noise(self):
        assert extract_json('noise {"a":1} trailing') == '{"a":1}'

    def test_pass_through_without_braces(self):
        assert extract_json("no braces here") == "no braces here"

    def test_closing_before_opening_passes_through(self):
        assert extract_json("} backwards {") == "} backwards {"

    def test_trailing_object_from_chatty_output(self):
        text = 'Sure! Here\'s your JSON: {"score": 2, "factors": {}}'
        assert extract_json(text) == '{"score": 2, "factors": {}}'

    def test_span_covers_unrelated_braces(self):
        # Known limitation of the naive heuristic
        text = '{"a": 1} and also {b}'
        assert extract_json(text) == '{"a": 1} and also {b}'


class TestBalancedScanner:
    """Depth-tracking extraction."""

    def test_first_balanced_object(self):
        text = '{"a": 1} and also {b}'
        assert find_balanced(text) == '{"a": 1}'

    def test_nested_objects(self):
        text = 'result: {"a": {"b": {"c": 1}}} done'
        assert find_balanced(text) == '{"a": {"b": {"c": 1}}}'

    def test_braces_inside_strings_are_ignored(self):
        text = 'x {"text": "use } and { freely", "n": 1} y'
        assert find_balanced(text) == '{"text": "use } and { freely", "n": 1}'

    def test_escaped_quote_inside_string(self):
        text = '{"text": "say \\"hi\\" {"}'
        assert find_balanced(text) == text

    def test_skips_non_json_brace_group(self):
        text = 'Template {name} then {"real": true}'
        assert find_balanced(text) == '{"real": true}'

    def test_array_of_objects(self):
        text = 'Replies: [{"id": "1", "text": "hi"}] hope that helps'
        assert find_balanced(text, "[") == '[{"id": "1", "text": "hi"}]'

    def test_unbalanced_returns_none(self):
        assert find_balanced('{"a": 1') is None

    def test_no_opener_returns_none(self):
        assert find_balanced("plain text") is None


class TestExtractJsonPayload:
    def test_prefers_fenced_block(self):
        text = '{"ignored": true}\n```json\n{"a": 1}\n```'
        assert extract_json_payload(text) == '{"a": 1}'

    def test_falls_back_to_naive_span(self):
        # Unbalanced for the scanner, naive span still found
        text = 'x {"a": 1 y }'
        assert extract_json_payload(text) == '{"a": 1 y }'

    def test_array_pass_through(self):
        assert extract_json_payload("nothing", expect="array") == "nothing"


class TestParse:
    def test_parse_object_from_noise(self):
        assert parse_json_object('Sure! {"score": 2, "factors": {}}') == {
            "score": 2,
            "factors": {},
        }

    def test_parse_object_rejects_garbage(self):
        with pytest.raises(InvalidFormat):
            parse_json_object("I cannot help with that")

    def test_parse_object_rejects_array(self):
        with pytest.raises(InvalidFormat):
            parse_json_object('```json\n[1, 2]\n```')

    def test_parse_array(self):
        assert parse_json_array('```json\n[{"id": "1"}]\n```') == [{"id": "1"}]

    def test_parse_array_rejects_object(self):
        with pytest.raises(InvalidFormat) as exc_info:
            parse_json_array('{"replies": "none"}')
        assert exc_info.value.error_code == "INVALID_FORMAT"

    def test_empty_default_array(self):
        assert parse_json_array("[]") == []
