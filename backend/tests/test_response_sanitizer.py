"""
Handwritten Note OCR — Response Sanitizer Unit Tests
======================================================

What:  Tests JSON extraction from model replies and per-field coercion.
Why:   The sanitizer is what lets the API promise every field, every time.

Test Strategy:
    ✅ Empty object → all defaults
    ✅ Prose before/after the JSON object is ignored
    ✅ Confidence clamped into [0, 1]; non-numbers default to 0.8
    ✅ Wrong-typed fields fall back independently
    ✅ Empty reply / no braces / broken JSON → UpstreamFormatError
"""

import json

import pytest

from note_ocr.exceptions import UpstreamFormatError
from note_ocr.services.response_sanitizer import (
    coerce_confidence,
    extract_json_object,
    sanitize,
)


class TestSanitizeTotality:

    def test_empty_object_gets_all_defaults(self):
        note = sanitize("{}")
        assert note.title == "Untitled Note"
        assert note.content == ""
        assert note.category == "note"
        assert note.tags == []
        assert note.dates == []
        assert note.contacts == []
        assert note.confidence == 0.8
        assert note.raw_text == ""

    def test_wrong_types_fall_back_independently(self):
        note = sanitize(json.dumps({
            "title": 42,
            "content": ["not", "a", "string"],
            "category": None,
            "tags": "a,b,c",
            "dates": {"when": "today"},
            "contacts": 7,
            "confidence": "high",
            "raw_text": False,
        }))
        assert note.title == "Untitled Note"
        assert note.content == ""
        assert note.category == "note"
        assert note.tags == []
        assert note.dates == []
        assert note.contacts == []
        assert note.confidence == 0.8
        assert note.raw_text == ""

    def test_valid_fields_pass_through(self, model_reply):
        note = sanitize(model_reply)
        assert note.title == "Team sync"
        assert note.category == "meeting"
        assert note.tags == ["roadmap", "team", "planning"]
        assert note.dates == ["2024-03-15"]
        assert note.confidence == 0.92

    def test_list_elements_are_not_validated(self):
        note = sanitize('{"tags": ["ok", 3, null, {"k": 1}]}')
        assert note.tags == ["ok", 3, None, {"k": 1}]

    def test_empty_title_uses_default(self):
        assert sanitize('{"title": ""}').title == "Untitled Note"

    def test_raw_text_falls_back_to_content(self):
        note = sanitize('{"content": "buy milk"}')
        assert note.raw_text == "buy milk"

    def test_raw_text_preferred_over_content(self):
        note = sanitize('{"content": "buy milk", "raw_text": "Buy milk!!"}')
        assert note.raw_text == "Buy milk!!"


class TestConfidence:

    @pytest.mark.parametrize(
        "value, expected",
        [(-5, 0.0), (0.5, 0.5), (2.3, 1.0), (0, 0.0), (1, 1.0)],
    )
    def test_clamped_into_unit_range(self, value, expected):
        assert sanitize(json.dumps({"confidence": value})).confidence == expected

    @pytest.mark.parametrize("value", ["0.9", None, True, [0.9]])
    def test_non_numeric_defaults(self, value):
        assert coerce_confidence(value) == 0.8

    def test_nan_defaults(self):
        assert sanitize('{"confidence": NaN}').confidence == 0.8

    def test_infinity_clamps(self):
        assert sanitize('{"confidence": Infinity}').confidence == 1.0

    @pytest.mark.parametrize(
        "digits, expected",
        [("1" + "0" * 400, 1.0), ("-1" + "0" * 400, 0.0)],
    )
    def test_huge_integers_clamp(self, digits, expected):
        assert sanitize('{"confidence": ' + digits + "}").confidence == expected


class TestJSONExtraction:

    def test_prose_around_object_is_ignored(self):
        note = sanitize('Here is the result:\n{"title":"X"}\nThanks!')
        assert note.title == "X"
        assert note.content == ""
        assert note.confidence == 0.8

    def test_markdown_fence_is_ignored(self):
        data = extract_json_object('```json\n{"title": "Fenced", "tags": ["a"]}\n```')
        assert data == {"title": "Fenced", "tags": ["a"]}

    def test_nested_objects_use_outermost_braces(self):
        data = extract_json_object('{"title": "T", "meta": {"pages": 1}}')
        assert data["meta"] == {"pages": 1}

    def test_no_braces_fails(self):
        with pytest.raises(UpstreamFormatError, match="No JSON found"):
            sanitize("no braces here")

    @pytest.mark.parametrize("reply", [None, "", "   \n"])
    def test_empty_reply_fails(self, reply):
        with pytest.raises(UpstreamFormatError, match="Empty response"):
            sanitize(reply)

    def test_broken_json_reports_parser_message(self):
        with pytest.raises(UpstreamFormatError, match="Failed to parse AI response") as exc_info:
            sanitize('{"title": "X",, }')
        assert exc_info.value.context["parser_error"]

    def test_two_objects_are_one_broken_span(self):
        # Greedy match spans both objects, which is not valid JSON
        with pytest.raises(UpstreamFormatError):
            sanitize('{"title": "A"} and {"title": "B"}')

    def test_integer_over_digit_limit_fails(self):
        with pytest.raises(UpstreamFormatError) as exc_info:
            sanitize('{"title": 1' + "0" * 5000 + "}")
        assert exc_info.value.context["parser_error"]

    def test_excessive_nesting_fails(self):
        reply = '{"tags": ' + "[" * 100000 + "]" * 100000 + "}"
        with pytest.raises(UpstreamFormatError) as exc_info:
            sanitize(reply)
        assert exc_info.value.context["parser_error"]
