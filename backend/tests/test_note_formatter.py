"""
Handwritten Note OCR — Checklist Formatter Unit Tests
=======================================================

What:  Tests the todo/task checklist formatting.
"""

import pytest

from note_ocr.schemas.note import ExtractedNote
from note_ocr.services.note_formatter import format_note


def make_note(category: str, content: str) -> ExtractedNote:
    return ExtractedNote(
        title="List",
        content=content,
        category=category,
        tags=[],
        dates=[],
        contacts=[],
        confidence=0.9,
        raw_text=content,
    )


class TestFormatNote:

    @pytest.mark.parametrize("category", ["Todo", "TASK", "todo", "task"])
    def test_checklist_categories_get_boxes(self, category):
        note = format_note(make_note(category, "buy milk\ncall mom"))
        assert note.content == "☐ buy milk\n☐ call mom"

    @pytest.mark.parametrize("category", ["note", "meeting", "todos", ""])
    def test_other_categories_untouched(self, category):
        original = make_note(category, "buy milk\ncall mom")
        assert format_note(original) is original

    def test_marked_lines_untouched(self):
        note = format_note(make_note("todo", "☑ done thing\n☐ open thing\nnew thing"))
        assert note.content == "☑ done thing\n☐ open thing\n☐ new thing"

    def test_empty_and_blank_lines_preserved(self):
        note = format_note(make_note("todo", "first\n\n   \nsecond"))
        assert note.content == "☐ first\n\n   \n☐ second"

    def test_leading_whitespace_kept_after_marker(self):
        note = format_note(make_note("todo", "  indented item"))
        assert note.content == "☐   indented item"

    def test_indented_marked_line_untouched(self):
        note = format_note(make_note("task", "  ☑ done"))
        assert note.content == "  ☑ done"

    def test_idempotent(self):
        once = format_note(make_note("Todo", "a\n  b\n\n☑ c"))
        assert format_note(once) == once

    def test_other_fields_unchanged(self):
        original = make_note("todo", "a")
        formatted = format_note(original)
        assert formatted.raw_text == "a"
        assert formatted.model_dump(exclude={"content"}) == original.model_dump(exclude={"content"})
