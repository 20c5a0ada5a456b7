"""
Handwritten Note OCR — Category-Conditional Formatter
=======================================================

What:  Turns todo/task notes into checklists by prefixing each line with an empty box.
How:   For category "todo" or "task" (any case), every non-empty content line that
       does not already start with ☐ or ☑ gets "☐ " prepended. Other notes pass through.
Why:   Pure and idempotent; formatting an already formatted note changes nothing.
"""

from note_ocr.schemas.note import ExtractedNote

UNCHECKED_BOX = "☐"
CHECKED_BOX = "☑"
CHECKLIST_CATEGORIES = {"todo", "task"}


def is_checklist(category: str) -> bool:
    return category.lower() in CHECKLIST_CATEGORIES


def checkbox_line(line: str) -> str:
    stripped = line.strip()
    if not stripped or stripped.startswith((UNCHECKED_BOX, CHECKED_BOX)):
        return line
    return f"{UNCHECKED_BOX} {line}"


def format_note(note: ExtractedNote) -> ExtractedNote:
    if not is_checklist(note.category):
        return note
    content = "\n".join(checkbox_line(line) for line in note.content.split("\n"))
    return note.model_copy(update={"content": content})
