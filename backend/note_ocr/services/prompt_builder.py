"""
Handwritten Note OCR — Prompt Builder
=======================================

What:  Builds the instruction sent to the vision model together with the image.
Why:   The JSON schema the model is asked for depends on the caller's options;
       keeping that logic in one pure function makes it testable without a model.
How:   Fills a fixed template: category guidance, and the dates/contacts
       placeholders, switch on ProcessingOptions. No I/O, no randomness.
Who:   Called by NoteService.extract_note().
"""

from note_ocr.schemas.note import ImagePayload, ProcessingOptions, PromptSpec

DATES_PLACEHOLDER = '["extracted dates in YYYY-MM-DD format"]'
CONTACTS_PLACEHOLDER = '["names and contact information"]'
EMPTY_PLACEHOLDER = "[]"

PROMPT_TEMPLATE = """
Analyze this handwritten note image and extract the content into structured JSON format.

Expected JSON structure:
{{
  "title": "Main heading or subject of the note (if any)",
  "content": "Main body text and content",
  "category": "Inferred category (meeting, todo, idea, note, reminder, list, etc.)",
  "tags": ["relevant", "keywords", "and", "topics"],
  "dates": {dates},
  "contacts": {contacts},
  "confidence": 0.95,
  "raw_text": "All extracted text as-is"
}}

Instructions:
- Extract all readable handwritten text accurately
- {category_guidance}
- Generate 3-5 relevant tags based on content
- Set confidence score between 0.0-1.0 based on text clarity
- If no clear title exists, use the first meaningful phrase
- For dates, look for any date references, deadlines, or time mentions
- {contact_guidance}
- Return only valid JSON, no additional text
"""


def category_guidance(options: ProcessingOptions) -> str:
    if options.category_hints:
        return f"Focus on these categories: {', '.join(options.category_hints)}"
    return "Infer the most appropriate category"


def build_instruction(options: ProcessingOptions) -> str:
    """Render the instruction text for the given options."""
    return PROMPT_TEMPLATE.format(
        dates=DATES_PLACEHOLDER if options.extract_dates else EMPTY_PLACEHOLDER,
        contacts=CONTACTS_PLACEHOLDER if options.extract_contacts else EMPTY_PLACEHOLDER,
        category_guidance=category_guidance(options),
        contact_guidance=(
            "Extract any names, phone numbers, or email addresses"
            if options.extract_contacts
            else "Do not extract contact information"
        ),
    )


def build_prompt(image: ImagePayload, options: ProcessingOptions) -> PromptSpec:
    """Bundle the rendered instruction with the image to send."""
    return PromptSpec(instruction=build_instruction(options), image=image)
