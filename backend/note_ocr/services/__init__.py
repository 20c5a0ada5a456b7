# Services package init
"""
Handwritten Note OCR — Services Layer
=======================================

What:  The extraction pipeline and its collaborators, independent of HTTP.

Service Inventory:
    - image_normalizer:   multipart bytes / data URL → ImagePayload; options parsing
    - prompt_builder:     ProcessingOptions → instruction text
    - VisionModelClient (abstract) / GeminiService: the remote model call
    - response_sanitizer: model reply → complete ExtractedNote
    - note_formatter:     checklist formatting for todo/task notes
    - NoteService:        runs the pipeline; shared by REST and tool adapters
    - TempImageStore:     time-to-live copy of processed uploads
    - ToolService:        tool-calling adapter over NoteService
"""
