"""
Handwritten Note OCR — Application Package Initializer
=======================================================

What: Marks the `note_ocr` directory as a Python package.
Why:  Enables module imports like `from note_ocr.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin orchestration layer around a remote vision model:

    ┌─────────────────────────────────────┐
    │    Routes (REST + tool adapter)     │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │       Services (Pipeline)           │  ← normalize → prompt → model → sanitize → format
    ├─────────────────────────────────────┤
    │          Schemas (Data)             │  ← Pydantic value objects
    ├─────────────────────────────────────┤
    │   Collaborators (Gemini, storage)   │  ← remote model, temporary image store
    └─────────────────────────────────────┘

    Nothing is persisted beyond a request except the temporary image copy,
    which expires on its own.
"""

__version__ = "1.0.0"
