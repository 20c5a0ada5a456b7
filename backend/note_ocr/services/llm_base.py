"""
Handwritten Note OCR — Abstract Vision Model Interface
========================================================

What:  Abstract base class defining the contract for remote vision model clients.
Why:   The pipeline only needs "send instruction + image, get text back"; keeping
       that behind an interface lets tests and future providers slot in unchanged.
How:   Concrete implementations inherit from VisionModelClient and implement generate().
Who:   Called by NoteService during extraction.
"""

from abc import ABC, abstractmethod

from note_ocr.schemas.note import PromptSpec


class VisionModelClient(ABC):
    """
    Abstract interface for a remote vision-capable model.

    Contract:
        - generate() sends the prompt's instruction and inline image in one call
          and returns the reply text unmodified ("" when the model returned nothing)
        - Quota/rate-limit failures are raised as QuotaExceededError
        - Every other call failure is raised as LLMServiceError
        - Parsing the reply is NOT the client's job (see response_sanitizer)

    Implementations:
        - GeminiService: Google Gemini API
    """

    @abstractmethod
    async def generate(self, prompt: PromptSpec) -> str:
        """
        Send the prompt to the model and return its raw reply text.

        Raises:
            ConfigurationError: No API key configured.
            QuotaExceededError: The provider reported quota or rate-limit exhaustion.
            LLMServiceError: The call failed or timed out.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the model API is reachable and operational.

        Lightweight connectivity test that does NOT consume API quota.
        Returns True if reachable, False otherwise.
        """
        ...
