"""Exception hierarchy for the study-docs backend.

Every error raised by the extraction, generation and persistence layers
derives from :class:`StudyDocsError`, which carries the HTTP status the API
layer should answer with. Handlers render ``message`` only; underlying
causes stay in the logs.

    StudyDocsError
    +-- UnsupportedMediaType   (upload of a type we cannot read)
    +-- ExtractionFailed       (corrupt file, legacy .doc, empty text)
    +-- GenerationFailed       (AI call failed or timed out)
    +-- MalformedAIResponse    (no JSON object / JSON did not parse)
    +-- InvalidGeneratedCard   (AI output violates card invariants)
    +-- NotFound               (document or card lookup miss)
    +-- ValidationFailed       (field-level input violations)
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class StudyDocsError(Exception):
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message}


class UnsupportedMediaType(StudyDocsError):
    status_code = 400
    default_message = "Unsupported file type"

    def __init__(
        self,
        media_type: Optional[str],
        supported_types: Iterable[str] = (),
    ) -> None:
        self.media_type = media_type
        self.supported_types = list(supported_types)
        super().__init__(f"Unsupported file type: {media_type}")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["supportedTypes"] = self.supported_types
        return payload


class ExtractionFailed(StudyDocsError):
    status_code = 400
    default_message = "Failed to process file"

    def __init__(
        self, message: Optional[str] = None, cause: Optional[BaseException] = None
    ) -> None:
        self.cause = cause
        super().__init__(message)


class GenerationFailed(StudyDocsError):
    status_code = 400
    default_message = "Failed to generate flash cards"


class MalformedAIResponse(StudyDocsError):
    """The model answered, but not with a usable JSON object.

    ``reason`` is ``"structure"`` when no ``{``/``}`` pair was found and
    ``"parse"`` when the extracted substring was not valid JSON. Both share
    the same user-facing message.
    """

    status_code = 400
    default_message = "Failed to parse AI response"

    STRUCTURE = "structure"
    PARSE = "parse"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__()


class InvalidGeneratedCard(StudyDocsError):
    status_code = 400
    default_message = "AI generated an invalid flash card"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class NotFound(StudyDocsError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(StudyDocsError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None) -> None:
        self.errors = errors or []
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


__all__ = [
    "StudyDocsError",
    "UnsupportedMediaType",
    "ExtractionFailed",
    "GenerationFailed",
    "MalformedAIResponse",
    "InvalidGeneratedCard",
    "NotFound",
    "ValidationFailed",
]
