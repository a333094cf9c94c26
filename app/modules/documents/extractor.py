"""Plain-text extraction from uploaded files.

Supported inputs are plain text (decoded as UTF-8), PDF (PyMuPDF) and DOCX
(python-docx). Legacy ``.doc`` is rejected outright rather than attempted;
every other media type fails before any parsing happens. Library exceptions
never escape: they are wrapped in :class:`ExtractionFailed`.
"""

from __future__ import annotations

import io
from typing import Callable

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from app.core.errors import ExtractionFailed, UnsupportedMediaType
from app.core.logging import get_logger

logger = get_logger(__name__)

PDF = "application/pdf"
PLAIN_TEXT = "text/plain"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_DOC = "application/msword"

SUPPORTED_MEDIA_TYPES: tuple[str, ...] = (PDF, PLAIN_TEXT, DOCX, LEGACY_DOC)

LEGACY_DOC_MESSAGE = "Legacy .doc files are not supported. Please convert to .docx"

EXTENSION_MEDIA_TYPES = {
    ".pdf": PDF,
    ".txt": PLAIN_TEXT,
    ".md": PLAIN_TEXT,
    ".docx": DOCX,
    ".doc": LEGACY_DOC,
}


def normalize_media_type(media_type: str | None) -> str | None:
    """Drop parameters such as ``; charset=utf-8`` and lowercase."""
    if not media_type:
        return None
    return media_type.split(";", 1)[0].strip().lower() or None


def _extract_plain_text(data: bytes) -> str:
    return data.decode("utf-8")


def _extract_pdf(data: bytes) -> str:
    parts: list[str] = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            parts.append(page.get_text())
    return "\n".join(parts)


def _extract_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(lines)


class TextExtractor:
    """Maps media types to extraction strategies."""

    def __init__(self) -> None:
        self._strategies: dict[str, Callable[[bytes], str]] = {
            PLAIN_TEXT: _extract_plain_text,
            PDF: _extract_pdf,
            DOCX: _extract_docx,
        }

    @property
    def supported_media_types(self) -> tuple[str, ...]:
        return SUPPORTED_MEDIA_TYPES

    def is_supported(self, media_type: str | None) -> bool:
        return normalize_media_type(media_type) in SUPPORTED_MEDIA_TYPES

    def extract(self, data: bytes, media_type: str | None) -> str:
        kind = normalize_media_type(media_type)
        if kind not in SUPPORTED_MEDIA_TYPES:
            raise UnsupportedMediaType(media_type, SUPPORTED_MEDIA_TYPES)
        if kind == LEGACY_DOC:
            raise ExtractionFailed(LEGACY_DOC_MESSAGE)

        strategy = self._strategies[kind]
        try:
            text = strategy(data)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Text extraction failed for {kind}: {e}")
            raise ExtractionFailed(f"Failed to process file: {kind}", cause=e) from e

        if not text or not text.strip():
            raise ExtractionFailed("No text could be extracted from the file")
        return text


def guess_media_type(filename: str) -> str | None:
    """Best-effort media type from a file extension (used by the CLI)."""
    lower = filename.lower()
    for ext, media_type in EXTENSION_MEDIA_TYPES.items():
        if lower.endswith(ext):
            return media_type
    return None
