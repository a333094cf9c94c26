"""Documents module exports.

The ingestion pipeline is imported from ``app.modules.documents.main``.
"""

from .models.flashcards import FlashCardPayload, GeneratedDeck
from .extractor import TextExtractor
from .generator import FlashCardGenerator

__all__ = [
    "FlashCardPayload",
    "GeneratedDeck",
    "TextExtractor",
    "FlashCardGenerator",
]
