"""Upload-and-generate pipeline.

``DocumentIngestor`` drives a single upload end to end:

1. media type check (fails before any downstream call)
2. text extraction
3. flash-card generation
4. document row (flushed so it has an id)
5. all cards in one batch, tagged with the document id
6. document reference list set to the created card ids, then commit
7. document appended to the owner's list
8. result handed back to the caller

A failure in steps 5-6 rolls the session back and deletes anything left
under the document id before the error is re-raised. A failure in step 7 is
logged only: the document and cards are valid on their own.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.documents import Document, FlashCard
from app.core.db_services import DocumentService
from app.core.errors import UnsupportedMediaType, ValidationFailed
from app.core.logging import get_logger, log_context
from app.modules.documents.extractor import TextExtractor, normalize_media_type
from app.modules.documents.generator import FlashCardGenerator

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    document: Document
    flash_cards: list[FlashCard] = field(default_factory=list)
    linked_to_user: bool = True

    @property
    def flash_card_count(self) -> int:
        return len(self.flash_cards)


class DocumentIngestor:
    """Coordinates extraction, generation and persistence for one upload."""

    def __init__(
        self,
        *,
        extractor: TextExtractor,
        generator: FlashCardGenerator,
    ) -> None:
        self.extractor = extractor
        self.generator = generator

    @staticmethod
    async def _discard(
        session: AsyncSession,
        db: DocumentService,
        *,
        document_id: int,
        user_id: int,
    ) -> None:
        """Remove whatever is left of a half-built document.

        A failure here is logged only; the caller re-raises the error that
        triggered the cleanup.
        """
        try:
            await session.rollback()
            await db.discard_document(document_id=document_id, user_id=user_id)
        except Exception:
            logger.exception(f"Cleanup of document {document_id} failed")

    async def ingest(
        self,
        session: AsyncSession,
        *,
        user_id: int,
        data: Optional[bytes],
        media_type: Optional[str],
        title: Optional[str] = None,
    ) -> IngestionResult:
        kind = normalize_media_type(media_type)
        if data is None:
            raise ValidationFailed("No file uploaded")
        if not self.extractor.is_supported(kind):
            raise UnsupportedMediaType(media_type, self.extractor.supported_media_types)

        text = await asyncio.to_thread(self.extractor.extract, data, kind)
        logger.info(f"Extracted {len(text)} characters from {kind} upload")

        deck = await self.generator.generate(text)
        logger.info(f"Generated {len(deck.flash_cards)} flash card(s)")

        db = DocumentService(session)
        document = await db.create_document(
            user_id=user_id, title=title, summary=deck.summary
        )
        document_id = document.id
        with log_context(document_id=document_id):
            try:
                cards = await db.create_flash_cards(
                    document_id=document_id, cards=deck.flash_cards
                )
                await db.attach_flash_cards(document, cards)
                await session.commit()
            except Exception:
                logger.warning(
                    f"Ingestion failed after document {document_id} was created; cleaning up",
                    exc_info=True,
                )
                await self._discard(session, db, document_id=document_id, user_id=user_id)
                raise

            linked = True
            try:
                linked = await db.link_document_to_user(
                    user_id=user_id, document_id=document_id
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                linked = False
                logger.error(
                    f"Could not add document {document_id} to user {user_id}'s list: {e}"
                )
                # rollback expired the committed rows; reload them for the response
                await session.refresh(document)
                for card in cards:
                    await session.refresh(card)

            logger.info(f"Stored document {document_id} with {len(cards)} flash card(s)")

        return IngestionResult(document=document, flash_cards=cards, linked_to_user=linked)
