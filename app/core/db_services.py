"""Database service for documents, their flash cards and the owner's list.

Documents keep an ordered ``flash_card_ids`` list and users keep an ordered
``document_ids`` list. Neither is a database constraint, so every write that
touches one side of a reference updates the other in the same commit.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.auth import User
from app.core.db.schemas.documents import Document, FlashCard, FlashCardType
from app.core.errors import NotFound, ValidationFailed
from app.core.logging import get_logger
from app.modules.documents.models.flashcards import (
    FlashCardPayload,
    card_columns,
    card_payload,
    flash_card_adapter,
)

logger = get_logger(__name__)

UNTITLED = "Untitled Document"


def flash_card_payload(card: FlashCard) -> dict[str, Any]:
    """Stored columns back into the JSON card shape (used for re-validation)."""
    return card_payload(
        card.type.value,
        difficulty=card.difficulty,
        question=card.question,
        answer=card.answer,
        options=card.options,
        pairs=card.pairs,
    )


def validate_flash_card(data: dict[str, Any]) -> FlashCardPayload:
    try:
        return flash_card_adapter.validate_python(data)
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        raise ValidationFailed(errors[0]["msg"] if errors else None, errors=errors) from e


class DocumentService:
    """Service for managing documents and flash cards in the database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _lock_user(self, user_id: int) -> Optional[User]:
        """Fresh, row-locked copy of the user before its document list is changed.

        The instance in the identity map may have been loaded long before
        (e.g. by the auth dependency), so it is overwritten with the current
        row. SQLite has no ``FOR UPDATE``; there the refresh alone applies.
        """
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # Documents

    async def create_document(
        self,
        *,
        user_id: int,
        title: Optional[str],
        summary: str,
    ) -> Document:
        """Add a document and flush so it has an id; caller commits."""
        title = (title or "").strip() or UNTITLED
        summary = (summary or "").strip()
        if not summary:
            raise ValidationFailed("Summary is required")
        doc = Document(user_id=user_id, title=title, summary=summary, flash_card_ids=[])
        self.session.add(doc)
        await self.session.flush()
        return doc

    async def create_flash_cards(
        self,
        *,
        document_id: int,
        cards: Sequence[FlashCardPayload],
    ) -> list[FlashCard]:
        """Insert all cards as one batch; any invalid card fails the batch."""
        rows = [
            FlashCard(
                document_id=document_id,
                type=FlashCardType(card.type),
                **card_columns(card),
            )
            for card in cards
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def attach_flash_cards(
        self, document: Document, cards: Sequence[FlashCard]
    ) -> Document:
        for card in cards:
            if card.document_id != document.id:
                raise ValidationFailed(
                    f"Flash card {card.id} does not belong to document {document.id}"
                )
        document.flash_card_ids = [c.id for c in cards]
        await self.session.flush()
        return document

    async def link_document_to_user(self, *, user_id: int, document_id: int) -> bool:
        """Append the document to its owner's list. False if the user is gone."""
        user = await self._lock_user(user_id)
        if user is None:
            logger.warning(f"User {user_id} not found while linking document {document_id}")
            return False
        if document_id not in (user.document_ids or []):
            user.document_ids = [*(user.document_ids or []), document_id]
        await self.session.flush()
        return True

    async def get_document(self, *, document_id: int, user_id: int) -> Document:
        result = await self.session.execute(
            select(Document).where(
                Document.id == document_id, Document.user_id == user_id
            )
        )
        doc = result.scalar_one_or_none()
        if doc is None:
            raise NotFound("Doc not found")
        return doc

    async def list_documents(self, *, user_id: int) -> list[Document]:
        result = await self.session.execute(
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        return list(result.scalars().all())

    async def list_flash_cards(self, document: Document) -> list[FlashCard]:
        """Cards in the document's reference order."""
        result = await self.session.execute(
            select(FlashCard).where(FlashCard.document_id == document.id)
        )
        by_id = {c.id: c for c in result.scalars().all()}
        return [by_id[i] for i in document.flash_card_ids or [] if i in by_id]

    async def cards_by_document(
        self, documents: Sequence[Document]
    ) -> dict[int, list[FlashCard]]:
        if not documents:
            return {}
        result = await self.session.execute(
            select(FlashCard).where(
                FlashCard.document_id.in_([d.id for d in documents])
            )
        )
        by_id = {c.id: c for c in result.scalars().all()}
        return {
            d.id: [by_id[i] for i in d.flash_card_ids or [] if i in by_id]
            for d in documents
        }

    async def create_standalone_document(
        self, *, user_id: int, title: Optional[str], summary: str
    ) -> Document:
        """Manual document creation: no cards, appended to the owner's list."""
        title = (title or "").strip()
        if not title:
            raise ValidationFailed("Title is required")
        doc = await self.create_document(user_id=user_id, title=title, summary=summary)
        await self.link_document_to_user(user_id=user_id, document_id=doc.id)
        await self.session.commit()
        return doc

    async def update_document(
        self,
        *,
        document_id: int,
        user_id: int,
        title: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> Document:
        doc = await self.get_document(document_id=document_id, user_id=user_id)
        if title is not None:
            if not title.strip():
                raise ValidationFailed("Title cannot be empty")
            doc.title = title.strip()
        if summary is not None:
            if not summary.strip():
                raise ValidationFailed("Summary cannot be empty")
            doc.summary = summary.strip()
        await self.session.commit()
        await self.session.refresh(doc)
        return doc

    async def _delete_document_rows(self, document_id: int, user_id: Optional[int]) -> int:
        result = await self.session.execute(
            delete(FlashCard).where(FlashCard.document_id == document_id)
        )
        await self.session.execute(delete(Document).where(Document.id == document_id))
        if user_id is not None:
            user = await self._lock_user(user_id)
            if user is not None and document_id in (user.document_ids or []):
                user.document_ids = [
                    d for d in user.document_ids if d != document_id
                ]
        return result.rowcount or 0

    async def delete_document(self, *, document_id: int, user_id: int) -> int:
        """Cascade delete: cards, document and owner reference in one commit."""
        doc = await self.get_document(document_id=document_id, user_id=user_id)
        removed = await self._delete_document_rows(doc.id, doc.user_id)
        await self.session.commit()
        logger.info(f"Deleted document {doc.id} with {removed} flash card(s)")
        return removed

    async def discard_document(self, *, document_id: int, user_id: Optional[int] = None) -> None:
        """Compensating cleanup for a document whose ingestion did not finish."""
        await self._delete_document_rows(document_id, user_id)
        await self.session.commit()

    async def delete_user_documents(self, *, user_id: int) -> int:
        """Remove every document (and its cards) owned by the user."""
        docs = await self.list_documents(user_id=user_id)
        for doc in docs:
            await self._delete_document_rows(doc.id, None)
        user = await self._lock_user(user_id)
        if user is not None:
            user.document_ids = []
        await self.session.commit()
        return len(docs)

    # Flash cards

    async def add_flash_card(
        self, *, document_id: int, user_id: int, data: dict[str, Any]
    ) -> FlashCard:
        doc = await self.get_document(document_id=document_id, user_id=user_id)
        card = validate_flash_card(data)
        rows = await self.create_flash_cards(document_id=doc.id, cards=[card])
        doc.flash_card_ids = [*(doc.flash_card_ids or []), rows[0].id]
        await self.session.commit()
        return rows[0]

    async def list_document_cards_newest_first(
        self, *, document_id: int, user_id: int
    ) -> list[FlashCard]:
        doc = await self.get_document(document_id=document_id, user_id=user_id)
        result = await self.session.execute(
            select(FlashCard)
            .where(FlashCard.document_id == doc.id)
            .order_by(FlashCard.created_at.desc(), FlashCard.id.desc())
        )
        return list(result.scalars().all())

    async def get_flash_card(self, *, card_id: int, user_id: int) -> FlashCard:
        card = await self.session.get(FlashCard, card_id)
        if card is None:
            raise NotFound("Flash card not found")
        owner = await self.session.execute(
            select(Document.id).where(
                Document.id == card.document_id, Document.user_id == user_id
            )
        )
        if owner.scalar_one_or_none() is None:
            raise NotFound("Flash card not found")
        return card

    async def update_flash_card(
        self, *, card_id: int, user_id: int, patch: dict[str, Any]
    ) -> FlashCard:
        card = await self.get_flash_card(card_id=card_id, user_id=user_id)
        merged = {**flash_card_payload(card), **patch}
        validated = validate_flash_card(merged)
        card.type = FlashCardType(validated.type)
        for column, value in card_columns(validated).items():
            setattr(card, column, value)
        await self.session.commit()
        await self.session.refresh(card)
        return card

    async def delete_flash_card(self, *, card_id: int, user_id: int) -> None:
        card = await self.get_flash_card(card_id=card_id, user_id=user_id)
        doc = await self.session.get(Document, card.document_id)
        if doc is not None:
            doc.flash_card_ids = [i for i in doc.flash_card_ids or [] if i != card.id]
        await self.session.delete(card)
        await self.session.commit()
