from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.db.schemas.documents import Document, FlashCard


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlashCardRead(CamelModel):
    id: int
    document_id: int
    type: str
    difficulty: int
    question: Optional[str] = None
    answer: Optional[str] = None
    multiple_choice: Optional[dict[str, Any]] = None
    matching: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, card: FlashCard) -> "FlashCardRead":
        return cls(
            id=card.id,
            document_id=card.document_id,
            type=card.type.value,
            difficulty=card.difficulty,
            question=card.question,
            answer=card.answer,
            multiple_choice={"options": card.options} if card.options is not None else None,
            matching={"pairs": card.pairs} if card.pairs is not None else None,
            created_at=card.created_at,
            updated_at=card.updated_at,
        )


class FlashCardBrief(CamelModel):
    id: int
    type: str
    difficulty: int


class DocumentSummary(CamelModel):
    id: int
    title: str
    summary: str
    created_at: datetime
    flash_card_count: int
    flash_cards: list[FlashCardBrief] = Field(default_factory=list)

    @classmethod
    def from_row(cls, doc: Document, cards: list[FlashCard]) -> "DocumentSummary":
        return cls(
            id=doc.id,
            title=doc.title,
            summary=doc.summary,
            created_at=doc.created_at,
            flash_card_count=doc.flash_card_count,
            flash_cards=[
                FlashCardBrief(id=c.id, type=c.type.value, difficulty=c.difficulty)
                for c in cards
            ],
        )


class DocumentRead(CamelModel):
    id: int
    user_id: int
    title: str
    summary: str
    flash_card_ids: list[int] = Field(default_factory=list)
    flash_card_count: int
    created_at: datetime
    updated_at: datetime
    flash_cards: Optional[list[FlashCardRead]] = None

    @classmethod
    def from_row(
        cls, doc: Document, cards: Optional[list[FlashCard]] = None
    ) -> "DocumentRead":
        return cls(
            id=doc.id,
            user_id=doc.user_id,
            title=doc.title,
            summary=doc.summary,
            flash_card_ids=list(doc.flash_card_ids or []),
            flash_card_count=doc.flash_card_count,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            flash_cards=[FlashCardRead.from_row(c) for c in cards]
            if cards is not None
            else None,
        )


class DocumentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None


class UploadResponse(CamelModel):
    message: str
    doc: DocumentRead
    flash_card_count: int


class MessageResponse(BaseModel):
    message: str
