from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db_services import DocumentService
from app.modules.auth import current_active_user
from app.apis.documents.schemas import FlashCardRead, MessageResponse


router = APIRouter()

CurrentUser = Annotated[User, Depends(current_active_user)]

# Card bodies are validated against the card union in DocumentService.
CardBody = Annotated[dict[str, Any], Body(...)]


@router.post(
    f"/{settings.app.version}/flash/{{doc_id:int}}",
    response_model=FlashCardRead,
    status_code=status.HTTP_201_CREATED,
    tags=["flash"],
)
async def create_flash_card(
    doc_id: int,
    body: CardBody,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    card = await DocumentService(session).add_flash_card(
        document_id=doc_id, user_id=user.id, data=body
    )
    return FlashCardRead.from_row(card)


@router.get(
    f"/{settings.app.version}/flash/doc/{{doc_id:int}}",
    response_model=list[FlashCardRead],
    tags=["flash"],
)
async def list_document_flash_cards(
    doc_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    cards = await DocumentService(session).list_document_cards_newest_first(
        document_id=doc_id, user_id=user.id
    )
    return [FlashCardRead.from_row(c) for c in cards]


@router.get(
    f"/{settings.app.version}/flash/{{card_id:int}}",
    response_model=FlashCardRead,
    tags=["flash"],
)
async def get_flash_card(
    card_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    card = await DocumentService(session).get_flash_card(card_id=card_id, user_id=user.id)
    return FlashCardRead.from_row(card)


@router.patch(
    f"/{settings.app.version}/flash/{{card_id:int}}",
    response_model=FlashCardRead,
    tags=["flash"],
)
async def update_flash_card(
    card_id: int,
    body: CardBody,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    card = await DocumentService(session).update_flash_card(
        card_id=card_id, user_id=user.id, patch=body
    )
    return FlashCardRead.from_row(card)


@router.delete(
    f"/{settings.app.version}/flash/{{card_id:int}}",
    response_model=MessageResponse,
    tags=["flash"],
)
async def delete_flash_card(
    card_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    await DocumentService(session).delete_flash_card(card_id=card_id, user_id=user.id)
    return MessageResponse(message="Flash card deleted")
