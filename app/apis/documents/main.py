from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db_services import DocumentService
from app.core.errors import StudyDocsError
from app.core.logging import get_logger, log_context
from app.modules.auth import current_active_user
from app.modules.documents.extractor import TextExtractor
from app.modules.documents.generator import FlashCardGenerator
from app.modules.documents.main import DocumentIngestor
from .schemas import (
    DocumentCreate,
    DocumentRead,
    DocumentSummary,
    DocumentUpdate,
    MessageResponse,
    UploadResponse,
)


router = APIRouter()

logger = get_logger(__name__)

CurrentUser = Annotated[User, Depends(current_active_user)]


@lru_cache(maxsize=1)
def get_ingestor() -> DocumentIngestor:
    return DocumentIngestor(
        extractor=TextExtractor(),
        generator=FlashCardGenerator.from_settings(settings.generation),
    )


async def _read_limited(file: UploadFile, limit: int) -> Optional[bytes]:
    """Read the upload, or None when it is larger than ``limit`` bytes."""
    data = await file.read(limit + 1)
    if len(data) > limit:
        return None
    return data


@router.post(
    f"/{settings.app.version}/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["upload"],
)
async def upload_document(
    user: CurrentUser,
    file: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None),
    session: AsyncSession = Depends(get_session),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    """Upload a file, generate flash cards from it and store both."""
    if file is None or not file.filename:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "No file uploaded"},
        )

    data = await _read_limited(file, settings.upload.max_bytes)
    if data is None:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"message": "File too large"},
        )

    with log_context(user_id=user.id):
        try:
            result = await ingestor.ingest(
                session,
                user_id=user.id,
                data=data,
                media_type=file.content_type,
                title=title,
            )
        except StudyDocsError as e:
            logger.info(f"Upload {file.filename!r} rejected: {e.message}")
            raise
        except Exception as e:  # noqa: BLE001
            logger.exception(f"Error processing file {file.filename!r}: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": "Error processing file"},
            )

    return UploadResponse(
        message="Document and flash cards created successfully",
        doc=DocumentRead.from_row(result.document, result.flash_cards),
        flash_card_count=result.flash_card_count,
    )


@router.post(
    f"/{settings.app.version}/docs",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    tags=["docs"],
)
async def create_document(
    req: DocumentCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    doc = await DocumentService(session).create_standalone_document(
        user_id=user.id, title=req.title, summary=req.summary
    )
    return DocumentRead.from_row(doc, [])


@router.get(
    f"/{settings.app.version}/docs",
    response_model=list[DocumentSummary],
    tags=["docs"],
)
async def list_documents(
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    db = DocumentService(session)
    docs = await db.list_documents(user_id=user.id)
    cards = await db.cards_by_document(docs)
    return [DocumentSummary.from_row(d, cards.get(d.id, [])) for d in docs]


@router.get(
    f"/{settings.app.version}/docs/{{doc_id:int}}",
    response_model=DocumentRead,
    tags=["docs"],
)
async def get_document(
    doc_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    db = DocumentService(session)
    doc = await db.get_document(document_id=doc_id, user_id=user.id)
    return DocumentRead.from_row(doc, await db.list_flash_cards(doc))


@router.patch(
    f"/{settings.app.version}/docs/{{doc_id:int}}",
    response_model=DocumentRead,
    tags=["docs"],
)
async def update_document(
    doc_id: int,
    req: DocumentUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    db = DocumentService(session)
    doc = await db.update_document(
        document_id=doc_id, user_id=user.id, title=req.title, summary=req.summary
    )
    return DocumentRead.from_row(doc, await db.list_flash_cards(doc))


@router.delete(
    f"/{settings.app.version}/docs/{{doc_id:int}}",
    response_model=MessageResponse,
    tags=["docs"],
)
async def delete_document(
    doc_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    await DocumentService(session).delete_document(document_id=doc_id, user_id=user.id)
    return MessageResponse(message="Doc and associated flash cards deleted")
