from __future__ import annotations

from typing import TYPE_CHECKING
from sqlalchemy import JSON, Boolean, Integer, String, false, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTable

from app.core.db.base import Base

if TYPE_CHECKING:
    from .documents import Document


class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    dark_mode: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    # Owner's ordered document list; kept in step with documents.user_id by
    # DocumentService, not by a database constraint.
    document_ids: Mapped[list[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        server_default=sa_text("'[]'"),
    )

    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="user"
    )


__all__ = ["User"]
