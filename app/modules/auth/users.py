from typing import Any, AsyncIterator, Optional, Union, cast

from fastapi import Depends, Request
from fastapi_users import FastAPIUsers, InvalidPasswordException
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    JWTStrategy,
)
from fastapi_users.authentication.transport import Transport
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from fastapi_users.manager import BaseUserManager, IntegerIDMixin
from fastapi_users import schemas as fa_schemas

from pydantic import EmailStr, Field

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db_services import DocumentService
from app.core.logging import get_logger


logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


class UserRead(fa_schemas.BaseUser[int]):
    username: Optional[str] = None
    dark_mode: bool = False
    document_ids: list[int] = Field(default_factory=list)


class UserCreate(fa_schemas.BaseUserCreate):
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    dark_mode: bool = False


class UserUpdate(fa_schemas.BaseUserUpdate):
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    dark_mode: Optional[bool] = None


async def get_user_db(
    session: AsyncSession = Depends(get_session),
) -> AsyncIterator[SQLAlchemyUserDatabase]:
    yield SQLAlchemyUserDatabase(session, User)


class UserManager(IntegerIDMixin, BaseUserManager[User, int]):  # type: ignore[type-arg]
    """Account lifecycle: password rules, and owned documents go with the account."""

    reset_password_token_secret = settings.app.jwt_secret
    verification_token_secret = settings.app.jwt_secret

    async def validate_password(
        self, password: str, user: Union[fa_schemas.UC, User]
    ) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordException(
                reason=f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if user.email and user.email.lower() in password.lower():
            raise InvalidPasswordException(reason="Password should not contain e-mail")

    async def on_after_register(self, user: User, request: Optional[Request] = None) -> None:
        logger.info(f"User {user.id} registered")

    async def on_before_delete(self, user: User, request: Optional[Request] = None) -> None:
        session = cast(Any, self.user_db).session
        removed = await DocumentService(session).delete_user_documents(user_id=user.id)
        logger.info(f"Removed {removed} document(s) before deleting user {user.id}")

    async def on_after_delete(self, user: User, request: Optional[Request] = None) -> None:
        logger.info(f"User {user.id} deleted")


async def get_user_manager(
    user_db: SQLAlchemyUserDatabase = Depends(get_user_db),
) -> AsyncIterator[UserManager]:
    yield UserManager(user_db)


# Auth backend: JWT over Bearer, using versioned path for login
bearer_transport = BearerTransport(tokenUrl=f"{settings.app.version}/auth/login")


def get_jwt_strategy() -> JWTStrategy:
    # HS256 with a shared secret; tokens carry the user id as "sub"
    return JWTStrategy(
        secret=settings.app.jwt_secret,
        lifetime_seconds=settings.app.jwt_lifetime_seconds,
    )


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=cast(Transport, bearer_transport),
    get_strategy=get_jwt_strategy,
)


fastapi_users = FastAPIUsers[User, int](  # type: ignore[type-arg]
    get_user_manager,
    [auth_backend],
)

current_active_user = fastapi_users.current_user(active=True)
