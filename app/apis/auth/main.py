from fastapi import APIRouter, Depends, status

from app.core.config import settings
from app.core.db.schemas.auth import User
from app.modules.auth import (
    fastapi_users,
    auth_backend,
    current_active_user,
    get_user_manager,
    UserRead,
    UserCreate,
    UserUpdate,
    UserManager,
)


router = APIRouter()


# Registered ahead of the users router so it wins over /users/{id}
@router.delete(
    f"/{settings.app.version}/users/me",
    status_code=status.HTTP_200_OK,
    tags=["users"],
)
async def delete_account(
    user: User = Depends(current_active_user),
    user_manager: UserManager = Depends(get_user_manager),
):
    """Delete the account together with all of its documents and flash cards."""
    await user_manager.delete(user)
    return {
        "success": True,
        "message": "User account and all associated data deleted successfully",
    }


router.include_router(
    fastapi_users.get_auth_router(auth_backend),
    prefix=f"/{settings.app.version}/auth",
    tags=["auth"],
)

router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix=f"/{settings.app.version}/auth",
    tags=["auth"],
)

router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix=f"/{settings.app.version}/users",
    tags=["users"],
)
