"""
LinkMe Backend - Account Route Handlers
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linkme.database import get_db_session
from linkme.dependencies import AuthUser, get_current_user
from linkme.schemas.common import ErrorResponse
from linkme.schemas.user import UserResponse, UserUpdate
from linkme.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Account"])


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The authenticated account",
)
async def get_me(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.get_me(db=db, user_id=user.id)


@router.put(
    "/me",
    response_model=UserResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        409: {"description": "Email already in use", "model": ErrorResponse},
    },
    summary="Update name or email",
)
async def update_me(
    data: UserUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_me(db=db, user_id=user.id, data=data)
