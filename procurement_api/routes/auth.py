from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.config import settings
from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.models.user import User
from procurement_api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    TokenResponse,
    UserResponse,
)
from procurement_api.services.auth_service import (
    create_access_token,
    hash_password,
    verify_password,
)

logger = structlog.get_logger()

router = APIRouter()


async def _get_active_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active == True)  # noqa: E712
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate by email or username and return an access token."""
    login_value = body.login.strip()
    result = await db.execute(
        select(User).where(
            or_(User.email == login_value.lower(), User.username == login_value),
            User.is_active == True,  # noqa: E712
        )
    )
    user = result.scalars().first()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "AUTH_INVALID_CREDENTIALS",
                "message": "Invalid email or password",
            },
        )

    user.last_login_at = datetime.utcnow()

    access_token = create_access_token(
        user_id=str(user.id),
        username=user.username,
        user_type=user.type,
        email=user.email,
        supplier_id=user.supplier_id,
    )
    logger.info("user_logged_in", user_id=str(user.id), role=user.type)

    return TokenResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_active_user(db, current_user["user_id"])
    return UserResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        type=user.type,
        supplier_id=user.supplier_id,
        is_active=user.is_active,
        created_at=user.created_at.isoformat() if user.created_at else "",
    )


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the authenticated user's password."""
    user = await _get_active_user(db, current_user["user_id"])

    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect current password",
        )

    user.password_hash = hash_password(body.new_password)
    logger.info("password_changed", user_id=str(user.id))
