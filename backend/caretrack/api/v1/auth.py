import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from caretrack.api.deps import DB, CurrentUser
from caretrack.core.security import (
    REFRESH_TOKEN, verify_password, create_access_token, create_refresh_token, token_subject,
)
from caretrack.models.user import User
from caretrack.schemas.auth import LoginRequest, Token, RefreshRequest, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_tokens(user: User) -> Token:
    return Token(
        access_token=create_access_token(user.id, user.role),
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/login", response_model=Token)
async def login(payload: LoginRequest, db: DB):
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.hashed_password):
        logger.info("Failed rota login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Account is deactivated")

    return _issue_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(payload: RefreshRequest, db: DB):
    try:
        user_id = token_subject(payload.refresh_token, REFRESH_TOKEN)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return _issue_tokens(user)


@router.get("/me", response_model=UserOut)
async def get_me(current_user: CurrentUser):
    return current_user
