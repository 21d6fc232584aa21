"""
FastAPI dependencies shared by the v1 routers.

Everything under /rota, /carers, /packages and /tasks is admin-only; viewers
can sign in and read /auth/me but nothing else.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from caretrack.core.database import get_db
from caretrack.core.security import ACCESS_TOKEN, token_subject
from caretrack.models.user import User
from caretrack.services.rota_service import RotaService

ADMIN_ROLE = "admin"

bearer = HTTPBearer()

DB = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer)],
    db: DB,
) -> User:
    try:
        user_id = token_subject(credentials.credentials, ACCESS_TOKEN)
    except ValueError:
        user_id = None

    user = await db.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_admin_user(current_user: CurrentUser) -> User:
    if current_user.role != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Rota management requires the admin role",
        )
    return current_user


AdminUser = Annotated[User, Depends(get_admin_user)]


def get_rota_service(db: DB) -> RotaService:
    # same request-scoped session the router writes through
    return RotaService(db)


Rota = Annotated[RotaService, Depends(get_rota_service)]
