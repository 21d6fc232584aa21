from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import jwt, JWTError
from passlib.context import CryptContext

from caretrack.core.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(subject: str | UUID, token_type: str, lifetime: timedelta, **claims: Any) -> str:
    claims.update(
        sub=str(subject),
        type=token_type,
        exp=datetime.now(timezone.utc) + lifetime,
    )
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str | UUID,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Short-lived bearer token for the API; carries the user's role."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(subject, ACCESS_TOKEN, lifetime, role=role)


def create_refresh_token(subject: str | UUID) -> str:
    return _encode(subject, REFRESH_TOKEN, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    """
    Decode and verify a token. Raises ValueError when the signature or expiry
    is bad, or when ``expected_type`` is given and the token is of another kind.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}")
    if expected_type is not None and payload.get("type") != expected_type:
        raise ValueError(f"Expected a {expected_type} token")
    return payload


def token_subject(token: str, expected_type: str) -> UUID:
    """User id of a verified token of the given kind."""
    payload = decode_token(token, expected_type)
    try:
        return UUID(payload["sub"])
    except KeyError:
        raise ValueError("Token has no subject")
