"""
API authentication.

Clients send `Authorization: Bearer <token>`, a JWT signed with the
configured secret and carrying `user_id` and `username`.
"""
import jwt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""
    user_id: int
    username: str


def create_access_token(
    user_id: int,
    username: str,
    expires_in_minutes: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Issue an access token for a user.

    Args:
        user_id: Owner id used to scope repository access
        username: Also used for the commit author identity
        expires_in_minutes: Defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    settings = settings or get_settings()
    if expires_in_minutes is None:
        expires_in_minutes = settings.access_token_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(minutes=expires_in_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Optional[Identity]:
    """
    Validate a token.

    Returns:
        The identity, or None if the token is invalid, expired or incomplete
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError:
        return None

    user_id = payload.get("user_id")
    username = payload.get("username")
    if user_id is None or not username:
        return None
    try:
        return Identity(user_id=int(user_id), username=str(username))
    except (TypeError, ValueError):
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """FastAPI dependency: 401 without a token, 403 for a bad one."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    identity = decode_access_token(credentials.credentials)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    return identity
