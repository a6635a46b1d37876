"""FastAPI dependency injection utilities."""
import uuid as _uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import AuthenticationError, PermissionDeniedError
from app.models.user import AppUser, UserRole
from app.repositories import user_repository
from app.services.auth_service import DEACTIVATED_MESSAGE, decode_access_token, is_session_active
from app.services.permission_service import Actor
from app.services.storage_service import get_storage

security = HTTPBearer(auto_error=False)

__all__ = [
    "get_db",
    "get_storage",
    "get_current_user",
    "get_actor",
    "get_optional_actor",
    "require_role",
]


async def _user_from_token(token: str, db: AsyncSession) -> tuple[AppUser, str]:
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        detail = "Token expired" if "expired" in str(e).lower() else "Invalid token"
        raise AuthenticationError(detail)

    user_id = payload.get("sub")
    sid = payload.get("sid")
    if user_id is None:
        raise AuthenticationError("Invalid token")
    if not await is_session_active(sid, user_id):
        raise AuthenticationError("Session has ended")

    user = await user_repository.get_by_id(db, _uuid.UUID(user_id))
    if not user:
        raise AuthenticationError("Invalid user")
    if user.archived:
        raise AuthenticationError(DEACTIVATED_MESSAGE)
    return user, sid


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AppUser:
    """Extract current user from the JWT access token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    user, _ = await _user_from_token(credentials.credentials, db)
    return user


async def get_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """The authenticated caller as an ``Actor`` bound to its session."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    user, sid = await _user_from_token(credentials.credentials, db)
    return Actor.from_user(user, sid)


async def get_optional_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Actor | None:
    """Like ``get_actor``, but anonymous requests resolve to None."""
    if credentials is None:
        return None
    user, sid = await _user_from_token(credentials.credentials, db)
    return Actor.from_user(user, sid)


def require_role(*roles: UserRole):
    """Role-based access control dependency."""
    async def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in roles:
            raise PermissionDeniedError("Insufficient permissions")
        return actor
    return Depends(dependency)
