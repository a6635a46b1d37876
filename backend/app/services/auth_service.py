"""Authentication service - passwords, JWT tokens and sign-in sessions.

Sessions and refresh tokens live in Redis when it is reachable and in
process memory otherwise. An access token names its session (``sid``);
signing out ends the session, which invalidates every token carrying it.
"""
import logging
import re
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import AuthenticationError, PasswordPolicyError, PermissionDeniedError
from app.models.user import AppUser
from app.repositories import user_repository
from app.utils.redis_client import get_redis

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8
DEACTIVATED_MESSAGE = "Your account has been deactivated"

_SESSION_PREFIX = "session:"
_USER_SESSIONS_PREFIX = "user_sessions:"
_REFRESH_PREFIX = "refresh:"
_USER_TOKENS_PREFIX = "user_tokens:"
_TTL = settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400

# In-memory fallbacks when Redis is unavailable; entries carry the same TTL as the Redis keys
_sessions: dict[str, tuple[str, float]] = {}  # sid -> (user_id, expires_at)
_refresh_tokens: dict[str, tuple[str, str, float]] = {}  # refresh_token -> (user_id, sid, expires_at)

_REDIS_ERRORS = (RedisError, OSError)


def _now() -> float:
    return time.monotonic()


def _purge_expired() -> None:
    now = _now()
    for sid in [s for s, (_, exp) in _sessions.items() if exp <= now]:
        _sessions.pop(sid, None)
    for token in [t for t, (_, _, exp) in _refresh_tokens.items() if exp <= now]:
        _refresh_tokens.pop(token, None)


# --- passwords ---

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def validate_password(password: str) -> list[str]:
    """Return the policy violations of ``password``; empty when acceptable."""
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    return errors


def ensure_password_policy(password: str) -> None:
    errors = validate_password(password)
    if errors:
        raise PasswordPolicyError("Password does not meet requirements", errors)


# --- tokens ---

def create_access_token(user: AppUser, session_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "organization_id": str(user.organization_id) if user.organization_id else None,
        "sid": session_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token() -> str:
    return secrets.token_urlsafe(32)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# --- sessions ---

async def create_session(user_id: str) -> str:
    sid = str(uuid.uuid4())
    try:
        redis = await get_redis()
        await redis.set(f"{_SESSION_PREFIX}{sid}", user_id, ex=_TTL)
        await redis.sadd(f"{_USER_SESSIONS_PREFIX}{user_id}", sid)
        await redis.expire(f"{_USER_SESSIONS_PREFIX}{user_id}", _TTL)
        return sid
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for create_session, using in-memory fallback")
    _purge_expired()
    _sessions[sid] = (user_id, _now() + _TTL)
    return sid


async def is_session_active(sid: str | None, user_id: str) -> bool:
    if not sid:
        return False
    try:
        redis = await get_redis()
        return await redis.get(f"{_SESSION_PREFIX}{sid}") == user_id
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for is_session_active, using in-memory fallback")
    entry = _sessions.get(sid)
    if entry is None:
        return False
    owner, expires_at = entry
    if expires_at <= _now():
        _sessions.pop(sid, None)
        return False
    return owner == user_id


async def end_session(sid: str) -> None:
    try:
        redis = await get_redis()
        user_id = await redis.get(f"{_SESSION_PREFIX}{sid}")
        await redis.delete(f"{_SESSION_PREFIX}{sid}")
        if user_id:
            await redis.srem(f"{_USER_SESSIONS_PREFIX}{user_id}", sid)
        return
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for end_session, using in-memory fallback")
    _sessions.pop(sid, None)


async def end_all_sessions(user_id: str) -> None:
    """Sign a user out everywhere: every session and refresh token is dropped."""
    await revoke_all_user_tokens(user_id)
    try:
        redis = await get_redis()
        sids = await redis.smembers(f"{_USER_SESSIONS_PREFIX}{user_id}")
        if sids:
            await redis.delete(*[f"{_SESSION_PREFIX}{s}" for s in sids])
        await redis.delete(f"{_USER_SESSIONS_PREFIX}{user_id}")
        return
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for end_all_sessions, using in-memory fallback")
    for sid in [s for s, (uid, _) in _sessions.items() if uid == user_id]:
        _sessions.pop(sid, None)


# --- refresh tokens ---

async def store_refresh_token(token: str, user_id: str, sid: str) -> None:
    try:
        redis = await get_redis()
        await redis.set(f"{_REFRESH_PREFIX}{token}", f"{user_id}:{sid}", ex=_TTL)
        await redis.sadd(f"{_USER_TOKENS_PREFIX}{user_id}", token)
        await redis.expire(f"{_USER_TOKENS_PREFIX}{user_id}", _TTL)
        return
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for store_refresh_token, using in-memory fallback")
    _purge_expired()
    _refresh_tokens[token] = (user_id, sid, _now() + _TTL)


async def consume_refresh_token(token: str) -> tuple[str, str] | None:
    """Get and delete a refresh token; rotation means each is usable once."""
    try:
        redis = await get_redis()
        key = f"{_REFRESH_PREFIX}{token}"
        value = await redis.get(key)
        if not value:
            return None
        await redis.delete(key)
        user_id, _, sid = value.partition(":")
        await redis.srem(f"{_USER_TOKENS_PREFIX}{user_id}", token)
        return user_id, sid
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for consume_refresh_token, using in-memory fallback")
    entry = _refresh_tokens.pop(token, None)
    if entry is None:
        return None
    user_id, sid, expires_at = entry
    if expires_at <= _now():
        return None
    return user_id, sid


async def revoke_all_user_tokens(user_id: str) -> None:
    try:
        redis = await get_redis()
        tokens = await redis.smembers(f"{_USER_TOKENS_PREFIX}{user_id}")
        if tokens:
            await redis.delete(*[f"{_REFRESH_PREFIX}{t}" for t in tokens])
        await redis.delete(f"{_USER_TOKENS_PREFIX}{user_id}")
        return
    except _REDIS_ERRORS:
        logger.debug("Redis unavailable for revoke_all_user_tokens, using in-memory fallback")
    for token in [t for t, (uid, _, _) in _refresh_tokens.items() if uid == user_id]:
        _refresh_tokens.pop(token, None)


# --- sign-in flows ---

async def authenticate_user(db: AsyncSession, email: str, password: str) -> AppUser | None:
    user = await user_repository.get_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    if user.archived:
        raise PermissionDeniedError(DEACTIVATED_MESSAGE)
    return user


async def issue_tokens(user: AppUser, sid: str | None = None) -> dict:
    """Access + refresh token pair; a new session is opened unless ``sid`` is given."""
    user_id = str(user.id)
    sid = sid or await create_session(user_id)
    refresh_token = create_refresh_token()
    await store_refresh_token(refresh_token, user_id, sid)
    return {
        "access_token": create_access_token(user, sid),
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


async def sign_in(db: AsyncSession, email: str, password: str) -> dict:
    user = await authenticate_user(db, email, password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    await user_repository.update(db, user, {"last_login_at": datetime.now(timezone.utc)})
    return await issue_tokens(user)


async def refresh_session(db: AsyncSession, refresh_token: str) -> dict:
    entry = await consume_refresh_token(refresh_token)
    if not entry:
        raise AuthenticationError("Invalid refresh token")
    user_id, sid = entry
    if not await is_session_active(sid, user_id):
        raise AuthenticationError("Session has ended")
    user = await user_repository.get_by_id(db, uuid.UUID(user_id))
    if not user or user.archived:
        raise AuthenticationError("User not found or deactivated")
    return await issue_tokens(user, sid)


async def sign_out(user_id: str, sid: str | None) -> None:
    if sid:
        await end_session(sid)
    await revoke_all_user_tokens(user_id)


async def change_password(db: AsyncSession, user: AppUser, current: str, new: str) -> None:
    if not verify_password(current, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    ensure_password_policy(new)
    await user_repository.update(db, user, {"password_hash": hash_password(new)})
