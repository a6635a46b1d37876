"""Retry policy shared by every data-access call.

Transient infrastructure failures (dropped connections, timeouts, driver
operational errors) are re-invoked with a linearly increasing delay.
Integrity violations (SQLSTATE class 23: duplicate key, foreign key, check)
and domain errors are permanent and surface immediately.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from app.config import settings
from app.exceptions import (
    AppException,
    DuplicateError,
    ForeignKeyViolationError,
    TransientNetworkError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTEGRITY_SQLSTATE_CLASS = "23"
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
)


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE code of a driver error, if the driver exposes one."""
    orig = getattr(exc, "orig", None) or exc
    for attr in ("sqlstate", "pgcode", "code"):
        value = getattr(orig, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


def is_integrity_error(exc: BaseException) -> bool:
    if isinstance(exc, (IntegrityError, DuplicateError, ForeignKeyViolationError)):
        return True
    code = sqlstate_of(exc)
    return bool(code and code.startswith(INTEGRITY_SQLSTATE_CLASS))


def translate_integrity_error(exc: IntegrityError) -> AppException:
    """Map a driver integrity error onto the application taxonomy."""
    code = sqlstate_of(exc)
    message = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = message.lower()
    if code == UNIQUE_VIOLATION or "unique constraint" in lowered or "duplicate key" in lowered:
        return DuplicateError("A record with the same unique value already exists")
    if code == FOREIGN_KEY_VIOLATION or "foreign key constraint" in lowered:
        return ForeignKeyViolationError("Referenced record does not exist")
    return ValidationError(f"Integrity constraint violated: {message[:200]}")


def classify_error(exc: BaseException) -> bool:
    """Return True when ``exc`` is a transient failure worth retrying."""
    if is_integrity_error(exc):
        return False
    if isinstance(exc, TransientNetworkError):
        return True
    if isinstance(exc, AppException):
        return False
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, TRANSIENT_EXCEPTIONS)


class RetryPolicy:
    """Re-invoke an async operation up to ``max_attempts`` times.

    The wait after the n-th failed attempt is ``delay * n`` seconds.
    ``on_retry`` runs before each new attempt. Repositories leave it unset:
    their attempts run in a savepoint that is already rolled back on failure.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay: float = 1.0,
        is_retryable: Callable[[BaseException], bool] = classify_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self.is_retryable = is_retryable
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_retry: Callable[[], Awaitable[None]] | None = None,
        label: str = "operation",
    ) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except IntegrityError as exc:
                raise translate_integrity_error(exc) from exc
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                if attempt >= self.max_attempts:
                    logger.error("%s failed after %d attempts: %s", label, attempt, exc)
                    if isinstance(exc, TransientNetworkError):
                        raise
                    raise TransientNetworkError(
                        f"{label} failed after {attempt} attempts"
                    ) from exc
                wait = self.delay * attempt
                logger.warning(
                    "Retry %d/%d for %s after %.1fs: %s",
                    attempt, self.max_attempts - 1, label, wait, exc,
                )
                if on_retry is not None:
                    await on_retry()
                await self._sleep(wait)
        raise RuntimeError("unreachable")  # pragma: no cover


default_retry_policy = RetryPolicy(
    max_attempts=settings.RETRY_MAX_ATTEMPTS,
    delay=settings.RETRY_DELAY_SECONDS,
)
