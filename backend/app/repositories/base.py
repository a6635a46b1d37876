"""Shared helpers that route every statement through the retry policy.

Each attempt runs inside its own SAVEPOINT. A transient failure rolls back
only that statement, so the rest of the request's transaction survives the
retry and commits (or rolls back) as one unit.
"""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.retry import RetryPolicy, default_retry_policy


async def run(
    db: AsyncSession, statement: Any, *, label: str = "query", policy: RetryPolicy | None = None,
) -> Any:
    """Execute one statement; a transient failure re-executes it in a fresh savepoint."""
    policy = policy or default_retry_policy

    async def _execute() -> Any:
        async with db.begin_nested():
            return await db.execute(statement)

    return await policy.run(_execute, label=label)


async def persist(
    db: AsyncSession,
    instance: Any,
    *,
    values: dict[str, Any] | None = None,
    label: str = "insert",
    policy: RetryPolicy | None = None,
) -> None:
    """Insert or update one ORM instance and load its server-side defaults.

    ``values`` are assigned inside the savepoint: a rolled-back attempt expires
    them on the instance, and the next attempt assigns them again.
    """
    policy = policy or default_retry_policy

    async def _flush() -> None:
        async with db.begin_nested():
            db.add(instance)
            for key, value in (values or {}).items():
                setattr(instance, key, value)
            await db.flush()
            await db.refresh(instance)

    await policy.run(_flush, label=label)
