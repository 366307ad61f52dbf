"""Queries against the ``refresh_tokens`` table.

None of these functions commit; the caller owns the transaction.
"""

from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.models.auth import RefreshToken


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    SQLite hands timestamps back naive; they are stored as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def store_refresh_token(
    session: AsyncSession, user_id: str, token_hash: str, expires_at: datetime
) -> RefreshToken:
    record = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
    session.add(record)
    await session.flush()
    return record


async def consume_refresh_token(session: AsyncSession, token_hash: str) -> Row | None:
    """Delete the record for ``token_hash`` and return what was deleted.

    The lookup and the delete are one statement, so of several concurrent
    callers presenting the same digest at most one gets a row back.

    Returns:
        Row | None: ``(id, user_id, expires_at)`` of the deleted record, or
            None when no record matched.
    """
    result = await session.execute(
        delete(RefreshToken)
        .where(RefreshToken.token_hash == token_hash)
        .returning(RefreshToken.id, RefreshToken.user_id, RefreshToken.expires_at)
        .execution_options(synchronize_session=False)
    )
    return result.first()


async def delete_expired_refresh_tokens(
    session: AsyncSession, now: datetime, user_id: str | None = None
) -> int:
    stmt = delete(RefreshToken).where(RefreshToken.expires_at <= now)
    if user_id is not None:
        stmt = stmt.where(RefreshToken.user_id == user_id)
    result = await session.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount or 0
