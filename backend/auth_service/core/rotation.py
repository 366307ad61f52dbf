"""Refresh token rotation.

ROTATION FLOW (POST /auth/refresh):

1. Verify the presented refresh token's signature and expiry. A failure is
   rejected without touching the database.
2. Digest the token and atomically delete the record backing it
   (``DELETE ... RETURNING``).
3. No row deleted: the token was never issued, was already rotated away,
   or a concurrent request consumed it first. Reject.
4. Row deleted but past its expiry: keep the deletion (purge) and reject.
5. Otherwise mint a new access/refresh pair for the record's owner, store
   the new digest and commit. Delete and insert land in one transaction.

Every rejection surfaces as the same "invalid refresh token" error; only
the log line says which check failed.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.errors import (
    Expired,
    InvalidSignature,
    InvalidToken,
    UnknownToken,
)
from auth_service.core.logging import logger
from auth_service.core.tokens import TokenIssuer, hash_token
from auth_service.crud.refresh_tokens import (
    as_utc,
    consume_refresh_token,
    delete_expired_refresh_tokens,
    store_refresh_token,
)


@dataclass(frozen=True)
class TokenPair:
    user_id: str
    access_token: str
    refresh_token: str


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class TokenRotator:
    """Issues, rotates and revokes store-tracked refresh tokens.

    Args:
        issuer: Token issuer used to mint and verify tokens.
    """

    def __init__(self, issuer: TokenIssuer):
        self.issuer = issuer

    async def _issue_pair(self, db: AsyncSession, user_id: str, now: datetime) -> TokenPair:
        access_token = self.issuer.issue_access(user_id, now=now)
        refresh_token = self.issuer.issue_refresh(user_id, now=now)
        await store_refresh_token(
            db,
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=self.issuer.refresh_expiry(now),
        )
        return TokenPair(user_id, access_token, refresh_token)

    async def start_session(self, db: AsyncSession, user_id: str) -> TokenPair:
        """Issue a fresh token pair for ``user_id`` and persist its digest.

        Expired records of the same user are purged in the same
        transaction.
        """
        now = _now()
        try:
            purged = await delete_expired_refresh_tokens(db, now, user_id=user_id)
            pair = await self._issue_pair(db, user_id, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if purged:
            logger.info("Purged {} expired refresh token(s) for user_id={}", purged, user_id)
        logger.info("Stored refresh token for user_id={}", user_id)
        return pair

    async def rotate(self, db: AsyncSession, presented: str | None) -> TokenPair:
        """Consume ``presented`` and return its successor pair.

        Args:
            db: Session the whole rotation runs in.
            presented: The refresh token supplied by the client.

        Returns:
            TokenPair: New access and refresh tokens for the same user.

        Raises:
            InvalidSignature: Token malformed, badly signed or expired.
            UnknownToken: No live record for the token (includes reuse).
            Expired: The record existed but had expired; it is now deleted.
        """
        try:
            self.issuer.verify_refresh(presented)
        except InvalidToken as exc:
            logger.warning("Refresh rejected: signature check failed ({})", exc.message)
            raise InvalidSignature() from exc

        now = _now()
        try:
            record = await consume_refresh_token(db, hash_token(presented))
            if record is None:
                await db.rollback()
                logger.warning("Refresh rejected: no live record (unknown or already rotated)")
                raise UnknownToken()

            if as_utc(record.expires_at) <= now:
                await db.commit()
                logger.warning(
                    "Refresh rejected: record expired, purged user_id={}", record.user_id
                )
                raise Expired()

            pair = await self._issue_pair(db, record.user_id, now)
            await db.commit()
        except (UnknownToken, Expired):
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info("Rotated refresh token for user_id={}", record.user_id)
        return pair

    async def revoke(self, db: AsyncSession, presented: str | None) -> bool:
        """Delete the record backing ``presented``, if any.

        Used by logout. Invalid or unknown tokens are ignored.

        Returns:
            bool: True when a record was deleted.
        """
        if not presented:
            return False
        try:
            record = await consume_refresh_token(db, hash_token(presented))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if record is None:
            logger.debug("Logout with no live refresh record")
            return False
        logger.info("Revoked refresh token for user_id={}", record.user_id)
        return True

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete every expired record. Returns the number removed."""
        try:
            purged = await delete_expired_refresh_tokens(db, _now())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Purged {} expired refresh token(s)", purged)
        return purged
