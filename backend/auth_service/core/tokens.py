"""Token issuing and verification.

ACCESS vs REFRESH TOKENS:

1. ACCESS TOKEN:
   - Short lived (15 min by default)
   - Signed with ACCESS_TOKEN_SECRET
   - Verified on every authenticated request, no database lookup

2. REFRESH TOKEN:
   - Long lived (7 days by default)
   - Signed with REFRESH_TOKEN_SECRET
   - Handed to the client in an HttpOnly cookie
   - Tracked server-side only by its SHA-256 digest (see ``hash_token``)

Both kinds carry ``sub`` (user id), ``iat``, ``exp``, ``token_type`` and a
random ``jti`` so two tokens minted in the same second never collide.
Separate keys mean a leaked access key cannot forge refresh tokens.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from auth_service.config.config import Settings
from auth_service.core.errors import InvalidToken

ACCESS = "access"
REFRESH = "refresh"


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest used to store and look up a token.

    Args:
        token: The encoded token exactly as handed to the client.

    Returns:
        str: 64 character lowercase hex digest.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access or refresh token."""

    user_id: str
    token_type: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Mint and verify access and refresh tokens.

    Args:
        access_secret: Key used to sign access tokens.
        refresh_secret: Key used to sign refresh tokens.
        access_ttl: Lifetime of access tokens.
        refresh_ttl: Lifetime of refresh tokens.
        algorithm: JWT signing algorithm.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ):
        self._keys = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            access_ttl=settings.ACCESS_TOKEN_EXPIRES_IN,
            refresh_ttl=settings.REFRESH_TOKEN_EXPIRES_IN,
            algorithm=settings.ALGORITHM,
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH]

    def refresh_expiry(self, now: datetime) -> datetime:
        """Expiration instant of a refresh token issued at ``now``."""
        return now + self.refresh_ttl

    def issue_access(self, user_id: str, now: datetime | None = None) -> str:
        return self._issue(ACCESS, user_id, now)

    def issue_refresh(self, user_id: str, now: datetime | None = None) -> str:
        return self._issue(REFRESH, user_id, now)

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(ACCESS, token)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(REFRESH, token)

    def _issue(self, token_type: str, user_id: str, now: datetime | None) -> str:
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self._ttls[token_type],
            "token_type": token_type,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._keys[token_type], algorithm=self.algorithm)

    def _verify(self, token_type: str, token: str) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise InvalidToken()
        try:
            payload = jwt.decode(
                token,
                self._keys[token_type],
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc

        if payload.get("token_type") != token_type:
            raise InvalidToken()
        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise InvalidToken()

        return TokenClaims(
            user_id=subject,
            token_type=token_type,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
