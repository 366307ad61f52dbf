"""Access-token authentication for inbound requests.

The gate only verifies the bearer token; it never reads the database.
Handlers that need the full user record load it themselves.
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from auth_service.api.deps import get_token_issuer
from auth_service.core.errors import InvalidToken, Unauthorized
from auth_service.core.logging import logger
from auth_service.core.tokens import TokenIssuer


@dataclass(frozen=True)
class Identity:
    user_id: str


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token part of an ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthorized: If the header is absent or not a bearer credential.
    """
    if not authorization:
        raise Unauthorized("Access token required")
    scheme, _, credentials = authorization.partition(" ")
    token = credentials.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise Unauthorized("Access token required")
    return token


def authenticate(authorization: str | None, issuer: TokenIssuer) -> Identity:
    """Resolve the identity asserted by a bearer access token.

    Args:
        authorization: Raw ``Authorization`` header value, or None.
        issuer: Token issuer holding the access-token key.

    Returns:
        Identity: The authenticated user's identity.

    Raises:
        Unauthorized: If the token is missing, malformed, badly signed or
            expired.
    """
    token = extract_bearer_token(authorization)
    try:
        claims = issuer.verify_access(token)
    except InvalidToken as exc:
        logger.debug("Access token rejected: {}", exc.message)
        raise Unauthorized("Invalid or expired token") from exc
    return Identity(user_id=claims.user_id)


async def get_current_identity(
    request: Request,
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Identity:
    """FastAPI dependency: authenticate and attach identity to the request.

    The identity is also available downstream as ``request.state.identity``.
    """
    identity = authenticate(request.headers.get("Authorization"), issuer)
    request.state.identity = identity
    return identity
