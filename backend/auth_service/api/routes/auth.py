"""Authentication routes with refresh token rotation.

Endpoints:
    - POST /auth/register: Create an account
    - POST /auth/login: Returns an access token, sets the refresh cookie
    - POST /auth/refresh: Rotates the refresh cookie, returns a new access token
    - POST /auth/logout: Revokes the refresh cookie's session
    - GET  /auth/me: Current user (requires a bearer access token)
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.api.deps import get_token_rotator
from auth_service.config.config import settings
from auth_service.core.auth_helper import login_user, register_user
from auth_service.core.errors import NotFound
from auth_service.core.logging import logger
from auth_service.core.rotation import TokenRotator
from auth_service.core.session_gate import Identity, get_current_identity
from auth_service.crud.users import get_user_by_id
from auth_service.db.session import get_db
from auth_service.schemas.auth import (
    AccessTokenResponse,
    Credentials,
    LoginResponse,
    UserEnvelope,
    UserOut,
    UserSummary,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_refresh_cookie(response: Response, refresh_token: str, rotator: TokenRotator):
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        max_age=int(rotator.issuer.refresh_ttl.total_seconds()),
        path=settings.REFRESH_COOKIE_PATH,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: Credentials, db: AsyncSession = Depends(get_db)):
    """Register a new user.

    Args:
        payload: Email and password.
        db: Async database session (dependency-injected).

    Returns:
        JSONResponse: 201 with the created user (never the password hash).

    Raises:
        InvalidInput: 400 on malformed email or short password.
        EmailTaken: 409 when the email is already registered.
    """
    user = await register_user(db, payload.email, payload.password)
    body = UserEnvelope(user=UserOut.model_validate(user))
    return JSONResponse(
        status_code=status.HTTP_201_CREATED, content=body.model_dump(mode="json")
    )


@router.post("/login")
async def login(
    payload: Credentials,
    db: AsyncSession = Depends(get_db),
    rotator: TokenRotator = Depends(get_token_rotator),
):
    """Authenticate user and issue access + refresh tokens.

    Returns:
        JSONResponse: Access token and user in the body, refresh token set
            as an HttpOnly, SameSite=Strict cookie.

    Raises:
        InvalidCredentials: 401, identical for unknown email and wrong password.
    """
    user, pair = await login_user(db, rotator, payload.email, payload.password)

    body = LoginResponse(access_token=pair.access_token, user=UserSummary.model_validate(user))
    resp = JSONResponse(content=body.model_dump(mode="json", by_alias=True))
    _set_refresh_cookie(resp, pair.refresh_token, rotator)
    return resp


@router.post("/refresh")
async def refresh(
    request: Request,
    db: AsyncSession = Depends(get_db),
    rotator: TokenRotator = Depends(get_token_rotator),
):
    """Exchange the refresh cookie for a new access token.

    The presented refresh token is consumed; a new one replaces it in the
    cookie.

    Raises:
        RotationError: 401 for every failure kind, including a missing cookie.
    """
    presented = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    pair = await rotator.rotate(db, presented)

    body = AccessTokenResponse(access_token=pair.access_token)
    resp = JSONResponse(content=body.model_dump(mode="json", by_alias=True))
    _set_refresh_cookie(resp, pair.refresh_token, rotator)
    return resp


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    rotator: TokenRotator = Depends(get_token_rotator),
):
    """Revoke the session behind the refresh cookie and clear the cookie."""

    revoked = await rotator.revoke(db, request.cookies.get(settings.REFRESH_COOKIE_NAME))
    logger.debug("Logout processed revoked={}", revoked)

    resp = Response(status_code=status.HTTP_204_NO_CONTENT)
    resp.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path=settings.REFRESH_COOKIE_PATH,
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )
    return resp


@router.get("/me")
async def me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Return the authenticated user's profile.

    Raises:
        Unauthorized: 401 without a valid bearer access token.
        NotFound: 404 if the user no longer exists.
    """
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        raise NotFound("User not found")
    return UserEnvelope(user=UserOut.model_validate(user)).model_dump(mode="json")
