"""
Registration and credential verification.

SESSION FLOW EXPLAINED:

1. REGISTER (/auth/register):
   - Email shape and password length (>= 8) are validated
   - Email is normalized to lowercase
   - Password is hashed (argon2) and the user is stored
   - The unique index on users.email is the final arbiter of duplicates

2. LOGIN (/auth/login):
   - User is looked up by normalized email, password verified
   - Unknown email and wrong password fail identically
   - Server creates:
     * Access Token (JWT, 15 min) - returned in the body
     * Refresh Token (JWT, 7 days) - set as HttpOnly cookie, stored as digest

3. REFRESH (/auth/refresh):
   - See core/rotation.py; the presented refresh token is consumed and a
     new pair is issued

4. API REQUESTS:
   - Client sends the access token in the Authorization header
   - core/session_gate.py verifies it without touching the database
"""

import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.errors import EmailTaken, InvalidCredentials, InvalidInput
from auth_service.core.logging import logger
from auth_service.core.passwords import hash_password_async, verify_password_async
from auth_service.core.rotation import TokenPair, TokenRotator
from auth_service.crud.users import create_user, get_user_by_email
from auth_service.models.auth import User

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_registration(email: str | None, password: str | None) -> str:
    """Validate registration input and return the normalized email.

    Raises:
        InvalidInput: If either field is missing, the email is malformed or
            the password is too short.
    """
    if not email or not password:
        raise InvalidInput("Email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    normalized = normalize_email(email)
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidInput("Invalid email format")
    return normalized


async def register_user(db: AsyncSession, email: str | None, password: str | None) -> User:
    """Create a new user account.

    Args:
        db: Database session.
        email: Email as submitted; normalized before storage.
        password: Plain-text password.

    Returns:
        User: The persisted user.

    Raises:
        InvalidInput: If validation fails.
        EmailTaken: If the normalized email is already registered.
    """
    normalized = validate_registration(email, password)

    if await get_user_by_email(db, normalized) is not None:
        logger.debug("Registration rejected: email already registered email={}", normalized)
        raise EmailTaken()

    pw_hash = await hash_password_async(password)
    try:
        user = await create_user(db, normalized, pw_hash)
        await db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email.
        await db.rollback()
        logger.debug("Registration rejected by unique constraint email={}", normalized)
        raise EmailTaken() from exc
    except Exception:
        await db.rollback()
        raise

    logger.info("Registered user id={}", user.id)
    return user


async def authenticate_user(db: AsyncSession, email: str | None, password: str | None) -> User:
    """Authenticate a user by email and password.

    Args:
        db: Database session.
        email: Login email, matched case-insensitively.
        password: Plain-text password.

    Returns:
        User: The authenticated user.

    Raises:
        InvalidCredentials: For a missing user and a wrong password alike.
    """
    if not email or not password:
        raise InvalidCredentials()

    user = await get_user_by_email(db, normalize_email(email))
    valid = await verify_password_async(password, user.password_hash if user else None)
    if user is None or not valid:
        logger.warning("Authentication failed")
        logger.debug("Authentication failed for email={}", normalize_email(email))
        raise InvalidCredentials()
    return user


async def login_user(
    db: AsyncSession, rotator: TokenRotator, email: str | None, password: str | None
) -> tuple[User, TokenPair]:
    """Authenticate and open a new refresh-token session.

    Returns:
        tuple[User, TokenPair]: The user and their freshly issued tokens.

    Raises:
        InvalidCredentials: If authentication fails.
    """
    user = await authenticate_user(db, email, password)
    pair = await rotator.start_session(db, user.id)
    logger.info("User id={} logged in", user.id)
    return user, pair
