"""Application settings loaded from environment for the auth service.

This module defines the :class:`Settings` model (based on Pydantic's
``BaseSettings``) and instantiates ``settings`` which is imported across
the application to access configuration values.

Notable fields include the database connection URL, the two independent
JWT signing keys and the access/refresh token lifetimes.
"""

import re
from datetime import timedelta
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value) -> timedelta:
    """Parse a token lifetime such as ``15m`` or ``7d`` into a timedelta.

    Args:
        value: A ``timedelta``, an integer number of seconds, or a string of
            digits optionally followed by one of ``s``, ``m``, ``h``, ``d``
            or ``w``.

    Returns:
        timedelta: The parsed, strictly positive duration.

    Raises:
        ValueError: If the value cannot be parsed or is not positive.
    """
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, int) and not isinstance(value, bool):
        duration = timedelta(seconds=value)
    elif isinstance(value, str):
        match = _DURATION_PATTERN.match(value.lower())
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        amount, unit = match.groups()
        duration = timedelta(**{_DURATION_UNITS[unit]: int(amount)})
    else:
        raise ValueError(f"invalid duration: {value!r}")

    if duration <= timedelta(0):
        raise ValueError("duration must be positive")
    return duration


class Settings(BaseSettings):
    """Environment-backed application settings.

    Attributes:
        DATABASE_URL_ASYNC: Async database URL for SQLAlchemy.
        DB_ECHO: Echo SQL statements to the log.

        ACCESS_TOKEN_SECRET: Signing key for access tokens.
        REFRESH_TOKEN_SECRET: Signing key for refresh tokens.
        ALGORITHM: JWT signing algorithm.
        ACCESS_TOKEN_EXPIRES_IN: Access token lifetime (e.g. ``15m``).
        REFRESH_TOKEN_EXPIRES_IN: Refresh token lifetime (e.g. ``7d``).

        REFRESH_COOKIE_NAME: Name of the cookie carrying the refresh token.
        REFRESH_COOKIE_PATH: Path the refresh cookie is scoped to.
        COOKIE_SECURE: Whether the refresh cookie requires HTTPS.
        CORS_ORIGINS: Comma separated list of allowed origins.
        LOG_LEVEL: Minimum log level.
        SQL_LOG_LEVEL: Threshold for SQLAlchemy engine and pool loggers.
    """

    DATABASE_URL_ASYNC: str
    DB_ECHO: bool = False

    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRES_IN: timedelta = timedelta(minutes=15)
    REFRESH_TOKEN_EXPIRES_IN: timedelta = timedelta(days=7)

    REFRESH_COOKIE_NAME: str = "refreshToken"
    REFRESH_COOKIE_PATH: str = "/api/auth"
    COOKIE_SECURE: bool = False
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    SQL_LOG_LEVEL: str = "WARNING"

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("ACCESS_TOKEN_EXPIRES_IN", "REFRESH_TOKEN_EXPIRES_IN", mode="before")
    @classmethod
    def _parse_lifetime(cls, value):
        return parse_duration(value)

    @field_validator("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("signing secret must not be empty")
        return value

    @model_validator(mode="after")
    def _distinct_secrets(self):
        # A shared key would let an access token pass as a refresh token.
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
