"""Pydantic schemas for authentication endpoints.

Request bodies are kept permissive (plain strings); semantic validation
lives in ``core.auth_helper`` so the same rules apply outside HTTP.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Request body for registration and login."""

    email: str
    password: str


class UserSummary(BaseModel):
    """Public user representation returned on login."""

    id: str
    email: str

    class Config:
        from_attributes = True


class UserOut(UserSummary):
    """Public user representation including the creation time."""

    created_at: datetime


class UserEnvelope(BaseModel):
    user: UserOut


class LoginResponse(BaseModel):
    """Access token in the body; the refresh token travels as a cookie."""

    access_token: str = Field(serialization_alias="accessToken")
    user: UserSummary


class AccessTokenResponse(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
