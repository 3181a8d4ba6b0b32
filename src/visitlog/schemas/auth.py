"""Schemas for sign-in, sign-out and the current identity."""

from pydantic import BaseModel, Field

from visitlog.schemas.agent import Role


class SessionUser(BaseModel):
    """The authenticated identity attached to a session token."""

    id: str
    username: str
    role: Role
    display_name: str | None = None


class LoginRequest(BaseModel):
    """Username for local accounts, email for the remote identity service."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=256)


class LoginResult(BaseModel):
    """Outcome of a sign-in attempt; error is a short machine-readable reason."""

    success: bool
    user: SessionUser | None = None
    token: str | None = None
    error: str | None = None


class LoginResponse(BaseModel):
    token: str
    user: SessionUser
    permissions: list[str]


class IdentityResponse(BaseModel):
    user: SessionUser
    permissions: list[str]
