"""Schemas for application accounts (agents)."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

Role = Literal["admin", "user", "viewer"]

RECORD_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Agent(BaseModel):
    """A persisted account record. Passwords are kept in a separate slot."""

    id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    email: str = ""
    full_name: str = ""
    role: Role = "user"
    is_active: bool = True
    last_login: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = RECORD_CONFIG


class AgentCreate(BaseModel):
    """Request body for creating an account with its initial password."""

    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=6, max_length=256)
    email: str = Field(default="", max_length=255)
    full_name: str = Field(default="", max_length=255)
    role: Role = "user"
    is_active: bool = True

    model_config = RECORD_CONFIG


class AgentUpdate(BaseModel):
    """Request body for updating an account's profile, role or active flag."""

    username: str | None = Field(default=None, min_length=1, max_length=64)
    email: str | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=255)
    role: Role | None = None
    is_active: bool | None = None

    model_config = RECORD_CONFIG


class AgentPasswordReset(BaseModel):
    password: str = Field(min_length=6, max_length=256)
