"""Schemas for the visit-purpose vocabulary."""

from pydantic import BaseModel, Field


class PurposeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class PurposeRename(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class PurposeList(BaseModel):
    purposes: list[str]
