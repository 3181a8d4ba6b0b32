"""Schemas for visit records, visit statistics and storage info.

Records are persisted and exchanged with camelCase keys (``visitorName``,
``isStrategic``) so exports from earlier installs import unchanged. Python
code uses the snake_case attribute names.
"""

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"

RECORD_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _required_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


def _optional_text(v: str | None) -> str | None:
    if v is None:
        return None
    return v.strip() or None


class Visit(BaseModel):
    """A persisted visit record."""

    id: str = Field(min_length=1)
    visitor_name: str = Field(min_length=1)
    company: str = Field(min_length=1)
    purpose: str = Field(min_length=1)
    visit_date: date = Field(alias="date")
    start_time: str = ""
    end_time: str | None = None
    duration: int | None = Field(default=None, ge=0)
    is_strategic: bool = False
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = RECORD_CONFIG


class VisitCreate(BaseModel):
    """Request body for recording a visit."""

    visitor_name: str = Field(min_length=1, max_length=255)
    company: str = Field(min_length=1, max_length=255)
    purpose: str = Field(min_length=1, max_length=255)
    visit_date: date = Field(default_factory=date.today, alias="date")
    start_time: str = Field(pattern=CLOCK_PATTERN)
    end_time: str | None = Field(default=None, pattern=CLOCK_PATTERN)
    duration: int | None = Field(default=None, ge=0)
    is_strategic: bool = False
    notes: str | None = Field(default=None, max_length=4000)

    model_config = RECORD_CONFIG

    @field_validator("visitor_name", "company", "purpose")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        return _required_text(v)

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, v: str | None) -> str | None:
        return _optional_text(v)

    @field_validator("end_time", mode="before")
    @classmethod
    def empty_end_time_to_none(cls, v):
        return v or None

    @model_validator(mode="after")
    def end_not_before_start(self) -> "VisitCreate":
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("end time must not be earlier than start time")
        return self


class VisitUpdate(BaseModel):
    """Request body for a partial visit update; only supplied fields are merged."""

    visitor_name: str | None = Field(default=None, min_length=1, max_length=255)
    company: str | None = Field(default=None, min_length=1, max_length=255)
    purpose: str | None = Field(default=None, min_length=1, max_length=255)
    visit_date: date | None = Field(default=None, alias="date")
    start_time: str | None = Field(default=None, pattern=CLOCK_PATTERN)
    end_time: str | None = Field(default=None, pattern=CLOCK_PATTERN)
    duration: int | None = Field(default=None, ge=0)
    is_strategic: bool | None = None
    notes: str | None = Field(default=None, max_length=4000)

    model_config = RECORD_CONFIG

    @field_validator("visitor_name", "company", "purpose")
    @classmethod
    def strip_required_text(cls, v: str | None) -> str | None:
        # null means "leave unchanged"; an empty string is a bad value
        return None if v is None else _required_text(v)

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, v: str | None) -> str | None:
        return _optional_text(v)

    @field_validator("end_time", mode="before")
    @classmethod
    def empty_end_time_to_none(cls, v):
        return v or None


class VisitStats(BaseModel):
    """Summary metrics recomputed from the current visit collection."""

    total_visits: int = 0
    unique_visitors: int = 0
    average_duration: float = 0.0
    total_time: int = 0
    strategic_percentage: float = 0.0
    weekly_visits: int = 0

    model_config = RECORD_CONFIG


class StorageInfo(BaseModel):
    """Approximate space used by a slot against the configured ceiling."""

    used: int
    total: int
    percentage: float


class ImportResponse(BaseModel):
    success: bool
    imported: int

