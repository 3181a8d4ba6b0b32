"""Storage slot model - one durable key-value slot holding a JSON document."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from visitlog.models.base import Base


class StorageSlot(Base):
    __tablename__ = "storage_slots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Raw JSON text; parsed by the slot layer so corrupt payloads read as empty
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
