"""SQLAlchemy ORM models."""

from visitlog.models.base import Base
from visitlog.models.profile import Profile
from visitlog.models.storage_slot import StorageSlot

__all__ = [
    "Base",
    "Profile",
    "StorageSlot",
]
