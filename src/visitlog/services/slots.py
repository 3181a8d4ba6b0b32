"""Durable key-value slots backed by the storage_slots table.

Each slot holds one JSON document. Writers pass back the version they read;
a write against a newer version is rejected with StaleSlotError instead of
silently overwriting the other writer's change.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.models.storage_slot import StorageSlot

logger = logging.getLogger(__name__)

VISITS_SLOT = "visits"
PURPOSES_SLOT = "purposes"
AGENTS_SLOT = "agents"
PASSWORDS_SLOT = "passwords"
SESSIONS_SLOT = "sessions"


class StaleSlotError(Exception):
    """Raised when a slot changed between read and write."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Slot '{key}' was modified concurrently")
        self.key = key


async def read_slot(db: AsyncSession, key: str) -> tuple[Any, int]:
    """Return (decoded value, version) for a slot.

    An absent slot reads as (None, 0). A payload that is not valid JSON
    reads as None but keeps its version so the next write replaces it.
    """
    stmt = select(StorageSlot.payload, StorageSlot.version).where(StorageSlot.key == key)
    result = await db.execute(stmt)
    row = result.one_or_none()
    if row is None:
        return None, 0

    try:
        return json.loads(row.payload), row.version
    except (TypeError, ValueError):
        logger.warning("Discarding unparsable payload in slot %s", key)
        return None, row.version


async def read_raw_slot(db: AsyncSession, key: str) -> str | None:
    """Return the undecoded payload text, or None if the slot is absent."""
    result = await db.execute(select(StorageSlot.payload).where(StorageSlot.key == key))
    return result.scalar_one_or_none()


async def write_slot(db: AsyncSession, key: str, value: Any, expected_version: int) -> int:
    """Persist a value into a slot and return the new version.

    expected_version is the version returned by read_slot (0 for an absent
    slot). Raises StaleSlotError if another writer got there first.
    """
    payload = json.dumps(value, ensure_ascii=False)
    now = datetime.now(timezone.utc)

    if expected_version == 0:
        try:
            await db.execute(
                insert(StorageSlot).values(key=key, payload=payload, version=1, updated_at=now)
            )
        except IntegrityError as exc:
            logger.warning("Concurrent creation of slot %s rejected", key)
            raise StaleSlotError(key) from exc
        return 1

    stmt = (
        update(StorageSlot)
        .where(StorageSlot.key == key)
        .where(StorageSlot.version == expected_version)
        .values(payload=payload, version=expected_version + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        logger.warning("Stale write to slot %s at version %d rejected", key, expected_version)
        raise StaleSlotError(key)
    return expected_version + 1


async def delete_slot(db: AsyncSession, key: str) -> None:
    """Remove a slot entirely. Deleting an absent slot is a no-op."""
    await db.execute(
        delete(StorageSlot)
        .where(StorageSlot.key == key)
        .execution_options(synchronize_session=False)
    )
