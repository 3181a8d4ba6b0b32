"""Generic ordered-collection store over a single durable slot.

Every mutation reads the whole collection, changes it in memory and writes
the whole collection back, guarded by the slot version.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import get_settings
from visitlog.schemas.visit import StorageInfo
from visitlog.services.slots import delete_slot, read_raw_slot, read_slot, write_slot

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordStore(Generic[RecordT]):
    """Base store; subclasses set slot_key and record_model."""

    slot_key: ClassVar[str]
    record_model: ClassVar[type[BaseModel]]
    # Fields a caller may never overwrite through update()
    protected_fields: ClassVar[frozenset[str]] = frozenset({"id", "created_at", "updated_at"})

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Internal ─────────────────────────────────────────────────────

    async def _load(self) -> tuple[list[RecordT], int]:
        value, version = await read_slot(self.db, self.slot_key)
        if not isinstance(value, list):
            return [], version
        try:
            records = [self.record_model.model_validate(item) for item in value]
        except ValidationError:
            logger.warning("Slot %s holds malformed records, reading as empty", self.slot_key)
            return [], version
        return records, version

    async def _save(self, records: list[RecordT], version: int) -> None:
        await write_slot(self.db, self.slot_key, self._serialize(records), version)

    @staticmethod
    def _serialize(records: list[RecordT]) -> list[dict]:
        return [r.model_dump(mode="json", by_alias=True) for r in records]

    def prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        """Hook for derived fields, applied on add and after each merge."""
        return data

    # ── Read side ────────────────────────────────────────────────────

    async def list_all(self) -> list[RecordT]:
        """Return all records in persisted order; never raises on bad data."""
        records, _ = await self._load()
        return records

    async def get(self, record_id: str) -> RecordT | None:
        records, _ = await self._load()
        return next((r for r in records if r.id == record_id), None)

    async def export_json(self) -> str:
        """Pretty-printed collection, identical in shape to the persisted slot."""
        records = await self.list_all()
        return json.dumps(self._serialize(records), indent=2, ensure_ascii=False)

    async def storage_info(self) -> StorageInfo:
        raw = await read_raw_slot(self.db, self.slot_key)
        used = len((raw or "").encode("utf-8"))
        total = get_settings().storage_capacity_bytes
        return StorageInfo(used=used, total=total, percentage=used / total * 100)

    # ── Write side ───────────────────────────────────────────────────

    async def add(self, fields: dict[str, Any]) -> RecordT:
        """Append a new record with a fresh id and matching created/updated stamps."""
        records, version = await self._load()
        now = datetime.now(timezone.utc)
        data = {k: v for k, v in fields.items() if k not in self.protected_fields}
        data.update(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        record = self.record_model.model_validate(self.prepare(data))
        records.append(record)
        await self._save(records, version)
        return record

    async def update(self, record_id: str, changes: dict[str, Any]) -> RecordT | None:
        """Shallow-merge changes over a record; None if the id is unknown."""
        records, version = await self._load()
        for index, record in enumerate(records):
            if record.id == record_id:
                break
        else:
            return None

        data = record.model_dump()
        data.update({k: v for k, v in changes.items() if k not in self.protected_fields})
        data["updated_at"] = datetime.now(timezone.utc)
        updated = self.record_model.model_validate(self.prepare(data))
        records[index] = updated
        await self._save(records, version)
        return updated

    async def delete(self, record_id: str) -> bool:
        """Remove a record. Unknown ids are not an error and still report True."""
        records, version = await self._load()
        remaining = [r for r in records if r.id != record_id]
        await self._save(remaining, version)
        return True

    async def import_records(self, candidates: Any) -> bool:
        """Replace the whole collection, or reject it without writing anything."""
        if not isinstance(candidates, list):
            return False
        try:
            records = [self.record_model.model_validate(item) for item in candidates]
        except ValidationError as exc:
            logger.info("Rejected import into %s: %s", self.slot_key, exc.error_count())
            return False

        _, version = await read_slot(self.db, self.slot_key)
        await self._save(records, version)
        return True

    async def clear(self) -> None:
        await delete_slot(self.db, self.slot_key)
