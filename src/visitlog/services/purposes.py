"""Controlled vocabulary of visit purposes.

Entries are plain strings, unique by exact (case-sensitive) match. Renaming
an entry only changes the vocabulary: visits already recorded keep the
purpose text they were saved with.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.services.slots import PURPOSES_SLOT, read_slot, write_slot


class PurposeVocabulary:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _load(self) -> tuple[list[str], int]:
        value, version = await read_slot(self.db, PURPOSES_SLOT)
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            return [], version
        return value, version

    async def list_all(self) -> list[str]:
        purposes, _ = await self._load()
        return purposes

    async def add(self, purpose: str) -> bool:
        """Append a purpose; False if blank or already present."""
        purpose = purpose.strip()
        purposes, version = await self._load()
        if not purpose or purpose in purposes:
            return False
        purposes.append(purpose)
        await write_slot(self.db, PURPOSES_SLOT, purposes, version)
        return True

    async def update(self, old: str, new: str) -> bool:
        """Rename in place; False if old is unknown, new is blank, or new collides."""
        new = new.strip()
        purposes, version = await self._load()
        if not new or old not in purposes:
            return False
        if new != old and new in purposes:
            return False
        purposes[purposes.index(old)] = new
        await write_slot(self.db, PURPOSES_SLOT, purposes, version)
        return True

    async def delete(self, purpose: str) -> bool:
        """Remove a purpose; False if it was not in the vocabulary."""
        purposes, version = await self._load()
        if purpose not in purposes:
            return False
        purposes.remove(purpose)
        await write_slot(self.db, PURPOSES_SLOT, purposes, version)
        return True
