"""Visit store: the visit slot plus derived duration, search, stats and CSV."""

from datetime import datetime, time
from typing import Any

from visitlog.schemas.visit import Visit, VisitStats
from visitlog.services.export import visits_to_csv
from visitlog.services.record_store import RecordStore
from visitlog.services.search import search_visits
from visitlog.services.slots import VISITS_SLOT
from visitlog.services.statistics import compute_stats


class InvalidVisitError(ValueError):
    """A change would leave a stored visit inconsistent."""


def _parse_clock(value: str | None) -> time | None:
    if not value:
        return None
    try:
        return time.fromisoformat(value)
    except ValueError:
        return None


def compute_duration(start_time: str | None, end_time: str | None) -> int | None:
    """Minutes between two same-day clock times, rounded.

    Returns None when either side is missing or unparsable, or when the span
    is not positive.
    """
    start = _parse_clock(start_time)
    end = _parse_clock(end_time)
    if start is None or end is None:
        return None

    day = datetime(2000, 1, 1)
    delta = datetime.combine(day, end) - datetime.combine(day, start)
    minutes = round(delta.total_seconds() / 60)
    return minutes if minutes > 0 else None


class VisitStore(RecordStore[Visit]):
    slot_key = VISITS_SLOT
    record_model = Visit

    def prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        start = _parse_clock(data.get("start_time"))
        end = _parse_clock(data.get("end_time"))
        if start is not None and end is not None and end < start:
            raise InvalidVisitError("end time must not be earlier than start time")

        # With both clock times present the duration always follows them
        if data.get("start_time") and data.get("end_time"):
            data["duration"] = compute_duration(data["start_time"], data["end_time"])
        return data

    async def update(self, record_id: str, changes: dict[str, Any]) -> Visit | None:
        # Clearing the end time also clears a duration that was derived from it
        if "end_time" in changes and changes["end_time"] is None:
            changes = {"duration": None, **changes}
        return await super().update(record_id, changes)

    async def search(self, query: str) -> list[Visit]:
        return search_visits(await self.list_all(), query)

    async def stats(self) -> VisitStats:
        return compute_stats(await self.list_all())

    async def export_csv(self) -> str:
        return visits_to_csv(await self.list_all())
