"""Visit statistics, recomputed in full on every call."""

from collections.abc import Sequence
from datetime import datetime, time, timedelta, timezone

from visitlog.schemas.visit import Visit, VisitStats

WEEK = timedelta(days=7)


def compute_stats(visits: Sequence[Visit], now: datetime | None = None) -> VisitStats:
    """Summarize a visit collection.

    - unique_visitors compares names case-insensitively.
    - average_duration only counts visits with a positive duration.
    - weekly_visits counts visits dated within the trailing 7x24h window,
      a visit date being taken as midnight UTC of that day.

    All ratios are 0 for an empty collection.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    week_ago = now - WEEK

    total = len(visits)
    timed = [v.duration for v in visits if v.duration and v.duration > 0]
    strategic = sum(1 for v in visits if v.is_strategic)

    return VisitStats(
        total_visits=total,
        unique_visitors=len({v.visitor_name.lower() for v in visits}),
        average_duration=sum(timed) / len(timed) if timed else 0.0,
        total_time=sum(v.duration or 0 for v in visits),
        strategic_percentage=strategic / total * 100 if total else 0.0,
        weekly_visits=sum(
            1
            for v in visits
            if datetime.combine(v.visit_date, time.min, tzinfo=timezone.utc) >= week_ago
        ),
    )
