"""CSV rendering of the visit collection."""

import csv
import io
from collections.abc import Sequence

from visitlog.schemas.visit import Visit

CSV_HEADER = [
    "Date",
    "Visitor",
    "Company",
    "Purpose",
    "Start Time",
    "End Time",
    "Duration (min)",
    "Strategic",
    "Notes",
]


def visits_to_csv(visits: Sequence[Visit]) -> str:
    """One header row then one row per visit, in list order.

    Fields containing commas, quotes or newlines are quoted and embedded
    quotes are doubled, so any standard CSV reader gets the text back.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for v in visits:
        writer.writerow([
            v.visit_date.isoformat(),
            v.visitor_name,
            v.company,
            v.purpose,
            v.start_time,
            v.end_time or "",
            v.duration or "",
            "Yes" if v.is_strategic else "No",
            v.notes or "",
        ])
    return buffer.getvalue().rstrip("\n")
