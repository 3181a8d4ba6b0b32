"""Case-insensitive visit search."""

from collections.abc import Sequence

from visitlog.schemas.visit import Visit


def search_visits(visits: Sequence[Visit], query: str) -> list[Visit]:
    """Visits whose visitor name, company or purpose contains the query.

    An empty query matches everything; callers that want "no filter" should
    skip the call instead.
    """
    term = query.lower()
    return [
        v
        for v in visits
        if term in v.visitor_name.lower()
        or term in v.company.lower()
        or term in v.purpose.lower()
    ]
