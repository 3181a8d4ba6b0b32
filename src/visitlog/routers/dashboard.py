"""Dashboard view-state: visits, statistics and purposes in one response."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from visitlog.dependencies import get_purpose_vocabulary, get_visit_store, require_permission
from visitlog.schemas.visit import Visit, VisitStats
from visitlog.services.authorization import Permission
from visitlog.services.purposes import PurposeVocabulary
from visitlog.services.statistics import compute_stats
from visitlog.services.visits import VisitStore

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])


class DashboardResponse(BaseModel):
    visits: list[Visit]
    stats: VisitStats
    purposes: list[str]


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    store: VisitStore = Depends(get_visit_store),
    vocabulary: PurposeVocabulary = Depends(get_purpose_vocabulary),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> DashboardResponse:
    """Everything a client needs to redraw after a mutation."""
    visits = await store.list_all()
    return DashboardResponse(
        visits=visits,
        stats=compute_stats(visits),
        purposes=await vocabulary.list_all(),
    )
