"""Visit endpoints: CRUD, search, statistics, import/export and storage."""

from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from visitlog.dependencies import get_visit_store, require_permission
from visitlog.schemas.visit import (
    ImportResponse,
    StorageInfo,
    Visit,
    VisitCreate,
    VisitStats,
    VisitUpdate,
)
from visitlog.services.authorization import Permission
from visitlog.services.visits import InvalidVisitError, VisitStore

router = APIRouter(prefix="/v1/visits", tags=["visits"])

# Fields a PATCH may explicitly clear with null
CLEARABLE_FIELDS = {"end_time", "duration", "notes"}


def _attachment(content: str, media_type: str, extension: str) -> Response:
    filename = f"visits-{date.today().isoformat()}.{extension}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=list[Visit])
async def list_visits(
    q: str | None = Query(default=None, max_length=255),
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> list[Visit]:
    """List visits in recorded order, filtered by q when it is not blank."""
    if q and q.strip():
        return await store.search(q.strip())
    return await store.list_all()


@router.post("", response_model=Visit, status_code=status.HTTP_201_CREATED)
async def create_visit(
    body: VisitCreate,
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.RECORD_VISITS)),
) -> Visit:
    """Record a visit. Duration is derived when both clock times are given."""
    return await store.add(body.model_dump())


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_visits(
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.MANAGE_DATA)),
) -> None:
    """Remove every visit."""
    await store.clear()


@router.get("/stats", response_model=VisitStats)
async def get_stats(
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> VisitStats:
    return await store.stats()


@router.get("/storage", response_model=StorageInfo)
async def get_storage_info(
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> StorageInfo:
    """Approximate size of the visit slot, for a capacity warning."""
    return await store.storage_info()


@router.get("/export.csv")
async def export_csv(
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.EXPORT_VISITS)),
) -> Response:
    return _attachment(await store.export_csv(), "text/csv; charset=utf-8", "csv")


@router.get("/export.json")
async def export_json(
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.EXPORT_VISITS)),
) -> Response:
    return _attachment(await store.export_json(), "application/json", "json")


@router.post("/import", response_model=ImportResponse)
async def import_visits(
    candidates: Any = Body(...),
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.MANAGE_DATA)),
) -> ImportResponse:
    """Replace all visits with the supplied array.

    The batch is rejected as a whole if any element is not a valid visit.
    """
    if not await store.import_records(candidates):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid visit data structure",
        )
    return ImportResponse(success=True, imported=len(candidates))


@router.get("/{visit_id}", response_model=Visit)
async def get_visit(
    visit_id: str,
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> Visit:
    visit = await store.get(visit_id)
    if visit is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Visit not found",
        )
    return visit


@router.patch("/{visit_id}", response_model=Visit)
async def update_visit(
    visit_id: str,
    body: VisitUpdate,
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.RECORD_VISITS)),
) -> Visit:
    """Merge the supplied fields into a visit."""
    changes = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_FIELDS
    }
    try:
        visit = await store.update(visit_id, changes)
    except InvalidVisitError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    if visit is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Visit not found",
        )
    return visit


@router.delete("/{visit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_visit(
    visit_id: str,
    store: VisitStore = Depends(get_visit_store),
    _user=Depends(require_permission(Permission.DELETE_VISITS)),
) -> None:
    """Delete a visit. Unknown ids are accepted silently."""
    await store.delete(visit_id)
