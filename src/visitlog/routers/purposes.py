"""Visit-purpose vocabulary endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from visitlog.dependencies import get_purpose_vocabulary, require_permission
from visitlog.schemas.purpose import PurposeCreate, PurposeList, PurposeRename
from visitlog.services.authorization import Permission
from visitlog.services.purposes import PurposeVocabulary

router = APIRouter(prefix="/v1/purposes", tags=["purposes"])


@router.get("", response_model=PurposeList)
async def list_purposes(
    vocabulary: PurposeVocabulary = Depends(get_purpose_vocabulary),
    _user=Depends(require_permission(Permission.VIEW_VISITS)),
) -> PurposeList:
    return PurposeList(purposes=await vocabulary.list_all())


@router.post("", response_model=PurposeList, status_code=status.HTTP_201_CREATED)
async def add_purpose(
    body: PurposeCreate,
    vocabulary: PurposeVocabulary = Depends(get_purpose_vocabulary),
    _user=Depends(require_permission(Permission.MANAGE_PURPOSES)),
) -> PurposeList:
    """Add a purpose. Exact duplicates and blank names are rejected."""
    if not body.name.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Purpose must not be blank",
        )
    if not await vocabulary.add(body.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Purpose already exists",
        )
    return PurposeList(purposes=await vocabulary.list_all())


@router.patch("", response_model=PurposeList)
async def rename_purpose(
    body: PurposeRename,
    purpose: str = Query(description="Current purpose text, matched exactly"),
    vocabulary: PurposeVocabulary = Depends(get_purpose_vocabulary),
    _user=Depends(require_permission(Permission.MANAGE_PURPOSES)),
) -> PurposeList:
    """Rename a purpose. Visits already recorded keep their original text."""
    if not body.name.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Purpose must not be blank",
        )
    if purpose not in await vocabulary.list_all():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Purpose not found",
        )
    if not await vocabulary.update(purpose, body.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Purpose already exists",
        )
    return PurposeList(purposes=await vocabulary.list_all())


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purpose(
    purpose: str = Query(description="Purpose text to remove, matched exactly"),
    vocabulary: PurposeVocabulary = Depends(get_purpose_vocabulary),
    _user=Depends(require_permission(Permission.MANAGE_PURPOSES)),
) -> None:
    if not await vocabulary.delete(purpose):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Purpose not found",
        )
