"""Admin provisioning gateway.

These endpoints front the identity service's privileged API. Failures are
reported as ``{"error": "<reason>"}`` with a matching status code.
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import Settings
from visitlog.dependencies import get_app_settings, get_db, get_identity_client
from visitlog.schemas.provisioning import (
    BootstrapAdminRequest,
    CreateUserRequest,
    UpdatePasswordRequest,
)
from visitlog.services import provisioning
from visitlog.services.identity_service import IdentityServiceClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["provisioning"])


async def _parse_body(request: Request, model: type[BaseModel]) -> BaseModel:
    """Read the JSON body leniently; anything unusable becomes an empty request."""
    try:
        payload = await request.json()
        return model.model_validate(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        return model()


@router.post("/admin-create-user")
async def admin_create_user(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    client: IdentityServiceClient = Depends(get_identity_client),
) -> dict:
    """Create an account and its profile. The caller must be an active admin."""
    caller = await provisioning.require_admin_caller(db, client, authorization)
    body = await _parse_body(request, CreateUserRequest)
    user_id = await provisioning.create_user(db, client, settings, body)
    logger.info("Admin %s created account %s", caller, user_id)
    return {"success": True, "user_id": user_id}


@router.post("/admin-update-password")
async def admin_update_password(
    request: Request,
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    client: IdentityServiceClient = Depends(get_identity_client),
) -> dict:
    caller = await provisioning.require_admin_caller(db, client, authorization)
    body = await _parse_body(request, UpdatePasswordRequest)
    user_id = await provisioning.update_password(client, settings, body)
    logger.info("Admin %s reset the password of %s", caller, user_id)
    return {"success": True, "user": user_id}


@router.post("/bootstrap-admin")
async def bootstrap_admin(
    request: Request,
    x_setup_token: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    client: IdentityServiceClient = Depends(get_identity_client),
) -> dict:
    """Create the first admin. Guarded by the x-setup-token header."""
    body = await _parse_body(request, BootstrapAdminRequest)
    user_id = await provisioning.bootstrap_admin(db, client, settings, x_setup_token, body)
    return {"success": True, "user_id": user_id}
