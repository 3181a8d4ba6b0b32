"""Privileged account provisioning against the remote identity service.

Each operation fails closed: missing auth, bad setup secret, missing fields
or a non-admin caller are rejected with a distinct reason before anything
is written.
"""

import hmac
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import Settings
from visitlog.models.profile import Profile
from visitlog.schemas.provisioning import (
    BootstrapAdminRequest,
    CreateUserRequest,
    UpdatePasswordRequest,
)
from visitlog.services.identity_service import IdentityServiceClient, IdentityServiceError
from visitlog.services.remote_identity import get_profile

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ("admin", "user", "viewer")
DEFAULT_ADMIN_DISPLAY_NAME = "Administrator"


class ProvisioningError(Exception):
    """Rejection with a short machine-readable reason."""

    def __init__(self, reason: str, status_code: int = 400) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


async def require_admin_caller(
    db: AsyncSession,
    client: IdentityServiceClient,
    authorization: str | None,
) -> str:
    """Return the caller's user id if the bearer token belongs to an admin.

    The role comes from the profiles table, never from the request.
    """
    if not authorization:
        raise ProvisioningError("missing_auth", 401)

    token = authorization[7:].strip() if authorization.startswith("Bearer ") else ""
    try:
        user = await client.get_user(token) if token else None
    except IdentityServiceError as exc:
        raise ProvisioningError(exc.message, 502) from exc
    if not user or not user.get("id"):
        raise ProvisioningError("unauthorized", 401)

    profile = await get_profile(db, user["id"])
    if profile is None or profile.role != "admin" or not profile.is_active:
        logger.warning("Provisioning call by non-admin %s refused", user["id"])
        raise ProvisioningError("forbidden", 403)
    return user["id"]


def _require_service_role(settings: Settings) -> None:
    if not settings.identity_service_role_key:
        logger.error("identity_service_role_key is not configured")
        raise ProvisioningError("missing_service_role_key", 500)


async def create_user(
    db: AsyncSession,
    client: IdentityServiceClient,
    settings: Settings,
    body: CreateUserRequest,
) -> str:
    """Create an identity account plus its profile row; return the new user id.

    If the profile insert fails the fresh identity account is deleted again
    so no account is left without a profile.
    """
    if not body.email or not body.password:
        raise ProvisioningError("missing_fields", 400)
    role = body.role if body.role in ALLOWED_ROLES else "user"
    _require_service_role(settings)

    try:
        created = await client.admin_create_user(
            body.email, body.password, {"display_name": body.display_name}
        )
    except IdentityServiceError as exc:
        raise ProvisioningError(exc.message or "create_failed", 400) from exc
    user_id = created.get("id")
    if not user_id:
        raise ProvisioningError("create_failed", 400)

    try:
        db.add(Profile(user_id=user_id, display_name=body.display_name, role=role))
        await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Profile insert for %s failed, removing identity account", user_id)
        try:
            await client.admin_delete_user(user_id)
        except IdentityServiceError as cleanup_exc:
            logger.error("Cleanup of identity account %s failed: %s", user_id, cleanup_exc.message)
        raise ProvisioningError("profile_insert_failed", 400) from exc

    logger.info("Provisioned %s account %s", role, user_id)
    return user_id


async def update_password(
    client: IdentityServiceClient,
    settings: Settings,
    body: UpdatePasswordRequest,
) -> str | None:
    """Set a new password through the service-role API; return the user id."""
    if not body.user_id or not body.new_password:
        raise ProvisioningError("missing_fields", 400)
    _require_service_role(settings)

    try:
        user = await client.admin_update_password(body.user_id, body.new_password)
    except IdentityServiceError as exc:
        raise ProvisioningError(exc.message, 400) from exc
    return user.get("id")


def check_setup_token(settings: Settings, supplied: str | None) -> None:
    if not settings.setup_bootstrap_token:
        logger.error("setup_bootstrap_token is not configured")
        raise ProvisioningError("missing_setup_secret", 500)
    if not hmac.compare_digest((supplied or "").encode(), settings.setup_bootstrap_token.encode()):
        raise ProvisioningError("unauthorized", 401)


async def bootstrap_admin(
    db: AsyncSession,
    client: IdentityServiceClient,
    settings: Settings,
    setup_token: str | None,
    body: BootstrapAdminRequest,
) -> str:
    """Create an identity account and upsert its profile as admin."""
    check_setup_token(settings, setup_token)
    if not body.email or not body.password:
        raise ProvisioningError("missing_fields", 400)
    _require_service_role(settings)

    display_name = body.display_name or DEFAULT_ADMIN_DISPLAY_NAME
    try:
        created = await client.admin_create_user(
            body.email, body.password, {"display_name": display_name}
        )
    except IdentityServiceError as exc:
        raise ProvisioningError(exc.message or "create_failed", 400) from exc
    user_id = created.get("id")
    if not user_id:
        raise ProvisioningError("create_failed", 400)

    # Keyed by user id, so a repeated bootstrap for the same account is harmless
    await db.merge(Profile(user_id=user_id, display_name=display_name, role="admin", is_active=True))
    await db.flush()

    logger.info("Bootstrapped admin account %s", user_id)
    return user_id
