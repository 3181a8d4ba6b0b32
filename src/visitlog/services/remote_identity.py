"""Remote-identity provider.

Credentials, tokens and password storage belong to the identity service.
This provider forwards sign-in/sign-out and resolves a bearer token to a
"session + profile" snapshot. Nothing is remembered between requests: each
check asks the service whether the token is still valid and re-reads the
profile row, so revoked sessions, deactivations and role changes apply on
the next request.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.models.profile import Profile
from visitlog.schemas.auth import LoginResult, SessionUser
from visitlog.services.identity_service import IdentityServiceClient, IdentityServiceError

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


class RemoteIdentityProvider:
    def __init__(self, db: AsyncSession, client: IdentityServiceClient) -> None:
        self.db = db
        self.client = client

    async def _snapshot(self, user: dict) -> SessionUser | None:
        """Build the identity snapshot from a service user and its profile row."""
        user_id = user.get("id")
        if not user_id:
            return None
        profile = await get_profile(self.db, user_id)
        if profile is None or not profile.is_active:
            return None
        metadata = user.get("user_metadata") or {}
        return SessionUser(
            id=user_id,
            username=user.get("email") or user_id,
            role=profile.role,
            display_name=profile.display_name or metadata.get("display_name"),
        )

    async def login(self, username: str, password: str) -> LoginResult:
        session = await self.client.sign_in_with_password(username, password)
        if not session or not session.get("access_token"):
            logger.info("Remote sign-in rejected for %s", username)
            return LoginResult(success=False, error="invalid_credentials")

        user = await self._snapshot(session.get("user") or {})
        if user is None:
            logger.info("Remote sign-in for %s has no active profile", username)
            return LoginResult(success=False, error="missing_profile")

        profile = await get_profile(self.db, user.id)
        profile.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()

        return LoginResult(success=True, user=user, token=session["access_token"])

    async def logout(self, token: str) -> None:
        """Forward the sign-out. A failing service call is logged, not raised."""
        try:
            await self.client.sign_out(token)
        except IdentityServiceError as exc:
            logger.warning("Remote sign-out failed: %s", exc.message)

    async def current(self, token: str) -> SessionUser | None:
        user = await self.client.get_user(token)
        if user is None:
            return None
        snapshot = await self._snapshot(user)
        if snapshot is None:
            logger.info("Session for %s has no active profile", user.get("id"))
        return snapshot
