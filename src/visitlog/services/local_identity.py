"""Local-credential identity provider.

Accounts live in the agents slot, password hashes in a separate slot keyed
by account id, and open sessions in a slot keyed by the SHA-256 of the
session token. The bootstrap administrator credential comes from settings
and is disabled while its password is empty.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import Settings, get_settings
from visitlog.schemas.agent import Agent, Role
from visitlog.schemas.auth import LoginResult, SessionUser
from visitlog.services.agents import AgentStore
from visitlog.services.passwords import hash_password, verify_password
from visitlog.services.slots import PASSWORDS_SLOT, SESSIONS_SLOT, read_slot, write_slot

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_ID = "bootstrap-admin"


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class LocalIdentityProvider:
    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.agents = AgentStore(db)

    async def _load_map(self, key: str) -> tuple[dict, int]:
        value, version = await read_slot(self.db, key)
        return (value if isinstance(value, dict) else {}), version

    def _is_bootstrap_login(self, username: str, password: str) -> bool:
        expected = self.settings.bootstrap_admin_password
        if not expected or username != self.settings.bootstrap_admin_username:
            return False
        return hmac.compare_digest(password.encode(), expected.encode())

    async def _open_session(self, user: SessionUser) -> str:
        token = secrets.token_urlsafe(32)
        sessions, version = await self._load_map(SESSIONS_SLOT)
        sessions[_hash_token(token)] = {
            "user": user.model_dump(mode="json"),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        await write_slot(self.db, SESSIONS_SLOT, sessions, version)
        return token

    # ── Sessions ─────────────────────────────────────────────────────

    async def login(self, username: str, password: str) -> LoginResult:
        """Authenticate and open a session; error is a machine-readable reason."""
        if self._is_bootstrap_login(username, password):
            user = SessionUser(id=BOOTSTRAP_ADMIN_ID, username=username, role="admin")
            return LoginResult(success=True, user=user, token=await self._open_session(user))

        agent = await self.agents.find_by_username(username)
        if agent is None:
            logger.info("Login failed for unknown user %s", username)
            return LoginResult(success=False, error="user_not_found")

        passwords, _ = await self._load_map(PASSWORDS_SLOT)
        if not verify_password(password, passwords.get(agent.id, "")):
            logger.info("Login failed for %s: wrong password", username)
            return LoginResult(success=False, error="wrong_password")

        if not agent.is_active:
            logger.info("Login refused for disabled account %s", username)
            return LoginResult(success=False, error="account_disabled")

        await self.agents.update_last_login(agent.id)
        user = SessionUser(
            id=agent.id,
            username=agent.username,
            role=agent.role,
            display_name=agent.full_name or None,
        )
        return LoginResult(success=True, user=user, token=await self._open_session(user))

    async def logout(self, token: str) -> None:
        sessions, version = await self._load_map(SESSIONS_SLOT)
        if sessions.pop(_hash_token(token), None) is not None:
            await write_slot(self.db, SESSIONS_SLOT, sessions, version)

    async def current(self, token: str) -> SessionUser | None:
        sessions, _ = await self._load_map(SESSIONS_SLOT)
        entry = sessions.get(_hash_token(token))
        if not isinstance(entry, dict):
            return None
        try:
            return SessionUser.model_validate(entry.get("user"))
        except ValidationError:
            return None

    # ── Accounts ─────────────────────────────────────────────────────

    async def create_user(
        self,
        username: str,
        password: str,
        role: Role,
        email: str = "",
        full_name: str = "",
        is_active: bool = True,
    ) -> tuple[Agent | None, str | None]:
        """Create an account; returns (agent, None) or (None, reason)."""
        if not username.strip() or not password:
            return None, "missing_fields"
        if await self.agents.find_by_username(username):
            return None, "username_taken"

        agent = await self.agents.add({
            "username": username,
            "email": email,
            "full_name": full_name,
            "role": role,
            "is_active": is_active,
        })
        passwords, version = await self._load_map(PASSWORDS_SLOT)
        passwords[agent.id] = hash_password(password, self.settings.password_hash_iterations)
        await write_slot(self.db, PASSWORDS_SLOT, passwords, version)
        return agent, None

    async def set_password(self, agent_id: str, new_password: str) -> bool:
        if await self.agents.get(agent_id) is None:
            return False
        passwords, version = await self._load_map(PASSWORDS_SLOT)
        passwords[agent_id] = hash_password(new_password, self.settings.password_hash_iterations)
        await write_slot(self.db, PASSWORDS_SLOT, passwords, version)
        return True

    async def delete_user(self, agent_id: str) -> bool:
        """Delete an account with its password and sessions; False for the last admin."""
        if not await self.agents.delete(agent_id):
            return False

        passwords, version = await self._load_map(PASSWORDS_SLOT)
        if passwords.pop(agent_id, None) is not None:
            await write_slot(self.db, PASSWORDS_SLOT, passwords, version)

        await self.revoke_sessions(agent_id)
        return True

    async def revoke_sessions(self, agent_id: str) -> None:
        sessions, version = await self._load_map(SESSIONS_SLOT)
        kept = {
            key: entry
            for key, entry in sessions.items()
            if not (isinstance(entry, dict) and entry.get("user", {}).get("id") == agent_id)
        }
        if len(kept) != len(sessions):
            await write_slot(self.db, SESSIONS_SLOT, kept, version)
