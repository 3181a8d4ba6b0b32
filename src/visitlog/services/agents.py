"""Account store with the last-admin invariant."""

from datetime import datetime, timezone

from visitlog.schemas.agent import Agent
from visitlog.services.record_store import RecordStore
from visitlog.services.slots import AGENTS_SLOT


class AgentStore(RecordStore[Agent]):
    slot_key = AGENTS_SLOT
    record_model = Agent

    async def find_by_username(self, username: str) -> Agent | None:
        agents = await self.list_all()
        return next((a for a in agents if a.username == username), None)

    async def search(self, query: str) -> list[Agent]:
        term = query.lower()
        return [
            a
            for a in await self.list_all()
            if term in a.username.lower()
            or term in a.email.lower()
            or term in a.full_name.lower()
        ]

    async def is_last_admin(self, agent_id: str, *, active_only: bool = False) -> bool:
        """True if agent_id is the only account holding the admin role.

        With active_only, inactive accounts are left out of the count, so the
        question becomes whether agent_id is the only admin able to sign in.
        """
        admins = [
            a for a in await self.list_all() if a.role == "admin" and (a.is_active or not active_only)
        ]
        return len(admins) == 1 and admins[0].id == agent_id

    async def delete(self, agent_id: str) -> bool:
        """Remove an account; False when that would leave no admin, or no active admin."""
        if await self.is_last_admin(agent_id) or await self.is_last_admin(
            agent_id, active_only=True
        ):
            return False
        return await super().delete(agent_id)

    async def update_last_login(self, agent_id: str) -> Agent | None:
        return await self.update(agent_id, {"last_login": datetime.now(timezone.utc)})
