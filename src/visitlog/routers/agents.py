"""Account administration for the local identity backend."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import Settings
from visitlog.dependencies import get_app_settings, get_db, require_permission
from visitlog.schemas.agent import Agent, AgentCreate, AgentPasswordReset, AgentUpdate
from visitlog.services.authorization import Permission
from visitlog.services.local_identity import LocalIdentityProvider

router = APIRouter(prefix="/v1/agents", tags=["agents"])


def get_local_provider(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> LocalIdentityProvider:
    """Account admin only exists when credentials are held locally."""
    if settings.identity_backend != "local":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Accounts are managed by the identity service; use /admin-create-user",
        )
    return LocalIdentityProvider(db, settings)


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Agent not found",
    )


def _last_admin() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="The last admin account cannot be removed, demoted or deactivated",
    )


@router.get("", response_model=list[Agent])
async def list_agents(
    q: str | None = Query(default=None, max_length=255),
    provider: LocalIdentityProvider = Depends(get_local_provider),
    _user=Depends(require_permission(Permission.MANAGE_ACCOUNTS)),
) -> list[Agent]:
    if q and q.strip():
        return await provider.agents.search(q.strip())
    return await provider.agents.list_all()


@router.post("", response_model=Agent, status_code=status.HTTP_201_CREATED)
async def create_agent(
    body: AgentCreate,
    provider: LocalIdentityProvider = Depends(get_local_provider),
    _user=Depends(require_permission(Permission.MANAGE_ACCOUNTS)),
) -> Agent:
    """Create an account with its initial password."""
    agent, error = await provider.create_user(
        username=body.username.strip(),
        password=body.password,
        role=body.role,
        email=body.email,
        full_name=body.full_name,
        is_active=body.is_active,
    )
    if error == "username_taken":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists",
        )
    if agent is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=error,
        )
    return agent


@router.patch("/{agent_id}", response_model=Agent)
async def update_agent(
    agent_id: str,
    body: AgentUpdate,
    provider: LocalIdentityProvider = Depends(get_local_provider),
    _user=Depends(require_permission(Permission.MANAGE_ACCOUNTS)),
) -> Agent:
    """Update profile fields, role or active flag.

    Demoting or deactivating the last admin is refused. A role or active
    flag change signs the account out everywhere.
    """
    existing = await provider.agents.get(agent_id)
    if existing is None:
        raise _not_found()

    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    if "username" in changes and changes["username"] != existing.username:
        if await provider.agents.find_by_username(changes["username"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already exists",
            )

    demoted = changes.get("role", existing.role) != "admin"
    deactivated = changes.get("is_active", existing.is_active) is False
    if existing.role == "admin":
        if demoted and await provider.agents.is_last_admin(agent_id):
            raise _last_admin()
        if (demoted or deactivated) and await provider.agents.is_last_admin(
            agent_id, active_only=True
        ):
            raise _last_admin()

    agent = await provider.agents.update(agent_id, changes)
    if agent is None:
        raise _not_found()

    if agent.role != existing.role or agent.is_active != existing.is_active:
        await provider.revoke_sessions(agent_id)
    return agent


@router.put("/{agent_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    agent_id: str,
    body: AgentPasswordReset,
    provider: LocalIdentityProvider = Depends(get_local_provider),
    _user=Depends(require_permission(Permission.MANAGE_ACCOUNTS)),
) -> None:
    """Replace an account's password and end its open sessions."""
    if not await provider.set_password(agent_id, body.password):
        raise _not_found()
    await provider.revoke_sessions(agent_id)


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(
    agent_id: str,
    provider: LocalIdentityProvider = Depends(get_local_provider),
    _user=Depends(require_permission(Permission.MANAGE_ACCOUNTS)),
) -> None:
    if await provider.agents.get(agent_id) is None:
        raise _not_found()
    if not await provider.delete_user(agent_id):
        raise _last_admin()
