"""FastAPI dependency injection functions."""

from collections.abc import AsyncGenerator, Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from visitlog.config import Settings, get_settings
from visitlog.db.engine import get_session
from visitlog.schemas.auth import SessionUser
from visitlog.services.agents import AgentStore
from visitlog.services.authorization import Permission, can
from visitlog.services.identity_service import IdentityServiceClient
from visitlog.services.local_identity import LocalIdentityProvider
from visitlog.services.purposes import PurposeVocabulary
from visitlog.services.remote_identity import RemoteIdentityProvider
from visitlog.services.visits import VisitStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async for session in get_session():
        yield session


def get_app_settings() -> Settings:
    """Return application settings."""
    return get_settings()


def get_identity_client(
    settings: Settings = Depends(get_app_settings),
) -> IdentityServiceClient:
    """Return a client for the remote identity service."""
    return IdentityServiceClient(settings)


def get_identity_provider(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    client: IdentityServiceClient = Depends(get_identity_client),
) -> LocalIdentityProvider | RemoteIdentityProvider:
    """Return the identity provider selected by settings.identity_backend."""
    if settings.identity_backend == "remote":
        return RemoteIdentityProvider(db, client)
    return LocalIdentityProvider(db, settings)


def get_bearer_token(
    authorization: str | None = Header(default=None, description="Bearer <session token>"),
) -> str:
    """Extract the session token from the Authorization header."""
    if authorization is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
        )
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header must use Bearer scheme",
        )

    token = authorization[7:].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session token is required",
        )
    return token


async def get_current_user(
    token: str = Depends(get_bearer_token),
    provider: LocalIdentityProvider | RemoteIdentityProvider = Depends(get_identity_provider),
) -> SessionUser:
    """Resolve the bearer token to the signed-in identity."""
    user = await provider.current(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )
    return user


def require_permission(permission: Permission) -> Callable:
    """Build a dependency that admits only roles granting the permission."""

    async def _check(user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if not can(user.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role}' lacks permission '{permission.value}'",
            )
        return user

    return _check


def get_visit_store(db: AsyncSession = Depends(get_db)) -> VisitStore:
    return VisitStore(db)


def get_purpose_vocabulary(db: AsyncSession = Depends(get_db)) -> PurposeVocabulary:
    return PurposeVocabulary(db)


def get_agent_store(db: AsyncSession = Depends(get_db)) -> AgentStore:
    return AgentStore(db)
