"""Sign-in, sign-out and current-identity endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from visitlog.dependencies import get_bearer_token, get_current_user, get_identity_provider
from visitlog.schemas.auth import IdentityResponse, LoginRequest, LoginResponse, SessionUser
from visitlog.services.authorization import permissions_for
from visitlog.services.local_identity import LocalIdentityProvider
from visitlog.services.remote_identity import RemoteIdentityProvider

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    provider: LocalIdentityProvider | RemoteIdentityProvider = Depends(get_identity_provider),
) -> LoginResponse:
    """Exchange credentials for a session token.

    Failures return 401 with the reason (user_not_found, wrong_password,
    account_disabled, invalid_credentials, missing_profile) as detail.
    """
    result = await provider.login(body.username, body.password)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error,
        )

    return LoginResponse(
        token=result.token,
        user=result.user,
        permissions=permissions_for(result.user.role),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(get_bearer_token),
    provider: LocalIdentityProvider | RemoteIdentityProvider = Depends(get_identity_provider),
) -> None:
    """End the session. Always succeeds, even for unknown tokens."""
    await provider.logout(token)


@router.get("/me", response_model=IdentityResponse)
async def me(user: SessionUser = Depends(get_current_user)) -> IdentityResponse:
    """Return the signed-in identity and what its role may do."""
    return IdentityResponse(user=user, permissions=permissions_for(user.role))
