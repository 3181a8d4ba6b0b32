"""Tests for visitlog.services.remote_identity."""

import pytest
import respx
from httpx import Response

from visitlog.config import Settings
from visitlog.models.profile import Profile
from visitlog.services.identity_service import IdentityServiceClient
from visitlog.services.remote_identity import RemoteIdentityProvider

URL = "https://identity.test"


def _provider(db_session) -> RemoteIdentityProvider:
    client = IdentityServiceClient(Settings(identity_service_url=URL, identity_anon_key="anon"))
    return RemoteIdentityProvider(db_session, client)


def _mock_sign_in(user_id: str = "u1", token: str = "at-1"):
    return respx.post(f"{URL}/auth/v1/token").mock(
        return_value=Response(
            200,
            json={"access_token": token, "user": {"id": user_id, "email": "a@b.test"}},
        )
    )


class TestLogin:
    @pytest.mark.asyncio
    async def test_role_comes_from_profile(self, db_session):
        db_session.add(Profile(user_id="u1", display_name="Ana", role="viewer"))
        await db_session.flush()

        with respx.mock:
            _mock_sign_in()
            result = await _provider(db_session).login("a@b.test", "pw")

        assert result.success is True
        assert result.token == "at-1"
        assert result.user.role == "viewer"
        assert result.user.display_name == "Ana"

    @pytest.mark.asyncio
    async def test_login_stamps_last_login(self, db_session):
        profile = Profile(user_id="u1", role="user")
        db_session.add(profile)
        await db_session.flush()

        with respx.mock:
            _mock_sign_in()
            await _provider(db_session).login("a@b.test", "pw")

        assert profile.last_login_at is not None

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, db_session):
        with respx.mock:
            respx.post(f"{URL}/auth/v1/token").mock(return_value=Response(400, json={}))
            result = await _provider(db_session).login("a@b.test", "bad")
        assert result.success is False
        assert result.error == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_missing_profile(self, db_session):
        with respx.mock:
            _mock_sign_in(user_id="no-profile")
            result = await _provider(db_session).login("a@b.test", "pw")
        assert result.error == "missing_profile"

    @pytest.mark.asyncio
    async def test_inactive_profile_cannot_sign_in(self, db_session):
        db_session.add(Profile(user_id="u1", role="admin", is_active=False))
        await db_session.flush()
        with respx.mock:
            _mock_sign_in()
            result = await _provider(db_session).login("a@b.test", "pw")
        assert result.error == "missing_profile"


class TestSession:
    @pytest.mark.asyncio
    async def test_current_resolves_token(self, db_session):
        db_session.add(Profile(user_id="u1", role="user"))
        await db_session.flush()
        with respx.mock:
            respx.get(f"{URL}/auth/v1/user").mock(
                return_value=Response(200, json={"id": "u1", "email": "a@b.test"})
            )
            user = await _provider(db_session).current("at-9")
        assert user.username == "a@b.test"

    @pytest.mark.asyncio
    async def test_current_with_invalid_token(self, db_session):
        with respx.mock:
            respx.get(f"{URL}/auth/v1/user").mock(return_value=Response(401))
            assert await _provider(db_session).current("bad") is None

    @pytest.mark.asyncio
    async def test_current_checks_the_service_on_every_call(self, db_session):
        db_session.add(Profile(user_id="u1", role="user"))
        await db_session.flush()
        provider = _provider(db_session)
        with respx.mock:
            _mock_sign_in()
            route = respx.get(f"{URL}/auth/v1/user").mock(
                side_effect=[
                    Response(200, json={"id": "u1", "email": "a@b.test"}),
                    Response(401),
                ]
            )
            await provider.login("a@b.test", "pw")
            assert (await provider.current("at-1")).id == "u1"
            assert await provider.current("at-1") is None
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_deactivated_profile_ends_open_session(self, db_session):
        profile = Profile(user_id="u1", role="admin")
        db_session.add(profile)
        await db_session.flush()
        provider = _provider(db_session)
        with respx.mock:
            _mock_sign_in()
            respx.get(f"{URL}/auth/v1/user").mock(
                return_value=Response(200, json={"id": "u1", "email": "a@b.test"})
            )
            await provider.login("a@b.test", "pw")
            profile.is_active = False
            await db_session.flush()
            assert await provider.current("at-1") is None

    @pytest.mark.asyncio
    async def test_role_change_applies_to_open_session(self, db_session):
        profile = Profile(user_id="u1", role="admin")
        db_session.add(profile)
        await db_session.flush()
        provider = _provider(db_session)
        with respx.mock:
            _mock_sign_in()
            respx.get(f"{URL}/auth/v1/user").mock(
                return_value=Response(200, json={"id": "u1", "email": "a@b.test"})
            )
            await provider.login("a@b.test", "pw")
            profile.role = "viewer"
            await db_session.flush()
            user = await provider.current("at-1")
        assert user.role == "viewer"

    @pytest.mark.asyncio
    async def test_logout_tolerates_service_failure(self, db_session):
        provider = _provider(db_session)
        with respx.mock:
            route = respx.post(f"{URL}/auth/v1/logout").mock(return_value=Response(500))
            await provider.logout("at-1")
        assert route.called
