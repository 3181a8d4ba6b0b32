"""Tests for the /v1/auth endpoints, with the local and remote identity backends."""

import pytest
import respx
from httpx import Response

from visitlog.config import Settings
from visitlog.dependencies import get_app_settings
from visitlog.models.profile import Profile

IDENTITY_URL = "https://identity.test"


# ---------------------------------------------------------------------------
# Local backend
# ---------------------------------------------------------------------------


class TestLocalLogin:
    @pytest.mark.asyncio
    async def test_bootstrap_admin_login(self, client):
        resp = await client.post(
            "/v1/auth/login", json={"username": "admin", "password": "test-admin-pass"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["token"]
        assert data["user"]["role"] == "admin"
        assert "manage_accounts" in data["permissions"]

    @pytest.mark.asyncio
    async def test_unknown_user_returns_401_with_reason(self, client):
        resp = await client.post("/v1/auth/login", json={"username": "ghost", "password": "x"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_wrong_password_returns_401_with_reason(self, client, login_as):
        await login_as("user", username="alice")
        resp = await client.post("/v1/auth/login", json={"username": "alice", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "wrong_password"

    @pytest.mark.asyncio
    async def test_me_returns_identity_and_permissions(self, client, login_as):
        headers = await login_as("viewer", username="vera")
        resp = await client.get("/v1/auth/me", headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["username"] == "vera"
        assert data["permissions"] == ["export_visits", "view_visits"]

    @pytest.mark.asyncio
    async def test_me_without_authorization_header_returns_401(self, client):
        resp = await client.get("/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Authorization header is required"

    @pytest.mark.asyncio
    async def test_logout_without_authorization_header_returns_401(self, client):
        resp = await client.post("/v1/auth/logout")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_invalidates_token(self, client, admin_headers):
        resp = await client.post("/v1/auth/logout", headers=admin_headers)
        assert resp.status_code == 204
        resp = await client.get("/v1/auth/me", headers=admin_headers)
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_with_unknown_token_succeeds(self, client):
        resp = await client.post("/v1/auth/logout", headers={"Authorization": "Bearer unknown"})
        assert resp.status_code == 204


# ---------------------------------------------------------------------------
# Remote backend
# ---------------------------------------------------------------------------


@pytest.fixture
def remote_app(app):
    app.dependency_overrides[get_app_settings] = lambda: Settings(
        identity_backend="remote",
        identity_service_url=IDENTITY_URL,
        identity_anon_key="anon",
    )
    return app


def _mock_remote_session(user_id: str, token: str, email: str = "ana@b.test"):
    respx.post(f"{IDENTITY_URL}/auth/v1/token").mock(
        return_value=Response(
            200, json={"access_token": token, "user": {"id": user_id, "email": email}}
        )
    )
    return respx.get(f"{IDENTITY_URL}/auth/v1/user").mock(
        return_value=Response(200, json={"id": user_id, "email": email})
    )


class TestRemoteLogin:
    @pytest.mark.asyncio
    async def test_login_uses_profile_role(self, remote_app, client, db_session):
        db_session.add(Profile(user_id="u1", display_name="Ana", role="user"))
        await db_session.commit()

        with respx.mock:
            user_route = _mock_remote_session("u1", "at-1")
            resp = await client.post(
                "/v1/auth/login", json={"username": "ana@b.test", "password": "pw"}
            )
            assert resp.status_code == 200
            data = resp.json()
            assert data["token"] == "at-1"
            assert data["user"]["role"] == "user"
            assert data["user"]["username"] == "ana@b.test"

            me = await client.get("/v1/auth/me", headers={"Authorization": "Bearer at-1"})

        assert me.status_code == 200
        assert me.json()["user"]["id"] == "u1"
        assert user_route.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_profile_returns_401(self, remote_app, client):
        with respx.mock:
            respx.post(f"{IDENTITY_URL}/auth/v1/token").mock(
                return_value=Response(200, json={"access_token": "at-2", "user": {"id": "u2"}})
            )
            resp = await client.post(
                "/v1/auth/login", json={"username": "x@b.test", "password": "pw"}
            )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "missing_profile"

    @pytest.mark.asyncio
    async def test_unreachable_service_returns_502(self, remote_app, client):
        with respx.mock:
            respx.post(f"{IDENTITY_URL}/auth/v1/token").mock(
                return_value=Response(503, json={"message": "maintenance"})
            )
            resp = await client.post(
                "/v1/auth/login", json={"username": "x@b.test", "password": "pw"}
            )
        assert resp.status_code == 502
        assert resp.json()["detail"] == "maintenance"

    @pytest.mark.asyncio
    async def test_agent_admin_is_unavailable(self, remote_app, client, db_session):
        db_session.add(Profile(user_id="root", role="admin"))
        await db_session.commit()
        with respx.mock:
            _mock_remote_session("root", "at-3", email="r@b.test")
            token = (
                await client.post("/v1/auth/login", json={"username": "r@b.test", "password": "pw"})
            ).json()["token"]
            resp = await client.get("/v1/agents", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 400


class TestRemoteSessionChanges:
    @pytest.mark.asyncio
    async def test_session_revoked_by_service_returns_401(self, remote_app, client, db_session):
        db_session.add(Profile(user_id="u1", role="admin"))
        await db_session.commit()
        headers = {"Authorization": "Bearer at-1"}

        with respx.mock:
            user_route = _mock_remote_session("u1", "at-1")
            await client.post("/v1/auth/login", json={"username": "ana@b.test", "password": "pw"})
            assert (await client.get("/v1/auth/me", headers=headers)).status_code == 200

            user_route.mock(return_value=Response(401, json={"message": "session expired"}))
            resp = await client.get("/v1/auth/me", headers=headers)

        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_deactivated_profile_returns_401(self, remote_app, client, db_session):
        profile = Profile(user_id="u1", role="admin")
        db_session.add(profile)
        await db_session.commit()
        headers = {"Authorization": "Bearer at-1"}

        with respx.mock:
            _mock_remote_session("u1", "at-1")
            await client.post("/v1/auth/login", json={"username": "ana@b.test", "password": "pw"})

            profile.is_active = False
            await db_session.commit()
            me = await client.get("/v1/auth/me", headers=headers)
            clear = await client.delete("/v1/visits", headers=headers)

        assert me.status_code == 401
        assert clear.status_code == 401

    @pytest.mark.asyncio
    async def test_demoted_profile_loses_admin_permissions(self, remote_app, client, db_session):
        profile = Profile(user_id="u1", role="admin")
        db_session.add(profile)
        await db_session.commit()
        headers = {"Authorization": "Bearer at-1"}

        with respx.mock:
            _mock_remote_session("u1", "at-1")
            await client.post("/v1/auth/login", json={"username": "ana@b.test", "password": "pw"})

            profile.role = "viewer"
            await db_session.commit()
            me = await client.get("/v1/auth/me", headers=headers)
            clear = await client.delete("/v1/visits", headers=headers)

        assert me.json()["user"]["role"] == "viewer"
        assert clear.status_code == 403
