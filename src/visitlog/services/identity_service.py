"""HTTP client for the remote identity service (GoTrue-compatible auth API).

Public calls authenticate with the anon key plus the caller's access token;
admin calls use the service-role key and must only run server-side.
"""

import logging

import httpx

from visitlog.config import Settings, get_settings

logger = logging.getLogger(__name__)


class IdentityServiceError(Exception):
    """The identity service rejected a call; message is passed through verbatim."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class IdentityServiceClient:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.identity_service_url.rstrip("/")

    def _public_headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.settings.identity_anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _admin_headers(self) -> dict[str, str]:
        key = self.settings.identity_service_role_key
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.settings.identity_timeout_seconds) as client:
                return await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Identity service %s %s failed: %s", method, path, exc)
            raise IdentityServiceError(f"Identity service unreachable: {exc}") from exc

    # ── Session calls ────────────────────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> dict | None:
        """Return the session payload, or None for rejected credentials."""
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._public_headers(),
        )
        if response.status_code in (400, 401):
            return None
        if response.status_code >= 400:
            raise IdentityServiceError(_error_message(response), response.status_code)
        return response.json()

    async def sign_out(self, access_token: str) -> None:
        response = await self._request(
            "POST", "/auth/v1/logout", headers=self._public_headers(access_token)
        )
        if response.status_code >= 400 and response.status_code != 401:
            raise IdentityServiceError(_error_message(response), response.status_code)

    async def get_user(self, access_token: str) -> dict | None:
        """Resolve an access token to its user, or None if the session is not valid."""
        response = await self._request(
            "GET", "/auth/v1/user", headers=self._public_headers(access_token)
        )
        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            raise IdentityServiceError(_error_message(response), response.status_code)
        return response.json()

    # ── Admin calls ──────────────────────────────────────────────────

    async def admin_create_user(
        self, email: str, password: str, user_metadata: dict | None = None
    ) -> dict:
        """Create an auto-confirmed account and return the user object."""
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": user_metadata or {},
            },
            headers=self._admin_headers(),
        )
        if response.status_code >= 400:
            raise IdentityServiceError(_error_message(response), response.status_code)
        body = response.json()
        # Some deployments wrap the object as {"user": {...}}
        return body.get("user", body) if isinstance(body, dict) else {}

    async def admin_update_password(self, user_id: str, new_password: str) -> dict:
        response = await self._request(
            "PUT",
            f"/auth/v1/admin/users/{user_id}",
            json={"password": new_password},
            headers=self._admin_headers(),
        )
        if response.status_code >= 400:
            raise IdentityServiceError(_error_message(response), response.status_code)
        body = response.json()
        return body.get("user", body) if isinstance(body, dict) else {}

    async def admin_delete_user(self, user_id: str) -> None:
        response = await self._request(
            "DELETE", f"/auth/v1/admin/users/{user_id}", headers=self._admin_headers()
        )
        if response.status_code >= 400 and response.status_code != 404:
            raise IdentityServiceError(_error_message(response), response.status_code)
