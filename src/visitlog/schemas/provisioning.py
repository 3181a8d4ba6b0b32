"""Request schemas for the admin provisioning endpoints.

Every field is optional at the schema level: missing values are reported
as ``missing_fields`` by the gateway, after the caller has been authorized.
"""

from pydantic import BaseModel


class CreateUserRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    display_name: str | None = None
    role: str | None = None


class UpdatePasswordRequest(BaseModel):
    user_id: str | None = None
    new_password: str | None = None


class BootstrapAdminRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    display_name: str | None = None
