"""Application configuration via environment variables."""

from functools import lru_cache
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    database_url: str = "sqlite+aiosqlite:///./visitlog.db"
    # Seconds a SQLite writer waits for a competing write to finish
    database_busy_timeout_seconds: float = 15.0
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "*"
    environment: str = "development"

    # Identity
    identity_backend: Literal["local", "remote"] = "local"
    bootstrap_admin_username: str = "admin"
    bootstrap_admin_password: str = ""
    password_hash_iterations: int = 310000

    # Local record slots
    storage_capacity_bytes: int = 5 * 1024 * 1024

    # Remote identity service (GoTrue-compatible)
    identity_service_url: str = ""
    identity_anon_key: str = ""
    identity_service_role_key: str = ""
    identity_timeout_seconds: int = 10
    setup_bootstrap_token: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    INSECURE_SECRETS: ClassVar[set[str]] = {
        "admin",
        "admin123",
        "change-me",
        "password",
        "secret",
    }

    def validate_production(self) -> None:
        """Raise if running in production with a well-known credential or setup token."""
        if self.environment != "production":
            return
        if self.bootstrap_admin_password in self.INSECURE_SECRETS:
            raise RuntimeError(
                "BOOTSTRAP_ADMIN_PASSWORD must not be a well-known value in production. "
                "Leave it empty to disable the bootstrap credential."
            )
        if self.setup_bootstrap_token in self.INSECURE_SECRETS:
            raise RuntimeError(
                "SETUP_BOOTSTRAP_TOKEN must be changed from default in production. "
                'Generate one: python -c "import secrets; print(secrets.token_hex(32))"'
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
