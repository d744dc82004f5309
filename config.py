"""
Runtime configuration for the Portfolio API.

Everything is read from the environment once, at process start.
"""

import os
from typing import Optional

from pydantic import BaseModel


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    admin_username: str = "admin"
    admin_password: str = "password"
    # Takes precedence over admin_password when provided
    admin_password_hash: Optional[str] = None

    jwt_secret: str = "super-secret-key-change"
    token_ttl_hours: int = 24

    github_username: Optional[str] = None
    github_token: Optional[str] = None
    github_timeout_seconds: float = 20.0
    github_import_on_startup: bool = True

    database_url: Optional[str] = None
    database_name: Optional[str] = None

    log_level: str = "INFO"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            admin_username=os.getenv("ADMIN_USERNAME", "admin"),
            admin_password=os.getenv("ADMIN_PASSWORD", "password"),
            admin_password_hash=os.getenv("ADMIN_PASSWORD_HASH") or None,
            jwt_secret=os.getenv("JWT_SECRET", "super-secret-key-change"),
            token_ttl_hours=int(os.getenv("TOKEN_TTL_HOURS", "24")),
            github_username=os.getenv("GITHUB_USERNAME") or None,
            github_token=os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or None,
            github_timeout_seconds=float(os.getenv("GITHUB_TIMEOUT_SECONDS", "20")),
            github_import_on_startup=_env_flag("GITHUB_IMPORT_ON_STARTUP", True),
            database_url=os.getenv("DATABASE_URL") or None,
            database_name=os.getenv("DATABASE_NAME") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", "8000")),
        )
