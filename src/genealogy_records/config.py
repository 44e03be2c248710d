"""
Runtime configuration.

Settings are read from the process environment after loading an optional
``.env`` file. The store, identity provider and token secrets are required;
everything else has a development default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from genealogy_records.auth.provider import SupabaseAuthConfig
from genealogy_records.auth.tokens import TokenConfig
from genealogy_records.core.errors import ConfigurationError
from genealogy_records.store.supabase import SupabaseConfig

REQUIRED_VARIABLES = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "JWT_SECRET",
    "JWT_REFRESH_SECRET",
)

DEV_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]


@dataclass
class Settings:
    """Application settings."""
    supabase_url: str
    supabase_anon_key: str
    supabase_service_key: str
    jwt_secret: str
    jwt_refresh_secret: str
    port: int = 3001
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    jwt_expires_in: str = "24h"
    jwt_refresh_expires_in: str = "7d"
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cors_origins(self) -> list[str]:
        if self.environment == "production":
            return [self.frontend_url]
        return sorted(set(DEV_ORIGINS) | {self.frontend_url})

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        """Load settings, raising ConfigurationError listing every missing required variable."""
        load_dotenv(env_file)

        missing = [name for name in REQUIRED_VARIABLES if not os.environ.get(name)]
        if missing:
            raise ConfigurationError(missing)

        return cls(
            supabase_url=os.environ["SUPABASE_URL"],
            supabase_anon_key=os.environ["SUPABASE_ANON_KEY"],
            supabase_service_key=os.environ["SUPABASE_SERVICE_ROLE_KEY"],
            jwt_secret=os.environ["JWT_SECRET"],
            jwt_refresh_secret=os.environ["JWT_REFRESH_SECRET"],
            port=int(os.environ.get("PORT", "3001")),
            environment=os.environ.get("APP_ENV", "development"),
            frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:5173"),
            jwt_expires_in=os.environ.get("JWT_EXPIRES_IN", "24h"),
            jwt_refresh_expires_in=os.environ.get("JWT_REFRESH_EXPIRES_IN", "7d"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def for_development(cls, **overrides) -> "Settings":
        """Settings for the in-memory server and tests; no external services are contacted."""
        values = {
            "supabase_url": "http://localhost:54321",
            "supabase_anon_key": "dev-anon-key",
            "supabase_service_key": "dev-service-key",
            "jwt_secret": "dev-jwt-secret",
            "jwt_refresh_secret": "dev-jwt-refresh-secret",
        }
        values.update(overrides)
        return cls(**values)

    def store_config(self) -> SupabaseConfig:
        return SupabaseConfig(url=self.supabase_url, service_key=self.supabase_service_key)

    def auth_config(self) -> SupabaseAuthConfig:
        return SupabaseAuthConfig(
            url=self.supabase_url,
            anon_key=self.supabase_anon_key,
            service_key=self.supabase_service_key,
        )

    def token_config(self) -> TokenConfig:
        return TokenConfig(
            secret=self.jwt_secret,
            refresh_secret=self.jwt_refresh_secret,
            expires_in=self.jwt_expires_in,
            refresh_expires_in=self.jwt_refresh_expires_in,
        )
