# drive_auth/core/config.py
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"


class Settings(BaseSettings):
    """
    Process-wide configuration. Built once at startup and handed to the
    app factory, the resolvers and the Drive service; never mutated.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
        frozen=True,
    )

    # Google OAuth client (the front end reads the same id as VITE_GOOGLE_CLIENT_ID)
    GOOGLE_CLIENT_ID: str = Field(
        validation_alias=AliasChoices("GOOGLE_CLIENT_ID", "VITE_GOOGLE_CLIENT_ID")
    )
    GOOGLE_CLIENT_SECRET: Optional[str] = None

    # Service account key JSON, only used for domain-wide delegation
    SERVICE_ACCOUNT_INFO: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("CREDENTIALS", "SERVICE_ACCOUNT_INFO"),
    )

    # Cookies
    COOKIE_ENCRYPTION_KEY: str
    COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"
    SESSION_COOKIE_NAME: str = "app-session"
    CSRF_COOKIE_NAME: str = "csrf-token"
    SESSION_MAX_AGE: int = 14 * 24 * 60 * 60

    APP_ENV: Literal["development", "production"] = "development"
    AUTH_VARIANT: Literal["codeflow", "delegation"] = "codeflow"

    DATABASE_URL: str = "sqlite:///./drive_auth.db"

    SCOPES: List[str] = [DRIVE_READONLY_SCOPE]
    HTTP_TIMEOUT: float = 10.0

    # Built front-end assets, served in production only
    STATIC_DIRS: List[str] = ["dist", "public"]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @model_validator(mode="after")
    def check_variant_requirements(self) -> "Settings":
        if len(self.COOKIE_ENCRYPTION_KEY) < 32:
            raise ValueError("COOKIE_ENCRYPTION_KEY must be at least 32 characters long")
        if self.AUTH_VARIANT == "codeflow" and not self.GOOGLE_CLIENT_SECRET:
            raise ValueError("GOOGLE_CLIENT_SECRET is required for the codeflow variant")
        if self.AUTH_VARIANT == "delegation":
            info = self.SERVICE_ACCOUNT_INFO or {}
            missing = [key for key in ("client_email", "private_key") if not info.get(key)]
            if missing:
                raise ValueError(
                    f"CREDENTIALS is required for the delegation variant (missing: {', '.join(missing)})"
                )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
