"""IncidentDesk configuration system using Pydantic Settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_SECRET_KEY = "CHANGE_ME_IN_PRODUCTION"


class IncidentDeskConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "IncidentDesk"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Database
    database_url: str = "sqlite+aiosqlite:///./incidentdesk.db"

    # Auth
    secret_key: str = INSECURE_SECRET_KEY
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60
    default_role: str = "security_officer"
    login_rate_limit_attempts: int = 5
    login_rate_limit_window: int = 300  # seconds

    # Evidence attachments
    evidence_dir: str = "evidence"
    evidence_public_base_url: str = "http://127.0.0.1:8000/evidence"
    evidence_max_bytes: int = 10_000_000  # 10 MB per file

    # Analytics
    top_n: int = 5

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        allowed = {"HS256", "HS384", "HS512"}
        if v not in allowed:
            raise ValueError(f"jwt_algorithm must be one of {allowed}")
        return v

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 1:
            raise ValueError("top_n must be at least 1")
        return v

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent.parent


def get_config() -> IncidentDeskConfig:
    """Factory function to create config instance."""
    return IncidentDeskConfig()
