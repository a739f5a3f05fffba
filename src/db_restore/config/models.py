"""Pydantic models for database profiles and restore settings."""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ============================================================================
# Profile Models (db.toml)
# ============================================================================


class DatabaseProfile(BaseModel):
    """Target store connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: Literal["postgres", "supabase"] = "postgres"
    key: str | None = None  # Supabase service role key (falls back to settings)
    jsonb_columns: list[str] = Field(default_factory=list)


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    default_profile: str | None = None


# ============================================================================
# Environment Settings
# ============================================================================


class RestoreSettings(BaseSettings):
    """Environment-driven settings for the restore engine and its entry points.

    Env var names accept the aliases used by the web application so the
    same ``.env`` file can be shared.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_service_role_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY"
        ),
    )

    # Comma-separated; merged with the role check in AdminPolicy
    super_admin_emails: str = Field(
        default="",
        validation_alias=AliasChoices(
            "SUPER_ADMIN_EMAILS", "NEXT_PUBLIC_SUPER_ADMIN_EMAILS"
        ),
    )

    db_profile: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_PROFILE", "DB_RESTORE_PROFILE"),
    )
    db_config_path: Path = Field(
        default=Path("db.toml"),
        validation_alias=AliasChoices("DB_RESTORE_CONFIG", "DB_CONFIG_PATH"),
    )

    # Lock files and checkpoints live here
    state_dir: Path = Field(
        default=Path(".db-restore"),
        validation_alias=AliasChoices("DB_RESTORE_STATE_DIR"),
    )
    batch_size: int = Field(
        default=100,
        validation_alias=AliasChoices("DB_RESTORE_BATCH_SIZE"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("DB_RESTORE_LOG_LEVEL", "LOG_LEVEL"),
    )

    @field_validator("batch_size")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("batch_size must be at least 1")
        return value

    @property
    def admin_emails(self) -> list[str]:
        """Allowlisted admin emails, lowercased and de-duplicated."""
        emails: list[str] = []
        for raw in self.super_admin_emails.split(","):
            email = raw.strip().lower()
            if email and email not in emails:
                emails.append(email)
        return emails
