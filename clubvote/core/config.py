"""Configuration management for the club elections service."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="Club Elections")
    version: str = Field(default="0.1.0")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")

    database_url: str = Field(default="sqlite+pysqlite:///./clubvote.db")

    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=True)
    otel_exporter_endpoint: str | None = Field(default=None)

    club_name: str = Field(default="SCCCC")
    mail_relay_url: str = Field(default="http://localhost:9020/mail/send")
    mail_relay_timeout_seconds: float = Field(default=5.0)
    mail_sender: str = Field(default="membership-automation@example.org")

    # Reserved ballot fields and result sheet names
    token_field_title: str = Field(default="VOTING TOKEN")
    voter_email_field: str = Field(default="Voter Email")
    valid_results_sheet_name: str = Field(default="Validated Results")
    invalid_results_sheet_name: str = Field(default="Invalid Results")
    results_suffix: str = Field(default=" - Results")
    submission_handler_name: str = Field(default="ballotSubmitHandler")
    ballot_base_url: str = Field(default="https://ballots.example.org/forms")

    voter_email_case_insensitive: bool = Field(default=True)
    quarantine_retains_token: bool = Field(default=True)

    lifecycle_interval_seconds: int = Field(default=300)

    webhook_secret: str = Field(default="")
    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    election_admin_role: str = Field(default="ELECTION_ADMIN")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
