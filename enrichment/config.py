"""Enrichment configuration via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class EnrichmentSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///enrichment.db"
    echo_sql: bool = False
    app_title: str = "Data Enrichment"
    log_level: str = "INFO"

    # Google Sheets (OAuth access token minted elsewhere)
    google_access_token: str | None = None
    google_sheets_base_url: str = "https://sheets.googleapis.com/v4"

    # BigQuery (REST jobs.query)
    bigquery_access_token: str | None = None
    bigquery_base_url: str = "https://bigquery.googleapis.com/bigquery/v2"
    bigquery_row_limit: int = 1000

    # Slack Web API
    slack_bot_token: str | None = None
    slack_base_url: str = "https://slack.com/api"
    slack_page_size: int = 200
    slack_directory_ttl_seconds: int = 300

    http_timeout_seconds: float = 30.0

    # Preview batches reuse tab fetches for this long.
    preview_cache_ttl_seconds: int = 60
    preview_row_limit: int = 0  # 0 = unlimited

    model_config = {"env_prefix": "ENRICH_", "env_file": ".env", "extra": "ignore"}

    @property
    def google_configured(self) -> bool:
        return bool(self.google_access_token)

    @property
    def bigquery_configured(self) -> bool:
        return bool(self.bigquery_access_token)

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = EnrichmentSettings()
