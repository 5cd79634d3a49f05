"""Source connectors."""

from __future__ import annotations

from .base import Connector, ConnectorMetadata, HTTPConnector, TabData
from .registry import ConnectorRegistry


def build_default_registry(settings_obj=None) -> ConnectorRegistry:
    """Registry with every built-in connector configured from settings."""
    from ..config import settings as default_settings
    from ..sync.cache import TTLCache
    from .bigquery import BigQueryConnector
    from .google_sheets import GoogleSheetsConnector
    from .slack import SlackConnector

    cfg = settings_obj or default_settings
    timeout = cfg.http_timeout_seconds
    return ConnectorRegistry([
        GoogleSheetsConnector(
            base_url=cfg.google_sheets_base_url,
            token=cfg.google_access_token,
            timeout=timeout,
        ),
        BigQueryConnector(
            base_url=cfg.bigquery_base_url,
            token=cfg.bigquery_access_token,
            timeout=timeout,
            row_limit=cfg.bigquery_row_limit,
        ),
        SlackConnector(
            base_url=cfg.slack_base_url,
            token=cfg.slack_bot_token,
            timeout=timeout,
            page_size=cfg.slack_page_size,
            directory_cache=TTLCache(cfg.slack_directory_ttl_seconds),
        ),
    ])


__all__ = [
    "Connector",
    "ConnectorMetadata",
    "ConnectorRegistry",
    "HTTPConnector",
    "TabData",
    "build_default_registry",
]
