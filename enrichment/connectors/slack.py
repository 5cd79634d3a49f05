"""Slack connector - exposes workspace users and channels as tabs."""

from __future__ import annotations

from typing import Any

from ..sync.cache import TTLCache
from ..sync.errors import ConfigurationError, ConnectorAuthError, ConnectorError, ConnectorRateLimited
from .base import ConnectorMetadata, HTTPConnector, TabData

_AUTH_ERRORS = {"invalid_auth", "not_authed", "account_inactive", "token_revoked", "missing_scope"}

USER_HEADERS = [
    "id", "name", "real_name", "display_name", "email", "title", "tz",
    "is_bot", "is_admin", "deleted",
]
CHANNEL_HEADERS = [
    "id", "name", "topic", "purpose", "num_members", "is_private", "is_archived", "created",
]


def _flag(value: Any) -> str:
    return "true" if value else "false"


def _user_row(member: dict) -> list[str]:
    profile = member.get("profile") or {}
    return [
        str(member.get("id", "")),
        str(member.get("name", "")),
        str(member.get("real_name") or profile.get("real_name") or ""),
        str(profile.get("display_name") or ""),
        str(profile.get("email") or ""),
        str(profile.get("title") or ""),
        str(member.get("tz") or ""),
        _flag(member.get("is_bot")),
        _flag(member.get("is_admin")),
        _flag(member.get("deleted")),
    ]


def _channel_row(channel: dict) -> list[str]:
    return [
        str(channel.get("id", "")),
        str(channel.get("name", "")),
        str((channel.get("topic") or {}).get("value") or ""),
        str((channel.get("purpose") or {}).get("value") or ""),
        str(channel.get("num_members", 0)),
        _flag(channel.get("is_private")),
        _flag(channel.get("is_archived")),
        str(channel.get("created", "")),
    ]


class SlackConnector(HTTPConnector):
    metadata = ConnectorMetadata(
        id="slack",
        name="Slack",
        capture_key="slack",
        has_tabs=False,
    )

    TABS = {
        "users": ("users.list", "members", USER_HEADERS, _user_row),
        "channels": ("conversations.list", "channels", CHANNEL_HEADERS, _channel_row),
    }

    def __init__(self, *, page_size: int = 200, directory_cache: TTLCache | None = None, **kwargs):
        super().__init__(**kwargs)
        self.page_size = page_size
        self.directory_cache = directory_cache

    def validate_config(self, config: dict[str, Any]) -> bool | str:
        if not self.token:
            return "Slack bot token is not configured"
        include_bots = config.get("include_bots")
        if include_bots is not None and not isinstance(include_bots, bool):
            return "include_bots must be true or false"
        return True

    async def _call(self, method: str, params: dict) -> dict[str, Any]:
        resp = await self._request("GET", f"/{method}", params=params)
        if resp.get("ok", False):
            return resp

        error = str(resp.get("error", "unknown_error"))
        if error in _AUTH_ERRORS:
            raise ConnectorAuthError(f"Slack auth failed: {error}")
        if error == "ratelimited":
            raise ConnectorRateLimited("Slack rate limit exceeded")
        raise ConnectorError(f"Slack API error: {error}")

    async def _list_all(self, method: str, key: str, extra: dict | None = None) -> list[dict]:
        items: list[dict] = []
        cursor: str | None = None
        while True:
            params = {"limit": self.page_size, **(extra or {})}
            if cursor:
                params["cursor"] = cursor
            resp = await self._call(method, params)
            items.extend(i for i in resp.get(key, []) if isinstance(i, dict))
            cursor = (resp.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                return items

    async def fetch(self, config: dict[str, Any], tab_name: str, header_row: int = 0) -> TabData:
        if tab_name not in self.TABS:
            raise ConfigurationError(f"Unknown Slack tab '{tab_name}' (expected users or channels)")
        method, key, headers, to_row = self.TABS[tab_name]

        extra = {"types": "public_channel,private_channel"} if tab_name == "channels" else None

        async def load() -> list[dict]:
            return await self._list_all(method, key, extra)

        if self.directory_cache is not None:
            items = await self.directory_cache.get_or_load((method, self.token), load)
        else:
            items = await load()

        if tab_name == "users" and not config.get("include_bots", False):
            items = [m for m in items if not m.get("is_bot") and m.get("id") != "USLACKBOT"]

        return TabData(headers=list(headers), rows=[to_row(item) for item in items])
