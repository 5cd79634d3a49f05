"""Shared FastAPI dependencies backed by ``app.state``."""

from __future__ import annotations

from fastapi import Request

from .connectors.registry import ConnectorRegistry
from .sync.locks import EntityLockRegistry


def get_registry(request: Request) -> ConnectorRegistry:
    return request.app.state.registry


def get_locks(request: Request) -> EntityLockRegistry:
    return request.app.state.locks
