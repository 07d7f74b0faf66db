"""Configuration module for sqla-rest."""

from __future__ import annotations

from sqla_rest.config._config import (
    RestConfig,
    configure,
    create_async_rest_engine,
    create_rest_engine,
    get_global_config,
)

__all__ = [
    "RestConfig",
    "configure",
    "create_async_rest_engine",
    "create_rest_engine",
    "get_global_config",
]
