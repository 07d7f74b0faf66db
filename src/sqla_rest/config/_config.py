"""Layered configuration for sqla-rest."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from sqlalchemy import URL, Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sqla_rest._sanitize import is_valid_identifier
from sqla_rest._types import PARAMSTYLES, ParamStyle
from sqla_rest.pagination._policy import PaginationPolicy

__all__ = [
    "RestConfig",
    "configure",
    "create_async_rest_engine",
    "create_rest_engine",
    "get_global_config",
    "_reset_global_config",
    "_set_global_config",
]


def _is_setting_name(name: str) -> bool:
    # PostgreSQL custom settings must look like "prefix.name".
    parts = name.split(".")
    return len(parts) >= 2 and all(is_valid_identifier(part) for part in parts)


@dataclass(frozen=True, slots=True)
class RestConfig:
    """Layered configuration with merge semantics (global -> per call).

    Attributes:
        max_page_size: Largest page a client may request (``-1`` disables).
        max_total_results: Ceiling on ``offset + limit`` (``-1`` disables).
        default_page_size: Limit applied when none is requested (``-1`` disables).
        paramstyle: Placeholder style of compiled SQL. Executing helpers
            always compile for the connection dialect's own style instead.
        anon_role: Database role for unauthenticated callers.
        claims_setting: Transaction-local setting that receives the JSON
            claims document.
        session_var_prefix: When non-empty, ``<prefix>.user_id`` and
            ``<prefix>.role`` are set transaction-locally as well.
        set_local_role: Issue ``SET LOCAL ROLE`` before setting claims.
        log_compiled_sql: Log compiled SQL text (argument values are never logged).

    Example::

        config = RestConfig(max_page_size=100)
        merged = config.merge(default_page_size=25)
    """

    max_page_size: int = 1000
    max_total_results: int = 10000
    default_page_size: int = 1000
    paramstyle: ParamStyle = "numeric_dollar"
    anon_role: str = "anon"
    claims_setting: str = "request.jwt.claims"
    session_var_prefix: str = "app"
    set_local_role: bool = True
    log_compiled_sql: bool = False

    def __post_init__(self) -> None:
        # Raises ValueError for bad bounds.
        self.pagination_policy  # noqa: B018
        if self.paramstyle not in PARAMSTYLES:
            raise ValueError(
                f"paramstyle must be one of {sorted(PARAMSTYLES)!r}, got {self.paramstyle!r}"
            )
        if not is_valid_identifier(self.anon_role):
            raise ValueError(f"anon_role must be a plain identifier, got {self.anon_role!r}")
        if not _is_setting_name(self.claims_setting):
            raise ValueError(
                f"claims_setting must look like 'prefix.name', got {self.claims_setting!r}"
            )
        if self.session_var_prefix and not is_valid_identifier(self.session_var_prefix):
            raise ValueError(
                "session_var_prefix must be empty or a plain identifier, "
                f"got {self.session_var_prefix!r}"
            )

    @property
    def pagination_policy(self) -> PaginationPolicy:
        """The pagination triple as a :class:`PaginationPolicy`."""
        return PaginationPolicy(
            max_page_size=self.max_page_size,
            max_total_results=self.max_total_results,
            default_page_size=self.default_page_size,
        )

    def merge(
        self,
        *,
        max_page_size: int | None = None,
        max_total_results: int | None = None,
        default_page_size: int | None = None,
        paramstyle: ParamStyle | None = None,
        anon_role: str | None = None,
        claims_setting: str | None = None,
        session_var_prefix: str | None = None,
        set_local_role: bool | None = None,
        log_compiled_sql: bool | None = None,
    ) -> RestConfig:
        """Return a new config with non-None overrides applied.

        Returns:
            A new ``RestConfig`` with overrides merged.

        Example::

            base = RestConfig()
            admin_cfg = base.merge(max_total_results=-1)
        """
        overrides = {
            "max_page_size": max_page_size,
            "max_total_results": max_total_results,
            "default_page_size": default_page_size,
            "paramstyle": paramstyle,
            "anon_role": anon_role,
            "claims_setting": claims_setting,
            "session_var_prefix": session_var_prefix,
            "set_local_role": set_local_role,
            "log_compiled_sql": log_compiled_sql,
        }
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# ---------------------------------------------------------------------------
# Global configuration singleton
# ---------------------------------------------------------------------------

_global_config = RestConfig()


def get_global_config() -> RestConfig:
    """Return the current global configuration.

    Example::

        config = get_global_config()
        print(config.max_page_size)  # 1000
    """
    return _global_config


def configure(
    *,
    max_page_size: int | None = None,
    max_total_results: int | None = None,
    default_page_size: int | None = None,
    paramstyle: ParamStyle | None = None,
    anon_role: str | None = None,
    claims_setting: str | None = None,
    session_var_prefix: str | None = None,
    set_local_role: bool | None = None,
    log_compiled_sql: bool | None = None,
) -> RestConfig:
    """Update the global configuration by merging overrides.

    Only non-None values are applied. Returns the new global config.

    Example::

        configure(max_page_size=100, max_total_results=-1)
    """
    global _global_config
    _global_config = _global_config.merge(
        max_page_size=max_page_size,
        max_total_results=max_total_results,
        default_page_size=default_page_size,
        paramstyle=paramstyle,
        anon_role=anon_role,
        claims_setting=claims_setting,
        session_var_prefix=session_var_prefix,
        set_local_role=set_local_role,
        log_compiled_sql=log_compiled_sql,
    )
    return _global_config


def _set_global_config(cfg: RestConfig) -> None:
    """Replace global config with an exact snapshot. For testing only."""
    global _global_config
    _global_config = cfg


def _reset_global_config() -> None:
    """Reset global config to defaults. For testing only."""
    global _global_config
    _global_config = RestConfig()


def create_rest_engine(url: str | URL, *, pool_timeout: float = 30.0, **kwargs: Any) -> Engine:
    """Create an engine whose connection checkout never blocks indefinitely.

    Checkout waits at most *pool_timeout* seconds; the RLS transaction
    helpers turn the resulting timeout into ``ConnectionUnavailable``.
    *pool_timeout* is ignored when a custom ``poolclass`` is supplied.
    """
    if "poolclass" not in kwargs:
        kwargs.setdefault("pool_timeout", pool_timeout)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def create_async_rest_engine(
    url: str | URL, *, pool_timeout: float = 30.0, **kwargs: Any
) -> AsyncEngine:
    """Async counterpart of :func:`create_rest_engine`."""
    if "poolclass" not in kwargs:
        kwargs.setdefault("pool_timeout", pool_timeout)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)
