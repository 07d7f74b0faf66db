"""FastAPI integration for sqla-rest."""

from __future__ import annotations

try:
    import fastapi as _fastapi_check  # noqa: F401  # pyright: ignore[reportUnusedImport]

    del _fastapi_check
except ImportError as exc:
    raise ImportError(
        "FastAPI integration requires fastapi. Install it with: pip install sqla-rest[fastapi]"
    ) from exc

from sqla_rest.integrations.fastapi._dependencies import (
    RLSRunner,
    get_engine,
    get_identity,
    get_query_params,
    get_rls_runner,
)
from sqla_rest.integrations.fastapi._errors import install_error_handlers

__all__ = [
    "RLSRunner",
    "get_engine",
    "get_identity",
    "get_query_params",
    "get_rls_runner",
    "install_error_handlers",
]
