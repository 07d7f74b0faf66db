"""FastAPI dependencies for parsing queries and running RLS transactions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from sqla_rest._types import IdentityLike
from sqla_rest.config._config import RestConfig
from sqla_rest.query._models import QueryParams
from sqla_rest.query._parser import QueryParser
from sqla_rest.session._async import AsyncRLSTransaction, async_run_in_rls_transaction

__all__ = ["RLSRunner", "get_engine", "get_identity", "get_query_params", "get_rls_runner"]

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Sentinel dependency functions for DI-based configuration
# ---------------------------------------------------------------------------


def get_identity(request: Request) -> IdentityLike | None:
    """Sentinel dependency: override via ``app.dependency_overrides[get_identity]``.

    Raises ``NotImplementedError`` if not overridden, so an application
    cannot silently run every request as the anonymous role.

    Example::

        from sqla_rest.integrations.fastapi import get_identity

        app.dependency_overrides[get_identity] = my_current_user
    """
    raise NotImplementedError(
        "Override get_identity via app.dependency_overrides[get_identity]. "
        "See sqla-rest docs for configuration guide."
    )


def get_engine(request: Request) -> AsyncEngine:
    """Sentinel dependency: override via ``app.dependency_overrides[get_engine]``.

    Example::

        from sqla_rest.integrations.fastapi import get_engine

        app.dependency_overrides[get_engine] = lambda: engine
    """
    raise NotImplementedError(
        "Override get_engine via app.dependency_overrides[get_engine]. "
        "See sqla-rest docs for configuration guide."
    )


def _app_config(request: Request) -> RestConfig | None:
    return getattr(request.app.state, "sqla_rest_config", None)


# ---------------------------------------------------------------------------
# Request-scoped dependencies
# ---------------------------------------------------------------------------


def get_query_params(request: Request) -> QueryParams:
    """Parse the request's query string into :class:`QueryParams`.

    Repeated keys are preserved. Uses ``app.state.sqla_rest_config`` when
    set, otherwise the global config. Parse failures surface as
    ``ParseError``/``ValidationError``; install the handlers with
    :func:`install_error_handlers` to turn them into 400 responses.

    Example::

        @app.get("/posts")
        async def list_posts(params: QueryParams = Depends(get_query_params)):
            ...
    """
    return QueryParser(_app_config(request)).parse(request.query_params.multi_items())


class RLSRunner:
    """Runs callables inside an RLS transaction for the current request.

    Args:
        engine: Async engine to draw connections from.
        identity: The request's caller, or None for anonymous.
        config: Configuration; defaults to the global config.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        identity: IdentityLike | None,
        config: RestConfig | None = None,
    ) -> None:
        self.engine = engine
        self.identity = identity
        self.config = config

    async def run(self, fn: Callable[[AsyncRLSTransaction], Awaitable[T]]) -> T:
        """Await ``fn(tx)`` in a fresh transaction scoped to the caller."""
        return await async_run_in_rls_transaction(
            self.engine, self.identity, fn, config=self.config
        )


def get_rls_runner(
    request: Request,
    identity: Any = Depends(get_identity),
    engine: AsyncEngine = Depends(get_engine),
) -> RLSRunner:
    """Dependency returning an :class:`RLSRunner` for the current request.

    Example::

        @app.get("/posts")
        async def list_posts(
            params: QueryParams = Depends(get_query_params),
            rls: RLSRunner = Depends(get_rls_runner),
        ) -> list[dict]:
            return await rls.run(lambda tx: tx.fetch_all(params, "posts"))
    """
    return RLSRunner(engine, identity, _app_config(request))
