"""Async counterparts of the RLS transaction helpers."""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import Table, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql import Executable

from sqla_rest._audit import (
    log_compensation_failure,
    log_rollback_failure,
    log_security_context,
    log_transaction_outcome,
)
from sqla_rest.compiler._binder import CompiledQuery
from sqla_rest.compiler._query import compile_query
from sqla_rest.config._config import RestConfig, get_global_config
from sqla_rest.exceptions import ConnectionUnavailable
from sqla_rest.query._models import QueryParams
from sqla_rest.session._context import SecurityContext
from sqla_rest.session._errors import classify_database_error
from sqla_rest.session._transaction import TransactionState, context_statements

__all__ = ["AsyncRLSTransaction", "async_rls_transaction", "async_run_in_rls_transaction"]

T = TypeVar("T")

_ACTIVE_STATES = frozenset({TransactionState.CONTEXT_SET, TransactionState.EXECUTING})


class AsyncRLSTransaction:
    """Async handle for the statements of one request.

    Compensating actions may be plain callables or coroutine functions.
    """

    def __init__(
        self, connection: AsyncConnection, context: SecurityContext, config: RestConfig
    ) -> None:
        self._connection = connection
        self._context = context
        self._config = config
        self._state = TransactionState.IDLE
        self._compensations: list[Callable[[], object]] = []

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def connection(self) -> AsyncConnection:
        return self._connection

    @property
    def context(self) -> SecurityContext:
        return self._context

    def on_rollback(self, action: Callable[[], object | Awaitable[object]]) -> None:
        """Register a compensating action; see :meth:`RLSTransaction.on_rollback`."""
        self._compensations.append(action)

    async def _apply_context(self) -> None:
        for statement, bind in context_statements(self._context, self._config):
            await self._connection.execute(statement, bind)
        self._state = TransactionState.CONTEXT_SET
        log_security_context(
            user_id=self._context.user_id,
            app_role=self._context.app_role,
            db_role=self._context.db_role,
        )

    async def execute(
        self,
        statement: Executable | CompiledQuery | str,
        parameters: dict[str, Any] | None = None,
    ) -> Any:
        if self._state not in _ACTIVE_STATES:
            raise RuntimeError(f"transaction is not active (state: {self._state.value})")
        self._state = TransactionState.EXECUTING
        if isinstance(statement, CompiledQuery):
            return await statement.execute(self._connection)
        if isinstance(statement, str):
            statement = text(statement)
        return await self._connection.execute(statement, parameters)

    async def fetch_all(
        self,
        params: QueryParams,
        table: str | Table,
        *,
        schema: str | None = None,
    ) -> list[dict[str, Any]]:
        compiled = compile_query(
            params,
            table,
            schema=schema,
            paramstyle=self._connection.dialect.paramstyle,  # type: ignore[arg-type]
            config=self._config,
        )
        result = await self.execute(compiled)
        return [dict(row) for row in result.mappings()]

    async def _run_compensations(self) -> None:
        while self._compensations:
            action = self._compensations.pop()
            try:
                outcome = action()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                log_compensation_failure(action=action, error=exc)


async def _finish_with_rollback(
    handle: AsyncRLSTransaction, transaction: Any, error: BaseException
) -> BaseException | None:
    try:
        if transaction.is_active:
            await transaction.rollback()
    except Exception as rollback_error:
        log_rollback_failure(db_role=handle.context.db_role, error=rollback_error)
    finally:
        handle._state = TransactionState.ROLLED_BACK
        log_transaction_outcome(
            outcome="rolled back", db_role=handle.context.db_role, error=error
        )
        await handle._run_compensations()
    if isinstance(error, DBAPIError):
        return classify_database_error(error)
    return None


@asynccontextmanager
async def async_rls_transaction(
    engine: AsyncEngine,
    identity: Any,
    *,
    config: RestConfig | None = None,
) -> AsyncIterator[AsyncRLSTransaction]:
    """Async version of :func:`rls_transaction`.

    Task cancellation (``asyncio.CancelledError``) rolls the transaction
    back before the cancellation propagates.

    Example::

        async with async_rls_transaction(engine, identity) as tx:
            rows = await tx.fetch_all(params, "posts")
    """
    cfg = config if config is not None else get_global_config()
    context = SecurityContext.from_identity(identity, cfg)

    try:
        connection = await engine.connect()
    except (DBAPIError, PoolTimeoutError) as exc:
        raise ConnectionUnavailable(
            "could not acquire a database connection", original=exc
        ) from exc

    # The connection is already started, so it is closed explicitly rather
    # than entered with "async with".
    try:
        try:
            transaction = await connection.begin()
        except DBAPIError as exc:
            raise ConnectionUnavailable("could not begin a transaction", original=exc) from exc

        handle = AsyncRLSTransaction(connection, context, cfg)
        handle._state = TransactionState.TRANSACTION_OPEN
        try:
            await handle._apply_context()
            yield handle
        except BaseException as exc:
            replacement = await _finish_with_rollback(handle, transaction, exc)
            if replacement is not None:
                raise replacement from exc
            raise

        try:
            await transaction.commit()
        except DBAPIError as exc:
            replacement = await _finish_with_rollback(handle, transaction, exc)
            raise replacement from exc  # type: ignore[misc]
        handle._state = TransactionState.COMMITTED
        log_transaction_outcome(outcome="committed", db_role=context.db_role)
    finally:
        await connection.close()


async def async_run_in_rls_transaction(
    engine: AsyncEngine,
    identity: Any,
    fn: Callable[[AsyncRLSTransaction], Awaitable[T]],
    *,
    config: RestConfig | None = None,
) -> T:
    """Await ``fn(tx)`` inside :func:`async_rls_transaction` and return its result.

    Example::

        async def list_posts(tx):
            return await tx.fetch_all(params, "posts")

        rows = await async_run_in_rls_transaction(engine, identity, list_posts)
    """
    async with async_rls_transaction(engine, identity, config=config) as tx:
        return await fn(tx)
