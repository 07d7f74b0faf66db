"""rls_transaction(): one pooled connection, one transaction, one identity.

Every request runs strictly as::

    begin -> set transaction-local context -> run statements -> commit | rollback

The identity is applied with ``SET LOCAL ROLE`` and
``set_config(..., true)``, both of which end with the transaction, so a
connection handed back to the pool carries nothing into the next request.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import Connection, Engine, Table, TextClause, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.sql import Executable

from sqla_rest._audit import (
    log_compensation_failure,
    log_rollback_failure,
    log_security_context,
    log_transaction_outcome,
)
from sqla_rest._sanitize import quote_identifier
from sqla_rest.compiler._binder import CompiledQuery
from sqla_rest.compiler._query import compile_query
from sqla_rest.config._config import RestConfig, get_global_config
from sqla_rest.exceptions import ConnectionUnavailable
from sqla_rest.query._models import QueryParams
from sqla_rest.session._context import SecurityContext
from sqla_rest.session._errors import classify_database_error

__all__ = [
    "RLSTransaction",
    "TransactionState",
    "context_statements",
    "rls_transaction",
    "run_in_rls_transaction",
]

T = TypeVar("T")


class TransactionState(enum.Enum):
    """Lifecycle of one request transaction."""

    IDLE = "idle"
    TRANSACTION_OPEN = "transaction_open"
    CONTEXT_SET = "context_set"
    EXECUTING = "executing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


_ACTIVE_STATES = frozenset({TransactionState.CONTEXT_SET, TransactionState.EXECUTING})


def context_statements(
    context: SecurityContext, config: RestConfig
) -> list[tuple[TextClause, dict[str, Any]]]:
    """Statements that bind *context* to the current transaction.

    The role name comes from a fixed set and is validated before being
    quoted into ``SET LOCAL ROLE``; everything else is a bound parameter.
    """
    statements: list[tuple[TextClause, dict[str, Any]]] = []
    if config.set_local_role:
        statements.append((text(f"SET LOCAL ROLE {quote_identifier(context.db_role)}"), {}))

    calls = ["set_config(:claims_key, :claims, true)"]
    bind: dict[str, Any] = {"claims_key": config.claims_setting, "claims": context.claims_json()}
    if config.session_var_prefix:
        calls.append("set_config(:user_id_key, :user_id, true)")
        calls.append("set_config(:role_key, :role, true)")
        bind["user_id_key"] = f"{config.session_var_prefix}.user_id"
        bind["user_id"] = context.user_id or ""
        bind["role_key"] = f"{config.session_var_prefix}.role"
        bind["role"] = context.app_role
    statements.append((text("SELECT " + ", ".join(calls)), bind))
    return statements


class RLSTransaction:
    """Handle for the statements of one request.

    Obtained from :func:`rls_transaction`; never constructed directly and
    never reused after the block exits.

    Example::

        with rls_transaction(engine, identity) as tx:
            rows = tx.fetch_all(params, "posts")
            tx.on_rollback(lambda: storage.delete(key))
    """

    def __init__(
        self, connection: Connection, context: SecurityContext, config: RestConfig
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
    def connection(self) -> Connection:
        return self._connection

    @property
    def context(self) -> SecurityContext:
        return self._context

    def on_rollback(self, action: Callable[[], object]) -> None:
        """Register a compensating action to run if the transaction rolls back.

        Actions run in reverse registration order. Their failures are
        logged and never replace the error that caused the rollback.
        """
        self._compensations.append(action)

    def _require_active(self) -> None:
        if self._state not in _ACTIVE_STATES:
            raise RuntimeError(f"transaction is not active (state: {self._state.value})")

    def _apply_context(self) -> None:
        for statement, bind in context_statements(self._context, self._config):
            self._connection.execute(statement, bind)
        self._state = TransactionState.CONTEXT_SET
        log_security_context(
            user_id=self._context.user_id,
            app_role=self._context.app_role,
            db_role=self._context.db_role,
        )

    def execute(
        self,
        statement: Executable | CompiledQuery | str,
        parameters: dict[str, Any] | None = None,
    ) -> Any:
        """Run one statement inside the transaction.

        Accepts a SQLAlchemy executable, a :class:`CompiledQuery` (compiled
        for this connection's paramstyle) or a textual SQL string with
        ``:name`` parameters.
        """
        self._require_active()
        self._state = TransactionState.EXECUTING
        if isinstance(statement, CompiledQuery):
            return statement.execute(self._connection)
        if isinstance(statement, str):
            statement = text(statement)
        return self._connection.execute(statement, parameters)

    def fetch_all(
        self,
        params: QueryParams,
        table: str | Table,
        *,
        schema: str | None = None,
    ) -> list[dict[str, Any]]:
        """Compile *params* for this connection, run it, and return rows as dicts."""
        compiled = compile_query(
            params,
            table,
            schema=schema,
            paramstyle=self._connection.dialect.paramstyle,  # type: ignore[arg-type]
            config=self._config,
        )
        result = self.execute(compiled)
        return [dict(row) for row in result.mappings()]

    def _run_compensations(self) -> None:
        while self._compensations:
            action = self._compensations.pop()
            try:
                action()
            except Exception as exc:
                log_compensation_failure(action=action, error=exc)


def _finish_with_rollback(
    handle: RLSTransaction, transaction: Any, error: BaseException
) -> BaseException | None:
    """Roll back, run compensations, and return the exception to raise instead.

    A rollback that itself fails is logged; compensations still run and
    *error* stays the primary failure.
    """
    try:
        if transaction.is_active:
            transaction.rollback()
    except Exception as rollback_error:
        log_rollback_failure(db_role=handle.context.db_role, error=rollback_error)
    finally:
        handle._state = TransactionState.ROLLED_BACK
        log_transaction_outcome(
            outcome="rolled back", db_role=handle.context.db_role, error=error
        )
        handle._run_compensations()
    if isinstance(error, DBAPIError):
        return classify_database_error(error)
    return None


@contextmanager
def rls_transaction(
    engine: Engine,
    identity: Any,
    *,
    config: RestConfig | None = None,
) -> Iterator[RLSTransaction]:
    """Open a transaction scoped to *identity* and yield its handle.

    Commits when the block exits normally. Any exception, including
    ``KeyboardInterrupt`` and ``GeneratorExit``, rolls back; database
    errors are re-raised as :class:`PermissionDenied` or
    :class:`ExecutionFailed`. The connection is always returned to the
    pool.

    Args:
        engine: SQLAlchemy engine (use :func:`create_rest_engine` for a
            bounded pool wait).
        identity: ``IdentityLike`` caller, or None for anonymous.
        config: Configuration; defaults to the global config.

    Raises:
        ConnectionUnavailable: If no connection or transaction could be
            obtained.
    """
    cfg = config if config is not None else get_global_config()
    context = SecurityContext.from_identity(identity, cfg)

    try:
        connection = engine.connect()
    except (DBAPIError, PoolTimeoutError) as exc:
        raise ConnectionUnavailable(
            "could not acquire a database connection", original=exc
        ) from exc

    with connection:
        try:
            transaction = connection.begin()
        except DBAPIError as exc:
            raise ConnectionUnavailable("could not begin a transaction", original=exc) from exc

        handle = RLSTransaction(connection, context, cfg)
        handle._state = TransactionState.TRANSACTION_OPEN
        try:
            handle._apply_context()
            yield handle
        except BaseException as exc:
            replacement = _finish_with_rollback(handle, transaction, exc)
            if replacement is not None:
                raise replacement from exc
            raise

        try:
            transaction.commit()
        except DBAPIError as exc:
            replacement = _finish_with_rollback(handle, transaction, exc)
            raise replacement from exc  # type: ignore[misc]
        handle._state = TransactionState.COMMITTED
        log_transaction_outcome(outcome="committed", db_role=context.db_role)


def run_in_rls_transaction(
    engine: Engine,
    identity: Any,
    fn: Callable[[RLSTransaction], T],
    *,
    config: RestConfig | None = None,
) -> T:
    """Run ``fn(tx)`` inside :func:`rls_transaction` and return its result.

    Example::

        rows = run_in_rls_transaction(
            engine, identity, lambda tx: tx.fetch_all(params, "posts")
        )
    """
    with rls_transaction(engine, identity, config=config) as tx:
        return fn(tx)
