"""Session module for sqla-rest: RLS-scoped request transactions."""

from __future__ import annotations

from sqla_rest.session._async import (
    AsyncRLSTransaction,
    async_rls_transaction,
    async_run_in_rls_transaction,
)
from sqla_rest.session._context import SecurityContext, map_app_role_to_db_role
from sqla_rest.session._errors import classify_database_error, extract_sqlstate
from sqla_rest.session._transaction import (
    RLSTransaction,
    TransactionState,
    context_statements,
    rls_transaction,
    run_in_rls_transaction,
)

__all__ = [
    "AsyncRLSTransaction",
    "RLSTransaction",
    "SecurityContext",
    "TransactionState",
    "async_rls_transaction",
    "async_run_in_rls_transaction",
    "classify_database_error",
    "context_statements",
    "extract_sqlstate",
    "map_app_role_to_db_role",
    "rls_transaction",
    "run_in_rls_transaction",
]
