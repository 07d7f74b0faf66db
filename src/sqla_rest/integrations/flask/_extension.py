"""Flask extension for sqla-rest query parsing and RLS transactions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from flask import Flask, current_app, jsonify, request
from sqlalchemy import Engine

from sqla_rest._responses import error_payload
from sqla_rest._types import IdentityLike
from sqla_rest.config._config import RestConfig
from sqla_rest.exceptions import RestError
from sqla_rest.query._models import ParseOptions, QueryParams
from sqla_rest.query._parser import QueryParser
from sqla_rest.session._transaction import RLSTransaction
from sqla_rest.session._transaction import run_in_rls_transaction as _run_in_rls_transaction

__all__ = ["RestExtension"]

T = TypeVar("T")


class RestExtension:
    """Flask extension that parses REST queries and runs them under RLS.

    Registers error handlers that turn sqla-rest exceptions into JSON
    responses, and provides ``parse_request()`` and
    ``run_in_rls_transaction()`` for use inside request context.

    Supports the Flask app-factory pattern via ``init_app()``.

    Args:
        app: Optional Flask application. If provided, calls ``init_app()``
            immediately.
        identity_provider: A callable ``() -> IdentityLike | None`` that
            returns the current caller. Called within request context.
        engine: SQLAlchemy engine the transactions run on.
        config: Optional config. Defaults to the global config.

    Example::

        from flask import Flask
        from sqla_rest.integrations.flask import RestExtension

        app = Flask(__name__)
        rest = RestExtension(
            app,
            identity_provider=lambda: g.user,
            engine=engine,
        )

        @app.get("/posts")
        def list_posts():
            params = rest.parse_request()
            return rest.run_in_rls_transaction(lambda tx: tx.fetch_all(params, "posts"))
    """

    def __init__(
        self,
        app: Flask | None = None,
        *,
        identity_provider: Callable[[], IdentityLike | None],
        engine: Engine,
        config: RestConfig | None = None,
    ) -> None:
        self._identity_provider = identity_provider
        self._engine = engine
        self._config = config

        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize the extension with a Flask application.

        Stores configuration on ``app.extensions["sqla_rest"]`` and
        registers an error handler for :class:`RestError`.

        Args:
            app: The Flask application instance.
        """
        app.extensions["sqla_rest"] = {
            "identity_provider": self._identity_provider,
            "engine": self._engine,
            "config": self._config,
        }

        @app.errorhandler(RestError)
        def handle_rest_error(exc: RestError):  # pyright: ignore[reportUnusedFunction]
            status, body = error_payload(exc)
            return jsonify(body), status

    def _state(self) -> dict[str, Any]:
        return current_app.extensions["sqla_rest"]

    def parse_request(self, options: ParseOptions | None = None) -> QueryParams:
        """Parse the current request's query string.

        Must be called within a Flask request context. Repeated keys are
        preserved.
        """
        parser = QueryParser(self._state()["config"])
        return parser.parse(list(request.args.items(multi=True)), options)

    def run_in_rls_transaction(self, fn: Callable[[RLSTransaction], T]) -> T:
        """Run ``fn(tx)`` in a transaction scoped to the current caller.

        Must be called within a Flask request context.

        Example::

            @app.get("/posts/<int:post_id>")
            def get_post(post_id):
                return rest.run_in_rls_transaction(
                    lambda tx: tx.execute(
                        "SELECT * FROM posts WHERE id = :id", {"id": post_id}
                    ).mappings().all()
                )
        """
        state = self._state()
        identity = state["identity_provider"]()
        return _run_in_rls_transaction(state["engine"], identity, fn, config=state["config"])
