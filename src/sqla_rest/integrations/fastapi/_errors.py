"""Exception handlers for FastAPI integration."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from sqla_rest._responses import error_payload
from sqla_rest.exceptions import RestError

__all__ = ["install_error_handlers"]


def install_error_handlers(app: FastAPI) -> None:
    """Install exception handlers for sqla-rest errors on a FastAPI app.

    Converts every :class:`RestError` into a JSON response:

    - ``ParseError`` / ``ValidationError`` -> 400 Bad Request
    - ``PermissionDenied`` -> 403 Forbidden (fixed body)
    - ``ConnectionUnavailable`` -> 503 Service Unavailable
    - anything else -> 500 Internal Server Error (generic body)

    Args:
        app: The FastAPI application instance.

    Example::

        from fastapi import FastAPI
        from sqla_rest.integrations.fastapi import install_error_handlers

        app = FastAPI()
        install_error_handlers(app)
    """

    @app.exception_handler(RestError)
    async def rest_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: object, exc: RestError
    ) -> JSONResponse:
        status, body = error_payload(exc)
        return JSONResponse(status_code=status, content=body)
