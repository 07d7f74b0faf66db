"""Flask integration for sqla-rest."""

from __future__ import annotations

try:
    import flask as _flask_check  # noqa: F401  # pyright: ignore[reportUnusedImport]

    del _flask_check
except ImportError as exc:
    raise ImportError(
        "Flask integration requires flask. Install it with: pip install sqla-rest[flask]"
    ) from exc

from sqla_rest.integrations.flask._extension import RestExtension

__all__ = ["RestExtension"]
