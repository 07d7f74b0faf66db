"""SecurityContext: who a transaction runs as."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqla_rest.config._config import RestConfig

__all__ = ["SecurityContext", "map_app_role_to_db_role"]

_SERVICE_ROLES = frozenset({"service_role", "dashboard_admin"})


def map_app_role_to_db_role(app_role: str | None, *, anon_role: str = "anon") -> str:
    """Map an application role onto one of the three fixed database roles.

    ``service_role`` and ``dashboard_admin`` run as ``service_role``; no
    role or ``anon`` runs as *anon_role*; every other value, including
    arbitrary client-supplied text, runs as ``authenticated``. Application
    role strings therefore never reach SQL.

    Example::

        map_app_role_to_db_role("editor")            # "authenticated"
        map_app_role_to_db_role("anon")              # "anon"
        map_app_role_to_db_role("dashboard_admin")   # "service_role"
    """
    if app_role in _SERVICE_ROLES:
        return "service_role"
    if not app_role or app_role == "anon":
        return anon_role
    return "authenticated"


@dataclass(frozen=True, slots=True)
class SecurityContext:
    """Identity bound to exactly one transaction.

    Attributes:
        user_id: Authenticated user id, or None for anonymous callers.
        app_role: Application-level role as claimed by the caller.
        db_role: Database role the transaction runs as.
        claims: Additional claims exposed to RLS policies.
    """

    user_id: str | None
    app_role: str
    db_role: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_identity(cls, identity: Any, config: RestConfig) -> SecurityContext:
        """Build a context from an ``IdentityLike`` object (or None).

        Callers without a user id and without a role are anonymous; a
        user id without a role is ``authenticated``.
        """
        raw_user_id = getattr(identity, "user_id", None) if identity is not None else None
        user_id = None if raw_user_id in (None, "") else str(raw_user_id)
        role = getattr(identity, "role", None) if identity is not None else None
        if not role:
            role = "authenticated" if user_id is not None else "anon"
        claims = getattr(identity, "claims", None) if identity is not None else None
        return cls(
            user_id=user_id,
            app_role=str(role),
            db_role=map_app_role_to_db_role(str(role), anon_role=config.anon_role),
            claims=dict(claims or {}),
        )

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def claims_document(self) -> dict[str, Any]:
        """The claims as seen by RLS policies; ``sub`` and ``role`` always win."""
        return {**self.claims, "sub": self.user_id, "role": self.app_role}

    def claims_json(self) -> str:
        return json.dumps(self.claims_document(), separators=(",", ":"), default=str)
