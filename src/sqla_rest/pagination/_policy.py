"""Deterministic rewrite of a client's requested limit/offset."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["PaginationPolicy", "UNLIMITED", "normalize_pagination"]

UNLIMITED = -1


def _check_bound(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {value!r}")
    if value != UNLIMITED and value <= 0:
        raise ValueError(f"{name} must be a positive integer or -1 (disabled), got {value!r}")


@dataclass(frozen=True, slots=True)
class PaginationPolicy:
    """Configured ceilings and default for list queries.

    Each bound is a positive integer, or ``-1`` to disable it.

    Attributes:
        max_page_size: Largest page a client may request.
        max_total_results: Ceiling on ``offset + limit``; deeper pages
            are truncated and pages past it are empty.
        default_page_size: Limit applied when the client sends none.

    Example::

        policy = PaginationPolicy(max_page_size=100, max_total_results=-1)
        normalize_pagination(500, 0, policy)  # (100, 0)
    """

    max_page_size: int = 1000
    max_total_results: int = 10000
    default_page_size: int = 1000

    def __post_init__(self) -> None:
        _check_bound("max_page_size", self.max_page_size)
        _check_bound("max_total_results", self.max_total_results)
        _check_bound("default_page_size", self.default_page_size)

    @property
    def is_unbounded(self) -> bool:
        """True when no bound at all applies and queries may return the full table."""
        return (
            self.max_page_size == UNLIMITED
            and self.max_total_results == UNLIMITED
            and self.default_page_size == UNLIMITED
        )


def normalize_pagination(
    limit: int | None,
    offset: int | None,
    policy: PaginationPolicy,
    *,
    bypass_total_cap: bool = False,
) -> tuple[int | None, int]:
    """Apply *policy* to a requested ``(limit, offset)``.

    Steps, in order:

    1. ``offset`` is clamped to ``>= 0`` (``None`` means 0).
    2. A missing limit takes ``default_page_size`` unless it is disabled.
    3. A present limit is capped at ``max_page_size``.
    4. ``max_total_results`` caps ``offset + limit``; an offset at or
       beyond it yields ``limit == 0``. Skipped when *bypass_total_cap*.

    Returns:
        ``(limit, offset)`` where ``limit is None`` means unlimited.
        Neither value is ever negative.

    Example::

        policy = PaginationPolicy(max_page_size=1000, max_total_results=10000)
        normalize_pagination(1000, 9500, policy)  # (500, 9500)
    """
    effective_offset = max(0, offset or 0)
    effective_limit = None if limit is None else max(0, limit)

    if effective_limit is None and policy.default_page_size != UNLIMITED:
        effective_limit = policy.default_page_size

    if effective_limit is not None and policy.max_page_size != UNLIMITED:
        effective_limit = min(effective_limit, policy.max_page_size)

    if policy.max_total_results != UNLIMITED and not bypass_total_cap:
        remaining = max(0, policy.max_total_results - effective_offset)
        if effective_limit is None:
            effective_limit = remaining
        else:
            effective_limit = min(effective_limit, remaining)

    return effective_limit, effective_offset
