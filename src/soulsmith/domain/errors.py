"""Typed errors raised by domain services.

Input and lookup problems (``NotFoundError``, ``ValidationError``, ``ForbiddenError``)
propagate to the caller unchanged. ``InvariantViolation`` aborts the current
transaction and signals a concurrency defect rather than an expected condition.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors surfaced by the domain layer."""


class NotFoundError(DomainError):
    """A handle or id did not resolve."""


class ValidationError(DomainError):
    """Caller input was malformed (handle, category, content)."""


class ForbiddenError(DomainError):
    """The caller may not perform the operation in the current state."""


class InvariantViolation(DomainError):  # noqa: N818
    """A persisted-state invariant would be broken (double merge, version skew)."""
