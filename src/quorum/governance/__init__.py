"""Governance session engine for Quorum.

Setup builds a portfolio of problems, a board of role-based personas and
re-setup triggers. Quarterly Review interrogates the user against that
portfolio and ends with a falsifiable bet. Quick Version is a short audit of
the problems the user is paid to solve that also ends with a bet. All three
run as explicit state machines over immutable session data, gated by a
shared vagueness check.

Engines (``setup_engine``, ``quarterly_engine``, ``quick_engine``) are pure;
services (``setup_service``, ``quarterly_service``, ``quick_service``) bind
them to the database. This package root imports none of them, since the ORM
models import ``quorum.governance.enums``.
"""

from quorum.governance.errors import (
    CollaboratorError,
    FinalizeError,
    GovernanceError,
    InvalidTransitionError,
    PrerequisiteError,
    SessionInProgressError,
    SessionNotFoundError,
    SessionValidationError,
    SkipQuotaExceededError,
)

__all__ = [
    "CollaboratorError",
    "FinalizeError",
    "GovernanceError",
    "InvalidTransitionError",
    "PrerequisiteError",
    "SessionInProgressError",
    "SessionNotFoundError",
    "SessionValidationError",
    "SkipQuotaExceededError",
]
