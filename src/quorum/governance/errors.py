"""Exception hierarchy for governance sessions.

Validation errors leave the session untouched and are recoverable by
supplying corrected input. Collaborator errors are retryable: the caller
re-invokes the same transition. Finalize errors mean the unit of work was
rolled back and the session is still in its pre-finalize state.
"""

from __future__ import annotations

from typing import Any


class GovernanceError(Exception):
    """Base class for all governance session errors."""


class SessionNotFoundError(GovernanceError):
    """Raised when a session id does not resolve to a live session record."""

    def __init__(self, session_id: Any) -> None:
        self.session_id = session_id
        super().__init__(f"Governance session {session_id} not found")


class SessionInProgressError(GovernanceError):
    """Raised when starting a session while another one is still in progress.

    Attributes:
        existing_session_id: Id of the in-progress session to resume instead.
        session_type: Workflow type of the in-progress session.
    """

    def __init__(self, existing_session_id: Any, session_type: str) -> None:
        self.existing_session_id = existing_session_id
        self.session_type = session_type
        super().__init__(
            f"A {session_type} session ({existing_session_id}) is already in progress"
        )


class SessionValidationError(GovernanceError):
    """Raised when a transition's input fails a business rule."""


class InvalidTransitionError(SessionValidationError):
    """Raised when an event is not accepted in the session's current state.

    Attributes:
        current_state: State the session was in.
        event: The rejected event.
    """

    def __init__(self, current_state: Any, event: Any) -> None:
        self.current_state = current_state
        self.event = event
        current = getattr(current_state, "value", current_state)
        name = getattr(event, "value", event)
        super().__init__(f"Cannot apply '{name}' in state '{current}'")


class SkipQuotaExceededError(SessionValidationError):
    """Raised when a skip is attempted after the shared quota is used up."""

    def __init__(self, skip_count: int, max_skips: int) -> None:
        self.skip_count = skip_count
        self.max_skips = max_skips
        super().__init__(
            f"Maximum skips reached ({max_skips}). You must provide a concrete example."
        )


class PrerequisiteError(GovernanceError):
    """Raised when a Quarterly session is missing required portfolio state.

    Attributes:
        missing: Human-readable names of every missing prerequisite.
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__("Prerequisites not met: " + " ".join(self.missing))


class CollaboratorError(GovernanceError):
    """Raised when a classifier or generator fails.

    Attributes:
        collaborator: Name of the failing collaborator.
        retryable: Whether re-invoking the transition may succeed.
    """

    def __init__(self, collaborator: str, message: str, retryable: bool = True) -> None:
        self.collaborator = collaborator
        self.retryable = retryable
        super().__init__(f"{collaborator} failed: {message}")


class FinalizeError(GovernanceError):
    """Raised when a finalize unit of work fails and is rolled back."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed and was rolled back: {message}")
