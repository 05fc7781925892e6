"""
Error and result types for the containment coordinator.

Structural violations of the containment relation are *results*, not
exceptions: the caller (usually the interaction state machine) turns them into
a user-facing rejection and carries on. Only collaborator failures
(host list missing, persistence backend broken) are modelled as exceptions,
and those are caught at the seam that talks to the collaborator.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PromptNestError(Exception):
    """Base class for collaborator failures raised inside promptnest."""


class HostUnavailableError(PromptNestError):
    """The host list container is not rendered (yet).

    Expected during host startup; retried on the next passive pass and never
    surfaced to the user.
    """


class PersistenceError(PromptNestError):
    """The settings backend failed to read or write."""


class AssignError(Enum):
    """Why an assign(child, container) request was rejected."""
    SELF_ASSIGNMENT = "self_assignment"
    DEPTH_VIOLATION = "depth_violation"
    CYCLE_DETECTED = "cycle_detected"

    @property
    def message(self) -> str:
        return _ASSIGN_ERROR_MESSAGES[self]


_ASSIGN_ERROR_MESSAGES = {
    AssignError.SELF_ASSIGNMENT: "An item cannot be placed inside itself",
    AssignError.DEPTH_VIOLATION: "Only one level of nesting is allowed: containers cannot be nested",
    AssignError.CYCLE_DETECTED: "This assignment would create a containment cycle",
}


@dataclass(frozen=True)
class AssignResult:
    """Outcome of RelationStore.assign().

    changed is False for a successful no-op (child already in that container).
    """
    error: Optional[AssignError] = None
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, changed: bool = True) -> 'AssignResult':
        return cls(error=None, changed=changed)

    @classmethod
    def failure(cls, error: AssignError) -> 'AssignResult':
        return cls(error=error, changed=False)
