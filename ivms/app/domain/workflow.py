"""
Workflow transition guard.

Pure, database-unaware. A workflow is a table of edges
{from_status: {to_status: Transition}}; each edge carries who may take it
and what it triggers. validate_transition() checks an attempted move
against such a table and returns the matching edge.

Check order:
1. The edge must exist (terminal statuses have none) -> InvalidTransitionError
2. The actor must be allowed on that edge -> ForbiddenError
3. A reason must be present if the edge demands one -> ValidationError
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from ivms.app.core.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from ivms.app.models.enums import Department, Role


@dataclass(frozen=True)
class Actor:
    """The authenticated user attempting a transition."""
    user_id: int
    department: Department
    role: Role
    username: str = ""

    @classmethod
    def from_claims(cls, claims: dict) -> "Actor":
        """Build an actor from the dict returned by get_current_user."""
        return cls(
            user_id=claims["user_id"],
            department=Department(claims["department"]),
            role=Role(claims["role"]),
            username=claims.get("sub", ""),
        )

    @property
    def is_admin(self) -> bool:
        # ADMIN department and SUPER_ADMIN role always go together
        return self.department == Department.ADMIN or self.role == Role.SUPER_ADMIN


# (actor, owner_id of the request) -> allowed?
ActorCheck = Callable[[Actor, Optional[int]], bool]


def in_department(*departments: Department) -> ActorCheck:
    def check(actor: Actor, owner_id: Optional[int]) -> bool:
        return actor.department in departments
    return check


def admin(actor: Actor, owner_id: Optional[int]) -> bool:
    return actor.is_admin


def owner(actor: Actor, owner_id: Optional[int]) -> bool:
    return owner_id is not None and actor.user_id == owner_id


def all_of(*checks: ActorCheck) -> ActorCheck:
    def check(actor: Actor, owner_id: Optional[int]) -> bool:
        return all(c(actor, owner_id) for c in checks)
    return check


def any_of(*checks: ActorCheck) -> ActorCheck:
    def check(actor: Actor, owner_id: Optional[int]) -> bool:
        return any(c(actor, owner_id) for c in checks)
    return check


@dataclass(frozen=True)
class Transition:
    """
    One edge of a workflow graph.

    Attributes:
        allowed: Predicate deciding whether an actor may take the edge
        actor_label: Human-readable actor set, used in error messages
        event: Event name, used as audit action and notification key
        notify_owner: Notify the user who raised the request
        notify_departments: Departments whose active users are notified
        requires_reason: A non-blank reason must accompany the move
    """
    allowed: ActorCheck
    actor_label: str
    event: str
    notify_owner: bool = False
    notify_departments: Tuple[Department, ...] = field(default_factory=tuple)
    requires_reason: bool = False


TransitionTable = Dict[Enum, Dict[Enum, Transition]]


def terminal_statuses(table: TransitionTable) -> set:
    """Statuses with no outgoing edge."""
    return {status for status, edges in table.items() if not edges}


def validate_transition(
    *,
    table: TransitionTable,
    from_status: Enum,
    to_status: Enum,
    actor: Actor,
    owner_id: Optional[int],
    reason: Optional[str] = None,
) -> Transition:
    """
    Validate a status change against a workflow table.

    Returns:
        The Transition edge taken, so the caller can apply its side effects

    Raises:
        InvalidTransitionError: from_status has no edge to to_status
        ForbiddenError: the actor is not allowed to take the edge
        ValidationError: the edge requires a reason and none was given
    """
    edges = table.get(from_status, {})

    if not edges:
        raise InvalidTransitionError(
            from_status.value,
            to_status.value,
            message=f"Status {from_status.value} is terminal; no further transitions are allowed",
        )

    transition = edges.get(to_status)
    if transition is None:
        raise InvalidTransitionError(from_status.value, to_status.value)

    if not transition.allowed(actor, owner_id):
        raise ForbiddenError(
            message=(
                f"Only {transition.actor_label} may move a request "
                f"from {from_status.value} to {to_status.value}"
            ),
            details={"from_status": from_status.value, "to_status": to_status.value},
        )

    if transition.requires_reason and not (reason and reason.strip()):
        raise ValidationError(
            message=f"A reason is required to move a request to {to_status.value}",
            details={"field": "rejection_reason"},
        )

    return transition
