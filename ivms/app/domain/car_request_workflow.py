"""
Car request lifecycle.

    PENDING ──assign──> ASSIGNED ──approve──> APPROVED ──in-transit──> IN_TRANSIT ──return──> RETURNED
       │                  │  └──reject──> REJECTED
       └──cancel──> CANCELLED <──cancel──┘

REJECTED, RETURNED and CANCELLED are terminal.
"""

from ivms.app.domain.workflow import (
    Transition, TransitionTable, admin, all_of, any_of, in_department, owner, terminal_statuses
)
from ivms.app.models.enums import CarRequestStatus, Department, ReturnPolicy


class CarRequestEvent:
    """Event names for car request transitions (audit actions)."""
    CREATED = "CAR_REQUEST_CREATED"
    ASSIGNED = "CAR_REQUEST_ASSIGNED"
    APPROVED = "CAR_REQUEST_APPROVED"
    REJECTED = "CAR_REQUEST_REJECTED"
    CANCELLED = "CAR_REQUEST_CANCELLED"
    IN_TRANSIT = "CAR_IN_TRANSIT"
    RETURNED = "CAR_RETURNED"


_RETURN_ACTORS = {
    ReturnPolicy.REQUESTER: (owner, "the requester"),
    ReturnPolicy.GARAGE: (in_department(Department.GARAGE), "the GARAGE department"),
    ReturnPolicy.REQUESTER_OR_GARAGE: (
        any_of(owner, in_department(Department.GARAGE)),
        "the requester or the GARAGE department",
    ),
}


def build_car_request_transitions(return_policy: ReturnPolicy) -> TransitionTable:
    """
    Build the car request transition table.

    Args:
        return_policy: Who may confirm IN_TRANSIT -> RETURNED
    """
    return_check, return_label = _RETURN_ACTORS[ReturnPolicy(return_policy)]

    requester_cancel = Transition(
        allowed=owner,
        actor_label="the requester",
        event=CarRequestEvent.CANCELLED,
        notify_departments=(Department.GARAGE,),
    )

    return {
        CarRequestStatus.PENDING: {
            CarRequestStatus.ASSIGNED: Transition(
                allowed=in_department(Department.GARAGE),
                actor_label="the GARAGE department",
                event=CarRequestEvent.ASSIGNED,
                notify_owner=True,
            ),
            CarRequestStatus.CANCELLED: Transition(
                allowed=all_of(in_department(Department.OPERATION), owner),
                actor_label="the requester (OPERATION)",
                event=CarRequestEvent.CANCELLED,
                notify_departments=(Department.GARAGE,),
            ),
        },
        CarRequestStatus.ASSIGNED: {
            CarRequestStatus.APPROVED: Transition(
                allowed=admin,
                actor_label="an ADMIN/SUPER_ADMIN",
                event=CarRequestEvent.APPROVED,
                notify_owner=True,
                notify_departments=(Department.GARAGE,),
            ),
            CarRequestStatus.REJECTED: Transition(
                allowed=admin,
                actor_label="an ADMIN/SUPER_ADMIN",
                event=CarRequestEvent.REJECTED,
                notify_owner=True,
                requires_reason=True,
            ),
            CarRequestStatus.CANCELLED: requester_cancel,
        },
        CarRequestStatus.APPROVED: {
            CarRequestStatus.IN_TRANSIT: Transition(
                allowed=owner,
                actor_label="the requester",
                event=CarRequestEvent.IN_TRANSIT,
                notify_departments=(Department.GARAGE,),
            ),
        },
        CarRequestStatus.IN_TRANSIT: {
            CarRequestStatus.RETURNED: Transition(
                allowed=return_check,
                actor_label=return_label,
                event=CarRequestEvent.RETURNED,
                notify_departments=(Department.ADMIN,),
            ),
        },
        CarRequestStatus.REJECTED: {},
        CarRequestStatus.RETURNED: {},
        CarRequestStatus.CANCELLED: {},
    }


TERMINAL_STATUSES = terminal_statuses(build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE))

# Statuses in which a company car is held by the request
CAR_HOLDING_STATUSES = (
    CarRequestStatus.ASSIGNED,
    CarRequestStatus.APPROVED,
    CarRequestStatus.IN_TRANSIT,
)
