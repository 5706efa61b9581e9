"""
Car inventory request lifecycle.

    PENDING ──approve──> APPROVED   (ADD: car created, DELETE: car retired)
        └────reject───> REJECTED
"""

from ivms.app.domain.workflow import Transition, TransitionTable, admin
from ivms.app.models.enums import CarInventoryRequestStatus


class CarInventoryEvent:
    CREATED = "CAR_INVENTORY_REQUEST_CREATED"
    APPROVED = "CAR_INVENTORY_REQUEST_APPROVED"
    REJECTED = "CAR_INVENTORY_REQUEST_REJECTED"


CAR_INVENTORY_TRANSITIONS: TransitionTable = {
    CarInventoryRequestStatus.PENDING: {
        CarInventoryRequestStatus.APPROVED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=CarInventoryEvent.APPROVED,
            notify_owner=True,
        ),
        CarInventoryRequestStatus.REJECTED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=CarInventoryEvent.REJECTED,
            notify_owner=True,
            requires_reason=True,
        ),
    },
    CarInventoryRequestStatus.APPROVED: {},
    CarInventoryRequestStatus.REJECTED: {},
}
