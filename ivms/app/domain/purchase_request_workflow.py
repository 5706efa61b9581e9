"""
Purchase request lifecycle.

    PENDING ──approve──> APPROVED
        └────reject───> REJECTED
"""

from ivms.app.domain.workflow import Transition, TransitionTable, admin
from ivms.app.models.enums import PurchaseRequestStatus


class PurchaseRequestEvent:
    CREATED = "PURCHASE_REQUEST_CREATED"
    APPROVED = "PURCHASE_REQUEST_APPROVED"
    REJECTED = "PURCHASE_REQUEST_REJECTED"


PURCHASE_REQUEST_TRANSITIONS: TransitionTable = {
    PurchaseRequestStatus.PENDING: {
        PurchaseRequestStatus.APPROVED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=PurchaseRequestEvent.APPROVED,
            notify_owner=True,
        ),
        PurchaseRequestStatus.REJECTED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=PurchaseRequestEvent.REJECTED,
            notify_owner=True,
            requires_reason=True,
        ),
    },
    PurchaseRequestStatus.APPROVED: {},
    PurchaseRequestStatus.REJECTED: {},
}
