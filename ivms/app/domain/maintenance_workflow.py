"""
Maintenance request lifecycle.

    PENDING ──triage──> PENDING_APPROVAL ──approve──> APPROVED ──start──> IN_PROGRESS ──complete──> COMPLETED
                               └──reject──> REJECTED
"""

from ivms.app.domain.workflow import Transition, TransitionTable, admin, in_department, terminal_statuses
from ivms.app.models.enums import Department, MaintenanceStatus


class MaintenanceEvent:
    CREATED = "MAINTENANCE_REQUEST_CREATED"
    TRIAGED = "MAINTENANCE_TRIAGED"
    APPROVED = "MAINTENANCE_APPROVED"
    REJECTED = "MAINTENANCE_REJECTED"
    STARTED = "MAINTENANCE_STARTED"
    COMPLETED = "MAINTENANCE_COMPLETED"


_maintenance_staff = in_department(Department.MAINTENANCE)

MAINTENANCE_TRANSITIONS: TransitionTable = {
    MaintenanceStatus.PENDING: {
        MaintenanceStatus.PENDING_APPROVAL: Transition(
            allowed=_maintenance_staff,
            actor_label="the MAINTENANCE department",
            event=MaintenanceEvent.TRIAGED,
            notify_owner=True,
            notify_departments=(Department.ADMIN,),
        ),
    },
    MaintenanceStatus.PENDING_APPROVAL: {
        MaintenanceStatus.APPROVED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=MaintenanceEvent.APPROVED,
            notify_owner=True,
            notify_departments=(Department.MAINTENANCE,),
        ),
        MaintenanceStatus.REJECTED: Transition(
            allowed=admin,
            actor_label="an ADMIN/SUPER_ADMIN",
            event=MaintenanceEvent.REJECTED,
            notify_owner=True,
            requires_reason=True,
        ),
    },
    MaintenanceStatus.APPROVED: {
        MaintenanceStatus.IN_PROGRESS: Transition(
            allowed=_maintenance_staff,
            actor_label="the MAINTENANCE department",
            event=MaintenanceEvent.STARTED,
        ),
    },
    MaintenanceStatus.IN_PROGRESS: {
        MaintenanceStatus.COMPLETED: Transition(
            allowed=_maintenance_staff,
            actor_label="the MAINTENANCE department",
            event=MaintenanceEvent.COMPLETED,
            notify_departments=(Department.GARAGE,),
        ),
    },
    MaintenanceStatus.REJECTED: {},
    MaintenanceStatus.COMPLETED: {},
}

OPEN_STATUSES = tuple(
    status for status in MaintenanceStatus
    if status not in terminal_statuses(MAINTENANCE_TRANSITIONS)
)
