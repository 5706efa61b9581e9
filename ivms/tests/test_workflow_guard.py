"""
Transition guard tests.

Pure: no database, no app. The expected table below is written out
independently of ivms.app.domain so the two can be checked against
each other over every (from, to, actor) combination.
"""

import itertools
import pytest

from ivms.app.core.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from ivms.app.domain.car_request_workflow import TERMINAL_STATUSES, build_car_request_transitions
from ivms.app.domain.car_inventory_workflow import CAR_INVENTORY_TRANSITIONS
from ivms.app.domain.maintenance_workflow import MAINTENANCE_TRANSITIONS, OPEN_STATUSES
from ivms.app.domain.purchase_request_workflow import PURCHASE_REQUEST_TRANSITIONS
from ivms.app.domain.workflow import Actor, validate_transition
from ivms.app.models.enums import (
    CarInventoryRequestStatus, CarRequestStatus as S, Department, MaintenanceStatus as M,
    PurchaseRequestStatus, ReturnPolicy, Role
)

OWNER_ID = 2

ACTORS = {
    "super_admin": Actor(1, Department.ADMIN, Role.SUPER_ADMIN, "superadmin"),
    "owner": Actor(OWNER_ID, Department.OPERATION, Role.OPERATOR, "operator"),
    "other_operator": Actor(3, Department.OPERATION, Role.OPERATOR, "operator2"),
    "garage": Actor(4, Department.GARAGE, Role.ADMIN, "garage"),
    "technician": Actor(5, Department.MAINTENANCE, Role.TECHNICIAN, "technician"),
}

# (from, to) -> names of actors allowed, default return policy
EXPECTED = {
    (S.PENDING, S.ASSIGNED): {"garage"},
    (S.PENDING, S.CANCELLED): {"owner"},
    (S.ASSIGNED, S.APPROVED): {"super_admin"},
    (S.ASSIGNED, S.REJECTED): {"super_admin"},
    (S.ASSIGNED, S.CANCELLED): {"owner"},
    (S.APPROVED, S.IN_TRANSIT): {"owner"},
    (S.IN_TRANSIT, S.RETURNED): {"owner", "garage"},
}


def _attempt(table, from_status, to_status, actor, reason="Not needed"):
    return validate_transition(
        table=table,
        from_status=from_status,
        to_status=to_status,
        actor=actor,
        owner_id=OWNER_ID,
        reason=reason,
    )


@pytest.mark.parametrize(
    "from_status,to_status,actor_name",
    list(itertools.product(list(S), list(S), list(ACTORS))),
)
def test_every_triple_matches_expected_table(from_status, to_status, actor_name):
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    actor = ACTORS[actor_name]
    allowed = EXPECTED.get((from_status, to_status))

    if allowed is None:
        with pytest.raises(InvalidTransitionError):
            _attempt(table, from_status, to_status, actor)
    elif actor_name in allowed:
        transition = _attempt(table, from_status, to_status, actor)
        assert transition is table[from_status][to_status]
    else:
        with pytest.raises(ForbiddenError):
            _attempt(table, from_status, to_status, actor)


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {S.REJECTED, S.RETURNED, S.CANCELLED}


@pytest.mark.parametrize("terminal", [S.REJECTED, S.RETURNED, S.CANCELLED])
def test_terminal_status_rejects_every_target_even_for_super_admin(terminal):
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    for target in S:
        with pytest.raises(InvalidTransitionError) as exc:
            _attempt(table, terminal, target, ACTORS["super_admin"])
        assert exc.value.details == {"from_status": terminal.value, "to_status": target.value}
        assert "terminal" in exc.value.message


def test_structural_check_comes_before_actor_check():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    # Technician is never allowed anything, but a missing edge still reports as invalid
    with pytest.raises(InvalidTransitionError):
        _attempt(table, S.PENDING, S.RETURNED, ACTORS["technician"])


@pytest.mark.parametrize("reason", [None, "", "   ", "\n\t"])
def test_reject_requires_non_blank_reason(reason):
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    with pytest.raises(ValidationError) as exc:
        _attempt(table, S.ASSIGNED, S.REJECTED, ACTORS["super_admin"], reason=reason)
    assert exc.value.details["field"] == "rejection_reason"


def test_reject_with_reason_passes():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    transition = _attempt(table, S.ASSIGNED, S.REJECTED, ACTORS["super_admin"], reason="Budget freeze")
    assert transition.requires_reason
    assert transition.notify_owner


def test_forbidden_beats_missing_reason():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    with pytest.raises(ForbiddenError):
        _attempt(table, S.ASSIGNED, S.REJECTED, ACTORS["garage"], reason=None)


def test_non_owner_operation_cannot_cancel():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    with pytest.raises(ForbiddenError):
        _attempt(table, S.PENDING, S.CANCELLED, ACTORS["other_operator"])


def test_admin_department_without_super_admin_role_counts_as_admin():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    legacy_admin = Actor(9, Department.ADMIN, Role.ADMIN)
    assert _attempt(table, S.ASSIGNED, S.APPROVED, legacy_admin)


@pytest.mark.parametrize("policy,allowed", [
    (ReturnPolicy.REQUESTER, {"owner"}),
    (ReturnPolicy.GARAGE, {"garage"}),
    (ReturnPolicy.REQUESTER_OR_GARAGE, {"owner", "garage"}),
])
def test_return_policy_controls_who_confirms_return(policy, allowed):
    table = build_car_request_transitions(policy)
    for name, actor in ACTORS.items():
        if name in allowed:
            assert _attempt(table, S.IN_TRANSIT, S.RETURNED, actor)
        else:
            with pytest.raises(ForbiddenError):
                _attempt(table, S.IN_TRANSIT, S.RETURNED, actor)


def test_notification_side_effects_match_table():
    table = build_car_request_transitions(ReturnPolicy.REQUESTER_OR_GARAGE)
    assert table[S.PENDING][S.ASSIGNED].notify_owner
    assert table[S.PENDING][S.ASSIGNED].notify_departments == ()
    assert table[S.PENDING][S.CANCELLED].notify_departments == (Department.GARAGE,)
    assert table[S.ASSIGNED][S.APPROVED].notify_owner
    assert table[S.ASSIGNED][S.APPROVED].notify_departments == (Department.GARAGE,)
    assert not table[S.ASSIGNED][S.CANCELLED].notify_owner
    assert table[S.APPROVED][S.IN_TRANSIT].notify_departments == (Department.GARAGE,)
    assert table[S.IN_TRANSIT][S.RETURNED].notify_departments == (Department.ADMIN,)


# --- Maintenance table ---

MAINTENANCE_EXPECTED = {
    (M.PENDING, M.PENDING_APPROVAL): {"technician"},
    (M.PENDING_APPROVAL, M.APPROVED): {"super_admin"},
    (M.PENDING_APPROVAL, M.REJECTED): {"super_admin"},
    (M.APPROVED, M.IN_PROGRESS): {"technician"},
    (M.IN_PROGRESS, M.COMPLETED): {"technician"},
}


@pytest.mark.parametrize(
    "from_status,to_status,actor_name",
    list(itertools.product(list(M), list(M), list(ACTORS))),
)
def test_maintenance_triples_match_expected_table(from_status, to_status, actor_name):
    actor = ACTORS[actor_name]
    allowed = MAINTENANCE_EXPECTED.get((from_status, to_status))

    if allowed is None:
        with pytest.raises(InvalidTransitionError):
            _attempt(MAINTENANCE_TRANSITIONS, from_status, to_status, actor)
    elif actor_name in allowed:
        assert _attempt(MAINTENANCE_TRANSITIONS, from_status, to_status, actor)
    else:
        with pytest.raises(ForbiddenError):
            _attempt(MAINTENANCE_TRANSITIONS, from_status, to_status, actor)


def test_open_maintenance_statuses():
    assert set(OPEN_STATUSES) == {M.PENDING, M.PENDING_APPROVAL, M.APPROVED, M.IN_PROGRESS}


def test_actor_from_claims():
    actor = Actor.from_claims({"user_id": 7, "department": "GARAGE", "role": "ADMIN", "sub": "g"})
    assert actor == Actor(7, Department.GARAGE, Role.ADMIN, "g")
    assert not actor.is_admin


# --- Single-decision approval tables ---

APPROVAL_TABLES = [
    (CAR_INVENTORY_TRANSITIONS, CarInventoryRequestStatus),
    (PURCHASE_REQUEST_TRANSITIONS, PurchaseRequestStatus),
]


@pytest.mark.parametrize("table,statuses", APPROVAL_TABLES)
@pytest.mark.parametrize("actor_name", list(ACTORS))
def test_approval_tables_only_admin_decides_pending(table, statuses, actor_name):
    actor = ACTORS[actor_name]
    for from_status, to_status in itertools.product(list(statuses), list(statuses)):
        if from_status == statuses.PENDING and to_status in (statuses.APPROVED, statuses.REJECTED):
            if actor_name == "super_admin":
                assert _attempt(table, from_status, to_status, actor)
            else:
                with pytest.raises(ForbiddenError):
                    _attempt(table, from_status, to_status, actor)
        else:
            with pytest.raises(InvalidTransitionError):
                _attempt(table, from_status, to_status, actor)


@pytest.mark.parametrize("table,statuses", APPROVAL_TABLES)
def test_approval_tables_reject_needs_reason_and_tell_creator(table, statuses):
    with pytest.raises(ValidationError):
        _attempt(table, statuses.PENDING, statuses.REJECTED, ACTORS["super_admin"], reason=None)

    for to_status in (statuses.APPROVED, statuses.REJECTED):
        transition = table[statuses.PENDING][to_status]
        assert transition.notify_owner
        assert transition.notify_departments == ()

    assert not table[statuses.PENDING][statuses.APPROVED].requires_reason
