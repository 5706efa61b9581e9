"""
Department/role pairing rule.

SUPER_ADMIN role and ADMIN department imply each other:
    Rule 1: role == SUPER_ADMIN  =>  department == ADMIN
    Rule 2: department == ADMIN  =>  role == SUPER_ADMIN
"""

from ivms.app.core.exceptions import ValidationError
from ivms.app.models.enums import Department, Role

SUPER_ADMIN_REQUIRES_ADMIN_DEPARTMENT = "SUPER_ADMIN_REQUIRES_ADMIN_DEPARTMENT"
ADMIN_DEPARTMENT_REQUIRES_SUPER_ADMIN = "ADMIN_DEPARTMENT_REQUIRES_SUPER_ADMIN"


def validate_department_role(department: Department, role: Role) -> None:
    """
    Raise ValidationError if the pair breaks either direction of the rule.

    The error details name the violated rule.
    """
    if role == Role.SUPER_ADMIN and department != Department.ADMIN:
        raise ValidationError(
            "Super Admin must be assigned to ADMIN department",
            details={"rule": SUPER_ADMIN_REQUIRES_ADMIN_DEPARTMENT},
        )

    if department == Department.ADMIN and role != Role.SUPER_ADMIN:
        raise ValidationError(
            "ADMIN department can only have SUPER_ADMIN role",
            details={"rule": ADMIN_DEPARTMENT_REQUIRES_SUPER_ADMIN},
        )
