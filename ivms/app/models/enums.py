"""
Shared enumerations.

Defines departments, roles and the status sets of the fleet entities.
"""

import enum


class Department(str, enum.Enum):
    """
    Organizational unit a user belongs to.

    Departments:
        ADMIN: Approves requests, manages users (SUPER_ADMIN only)
        OPERATION: Raises car requests
        GARAGE: Owns the fleet, assigns cars to requests
        MAINTENANCE: Triages and performs maintenance
    """
    ADMIN = "ADMIN"
    OPERATION = "OPERATION"
    GARAGE = "GARAGE"
    MAINTENANCE = "MAINTENANCE"


class Role(str, enum.Enum):
    """Authority level, paired with a department."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    TECHNICIAN = "TECHNICIAN"


class CarType(str, enum.Enum):
    SEDAN = "SEDAN"
    SUV = "SUV"
    VAN = "VAN"
    PICKUP = "PICKUP"
    BUS = "BUS"


class CarStatus(str, enum.Enum):
    """Car availability status. DELETED marks a soft-deleted car."""
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"
    DELETED = "DELETED"


class CarRequestStatus(str, enum.Enum):
    """Car request lifecycle status."""
    PENDING = "PENDING"  # Raised by OPERATION, awaiting a car
    ASSIGNED = "ASSIGNED"  # GARAGE picked a car or rental company
    APPROVED = "APPROVED"  # Admin signed off
    REJECTED = "REJECTED"  # Admin refused (terminal)
    IN_TRANSIT = "IN_TRANSIT"  # Requester picked up the car
    RETURNED = "RETURNED"  # Car is back (terminal)
    CANCELLED = "CANCELLED"  # Withdrawn by requester (terminal)


class MaintenanceStatus(str, enum.Enum):
    """Maintenance request lifecycle status."""
    PENDING = "PENDING"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class MaintenanceType(str, enum.Enum):
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class ReturnPolicy(str, enum.Enum):
    """Who may confirm that a car in transit has been returned."""
    REQUESTER = "REQUESTER"
    GARAGE = "GARAGE"
    REQUESTER_OR_GARAGE = "REQUESTER_OR_GARAGE"


class CarInventoryRequestType(str, enum.Enum):
    ADD = "ADD"  # Register a new car once approved
    DELETE = "DELETE"  # Retire an existing car once approved


class CarInventoryRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PurchaseRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TrackingMode(str, enum.Enum):
    """How a part is counted in stock."""
    QUANTITY = "QUANTITY"  # Interchangeable items with a stock count
    SERIAL_NUMBER = "SERIAL_NUMBER"  # One tracked item per row
