"""
Notification message templates.

Each NotificationType renders a (title, message) pair from a context dict.
Missing context keys fall back to generic wording.
"""

from typing import Any, Callable, Dict, Tuple

from ivms.app.models.notification import NotificationType

Template = Callable[[Dict[str, Any]], Tuple[str, str]]


def _by(ctx: Dict[str, Any], key: str) -> str:
    return f" by {ctx[key]}" if ctx.get(key) else ""


def _change(ctx: Dict[str, Any]) -> str:
    return "add" if ctx.get("type") == "ADD" else "retire"


TEMPLATES: Dict[NotificationType, Template] = {
    NotificationType.CAR_REQUEST_CREATED: lambda ctx: (
        "New Car Request",
        f"{ctx.get('requested_by') or 'A user'} has submitted a car request "
        f"for {ctx.get('destination') or 'a destination'}.",
    ),
    NotificationType.CAR_REQUEST_ASSIGNED: lambda ctx: (
        "Car Assigned to Request",
        f"A {ctx.get('vehicle') or 'car'} has been assigned to your request{_by(ctx, 'actor')}.",
    ),
    NotificationType.CAR_REQUEST_APPROVED: lambda ctx: (
        "Car Request Approved",
        f"Car request #{ctx.get('request_id')} to {ctx.get('destination') or 'its destination'} "
        f"has been approved{_by(ctx, 'actor')}.",
    ),
    NotificationType.CAR_REQUEST_REJECTED: lambda ctx: (
        "Car Request Rejected",
        f"Your car request has been rejected{_by(ctx, 'actor')}. "
        f"Reason: {ctx.get('reason') or 'not given'}.",
    ),
    NotificationType.CAR_REQUEST_CANCELLED: lambda ctx: (
        "Car Request Cancelled",
        f"Car request #{ctx.get('request_id')} has been cancelled{_by(ctx, 'actor')}.",
    ),
    NotificationType.CAR_IN_TRANSIT: lambda ctx: (
        "Car In Transit",
        f"The {ctx.get('vehicle') or 'car'} is now in transit to {ctx.get('destination') or 'the destination'}.",
    ),
    NotificationType.CAR_RETURNED: lambda ctx: (
        "Car Returned",
        f"The {ctx.get('vehicle') or 'car'} for request #{ctx.get('request_id')} has been returned.",
    ),
    NotificationType.MAINTENANCE_REQUEST_CREATED: lambda ctx: (
        "New Maintenance Request",
        f"A maintenance request has been created: {ctx.get('description') or 'No description'}.",
    ),
    NotificationType.MAINTENANCE_TRIAGED: lambda ctx: (
        "Maintenance Request Triaged",
        f"Maintenance request #{ctx.get('request_id')} has been triaged as "
        f"{(ctx.get('maintenance_type') or 'internal').lower()} maintenance and awaits approval.",
    ),
    NotificationType.MAINTENANCE_APPROVED: lambda ctx: (
        "Maintenance Request Approved",
        f"Maintenance request #{ctx.get('request_id')} has been approved{_by(ctx, 'actor')}.",
    ),
    NotificationType.MAINTENANCE_REJECTED: lambda ctx: (
        "Maintenance Request Rejected",
        f"Maintenance request #{ctx.get('request_id')} has been rejected{_by(ctx, 'actor')}. "
        f"Reason: {ctx.get('reason') or 'not given'}.",
    ),
    NotificationType.MAINTENANCE_STARTED: lambda ctx: (
        "Maintenance Started",
        f"Work on maintenance request #{ctx.get('request_id')} has started.",
    ),
    NotificationType.MAINTENANCE_COMPLETED: lambda ctx: (
        "Maintenance Completed",
        f"Maintenance for {ctx.get('vehicle') or 'the car'} has been completed; the car is available again.",
    ),
    NotificationType.CAR_INVENTORY_REQUEST_CREATED: lambda ctx: (
        "New Car Inventory Request",
        f"{ctx.get('requested_by') or 'The garage'} has asked to "
        f"{_change(ctx)} {ctx.get('vehicle') or 'a car'}.",
    ),
    NotificationType.CAR_INVENTORY_REQUEST_APPROVED: lambda ctx: (
        "Car Inventory Request Approved",
        f"Your request to {_change(ctx)} "
        f"{ctx.get('vehicle') or 'the car'} has been approved{_by(ctx, 'actor')}.",
    ),
    NotificationType.CAR_INVENTORY_REQUEST_REJECTED: lambda ctx: (
        "Car Inventory Request Rejected",
        f"Your request to {_change(ctx)} "
        f"{ctx.get('vehicle') or 'the car'} has been rejected{_by(ctx, 'actor')}. "
        f"Reason: {ctx.get('reason') or 'not given'}.",
    ),
    NotificationType.PURCHASE_REQUEST_CREATED: lambda ctx: (
        "New Purchase Request",
        f"{ctx.get('requested_by') or 'The garage'} wants to buy {ctx.get('quantity')} x "
        f"{ctx.get('part_name') or 'parts'} from {ctx.get('vendor') or 'a vendor'}.",
    ),
    NotificationType.PURCHASE_REQUEST_APPROVED: lambda ctx: (
        "Purchase Request Approved",
        f"Purchase request #{ctx.get('request_id')} for {ctx.get('part_name') or 'parts'} "
        f"has been approved{_by(ctx, 'actor')}.",
    ),
    NotificationType.PURCHASE_REQUEST_REJECTED: lambda ctx: (
        "Purchase Request Rejected",
        f"Purchase request #{ctx.get('request_id')} for {ctx.get('part_name') or 'parts'} "
        f"has been rejected{_by(ctx, 'actor')}. Reason: {ctx.get('reason') or 'not given'}.",
    ),
    NotificationType.PART_LOW_STOCK: lambda ctx: (
        "Part Running Low",
        f"Only {ctx.get('quantity')} x {ctx.get('part_name') or 'a part'} left in stock.",
    ),
}


def render(type: NotificationType, context: Dict[str, Any]) -> Tuple[str, str]:
    template = TEMPLATES.get(type)
    if template is None:
        return "Notification", context.get("message", "")
    return template(context)
