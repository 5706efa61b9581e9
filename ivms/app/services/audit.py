"""
Audit logging service for tracking security events, admin actions and
workflow transitions.

log_event() only adds and flushes; the caller commits, so an audit row
lands in the same transaction as the change it describes.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from ivms.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET = "PASSWORD_RESET"

    # User management
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_ACTIVATED = "USER_ACTIVATED"

    # Fleet
    CAR_CREATED = "CAR_CREATED"
    CAR_UPDATED = "CAR_UPDATED"
    CAR_DELETED = "CAR_DELETED"
    RENTAL_COMPANY_CREATED = "RENTAL_COMPANY_CREATED"
    RENTAL_COMPANY_UPDATED = "RENTAL_COMPANY_UPDATED"
    RENTAL_COMPANY_DEACTIVATED = "RENTAL_COMPANY_DEACTIVATED"

    # Car requests (transitions reuse CarRequestEvent names)
    CAR_REQUEST_UPDATED = "CAR_REQUEST_UPDATED"

    # Parts inventory
    PART_CREATED = "PART_CREATED"
    PART_UPDATED = "PART_UPDATED"
    PART_DELETED = "PART_DELETED"
    PART_ASSIGNED = "PART_ASSIGNED"
    PART_UNASSIGNED = "PART_UNASSIGNED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
    target_username: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Record an audit event in the current transaction.

    Args:
        db: Database session
        action: Action being performed (AuditAction or a workflow event name)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        entity_type: Kind of entity acted upon, e.g. "CarRequest"
        entity_id: ID of entity acted upon
        target_user_id: ID of user being acted upon (user management)
        target_username: Username of target
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance (flushed, not committed)
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        target_user_id=target_user_id,
        target_username=target_username,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def log_actor_event(
    db: AsyncSession,
    current_user: dict,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Shortcut for events performed by the authenticated user."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if action:
        query = query.where(AuditLog.action == action)

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if actor_id is not None:
        query = query.where(AuditLog.actor_id == actor_id)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
