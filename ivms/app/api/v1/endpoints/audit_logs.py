"""
Audit Log API Endpoints.

Read-only audit trail for SUPER_ADMIN.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.schemas.audit import AuditTrailResponse, AuditLogResponse
from ivms.app.core.guards import require_super_admin
from ivms.app.services.audit import get_audit_trail

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])


@router.get("", response_model=AuditTrailResponse)
async def get_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action type"),
    entity_type: Optional[str] = Query(None, description="e.g. CarRequest, MaintenanceRequest, User"),
    entity_id: Optional[int] = Query(None),
    actor_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering.

    Returns recent audit logs for security monitoring and compliance.
    """
    logs = await get_audit_trail(
        db=db,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
