"""
Audit log API routes.
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor, STAFF_ROLES, FINANCE_ROLES, require_role
from fulfillment.database import get_session
from fulfillment.schemas.audit import AuditLogResponse
from fulfillment.services.audit_service import AuditService

router = APIRouter(prefix=f"{settings.API_PREFIX}/audit", tags=["audit"])


@router.get("/{entity}/{entity_id}", response_model=List[AuditLogResponse])
async def get_entity_audit_log(
    entity: str,
    entity_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Audit trail of one entity, newest first."""
    require_role(actor, STAFF_ROLES | FINANCE_ROLES, "read the audit log")
    audit_service = AuditService(session)
    return await audit_service.get_by_entity(entity, entity_id, limit)
