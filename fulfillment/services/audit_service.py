"""
Audit service - best-effort audit trail.

Entries are written after the business operation commits, in a session of
their own, so a failing audit write can never undo or fail the operation.
"""
import logging
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.core.events import to_jsonable
from fulfillment.core.security import Actor
from fulfillment.models.audit import AuditLog
from fulfillment.repositories.audit_repo import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Service for audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repo = AuditLogRepository(session)

    async def record(
        self,
        actor: Optional[Actor],
        action: str,
        entity: str,
        entity_id: Optional[uuid.UUID] = None,
        meta_data: Optional[dict] = None
    ) -> Optional[AuditLog]:
        """Append an entry. Returns None when the write failed."""
        try:
            async with AsyncSession(self.session.bind, expire_on_commit=False) as audit_session:
                return await AuditLogRepository(audit_session).log(
                    action=action,
                    entity=entity,
                    entity_id=entity_id,
                    actor_id=actor.id if actor else None,
                    actor_role=actor.role.value if actor else None,
                    meta_data={key: to_jsonable(value) for key, value in (meta_data or {}).items()}
                )
        except Exception as e:
            logger.warning(f"Audit entry {action} for {entity} {entity_id} was not written: {e}")
            return None

    async def get_by_entity(
        self,
        entity: str,
        entity_id: uuid.UUID,
        limit: int = 50
    ) -> List[AuditLog]:
        """Get the audit trail of a specific entity."""
        return await self.audit_repo.get_by_entity(entity, entity_id, limit)
