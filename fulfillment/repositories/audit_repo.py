"""
Audit log repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.audit import AuditLog
from fulfillment.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Repository for AuditLog operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(AuditLog, session)

    async def log(
        self,
        action: str,
        entity: str,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        actor_role: Optional[str] = None,
        meta_data: Optional[dict] = None
    ) -> AuditLog:
        """
        Append an audit entry in its own transaction.
        Called after the business operation has already committed.
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            entity=entity,
            entity_id=entity_id,
            meta_data=meta_data or {}
        )
        self.session.add(entry)
        await self.session.commit()
        return entry

    async def get_by_entity(
        self,
        entity: str,
        entity_id: uuid.UUID,
        limit: int = 50
    ) -> List[AuditLog]:
        """Get the trail for a specific entity, newest first."""
        query = select(AuditLog).where(
            AuditLog.entity == entity,
            AuditLog.entity_id == entity_id
        ).order_by(AuditLog.created_at.desc()).limit(limit)
        result = await self.session.exec(query)
        return result.all()
