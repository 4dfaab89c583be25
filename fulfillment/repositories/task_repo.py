"""
Task repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.task import Task, Approval
from fulfillment.repositories.base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Repository for Task operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Task, session)

    async def get_by_application(self, application_id: uuid.UUID) -> Optional[Task]:
        return await self.get_by_field("application_id", application_id)

    async def get_for_creator(self, campaign_id: uuid.UUID, creator_id: uuid.UUID) -> List[Task]:
        """Tasks of one creator within one campaign."""
        query = select(Task).where(
            Task.campaign_id == campaign_id,
            Task.creator_id == creator_id
        )
        result = await self.session.exec(query)
        return result.all()

    async def get_many(self, task_ids: List[uuid.UUID]) -> List[Task]:
        if not task_ids:
            return []
        result = await self.session.exec(select(Task).where(Task.id.in_(task_ids)))
        return result.all()


class ApprovalRepository(BaseRepository[Approval]):
    """Repository for content approval records."""

    def __init__(self, session: AsyncSession):
        super().__init__(Approval, session)
