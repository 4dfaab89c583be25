"""
Application repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.application import Application, ApplicationFeedback, ApplicationStatus
from fulfillment.repositories.base import BaseRepository


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Application, session)

    async def get_for_creator(
        self, campaign_id: uuid.UUID, creator_id: uuid.UUID
    ) -> Optional[Application]:
        query = select(Application).where(
            Application.campaign_id == campaign_id,
            Application.creator_id == creator_id
        )
        result = await self.session.exec(query)
        return result.first()

    async def get_approved(self, campaign_id: uuid.UUID) -> List[Application]:
        """All currently approved applications of a campaign."""
        return await self.list(
            {"campaign_id": campaign_id, "status": ApplicationStatus.APPROVED.value},
            order_desc=False
        )


class ApplicationFeedbackRepository(BaseRepository[ApplicationFeedback]):
    """Repository for rejection feedback."""

    def __init__(self, session: AsyncSession):
        super().__init__(ApplicationFeedback, session)

    async def has_feedback(self, application_id: uuid.UUID) -> bool:
        return await self.count({"application_id": application_id}) > 0
