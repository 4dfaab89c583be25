"""
Content review repositories - uploads, revision requests, ratings.
"""
import uuid
from typing import List
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.content import (
    Upload, UploadStatus, RevisionRequest, RevisionStatus, Rating
)
from fulfillment.repositories.base import BaseRepository


class UploadRepository(BaseRepository[Upload]):
    """Repository for Upload operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Upload, session)

    async def count_for_task(self, task_id: uuid.UUID) -> int:
        return await self.count({"task_id": task_id})

    async def get_for_task(self, task_id: uuid.UUID) -> List[Upload]:
        return await self.list({"task_id": task_id})

    async def set_pending_status(self, task_id: uuid.UUID, status: UploadStatus) -> int:
        """Move every pending upload of the task to `status`. Returns how many changed."""
        query = select(Upload).where(
            Upload.task_id == task_id,
            Upload.status == UploadStatus.PENDING.value
        )
        result = await self.session.exec(query)
        uploads = result.all()
        for upload in uploads:
            upload.status = status.value
            self.session.add(upload)
        await self.session.flush()
        return len(uploads)


class RevisionRequestRepository(BaseRepository[RevisionRequest]):
    """Repository for RevisionRequest operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(RevisionRequest, session)

    async def resolve_open(self, task_id: uuid.UUID) -> int:
        """Mark the task's open revision requests as resolved."""
        query = select(RevisionRequest).where(
            RevisionRequest.task_id == task_id,
            RevisionRequest.status == RevisionStatus.OPEN.value
        )
        result = await self.session.exec(query)
        revisions = result.all()
        now = datetime.utcnow()
        for revision in revisions:
            revision.status = RevisionStatus.RESOLVED.value
            revision.resolved_at = now
            self.session.add(revision)
        await self.session.flush()
        return len(revisions)


class RatingRepository(BaseRepository[Rating]):
    """Repository for Rating operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Rating, session)
