"""
Dispute service - lets either side take a task out of the normal flow and
lets staff put it back.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import NotFoundError, ValidationError, PreconditionError
from fulfillment.core.security import (
    Actor, REVIEWER_ROLES, STAFF_ROLES, require_role, require_owner_or_roles
)
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.dispute import Dispute, DisputeStatus, DisputeResolution
from fulfillment.models.task import TaskStatus
from fulfillment.repositories.dispute_repo import DisputeRepository
from fulfillment.services.audit_service import AuditService
from fulfillment.services.payment_service import PaymentService
from fulfillment.services.task_service import TaskService

logger = logging.getLogger(__name__)

RESOLUTION_TARGETS = {
    DisputeResolution.APPROVE: TaskStatus.APPROVED,
    DisputeResolution.NEEDS_EDITS: TaskStatus.NEEDS_EDITS,
}


class DisputeService:
    """Service for dispute operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.dispute_repo = DisputeRepository(session)
        self.tasks = TaskService(session)
        self.payments = PaymentService(session)
        self.audit = AuditService(session)

    async def get(self, dispute_id: uuid.UUID) -> Dispute:
        dispute = await self.dispute_repo.get(dispute_id)
        if not dispute:
            raise NotFoundError("Dispute", str(dispute_id))
        return dispute

    async def raise_dispute(self, actor: Actor, task_id: uuid.UUID, reason: str) -> Dispute:
        """Move a non-terminal task to `disputed`."""
        task = await self.tasks.get(task_id)
        require_owner_or_roles(actor, task.creator_id, REVIEWER_ROLES | STAFF_ROLES, "raise disputes")
        if not reason or not reason.strip():
            raise ValidationError("A reason is required", field="reason")

        async with atomic(self.session):
            previous = await self.tasks.transition(task, TaskStatus.DISPUTED)
            dispute = await self.dispute_repo.create({
                "task_id": task.id,
                "raised_by": actor.id,
                "reason": reason.strip(),
                "previous_task_status": previous,
            })

        logger.warning(f"Dispute {dispute.id} opened on task {task.id} (was {previous})")
        await self.audit.record(
            actor, Actions.DISPUTE_OPENED, Entities.DISPUTE, dispute.id,
            {"task_id": task.id, "previous_status": previous}
        )
        await emit(Topics.DISPUTE_OPENED, Entities.DISPUTE, dispute.id, actor, task_id=task.id)
        await self.tasks.status_changed(actor, task, previous)
        return dispute

    async def resolve_dispute(
        self,
        actor: Actor,
        dispute_id: uuid.UUID,
        resolution: str,
        note: Optional[str] = None
    ) -> Dispute:
        """
        Close a dispute and move its task to `approved` or `needs_edits`.
        Approving creates the task's payment when it has none yet.
        """
        require_role(actor, STAFF_ROLES, "resolve disputes")
        try:
            outcome = DisputeResolution(resolution)
        except ValueError:
            raise ValidationError(f"Unknown resolution '{resolution}'", field="resolution")

        dispute = await self.get(dispute_id)
        if dispute.status != DisputeStatus.OPEN.value:
            raise PreconditionError("Dispute is already resolved", current_status=dispute.status)
        task = await self.tasks.get(dispute.task_id)

        payment = None
        async with atomic(self.session):
            previous = await self.tasks.transition(task, RESOLUTION_TARGETS[outcome])
            if outcome == DisputeResolution.APPROVE:
                payment = await self.payments.create_payment(task)
            await self.dispute_repo.update(dispute, {
                "status": DisputeStatus.RESOLVED.value,
                "resolution": outcome.value,
                "resolution_note": note,
                "resolved_by": actor.id,
                "resolved_at": datetime.utcnow(),
            })

        logger.info(f"Dispute {dispute.id} resolved: {outcome.value}")
        await self.audit.record(
            actor, Actions.DISPUTE_RESOLVED, Entities.DISPUTE, dispute.id,
            {"task_id": task.id, "resolution": outcome.value,
             "payment_id": payment.id if payment else None}
        )
        await emit(
            Topics.DISPUTE_RESOLVED, Entities.DISPUTE, dispute.id, actor,
            task_id=task.id, resolution=outcome.value
        )
        await self.tasks.status_changed(actor, task, previous)
        if payment:
            await self.payments.payment_created(actor, payment)
        return dispute
