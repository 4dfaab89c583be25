"""
Task service - task lifecycle state machine.
"""
import logging
import uuid
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import NotFoundError, PreconditionError
from fulfillment.core.security import Actor, Role, READER_ROLES, STAFF_ROLES, require_owner_or_roles
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.shipment import ShipmentStatus, SHIPMENT_HINTS
from fulfillment.models.task import Task, TaskStatus, is_allowed_transition
from fulfillment.repositories.task_repo import TaskRepository
from fulfillment.services.audit_service import AuditService
from fulfillment.services.shipment_service import ShipmentService, ShipmentStatusProvider

logger = logging.getLogger(__name__)


class TaskService:
    """Service for task lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        shipment_status: Optional[ShipmentStatusProvider] = None
    ):
        self.session = session
        self.task_repo = TaskRepository(session)
        self.shipment_status = shipment_status or ShipmentService(session)
        self.audit = AuditService(session)

    async def get(self, task_id: uuid.UUID) -> Task:
        task = await self.task_repo.get(task_id)
        if not task:
            raise NotFoundError("Task", str(task_id))
        return task

    async def get_for_actor(self, actor: Actor, task_id: uuid.UUID) -> Task:
        """Get a task the actor may see; creators only see their own."""
        task = await self.get(task_id)
        require_owner_or_roles(actor, task.creator_id, READER_ROLES, "view this task")
        return task

    async def list(
        self,
        actor: Actor,
        campaign_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """List tasks; creators only ever see their own."""
        filters = {"campaign_id": campaign_id, "status": status}
        if actor.role == Role.CREATOR:
            filters["creator_id"] = actor.id

        return await self.task_repo.list_paginated(
            filters=filters,
            page=page,
            limit=limit
        )

    async def can_transition(self, task_id: uuid.UUID, new_status: str) -> bool:
        """Pre-check a move against the transition table. Never mutates."""
        task = await self.get(task_id)
        return is_allowed_transition(task.status, new_status)

    async def transition(self, task: Task, new_status: TaskStatus) -> str:
        """
        Guarded status change used by the owning operations.

        Runs inside the caller's unit of work. Returns the previous status;
        raises PreconditionError without touching the task when the move is
        not in the table.
        """
        if not is_allowed_transition(task.status, new_status.value):
            raise PreconditionError(
                f"Task cannot move from '{task.status}' to '{new_status.value}'",
                current_status=task.status
            )
        previous = task.status
        await self.task_repo.update(task, {"status": new_status.value})
        logger.info(f"Task {task.id}: {previous} -> {new_status.value}")
        return previous

    async def ensure_product_delivered(self, task: Task) -> None:
        """Block work on product tasks until the shipment is delivered."""
        if not task.requires_product:
            return
        shipment_status = await self.shipment_status.get_status(task.campaign_id, task.creator_id)
        if shipment_status != ShipmentStatus.DELIVERED:
            raise PreconditionError(
                "The product has not been delivered yet",
                current_status=shipment_status.value,
                hint=SHIPMENT_HINTS.get(shipment_status)
            )

    async def status_changed(self, actor: Optional[Actor], task: Task, previous: str) -> None:
        """Publish a task status change. Call after commit."""
        await emit(
            Topics.TASK_STATUS_CHANGED,
            Entities.TASK,
            task.id,
            actor,
            campaign_id=task.campaign_id,
            creator_id=task.creator_id,
            previous_status=previous,
            status=task.status
        )

    async def start_work(self, actor: Actor, task_id: uuid.UUID) -> Task:
        """selected -> in_production, gated on delivery for product tasks."""
        task = await self.get(task_id)
        require_owner_or_roles(actor, task.creator_id, STAFF_ROLES, "start work on tasks")

        if task.status != TaskStatus.SELECTED.value:
            raise PreconditionError(
                "Work can only start on a selected task",
                current_status=task.status
            )
        await self.ensure_product_delivered(task)

        async with atomic(self.session):
            previous = await self.transition(task, TaskStatus.IN_PRODUCTION)

        await self.audit.record(
            actor, Actions.TASK_STARTED, Entities.TASK, task.id,
            {"previous_status": previous}
        )
        await self.status_changed(actor, task, previous)
        return task
