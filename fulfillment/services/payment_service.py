"""
Payment service - per-task payments and batch payouts.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.config import settings
from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import (
    NotFoundError, ValidationError, PreconditionError, ConfigurationError
)
from fulfillment.core.security import (
    Actor, FINANCE_ROLES, PAYOUT_ROLES, require_role
)
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.payment import Payment, PaymentStatus, BatchPayout, BatchPayoutStatus
from fulfillment.models.task import Task, TaskStatus, is_allowed_transition
from fulfillment.models.types import money
from fulfillment.repositories.campaign_repo import CampaignRepository
from fulfillment.repositories.payment_repo import PaymentRepository, BatchPayoutRepository
from fulfillment.repositories.task_repo import TaskRepository
from fulfillment.schemas.payment import BatchPayoutResult
from fulfillment.services.audit_service import AuditService
from fulfillment.services.task_service import TaskService

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for payment operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.payment_repo = PaymentRepository(session)
        self.batch_repo = BatchPayoutRepository(session)
        self.task_repo = TaskRepository(session)
        self.campaign_repo = CampaignRepository(session)
        self.tasks = TaskService(session)
        self.audit = AuditService(session)

    async def get(self, payment_id: uuid.UUID) -> Payment:
        payment = await self.payment_repo.get(payment_id)
        if not payment:
            raise NotFoundError("Payment", str(payment_id))
        return payment

    async def create_payment(self, task: Task, amount: Optional[Decimal] = None) -> Payment:
        """
        Pending payment for an approved task; idempotent per task.

        Runs inside the caller's unit of work. The amount defaults to the
        price fixed on the task at approval time.
        """
        existing = await self.payment_repo.get_by_task(task.id)
        if existing:
            return existing

        amount = money(task.payment_amount if amount is None else amount)
        if not amount:
            raise ConfigurationError(f"Task {task.id} has no payment amount")

        campaign = await self.campaign_repo.get(task.campaign_id)
        currency = campaign.currency if campaign and campaign.currency else settings.DEFAULT_CURRENCY

        payment = await self.payment_repo.create({
            "task_id": task.id,
            "amount": amount,
            "currency": currency,
            "status": PaymentStatus.PENDING.value,
        })
        logger.info(f"Payment {payment.id} created for task {task.id}: {amount} {currency}")
        return payment

    async def payment_created(self, actor: Optional[Actor], payment: Payment) -> None:
        await emit(
            Topics.PAYMENT_CREATED,
            Entities.PAYMENT,
            payment.id,
            actor,
            task_id=payment.task_id,
            amount=payment.amount,
            currency=payment.currency
        )

    async def mark_paid(
        self,
        actor: Actor,
        payment_id: uuid.UUID,
        invoice_url: Optional[str] = None,
        proof_url: Optional[str] = None
    ) -> Payment:
        """Settle one payment and move its task to `paid`."""
        require_role(actor, FINANCE_ROLES, "mark payments as paid")
        payment = await self.get(payment_id)
        if payment.status == PaymentStatus.PAID.value:
            raise PreconditionError("Payment is already paid", current_status=payment.status)

        task = await self.tasks.get(payment.task_id)

        async with atomic(self.session):
            await self.payment_repo.update(payment, {
                "status": PaymentStatus.PAID.value,
                "paid_at": datetime.utcnow(),
                "invoice_url": invoice_url or payment.invoice_url,
                "proof_url": proof_url or payment.proof_url,
                "failure_reason": None,
            })
            previous = await self.tasks.transition(task, TaskStatus.PAID)

        logger.info(f"Payment {payment.id} paid ({payment.amount} {payment.currency})")
        await self.audit.record(
            actor, Actions.PAYMENT_PAID, Entities.PAYMENT, payment.id,
            {"task_id": task.id, "amount": payment.amount}
        )
        await emit(Topics.PAYMENT_PAID, Entities.PAYMENT, payment.id, actor, task_id=task.id)
        await self.tasks.status_changed(actor, task, previous)
        return payment

    async def fail_payment(self, actor: Actor, payment_id: uuid.UUID, reason: str) -> Payment:
        """pending -> failed. A failed payment can still be paid or batched later."""
        require_role(actor, FINANCE_ROLES, "fail payments")
        if not reason or not reason.strip():
            raise ValidationError("A failure reason is required", field="reason")

        payment = await self.get(payment_id)
        if payment.status != PaymentStatus.PENDING.value:
            raise PreconditionError("Only pending payments can fail", current_status=payment.status)

        async with atomic(self.session):
            await self.payment_repo.update(payment, {
                "status": PaymentStatus.FAILED.value,
                "failure_reason": reason,
            })

        logger.warning(f"Payment {payment.id} failed: {reason}")
        await self.audit.record(actor, Actions.PAYMENT_FAILED, Entities.PAYMENT, payment.id, {"reason": reason})
        await emit(Topics.PAYMENT_FAILED, Entities.PAYMENT, payment.id, actor, reason=reason)
        return payment

    async def list_pending_payments(self, actor: Actor) -> List[Payment]:
        """Payments still waiting to be settled."""
        require_role(actor, PAYOUT_ROLES, "view pending payments")
        return await self.payment_repo.get_payable()

    async def create_batch_payout(
        self,
        actor: Actor,
        payment_ids: List[uuid.UUID],
        notes: Optional[str] = None,
        batch_name: Optional[str] = None,
        idempotency_key: Optional[str] = None
    ) -> BatchPayoutResult:
        """
        Pay several payments at once.

        The batch row, every payment, every task and the final batch status
        are written in a single unit of work. A repeated idempotency key
        returns the batch created the first time.
        """
        require_role(actor, PAYOUT_ROLES, "execute batch payouts")

        if idempotency_key:
            existing = await self.batch_repo.get_by_idempotency_key(idempotency_key)
            if existing:
                logger.info(f"Batch payout {existing.id} replayed for key {idempotency_key}")
                return BatchPayoutResult(batch_id=existing.id, total_amount=existing.total_amount)

        # Keep caller order, drop duplicates
        unique_ids = list(dict.fromkeys(payment_ids or []))
        if not unique_ids:
            raise ValidationError("At least one payment is required", field="payment_ids")

        found = {payment.id: payment for payment in await self.payment_repo.get_many(unique_ids)}
        for payment_id in unique_ids:
            if payment_id not in found:
                raise NotFoundError("Payment", str(payment_id))
        payments = [found[payment_id] for payment_id in unique_ids]

        for payment in payments:
            if payment.status == PaymentStatus.PAID.value:
                raise PreconditionError(
                    f"Payment {payment.id} is already paid",
                    current_status=payment.status
                )

        tasks = {task.id: task for task in await self.task_repo.get_many([p.task_id for p in payments])}
        for payment in payments:
            task = tasks.get(payment.task_id)
            if not task:
                raise NotFoundError("Task", str(payment.task_id))
            if not is_allowed_transition(task.status, TaskStatus.PAID.value):
                raise PreconditionError(
                    f"Task {task.id} cannot be paid",
                    current_status=task.status
                )

        total = money(sum((money(payment.amount) for payment in payments), Decimal("0")))
        now = datetime.utcnow()
        changes = []

        async with atomic(self.session):
            batch = await self.batch_repo.add(BatchPayout(
                batch_name=batch_name or f"Batch {now:%Y-%m-%d %H:%M}",
                created_by=actor.id,
                idempotency_key=idempotency_key,
                payment_ids=[str(payment_id) for payment_id in unique_ids],
                total_amount=total,
                status=BatchPayoutStatus.PENDING.value,
                notes=notes,
            ))
            for payment in payments:
                await self.payment_repo.update(payment, {
                    "status": PaymentStatus.PAID.value,
                    "paid_at": now,
                    "batch_id": batch.id,
                    "failure_reason": None,
                })
            for payment in payments:
                task = tasks[payment.task_id]
                changes.append((task, await self.tasks.transition(task, TaskStatus.PAID)))
            await self.batch_repo.update(batch, {
                "status": BatchPayoutStatus.EXECUTED.value,
                "executed_at": datetime.utcnow(),
            })

        logger.info(f"Batch payout {batch.id} executed: {len(payments)} payments, total {total}")
        await self.audit.record(
            actor, Actions.BATCH_PAYOUT_EXECUTED, Entities.BATCH_PAYOUT, batch.id,
            {"payment_ids": batch.payment_ids, "total_amount": total}
        )
        for payment in payments:
            await emit(Topics.PAYMENT_PAID, Entities.PAYMENT, payment.id, actor, task_id=payment.task_id, batch_id=batch.id)
        for task, previous in changes:
            await self.tasks.status_changed(actor, task, previous)
        await emit(
            Topics.BATCH_PAYOUT_EXECUTED, Entities.BATCH_PAYOUT, batch.id, actor,
            payment_ids=batch.payment_ids, total_amount=total
        )
        return BatchPayoutResult(batch_id=batch.id, total_amount=total)
