"""
Payments API routes.
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.schemas.payment import (
    MarkPaid, PaymentFail, PaymentResponse, BatchPayoutCreate, BatchPayoutResult
)
from fulfillment.services.payment_service import PaymentService

router = APIRouter(prefix=f"{settings.API_PREFIX}/payments", tags=["payments"])


@router.get("/pending", response_model=List[PaymentResponse])
async def list_pending_payments(
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Payments waiting to be settled."""
    payment_service = PaymentService(session)
    return await payment_service.list_pending_payments(actor)


@router.post("/batches", response_model=BatchPayoutResult, status_code=201)
async def create_batch_payout(
    batch: BatchPayoutCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Pay several payments in one unit of work."""
    payment_service = PaymentService(session)
    return await payment_service.create_batch_payout(
        actor,
        batch.payment_ids,
        notes=batch.notes,
        batch_name=batch.batch_name,
        idempotency_key=batch.idempotency_key
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.get(payment_id)


@router.post("/{payment_id}/paid", response_model=PaymentResponse)
async def mark_paid(
    payment_id: uuid.UUID,
    proof: MarkPaid,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.mark_paid(actor, payment_id, proof.invoice_url, proof.proof_url)


@router.post("/{payment_id}/fail", response_model=PaymentResponse)
async def fail_payment(
    payment_id: uuid.UUID,
    failure: PaymentFail,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.fail_payment(actor, payment_id, failure.reason)
