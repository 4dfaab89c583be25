"""
Disputes: raising from any non-terminal status and staff resolution.
"""
import uuid

import pytest
from sqlmodel import select

from fulfillment.core.exceptions import NotFoundError, ValidationError, PreconditionError, ForbiddenError
from fulfillment.core.security import Actor, Role
from fulfillment.models.payment import Payment
from fulfillment.models.task import Task
from fulfillment.services.dispute_service import DisputeService
from fulfillment.services.payment_service import PaymentService
from tests.conftest import reload


@pytest.fixture
def support():
    return Actor(id=uuid.uuid4(), role=Role.SUPPORT)


class TestRaiseDispute:
    """Tests for raise_dispute"""

    @pytest.mark.asyncio
    async def test_dispute_remembers_previous_status(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)

        dispute = await DisputeService(session).raise_dispute(creator, result.task_id, "Brief changed after approval")

        assert dispute.status == "open"
        assert dispute.previous_task_status == "selected"
        assert dispute.raised_by == creator.id
        assert (await reload(session, Task, result.task_id)).status == "disputed"

    @pytest.mark.asyncio
    async def test_paid_task_cannot_be_disputed(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        await PaymentService(session).mark_paid(finance, payment.id)

        with pytest.raises(PreconditionError) as exc_info:
            await DisputeService(session).raise_dispute(creator, task_id, "Paid the wrong amount")

        assert exc_info.value.current_status == "paid"

    @pytest.mark.asyncio
    async def test_disputed_task_cannot_be_disputed_again(self, session, seed, flow, creator, brand):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = DisputeService(session)
        await service.raise_dispute(creator, result.task_id, "Brief changed after approval")

        with pytest.raises(PreconditionError):
            await service.raise_dispute(brand, result.task_id, "Creator stopped responding")

    @pytest.mark.asyncio
    async def test_reason_is_required(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)

        with pytest.raises(ValidationError):
            await DisputeService(session).raise_dispute(creator, result.task_id, "")

    @pytest.mark.asyncio
    async def test_unrelated_creator_cannot_dispute(self, session, seed, flow, creator, make_creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)

        with pytest.raises(ForbiddenError):
            await DisputeService(session).raise_dispute(make_creator(), result.task_id, "Not my task")


class TestResolveDispute:
    """Tests for resolve_dispute"""

    @pytest.mark.asyncio
    async def test_resolve_to_needs_edits(self, session, seed, flow, creator, support):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = DisputeService(session)
        dispute = await service.raise_dispute(creator, result.task_id, "Brief changed after approval")

        resolved = await service.resolve_dispute(support, dispute.id, "needs_edits", "Redo with new brief")

        assert resolved.status == "resolved"
        assert resolved.resolution == "needs_edits"
        assert resolved.resolved_by == support.id
        assert resolved.resolved_at is not None
        assert (await reload(session, Task, result.task_id)).status == "needs_edits"

    @pytest.mark.asyncio
    async def test_approve_resolution_creates_missing_payment(self, session, seed, flow, creator, support):
        campaign = await seed.campaign(fixed_price=250)
        _, result = await flow.approve(campaign, creator)
        upload = await flow.upload(result.task_id, creator)
        assert upload.status == "pending"
        service = DisputeService(session)
        dispute = await service.raise_dispute(creator, result.task_id, "Brand is not reviewing my content")

        await service.resolve_dispute(support, dispute.id, "approve")

        assert (await reload(session, Task, result.task_id)).status == "approved"
        payment = (await session.exec(select(Payment).where(Payment.task_id == result.task_id))).one()
        assert payment.amount == 250
        assert payment.status == "pending"

    @pytest.mark.asyncio
    async def test_approve_resolution_keeps_existing_payment(self, session, seed, flow, creator, brand, support):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        service = DisputeService(session)
        dispute = await service.raise_dispute(brand, task_id, "Late delivery penalty")

        await service.resolve_dispute(support, dispute.id, "approve")

        payments = (await session.exec(select(Payment).where(Payment.task_id == task_id))).all()
        assert [p.id for p in payments] == [payment.id]

    @pytest.mark.asyncio
    async def test_unknown_resolution(self, session, seed, flow, creator, support):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = DisputeService(session)
        dispute = await service.raise_dispute(creator, result.task_id, "Brief changed after approval")

        with pytest.raises(ValidationError):
            await service.resolve_dispute(support, dispute.id, "refund")

    @pytest.mark.asyncio
    async def test_cannot_resolve_twice(self, session, seed, flow, creator, support):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = DisputeService(session)
        dispute = await service.raise_dispute(creator, result.task_id, "Brief changed after approval")
        await service.resolve_dispute(support, dispute.id, "needs_edits")

        with pytest.raises(PreconditionError):
            await service.resolve_dispute(support, dispute.id, "approve")

    @pytest.mark.asyncio
    async def test_only_staff_resolves(self, session, seed, flow, creator, brand):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = DisputeService(session)
        dispute = await service.raise_dispute(creator, result.task_id, "Brief changed after approval")

        with pytest.raises(ForbiddenError):
            await service.resolve_dispute(brand, dispute.id, "approve")

    @pytest.mark.asyncio
    async def test_missing_dispute(self, session, support):
        with pytest.raises(NotFoundError):
            await DisputeService(session).resolve_dispute(support, uuid.uuid4(), "approve")
