"""
Payments: single settlement, failure and batch payouts.
"""
import uuid
from decimal import Decimal

import pytest
from sqlmodel import select, func

from fulfillment.core.exceptions import (
    NotFoundError, ValidationError, PreconditionError, ForbiddenError, ConfigurationError
)
from fulfillment.models.payment import Payment, BatchPayout
from fulfillment.models.task import Task
from fulfillment.services.dispute_service import DisputeService
from fulfillment.services.payment_service import PaymentService
from tests.conftest import reload


class TestCreatePayment:
    """Tests for create_payment"""

    @pytest.mark.asyncio
    async def test_existing_payment_is_returned(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        task = await reload(session, Task, task_id)

        again = await PaymentService(session).create_payment(task, amount=999)

        assert again.id == payment.id
        assert again.amount == 200
        assert (await session.exec(select(func.count()).select_from(Payment))).one() == 1

    @pytest.mark.asyncio
    async def test_task_without_amount_is_a_configuration_error(self, session, seed):
        campaign = await seed.campaign()
        task = Task(
            application_id=uuid.uuid4(),
            campaign_id=campaign.id,
            creator_id=uuid.uuid4(),
            title=campaign.title,
            payment_amount=None,
        )

        with pytest.raises(ConfigurationError):
            await PaymentService(session).create_payment(task)

    @pytest.mark.asyncio
    async def test_currency_follows_campaign(self, session, seed, flow, creator):
        campaign = await seed.campaign()

        _, payment = await flow.approved_task(campaign, creator)

        assert payment.currency == campaign.currency


class TestMarkPaid:
    """Tests for mark_paid"""

    @pytest.mark.asyncio
    async def test_mark_paid_settles_task(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign(fixed_price=300)
        task_id, payment = await flow.approved_task(campaign, creator)

        paid = await PaymentService(session).mark_paid(
            finance, payment.id, invoice_url="https://files.example/inv-1.pdf"
        )

        assert paid.status == "paid"
        assert paid.paid_at is not None
        assert paid.invoice_url == "https://files.example/inv-1.pdf"
        assert (await reload(session, Task, task_id)).status == "paid"

    @pytest.mark.asyncio
    async def test_cannot_pay_twice(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        _, payment = await flow.approved_task(campaign, creator)
        service = PaymentService(session)
        await service.mark_paid(finance, payment.id)

        with pytest.raises(PreconditionError):
            await service.mark_paid(finance, payment.id)

    @pytest.mark.asyncio
    async def test_missing_payment(self, session, finance):
        with pytest.raises(NotFoundError):
            await PaymentService(session).mark_paid(finance, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_brand_cannot_mark_paid(self, session, seed, flow, creator, brand):
        campaign = await seed.campaign()
        _, payment = await flow.approved_task(campaign, creator)

        with pytest.raises(ForbiddenError):
            await PaymentService(session).mark_paid(brand, payment.id)

    @pytest.mark.asyncio
    async def test_disputed_task_cannot_be_paid(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        payment_id = payment.id
        await DisputeService(session).raise_dispute(creator, task_id, "Brand asked for extra deliverables")

        with pytest.raises(PreconditionError):
            await PaymentService(session).mark_paid(finance, payment_id)

        assert (await reload(session, Payment, payment_id)).status == "pending"
        assert (await reload(session, Task, task_id)).status == "disputed"


class TestFailPayment:
    """Tests for fail_payment"""

    @pytest.mark.asyncio
    async def test_failed_payment_can_still_be_paid(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        service = PaymentService(session)

        failed = await service.fail_payment(finance, payment.id, "IBAN rejected")
        assert failed.status == "failed"
        assert failed.failure_reason == "IBAN rejected"

        paid = await service.mark_paid(finance, payment.id)
        assert paid.status == "paid"
        assert paid.failure_reason is None
        assert (await reload(session, Task, task_id)).status == "paid"

    @pytest.mark.asyncio
    async def test_only_pending_payments_fail(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        _, payment = await flow.approved_task(campaign, creator)
        service = PaymentService(session)
        await service.mark_paid(finance, payment.id)

        with pytest.raises(PreconditionError):
            await service.fail_payment(finance, payment.id, "IBAN rejected")

    @pytest.mark.asyncio
    async def test_pending_list(self, session, seed, flow, make_creator, finance):
        campaign = await seed.campaign()
        _, first = await flow.approved_task(campaign, make_creator())
        _, second = await flow.approved_task(campaign, make_creator())
        service = PaymentService(session)
        await service.mark_paid(finance, first.id)

        pending = await service.list_pending_payments(finance)

        assert [payment.id for payment in pending] == [second.id]


class TestBatchPayout:
    """Tests for create_batch_payout"""

    @pytest.mark.asyncio
    async def test_batch_pays_everything(self, session, seed, flow, make_creator, brand):
        campaign = await seed.campaign(fixed_price=200)
        first_task, first = await flow.approved_task(campaign, make_creator())
        second_task, second = await flow.approved_task(campaign, make_creator(), custom_price=150.5)

        result = await PaymentService(session).create_batch_payout(
            brand, [first.id, second.id], notes="March payouts"
        )

        assert result.total_amount == 350.5
        batch = await reload(session, BatchPayout, result.batch_id)
        assert batch.status == "executed"
        assert batch.executed_at is not None
        assert batch.payment_ids == [str(first.id), str(second.id)]
        assert batch.created_by == brand.id
        for payment_id in (first.id, second.id):
            payment = await reload(session, Payment, payment_id)
            assert payment.status == "paid"
            assert payment.batch_id == batch.id
        for task_id in (first_task, second_task):
            assert (await reload(session, Task, task_id)).status == "paid"

    @pytest.mark.asyncio
    async def test_empty_batch(self, session, finance):
        with pytest.raises(ValidationError):
            await PaymentService(session).create_batch_payout(finance, [])

    @pytest.mark.asyncio
    async def test_unknown_payment(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        _, payment = await flow.approved_task(campaign, creator)

        with pytest.raises(NotFoundError):
            await PaymentService(session).create_batch_payout(finance, [payment.id, uuid.uuid4()])

        assert (await reload(session, Payment, payment.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_already_paid_payment_blocks_whole_batch(self, session, seed, flow, make_creator, finance):
        campaign = await seed.campaign()
        _, first = await flow.approved_task(campaign, make_creator())
        _, second = await flow.approved_task(campaign, make_creator())
        service = PaymentService(session)
        await service.mark_paid(finance, first.id)

        with pytest.raises(PreconditionError):
            await service.create_batch_payout(finance, [first.id, second.id])

        assert (await reload(session, Payment, second.id)).status == "pending"
        assert (await session.exec(select(func.count()).select_from(BatchPayout))).one() == 0

    @pytest.mark.asyncio
    async def test_idempotency_key_replays_batch(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign()
        _, payment = await flow.approved_task(campaign, creator)
        service = PaymentService(session)

        first = await service.create_batch_payout(finance, [payment.id], idempotency_key="payout-2024-03")
        second = await service.create_batch_payout(finance, [payment.id], idempotency_key="payout-2024-03")

        assert second.batch_id == first.batch_id
        assert second.total_amount == first.total_amount
        assert (await session.exec(select(func.count()).select_from(BatchPayout))).one() == 1

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_counted_once(self, session, seed, flow, creator, finance):
        campaign = await seed.campaign(fixed_price=120)
        _, payment = await flow.approved_task(campaign, creator)

        result = await PaymentService(session).create_batch_payout(finance, [payment.id, payment.id])

        assert result.total_amount == 120

    @pytest.mark.asyncio
    async def test_totals_are_exact_to_the_cent(self, session, seed, flow, make_creator, finance):
        campaign = await seed.campaign(fixed_price=None)
        _, first = await flow.approved_task(campaign, make_creator(), custom_price=Decimal("0.10"))
        _, second = await flow.approved_task(campaign, make_creator(), custom_price=Decimal("0.20"))

        result = await PaymentService(session).create_batch_payout(finance, [first.id, second.id])

        assert result.total_amount == Decimal("0.30")
        batch = await reload(session, BatchPayout, result.batch_id)
        assert batch.total_amount == Decimal("0.30")
        assert isinstance((await reload(session, Payment, first.id)).amount, Decimal)

    @pytest.mark.asyncio
    async def test_failing_step_rolls_back_every_write(self, session, seed, flow, make_creator, finance, monkeypatch):
        campaign = await seed.campaign()
        first_task, first = await flow.approved_task(campaign, make_creator())
        second_task, second = await flow.approved_task(campaign, make_creator())
        payment_ids = [first.id, second.id]
        service = PaymentService(session)
        original = service.tasks.transition
        calls = []

        async def flaky_transition(task, new_status):
            calls.append(task.id)
            if len(calls) == 2:
                raise RuntimeError("database went away")
            return await original(task, new_status)

        monkeypatch.setattr(service.tasks, "transition", flaky_transition)

        with pytest.raises(RuntimeError):
            await service.create_batch_payout(finance, payment_ids)

        for payment_id in payment_ids:
            assert (await reload(session, Payment, payment_id)).status == "pending"
        for task_id in (first_task, second_task):
            assert (await reload(session, Task, task_id)).status == "approved"
        assert (await session.exec(select(func.count()).select_from(BatchPayout))).one() == 0

    @pytest.mark.asyncio
    async def test_creator_cannot_batch(self, session, creator):
        with pytest.raises(ForbiddenError):
            await PaymentService(session).create_batch_payout(creator, [uuid.uuid4()])
