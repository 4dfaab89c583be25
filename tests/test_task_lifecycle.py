"""
Task lifecycle: transition table and the delivery gate on start_work.
"""
import uuid

import pytest

from fulfillment.core.exceptions import NotFoundError, PreconditionError, ForbiddenError
from fulfillment.models.shipment import ShipmentStatus
from fulfillment.models.task import Task, TaskStatus, TASK_TRANSITIONS, is_allowed_transition
from fulfillment.services.task_service import TaskService
from tests.conftest import reload


class StubShipmentStatus:
    """ShipmentStatusProvider returning a fixed status."""

    def __init__(self, status: ShipmentStatus):
        self.status = status
        self.calls = []

    async def get_status(self, campaign_id, creator_id) -> ShipmentStatus:
        self.calls.append((campaign_id, creator_id))
        return self.status


class TestTransitionTable:
    """Tests for the task transition table"""

    def test_paid_is_terminal(self):
        assert TASK_TRANSITIONS[TaskStatus.PAID] == set()
        for status in TaskStatus:
            assert not is_allowed_transition("paid", status.value)

    def test_every_non_terminal_status_can_be_disputed(self):
        for status in TaskStatus:
            if status in (TaskStatus.PAID, TaskStatus.DISPUTED):
                continue
            assert is_allowed_transition(status.value, "disputed")

    def test_dispute_resolution_targets(self):
        assert is_allowed_transition("disputed", "approved")
        assert is_allowed_transition("disputed", "needs_edits")
        assert not is_allowed_transition("disputed", "paid")

    def test_no_skipping_review(self):
        assert not is_allowed_transition("selected", "uploaded")
        assert not is_allowed_transition("in_production", "approved")
        assert not is_allowed_transition("uploaded", "paid")

    def test_unknown_status_is_never_allowed(self):
        assert not is_allowed_transition("selected", "archived")
        assert not is_allowed_transition("bogus", "selected")


class TestCanTransition:
    """Tests for can_transition"""

    @pytest.mark.asyncio
    async def test_does_not_mutate(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = TaskService(session)

        assert await service.can_transition(result.task_id, "in_production") is True
        assert await service.can_transition(result.task_id, "approved") is False
        assert (await reload(session, Task, result.task_id)).status == "selected"

    @pytest.mark.asyncio
    async def test_missing_task(self, session):
        with pytest.raises(NotFoundError):
            await TaskService(session).can_transition(uuid.uuid4(), "in_production")


class TestStartWork:
    """Tests for start_work"""

    @pytest.mark.asyncio
    async def test_task_without_product_starts_immediately(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        provider = StubShipmentStatus(ShipmentStatus.NOT_REQUESTED)

        task = await TaskService(session, provider).start_work(creator, result.task_id)

        assert task.status == "in_production"
        assert provider.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("shipment_status", [
        ShipmentStatus.NOT_REQUESTED,
        ShipmentStatus.WAITING_ADDRESS,
        ShipmentStatus.ADDRESS_RECEIVED,
        ShipmentStatus.SHIPPED,
        ShipmentStatus.ISSUE,
    ])
    async def test_product_task_blocked_until_delivered(self, session, seed, flow, creator, shipment_status):
        campaign = await seed.campaign(products=1)
        _, result = await flow.approve(campaign, creator)
        provider = StubShipmentStatus(shipment_status)

        with pytest.raises(PreconditionError) as exc_info:
            await TaskService(session, provider).start_work(creator, result.task_id)

        assert exc_info.value.current_status == shipment_status.value
        assert exc_info.value.hint
        assert (await reload(session, Task, result.task_id)).status == "selected"

    @pytest.mark.asyncio
    async def test_product_task_starts_once_delivered(self, session, seed, flow, creator):
        campaign = await seed.campaign(products=1)
        _, result = await flow.approve(campaign, creator)
        provider = StubShipmentStatus(ShipmentStatus.DELIVERED)

        task = await TaskService(session, provider).start_work(creator, result.task_id)

        assert task.status == "in_production"
        assert provider.calls == [(campaign.id, creator.id)]

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = TaskService(session)
        await service.start_work(creator, result.task_id)

        with pytest.raises(PreconditionError) as exc_info:
            await service.start_work(creator, result.task_id)

        assert exc_info.value.current_status == "in_production"

    @pytest.mark.asyncio
    async def test_other_creator_cannot_start(self, session, seed, flow, creator, make_creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)

        with pytest.raises(ForbiddenError):
            await TaskService(session).start_work(make_creator(), result.task_id)


class TestGuardedTransition:
    """Tests for the internal transition guard"""

    @pytest.mark.asyncio
    async def test_disallowed_move_leaves_task_untouched(self, session, seed, flow, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = TaskService(session)
        task = await service.get(result.task_id)

        with pytest.raises(PreconditionError):
            await service.transition(task, TaskStatus.PAID)

        assert task.status == "selected"


class TestGetForActor:
    """Tests for get_for_actor"""

    @pytest.mark.asyncio
    async def test_owner_and_staff_can_read(self, session, seed, flow, brand, finance, creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        service = TaskService(session)

        for actor in (creator, brand, finance):
            task = await service.get_for_actor(actor, result.task_id)
            assert task.id == result.task_id

    @pytest.mark.asyncio
    async def test_other_creator_cannot_read(self, session, seed, flow, creator, make_creator):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)

        with pytest.raises(ForbiddenError):
            await TaskService(session).get_for_actor(make_creator(), result.task_id)
