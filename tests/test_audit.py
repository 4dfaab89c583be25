"""
Audit trail and unit-of-work guarantees.
"""
import pytest
from sqlmodel import select, func

from fulfillment.core.exceptions import PreconditionError
from fulfillment.models.application import Application
from fulfillment.models.audit import AuditLog, Actions
from fulfillment.models.content import Rating
from fulfillment.models.payment import Payment
from fulfillment.models.shipment import ShipmentRequest
from fulfillment.models.task import Approval, Task
from fulfillment.repositories.audit_repo import AuditLogRepository
from fulfillment.services.application_service import ApplicationService
from fulfillment.services.audit_service import AuditService
from fulfillment.services.content_service import ContentService
from fulfillment.services.shipment_service import ShipmentService
from tests.conftest import make_rating, reload


async def count(session, model) -> int:
    return (await session.exec(select(func.count()).select_from(model))).one()


class TestAuditTrail:
    """Tests for audit entries written by the services"""

    @pytest.mark.asyncio
    async def test_approval_is_audited_with_task_reference(self, session, seed, brand):
        campaign = await seed.campaign()
        application = await seed.application(campaign)

        result = await ApplicationService(session).approve_application(brand, application.id)

        entries = await AuditService(session).get_by_entity("application", application.id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == Actions.APPLICATION_APPROVED
        assert entry.actor_id == brand.id
        assert entry.actor_role == "brand_manager"
        assert entry.meta_data["task_id"] == str(result.task_id)
        assert entry.meta_data["payment_amount"] == "200.00"

    @pytest.mark.asyncio
    async def test_every_step_of_the_flow_is_audited(self, session, seed, flow, creator):
        campaign = await seed.campaign(products=1)

        await flow.approved_task(campaign, creator)

        actions = set((await session.exec(select(AuditLog.action))).all())
        assert {
            Actions.APPLICATION_APPROVED,
            Actions.ADDRESS_CREATED,
            Actions.ADDRESS_SUBMITTED,
            Actions.SHIPMENT_SHIPPED,
            Actions.SHIPMENT_DELIVERED,
            Actions.TASK_STARTED,
            Actions.CONTENT_UPLOADED,
            Actions.CONTENT_APPROVED,
        } <= actions

    @pytest.mark.asyncio
    async def test_audit_failure_never_fails_the_operation(self, session, seed, brand, monkeypatch):
        async def broken_log(self, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(AuditLogRepository, "log", broken_log)
        campaign = await seed.campaign(products=1)
        application = await seed.application(campaign)

        result = await ApplicationService(session).approve_application(brand, application.id)

        assert (await reload(session, Task, result.task_id)).status == "selected"
        assert (await reload(session, ShipmentRequest, result.shipment_request_id)).status == "waiting_address"
        assert await count(session, AuditLog) == 0

    @pytest.mark.asyncio
    async def test_rejected_operation_is_not_audited(self, session, seed, brand, creator):
        campaign = await seed.campaign(products=1)
        request = await ShipmentService(session).create_request(brand, campaign.id, creator.id)
        before = await count(session, AuditLog)

        with pytest.raises(PreconditionError):
            await ShipmentService(session).confirm_delivery(creator, request.id)

        assert await count(session, AuditLog) == before


class TestAtomicity:
    """Tests for single-transaction business events"""

    @pytest.mark.asyncio
    async def test_content_approval_rolls_back_when_payment_fails(self, session, seed, flow, brand, creator, monkeypatch):
        campaign = await seed.campaign()
        _, result = await flow.approve(campaign, creator)
        task_id = result.task_id
        await flow.upload(task_id, creator)
        service = ContentService(session)

        async def failing_payment(task, amount=None):
            raise RuntimeError("payment store unavailable")

        monkeypatch.setattr(service.payments, "create_payment", failing_payment)

        with pytest.raises(RuntimeError):
            await service.approve_content(brand, task_id, make_rating())

        assert (await reload(session, Task, task_id)).status == "uploaded"
        assert await count(session, Rating) == 0
        assert await count(session, Approval) == 0
        assert await count(session, Payment) == 0

    @pytest.mark.asyncio
    async def test_approval_rolls_back_when_shipment_request_fails(self, session, seed, brand, monkeypatch):
        campaign = await seed.campaign(products=1)
        application = await seed.application(campaign)
        application_id = application.id
        service = ApplicationService(session)

        async def failing_request(campaign_id, creator_id):
            raise RuntimeError("shipment store unavailable")

        monkeypatch.setattr(service.shipments, "ensure_request", failing_request)

        with pytest.raises(RuntimeError):
            await service.approve_application(brand, application_id)

        assert await count(session, Task) == 0
        assert await count(session, ShipmentRequest) == 0
        assert (await reload(session, Application, application_id)).status == "submitted"
