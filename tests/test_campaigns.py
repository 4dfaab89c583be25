"""
Campaigns: creation and the retroactive shipment backfill on the first product.
"""
import uuid

import pytest
from sqlmodel import select

from fulfillment.core.exceptions import NotFoundError, ForbiddenError
from fulfillment.models.shipment import ShipmentRequest
from fulfillment.models.task import Task
from fulfillment.schemas.campaign import CampaignCreate, CampaignProductCreate
from fulfillment.services.application_service import ApplicationService
from fulfillment.services.campaign_service import CampaignService
from fulfillment.services.payment_service import PaymentService
from tests.conftest import reload


async def shipment_requests(session, campaign_id):
    result = await session.exec(select(ShipmentRequest).where(ShipmentRequest.campaign_id == campaign_id))
    return result.all()


class TestCreateCampaign:
    """Tests for create / get"""

    @pytest.mark.asyncio
    async def test_create_with_products(self, session, brand):
        service = CampaignService(session)

        campaign = await service.create(brand, CampaignCreate(
            title="Sunscreen launch",
            fixed_price=300,
            products=[CampaignProductCreate(name="SPF50", sku="SUN-50")],
        ))

        assert campaign.brand_id == brand.id
        assert campaign.currency == "ILS"
        assert campaign.status == "open"
        products = await service.list_products(campaign.id)
        assert [product.sku for product in products] == ["SUN-50"]
        assert (await service.get(campaign.id)).title == "Sunscreen launch"

    @pytest.mark.asyncio
    async def test_creator_cannot_create(self, session, creator):
        with pytest.raises(ForbiddenError):
            await CampaignService(session).create(creator, CampaignCreate(title="Nope"))

    @pytest.mark.asyncio
    async def test_get_missing(self, session):
        with pytest.raises(NotFoundError):
            await CampaignService(session).get(uuid.uuid4())


class TestProductBackfill:
    """Tests for add_product / backfill_shipments"""

    @pytest.mark.asyncio
    async def test_first_product_backfills_approved_creators(self, session, seed, flow, brand, make_creator):
        # Given two approved creators and one pending applicant on a product-less campaign
        campaign = await seed.campaign()
        _, first = await flow.approve(campaign, make_creator())
        _, second = await flow.approve(campaign, make_creator())
        pending = await seed.application(campaign)
        assert await shipment_requests(session, campaign.id) == []

        # When the first product is added
        await CampaignService(session).add_product(brand, campaign.id, CampaignProductCreate(name="Serum"))

        # Then each approved creator gets a waiting request and a product task
        requests = await shipment_requests(session, campaign.id)
        assert len(requests) == 2
        assert {request.status for request in requests} == {"waiting_address"}
        assert pending.creator_id not in {request.creator_id for request in requests}
        for result in (first, second):
            task = await reload(session, Task, result.task_id)
            assert task.requires_product is True
            assert task.shipment_request_id in {request.id for request in requests}

    @pytest.mark.asyncio
    async def test_second_product_does_not_backfill_again(self, session, seed, flow, brand, creator):
        campaign = await seed.campaign(products=1)
        await flow.approve(campaign, creator)
        service = CampaignService(session)

        await service.add_product(brand, campaign.id, CampaignProductCreate(name="Serum"))

        assert len(await shipment_requests(session, campaign.id)) == 1

    @pytest.mark.asyncio
    async def test_paid_tasks_are_not_flagged(self, session, seed, flow, brand, creator, finance):
        campaign = await seed.campaign()
        task_id, payment = await flow.approved_task(campaign, creator)
        await PaymentService(session).mark_paid(finance, payment.id)

        await CampaignService(session).add_product(brand, campaign.id, CampaignProductCreate(name="Serum"))

        task = await reload(session, Task, task_id)
        assert task.requires_product is False
        assert task.status == "paid"

    @pytest.mark.asyncio
    async def test_manual_backfill_skips_creators_with_requests(self, session, seed, flow, brand, make_creator):
        campaign = await seed.campaign(products=1)
        await flow.approve(campaign, make_creator())
        service = ApplicationService(session)

        created = await service.backfill_shipments(brand, campaign.id)

        assert created == 0
        assert len(await shipment_requests(session, campaign.id)) == 1
