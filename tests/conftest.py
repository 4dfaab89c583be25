"""
Shared fixtures: in-memory database, actors, seed data and workflow shortcuts.
"""
import uuid
from decimal import Decimal
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.core.events import DomainEvent, event_bus
from fulfillment.core.security import Actor, Role
from fulfillment.database import init_db
from fulfillment.models.application import Application
from fulfillment.models.campaign import Campaign, CampaignProduct
from fulfillment.schemas.content import UploadCreate, RatingInput
from fulfillment.schemas.shipment import AddressCreate
from fulfillment.services.application_service import ApplicationService
from fulfillment.services.content_service import ContentService
from fulfillment.services.shipment_service import ShipmentService
from fulfillment.services.task_service import TaskService


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


async def reload(session: AsyncSession, model, id):
    """Fresh copy of a row, bypassing anything cached or expired in the session."""
    return await session.get(model, id, populate_existing=True)


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def brand():
    return Actor(id=uuid.uuid4(), role=Role.BRAND_MANAGER)


@pytest.fixture
def creator():
    return Actor(id=uuid.uuid4(), role=Role.CREATOR)


@pytest.fixture
def admin():
    return Actor(id=uuid.uuid4(), role=Role.ADMIN)


@pytest.fixture
def finance():
    return Actor(id=uuid.uuid4(), role=Role.FINANCE)


@pytest.fixture
def make_creator():
    def _make() -> Actor:
        return Actor(id=uuid.uuid4(), role=Role.CREATOR)
    return _make


# =============================================================================
# Events
# =============================================================================

@pytest.fixture(autouse=True)
def clean_event_bus():
    event_bus.clear()
    yield
    event_bus.clear()


@pytest.fixture
def captured_events() -> List[DomainEvent]:
    events: List[DomainEvent] = []

    async def capture(event: DomainEvent) -> None:
        events.append(event)

    event_bus.subscribe("*", capture)
    return events


# =============================================================================
# Seed data
# =============================================================================

class Seed:
    """Inserts rows directly, bypassing the services."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def campaign(
        self,
        fixed_price: Optional[Decimal] = Decimal("200.00"),
        products: int = 0,
        status: str = "open",
        brand_id: Optional[uuid.UUID] = None,
    ) -> Campaign:
        campaign = await self._save(Campaign(
            brand_id=brand_id or uuid.uuid4(),
            title="Summer UGC",
            fixed_price=fixed_price,
            status=status,
        ))
        for index in range(products):
            await self._save(CampaignProduct(campaign_id=campaign.id, name=f"Product {index + 1}"))
        return campaign

    async def application(
        self,
        campaign: Campaign,
        creator_id: Optional[uuid.UUID] = None,
        status: str = "submitted",
    ) -> Application:
        return await self._save(Application(
            campaign_id=campaign.id,
            creator_id=creator_id or uuid.uuid4(),
            status=status,
        ))


@pytest.fixture
def seed(session):
    return Seed(session)


def make_upload(size_bytes: int = 5 * 1024 * 1024, content_type: str = "video/mp4") -> UploadCreate:
    return UploadCreate(
        storage_path=f"uploads/{uuid.uuid4()}/clip.mp4",
        filename="clip.mp4",
        content_type=content_type,
        size_bytes=size_bytes,
        deliverable_type="short_video",
    )


def make_rating(quality: int = 5, timeliness: int = 5, communication: int = 5) -> RatingInput:
    return RatingInput(quality=quality, timeliness=timeliness, communication=communication)


def make_address() -> AddressCreate:
    return AddressCreate(
        full_name="Noa Levi",
        phone="+972501234567",
        street="Herzl",
        house_number="12",
        city="Tel Aviv",
        postal_code="6100000",
    )


# =============================================================================
# Workflow shortcuts
# =============================================================================

class Flow:
    """Drives a task through the workflow with the real services."""

    def __init__(self, session: AsyncSession, brand: Actor, admin: Actor):
        self.session = session
        self.brand = brand
        self.admin = admin

    async def approve(self, campaign: Campaign, creator: Actor, custom_price: Optional[Decimal] = None):
        application = await Seed(self.session).application(campaign, creator.id)
        result = await ApplicationService(self.session).approve_application(
            self.brand, application.id, custom_price
        )
        return application, result

    async def deliver(self, request_id: uuid.UUID, creator: Actor) -> None:
        shipments = ShipmentService(self.session)
        address = await shipments.add_address(creator, make_address())
        await shipments.submit_address(creator, request_id, address.id)
        await shipments.mark_shipped(self.brand, request_id, tracking_number="XYZ123", carrier="DHL")
        await shipments.confirm_delivery(creator, request_id)

    async def upload(self, task_id: uuid.UUID, creator: Actor):
        await TaskService(self.session).start_work(creator, task_id)
        return await ContentService(self.session).upload_content(creator, task_id, make_upload())

    async def approved_task(self, campaign: Campaign, creator: Actor, custom_price: Optional[Decimal] = None):
        """Approve an application and push its task to content approval. Returns (task_id, payment)."""
        _, result = await self.approve(campaign, creator, custom_price)
        if result.shipment_request_id:
            await self.deliver(result.shipment_request_id, creator)
        await self.upload(result.task_id, creator)
        payment = await ContentService(self.session).approve_content(self.brand, result.task_id, make_rating())
        return result.task_id, payment


@pytest.fixture
def flow(session, brand, admin):
    return Flow(session, brand, admin)
