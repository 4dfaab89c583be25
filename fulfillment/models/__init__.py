# Models package - normalized database models
from fulfillment.models.campaign import Campaign, CampaignProduct
from fulfillment.models.application import Application, ApplicationFeedback
from fulfillment.models.task import Task, Approval
from fulfillment.models.shipment import ShipmentRequest, ShipmentAddress, Shipment
from fulfillment.models.content import Upload, RevisionRequest, Rating
from fulfillment.models.payment import Payment, BatchPayout
from fulfillment.models.dispute import Dispute
from fulfillment.models.audit import AuditLog
