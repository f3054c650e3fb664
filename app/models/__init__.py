from app.models.user import User
from app.models.customer import Customer
from app.models.order import Order
from app.models.segment import Segment
from app.models.campaign import Campaign, CAMPAIGN_METRICS
from app.models.communication_log import CommunicationLog

__all__ = [
    "User",
    "Customer",
    "Order",
    "Segment",
    "Campaign",
    "CAMPAIGN_METRICS",
    "CommunicationLog",
]
