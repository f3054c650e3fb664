"""
Campaign Delivery Service

Sends a campaign to its segment's audience and keeps the per-recipient
communication log and the campaign's delivery metrics in sync.

There is no external message vendor: handing a message to the channel is
simulated, and the outcome (sent, or failed with a reason) is recorded in
the communication log exactly as a vendor response would be. Later
delivery receipts move logs to delivered or failed.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import BusinessRuleError, ConflictError, NotFoundError
from app.models.campaign import Campaign
from app.models.communication_log import CommunicationLog
from app.models.segment import Segment
from app.services.segments.audience import AudienceService
from app.services.segments.fields import CustomerRecord

logger = logging.getLogger(__name__)

# Statuses that bump the campaign metric of the same name
COUNTED_STATUSES = ("sent", "delivered", "failed")

# Allowed status transitions of a communication log
TRANSITIONS = {
    "queued": {"sent", "failed"},
    "sent": {"delivered", "failed"},
    "delivered": set(),
    "failed": set(),
}


@dataclass
class DeliverySummary:
    """Outcome of sending a campaign."""

    campaign_id: int
    total: int = 0
    sent: int = 0
    failed: int = 0


def render_message(campaign: Campaign, customer: CustomerRecord) -> str:
    """Fill the {{name}} and {{email}} placeholders of the campaign body."""
    content = campaign.content or {}
    body = content.get("body", "")
    return body.replace("{{name}}", customer.name or "").replace("{{email}}", customer.email or "")


def apply_delivery_status(
    campaign: Campaign,
    log: CommunicationLog,
    status: str,
    error_details: Optional[str] = None,
    vendor_message_id: Optional[str] = None,
) -> None:
    """
    Move a communication log to a new status and update campaign metrics.

    Raises:
        ConflictError: The transition is not allowed from the current status
    """
    current = log.status or "queued"
    if status not in TRANSITIONS.get(current, set()):
        raise ConflictError(f"Cannot change delivery status from '{current}' to '{status}'")

    now = datetime.now(timezone.utc)
    log.status = status
    if vendor_message_id:
        log.vendor_message_id = vendor_message_id
    if status == "sent":
        log.sent_at = now
    elif status == "delivered":
        log.delivered_at = now
    elif status == "failed":
        log.error_details = error_details or log.error_details

    if status in COUNTED_STATUSES:
        setattr(campaign, status, (getattr(campaign, status) or 0) + 1)
    # A bounced message is no longer counted as sent
    if current == "sent" and status == "failed":
        campaign.sent = max((campaign.sent or 0) - 1, 0)


def dispatch(campaign: Campaign, customer: CustomerRecord) -> Tuple[str, Optional[str]]:
    """
    Hand one message to the campaign's channel.

    Returns:
        Tuple of (status, error_details)
    """
    if campaign.type == "email" and not customer.email:
        return "failed", "Customer has no email address"
    if campaign.type == "sms" and not customer.phone:
        return "failed", "Customer has no phone number"
    return "sent", None


class CampaignDeliveryService:
    """Delivers campaigns to segment audiences."""

    def __init__(self, db: AsyncSession, audience: Optional[AudienceService] = None):
        self.db = db
        self.audience = audience or AudienceService(db)

    async def send(self, campaign: Campaign) -> DeliverySummary:
        """
        Send a campaign to every customer currently matching its segment.

        Args:
            campaign: Campaign to send (must not be completed)

        Returns:
            DeliverySummary with per-status counts
        """
        if campaign.status == "completed":
            raise BusinessRuleError(f"Campaign {campaign.id} has already been sent")

        segment = await self.db.get(Segment, campaign.segment_id)
        if segment is None:
            raise NotFoundError("Segment", campaign.segment_id)

        summary = DeliverySummary(campaign_id=campaign.id)
        campaign.status = "active"

        async for customer in self.audience.members(segment.rules):
            log = CommunicationLog(
                campaign_id=campaign.id,
                customer_id=customer.id,
                message=render_message(campaign, customer),
                status="queued",
                extra={"channel": campaign.type},
            )
            self.db.add(log)

            status, error = dispatch(campaign, customer)
            vendor_id = uuid.uuid4().hex if status == "sent" else None
            apply_delivery_status(campaign, log, status, error_details=error, vendor_message_id=vendor_id)

            summary.total += 1
            if status == "sent":
                summary.sent += 1
            else:
                summary.failed += 1

        campaign.status = "completed"
        await self.db.commit()
        await self.db.refresh(campaign)

        logger.info(
            "Campaign %s sent to segment %s: %d total, %d sent, %d failed",
            campaign.id,
            segment.id,
            summary.total,
            summary.sent,
            summary.failed,
        )
        return summary
