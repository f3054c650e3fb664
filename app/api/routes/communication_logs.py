from fastapi import APIRouter

from app.api.deps import DbSession, CurrentUser
from app.exceptions import NotFoundError
from app.models.campaign import Campaign
from app.models.communication_log import CommunicationLog
from app.schemas.campaign import CommunicationLogResponse, DeliveryReceiptRequest
from app.services.campaign_delivery import apply_delivery_status

router = APIRouter()


@router.post("/{log_id}/receipt", response_model=CommunicationLogResponse)
async def delivery_receipt(
    log_id: int,
    receipt: DeliveryReceiptRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Record a delivery receipt for one message."""
    log = await db.get(CommunicationLog, log_id)
    if not log:
        raise NotFoundError("Communication log", log_id)
    campaign = await db.get(Campaign, log.campaign_id)

    apply_delivery_status(
        campaign,
        log,
        receipt.status,
        error_details=receipt.error_details,
        vendor_message_id=receipt.vendor_message_id,
    )

    await db.commit()
    await db.refresh(log)
    return log
