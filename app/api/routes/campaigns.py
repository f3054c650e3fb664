"""
Campaign endpoints.

Sending a campaign resolves its segment's current audience, writes one
communication log per recipient and records the delivery metrics.
"""

from fastapi import APIRouter, status, Query
from sqlalchemy import select, func
from typing import Optional

from app.api.deps import DbSession, CurrentUser
from app.exceptions import BusinessRuleError, NotFoundError
from app.models.campaign import Campaign
from app.models.communication_log import CommunicationLog
from app.models.segment import Segment
from app.schemas.campaign import (
    CampaignCreate,
    CampaignUpdate,
    CampaignResponse,
    CampaignListResponse,
    CampaignHistoryItem,
    CampaignHistoryResponse,
    CampaignSendResponse,
    ReceiptsResponse,
)
from app.services.campaign_delivery import CampaignDeliveryService

router = APIRouter()


async def _get_campaign(db, campaign_id: int) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if not campaign:
        raise NotFoundError("Campaign", campaign_id)
    return campaign


async def _ensure_segment(db, segment_id: int) -> None:
    if await db.get(Segment, segment_id) is None:
        raise NotFoundError("Segment", segment_id)


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """List campaigns, newest first."""
    query = select(Campaign)
    if status_filter:
        query = query.where(Campaign.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(Campaign.created_at.desc(), Campaign.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return CampaignListResponse(
        items=result.scalars().all(),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    campaign_data: CampaignCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a campaign targeting an existing segment."""
    await _ensure_segment(db, campaign_data.segment_id)

    campaign = Campaign(**campaign_data.model_dump(mode="json"), created_by_user_id=current_user.id)
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    return campaign


@router.get("/history", response_model=CampaignHistoryResponse)
async def campaign_history(
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(50, ge=1, le=500),
):
    """Delivery summaries of the most recent campaigns."""
    result = await db.execute(
        select(Campaign).order_by(Campaign.created_at.desc(), Campaign.id.desc()).limit(limit)
    )
    campaigns = result.scalars().all()

    return CampaignHistoryResponse(
        campaigns=[
            CampaignHistoryItem(
                id=campaign.id,
                name=campaign.name,
                sent=campaign.sent or 0,
                failed=campaign.failed or 0,
                total=(campaign.sent or 0) + (campaign.failed or 0),
                timestamp=int(campaign.created_at.timestamp() * 1000) if campaign.created_at else 0,
            )
            for campaign in campaigns
        ]
    )


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a single campaign by ID."""
    return await _get_campaign(db, campaign_id)


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: int,
    campaign_data: CampaignUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Update a campaign that has not been sent."""
    campaign = await _get_campaign(db, campaign_id)
    if campaign.status == "completed":
        raise BusinessRuleError(f"Campaign {campaign_id} has already been sent")

    update_data = campaign_data.model_dump(mode="json", exclude_unset=True)
    if update_data.get("segment_id") is not None:
        await _ensure_segment(db, update_data["segment_id"])
    for field, value in update_data.items():
        setattr(campaign, field, value)

    await db.commit()
    await db.refresh(campaign)
    return campaign


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(
    campaign_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delete a campaign and its communication logs."""
    campaign = await _get_campaign(db, campaign_id)
    await db.delete(campaign)
    await db.commit()


@router.post("/{campaign_id}/send", response_model=CampaignSendResponse)
async def send_campaign(
    campaign_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Deliver the campaign to its segment's current audience."""
    campaign = await _get_campaign(db, campaign_id)
    summary = await CampaignDeliveryService(db).send(campaign)

    return CampaignSendResponse(
        message="Campaign sent",
        id=campaign.id,
        total=summary.total,
        sent=summary.sent,
        failed=summary.failed,
    )


@router.get("/{campaign_id}/receipts", response_model=ReceiptsResponse)
async def campaign_receipts(
    campaign_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delivery log of every recipient of the campaign."""
    await _get_campaign(db, campaign_id)
    result = await db.execute(
        select(CommunicationLog)
        .where(CommunicationLog.campaign_id == campaign_id)
        .order_by(CommunicationLog.id)
    )
    return ReceiptsResponse(receipts=result.scalars().all())
