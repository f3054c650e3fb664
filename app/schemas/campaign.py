"""
Campaign Schemas
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Literal, Any


CampaignType = Literal["email", "sms", "push"]
CampaignStatus = Literal["draft", "scheduled", "active", "completed", "paused"]
DeliveryStatus = Literal["queued", "sent", "delivered", "failed"]


class CampaignContent(BaseModel):
    subject: Optional[str] = None
    body: str = Field(..., min_length=1)
    template: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)


class CampaignSchedule(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    frequency: Optional[Literal["once", "daily", "weekly", "monthly"]] = None
    timezone: Optional[str] = None


class CampaignBase(BaseModel):
    """Base campaign schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: CampaignType
    segment_id: int
    content: CampaignContent
    schedule: Optional[CampaignSchedule] = None


class CampaignCreate(CampaignBase):
    """Schema for creating a campaign."""
    status: CampaignStatus = "draft"


class CampaignUpdate(BaseModel):
    """Schema for updating a campaign."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[CampaignType] = None
    status: Optional[CampaignStatus] = None
    segment_id: Optional[int] = None
    content: Optional[CampaignContent] = None
    schedule: Optional[CampaignSchedule] = None


class CampaignMetrics(BaseModel):
    sent: int = 0
    delivered: int = 0
    opened: int = 0
    clicked: int = 0
    bounced: int = 0
    complained: int = 0
    unsubscribed: int = 0
    failed: int = 0


class CampaignResponse(CampaignBase):
    """Campaign response schema."""
    id: int
    status: CampaignStatus
    metrics: CampaignMetrics
    created_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CampaignListResponse(BaseModel):
    items: list[CampaignResponse]
    total: int
    page: int
    page_size: int


class CampaignHistoryItem(BaseModel):
    """Delivery summary of one campaign."""
    id: int
    name: str
    sent: int
    failed: int
    total: int
    timestamp: int  # epoch milliseconds of creation


class CampaignHistoryResponse(BaseModel):
    campaigns: list[CampaignHistoryItem]


class CampaignSendResponse(BaseModel):
    message: str
    id: int
    total: int
    sent: int
    failed: int


class CommunicationLogResponse(BaseModel):
    id: int
    campaign_id: int
    customer_id: int
    message: str
    status: DeliveryStatus
    vendor_message_id: Optional[str] = None
    error_details: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra")
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReceiptsResponse(BaseModel):
    receipts: list[CommunicationLogResponse]


class DeliveryReceiptRequest(BaseModel):
    """Vendor delivery callback for one communication log."""
    status: Literal["delivered", "failed"]
    vendor_message_id: Optional[str] = None
    error_details: Optional[str] = None
