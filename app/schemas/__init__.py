from app.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListResponse,
    BulkCustomerResponse,
)
from app.schemas.order import OrderCreate, OrderResponse, OrderListResponse
from app.schemas.segment import (
    SegmentCreate,
    SegmentUpdate,
    SegmentResponse,
    SegmentListResponse,
    SegmentPreviewRequest,
    SegmentPreviewResponse,
    SegmentMatchResponse,
)
from app.schemas.campaign import (
    CampaignCreate,
    CampaignUpdate,
    CampaignResponse,
    CampaignListResponse,
    CampaignHistoryResponse,
    CampaignSendResponse,
    CommunicationLogResponse,
    ReceiptsResponse,
    DeliveryReceiptRequest,
)
from app.schemas.auth import UserResponse, AuthMeResponse, TokenData, GoogleProfile
