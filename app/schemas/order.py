from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Literal


OrderStatus = Literal["pending", "processing", "completed", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed"]


class OrderItem(BaseModel):
    name: str
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    """Schema for recording an order."""
    customer_id: int
    order_number: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., ge=0)
    items: list[OrderItem] = Field(default_factory=list)
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"


class OrderResponse(BaseModel):
    id: int
    customer_id: int
    order_number: str
    amount: float
    items: list[OrderItem] = Field(default_factory=list)
    status: OrderStatus
    payment_status: PaymentStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
