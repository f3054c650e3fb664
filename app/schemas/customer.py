from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional


class CustomerBase(BaseModel):
    """Base customer schema."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    total_spend: float = Field(0, ge=0)
    visits: int = Field(0, ge=0)
    last_visit: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)


class CustomerCreate(CustomerBase):
    """Schema for creating a customer."""
    pass


class CustomerUpdate(BaseModel):
    """Schema for updating a customer (all fields optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    total_spend: Optional[float] = Field(None, ge=0)
    visits: Optional[int] = Field(None, ge=0)
    last_visit: Optional[datetime] = None
    tags: Optional[list[str]] = None


class CustomerResponse(CustomerBase):
    """Schema for customer response."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    """Paginated customer list response."""
    customers: list[CustomerResponse]
    current_page: int
    total_pages: int
    total_customers: int


class BulkCustomerResponse(BaseModel):
    """Result of a bulk customer import."""
    message: str
    customer_ids: list[int]
