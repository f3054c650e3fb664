from fastapi import APIRouter, status, Query
from sqlalchemy import select, func
from typing import Optional

from app.api.deps import DbSession, CurrentUser
from app.exceptions import NotFoundError
from app.models.order import Order
from app.schemas.order import OrderCreate, OrderResponse, OrderListResponse
from app.services.order_service import record_order

router = APIRouter()


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    customer_id: Optional[int] = None,
):
    """List orders, newest first."""
    query = select(Order)
    if customer_id is not None:
        query = query.where(Order.customer_id == customer_id)

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return OrderListResponse(
        items=result.scalars().all(),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Record an order and update the customer's spend and visits."""
    return await record_order(db, order_data)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a single order by ID."""
    order = await db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order", order_id)
    return order
