"""
Order ingestion.

Recording an order updates the customer's behavioral attributes used by
segment rules: total spend grows by the order amount, visits by one, and
the last visit moves to the order time.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError
from app.models.customer import Customer
from app.models.order import Order
from app.schemas.order import OrderCreate

logger = logging.getLogger(__name__)


async def record_order(db: AsyncSession, order_data: OrderCreate) -> Order:
    """Persist an order and roll it into the customer's spend and visit stats."""
    customer = await db.get(Customer, order_data.customer_id)
    if customer is None:
        raise NotFoundError("Customer", order_data.customer_id)

    existing = await db.execute(select(Order.id).where(Order.order_number == order_data.order_number))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"Order number {order_data.order_number} already exists")

    placed_at = datetime.now(timezone.utc)
    order = Order(**order_data.model_dump(mode="json"), created_at=placed_at)
    db.add(order)

    customer.total_spend = (customer.total_spend or 0) + order_data.amount
    customer.visits = (customer.visits or 0) + 1
    customer.last_visit = placed_at

    await db.commit()
    await db.refresh(order)

    logger.info("Recorded order %s for customer %s", order.order_number, customer.id)
    return order
