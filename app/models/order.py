"""Customer orders. Each new order feeds the customer's spend and visit counters."""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Order(Base):
    """Customer order."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    order_number = Column(String(100), unique=True, nullable=False)
    amount = Column(Float, nullable=False)
    items = Column(JSON, default=list)  # [{"name": ..., "quantity": ..., "price": ...}]

    status = Column(
        SQLEnum("pending", "processing", "completed", "cancelled", name="order_status_enum"),
        default="pending",
        nullable=False,
    )
    payment_status = Column(
        SQLEnum("pending", "paid", "failed", name="order_payment_status_enum"),
        default="pending",
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", back_populates="orders")

    def __repr__(self):
        return f"<Order {self.order_number} amount={self.amount}>"
