from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Customer(Base):
    """Customer model. Spend, visits and last visit are maintained by order ingestion."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50))

    # Behavioral attributes used by segment rules
    total_spend = Column(Float, default=0, nullable=False)
    visits = Column(Integer, default=0, nullable=False)
    last_visit = Column(DateTime(timezone=True))
    tags = Column(JSON, default=list)  # ["vip", "newsletter"]

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship("Order", back_populates="customer", cascade="all, delete-orphan")
    communication_logs = relationship(
        "CommunicationLog", back_populates="customer", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Customer {self.name} <{self.email}>>"
