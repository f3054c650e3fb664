"""Per-recipient delivery log for campaigns."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class CommunicationLog(Base):
    """One campaign message to one customer, with its delivery status."""

    __tablename__ = "communication_logs"
    __table_args__ = (
        Index("ix_communication_logs_campaign_customer", "campaign_id", "customer_id"),
        Index("ix_communication_logs_status_campaign", "status", "campaign_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(
        SQLEnum("queued", "sent", "delivered", "failed", name="communication_status_enum"),
        default="queued",
        nullable=False,
    )
    vendor_message_id = Column(String(255), index=True)
    error_details = Column(Text)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON)

    sent_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    campaign = relationship("Campaign", back_populates="communication_logs")
    customer = relationship("Customer", back_populates="communication_logs")

    def __repr__(self):
        return f"<CommunicationLog id={self.id} campaign={self.campaign_id} status={self.status}>"
