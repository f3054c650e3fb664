"""Marketing campaign models."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base

# Delivery counters kept on every campaign
CAMPAIGN_METRICS = (
    "sent",
    "delivered",
    "opened",
    "clicked",
    "bounced",
    "complained",
    "unsubscribed",
    "failed",
)


class Campaign(Base):
    """Campaign targeting one segment."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    type = Column(SQLEnum("email", "sms", "push", name="campaign_type_enum"), nullable=False)
    status = Column(
        SQLEnum("draft", "scheduled", "active", "completed", "paused", name="campaign_status_enum"),
        default="draft",
        nullable=False,
        index=True,
    )

    segment_id = Column(Integer, ForeignKey("segments.id", ondelete="RESTRICT"), nullable=False)

    # {"subject": ..., "body": ..., "template": ..., "attachments": [...]}
    content = Column(JSON, nullable=False)
    # {"start_date": ..., "end_date": ..., "frequency": "once|daily|weekly|monthly", "timezone": ...}
    schedule = Column(JSON)

    # Metrics
    sent = Column(Integer, default=0, nullable=False)
    delivered = Column(Integer, default=0, nullable=False)
    opened = Column(Integer, default=0, nullable=False)
    clicked = Column(Integer, default=0, nullable=False)
    bounced = Column(Integer, default=0, nullable=False)
    complained = Column(Integer, default=0, nullable=False)
    unsubscribed = Column(Integer, default=0, nullable=False)
    failed = Column(Integer, default=0, nullable=False)

    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    segment = relationship("Segment", back_populates="campaigns")
    communication_logs = relationship(
        "CommunicationLog", back_populates="campaign", cascade="all, delete-orphan"
    )

    @property
    def metrics(self) -> dict:
        return {name: getattr(self, name) or 0 for name in CAMPAIGN_METRICS}

    def __repr__(self):
        return f"<Campaign id={self.id} name='{self.name}' status={self.status}>"
