"""
Segment model.

A segment is a named audience defined by a rule tree. The estimated audience
is a cached count that is only refreshed by an explicit recompute (on create,
on rules change, or on demand) and may be stale in between.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Segment(Base):
    """Rule-defined customer audience."""

    __tablename__ = "segments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)

    # Rule tree, e.g.
    # {
    #   "condition": "AND",
    #   "rules": [
    #     {"field": "totalSpend", "operator": ">", "value": 10000},
    #     {"field": "visits", "operator": "<", "value": 3}
    #   ]
    # }
    rules = Column(JSON, nullable=False)

    # Cached audience size
    estimated_audience = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime(timezone=True), server_default=func.now())

    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    campaigns = relationship("Campaign", back_populates="segment")

    def __repr__(self):
        return f"<Segment id={self.id} name='{self.name}' audience={self.estimated_audience}>"
