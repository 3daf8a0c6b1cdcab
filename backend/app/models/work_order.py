from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkOrder(Base):
    __tablename__ = "work_orders"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    number = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    loadout_id = Column(String(36), ForeignKey("loadouts.id"), nullable=True)
    estimated_total_hours = Column(Float, nullable=False, default=0.0)
    total_investment = Column(Float, nullable=False, default=0.0)
    actual_productive_hours = Column(Float, nullable=False, default=0.0)
    actual_support_hours = Column(Float, nullable=False, default=0.0)
    actual_total_cost = Column(Float, nullable=False, default=0.0)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)
    version = Column(Integer, nullable=False, default=0)
