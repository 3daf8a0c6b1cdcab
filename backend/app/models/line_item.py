from sqlalchemy import Column, Float, ForeignKey, Integer, String

from app.db.session import Base


class LineItem(Base):
    __tablename__ = "line_items"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    work_order_id = Column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    display_name = Column(String(200), nullable=False)
    service_type = Column(String(50), nullable=False)
    estimated_hours = Column(Float, nullable=False, default=0.0)
    estimated_score = Column(Float, nullable=False, default=0.0)
    line_item_total = Column(Float, nullable=False, default=0.0)
    status = Column(String(20), nullable=False, default="not_started")
    sort_order = Column(Float, nullable=False, default=0.0)
    actual_productive_hours = Column(Float, nullable=False, default=0.0)
    actual_production_rate = Column(Float, nullable=True)
    variance = Column(Float, nullable=True)
    version = Column(Integer, nullable=False, default=0)
