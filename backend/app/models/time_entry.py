from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String, Text, text

from app.db.session import Base

OPEN_ENTRY_CLAUSE = "ended_at IS NULL"


class TimeEntry(Base):
    __tablename__ = "time_entries"
    __table_args__ = (
        # at most one running timer per worker
        Index(
            "uq_time_entries_open_worker",
            "worker_id",
            unique=True,
            sqlite_where=text(OPEN_ENTRY_CLAUSE),
            postgresql_where=text(OPEN_ENTRY_CLAUSE),
        ),
    )

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    worker_id = Column(String(36), ForeignKey("workers.id"), nullable=False, index=True)
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)
    line_item_id = Column(String(36), nullable=True, index=True)
    task_type = Column(String(20), nullable=False)
    task_label = Column(String(200), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    labor_rate = Column(Float, nullable=False)
    equipment_rate = Column(Float, nullable=False, default=0.0)
    duration_hours = Column(Float, nullable=True)
    total_cost = Column(Float, nullable=True)
    note = Column(Text, nullable=True)
