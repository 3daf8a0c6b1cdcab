from sqlalchemy import Boolean, Column, Float, String

from app.db.session import Base


class Worker(Base):
    __tablename__ = "workers"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    # either rate may be null; 0 counts as unset
    effective_rate = Column(Float, nullable=True)
    fully_burdened_rate = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
