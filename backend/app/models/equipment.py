from sqlalchemy import Boolean, Column, Float, ForeignKey, String, Table
from sqlalchemy.orm import relationship

from app.db.session import Base

loadout_equipment = Table(
    "loadout_equipment",
    Base.metadata,
    Column("loadout_id", String(36), ForeignKey("loadouts.id", ondelete="CASCADE"), primary_key=True),
    Column("equipment_id", String(36), ForeignKey("equipment.id", ondelete="CASCADE"), primary_key=True),
)


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    hourly_cost = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)


class Loadout(Base):
    __tablename__ = "loadouts"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    equipment = relationship("Equipment", secondary=loadout_equipment, lazy="selectin")
