from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_company_id, get_engine
from app.core.logging import get_logger
from jobcost.engine import JobCostingEngine
from jobcost.models import Equipment, Loadout

router = APIRouter(tags=["equipment"])
logger = get_logger(__name__)


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    hourly_cost: float = Field(default=0.0, ge=0)


class EquipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    hourly_cost: float
    is_active: bool


class LoadoutCreate(BaseModel):
    name: str = Field(..., min_length=1)
    equipment_ids: list[str] = []


class LoadoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    equipment_ids: list[str]


@router.post("/equipment", response_model=EquipmentOut, status_code=201)
def create_equipment(
    payload: EquipmentCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> EquipmentOut:
    equipment = Equipment(id=str(uuid4()), company_id=company_id, name=payload.name, hourly_cost=payload.hourly_cost)
    engine.repository.add_equipment(equipment)
    logger.info("equipment_created", company_id=company_id, equipment_id=equipment.id)
    return EquipmentOut.model_validate(equipment)


@router.post("/loadouts", response_model=LoadoutOut, status_code=201)
def create_loadout(
    payload: LoadoutCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> LoadoutOut:
    missing = [eid for eid in payload.equipment_ids if engine.repository.get_equipment(company_id, eid) is None]
    if missing:
        raise HTTPException(status_code=422, detail=f"Unknown equipment: {', '.join(missing)}")
    loadout = Loadout(id=str(uuid4()), company_id=company_id, name=payload.name, equipment_ids=payload.equipment_ids)
    engine.repository.add_loadout(loadout)
    return LoadoutOut.model_validate(loadout)
