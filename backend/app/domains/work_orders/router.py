from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_company_id, get_engine
from app.api.schemas import LineItemOut, WorkOrderOut, WorkOrderSnapshotOut
from app.core.logging import get_logger
from jobcost.engine import JobCostingEngine
from jobcost.models import WorkOrderStatus

router = APIRouter(prefix="/work-orders", tags=["work-orders"])
logger = get_logger(__name__)


class WorkOrderCreate(BaseModel):
    loadout_id: str | None = None
    notes: str | None = None
    status: WorkOrderStatus = WorkOrderStatus.SCHEDULED
    with_overhead: bool = True


class LoadoutAssignment(BaseModel):
    loadout_id: str | None = None


class LineItemCreate(BaseModel):
    display_name: str = Field(..., min_length=1)
    service_type: str = Field(..., min_length=1)
    estimated_hours: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    estimated_score: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    line_item_total: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    sort_order: float | None = None


@router.get("", response_model=list[WorkOrderOut])
def list_work_orders(
    company_id: str = Depends(get_company_id), engine: JobCostingEngine = Depends(get_engine)
) -> list[WorkOrderOut]:
    return [WorkOrderOut.model_validate(wo) for wo in engine.repository.list_work_orders(company_id)]


@router.post("", response_model=WorkOrderOut, status_code=201)
def create_work_order(
    payload: WorkOrderCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    work_order = engine.create_work_order(
        company_id,
        loadout_id=payload.loadout_id,
        notes=payload.notes,
        status=payload.status,
        with_overhead=payload.with_overhead,
    )
    return WorkOrderOut.model_validate(work_order)


@router.get("/{work_order_id}", response_model=WorkOrderSnapshotOut)
def get_work_order(
    work_order_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderSnapshotOut:
    return WorkOrderSnapshotOut.model_validate(engine.snapshot(company_id, work_order_id))


@router.put("/{work_order_id}/loadout", response_model=WorkOrderOut)
def assign_loadout(
    work_order_id: str,
    payload: LoadoutAssignment,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    return WorkOrderOut.model_validate(engine.assign_loadout(company_id, work_order_id, payload.loadout_id))


@router.post("/{work_order_id}/recompute", response_model=WorkOrderOut)
def recompute_work_order(
    work_order_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    work_order = engine.rollups.recompute_all(company_id, work_order_id)
    logger.info("work_order_recomputed", company_id=company_id, work_order_id=work_order_id)
    return WorkOrderOut.model_validate(work_order)


@router.post("/{work_order_id}/complete", response_model=WorkOrderOut)
def complete_work_order(
    work_order_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    return WorkOrderOut.model_validate(engine.completion.mark_work_order_complete(company_id, work_order_id))


@router.post("/{work_order_id}/line-items", response_model=LineItemOut, status_code=201)
def add_line_item(
    work_order_id: str,
    payload: LineItemCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> LineItemOut:
    line_item = engine.completion.add_line_item(
        company_id,
        work_order_id,
        display_name=payload.display_name,
        service_type=payload.service_type,
        estimated_hours=payload.estimated_hours,
        estimated_score=payload.estimated_score,
        line_item_total=payload.line_item_total,
        sort_order=payload.sort_order,
    )
    return LineItemOut.model_validate(line_item)
