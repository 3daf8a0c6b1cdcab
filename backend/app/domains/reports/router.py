from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from app.api.deps import get_company_id, get_engine
from jobcost.engine import JobCostingEngine

router = APIRouter(prefix="/reports", tags=["reports"])


class WorkerTimeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    worker_name: str
    productive_hours: float
    support_hours: float
    total_hours: float
    total_cost: float
    entry_count: int


class ProjectReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_order_id: str
    work_order_number: str
    status: str
    completed_at: datetime | None
    estimated_total_hours: float
    actual_productive_hours: float
    actual_support_hours: float
    total_hours: float
    total_investment: float
    actual_total_cost: float
    profit: float
    profit_margin: float
    line_items: list[dict[str, Any]]
    workers: list[WorkerTimeOut]
    notes: str | None


@router.get("/work-orders/{work_order_id}", response_model=ProjectReportOut)
def project_report(
    work_order_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> ProjectReportOut:
    return ProjectReportOut.model_validate(engine.project_report(company_id, work_order_id))
