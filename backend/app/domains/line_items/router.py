from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_company_id, get_engine
from app.api.schemas import TimeEntryOut, WorkOrderOut
from jobcost.engine import JobCostingEngine

router = APIRouter(prefix="/line-items", tags=["line-items"])


@router.delete("/{line_item_id}", response_model=WorkOrderOut)
def delete_line_item(
    line_item_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    return WorkOrderOut.model_validate(engine.completion.delete_line_item(company_id, line_item_id))


@router.post("/{line_item_id}/complete", response_model=WorkOrderOut)
def complete_line_item(
    line_item_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    return WorkOrderOut.model_validate(engine.completion.mark_complete(company_id, line_item_id))


@router.post("/{line_item_id}/reopen", response_model=WorkOrderOut)
def reopen_line_item(
    line_item_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkOrderOut:
    return WorkOrderOut.model_validate(engine.completion.reopen_task(company_id, line_item_id))


@router.get("/{line_item_id}/time-entries", response_model=list[TimeEntryOut])
def line_item_time_entries(
    line_item_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> list[TimeEntryOut]:
    return [TimeEntryOut.model_validate(entry) for entry in engine.timers.entries_for_line_item(company_id, line_item_id)]
