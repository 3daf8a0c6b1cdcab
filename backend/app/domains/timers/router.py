from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_company_id, get_engine
from app.api.schemas import TimeEntryOut
from app.core.observability import get_tracer, record_timer_event
from jobcost.engine import JobCostingEngine
from jobcost.models import TaskType

router = APIRouter(prefix="/timers", tags=["timers"])


class TimerStart(BaseModel):
    worker_id: str
    work_order_id: str
    task_type: TaskType
    task_label: str
    line_item_id: str | None = None


class TimerStop(BaseModel):
    note: str | None = None


class ManualEntryCreate(TimerStart):
    duration_hours: float = Field(..., gt=0, allow_inf_nan=False)
    note: str | None = None


class TimerStarted(BaseModel):
    time_entry_id: str


class TimerStopped(BaseModel):
    time_entry_id: str
    duration_hours: float
    total_cost: float


@router.post("/start", response_model=TimerStarted, status_code=201)
def start_timer(
    payload: TimerStart,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> TimerStarted:
    with get_tracer().start_as_current_span("timers.start"):
        entry_id = engine.timers.start(
            company_id,
            payload.worker_id,
            payload.work_order_id,
            task_type=payload.task_type,
            task_label=payload.task_label,
            line_item_id=payload.line_item_id,
        )
    record_timer_event("started", company_id)
    return TimerStarted(time_entry_id=entry_id)


@router.post("/{entry_id}/stop", response_model=TimerStopped)
def stop_timer(
    entry_id: str,
    payload: TimerStop | None = None,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> TimerStopped:
    with get_tracer().start_as_current_span("timers.stop"):
        cost = engine.timers.stop(company_id, entry_id, note=payload.note if payload else None)
    record_timer_event("stopped", company_id)
    return TimerStopped(time_entry_id=entry_id, duration_hours=cost.duration_hours, total_cost=cost.total_cost)


@router.get("/active/{worker_id}", response_model=TimeEntryOut | None)
def active_timer(
    worker_id: str,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> TimeEntryOut | None:
    entry = engine.timers.get_open(company_id, worker_id)
    return TimeEntryOut.model_validate(entry) if entry else None


@router.post("/manual", response_model=TimerStarted, status_code=201)
def add_manual_entry(
    payload: ManualEntryCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> TimerStarted:
    entry_id = engine.timers.add_manual_entry(
        company_id,
        payload.worker_id,
        payload.work_order_id,
        task_type=payload.task_type,
        task_label=payload.task_label,
        duration_hours=payload.duration_hours,
        line_item_id=payload.line_item_id,
        note=payload.note,
    )
    record_timer_event("manual", company_id)
    return TimerStarted(time_entry_id=entry_id)
