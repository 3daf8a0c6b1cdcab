from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from jobcost.models import LineItemStatus, TaskType, WorkOrderStatus


class TimeEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    worker_id: str
    work_order_id: str
    line_item_id: str | None
    task_type: TaskType
    task_label: str
    started_at: datetime
    ended_at: datetime | None
    labor_rate: float
    equipment_rate: float
    duration_hours: float | None
    total_cost: float | None
    note: str | None


class LineItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    work_order_id: str
    display_name: str
    service_type: str
    estimated_hours: float
    estimated_score: float
    line_item_total: float
    status: LineItemStatus
    sort_order: float
    actual_productive_hours: float
    actual_production_rate: float | None
    variance: float | None


class WorkOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    number: str
    status: WorkOrderStatus
    loadout_id: str | None
    estimated_total_hours: float
    total_investment: float
    actual_productive_hours: float
    actual_support_hours: float
    actual_total_hours: float
    actual_total_cost: float
    completed_at: datetime | None
    notes: str | None
    version: int


class WorkOrderSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_order: WorkOrderOut
    line_items: list[LineItemOut]
    time_entries: list[TimeEntryOut]
