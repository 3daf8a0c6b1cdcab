from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TaskType(str, Enum):
    PRODUCTIVE = "productive"
    SUPPORT = "support"


class LineItemStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WorkOrderStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Worker:
    id: str
    company_id: str
    name: str
    effective_rate: Optional[float] = None
    fully_burdened_rate: Optional[float] = None
    is_active: bool = True


@dataclass
class Equipment:
    id: str
    company_id: str
    name: str
    hourly_cost: float = 0.0
    is_active: bool = True


@dataclass
class Loadout:
    id: str
    company_id: str
    name: str
    equipment_ids: List[str] = field(default_factory=list)


@dataclass
class WorkOrder:
    id: str
    company_id: str
    number: str
    status: WorkOrderStatus = WorkOrderStatus.SCHEDULED
    loadout_id: Optional[str] = None
    estimated_total_hours: float = 0.0
    total_investment: float = 0.0
    actual_productive_hours: float = 0.0
    actual_support_hours: float = 0.0
    actual_total_cost: float = 0.0
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @property
    def actual_total_hours(self) -> float:
        return self.actual_productive_hours + self.actual_support_hours


@dataclass
class LineItem:
    id: str
    company_id: str
    work_order_id: str
    display_name: str
    service_type: str
    estimated_hours: float = 0.0
    estimated_score: float = 0.0
    line_item_total: float = 0.0
    status: LineItemStatus = LineItemStatus.NOT_STARTED
    sort_order: float = 0.0
    actual_productive_hours: float = 0.0
    actual_production_rate: Optional[float] = None  # score per actual hour
    variance: Optional[float] = None  # actual - estimated hours
    version: int = 0


@dataclass
class TimeEntry:
    id: str
    company_id: str
    worker_id: str
    work_order_id: str
    task_type: TaskType
    task_label: str
    started_at: datetime
    labor_rate: float
    equipment_rate: float
    line_item_id: Optional[str] = None
    ended_at: Optional[datetime] = None
    duration_hours: Optional[float] = None
    total_cost: Optional[float] = None
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def hourly_cost(self) -> float:
        return self.labor_rate + self.equipment_rate


@dataclass(frozen=True)
class RatePair:
    labor_rate: float
    equipment_rate: float = 0.0

    @property
    def hourly_total(self) -> float:
        return self.labor_rate + self.equipment_rate


@dataclass(frozen=True)
class EntryCost:
    duration_hours: float
    total_cost: float


@dataclass
class WorkOrderSnapshot:
    work_order: WorkOrder
    line_items: List[LineItem] = field(default_factory=list)
    time_entries: List[TimeEntry] = field(default_factory=list)

    def open_entries(self) -> List[TimeEntry]:
        return [entry for entry in self.time_entries if entry.is_open]
