from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .errors import NotFound
from .models import LineItem, TaskType, TimeEntry, WorkOrder
from .repository import Repository

ReportRow = Dict[str, Any]


@dataclass
class WorkerTime:
    worker_id: str
    worker_name: str
    productive_hours: float = 0.0
    support_hours: float = 0.0
    total_cost: float = 0.0
    entry_count: int = 0

    @property
    def total_hours(self) -> float:
        return self.productive_hours + self.support_hours


@dataclass
class ProjectReport:
    company_id: str
    work_order_id: str
    work_order_number: str
    status: str
    completed_at: Optional[datetime]
    estimated_total_hours: float
    actual_productive_hours: float
    actual_support_hours: float
    total_hours: float
    total_investment: float
    actual_total_cost: float
    profit: float
    profit_margin: float
    line_items: List[ReportRow] = field(default_factory=list)
    workers: List[WorkerTime] = field(default_factory=list)
    notes: Optional[str] = None


def profit_margin(investment: float, cost: float) -> float:
    if investment <= 0:
        return 0.0
    return (investment - cost) / investment * 100


def _line_item_rows(line_items: Iterable[LineItem]) -> List[ReportRow]:
    return [
        {
            "line_item_id": item.id,
            "display_name": item.display_name,
            "service_type": item.service_type,
            "status": item.status.value,
            "estimated_hours": item.estimated_hours,
            "actual_productive_hours": item.actual_productive_hours,
            "variance": item.variance or 0.0,
            "production_rate": item.actual_production_rate,
            "line_item_total": item.line_item_total,
        }
        for item in line_items
    ]


def group_by_worker(entries: Iterable[TimeEntry], names: Dict[str, str]) -> List[WorkerTime]:
    """Closed time per worker, largest total first; open timers are left out."""
    grouped: Dict[str, WorkerTime] = {}
    for entry in entries:
        if entry.is_open:
            continue
        bucket = grouped.get(entry.worker_id)
        if bucket is None:
            bucket = WorkerTime(worker_id=entry.worker_id, worker_name=names.get(entry.worker_id, "Unknown"))
            grouped[entry.worker_id] = bucket
        if entry.task_type == TaskType.PRODUCTIVE:
            bucket.productive_hours += entry.duration_hours or 0.0
        else:
            bucket.support_hours += entry.duration_hours or 0.0
        bucket.total_cost += entry.total_cost or 0.0
        bucket.entry_count += 1
    return sorted(grouped.values(), key=lambda w: (-w.total_hours, w.worker_name))


def build_project_report(repository: Repository, company_id: str, work_order_id: str) -> ProjectReport:
    work_order: Optional[WorkOrder] = repository.get_work_order(company_id, work_order_id)
    if work_order is None:
        raise NotFound("work_order", work_order_id)

    line_items = repository.list_line_items(company_id, work_order_id)
    entries = repository.entries_for_work_order(company_id, work_order_id)
    names: Dict[str, str] = {}
    for worker_id in {entry.worker_id for entry in entries}:
        worker = repository.get_worker(company_id, worker_id)
        if worker is not None:
            names[worker_id] = worker.name

    cost = work_order.actual_total_cost
    investment = work_order.total_investment
    return ProjectReport(
        company_id=company_id,
        work_order_id=work_order.id,
        work_order_number=work_order.number,
        status=work_order.status.value,
        completed_at=work_order.completed_at,
        estimated_total_hours=work_order.estimated_total_hours,
        actual_productive_hours=work_order.actual_productive_hours,
        actual_support_hours=work_order.actual_support_hours,
        total_hours=work_order.actual_total_hours,
        total_investment=investment,
        actual_total_cost=cost,
        profit=investment - cost,
        profit_margin=profit_margin(investment, cost),
        line_items=_line_item_rows(line_items),
        workers=group_by_worker(entries, names),
        notes=work_order.notes,
    )


def summary_row(report: ProjectReport) -> ReportRow:
    return {
        "work_order": report.work_order_number,
        "status": report.status,
        "estimated_hours": round(report.estimated_total_hours, 2),
        "productive_hours": round(report.actual_productive_hours, 2),
        "support_hours": round(report.actual_support_hours, 2),
        "total_hours": round(report.total_hours, 2),
        "investment": round(report.total_investment, 2),
        "actual_cost": round(report.actual_total_cost, 2),
        "profit": round(report.profit, 2),
        "profit_margin": round(report.profit_margin, 2),
    }


def report_rows(report: ProjectReport) -> List[ReportRow]:
    """Flatten a report into uniform rows: one per line item, then one per worker."""
    rows: List[ReportRow] = []
    for item in report.line_items:
        rows.append(
            {
                "section": "line_item",
                "work_order": report.work_order_number,
                "name": item["display_name"],
                "status": item["status"],
                "estimated_hours": round(item["estimated_hours"], 2),
                "productive_hours": round(item["actual_productive_hours"], 2),
                "support_hours": 0.0,
                "variance": round(item["variance"], 2),
                "cost": "",
            }
        )
    for worker in report.workers:
        rows.append(
            {
                "section": "worker",
                "work_order": report.work_order_number,
                "name": worker.worker_name,
                "status": "",
                "estimated_hours": "",
                "productive_hours": round(worker.productive_hours, 2),
                "support_hours": round(worker.support_hours, 2),
                "variance": "",
                "cost": round(worker.total_cost, 2),
            }
        )
    return rows
