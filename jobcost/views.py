from __future__ import annotations
from typing import Dict, Iterable, Optional

from .models import TimeEntry, WorkOrderSnapshot
from .reports import ProjectReport


def format_timesheet(entries: Iterable[TimeEntry], worker_names: Optional[Dict[str, str]] = None) -> str:
    names = worker_names or {}
    rows = ["Timesheet", "Started           Worker        Type        Task                Hours     Cost"]
    total_hours = 0.0
    total_cost = 0.0
    for entry in sorted(entries, key=lambda e: e.started_at):
        worker = names.get(entry.worker_id, entry.worker_id)
        started = entry.started_at.strftime("%Y-%m-%d %H:%M")
        if entry.is_open:
            rows.append(f"{started}  {worker:<12.12}  {entry.task_type.value:<10}  {entry.task_label:<18.18}  running")
            continue
        hours = entry.duration_hours or 0.0
        cost = entry.total_cost or 0.0
        total_hours += hours
        total_cost += cost
        rows.append(
            f"{started}  {worker:<12.12}  {entry.task_type.value:<10}  {entry.task_label:<18.18}  {hours:>5.2f}  {cost:>8.2f}"
        )
    rows.append(f"Total hours: {total_hours:.2f}  Total cost: {total_cost:.2f}")
    return "\n".join(rows)


def format_work_order(snapshot: WorkOrderSnapshot) -> str:
    work_order = snapshot.work_order
    rows = [
        f"{work_order.number} [{work_order.status.value}]",
        f"Estimated hours: {work_order.estimated_total_hours:.2f}  Investment: {work_order.total_investment:.2f}",
        f"Actual productive: {work_order.actual_productive_hours:.2f}  support: {work_order.actual_support_hours:.2f}  cost: {work_order.actual_total_cost:.2f}",
        "Line item                 Status        Est h   Act h  Variance  Rate",
    ]
    for item in snapshot.line_items:
        variance = f"{item.variance:>8.2f}" if item.variance is not None else f"{'-':>8}"
        rate = f"{item.actual_production_rate:.2f}" if item.actual_production_rate is not None else "-"
        rows.append(
            f"{item.display_name:<24.24}  {item.status.value:<12}  {item.estimated_hours:>5.2f}  {item.actual_productive_hours:>6.2f}  {variance}  {rate}"
        )
    running = len(snapshot.open_entries())
    if running:
        rows.append(f"Running timers: {running}")
    return "\n".join(rows)


def format_report(report: ProjectReport) -> str:
    rows = [
        f"Project report {report.work_order_number} ({report.status})",
        f"Hours: {report.total_hours:.2f} of {report.estimated_total_hours:.2f} estimated",
        f"Investment: {report.total_investment:.2f}  Cost: {report.actual_total_cost:.2f}  Profit: {report.profit:.2f} ({report.profit_margin:.1f}%)",
    ]
    for worker in report.workers:
        rows.append(
            f"  {worker.worker_name:<20.20} productive {worker.productive_hours:>6.2f}  support {worker.support_hours:>6.2f}  cost {worker.total_cost:>9.2f}"
        )
    return "\n".join(rows)
