from __future__ import annotations
import csv
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable

from .models import TimeEntry


CSV_HEADERS = [
    "id",
    "worker_id",
    "work_order_id",
    "line_item_id",
    "task_type",
    "task_label",
    "started_at",
    "ended_at",
    "labor_rate",
    "equipment_rate",
    "duration_hours",
    "total_cost",
    "note",
]


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def export_time_entries(path: Path, entries: Iterable[TimeEntry]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_HEADERS)
        writer.writeheader()
        for entry in entries:
            writer.writerow(
                {
                    "id": entry.id,
                    "worker_id": entry.worker_id,
                    "work_order_id": entry.work_order_id,
                    "line_item_id": entry.line_item_id or "",
                    "task_type": entry.task_type.value,
                    "task_label": entry.task_label,
                    "started_at": entry.started_at.isoformat(),
                    "ended_at": _stringify(entry.ended_at),
                    "labor_rate": entry.labor_rate,
                    "equipment_rate": entry.equipment_rate,
                    "duration_hours": _stringify(entry.duration_hours),
                    "total_cost": _stringify(entry.total_cost),
                    "note": entry.note or "",
                }
            )
    return path


def export_rows(rows: Iterable[Dict[str, Any]], output_path: Path) -> Path:
    rows = list(rows)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        if not rows:
            return output_path
        writer = csv.DictWriter(handle, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        for row in rows:
            writer.writerow({key: _stringify(value) for key, value in row.items()})
    return output_path
