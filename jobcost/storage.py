from __future__ import annotations
import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from pathlib import Path

from .clock import ensure_utc
from .models import (
    Equipment,
    LineItem,
    LineItemStatus,
    Loadout,
    TaskType,
    TimeEntry,
    WorkOrder,
    WorkOrderStatus,
    Worker,
)
from .repository import InMemoryRepository


class JsonRepository(InMemoryRepository):
    """In-memory repository written to a JSON file after every committed unit of work."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.exists():
            self.load()

    def _commit(self) -> None:
        super()._commit()
        self.save()

    def load(self) -> None:
        content = json.loads(self.path.read_text())
        self.workers = {w["id"]: Worker(**w) for w in content.get("workers", [])}
        self.equipment = {e["id"]: Equipment(**e) for e in content.get("equipment", [])}
        self.loadouts = {lo["id"]: Loadout(**lo) for lo in content.get("loadouts", [])}
        self.work_orders = {w["id"]: self._deserialize_work_order(w) for w in content.get("work_orders", [])}
        self.line_items = {li["id"]: self._deserialize_line_item(li) for li in content.get("line_items", [])}
        self.time_entries = {t["id"]: self._deserialize_time_entry(t) for t in content.get("time_entries", [])}

    def save(self) -> None:
        payload = {
            "workers": [asdict(w) for w in self.workers.values()],
            "equipment": [asdict(e) for e in self.equipment.values()],
            "loadouts": [asdict(lo) for lo in self.loadouts.values()],
            "work_orders": [asdict(w) for w in self.work_orders.values()],
            "line_items": [asdict(li) for li in self.line_items.values()],
            "time_entries": [asdict(t) for t in self.time_entries.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, default=self._serializer, indent=2))

    @staticmethod
    def _serializer(value):
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        raise TypeError(f"Type {type(value)} not serializable")

    @staticmethod
    def _parse_datetime(value: str | None) -> datetime | None:
        if not value:
            return None
        return ensure_utc(datetime.fromisoformat(value))

    def _deserialize_work_order(self, data: dict) -> WorkOrder:
        data["status"] = WorkOrderStatus(data["status"])
        for key in ("completed_at", "created_at", "updated_at"):
            data[key] = self._parse_datetime(data.get(key))
        return WorkOrder(**data)

    def _deserialize_line_item(self, data: dict) -> LineItem:
        data["status"] = LineItemStatus(data["status"])
        return LineItem(**data)

    def _deserialize_time_entry(self, data: dict) -> TimeEntry:
        data["task_type"] = TaskType(data["task_type"])
        data["started_at"] = self._parse_datetime(data["started_at"])
        data["ended_at"] = self._parse_datetime(data.get("ended_at"))
        return TimeEntry(**data)
