from __future__ import annotations
import math
from datetime import timedelta
from typing import List, Optional
from uuid import uuid4

import structlog

from . import costing
from .clock import Clock
from .completion import CompletionCascade
from .errors import AlreadyClosedError, ConflictError, InvalidInput, NotFound
from .models import EntryCost, RatePair, TaskType, TimeEntry
from .rates import RateResolver
from .repository import Repository
from .rollups import RollupAggregator

logger = structlog.get_logger(__name__)


def validate_assignment(task_type: TaskType, line_item_id: Optional[str], task_label: str) -> None:
    if not task_label or not task_label.strip():
        raise InvalidInput("Task label is required")
    if task_type == TaskType.PRODUCTIVE and not line_item_id:
        raise InvalidInput("Productive time must reference a line item")
    if task_type == TaskType.SUPPORT and line_item_id:
        raise InvalidInput("Support time belongs to the work order, not to a line item")


class TimerStore:
    """Per-worker timers: ``Idle --start--> Running --stop--> Idle``.

    A worker runs at most one timer at a time across every work order. Rates
    are resolved when the timer starts and stored on the entry, so a rate
    change never alters a timer that is already running.
    """

    def __init__(
        self,
        repository: Repository,
        rate_resolver: RateResolver,
        aggregator: RollupAggregator,
        clock: Clock,
        cascade: Optional[CompletionCascade] = None,
    ) -> None:
        self.repository = repository
        self.rate_resolver = rate_resolver
        self.aggregator = aggregator
        self.clock = clock
        self.cascade = cascade

    def _check_line_item(self, company_id: str, work_order_id: str, line_item_id: Optional[str]) -> None:
        if not line_item_id:
            return
        line_item = self.repository.get_line_item(company_id, line_item_id)
        if line_item is None:
            raise NotFound("line_item", line_item_id)
        if line_item.work_order_id != work_order_id:
            raise InvalidInput(f"Line item {line_item_id} does not belong to work order {work_order_id}")

    def start(
        self,
        company_id: str,
        worker_id: str,
        work_order_id: str,
        *,
        task_type: TaskType | str,
        task_label: str,
        line_item_id: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> str:
        task_type = TaskType(task_type)
        validate_assignment(task_type, line_item_id, task_label)

        with self.repository.atomic():
            rates = self.rate_resolver.resolve(company_id, worker_id, work_order_id)
            self._check_line_item(company_id, work_order_id, line_item_id)
            active = self.repository.find_open_entry(company_id, worker_id)
            if active is not None:
                raise ConflictError(worker_id, active.id)

            entry = TimeEntry(
                id=entry_id or str(uuid4()),
                company_id=company_id,
                worker_id=worker_id,
                work_order_id=work_order_id,
                line_item_id=line_item_id,
                task_type=task_type,
                task_label=task_label.strip(),
                started_at=self.clock.now(),
                labor_rate=rates.labor_rate,
                equipment_rate=rates.equipment_rate,
            )
            self.repository.insert_open_entry(entry)
            if line_item_id and self.cascade is not None:
                self.cascade.start_task(company_id, line_item_id)

        logger.info(
            "timer_started",
            company_id=company_id,
            worker_id=worker_id,
            work_order_id=work_order_id,
            line_item_id=line_item_id,
            time_entry_id=entry.id,
            labor_rate=rates.labor_rate,
            equipment_rate=rates.equipment_rate,
        )
        return entry.id

    def stop(self, company_id: str, entry_id: str, note: Optional[str] = None) -> EntryCost:
        with self.repository.atomic():
            entry = self.repository.get_time_entry(company_id, entry_id)
            if entry is None:
                raise NotFound("time_entry", entry_id)
            if not entry.is_open:
                raise AlreadyClosedError(entry_id)

            ended_at = self.clock.now()
            cost = costing.compute(entry.started_at, ended_at, RatePair(entry.labor_rate, entry.equipment_rate))
            entry.ended_at = ended_at
            entry.duration_hours = cost.duration_hours
            entry.total_cost = cost.total_cost
            if note is not None:
                entry.note = note
            self.repository.close_entry(entry)
            self.aggregator.recompute_for_entry(company_id, entry.work_order_id, entry.line_item_id)

        logger.info(
            "timer_stopped",
            company_id=company_id,
            worker_id=entry.worker_id,
            time_entry_id=entry_id,
            duration_hours=cost.duration_hours,
            total_cost=cost.total_cost,
        )
        return cost

    def get_open(self, company_id: str, worker_id: str) -> Optional[TimeEntry]:
        return self.repository.find_open_entry(company_id, worker_id)

    def add_manual_entry(
        self,
        company_id: str,
        worker_id: str,
        work_order_id: str,
        *,
        task_type: TaskType | str,
        task_label: str,
        duration_hours: float,
        line_item_id: Optional[str] = None,
        note: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> str:
        """Record time that was never clocked, ending now and backdated by ``duration_hours``."""
        task_type = TaskType(task_type)
        if duration_hours is None or not math.isfinite(duration_hours) or duration_hours <= 0:
            raise InvalidInput("Manual time entries need a positive duration")
        validate_assignment(task_type, line_item_id, task_label)

        with self.repository.atomic():
            rates = self.rate_resolver.resolve(company_id, worker_id, work_order_id)
            self._check_line_item(company_id, work_order_id, line_item_id)

            ended_at = self.clock.now()
            cost = costing.cost_for_duration(duration_hours, rates)
            entry = TimeEntry(
                id=entry_id or str(uuid4()),
                company_id=company_id,
                worker_id=worker_id,
                work_order_id=work_order_id,
                line_item_id=line_item_id,
                task_type=task_type,
                task_label=task_label.strip(),
                started_at=ended_at - timedelta(hours=duration_hours),
                ended_at=ended_at,
                labor_rate=rates.labor_rate,
                equipment_rate=rates.equipment_rate,
                duration_hours=cost.duration_hours,
                total_cost=cost.total_cost,
                note=note,
            )
            self.repository.insert_closed_entry(entry)
            self.aggregator.recompute_for_entry(company_id, work_order_id, line_item_id)

        logger.info(
            "manual_entry_added",
            company_id=company_id,
            worker_id=worker_id,
            work_order_id=work_order_id,
            time_entry_id=entry.id,
            duration_hours=duration_hours,
            total_cost=cost.total_cost,
        )
        return entry.id

    def entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]:
        return self.repository.entries_for_line_item(company_id, line_item_id)
