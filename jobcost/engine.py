from __future__ import annotations
from typing import Optional

from . import work_orders
from .clock import Clock, SystemClock
from .completion import CompletionCascade
from .models import WorkOrder, WorkOrderSnapshot, WorkOrderStatus
from .rates import DEFAULT_LABOR_RATE, RateResolver
from .reports import ProjectReport, build_project_report
from .repository import Repository
from .rollups import RollupAggregator
from .time_tracking import TimerStore


class JobCostingEngine:
    """Wires the rate resolver, timers, rollups and completion cascade over one repository."""

    def __init__(
        self,
        repository: Repository,
        clock: Optional[Clock] = None,
        default_labor_rate: float = DEFAULT_LABOR_RATE,
    ) -> None:
        self.repository = repository
        self.clock = clock or SystemClock()
        self.rates = RateResolver(repository, default_labor_rate)
        self.rollups = RollupAggregator(repository, self.clock)
        self.completion = CompletionCascade(repository, self.clock)
        self.timers = TimerStore(repository, self.rates, self.rollups, self.clock, cascade=self.completion)

    def create_work_order(
        self,
        company_id: str,
        *,
        loadout_id: Optional[str] = None,
        notes: Optional[str] = None,
        status: WorkOrderStatus = WorkOrderStatus.SCHEDULED,
        with_overhead: bool = True,
    ) -> WorkOrder:
        return work_orders.create_work_order(
            self.repository,
            self.clock,
            company_id,
            loadout_id=loadout_id,
            notes=notes,
            status=status,
            with_overhead=with_overhead,
        )

    def assign_loadout(self, company_id: str, work_order_id: str, loadout_id: Optional[str]) -> WorkOrder:
        return work_orders.assign_loadout(self.repository, self.clock, company_id, work_order_id, loadout_id)

    def snapshot(self, company_id: str, work_order_id: str) -> WorkOrderSnapshot:
        return work_orders.snapshot(self.repository, company_id, work_order_id)

    def project_report(self, company_id: str, work_order_id: str) -> ProjectReport:
        return build_project_report(self.repository, company_id, work_order_id)
