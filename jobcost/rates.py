from __future__ import annotations

import structlog

from .errors import NotFound
from .models import RatePair, WorkOrder, Worker
from .repository import Repository

# Labor rate used when a worker has neither an effective nor a burdened rate.
DEFAULT_LABOR_RATE = 40.0

logger = structlog.get_logger(__name__)


def labor_rate_for(worker: Worker, default_rate: float = DEFAULT_LABOR_RATE) -> float:
    """Effective rate, else fully-burdened rate, else ``default_rate``.

    Zero counts as unset, so a worker record with blank rate fields still
    prices at the default.
    """
    for rate in (worker.effective_rate, worker.fully_burdened_rate):
        if rate:
            return float(rate)
    return float(default_rate)


class RateResolver:
    def __init__(self, repository: Repository, default_labor_rate: float = DEFAULT_LABOR_RATE) -> None:
        self.repository = repository
        self.default_labor_rate = default_labor_rate

    def resolve(self, company_id: str, worker_id: str, work_order_id: str) -> RatePair:
        worker = self.repository.get_worker(company_id, worker_id)
        if worker is None:
            raise NotFound("worker", worker_id)
        work_order = self.repository.get_work_order(company_id, work_order_id)
        if work_order is None:
            raise NotFound("work_order", work_order_id)
        return RatePair(
            labor_rate=labor_rate_for(worker, self.default_labor_rate),
            equipment_rate=self.equipment_rate(work_order),
        )

    def equipment_rate(self, work_order: WorkOrder) -> float:
        if not work_order.loadout_id:
            return 0.0
        loadout = self.repository.get_loadout(work_order.company_id, work_order.loadout_id)
        if loadout is None:
            logger.warning(
                "loadout_missing",
                company_id=work_order.company_id,
                work_order_id=work_order.id,
                loadout_id=work_order.loadout_id,
            )
            return 0.0
        total = 0.0
        for equipment_id in loadout.equipment_ids:
            equipment = self.repository.get_equipment(work_order.company_id, equipment_id)
            if equipment is None:
                continue
            total += float(equipment.hourly_cost or 0.0)
        return total
