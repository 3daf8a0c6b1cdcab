from __future__ import annotations
from typing import Optional
from uuid import uuid4

import structlog

from .clock import Clock
from .completion import TEAR_DOWN_SERVICE
from .errors import NotFound
from .models import LineItem, WorkOrder, WorkOrderSnapshot, WorkOrderStatus
from .repository import Repository

logger = structlog.get_logger(__name__)

# service_type, display name, estimated hours, price, sort order
DEFAULT_OVERHEAD_ITEMS = [
    ("transport", "Transport", 1.0, 500.0, 0.0),
    ("setup", "Setup", 0.5, 250.0, 0.5),
    (TEAR_DOWN_SERVICE, "Tear Down", 1.0, 500.0, 99.0),
]


def work_order_number(sequence: int) -> str:
    return f"WO-{sequence:04d}"


def create_work_order(
    repository: Repository,
    clock: Clock,
    company_id: str,
    *,
    loadout_id: Optional[str] = None,
    notes: Optional[str] = None,
    status: WorkOrderStatus = WorkOrderStatus.SCHEDULED,
    work_order_id: Optional[str] = None,
    with_overhead: bool = True,
) -> WorkOrder:
    """Create a numbered work order seeded with the transport/setup/tear-down overhead items."""
    with repository.atomic():
        if loadout_id and repository.get_loadout(company_id, loadout_id) is None:
            raise NotFound("loadout", loadout_id)

        now = clock.now()
        work_order = WorkOrder(
            id=work_order_id or str(uuid4()),
            company_id=company_id,
            number=work_order_number(len(repository.list_work_orders(company_id)) + 1),
            status=WorkOrderStatus(status),
            loadout_id=loadout_id,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        overhead = DEFAULT_OVERHEAD_ITEMS if with_overhead else []
        for service_type, display_name, hours, price, sort_order in overhead:
            work_order.estimated_total_hours += hours
            work_order.total_investment += price
        repository.add_work_order(work_order)
        for service_type, display_name, hours, price, sort_order in overhead:
            repository.add_line_item(
                LineItem(
                    id=str(uuid4()),
                    company_id=company_id,
                    work_order_id=work_order.id,
                    display_name=display_name,
                    service_type=service_type,
                    estimated_hours=hours,
                    estimated_score=1.0,
                    line_item_total=price,
                    sort_order=sort_order,
                )
            )

    logger.info("work_order_created", company_id=company_id, work_order_id=work_order.id, number=work_order.number)
    return work_order


def assign_loadout(repository: Repository, clock: Clock, company_id: str, work_order_id: str, loadout_id: Optional[str]) -> WorkOrder:
    """Point the work order at a loadout; timers already running keep the rates they started with."""
    with repository.atomic():
        work_order = repository.get_work_order(company_id, work_order_id, for_update=True)
        if work_order is None:
            raise NotFound("work_order", work_order_id)
        if loadout_id and repository.get_loadout(company_id, loadout_id) is None:
            raise NotFound("loadout", loadout_id)
        work_order.loadout_id = loadout_id
        work_order.updated_at = clock.now()
        repository.save_work_order(work_order)
    return work_order


def snapshot(repository: Repository, company_id: str, work_order_id: str) -> WorkOrderSnapshot:
    work_order = repository.get_work_order(company_id, work_order_id)
    if work_order is None:
        raise NotFound("work_order", work_order_id)
    entries = repository.entries_for_work_order(company_id, work_order_id)
    return WorkOrderSnapshot(
        work_order=work_order,
        line_items=repository.list_line_items(company_id, work_order_id),
        time_entries=sorted(entries, key=lambda e: e.started_at, reverse=True),
    )
