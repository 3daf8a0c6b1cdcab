"""Derived actuals on work orders and line items.

Totals are caches over the closed time entries. Every recompute replays the
full set of closed entries instead of applying deltas, so edits, deletes and
repeated runs always land on the same numbers.
"""
from __future__ import annotations

from typing import Optional

import structlog

from .clock import Clock
from .errors import NotFound
from .models import LineItem, TaskType, WorkOrder
from .repository import Repository

logger = structlog.get_logger(__name__)


class RollupAggregator:
    def __init__(self, repository: Repository, clock: Clock) -> None:
        self.repository = repository
        self.clock = clock

    def recompute_work_order(self, company_id: str, work_order_id: str) -> WorkOrder:
        with self.repository.atomic():
            work_order = self.repository.get_work_order(company_id, work_order_id, for_update=True)
            if work_order is None:
                raise NotFound("work_order", work_order_id)

            productive_hours = 0.0
            support_hours = 0.0
            total_cost = 0.0
            for entry in self.repository.closed_entries_for_work_order(company_id, work_order_id):
                if entry.task_type == TaskType.PRODUCTIVE:
                    productive_hours += entry.duration_hours or 0.0
                else:
                    support_hours += entry.duration_hours or 0.0
                total_cost += entry.total_cost or 0.0

            work_order.actual_productive_hours = productive_hours
            work_order.actual_support_hours = support_hours
            work_order.actual_total_cost = total_cost
            work_order.updated_at = self.clock.now()
            self.repository.save_work_order(work_order)

        logger.info(
            "work_order_rolled_up",
            company_id=company_id,
            work_order_id=work_order_id,
            productive_hours=productive_hours,
            support_hours=support_hours,
            total_cost=total_cost,
        )
        return work_order

    def recompute_line_item(self, company_id: str, line_item_id: str) -> Optional[LineItem]:
        """Replay closed entries onto the line item.

        Entries may still point at a line item that has since been deleted;
        that case is skipped rather than treated as an error.
        """
        with self.repository.atomic():
            line_item = self.repository.get_line_item(company_id, line_item_id)
            if line_item is None:
                logger.info("line_item_rollup_skipped", company_id=company_id, line_item_id=line_item_id)
                return None

            hours = sum(
                entry.duration_hours or 0.0
                for entry in self.repository.closed_entries_for_line_item(company_id, line_item_id)
            )
            line_item.actual_productive_hours = hours
            if hours == 0:
                line_item.actual_production_rate = None
                line_item.variance = None
            else:
                line_item.actual_production_rate = line_item.estimated_score / hours
                line_item.variance = hours - line_item.estimated_hours
            self.repository.save_line_item(line_item)

        logger.info(
            "line_item_rolled_up",
            company_id=company_id,
            line_item_id=line_item_id,
            productive_hours=hours,
            production_rate=line_item.actual_production_rate,
        )
        return line_item

    def recompute_for_entry(self, company_id: str, work_order_id: str, line_item_id: Optional[str]) -> None:
        self.recompute_work_order(company_id, work_order_id)
        if line_item_id:
            self.recompute_line_item(company_id, line_item_id)

    def recompute_all(self, company_id: str, work_order_id: str) -> WorkOrder:
        """Rebuild the work order and every one of its line items in one unit of work."""
        with self.repository.atomic():
            work_order = self.recompute_work_order(company_id, work_order_id)
            for line_item in self.repository.list_line_items(company_id, work_order_id):
                self.recompute_line_item(company_id, line_item.id)
        return work_order
