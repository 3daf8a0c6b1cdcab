"""Line-item status transitions and their effect on the parent work order.

Line items move ``not_started -> in_progress -> completed`` and can be
reopened ``completed -> in_progress``. A work order is completed exactly when
all of its line items are; reopening any item reopens the work order.

Each transition locks the parent work order and re-reads the siblings inside
the same unit of work, so concurrent completions of different siblings end
in the same state as some serial order of them.
"""
from __future__ import annotations

import math
from typing import List, Optional
from uuid import uuid4

import structlog

from .clock import Clock
from .errors import InvalidInput, NotFound
from .models import LineItem, LineItemStatus, WorkOrder, WorkOrderStatus
from .repository import Repository

logger = structlog.get_logger(__name__)

# Tear-down always sorts last; new scope is appended in front of it.
TEAR_DOWN_SERVICE = "tear_down"


class CompletionCascade:
    def __init__(self, repository: Repository, clock: Clock) -> None:
        self.repository = repository
        self.clock = clock

    def _line_item(self, company_id: str, line_item_id: str) -> LineItem:
        line_item = self.repository.get_line_item(company_id, line_item_id)
        if line_item is None:
            raise NotFound("line_item", line_item_id)
        return line_item

    def _locked_work_order(self, company_id: str, work_order_id: str) -> WorkOrder:
        work_order = self.repository.get_work_order(company_id, work_order_id, for_update=True)
        if work_order is None:
            raise NotFound("work_order", work_order_id)
        return work_order

    def _complete_work_order(self, work_order: WorkOrder) -> None:
        now = self.clock.now()
        work_order.status = WorkOrderStatus.COMPLETED
        work_order.completed_at = now
        work_order.updated_at = now
        self.repository.save_work_order(work_order)
        logger.info("work_order_completed", company_id=work_order.company_id, work_order_id=work_order.id)

    def _reopen_work_order(self, work_order: WorkOrder) -> None:
        work_order.status = WorkOrderStatus.IN_PROGRESS
        work_order.completed_at = None
        work_order.updated_at = self.clock.now()
        self.repository.save_work_order(work_order)
        logger.info("work_order_reopened", company_id=work_order.company_id, work_order_id=work_order.id)

    def mark_complete(self, company_id: str, line_item_id: str) -> WorkOrder:
        with self.repository.atomic():
            line_item = self._line_item(company_id, line_item_id)
            work_order = self._locked_work_order(company_id, line_item.work_order_id)

            line_item.status = LineItemStatus.COMPLETED
            self.repository.save_line_item(line_item)

            siblings = self.repository.list_line_items(company_id, work_order.id)
            all_complete = all(item.status == LineItemStatus.COMPLETED for item in siblings)
            if all_complete and work_order.status != WorkOrderStatus.COMPLETED:
                self._complete_work_order(work_order)
            else:
                # version bump: concurrent sibling completions must conflict on the parent
                work_order.updated_at = self.clock.now()
                self.repository.save_work_order(work_order)

        logger.info(
            "line_item_completed",
            company_id=company_id,
            line_item_id=line_item_id,
            work_order_id=work_order.id,
            work_order_status=work_order.status.value,
        )
        return work_order

    def reopen_task(self, company_id: str, line_item_id: str) -> WorkOrder:
        with self.repository.atomic():
            line_item = self._line_item(company_id, line_item_id)
            work_order = self._locked_work_order(company_id, line_item.work_order_id)

            line_item.status = LineItemStatus.IN_PROGRESS
            self.repository.save_line_item(line_item)

            if work_order.status == WorkOrderStatus.COMPLETED:
                self._reopen_work_order(work_order)

        logger.info("line_item_reopened", company_id=company_id, line_item_id=line_item_id)
        return work_order

    def start_task(self, company_id: str, line_item_id: str) -> Optional[LineItem]:
        """Move a not-started line item to in progress; other states are left alone."""
        with self.repository.atomic():
            line_item = self._line_item(company_id, line_item_id)
            if line_item.status != LineItemStatus.NOT_STARTED:
                return None
            line_item.status = LineItemStatus.IN_PROGRESS
            self.repository.save_line_item(line_item)
            work_order = self._locked_work_order(company_id, line_item.work_order_id)
            if work_order.status in (WorkOrderStatus.SCHEDULED, WorkOrderStatus.ACCEPTED):
                work_order.status = WorkOrderStatus.IN_PROGRESS
                work_order.updated_at = self.clock.now()
                self.repository.save_work_order(work_order)
        return line_item

    def mark_work_order_complete(self, company_id: str, work_order_id: str) -> WorkOrder:
        with self.repository.atomic():
            work_order = self._locked_work_order(company_id, work_order_id)
            for item in self.repository.list_line_items(company_id, work_order_id):
                if item.status != LineItemStatus.COMPLETED:
                    item.status = LineItemStatus.COMPLETED
                    self.repository.save_line_item(item)
            self._complete_work_order(work_order)
        return work_order

    def add_line_item(
        self,
        company_id: str,
        work_order_id: str,
        *,
        display_name: str,
        service_type: str,
        estimated_hours: float,
        estimated_score: float = 0.0,
        line_item_total: float = 0.0,
        sort_order: Optional[float] = None,
        line_item_id: Optional[str] = None,
    ) -> LineItem:
        if not all(math.isfinite(value) and value >= 0 for value in (estimated_hours, estimated_score, line_item_total)):
            raise InvalidInput("Estimates and line item total must be finite and not negative")

        with self.repository.atomic():
            work_order = self._locked_work_order(company_id, work_order_id)
            siblings = self.repository.list_line_items(company_id, work_order_id)
            if sort_order is None:
                sort_order = next_sort_order(siblings)

            line_item = LineItem(
                id=line_item_id or str(uuid4()),
                company_id=company_id,
                work_order_id=work_order_id,
                display_name=display_name,
                service_type=service_type,
                estimated_hours=estimated_hours,
                estimated_score=estimated_score,
                line_item_total=line_item_total,
                sort_order=sort_order,
            )
            self.repository.add_line_item(line_item)

            work_order.estimated_total_hours += estimated_hours
            work_order.total_investment += line_item_total
            if work_order.status == WorkOrderStatus.COMPLETED:
                work_order.status = WorkOrderStatus.IN_PROGRESS
                work_order.completed_at = None
            work_order.updated_at = self.clock.now()
            self.repository.save_work_order(work_order)

        logger.info(
            "line_item_added",
            company_id=company_id,
            work_order_id=work_order_id,
            line_item_id=line_item.id,
            estimated_hours=estimated_hours,
        )
        return line_item

    def delete_line_item(self, company_id: str, line_item_id: str) -> WorkOrder:
        with self.repository.atomic():
            line_item = self._line_item(company_id, line_item_id)
            work_order = self._locked_work_order(company_id, line_item.work_order_id)

            work_order.estimated_total_hours = max(0.0, work_order.estimated_total_hours - line_item.estimated_hours)
            work_order.total_investment = max(0.0, work_order.total_investment - line_item.line_item_total)
            self.repository.delete_line_item(company_id, line_item_id)

            remaining = self.repository.list_line_items(company_id, work_order.id)
            if (
                remaining
                and all(item.status == LineItemStatus.COMPLETED for item in remaining)
                and work_order.status != WorkOrderStatus.COMPLETED
            ):
                self._complete_work_order(work_order)
            else:
                work_order.updated_at = self.clock.now()
                self.repository.save_work_order(work_order)

        logger.info("line_item_deleted", company_id=company_id, line_item_id=line_item_id)
        return work_order


def next_sort_order(siblings: List[LineItem]) -> float:
    orders = [item.sort_order for item in siblings if item.service_type != TEAR_DOWN_SERVICE]
    return max(orders + [1.0]) + 1
