from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import models as tables
from app.core.logging import get_logger
from jobcost.clock import ensure_utc
from jobcost.errors import AlreadyClosedError, ConflictError, NotFound, StaleWriteError
from jobcost.models import (
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
from jobcost.repository import Repository

logger = get_logger(__name__)

WORK_ORDER_FIELDS = (
    "number",
    "status",
    "loadout_id",
    "estimated_total_hours",
    "total_investment",
    "actual_productive_hours",
    "actual_support_hours",
    "actual_total_cost",
    "completed_at",
    "notes",
    "created_at",
    "updated_at",
)
LINE_ITEM_FIELDS = (
    "display_name",
    "service_type",
    "estimated_hours",
    "estimated_score",
    "line_item_total",
    "status",
    "sort_order",
    "actual_productive_hours",
    "actual_production_rate",
    "variance",
)


def _utc(value):
    return ensure_utc(value) if value is not None else None


def _column_values(obj: Any, names: tuple[str, ...]) -> dict[str, Any]:
    values = {}
    for name in names:
        value = getattr(obj, name)
        values[name] = value.value if isinstance(value, (WorkOrderStatus, LineItemStatus, TaskType)) else value
    return values


def _worker(row: tables.Worker) -> Worker:
    return Worker(
        id=row.id,
        company_id=row.company_id,
        name=row.name,
        effective_rate=row.effective_rate,
        fully_burdened_rate=row.fully_burdened_rate,
        is_active=row.is_active,
    )


def _work_order(row: tables.WorkOrder) -> WorkOrder:
    return WorkOrder(
        id=row.id,
        company_id=row.company_id,
        number=row.number,
        status=WorkOrderStatus(row.status),
        loadout_id=row.loadout_id,
        estimated_total_hours=row.estimated_total_hours,
        total_investment=row.total_investment,
        actual_productive_hours=row.actual_productive_hours,
        actual_support_hours=row.actual_support_hours,
        actual_total_cost=row.actual_total_cost,
        completed_at=_utc(row.completed_at),
        notes=row.notes,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        version=row.version,
    )


def _line_item(row: tables.LineItem) -> LineItem:
    return LineItem(
        id=row.id,
        company_id=row.company_id,
        work_order_id=row.work_order_id,
        display_name=row.display_name,
        service_type=row.service_type,
        estimated_hours=row.estimated_hours,
        estimated_score=row.estimated_score,
        line_item_total=row.line_item_total,
        status=LineItemStatus(row.status),
        sort_order=row.sort_order,
        actual_productive_hours=row.actual_productive_hours,
        actual_production_rate=row.actual_production_rate,
        variance=row.variance,
        version=row.version,
    )


def _time_entry(row: tables.TimeEntry) -> TimeEntry:
    return TimeEntry(
        id=row.id,
        company_id=row.company_id,
        worker_id=row.worker_id,
        work_order_id=row.work_order_id,
        line_item_id=row.line_item_id,
        task_type=TaskType(row.task_type),
        task_label=row.task_label,
        started_at=ensure_utc(row.started_at),
        ended_at=_utc(row.ended_at),
        labor_rate=row.labor_rate,
        equipment_rate=row.equipment_rate,
        duration_hours=row.duration_hours,
        total_cost=row.total_cost,
        note=row.note,
    )


class SqlRepository(Repository):
    """Repository over one SQLAlchemy session.

    The session's transaction is the unit of work. Version checks run as
    ``UPDATE ... WHERE version = :expected`` and the open-timer rule is backed
    by a partial unique index on ``time_entries(worker_id)``.
    """

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session

    def _commit(self) -> None:
        self.session.commit()

    def _rollback(self) -> None:
        self.session.rollback()

    def _one(self, stmt) -> Optional[Any]:
        return self.session.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def _all(self, stmt) -> list:
        return list(self.session.execute(stmt.execution_options(populate_existing=True)).scalars())

    def _add(self, row: Any) -> None:
        with self.atomic():
            self.session.add(row)
            self.session.flush()

    # reference data ----------------------------------------------------
    def get_worker(self, company_id: str, worker_id: str) -> Optional[Worker]:
        row = self._one(
            select(tables.Worker).where(tables.Worker.id == worker_id, tables.Worker.company_id == company_id)
        )
        return _worker(row) if row else None

    def list_workers(self, company_id: str) -> List[Worker]:
        rows = self._all(
            select(tables.Worker).where(tables.Worker.company_id == company_id).order_by(func.lower(tables.Worker.name))
        )
        return [_worker(row) for row in rows]

    def add_worker(self, worker: Worker) -> None:
        self._add(
            tables.Worker(
                id=worker.id,
                company_id=worker.company_id,
                name=worker.name,
                effective_rate=worker.effective_rate,
                fully_burdened_rate=worker.fully_burdened_rate,
                is_active=worker.is_active,
            )
        )

    def get_equipment(self, company_id: str, equipment_id: str) -> Optional[Equipment]:
        row = self._one(
            select(tables.Equipment).where(
                tables.Equipment.id == equipment_id, tables.Equipment.company_id == company_id
            )
        )
        if row is None:
            return None
        return Equipment(
            id=row.id, company_id=row.company_id, name=row.name, hourly_cost=row.hourly_cost, is_active=row.is_active
        )

    def add_equipment(self, equipment: Equipment) -> None:
        self._add(
            tables.Equipment(
                id=equipment.id,
                company_id=equipment.company_id,
                name=equipment.name,
                hourly_cost=equipment.hourly_cost,
                is_active=equipment.is_active,
            )
        )

    def get_loadout(self, company_id: str, loadout_id: str) -> Optional[Loadout]:
        row = self._one(
            select(tables.Loadout).where(tables.Loadout.id == loadout_id, tables.Loadout.company_id == company_id)
        )
        if row is None:
            return None
        return Loadout(
            id=row.id,
            company_id=row.company_id,
            name=row.name,
            equipment_ids=[equipment.id for equipment in row.equipment],
        )

    def add_loadout(self, loadout: Loadout) -> None:
        equipment = []
        if loadout.equipment_ids:
            equipment = self._all(
                select(tables.Equipment).where(
                    tables.Equipment.id.in_(loadout.equipment_ids),
                    tables.Equipment.company_id == loadout.company_id,
                )
            )
        self._add(tables.Loadout(id=loadout.id, company_id=loadout.company_id, name=loadout.name, equipment=equipment))

    # work orders and line items ----------------------------------------
    def get_work_order(self, company_id: str, work_order_id: str, *, for_update: bool = False) -> Optional[WorkOrder]:
        stmt = select(tables.WorkOrder).where(
            tables.WorkOrder.id == work_order_id, tables.WorkOrder.company_id == company_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self._one(stmt)
        return _work_order(row) if row else None

    def list_work_orders(self, company_id: str) -> List[WorkOrder]:
        rows = self._all(
            select(tables.WorkOrder).where(tables.WorkOrder.company_id == company_id).order_by(tables.WorkOrder.number)
        )
        return [_work_order(row) for row in rows]

    def add_work_order(self, work_order: WorkOrder) -> None:
        self._add(
            tables.WorkOrder(
                id=work_order.id,
                company_id=work_order.company_id,
                version=work_order.version,
                **_column_values(work_order, WORK_ORDER_FIELDS),
            )
        )

    def save_work_order(self, work_order: WorkOrder) -> None:
        with self.atomic():
            result = self.session.execute(
                update(tables.WorkOrder)
                .where(
                    tables.WorkOrder.id == work_order.id,
                    tables.WorkOrder.company_id == work_order.company_id,
                    tables.WorkOrder.version == work_order.version,
                )
                .values(version=work_order.version + 1, **_column_values(work_order, WORK_ORDER_FIELDS))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if self.get_work_order(work_order.company_id, work_order.id) is None:
                    raise NotFound("work_order", work_order.id)
                raise StaleWriteError("work_order", work_order.id)
            work_order.version += 1

    def get_line_item(self, company_id: str, line_item_id: str) -> Optional[LineItem]:
        row = self._one(
            select(tables.LineItem).where(tables.LineItem.id == line_item_id, tables.LineItem.company_id == company_id)
        )
        return _line_item(row) if row else None

    def list_line_items(self, company_id: str, work_order_id: str) -> List[LineItem]:
        rows = self._all(
            select(tables.LineItem)
            .where(tables.LineItem.company_id == company_id, tables.LineItem.work_order_id == work_order_id)
            .order_by(tables.LineItem.sort_order, tables.LineItem.id)
        )
        return [_line_item(row) for row in rows]

    def add_line_item(self, line_item: LineItem) -> None:
        self._add(
            tables.LineItem(
                id=line_item.id,
                company_id=line_item.company_id,
                work_order_id=line_item.work_order_id,
                version=line_item.version,
                **_column_values(line_item, LINE_ITEM_FIELDS),
            )
        )

    def save_line_item(self, line_item: LineItem) -> None:
        with self.atomic():
            result = self.session.execute(
                update(tables.LineItem)
                .where(
                    tables.LineItem.id == line_item.id,
                    tables.LineItem.company_id == line_item.company_id,
                    tables.LineItem.version == line_item.version,
                )
                .values(version=line_item.version + 1, **_column_values(line_item, LINE_ITEM_FIELDS))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if self.get_line_item(line_item.company_id, line_item.id) is None:
                    raise NotFound("line_item", line_item.id)
                raise StaleWriteError("line_item", line_item.id)
            line_item.version += 1

    def delete_line_item(self, company_id: str, line_item_id: str) -> None:
        with self.atomic():
            result = self.session.execute(
                delete(tables.LineItem)
                .where(tables.LineItem.id == line_item_id, tables.LineItem.company_id == company_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound("line_item", line_item_id)

    # time entries -------------------------------------------------------
    def _entries(self, company_id: str, *criteria) -> List[TimeEntry]:
        rows = self._all(
            select(tables.TimeEntry)
            .where(tables.TimeEntry.company_id == company_id, *criteria)
            .order_by(tables.TimeEntry.started_at, tables.TimeEntry.id)
        )
        return [_time_entry(row) for row in rows]

    def get_time_entry(self, company_id: str, entry_id: str) -> Optional[TimeEntry]:
        row = self._one(
            select(tables.TimeEntry).where(tables.TimeEntry.id == entry_id, tables.TimeEntry.company_id == company_id)
        )
        return _time_entry(row) if row else None

    def find_open_entry(self, company_id: str, worker_id: str) -> Optional[TimeEntry]:
        matches = self._entries(company_id, tables.TimeEntry.worker_id == worker_id, tables.TimeEntry.ended_at.is_(None))
        return matches[0] if matches else None

    def entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]:
        return self._entries(company_id, tables.TimeEntry.work_order_id == work_order_id)

    def closed_entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]:
        return self._entries(
            company_id, tables.TimeEntry.work_order_id == work_order_id, tables.TimeEntry.ended_at.is_not(None)
        )

    def closed_entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]:
        return self._entries(
            company_id, tables.TimeEntry.line_item_id == line_item_id, tables.TimeEntry.ended_at.is_not(None)
        )

    def entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]:
        return self._entries(company_id, tables.TimeEntry.line_item_id == line_item_id)

    def _entry_row(self, entry: TimeEntry) -> tables.TimeEntry:
        return tables.TimeEntry(
            id=entry.id,
            company_id=entry.company_id,
            worker_id=entry.worker_id,
            work_order_id=entry.work_order_id,
            line_item_id=entry.line_item_id,
            task_type=entry.task_type.value,
            task_label=entry.task_label,
            started_at=entry.started_at,
            ended_at=entry.ended_at,
            labor_rate=entry.labor_rate,
            equipment_rate=entry.equipment_rate,
            duration_hours=entry.duration_hours,
            total_cost=entry.total_cost,
            note=entry.note,
        )

    def insert_open_entry(self, entry: TimeEntry) -> None:
        with self.atomic():
            active = self._one(
                select(tables.TimeEntry).where(
                    tables.TimeEntry.worker_id == entry.worker_id, tables.TimeEntry.ended_at.is_(None)
                )
            )
            if active is not None:
                raise ConflictError(entry.worker_id, active.id)
            self.session.add(self._entry_row(entry))
            try:
                self.session.flush()
            except IntegrityError as exc:
                # lost the race against a concurrent start for the same worker
                logger.warning("open_entry_conflict", worker_id=entry.worker_id, time_entry_id=entry.id)
                raise ConflictError(entry.worker_id) from exc

    def insert_closed_entry(self, entry: TimeEntry) -> None:
        self._add(self._entry_row(entry))

    def close_entry(self, entry: TimeEntry) -> None:
        with self.atomic():
            result = self.session.execute(
                update(tables.TimeEntry)
                .where(
                    tables.TimeEntry.id == entry.id,
                    tables.TimeEntry.company_id == entry.company_id,
                    tables.TimeEntry.ended_at.is_(None),
                )
                .values(
                    ended_at=entry.ended_at,
                    duration_hours=entry.duration_hours,
                    total_cost=entry.total_cost,
                    note=entry.note,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if self.get_time_entry(entry.company_id, entry.id) is None:
                    raise NotFound("time_entry", entry.id)
                raise AlreadyClosedError(entry.id)
