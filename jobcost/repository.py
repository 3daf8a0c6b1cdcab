"""Persistence contract for the job-costing engine.

The engine only ever talks to a :class:`Repository`. It exposes exactly the
lookups the engine needs (open timer by worker, closed entries by work order
or line item, reference data) plus the write primitives that carry the
engine's atomicity requirements:

* ``insert_open_entry`` is an atomic check-and-insert for the one open timer
  per worker rule;
* ``close_entry`` is a compare-and-swap on "still open";
* ``save_work_order`` / ``save_line_item`` are compare-and-swap on ``version``;
* ``atomic()`` groups calls into one unit of work that commits or rolls back
  as a whole.
"""
from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .errors import AlreadyClosedError, ConflictError, NotFound, StaleWriteError
from .models import Equipment, LineItem, Loadout, TimeEntry, WorkOrder, Worker


class Repository(ABC):
    def __init__(self) -> None:
        self._depth = 0

    # ------------------------------------------------------------------
    # unit of work
    # ------------------------------------------------------------------
    @contextmanager
    def atomic(self) -> Iterator["Repository"]:
        """Run the block as one unit of work.

        Nested blocks join the outermost one. Only the outermost block
        commits, and any exception escaping it rolls everything back.
        """
        self._acquire()
        try:
            if self._depth == 0:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._rollback()
                raise
            self._depth -= 1
            if self._depth == 0:
                self._commit()
        finally:
            self._release()

    def _acquire(self) -> None:
        pass

    def _release(self) -> None:
        pass

    def _begin(self) -> None:
        pass

    def _commit(self) -> None:
        pass

    def _rollback(self) -> None:
        pass

    # ------------------------------------------------------------------
    # reference data
    # ------------------------------------------------------------------
    @abstractmethod
    def get_worker(self, company_id: str, worker_id: str) -> Optional[Worker]: ...

    @abstractmethod
    def list_workers(self, company_id: str) -> List[Worker]: ...

    @abstractmethod
    def add_worker(self, worker: Worker) -> None: ...

    @abstractmethod
    def get_equipment(self, company_id: str, equipment_id: str) -> Optional[Equipment]: ...

    @abstractmethod
    def add_equipment(self, equipment: Equipment) -> None: ...

    @abstractmethod
    def get_loadout(self, company_id: str, loadout_id: str) -> Optional[Loadout]: ...

    @abstractmethod
    def add_loadout(self, loadout: Loadout) -> None: ...

    # ------------------------------------------------------------------
    # work orders and line items
    # ------------------------------------------------------------------
    @abstractmethod
    def get_work_order(self, company_id: str, work_order_id: str, *, for_update: bool = False) -> Optional[WorkOrder]:
        """Fetch a work order; ``for_update`` locks the row until the unit of work ends."""

    @abstractmethod
    def list_work_orders(self, company_id: str) -> List[WorkOrder]: ...

    @abstractmethod
    def add_work_order(self, work_order: WorkOrder) -> None: ...

    @abstractmethod
    def save_work_order(self, work_order: WorkOrder) -> None:
        """Persist ``work_order`` if its ``version`` still matches, then bump it."""

    @abstractmethod
    def get_line_item(self, company_id: str, line_item_id: str) -> Optional[LineItem]: ...

    @abstractmethod
    def list_line_items(self, company_id: str, work_order_id: str) -> List[LineItem]:
        """Line items of a work order ordered by ``sort_order``."""

    @abstractmethod
    def add_line_item(self, line_item: LineItem) -> None: ...

    @abstractmethod
    def save_line_item(self, line_item: LineItem) -> None:
        """Persist ``line_item`` if its ``version`` still matches, then bump it."""

    @abstractmethod
    def delete_line_item(self, company_id: str, line_item_id: str) -> None: ...

    # ------------------------------------------------------------------
    # time entries
    # ------------------------------------------------------------------
    @abstractmethod
    def get_time_entry(self, company_id: str, entry_id: str) -> Optional[TimeEntry]: ...

    @abstractmethod
    def find_open_entry(self, company_id: str, worker_id: str) -> Optional[TimeEntry]: ...

    @abstractmethod
    def entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]:
        """Every entry of the work order, open ones included, oldest first."""

    @abstractmethod
    def closed_entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]: ...

    @abstractmethod
    def closed_entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]: ...

    @abstractmethod
    def entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]: ...

    @abstractmethod
    def insert_open_entry(self, entry: TimeEntry) -> None:
        """Insert ``entry`` unless its worker already has an open one (``ConflictError``)."""

    @abstractmethod
    def insert_closed_entry(self, entry: TimeEntry) -> None: ...

    @abstractmethod
    def close_entry(self, entry: TimeEntry) -> None:
        """Write the closing fields of ``entry`` if the stored row is still open."""


class InMemoryRepository(Repository):
    """Dict-backed repository.

    One re-entrant lock is held for the whole unit of work, which makes every
    read-check-write sequence serial. Rollback restores a snapshot taken when
    the outermost unit of work began. Reads hand out copies so callers only
    change stored state through the save methods.
    """

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.RLock()
        self._snapshot: Optional[dict] = None
        self.workers: Dict[str, Worker] = {}
        self.equipment: Dict[str, Equipment] = {}
        self.loadouts: Dict[str, Loadout] = {}
        self.work_orders: Dict[str, WorkOrder] = {}
        self.line_items: Dict[str, LineItem] = {}
        self.time_entries: Dict[str, TimeEntry] = {}

    _TABLES = ("workers", "equipment", "loadouts", "work_orders", "line_items", "time_entries")

    def _acquire(self) -> None:
        self._lock.acquire()

    def _release(self) -> None:
        self._lock.release()

    def _begin(self) -> None:
        self._snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._TABLES}

    def _commit(self) -> None:
        self._snapshot = None

    def _rollback(self) -> None:
        if self._snapshot is not None:
            for name, rows in self._snapshot.items():
                setattr(self, name, rows)
        self._snapshot = None

    @staticmethod
    def _scoped(rows: Dict[str, object], company_id: str, key: str):
        row = rows.get(key)
        if row is None or row.company_id != company_id:
            return None
        return copy.deepcopy(row)

    # reference data ----------------------------------------------------
    def get_worker(self, company_id: str, worker_id: str) -> Optional[Worker]:
        return self._scoped(self.workers, company_id, worker_id)

    def list_workers(self, company_id: str) -> List[Worker]:
        rows = [copy.deepcopy(w) for w in self.workers.values() if w.company_id == company_id]
        return sorted(rows, key=lambda w: w.name.lower())

    def add_worker(self, worker: Worker) -> None:
        with self.atomic():
            self.workers[worker.id] = copy.deepcopy(worker)

    def get_equipment(self, company_id: str, equipment_id: str) -> Optional[Equipment]:
        return self._scoped(self.equipment, company_id, equipment_id)

    def add_equipment(self, equipment: Equipment) -> None:
        with self.atomic():
            self.equipment[equipment.id] = copy.deepcopy(equipment)

    def get_loadout(self, company_id: str, loadout_id: str) -> Optional[Loadout]:
        return self._scoped(self.loadouts, company_id, loadout_id)

    def add_loadout(self, loadout: Loadout) -> None:
        with self.atomic():
            self.loadouts[loadout.id] = copy.deepcopy(loadout)

    # work orders and line items ----------------------------------------
    def get_work_order(self, company_id: str, work_order_id: str, *, for_update: bool = False) -> Optional[WorkOrder]:
        return self._scoped(self.work_orders, company_id, work_order_id)

    def list_work_orders(self, company_id: str) -> List[WorkOrder]:
        rows = [copy.deepcopy(w) for w in self.work_orders.values() if w.company_id == company_id]
        return sorted(rows, key=lambda w: w.number)

    def add_work_order(self, work_order: WorkOrder) -> None:
        with self.atomic():
            self.work_orders[work_order.id] = copy.deepcopy(work_order)

    def save_work_order(self, work_order: WorkOrder) -> None:
        with self.atomic():
            stored = self.work_orders.get(work_order.id)
            if stored is None or stored.company_id != work_order.company_id:
                raise NotFound("work_order", work_order.id)
            if stored.version != work_order.version:
                raise StaleWriteError("work_order", work_order.id)
            work_order.version += 1
            self.work_orders[work_order.id] = copy.deepcopy(work_order)

    def get_line_item(self, company_id: str, line_item_id: str) -> Optional[LineItem]:
        return self._scoped(self.line_items, company_id, line_item_id)

    def list_line_items(self, company_id: str, work_order_id: str) -> List[LineItem]:
        rows = [
            copy.deepcopy(item)
            for item in self.line_items.values()
            if item.company_id == company_id and item.work_order_id == work_order_id
        ]
        return sorted(rows, key=lambda item: item.sort_order)

    def add_line_item(self, line_item: LineItem) -> None:
        with self.atomic():
            self.line_items[line_item.id] = copy.deepcopy(line_item)

    def save_line_item(self, line_item: LineItem) -> None:
        with self.atomic():
            stored = self.line_items.get(line_item.id)
            if stored is None or stored.company_id != line_item.company_id:
                raise NotFound("line_item", line_item.id)
            if stored.version != line_item.version:
                raise StaleWriteError("line_item", line_item.id)
            line_item.version += 1
            self.line_items[line_item.id] = copy.deepcopy(line_item)

    def delete_line_item(self, company_id: str, line_item_id: str) -> None:
        with self.atomic():
            if self._scoped(self.line_items, company_id, line_item_id) is None:
                raise NotFound("line_item", line_item_id)
            del self.line_items[line_item_id]

    # time entries -------------------------------------------------------
    def _entries(self, company_id: str, predicate) -> List[TimeEntry]:
        rows = [
            copy.deepcopy(entry)
            for entry in self.time_entries.values()
            if entry.company_id == company_id and predicate(entry)
        ]
        return sorted(rows, key=lambda entry: entry.started_at)

    def get_time_entry(self, company_id: str, entry_id: str) -> Optional[TimeEntry]:
        return self._scoped(self.time_entries, company_id, entry_id)

    def find_open_entry(self, company_id: str, worker_id: str) -> Optional[TimeEntry]:
        matches = self._entries(company_id, lambda e: e.worker_id == worker_id and e.is_open)
        return matches[0] if matches else None

    def entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]:
        return self._entries(company_id, lambda e: e.work_order_id == work_order_id)

    def closed_entries_for_work_order(self, company_id: str, work_order_id: str) -> List[TimeEntry]:
        return self._entries(company_id, lambda e: e.work_order_id == work_order_id and not e.is_open)

    def closed_entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]:
        return self._entries(company_id, lambda e: e.line_item_id == line_item_id and not e.is_open)

    def entries_for_line_item(self, company_id: str, line_item_id: str) -> List[TimeEntry]:
        return self._entries(company_id, lambda e: e.line_item_id == line_item_id)

    def insert_open_entry(self, entry: TimeEntry) -> None:
        with self.atomic():
            for existing in self.time_entries.values():
                if existing.worker_id == entry.worker_id and existing.is_open:
                    raise ConflictError(entry.worker_id, existing.id)
            self.time_entries[entry.id] = copy.deepcopy(entry)

    def insert_closed_entry(self, entry: TimeEntry) -> None:
        with self.atomic():
            self.time_entries[entry.id] = copy.deepcopy(entry)

    def close_entry(self, entry: TimeEntry) -> None:
        with self.atomic():
            stored = self.time_entries.get(entry.id)
            if stored is None or stored.company_id != entry.company_id:
                raise NotFound("time_entry", entry.id)
            if not stored.is_open:
                raise AlreadyClosedError(entry.id)
            self.time_entries[entry.id] = copy.deepcopy(entry)
