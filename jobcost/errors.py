"""Typed exceptions raised by the job-costing engine.

Every error carries a machine-readable ``code`` so the HTTP host and the CLI
can react by type instead of parsing messages::

    JobCostError
    +-- NotFound              NOT_FOUND
    +-- ConflictError         TIMER_ALREADY_ACTIVE
    |   +-- StaleWriteError   STALE_WRITE
    +-- AlreadyClosedError    ALREADY_CLOSED
    +-- InvalidInput          INVALID_INPUT

All of them are raised before any persistent mutation of the unit of work
that detected them; a unit of work that raises is rolled back.
"""
from __future__ import annotations

from typing import Optional


class JobCostError(Exception):
    code: str = "JOBCOST_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(JobCostError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Optional[str]) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.replace('_', ' ').capitalize()} {entity_id} not found")


class ConflictError(JobCostError):
    code = "TIMER_ALREADY_ACTIVE"

    def __init__(self, worker_id: str, active_entry_id: Optional[str] = None) -> None:
        self.worker_id = worker_id
        self.active_entry_id = active_entry_id
        super().__init__(f"Worker {worker_id} already has an active timer. Stop the active timer first.")


class StaleWriteError(ConflictError):
    """A compare-and-swap write found the row changed underneath it."""

    code = "STALE_WRITE"

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        JobCostError.__init__(self, f"{entity} {entity_id} was modified concurrently; retry the operation")


class AlreadyClosedError(JobCostError):
    code = "ALREADY_CLOSED"

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Time entry {entry_id} is already stopped")


class InvalidInput(JobCostError):
    code = "INVALID_INPUT"
