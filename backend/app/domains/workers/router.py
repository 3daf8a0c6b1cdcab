from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.api.deps import get_company_id, get_engine
from app.core.logging import get_logger
from jobcost.engine import JobCostingEngine
from jobcost.models import Worker

router = APIRouter(prefix="/workers", tags=["workers"])
logger = get_logger(__name__)


class WorkerCreate(BaseModel):
    name: str
    effective_rate: float | None = Field(default=None, ge=0)
    fully_burdened_rate: float | None = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("Name is required")
        return name


class WorkerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    effective_rate: float | None
    fully_burdened_rate: float | None
    is_active: bool


@router.get("", response_model=list[WorkerOut])
def list_workers(
    company_id: str = Depends(get_company_id), engine: JobCostingEngine = Depends(get_engine)
) -> list[WorkerOut]:
    return [WorkerOut.model_validate(worker) for worker in engine.repository.list_workers(company_id)]


@router.post("", response_model=WorkerOut, status_code=201)
def create_worker(
    payload: WorkerCreate,
    company_id: str = Depends(get_company_id),
    engine: JobCostingEngine = Depends(get_engine),
) -> WorkerOut:
    worker = Worker(
        id=str(uuid4()),
        company_id=company_id,
        name=payload.name,
        effective_rate=payload.effective_rate,
        fully_burdened_rate=payload.fully_burdened_rate,
    )
    engine.repository.add_worker(worker)
    logger.info("worker_created", company_id=company_id, worker_id=worker.id)
    return WorkerOut.model_validate(worker)
