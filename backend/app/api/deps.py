from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.repository import SqlRepository
from app.db.session import get_session
from jobcost.engine import JobCostingEngine


def get_company_id(x_company_id: str = Header(..., alias="X-Company-Id", min_length=1)) -> str:
    return x_company_id.strip()


def get_engine(db: Session = Depends(get_session)) -> JobCostingEngine:
    return JobCostingEngine(SqlRepository(db), default_labor_rate=settings.default_labor_rate)
