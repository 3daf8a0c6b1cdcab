from datetime import datetime, timezone

import pytest

from jobcost.clock import FixedClock
from jobcost.engine import JobCostingEngine
from jobcost.models import Equipment, Loadout, WorkOrderStatus, Worker
from jobcost.repository import InMemoryRepository

COMPANY = "acme"
T0 = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def engine(repository, clock):
    return JobCostingEngine(repository, clock=clock)


@pytest.fixture
def crew(repository):
    """Worker w1 at 50/h plus a loadout whose equipment totals 10/h."""
    repository.add_worker(Worker(id="w1", company_id=COMPANY, name="Dana", effective_rate=50.0))
    repository.add_worker(Worker(id="w2", company_id=COMPANY, name="Ravi"))
    repository.add_equipment(Equipment(id="eq1", company_id=COMPANY, name="Skid steer", hourly_cost=6.0))
    repository.add_equipment(Equipment(id="eq2", company_id=COMPANY, name="Trailer", hourly_cost=4.0))
    repository.add_loadout(Loadout(id="lo1", company_id=COMPANY, name="Clearing", equipment_ids=["eq1", "eq2"]))
    return repository


@pytest.fixture
def job(engine, crew):
    """In-progress work order wo1 with line items li1 and li2 and no overhead items."""
    work_order = engine.create_work_order(
        COMPANY, loadout_id="lo1", status=WorkOrderStatus.IN_PROGRESS, with_overhead=False
    )
    engine.completion.add_line_item(
        COMPANY,
        work_order.id,
        display_name="Mulch front lot",
        service_type="forestry_mulching",
        estimated_hours=4.0,
        estimated_score=8.0,
        line_item_total=1200.0,
        line_item_id="li1",
    )
    engine.completion.add_line_item(
        COMPANY,
        work_order.id,
        display_name="Stump grinding",
        service_type="stump_grinding",
        estimated_hours=2.0,
        estimated_score=5.0,
        line_item_total=600.0,
        line_item_id="li2",
    )
    return work_order.id
