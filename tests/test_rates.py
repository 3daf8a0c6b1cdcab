import pytest

from jobcost.errors import NotFound
from jobcost.models import Equipment, Loadout, WorkOrder, Worker
from jobcost.rates import DEFAULT_LABOR_RATE, RateResolver, labor_rate_for
from jobcost.repository import InMemoryRepository

from conftest import COMPANY


def test_labor_rate_prefers_effective_then_burdened_then_default():
    assert labor_rate_for(Worker("w", COMPANY, "A", effective_rate=55.0, fully_burdened_rate=70.0)) == 55.0
    assert labor_rate_for(Worker("w", COMPANY, "A", fully_burdened_rate=70.0)) == 70.0
    assert labor_rate_for(Worker("w", COMPANY, "A")) == DEFAULT_LABOR_RATE


def test_zero_rate_counts_as_unset():
    worker = Worker("w", COMPANY, "A", effective_rate=0.0, fully_burdened_rate=0.0)

    assert labor_rate_for(worker, default_rate=32.0) == 32.0


def test_resolve_sums_loadout_equipment(crew):
    crew.add_work_order(WorkOrder(id="wo1", company_id=COMPANY, number="WO-0001", loadout_id="lo1"))

    rates = RateResolver(crew).resolve(COMPANY, "w1", "wo1")

    assert rates.labor_rate == 50.0
    assert rates.equipment_rate == 10.0


def test_resolve_without_loadout_has_no_equipment_cost(crew):
    crew.add_work_order(WorkOrder(id="wo1", company_id=COMPANY, number="WO-0001"))

    rates = RateResolver(crew, default_labor_rate=33.0).resolve(COMPANY, "w2", "wo1")

    assert rates.labor_rate == 33.0
    assert rates.equipment_rate == 0.0


def test_missing_loadout_and_equipment_are_skipped():
    repository = InMemoryRepository()
    repository.add_worker(Worker("w1", COMPANY, "A", effective_rate=20.0))
    repository.add_equipment(Equipment("eq1", COMPANY, "Chipper", hourly_cost=15.0))
    repository.add_loadout(Loadout("lo1", COMPANY, "Partial", equipment_ids=["eq1", "gone"]))
    repository.add_work_order(WorkOrder(id="wo1", company_id=COMPANY, number="WO-0001", loadout_id="lo1"))
    repository.add_work_order(WorkOrder(id="wo2", company_id=COMPANY, number="WO-0002", loadout_id="missing"))
    resolver = RateResolver(repository)

    assert resolver.resolve(COMPANY, "w1", "wo1").equipment_rate == 15.0
    assert resolver.resolve(COMPANY, "w1", "wo2").equipment_rate == 0.0


def test_unknown_worker_or_work_order_raises_not_found(crew):
    crew.add_work_order(WorkOrder(id="wo1", company_id=COMPANY, number="WO-0001"))
    resolver = RateResolver(crew)

    with pytest.raises(NotFound):
        resolver.resolve(COMPANY, "nobody", "wo1")
    with pytest.raises(NotFound):
        resolver.resolve(COMPANY, "w1", "nope")


def test_other_company_cannot_see_worker(crew):
    crew.add_work_order(WorkOrder(id="wo-x", company_id="other", number="WO-0001"))

    with pytest.raises(NotFound):
        RateResolver(crew).resolve("other", "w1", "wo-x")
