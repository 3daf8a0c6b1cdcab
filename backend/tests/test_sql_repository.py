from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models as tables
from app.db.repository import SqlRepository
from app.db.session import Base
from app.db import session as db_session
from app.seed.seed_data import seed, seed_database
from jobcost.clock import FixedClock
from jobcost.engine import JobCostingEngine
from jobcost.errors import AlreadyClosedError, ConflictError, StaleWriteError
from jobcost.models import LineItemStatus, TaskType, TimeEntry, WorkOrderStatus, Worker

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

T0 = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def jobcost(session, clock):
    return JobCostingEngine(SqlRepository(session), clock=clock)


@pytest.fixture
def demo(session):
    return seed(session)


def line_item_id(jobcost, work_order_id, service_type):
    items = jobcost.repository.list_line_items("demo", work_order_id)
    return next(item.id for item in items if item.service_type == service_type)


def test_seed_builds_demo_job(jobcost, demo):
    assert demo.number == "WO-0001"
    assert demo.estimated_total_hours == 8.5
    assert [item.service_type for item in jobcost.repository.list_line_items("demo", demo.id)] == [
        "transport",
        "setup",
        "forestry_mulching",
        "tear_down",
    ]
    assert jobcost.rates.resolve("demo", "w-lead", demo.id).hourly_total == 140.0


def test_timer_round_trip_keeps_utc_times(jobcost, clock, demo):
    mulch = line_item_id(jobcost, demo.id, "forestry_mulching")
    entry_id = jobcost.timers.start(
        "demo", "w-crew", demo.id, task_type=TaskType.PRODUCTIVE, task_label="Mulch", line_item_id=mulch
    )
    clock.advance(hours=2)

    cost = jobcost.timers.stop("demo", entry_id)

    # 25 burdened + 110 equipment
    assert cost.total_cost == 270.0
    entry = jobcost.repository.get_time_entry("demo", entry_id)
    assert entry.started_at == T0
    assert entry.ended_at == T0 + timedelta(hours=2)
    assert entry.started_at.tzinfo is not None
    work_order = jobcost.repository.get_work_order("demo", demo.id)
    assert work_order.status == WorkOrderStatus.IN_PROGRESS
    assert work_order.actual_productive_hours == 2.0
    line_item = jobcost.repository.get_line_item("demo", mulch)
    assert line_item.status == LineItemStatus.IN_PROGRESS
    assert line_item.actual_production_rate == 1.5


def test_one_open_timer_per_worker(jobcost, demo):
    jobcost.timers.start("demo", "w-lead", demo.id, task_type=TaskType.SUPPORT, task_label="Load")

    with pytest.raises(ConflictError):
        jobcost.repository.insert_open_entry(
            TimeEntry(
                id="dup",
                company_id="demo",
                worker_id="w-lead",
                work_order_id=demo.id,
                task_type=TaskType.SUPPORT,
                task_label="Again",
                started_at=T0,
                labor_rate=30.0,
                equipment_rate=0.0,
            )
        )
    assert len(jobcost.repository.entries_for_work_order("demo", demo.id)) == 1


def test_partial_unique_index_blocks_second_open_row(session, demo):
    for entry_id in ("a", "b"):
        session.add(
            tables.TimeEntry(
                id=entry_id,
                company_id="demo",
                worker_id="w-lead",
                work_order_id=demo.id,
                task_type="support",
                task_label="Load",
                started_at=T0,
                labor_rate=30.0,
                equipment_rate=0.0,
            )
        )
    with pytest.raises(IntegrityError):
        session.flush()
    session.rollback()


def test_close_entry_is_compare_and_swap(jobcost, clock, demo):
    entry_id = jobcost.timers.start("demo", "w-lead", demo.id, task_type=TaskType.SUPPORT, task_label="Load")
    stale = jobcost.repository.get_time_entry("demo", entry_id)
    clock.advance(hours=1)
    jobcost.timers.stop("demo", entry_id)

    stale.ended_at = clock.now()
    stale.duration_hours = 1.0
    stale.total_cost = 1.0
    with pytest.raises(AlreadyClosedError):
        jobcost.repository.close_entry(stale)
    assert jobcost.repository.get_time_entry("demo", entry_id).total_cost == 140.0


def test_stale_work_order_write_is_rejected(jobcost, demo):
    first = jobcost.repository.get_work_order("demo", demo.id)
    second = jobcost.repository.get_work_order("demo", demo.id)
    first.notes = "first"
    jobcost.repository.save_work_order(first)

    second.notes = "second"
    with pytest.raises(StaleWriteError):
        jobcost.repository.save_work_order(second)
    assert jobcost.repository.get_work_order("demo", demo.id).notes == "first"


def test_failed_unit_of_work_rolls_back(jobcost, demo):
    with pytest.raises(RuntimeError):
        with jobcost.repository.atomic():
            jobcost.repository.add_worker(Worker(id="w-temp", company_id="demo", name="Temp"))
            raise RuntimeError("abort")

    assert jobcost.repository.get_worker("demo", "w-temp") is None


def test_completion_cascade_with_sql(jobcost, demo):
    items = jobcost.repository.list_line_items("demo", demo.id)
    for item in items[:-1]:
        assert jobcost.completion.mark_complete("demo", item.id).status != WorkOrderStatus.COMPLETED

    work_order = jobcost.completion.mark_complete("demo", items[-1].id)

    assert work_order.status == WorkOrderStatus.COMPLETED
    stored = jobcost.repository.get_work_order("demo", demo.id)
    assert stored.completed_at == T0
    assert stored.version == work_order.version


def test_seed_database_commits_demo_company(monkeypatch):
    monkeypatch.setattr(db_session, "SessionLocal", TestingSessionLocal)

    work_order_id = seed_database()

    with TestingSessionLocal() as fresh:
        repository = SqlRepository(fresh)
        assert repository.get_worker("demo", "w-lead").name == "Ada Lead"
        assert repository.get_work_order("demo", work_order_id) is not None
        assert repository.list_line_items("demo", work_order_id)
