import threading
from datetime import timedelta

import pytest

from jobcost.errors import AlreadyClosedError, ConflictError, InvalidInput, NotFound
from jobcost.models import LineItemStatus, TaskType, Worker

from conftest import COMPANY, T0


def start_productive(engine, job, worker_id="w1", line_item_id="li1"):
    return engine.timers.start(
        COMPANY, worker_id, job, task_type=TaskType.PRODUCTIVE, task_label="Mulching", line_item_id=line_item_id
    )


def test_two_hour_timer_costs_labor_plus_equipment(engine, clock, job):
    entry_id = start_productive(engine, job)
    clock.advance(hours=2)

    cost = engine.timers.stop(COMPANY, entry_id)

    assert cost.duration_hours == 2.0
    assert cost.total_cost == 120.0
    entry = engine.repository.get_time_entry(COMPANY, entry_id)
    assert entry.ended_at == T0 + timedelta(hours=2)
    assert entry.labor_rate == 50.0
    assert entry.equipment_rate == 10.0


def test_second_start_is_rejected_and_first_stays_open(engine, clock, job):
    first = start_productive(engine, job)

    with pytest.raises(ConflictError) as excinfo:
        engine.timers.start(COMPANY, "w1", job, task_type="support", task_label="Fueling")

    assert excinfo.value.active_entry_id == first
    assert "Stop the active timer first" in excinfo.value.message
    open_entry = engine.timers.get_open(COMPANY, "w1")
    assert open_entry.id == first
    assert len(engine.repository.entries_for_work_order(COMPANY, job)) == 1


def test_worker_can_start_again_after_stopping(engine, clock, job):
    first = start_productive(engine, job)
    clock.advance(hours=1)
    engine.timers.stop(COMPANY, first)

    second = engine.timers.start(COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="Cleanup")

    assert second != first
    assert engine.timers.get_open(COMPANY, "w1").id == second


def test_different_workers_run_timers_side_by_side(engine, job):
    start_productive(engine, job, worker_id="w1")
    start_productive(engine, job, worker_id="w2", line_item_id="li2")

    assert engine.timers.get_open(COMPANY, "w1") is not None
    assert engine.timers.get_open(COMPANY, "w2") is not None


def test_stopping_twice_raises_already_closed(engine, clock, job):
    entry_id = start_productive(engine, job)
    clock.advance(hours=1)
    engine.timers.stop(COMPANY, entry_id)

    with pytest.raises(AlreadyClosedError):
        engine.timers.stop(COMPANY, entry_id)


def test_stop_unknown_entry_raises_not_found(engine, job):
    with pytest.raises(NotFound):
        engine.timers.stop(COMPANY, "missing")


def test_manual_entry_costs_and_rolls_up(engine, job):
    engine.repository.add_worker(Worker(id="w3", company_id=COMPANY, name="Lee"))
    engine.assign_loadout(COMPANY, job, None)
    before = engine.repository.get_work_order(COMPANY, job).actual_productive_hours

    entry_id = engine.timers.add_manual_entry(
        COMPANY, "w3", job, task_type=TaskType.PRODUCTIVE, task_label="Mulching", duration_hours=3.5, line_item_id="li1"
    )

    entry = engine.repository.get_time_entry(COMPANY, entry_id)
    assert entry.total_cost == 140.0
    assert entry.started_at == T0 - timedelta(hours=3.5)
    after = engine.repository.get_work_order(COMPANY, job).actual_productive_hours
    assert after - before == 3.5


def test_manual_entry_needs_positive_duration(engine, job):
    with pytest.raises(InvalidInput):
        engine.timers.add_manual_entry(
            COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="Travel", duration_hours=0
        )


@pytest.mark.parametrize("duration", [float("nan"), float("inf")])
def test_manual_entry_rejects_non_finite_duration(engine, job, duration):
    with pytest.raises(InvalidInput):
        engine.timers.add_manual_entry(
            COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="Travel", duration_hours=duration
        )

    assert engine.repository.entries_for_work_order(COMPANY, job) == []
    assert engine.repository.get_work_order(COMPANY, job).actual_total_cost == 0.0


def test_racing_starts_leave_one_open_timer(engine, job):
    threads_count = 8
    barrier = threading.Barrier(threads_count)
    started, conflicts = [], []

    def start():
        barrier.wait()
        try:
            started.append(
                engine.timers.start(COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="Fueling")
            )
        except ConflictError:
            conflicts.append(True)

    threads = [threading.Thread(target=start) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(started) == 1
    assert len(conflicts) == threads_count - 1
    open_entries = [entry for entry in engine.repository.entries_for_work_order(COMPANY, job) if entry.is_open]
    assert [entry.id for entry in open_entries] == started
    assert engine.timers.get_open(COMPANY, "w1").id == started[0]


def test_productive_time_requires_line_item(engine, job):
    with pytest.raises(InvalidInput):
        engine.timers.start(COMPANY, "w1", job, task_type=TaskType.PRODUCTIVE, task_label="Mulching")


def test_support_time_rejects_line_item(engine, job):
    with pytest.raises(InvalidInput):
        engine.timers.start(COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="Fuel", line_item_id="li1")


def test_blank_task_label_is_rejected(engine, job):
    with pytest.raises(InvalidInput):
        engine.timers.start(COMPANY, "w1", job, task_type=TaskType.SUPPORT, task_label="  ")


def test_line_item_from_another_work_order_is_rejected(engine, job):
    other = engine.create_work_order(COMPANY, with_overhead=False)

    with pytest.raises(InvalidInput):
        start_productive(engine, other.id, line_item_id="li1")
    assert engine.timers.get_open(COMPANY, "w1") is None


def test_start_moves_line_item_to_in_progress(engine, job):
    start_productive(engine, job)

    assert engine.repository.get_line_item(COMPANY, "li1").status == LineItemStatus.IN_PROGRESS
    assert engine.repository.get_line_item(COMPANY, "li2").status == LineItemStatus.NOT_STARTED


def test_rate_change_after_start_does_not_touch_running_timer(engine, clock, job):
    entry_id = start_productive(engine, job)
    engine.repository.workers["w1"].effective_rate = 99.0
    engine.repository.equipment["eq1"].hourly_cost = 500.0
    clock.advance(hours=1)

    cost = engine.timers.stop(COMPANY, entry_id)

    assert cost.total_cost == 60.0


def test_entries_for_line_item_includes_open_timers(engine, clock, job):
    first = start_productive(engine, job)
    clock.advance(hours=1)
    engine.timers.stop(COMPANY, first)
    running = start_productive(engine, job)

    ids = [entry.id for entry in engine.timers.entries_for_line_item(COMPANY, "li1")]

    assert ids == [first, running]


def test_failed_start_leaves_no_partial_writes(engine, job, monkeypatch):
    def boom(company_id, line_item_id):
        raise RuntimeError("cascade failed")

    monkeypatch.setattr(engine.completion, "start_task", boom)

    with pytest.raises(RuntimeError):
        start_productive(engine, job)

    assert engine.timers.get_open(COMPANY, "w1") is None
    assert engine.repository.entries_for_work_order(COMPANY, job) == []
