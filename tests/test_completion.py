import threading

import pytest

from jobcost.completion import next_sort_order
from jobcost.errors import InvalidInput, NotFound, StaleWriteError
from jobcost.models import LineItem, LineItemStatus, WorkOrderStatus

from conftest import COMPANY, T0


def test_work_order_completes_only_when_every_line_item_is_complete(engine, job):
    after_first = engine.completion.mark_complete(COMPANY, "li1")

    assert after_first.status == WorkOrderStatus.IN_PROGRESS
    assert after_first.completed_at is None

    after_second = engine.completion.mark_complete(COMPANY, "li2")

    assert after_second.status == WorkOrderStatus.COMPLETED
    assert after_second.completed_at == T0


def test_reopening_a_line_item_reopens_the_work_order(engine, job):
    engine.completion.mark_complete(COMPANY, "li1")
    engine.completion.mark_complete(COMPANY, "li2")

    work_order = engine.completion.reopen_task(COMPANY, "li2")

    assert work_order.status == WorkOrderStatus.IN_PROGRESS
    assert work_order.completed_at is None
    assert engine.repository.get_line_item(COMPANY, "li2").status == LineItemStatus.IN_PROGRESS


def test_mark_work_order_complete_completes_every_line_item(engine, job):
    work_order = engine.completion.mark_work_order_complete(COMPANY, job)

    assert work_order.status == WorkOrderStatus.COMPLETED
    statuses = {item.status for item in engine.repository.list_line_items(COMPANY, job)}
    assert statuses == {LineItemStatus.COMPLETED}


def test_adding_line_item_reopens_completed_work_order(engine, job):
    engine.completion.mark_work_order_complete(COMPANY, job)

    engine.completion.add_line_item(
        COMPANY, job, display_name="Haul debris", service_type="hauling", estimated_hours=1.0
    )

    work_order = engine.repository.get_work_order(COMPANY, job)
    assert work_order.status == WorkOrderStatus.IN_PROGRESS
    assert work_order.completed_at is None


def test_add_line_item_updates_estimates(engine, job):
    engine.completion.add_line_item(
        COMPANY, job, display_name="Haul", service_type="hauling", estimated_hours=1.5, line_item_total=300.0
    )

    work_order = engine.repository.get_work_order(COMPANY, job)
    assert work_order.estimated_total_hours == 7.5
    assert work_order.total_investment == 2100.0


def test_negative_estimate_is_rejected(engine, job):
    with pytest.raises(InvalidInput):
        engine.completion.add_line_item(
            COMPANY, job, display_name="Bad", service_type="misc", estimated_hours=-1.0
        )


@pytest.mark.parametrize("field", ["estimated_hours", "estimated_score", "line_item_total"])
def test_non_finite_estimate_is_rejected(engine, job, field):
    estimates = {"estimated_hours": 1.0, field: float("inf")}
    with pytest.raises(InvalidInput):
        engine.completion.add_line_item(COMPANY, job, display_name="Bad", service_type="misc", **estimates)

    assert len(engine.repository.list_line_items(COMPANY, job)) == 2
    work_order = engine.repository.get_work_order(COMPANY, job)
    assert work_order.estimated_total_hours == 6.0
    assert work_order.total_investment == 1800.0


def test_delete_line_item_clamps_estimates_at_zero(engine, job):
    work_order = engine.repository.get_work_order(COMPANY, job)
    work_order.estimated_total_hours = 1.0
    work_order.total_investment = 100.0
    engine.repository.save_work_order(work_order)

    updated = engine.completion.delete_line_item(COMPANY, "li1")

    assert updated.estimated_total_hours == 0.0
    assert updated.total_investment == 0.0
    assert engine.repository.get_line_item(COMPANY, "li1") is None


def test_delete_unknown_line_item_raises(engine, job):
    with pytest.raises(NotFound):
        engine.completion.delete_line_item(COMPANY, "missing")


def test_deleting_last_open_line_item_completes_work_order(engine, job):
    engine.completion.mark_complete(COMPANY, "li1")

    work_order = engine.completion.delete_line_item(COMPANY, "li2")

    assert work_order.status == WorkOrderStatus.COMPLETED
    assert work_order.completed_at == T0
    stored = engine.repository.get_work_order(COMPANY, job)
    assert stored.status == WorkOrderStatus.COMPLETED
    assert stored.estimated_total_hours == 4.0


def test_deleting_only_line_item_keeps_status(engine, crew):
    work_order = engine.create_work_order(
        COMPANY, loadout_id="lo1", status=WorkOrderStatus.IN_PROGRESS, with_overhead=False
    )
    engine.completion.add_line_item(
        COMPANY, work_order.id, display_name="Haul", service_type="hauling", estimated_hours=1.0, line_item_id="h1"
    )

    updated = engine.completion.delete_line_item(COMPANY, "h1")

    assert updated.status == WorkOrderStatus.IN_PROGRESS
    assert updated.completed_at is None


def test_new_line_items_sort_before_tear_down(engine, crew):
    work_order = engine.create_work_order(COMPANY)

    line_item = engine.completion.add_line_item(
        COMPANY, work_order.id, display_name="Clear brush", service_type="brush", estimated_hours=2.0
    )

    ordered = [item.service_type for item in engine.repository.list_line_items(COMPANY, work_order.id)]
    assert line_item.sort_order == 2.0
    assert ordered == ["transport", "setup", "brush", "tear_down"]


def test_next_sort_order_ignores_tear_down():
    items = [
        LineItem(id="a", company_id=COMPANY, work_order_id="wo", display_name="A", service_type="x", sort_order=3.0),
        LineItem(id="t", company_id=COMPANY, work_order_id="wo", display_name="T", service_type="tear_down", sort_order=99.0),
    ]

    assert next_sort_order(items) == 4.0
    assert next_sort_order([]) == 2.0


def test_start_task_promotes_scheduled_work_order(engine, crew):
    work_order = engine.create_work_order(COMPANY, with_overhead=False)
    engine.completion.add_line_item(
        COMPANY, work_order.id, display_name="Grind", service_type="stump_grinding", estimated_hours=1.0, line_item_id="g1"
    )

    engine.completion.start_task(COMPANY, "g1")

    assert engine.repository.get_work_order(COMPANY, work_order.id).status == WorkOrderStatus.IN_PROGRESS
    assert engine.completion.start_task(COMPANY, "g1") is None


def test_stale_version_is_rejected(engine, job):
    first = engine.repository.get_line_item(COMPANY, "li1")
    second = engine.repository.get_line_item(COMPANY, "li1")
    first.status = LineItemStatus.COMPLETED
    engine.repository.save_line_item(first)

    second.status = LineItemStatus.IN_PROGRESS
    with pytest.raises(StaleWriteError):
        engine.repository.save_line_item(second)


def test_concurrent_sibling_completions_complete_work_order(engine, job):
    barrier = threading.Barrier(2)
    errors = []

    def complete(line_item_id):
        barrier.wait()
        try:
            engine.completion.mark_complete(COMPANY, line_item_id)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=complete, args=(line_item_id,)) for line_item_id in ("li1", "li2")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    work_order = engine.repository.get_work_order(COMPANY, job)
    assert work_order.status == WorkOrderStatus.COMPLETED
    assert work_order.completed_at == T0
    assert {item.status for item in engine.repository.list_line_items(COMPANY, job)} == {LineItemStatus.COMPLETED}
