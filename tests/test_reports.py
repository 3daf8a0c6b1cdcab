import csv

import pytest

from jobcost.csv_io import CSV_HEADERS, export_rows, export_time_entries
from jobcost.errors import NotFound
from jobcost.models import TaskType
from jobcost.reports import profit_margin, report_rows, summary_row
from jobcost.views import format_report, format_timesheet, format_work_order

from conftest import COMPANY


@pytest.fixture
def worked_job(engine, clock, job):
    mulch = engine.timers.start(COMPANY, "w1", job, task_type=TaskType.PRODUCTIVE, task_label="Mulch", line_item_id="li1")
    travel = engine.timers.start(COMPANY, "w2", job, task_type=TaskType.SUPPORT, task_label="Travel")
    clock.advance(hours=2)
    engine.timers.stop(COMPANY, mulch)
    engine.timers.stop(COMPANY, travel)
    engine.timers.start(COMPANY, "w1", job, task_type=TaskType.PRODUCTIVE, task_label="Mulch", line_item_id="li1")
    return job


def test_profit_margin_handles_zero_investment():
    assert profit_margin(0.0, 50.0) == 0.0
    assert profit_margin(200.0, 150.0) == 25.0


def test_project_report_totals(engine, worked_job):
    report = engine.project_report(COMPANY, worked_job)

    # w1: 2h * (50 + 10); w2: 2h * (40 + 10)
    assert report.actual_total_cost == 220.0
    assert report.total_investment == 1800.0
    assert report.profit == 1580.0
    assert report.total_hours == 4.0
    assert [w.worker_name for w in report.workers] == ["Dana", "Ravi"]
    dana = report.workers[0]
    assert (dana.productive_hours, dana.support_hours, dana.entry_count) == (2.0, 0.0, 1)


def test_report_for_unknown_work_order(engine):
    with pytest.raises(NotFound):
        engine.project_report(COMPANY, "missing")


def test_summary_and_flat_rows(engine, worked_job):
    report = engine.project_report(COMPANY, worked_job)

    summary = summary_row(report)
    rows = report_rows(report)

    assert summary["work_order"] == "WO-0001"
    assert summary["profit_margin"] == round(1580.0 / 1800.0 * 100, 2)
    assert [row["section"] for row in rows] == ["line_item", "line_item", "worker", "worker"]
    assert rows[0]["variance"] == -2.0


def test_export_rows_writes_csv(engine, worked_job, tmp_path):
    path = export_rows(report_rows(engine.project_report(COMPANY, worked_job)), tmp_path / "out" / "report.csv")

    with path.open(newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 4
    assert rows[2]["name"] == "Dana"


def test_export_time_entries_includes_open_timer(engine, worked_job, tmp_path):
    entries = engine.repository.entries_for_work_order(COMPANY, worked_job)

    path = export_time_entries(tmp_path / "entries.csv", entries)

    with path.open(newline="") as handle:
        reader = csv.DictReader(handle)
        assert reader.fieldnames == CSV_HEADERS
        rows = list(reader)
    assert len(rows) == 3
    assert rows[-1]["ended_at"] == ""


def test_timesheet_marks_running_timers(engine, worked_job):
    entries = engine.repository.entries_for_work_order(COMPANY, worked_job)

    text = format_timesheet(entries, {"w1": "Dana", "w2": "Ravi"})

    assert "running" in text
    assert text.splitlines()[-1] == "Total hours: 4.00  Total cost: 220.00"


def test_work_order_and_report_views(engine, worked_job):
    work_order_text = format_work_order(engine.snapshot(COMPANY, worked_job))
    report_text = format_report(engine.project_report(COMPANY, worked_job))

    assert work_order_text.startswith("WO-0001 [in_progress]")
    assert "Running timers: 1" in work_order_text
    assert "Profit: 1580.00" in report_text
