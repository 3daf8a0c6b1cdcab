from __future__ import annotations
import argparse
import sys
from pathlib import Path
from uuid import uuid4

from app.core.config import get_settings
from app.core.logging import configure_logging

from .csv_io import export_rows, export_time_entries
from .engine import JobCostingEngine
from .errors import JobCostError
from .models import Equipment, Loadout, TaskType, Worker
from .reports import report_rows
from .storage import JsonRepository
from .views import format_report, format_timesheet, format_work_order


DEFAULT_DATA_PATH = Path("data/jobcost.json")


def engine_from_args(args: argparse.Namespace) -> JobCostingEngine:
    repository = JsonRepository(Path(args.data) if args.data else DEFAULT_DATA_PATH)
    return JobCostingEngine(repository, default_labor_rate=get_settings().default_labor_rate)


def task_type_from_args(args: argparse.Namespace) -> TaskType:
    return TaskType.SUPPORT if args.support else TaskType.PRODUCTIVE


def cmd_add_worker(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    worker = Worker(
        id=args.id or str(uuid4()),
        company_id=args.company,
        name=args.name,
        effective_rate=args.rate,
        fully_burdened_rate=args.burdened_rate,
    )
    engine.repository.add_worker(worker)
    print(f"Added worker {worker.id} ({worker.name})")


def cmd_add_equipment(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    equipment = Equipment(id=args.id or str(uuid4()), company_id=args.company, name=args.name, hourly_cost=args.hourly_cost)
    engine.repository.add_equipment(equipment)
    print(f"Added equipment {equipment.id} ({equipment.name}) at {equipment.hourly_cost:.2f}/h")


def cmd_add_loadout(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    loadout = Loadout(id=args.id or str(uuid4()), company_id=args.company, name=args.name, equipment_ids=args.equipment or [])
    engine.repository.add_loadout(loadout)
    print(f"Added loadout {loadout.id} ({loadout.name}) with {len(loadout.equipment_ids)} equipment")


def cmd_create_work_order(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.create_work_order(
        args.company, loadout_id=args.loadout, notes=args.notes, with_overhead=not args.no_overhead
    )
    print(f"Created work order {work_order.id} ({work_order.number})")


def cmd_add_line_item(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    line_item = engine.completion.add_line_item(
        args.company,
        args.work_order,
        display_name=args.display_name,
        service_type=args.service_type,
        estimated_hours=args.estimated_hours,
        estimated_score=args.score,
        line_item_total=args.total,
    )
    print(f"Added line item {line_item.id} ({line_item.display_name})")


def cmd_delete_line_item(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.completion.delete_line_item(args.company, args.line_item)
    print(f"Deleted line item {args.line_item}; {work_order.number} now estimates {work_order.estimated_total_hours:.2f}h")


def cmd_start(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    entry_id = engine.timers.start(
        args.company,
        args.worker,
        args.work_order,
        task_type=task_type_from_args(args),
        task_label=args.task,
        line_item_id=args.line_item,
    )
    print(f"Started timer {entry_id}")


def cmd_stop(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    cost = engine.timers.stop(args.company, args.entry, note=args.note)
    print(f"Stopped timer {args.entry}: {cost.duration_hours:.2f}h, cost {cost.total_cost:.2f}")


def cmd_manual(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    entry_id = engine.timers.add_manual_entry(
        args.company,
        args.worker,
        args.work_order,
        task_type=task_type_from_args(args),
        task_label=args.task,
        duration_hours=args.hours,
        line_item_id=args.line_item,
        note=args.note,
    )
    print(f"Recorded manual entry {entry_id} for {args.hours:.2f}h")


def cmd_active(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    entry = engine.timers.get_open(args.company, args.worker)
    if entry is None:
        print(f"No active timer for {args.worker}")
        return
    print(f"{entry.id} {entry.task_label} on {entry.work_order_id} since {entry.started_at.isoformat()}")


def cmd_complete(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.completion.mark_complete(args.company, args.line_item)
    print(f"Completed line item {args.line_item}; {work_order.number} is {work_order.status.value}")


def cmd_reopen(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.completion.reopen_task(args.company, args.line_item)
    print(f"Reopened line item {args.line_item}; {work_order.number} is {work_order.status.value}")


def cmd_complete_work_order(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.completion.mark_work_order_complete(args.company, args.work_order)
    print(f"Completed work order {work_order.number}")


def cmd_recompute(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    work_order = engine.rollups.recompute_all(args.company, args.work_order)
    print(
        f"{work_order.number}: productive {work_order.actual_productive_hours:.2f}h, "
        f"support {work_order.actual_support_hours:.2f}h, cost {work_order.actual_total_cost:.2f}"
    )


def cmd_timesheet(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    entries = engine.repository.entries_for_work_order(args.company, args.work_order)
    names = {worker.id: worker.name for worker in engine.repository.list_workers(args.company)}
    print(format_timesheet(entries, names))


def cmd_show(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    print(format_work_order(engine.snapshot(args.company, args.work_order)))


def cmd_report(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    report = engine.project_report(args.company, args.work_order)
    if args.output:
        path = export_rows(report_rows(report), Path(args.output))
        print(f"Report exported to {path}")
    else:
        print(format_report(report))


def cmd_export(args: argparse.Namespace) -> None:
    engine = engine_from_args(args)
    path = export_time_entries(Path(args.path), engine.repository.entries_for_work_order(args.company, args.work_order))
    print(f"Exported entries to {path}")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--company", default="default", help="Company the records belong to")
    common.add_argument("--data", help=f"JSON data file (default {DEFAULT_DATA_PATH})")

    parser = argparse.ArgumentParser(description="Job costing and crew time tracking CLI")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    worker = sub.add_parser("add-worker", parents=[common], help="Add a worker")
    worker.add_argument("name")
    worker.add_argument("--rate", type=float, help="Effective hourly rate")
    worker.add_argument("--burdened-rate", type=float, help="Fully burdened hourly rate")
    worker.add_argument("--id")
    worker.set_defaults(func=cmd_add_worker)

    equipment = sub.add_parser("add-equipment", parents=[common], help="Add a piece of equipment")
    equipment.add_argument("name")
    equipment.add_argument("hourly_cost", type=float)
    equipment.add_argument("--id")
    equipment.set_defaults(func=cmd_add_equipment)

    loadout = sub.add_parser("add-loadout", parents=[common], help="Add an equipment loadout")
    loadout.add_argument("name")
    loadout.add_argument("--equipment", action="append", help="Equipment id (repeatable)")
    loadout.add_argument("--id")
    loadout.set_defaults(func=cmd_add_loadout)

    work_order = sub.add_parser("create-work-order", parents=[common], help="Create a work order")
    work_order.add_argument("--loadout")
    work_order.add_argument("--notes")
    work_order.add_argument("--no-overhead", action="store_true", help="Skip transport/setup/tear-down items")
    work_order.set_defaults(func=cmd_create_work_order)

    add_item = sub.add_parser("add-line-item", parents=[common], help="Add a line item to a work order")
    add_item.add_argument("work_order")
    add_item.add_argument("display_name")
    add_item.add_argument("service_type")
    add_item.add_argument("estimated_hours", type=float)
    add_item.add_argument("--score", type=float, default=0.0, help="Estimated score")
    add_item.add_argument("--total", type=float, default=0.0, help="Line item price")
    add_item.set_defaults(func=cmd_add_line_item)

    delete_item = sub.add_parser("delete-line-item", parents=[common], help="Delete a line item")
    delete_item.add_argument("line_item")
    delete_item.set_defaults(func=cmd_delete_line_item)

    start = sub.add_parser("start", parents=[common], help="Start a timer")
    start.add_argument("worker")
    start.add_argument("work_order")
    start.add_argument("task")
    start.add_argument("--line-item")
    start.add_argument("--support", action="store_true", help="Support task (no line item)")
    start.set_defaults(func=cmd_start)

    stop = sub.add_parser("stop", parents=[common], help="Stop a running timer")
    stop.add_argument("entry")
    stop.add_argument("--note")
    stop.set_defaults(func=cmd_stop)

    manual = sub.add_parser("manual", parents=[common], help="Record backdated time")
    manual.add_argument("worker")
    manual.add_argument("work_order")
    manual.add_argument("task")
    manual.add_argument("hours", type=float)
    manual.add_argument("--line-item")
    manual.add_argument("--support", action="store_true")
    manual.add_argument("--note")
    manual.set_defaults(func=cmd_manual)

    active = sub.add_parser("active", parents=[common], help="Show a worker's running timer")
    active.add_argument("worker")
    active.set_defaults(func=cmd_active)

    complete = sub.add_parser("complete", parents=[common], help="Mark a line item complete")
    complete.add_argument("line_item")
    complete.set_defaults(func=cmd_complete)

    reopen = sub.add_parser("reopen", parents=[common], help="Reopen a completed line item")
    reopen.add_argument("line_item")
    reopen.set_defaults(func=cmd_reopen)

    complete_order = sub.add_parser("complete-work-order", parents=[common], help="Complete a work order and all its items")
    complete_order.add_argument("work_order")
    complete_order.set_defaults(func=cmd_complete_work_order)

    recompute = sub.add_parser("recompute", parents=[common], help="Replay time entries into actuals")
    recompute.add_argument("work_order")
    recompute.set_defaults(func=cmd_recompute)

    timesheet = sub.add_parser("timesheet", parents=[common], help="Render a work order timesheet")
    timesheet.add_argument("work_order")
    timesheet.set_defaults(func=cmd_timesheet)

    show = sub.add_parser("show", parents=[common], help="Show estimated vs actual for a work order")
    show.add_argument("work_order")
    show.set_defaults(func=cmd_show)

    report = sub.add_parser("report", parents=[common], help="Project report for a work order")
    report.add_argument("work_order")
    report.add_argument("--output", help="CSV file to write instead of printing")
    report.set_defaults(func=cmd_report)

    export = sub.add_parser("export", parents=[common], help="Export time entries to CSV")
    export.add_argument("work_order")
    export.add_argument("path")
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        args.func(args)
    except JobCostError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
