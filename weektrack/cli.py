"""
CLI (Command Line Interface).

Terminal front-end over Tracker, e.g.:

    weektrack course add "Linear Algebra" Mathematics
    weektrack course list
    weektrack task add <course_id> "Problem set 3" 2024-03-08T17:00
    weektrack task done <task_id>
    weektrack week               (current week)
    weektrack week 10 2024 --next
    weektrack stats 10 2024
    weektrack overdue

Ids can be abbreviated to any unique prefix (like git hashes).
Data lives in the JSON file from config.py (WEEKTRACK_STORAGE_PATH).
"""

from __future__ import annotations

import argparse
import logging
from datetime import MAXYEAR, MINYEAR, datetime, time
from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

from weektrack.config import get_settings
from weektrack.errors import Result
from weektrack.logging_setup import setup_logging
from weektrack.model import Task
from weektrack.stats import completion_percentage
from weektrack.tracker import Tracker
from weektrack.weeks import current_week, next_week, previous_week, weeks_in_year

logger = logging.getLogger(__name__)

console = Console()

SHORT_ID = 8


def _short(id_: str) -> str:
    return id_[:SHORT_ID]


def _fail(msg: str) -> int:
    console.print(f"[red]{msg}[/red]")
    return 1


def _report(result: Result, ok_msg: str) -> int:
    """Print the outcome of a service call and turn it into an exit code."""
    if not result.ok:
        return _fail(str(result.error))
    console.print(ok_msg)
    return 0


def _resolve(prefix: str, ids: Iterable[str], what: str) -> Optional[str]:
    """
    Expand an abbreviated id. Prints an error and returns None if the
    prefix matches nothing or more than one id.
    """
    prefix = (prefix or "").strip()
    if not prefix:
        _fail(f"Please provide a {what} id.")
        return None
    matches = [i for i in ids if i.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        _fail(f"No {what} matches id '{prefix}'.")
    else:
        _fail(f"Ambiguous {what} id '{prefix}' ({len(matches)} matches).")
    return None


def parse_deadline(text: str) -> Optional[datetime]:
    """
    Accept ISO dates/datetimes. A bare date means the end of that day (23:59).
    """
    raw = (text or "").strip()
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if len(raw) == 10:  # YYYY-MM-DD
        value = datetime.combine(value.date(), time(23, 59))
    return value


def _fmt_dt(value: datetime) -> str:
    return value.strftime("%a %d.%m.%Y %H:%M")


# ---------------------------------------------------------------------------
# course commands
# ---------------------------------------------------------------------------


def _cmd_course_add(args: argparse.Namespace, tracker: Tracker) -> int:
    result = tracker.create_course(args.name, args.department)
    if not result.ok:
        return _fail(str(result.error))
    course = result.value
    console.print(f"Added course {_short(course.id)}: {course.name} ({course.department})")
    return 0


def _cmd_course_list(args: argparse.Namespace, tracker: Tracker) -> int:
    grouped = tracker.courses_by_department()
    if not grouped:
        console.print("No courses yet.")
        return 0

    counts = tracker.task_count_by_course()
    table = Table(title="Courses")
    table.add_column("ID")
    table.add_column("Department")
    table.add_column("Course")
    table.add_column("Tasks", justify="right")

    for department in sorted(grouped):
        for course in sorted(grouped[department], key=lambda c: c.name.lower()):
            table.add_row(_short(course.id), department, course.name, str(counts.get(course.id, 0)))

    console.print(table)
    return 0


def _cmd_course_rename(args: argparse.Namespace, tracker: Tracker) -> int:
    course_id = _resolve(args.course_id, [c.id for c in tracker.list_courses()], "course")
    if course_id is None:
        return 1
    if args.name is None and args.department is None:
        return _fail("Nothing to change: pass --name and/or --department.")
    result = tracker.update_course(course_id, name=args.name, department=args.department)
    if not result.ok:
        return _fail(str(result.error))
    console.print(f"Updated: {result.value.name} ({result.value.department})")
    return 0


def _cmd_course_rm(args: argparse.Namespace, tracker: Tracker) -> int:
    course_ids = [c.id for c in tracker.list_courses()]
    course_id = _resolve(args.course_id, course_ids, "course")
    if course_id is None:
        return 1

    if args.reassign:
        target = _resolve(args.reassign, course_ids, "target course")
        if target is None:
            return 1
        result = tracker.delete_course(course_id, "reassign", target)
    elif args.cascade:
        result = tracker.delete_course(course_id, "cascade")
    else:
        result = tracker.delete_course(course_id)

    return _report(result, f"Removed course {_short(course_id)}")


# ---------------------------------------------------------------------------
# task commands
# ---------------------------------------------------------------------------


def _task_table(tasks: list[Task], tracker: Tracker, title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Deadline")
    table.add_column("Course")
    table.add_column("Task")
    table.add_column("Status")

    overdue_ids = {t.id for t in tracker.overdue_tasks()}
    for t in tasks:
        course = tracker.get_course(t.course_id)
        course_name = course.name if course else "(unknown course)"
        if t.completed:
            status = "[green]done[/green]"
        elif t.id in overdue_ids:
            status = "[red]overdue[/red]"
        else:
            status = "open"
        table.add_row(_short(t.id), _fmt_dt(t.deadline), course_name, t.description, status)
    return table


def _by_deadline(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: (t.deadline.replace(tzinfo=None), t.description))


def _cmd_task_add(args: argparse.Namespace, tracker: Tracker) -> int:
    course_id = _resolve(args.course_id, [c.id for c in tracker.list_courses()], "course")
    if course_id is None:
        return 1
    deadline = parse_deadline(args.deadline)
    if deadline is None:
        return _fail(f"Invalid deadline: {args.deadline!r} (use YYYY-MM-DD or YYYY-MM-DDTHH:MM)")

    result = tracker.create_task(course_id, args.description, deadline)
    if not result.ok:
        return _fail(str(result.error))
    task = result.value
    console.print(f"Added task {_short(task.id)}: {task.description} (due {_fmt_dt(task.deadline)})")
    return 0


def _cmd_task_list(args: argparse.Namespace, tracker: Tracker) -> int:
    tasks = tracker.list_tasks()
    if args.course:
        course_id = _resolve(args.course, [c.id for c in tracker.list_courses()], "course")
        if course_id is None:
            return 1
        tasks = tracker.tasks_by_course(course_id)

    if args.status == "active":
        tasks = [t for t in tasks if not t.completed]
    elif args.status == "completed":
        tasks = [t for t in tasks if t.completed]

    if not tasks:
        console.print("No tasks.")
        return 0

    console.print(_task_table(_by_deadline(tasks), tracker, "Tasks"))
    return 0


def _cmd_task_edit(args: argparse.Namespace, tracker: Tracker) -> int:
    task_id = _resolve(args.task_id, [t.id for t in tracker.list_tasks()], "task")
    if task_id is None:
        return 1

    changes: dict = {}
    if args.description is not None:
        changes["description"] = args.description
    if args.deadline is not None:
        deadline = parse_deadline(args.deadline)
        if deadline is None:
            return _fail(f"Invalid deadline: {args.deadline!r}")
        changes["deadline"] = deadline
    if args.course is not None:
        course_id = _resolve(args.course, [c.id for c in tracker.list_courses()], "course")
        if course_id is None:
            return 1
        changes["course_id"] = course_id
    if not changes:
        return _fail("Nothing to change: pass --description, --deadline and/or --course.")

    return _report(tracker.update_task(task_id, **changes), f"Updated task {_short(task_id)}")


def _cmd_task_done(args: argparse.Namespace, tracker: Tracker) -> int:
    task_id = _resolve(args.task_id, [t.id for t in tracker.list_tasks()], "task")
    if task_id is None:
        return 1
    return _report(tracker.set_task_completed(task_id, True), f"Completed task {_short(task_id)}")


def _cmd_task_undo(args: argparse.Namespace, tracker: Tracker) -> int:
    task_id = _resolve(args.task_id, [t.id for t in tracker.list_tasks()], "task")
    if task_id is None:
        return 1
    return _report(tracker.set_task_completed(task_id, False), f"Reopened task {_short(task_id)}")


def _cmd_task_rm(args: argparse.Namespace, tracker: Tracker) -> int:
    task_id = _resolve(args.task_id, [t.id for t in tracker.list_tasks()], "task")
    if task_id is None:
        return 1
    return _report(tracker.delete_task(task_id), f"Removed task {_short(task_id)}")


# ---------------------------------------------------------------------------
# week / stats / overdue
# ---------------------------------------------------------------------------


def _selected_week(args: argparse.Namespace) -> tuple[int, int]:
    if args.week is not None and args.year is not None:
        week, year = args.week, args.year
    else:
        week, year = current_week()
    if getattr(args, "next", False):
        week, year = next_week(week, year)
    if getattr(args, "prev", False):
        week, year = previous_week(week, year)
    return week, year


def _cmd_week(args: argparse.Namespace, tracker: Tracker) -> int:
    week, year = _selected_week(args)
    view = tracker.week_view(week, year)
    title = f"Week {view.week_number}, {view.year} ({view.start:%d.%m.%Y} - {view.end:%d.%m.%Y})"

    if not view.tasks:
        console.print(title)
        console.print("No tasks this week.")
        return 0

    console.print(_task_table(view.tasks, tracker, title))
    return 0


def _cmd_stats(args: argparse.Namespace, tracker: Tracker) -> int:
    week, year = _selected_week(args)
    stats = tracker.weekly_statistics(week, year)

    console.print(f"[bold]Week {stats.week_number}, {stats.year}[/bold]")
    console.print(
        f"Tasks: {stats.total_tasks}  Completed: {stats.completed_tasks}  "
        f"Completion: {stats.completion_percentage}%  Overdue: {stats.overdue_tasks}"
    )

    if stats.stats_by_department:
        table = Table(title="By department")
        table.add_column("Department")
        table.add_column("Done", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("%", justify="right")
        for name in sorted(stats.stats_by_department):
            d = stats.stats_by_department[name]
            pct = completion_percentage(d.completed_tasks, d.total_tasks)
            table.add_row(name, str(d.completed_tasks), str(d.total_tasks), f"{pct}%")
        console.print(table)

    if stats.stats_by_course:
        table = Table(title="By course")
        table.add_column("Course")
        table.add_column("Done", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("%", justify="right")
        for c in sorted(stats.stats_by_course.values(), key=lambda s: s.course_name.lower()):
            pct = completion_percentage(c.completed_tasks, c.total_tasks)
            table.add_row(c.course_name, str(c.completed_tasks), str(c.total_tasks), f"{pct}%")
        console.print(table)

    return 0


def _cmd_overdue(args: argparse.Namespace, tracker: Tracker) -> int:
    tasks = tracker.overdue_tasks()
    if not tasks:
        console.print("No overdue tasks.")
        return 0
    console.print(_task_table(_by_deadline(tasks), tracker, f"Overdue tasks: {len(tasks)}"))
    return 0


# ---------------------------------------------------------------------------
# parser / entry point
# ---------------------------------------------------------------------------


def _add_week_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("week", type=int, nargs="?", help="ISO week number (default: current week)")
    p.add_argument("year", type=int, nargs="?", help="ISO year")
    nav = p.add_mutually_exclusive_group()
    nav.add_argument("--next", action="store_true", help="Show the following week")
    nav.add_argument("--prev", action="store_true", help="Show the previous week")


def _check_week_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if (args.week is None) != (args.year is None):
        parser.error("give both WEEK and YEAR, or neither")
    if args.week is None:
        return

    # The last ISO week of 9999 ends in year 10000, which datetime cannot hold
    if not MINYEAR <= args.year < MAXYEAR:
        parser.error(f"YEAR must be between {MINYEAR} and {MAXYEAR - 1}")
    last = weeks_in_year(args.year)
    if not 1 <= args.week <= last:
        parser.error(f"{args.year} has weeks 1-{last}")

    if args.prev and (args.week, args.year) == (1, MINYEAR):
        parser.error("there is no week before week 1 of year 1")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="weektrack", description="Weekly course & task tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    # course ...
    p_course = sub.add_parser("course", help="Manage courses")
    course_sub = p_course.add_subparsers(dest="action", required=True)

    p = course_sub.add_parser("add", help="Add a course")
    p.add_argument("name", type=str)
    p.add_argument("department", type=str)
    p.set_defaults(handler=_cmd_course_add)

    p = course_sub.add_parser("list", help="List courses grouped by department")
    p.set_defaults(handler=_cmd_course_list)

    p = course_sub.add_parser("rename", help="Change a course's name and/or department")
    p.add_argument("course_id", type=str)
    p.add_argument("--name", type=str)
    p.add_argument("--department", type=str)
    p.set_defaults(handler=_cmd_course_rename)

    p = course_sub.add_parser("rm", help="Remove a course")
    p.add_argument("course_id", type=str)
    strategy = p.add_mutually_exclusive_group()
    strategy.add_argument("--cascade", action="store_true", help="Also delete the course's tasks")
    strategy.add_argument("--reassign", metavar="TARGET_ID", help="Move the course's tasks to another course")
    p.set_defaults(handler=_cmd_course_rm)

    # task ...
    p_task = sub.add_parser("task", help="Manage tasks")
    task_sub = p_task.add_subparsers(dest="action", required=True)

    p = task_sub.add_parser("add", help="Add a task to a course")
    p.add_argument("course_id", type=str)
    p.add_argument("description", type=str)
    p.add_argument("deadline", type=str, help="YYYY-MM-DD or YYYY-MM-DDTHH:MM")
    p.set_defaults(handler=_cmd_task_add)

    p = task_sub.add_parser("list", help="List tasks")
    p.add_argument("--course", type=str, help="Only tasks of this course")
    p.add_argument("--status", choices=("all", "active", "completed"), default="all")
    p.set_defaults(handler=_cmd_task_list)

    p = task_sub.add_parser("edit", help="Change a task")
    p.add_argument("task_id", type=str)
    p.add_argument("--description", type=str)
    p.add_argument("--deadline", type=str)
    p.add_argument("--course", type=str)
    p.set_defaults(handler=_cmd_task_edit)

    for name, handler, help_text in (
        ("done", _cmd_task_done, "Mark a task as completed"),
        ("undo", _cmd_task_undo, "Mark a task as not completed"),
        ("rm", _cmd_task_rm, "Remove a task"),
    ):
        p = task_sub.add_parser(name, help=help_text)
        p.add_argument("task_id", type=str)
        p.set_defaults(handler=handler)

    # views
    p = sub.add_parser("week", help="Show the tasks of one ISO week")
    _add_week_args(p)
    p.set_defaults(handler=_cmd_week)

    p = sub.add_parser("stats", help="Completion statistics for one ISO week")
    _add_week_args(p)
    p.set_defaults(handler=_cmd_stats)

    p = sub.add_parser("overdue", help="List overdue tasks")
    p.set_defaults(handler=_cmd_overdue)

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if hasattr(args, "week"):
        _check_week_args(parser, args)

    settings = get_settings()
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    logger.debug("Command %s storage=%s", args.command, settings.storage_path)

    tracker = Tracker.from_settings(settings)
    raise SystemExit(args.handler(args, tracker))
