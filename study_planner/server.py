# -*- coding: utf-8 -*-
from datetime import date, datetime
import typing as t

from fastmcp import FastMCP

from study_planner.models import ActivityRecord, ClassRecord, PendingContext, TaskRecord
from study_planner.planner import build_plan
from study_planner.slots import SlotFinder
from study_planner.timefmt import TaskBucket, categorize_task, format_clock, task_datetime

mcp = FastMCP("StudyPlanner")

BUCKET_TITLES = {
    TaskBucket.OVERDUE: "⚠️ OVERDUE",
    TaskBucket.TODAY: "📌 TODAY",
    TaskBucket.THIS_WEEK: "📅 THIS WEEK",
    TaskBucket.NEXT_WEEK: "🗓️ NEXT WEEK",
    TaskBucket.LATER: "🔭 LATER",
}


def _reference(reference: t.Optional[str]) -> datetime:
    return datetime.fromisoformat(reference) if reference else datetime.now()


@mcp.tool()
def plan_study_sessions(
        conversation: str,
        tasks: t.Optional[list[dict]] = None,
        activities: t.Optional[list[dict]] = None,
        classes: t.Optional[list[dict]] = None,
        reference: t.Optional[str] = None,
        pending: t.Optional[dict] = None,
) -> dict:
    """Reads the latest chat message and proposes tasks and classes to add.

    :param conversation: Recent chat as "User: ...\\nAssistant: ..." lines.
    :param tasks: The student's current task cards (camelCase JSON).
    :param activities: Routine blocks, busy commitments and free study windows.
    :param classes: The student's classes.
    :param reference: Current moment in ISO format (defaults to now).
    :param pending: The pending context returned by the previous call, if any.
    :return: The reply with newTasks, newClasses, replacedTaskIds and state.
    """
    result = build_plan(
        conversation,
        [TaskRecord.from_dict(d) for d in tasks or []],
        [ActivityRecord.from_dict(d) for d in activities or []],
        [ClassRecord.from_dict(d) for d in classes or []],
        reference=_reference(reference),
        pending=PendingContext.from_dict(pending) if pending else None,
    )
    return result.to_dict()


@mcp.tool()
def find_study_slot(
        day: str,
        duration_hours: float,
        tasks: t.Optional[list[dict]] = None,
        activities: t.Optional[list[dict]] = None,
        preferred_hour: t.Optional[float] = None,
        reference: t.Optional[str] = None,
) -> t.Optional[str]:
    """Finds a free start time on a day.

    :param day: The day in ISO format (YYYY-MM-DD).
    :param duration_hours: Length of the session in hours.
    :param tasks: Existing task cards that block time.
    :param activities: Routine blocks; free slots set the working window.
    :param preferred_hour: Hour to try first, e.g. 17.5 for 5:30 PM.
    :param reference: Current moment in ISO format (defaults to now).
    :return: Start time like "4:30 PM", or None when nothing fits.
    """
    hour = SlotFinder(_reference(reference)).find_slot(
        date.fromisoformat(day),
        duration_hours,
        [TaskRecord.from_dict(d) for d in tasks or []],
        [ActivityRecord.from_dict(d) for d in activities or []],
        preferred_hour,
    )
    return format_clock(hour) if hour is not None else None


def group_tasks(tasks: t.Sequence[TaskRecord], now: datetime) -> dict[TaskBucket, list[TaskRecord]]:
    """Open tasks by bucket, each bucket in chronological order."""
    groups: dict[TaskBucket, list[TaskRecord]] = {bucket: [] for bucket in TaskBucket}
    for task in tasks:
        if not task.completed:
            groups[categorize_task(task.time, now)].append(task)
    for bucket, items in groups.items():
        items.sort(key=lambda task: task_datetime(task.time, now.date()) or datetime.max)
    return groups


def format_task_summary(tasks: t.Sequence[TaskRecord], now: datetime) -> str:
    """Formats open tasks as a table grouped into overdue / today / this week / next week / later.

    :param tasks: Task cards to show.
    :param now: The current moment used for bucketing.
    :return: Formatted table string.
    """
    groups = group_tasks(tasks, now)
    total = sum(len(items) for items in groups.values())
    if not total:
        return "✅ No open tasks found."

    lines = []
    lines.append("📚 STUDY TASKS")
    lines.append("=" * 100)
    lines.append(f"{'#':<4} {'Title':<40} {'When':<20} {'Length':<8} {'Type':<8} {'Priority':<8}")
    lines.append("-" * 100)

    idx = 1
    for bucket, items in groups.items():
        if not items:
            continue
        lines.append(BUCKET_TITLES[bucket])
        for task in items:
            title = task.title[:39] if len(task.title) > 39 else task.title
            lines.append(
                f"{idx:<4} {title:<40} {task.time:<20} {task.duration:<8} {task.type:<8} {task.priority:<8}"
            )
            idx += 1

    lines.append("=" * 100)
    lines.append(f"Total: {total} task(s)")
    return "\n".join(lines)


@mcp.tool()
def show_task_summary(tasks: list[dict], reference: t.Optional[str] = None) -> str:
    """Display open tasks grouped by when they are due.

    :param tasks: Task cards (camelCase JSON).
    :param reference: Current moment in ISO format (defaults to now).
    :return: Formatted string showing the task table.
    """
    return format_task_summary([TaskRecord.from_dict(d) for d in tasks], _reference(reference))


if __name__ == "__main__":
    mcp.run()
