# -*- coding: utf-8 -*-
import json
import typing as t
from datetime import datetime

import click
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

from mcp_wrappers.planner.mcp_service import _build_study_plan
from student_store.store import STUDENT_STATE_PATH, StudentStore, load_state, save_state
from study_planner.models import ActivityRecord, ClassRecord, PlanResult, TaskRecord
from study_planner.planner import ASSISTANT_NAME, build_plan
from study_planner.server import BUCKET_TITLES, group_tasks
from study_planner.timefmt import parse_time_range


console = Console()

EXIT_WORDS = {"exit", "quit", "bye"}
ACTIVITY_FREQUENCIES = {"daily", "weekdays", "weekends"}


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_task_table(tasks: t.Sequence[TaskRecord], title: str = "📅 New Tasks") -> Table:
    """Create a table for task cards."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("", style="cyan", width=3)  # Just emoji
    table.add_column("Title", style="white")
    table.add_column("When", style="yellow")
    table.add_column("Length", style="green")

    for task in tasks:
        icon = "📖" if task.type == "study" else "📝"
        table.add_row(icon, truncate_title(task.title), task.time, task.duration)
    return table


def create_summary_table(tasks: t.Sequence[TaskRecord], now: datetime) -> Table:
    """Create a table of open tasks grouped by when they are due."""
    table = Table(title="📚 Study Tasks", show_header=True, header_style="bold magenta")
    table.add_column("Bucket", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("When", style="yellow")
    table.add_column("Priority", style="red")

    for bucket, items in group_tasks(tasks, now).items():
        for idx, task in enumerate(items):
            table.add_row(BUCKET_TITLES[bucket] if idx == 0 else "", truncate_title(task.title), task.time, task.priority)
    return table


def parse_class_option(value: str) -> ClassRecord:
    """'AP Calculus=Math' -> ClassRecord(name='AP Calculus', subject='Math')."""
    name, _, subject = value.partition("=")
    return ClassRecord(name=name.strip(), subject=subject.strip())


def parse_activity_option(value: str, free_slot: bool = False) -> ActivityRecord:
    """'Soccer=4:00 PM - 6:00 PM@Monday,Wednesday' -> a weekly routine block.

    The part after '@' is daily, weekdays, weekends or a list of day names;
    without it the block repeats daily. Free slots may leave out the name.
    """
    block, _, days = value.partition("@")
    name, _, time_range = block.rpartition("=")
    if parse_time_range(time_range) is None:
        raise click.BadParameter(f"expected NAME=START - END[@DAYS], got {value!r}")
    days = days.strip()
    frequency = days.lower() if days.lower() in ACTIVITY_FREQUENCIES else "daily" if not days else "weekly"
    applied_days = [] if frequency != "weekly" else [day.strip().capitalize() for day in days.split(",") if day.strip()]
    return ActivityRecord(
        name=name.strip() or ("Study Time" if free_slot else "Activity"),
        time=time_range.strip(),
        frequency=frequency,
        applied_days=applied_days,
        is_free_slot=free_slot,
    )


def send_message(
        store: StudentStore,
        message: str,
        reference: t.Optional[datetime] = None,
        service_url: t.Optional[str] = None,
) -> PlanResult:
    """Record a user message, plan from the recent chat, and merge the result."""
    store.record_turn("user", message)
    state = store.state
    context = store.conversation_context()
    if service_url:
        result = _build_study_plan(
            context, state.tasks, state.activities, state.classes,
            reference=reference, pending=state.pending, service_url=service_url,
        )
    else:
        result = build_plan(
            context, state.tasks, state.activities, state.classes,
            reference=reference, pending=state.pending,
        )
    store.apply_plan(result)
    return result


def show_result(result: PlanResult, verbose: bool) -> None:
    console.print(Panel(result.message, title=f"🤖 {ASSISTANT_NAME}", border_style="blue", expand=False))
    if result.new_classes:
        names = ", ".join(c.name for c in result.new_classes)
        console.print(f"[green]✓[/green] Added class: [bold]{names}[/bold]")
    if result.new_tasks:
        console.print(create_task_table(result.new_tasks))
    if verbose:
        console.print(Panel(JSON(json.dumps(result.to_dict(), indent=2)), title="📄 Plan Result", border_style="dim"))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("messages", nargs=-1)
@click.option("--state", "state_path", type=click.Path(dir_okay=False), default=STUDENT_STATE_PATH,
              show_default=True, help="JSON file holding classes, routine, tasks and chat.")
@click.option("--service-url", default=None, help="Plan through the planner service instead of locally.")
@click.option("--add-class", "add_classes", multiple=True, help="Add a class, e.g. 'AP Calculus=Math'.")
@click.option("--add-activity", "add_activities", multiple=True,
              help="Add a busy routine block, e.g. 'Soccer=4:00 PM - 6:00 PM@Monday,Wednesday'.")
@click.option("--add-free-slot", "add_free_slots", multiple=True,
              help="Add a study window, e.g. '6:00 PM - 9:00 PM@weekdays'.")
@click.option("--reference", default=None, help="Pretend the current time is this ISO datetime.")
@click.option("--tasks", "show_tasks", is_flag=True, help="Show open tasks and exit.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def main(
        messages: tuple[str, ...],
        state_path: str,
        service_url: t.Optional[str],
        add_classes: tuple[str, ...],
        add_activities: tuple[str, ...],
        add_free_slots: tuple[str, ...],
        reference: t.Optional[str],
        show_tasks: bool,
        verbose: bool,
) -> None:
    """Chat with the study planner.

    MESSAGES: Messages to send in order. Without any, starts an interactive chat.
    """
    now = datetime.fromisoformat(reference) if reference else None
    store = StudentStore(load_state(state_path), on_save=lambda state: save_state(state, state_path))

    for value in add_classes:
        record = parse_class_option(value)
        store.add_class(record)
        console.print(f"[green]✓[/green] Added class: [bold]{record.name}[/bold]")
    for value, free_slot in [(v, False) for v in add_activities] + [(v, True) for v in add_free_slots]:
        activity = parse_activity_option(value, free_slot=free_slot)
        store.add_activity(activity)
        kind = "free slot" if free_slot else "activity"
        console.print(f"[green]✓[/green] Added {kind}: [bold]{activity.name}[/bold] ({activity.time})")

    if show_tasks:
        if not store.state.tasks:
            console.print("✅ No open tasks found.")
        else:
            console.print(create_summary_table(store.state.tasks, now or datetime.now()))
        return

    if messages:
        for message in messages:
            console.print(f"[bold]You:[/bold] {message}")
            show_result(send_message(store, message, now, service_url), verbose)
        return

    # Header
    console.print(
        Panel.fit(
            f"[bold blue]📚 {ASSISTANT_NAME} Study Planner[/bold blue]\n"
            f"Tell me about tests and assignments. Type [bold]exit[/bold] to leave.",
            border_style="blue"
        )
    )
    while True:
        try:
            message = console.input("[bold]You:[/bold] ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not message:
            continue
        if message.lower() in EXIT_WORDS:
            break
        show_result(send_message(store, message, now, service_url), verbose)


if __name__ == "__main__":
    main()
