"""
MCP Gateway Server - single entry point for the study planner tools.

Planning goes through the planner service via the MCP wrapper (with its local
fallback); slot search and task summaries run in-process since they are pure
functions over the records passed in.
"""
from __future__ import annotations

from datetime import date, datetime
import typing as t

from fastmcp import FastMCP

# Import the raw function from the MCP wrapper (not the decorated version)
from mcp_wrappers.planner.mcp_service import _build_study_plan, PLANNER_SERVICE_URL
from study_planner.models import ActivityRecord, ClassRecord, PendingContext, TaskRecord
from study_planner.server import format_task_summary
from study_planner.slots import SlotFinder
from study_planner.timefmt import format_clock

# Create the unified MCP server
mcp = FastMCP("StudyPlannerGateway")


def get_service_status() -> dict[str, str]:
    """
    Get the configured URL of the planner service.
    """
    return {
        "planner_service": PLANNER_SERVICE_URL,
        "gateway_status": "running",
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
    """Reads the latest chat message and proposes tasks and classes to add."""
    result = _build_study_plan(
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
    """Finds a free start time on a day, e.g. "4:30 PM"."""
    hour = SlotFinder(_reference(reference)).find_slot(
        date.fromisoformat(day),
        duration_hours,
        [TaskRecord.from_dict(d) for d in tasks or []],
        [ActivityRecord.from_dict(d) for d in activities or []],
        preferred_hour,
    )
    return format_clock(hour) if hour is not None else None


@mcp.tool()
def show_task_summary(tasks: list[dict], reference: t.Optional[str] = None) -> str:
    """Displays open tasks grouped by when they are due."""
    return format_task_summary([TaskRecord.from_dict(d) for d in tasks], _reference(reference))


@mcp.tool()
def get_gateway_info() -> dict[str, str]:
    """
    Get information about the MCP Gateway and the planner service it uses.
    """
    return get_service_status()


if __name__ == "__main__":
    print("🌟 Starting MCP Gateway Server")
    for service_name, service_url in get_service_status().items():
        print(f"  • {service_name}: {service_url}")
    print("\n🌐 Starting MCP server...")
    mcp.run()
