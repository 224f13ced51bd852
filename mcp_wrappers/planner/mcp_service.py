"""
MCP wrapper for the study planner service.

This module keeps the planner's MCP tool signatures but makes HTTP calls to
the planner service. When the service is unreachable, times out or answers
with an error, the same plan is produced by the local engine so the chat
keeps working offline.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
import typing as t

import httpx
from fastmcp import FastMCP

from study_planner.models import ActivityRecord, ClassRecord, PendingContext, PlanResult, TaskRecord
from study_planner.planner import build_plan
from services.shared.models import PlanRequest, PlanResponse


logger = logging.getLogger(__name__)

mcp = FastMCP("StudyPlannerMCPWrapper")

# Service URL - configurable via environment variable
PLANNER_SERVICE_URL = os.getenv("PLANNER_SERVICE_URL", "http://localhost:8004")

# Planning is rule-based and fast, a slow answer means the service is unhealthy
PLAN_TIMEOUT = float(os.getenv("PLANNER_SERVICE_TIMEOUT", "10.0"))


def _build_study_plan(
        conversation: str,
        tasks: t.Sequence[TaskRecord] = (),
        activities: t.Sequence[ActivityRecord] = (),
        classes: t.Sequence[ClassRecord] = (),
        reference: t.Optional[datetime] = None,
        pending: t.Optional[PendingContext] = None,
        service_url: t.Optional[str] = None,
) -> PlanResult:
    """
    Plan from the latest chat message through the planner service.

    Falls back to the local engine on any transport or service error.
    """
    reference = reference or datetime.now()
    url = service_url or PLANNER_SERVICE_URL
    try:
        request = PlanRequest.model_validate({
            "conversation": conversation,
            "tasks": [task.to_dict() for task in tasks],
            "activities": [activity.to_dict() for activity in activities],
            "classes": [c.to_dict() for c in classes],
            "reference": reference.isoformat(),
            "pending": pending.to_dict() if pending else None,
        })

        with httpx.Client(timeout=PLAN_TIMEOUT) as client:
            response = client.post(
                f"{url}/planner/plan",
                json=request.model_dump(by_alias=True),
            )
            response.raise_for_status()

        # Convert response back to the dataclass records
        result = PlanResponse.model_validate(response.json())
        return PlanResult.from_dict(result.model_dump(by_alias=True))

    except httpx.TimeoutException:
        logger.warning("Planner service timed out after %s seconds, planning locally", PLAN_TIMEOUT)
    except httpx.HTTPStatusError as e:
        logger.warning(
            "HTTP error from planner service: %s %s, planning locally", e.response.status_code, e.response.text
        )
    except Exception as e:
        logger.warning("Error calling planner service: %s, planning locally", e)

    return build_plan(conversation, tasks, activities, classes, reference=reference, pending=pending)


# MCP tool wrappers that call the raw functions
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
        reference=datetime.fromisoformat(reference) if reference else None,
        pending=PendingContext.from_dict(pending) if pending else None,
    )
    return result.to_dict()
