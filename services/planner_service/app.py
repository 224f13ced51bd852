"""
FastAPI service for study planning operations.

This service exposes the deterministic planner in study_planner/ as REST API
endpoints. Nothing is stored here: every request carries the student's tasks,
routine and classes, and the response carries the records to merge.
"""
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import date, datetime
import typing as t

from fastapi import FastAPI, HTTPException

from services.shared.models import (
    CategorizeRequest,
    CategorizeResponse,
    PlanRequest,
    PlanResponse,
    SlotRequest,
    SlotResponse,
    Task,
)
from study_planner.models import ActivityRecord, ClassRecord, PendingContext, TaskRecord
from study_planner.planner import build_plan
from study_planner.server import format_task_summary, group_tasks
from study_planner.slots import SlotFinder
from study_planner.timefmt import format_clock


LOG_LEVEL = os.getenv("STUDY_PLANNER_LOG_LEVEL", "INFO")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown."""
    logger.info("Study planner service starting")
    yield
    logger.info("Study planner service stopped")


app = FastAPI(
    title="Study Planner Service",
    description="REST API for rule-based study session planning",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "study-planner-service"}


@app.post("/planner/plan", response_model=PlanResponse)
async def plan(request: PlanRequest) -> PlanResponse:
    """
    Reply to the latest message in the conversation and propose records.

    Planning itself never fails; a bad ``reference`` or a malformed record
    is reported as a 500.
    """
    try:
        result = build_plan(
            request.conversation,
            _tasks(request.tasks),
            _activities(request.activities),
            [ClassRecord.from_dict(c.model_dump(by_alias=True)) for c in request.classes],
            reference=_reference(request.reference),
            pending=PendingContext.from_dict(request.pending.model_dump(by_alias=True)) if request.pending else None,
        )
        logger.info("Planned %d task(s) for %r", len(result.new_tasks), request.conversation[-80:])
        return PlanResponse.model_validate(result.to_dict())

    except Exception as e:
        logger.exception("Error building study plan")
        raise HTTPException(status_code=500, detail=f"Error building study plan: {str(e)}")


@app.post("/planner/slot", response_model=SlotResponse)
async def find_slot(request: SlotRequest) -> SlotResponse:
    """
    Find a free start time on one day around existing tasks and routine blocks.
    """
    try:
        hour = SlotFinder(_reference(request.reference)).find_slot(
            date.fromisoformat(request.day),
            request.duration_hours,
            _tasks(request.tasks),
            _activities(request.activities),
            request.preferred_hour,
        )
        if hour is None:
            return SlotResponse()
        return SlotResponse(hour=hour, start=format_clock(hour))

    except Exception as e:
        logger.exception("Error finding slot")
        raise HTTPException(status_code=500, detail=f"Error finding slot: {str(e)}")


@app.post("/tasks:categorize", response_model=CategorizeResponse)
async def categorize(request: CategorizeRequest) -> CategorizeResponse:
    """
    Group open tasks into overdue / today / thisWeek / nextWeek / later.
    """
    try:
        now = _reference(request.reference)
        tasks = _tasks(request.tasks)
        groups = group_tasks(tasks, now)
        buckets = {
            bucket.value: [Task.model_validate(task.to_dict()) for task in items]
            for bucket, items in groups.items()
        }
        return CategorizeResponse(buckets=buckets, summary=format_task_summary(tasks, now))

    except Exception as e:
        logger.exception("Error categorizing tasks")
        raise HTTPException(status_code=500, detail=f"Error categorizing tasks: {str(e)}")


def _reference(value: t.Optional[str]) -> datetime:
    return datetime.fromisoformat(value) if value else datetime.now()


def _tasks(tasks: list[Task]) -> list[TaskRecord]:
    return [TaskRecord.from_dict(task.model_dump(by_alias=True)) for task in tasks]


def _activities(activities) -> list[ActivityRecord]:
    return [ActivityRecord.from_dict(a.model_dump(by_alias=True)) for a in activities]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8004)
