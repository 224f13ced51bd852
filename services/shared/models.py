"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass records in
``study_planner.models``. Field names are snake_case in Python and camelCase
on the wire (``isFreeSlot``, ``newTasks``), matching the records' ``to_dict``
output so either side can be validated straight from the other.
"""
from __future__ import annotations

import typing as t
from pydantic import BaseModel, ConfigDict, Field


# Type literals for commonly used values
TaskType = t.Literal["task", "study", "assignment"]
Priority = t.Literal["high", "medium"]
Frequency = t.Literal["daily", "weekdays", "weekends", "weekly"]
StateName = t.Literal["idle", "awaiting_class_name", "awaiting_intensity", "awaiting_time", "awaiting_reschedule"]


class WireModel(BaseModel):
    """Accepts both the camelCase aliases and the Python field names."""
    model_config = ConfigDict(populate_by_name=True)


class Resource(WireModel):
    """A named study-aid link."""
    label: str = ""
    url: str = ""


class Task(WireModel):
    """
    A task card. ``time`` is the display string "Jan 27, 4:00 PM".
    """
    id: str = ""
    title: str = ""
    time: str = ""
    duration: str = "1h"  # "1h", "45m", "---"
    type: TaskType = "study"
    priority: Priority = "medium"
    description: str = ""
    resources: list[Resource] = Field(default_factory=list)
    completed: bool = False
    kind: t.Optional[str] = None  # "test", "study_session", "assignment_deadline"


class SchoolClass(WireModel):
    """A class on the student's schedule."""
    id: str = ""
    name: str = ""
    subject: str = ""


class Activity(WireModel):
    """
    A routine block, e.g. "Soccer Practice" or a free study window:
    - time "4:00 PM - 6:00 PM"
    - frequency "weekdays", or "weekly" with applied_days
    """
    id: str = ""
    name: str = ""
    time: str = ""
    frequency: Frequency = "weekly"
    applied_days: list[str] = Field(default_factory=list, alias="appliedDays")
    type: str = "activity"
    is_free_slot: bool = Field(default=False, alias="isFreeSlot")


class Pending(WireModel):
    """What the assistant is waiting for; handed back on the next call."""
    state: StateName = "idle"
    kind: t.Literal["test", "assignment"] = "test"
    subject_id: t.Optional[str] = Field(default=None, alias="subjectId")
    subject_display: t.Optional[str] = Field(default=None, alias="subjectDisplay")
    category: t.Optional[str] = None
    deadline: t.Optional[str] = None  # "YYYY-MM-DD"
    request: str = ""


# Request/Response Models for API endpoints
class PlanRequest(WireModel):
    """Request model for planning from the latest chat message."""
    conversation: str
    tasks: list[Task] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    classes: list[SchoolClass] = Field(default_factory=list)
    reference: t.Optional[str] = None  # ISO datetime, defaults to now
    pending: t.Optional[Pending] = None


class PlanResponse(WireModel):
    """Response model with the reply and the records to merge."""
    message: str
    new_tasks: list[Task] = Field(default_factory=list, alias="newTasks")
    new_classes: list[SchoolClass] = Field(default_factory=list, alias="newClasses")
    new_activities: list[Activity] = Field(default_factory=list, alias="newActivities")
    replaced_task_ids: list[str] = Field(default_factory=list, alias="replacedTaskIds")
    state: StateName = "idle"
    pending: t.Optional[Pending] = None


class SlotRequest(WireModel):
    """Request model for finding a free start time on one day."""
    day: str  # "YYYY-MM-DD"
    duration_hours: float = Field(default=1.0, alias="durationHours")
    tasks: list[Task] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    preferred_hour: t.Optional[float] = Field(default=None, alias="preferredHour")
    reference: t.Optional[str] = None


class SlotResponse(WireModel):
    """Response model for a slot search; both fields are null when nothing fits."""
    hour: t.Optional[float] = None
    start: t.Optional[str] = None  # "4:30 PM"


class CategorizeRequest(WireModel):
    """Request model for bucketing tasks by due time."""
    tasks: list[Task] = Field(default_factory=list)
    reference: t.Optional[str] = None


class CategorizeResponse(WireModel):
    """Response model with tasks grouped into overdue / today / thisWeek / nextWeek / later."""
    buckets: dict[str, list[Task]] = Field(default_factory=dict)
    summary: str = ""
