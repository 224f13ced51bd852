"""
Data models for the study planner inference engine.

This module contains the records exchanged between the engine and its caller.
The caller speaks camelCase JSON (``isFreeSlot``, ``appliedDays``, ``newTasks``),
so every record knows how to read and write its wire shape.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import typing as t


TaskType = t.Literal["task", "study", "assignment"]
Priority = t.Literal["high", "medium"]
Frequency = t.Literal["daily", "weekdays", "weekends", "weekly"]
Author = t.Literal["user", "ai"]

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def new_id() -> str:
    return str(uuid.uuid4())


class TaskKind(Enum):
    """What an engine-produced task stands for."""
    TEST = "test"
    STUDY_SESSION = "study_session"
    ASSIGNMENT_DEADLINE = "assignment_deadline"

    @property
    def wire_type(self) -> TaskType:
        # Graded deadlines (tests and due dates) are both "task" on the wire
        return "study" if self is TaskKind.STUDY_SESSION else "task"


class ConversationState(Enum):
    """What the assistant is waiting for from the user."""
    IDLE = "idle"
    AWAITING_CLASS_NAME = "awaiting_class_name"
    AWAITING_INTENSITY = "awaiting_intensity"
    AWAITING_TIME = "awaiting_time"
    AWAITING_RESCHEDULE = "awaiting_reschedule"


@dataclass
class ClassRecord:
    """A class on the student's schedule, e.g. name="AP Calculus", subject="Math"."""
    name: str
    subject: str = ""
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> ClassRecord:
        return cls(
            id=str(data.get("id") or new_id()),
            name=data.get("name") or "",
            subject=data.get("subject") or "",
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {"id": self.id, "name": self.name, "subject": self.subject}


@dataclass
class ActivityRecord:
    """
    A routine block. Busy commitment, or a study window when is_free_slot is set.
    """
    name: str
    time: str  # "4:00 PM - 6:00 PM"
    frequency: Frequency = "weekly"
    applied_days: list[str] = field(default_factory=list)  # ["Monday", "Wednesday"]
    type: str = "activity"
    is_free_slot: bool = False
    id: str = field(default_factory=new_id)

    def applies_to(self, day: date) -> bool:
        """Whether this block repeats on the given calendar day."""
        day_name = DAY_NAMES[day.weekday()]
        if self.frequency == "daily":
            return True
        if self.frequency == "weekdays" and day.weekday() < 5:
            return True
        if self.frequency == "weekends" and day.weekday() >= 5:
            return True
        return day_name in self.applied_days

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> ActivityRecord:
        return cls(
            id=str(data.get("id") or new_id()),
            name=data.get("name") or "",
            time=data.get("time") or "",
            frequency=data.get("frequency") or "weekly",
            applied_days=list(data.get("appliedDays", data.get("applied_days")) or []),
            type=data.get("type") or "activity",
            is_free_slot=bool(data.get("isFreeSlot", data.get("is_free_slot", False))),
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "id": self.id,
            "name": self.name,
            "time": self.time,
            "frequency": self.frequency,
            "appliedDays": list(self.applied_days),
            "type": self.type,
            "isFreeSlot": self.is_free_slot,
        }


@dataclass
class Resource:
    """A named study-aid link."""
    label: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "url": self.url}


@dataclass
class TaskRecord:
    """
    A task card. ``time`` is the display string "Jan 27, 4:00 PM", which the
    caller re-parses for sorting, so it is the only date the record carries.
    """
    title: str
    time: str
    duration: str = "1h"  # "1h", "45m", "1h 30m", "---" for deadline markers
    type: TaskType = "study"
    priority: Priority = "medium"
    description: str = ""
    resources: list[Resource] = field(default_factory=list)
    completed: bool = False
    kind: t.Optional[TaskKind] = None
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> TaskRecord:
        kind = data.get("kind")
        return cls(
            id=str(data.get("id") or new_id()),
            title=data.get("title") or "",
            time=data.get("time") or "",
            duration=data.get("duration") or "1h",
            type=data.get("type") or "study",
            priority=data.get("priority") or "medium",
            description=data.get("description") or "",
            resources=[
                Resource(label=r.get("label", ""), url=r.get("url", ""))
                for r in data.get("resources") or []
            ],
            completed=bool(data.get("completed", False)),
            kind=TaskKind(kind) if kind else None,
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "id": self.id,
            "title": self.title,
            "time": self.time,
            "duration": self.duration,
            "type": self.type,
            "priority": self.priority,
            "description": self.description,
            "resources": [r.to_dict() for r in self.resources],
            "completed": self.completed,
            "kind": self.kind.value if self.kind else None,
        }


@dataclass
class ConversationTurn:
    """One chat message."""
    author: Author
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"author": self.author, "text": self.text}


@dataclass
class PendingContext:
    """The request the assistant set aside while it waits for an answer."""
    state: ConversationState
    kind: t.Literal["test", "assignment"] = "test"
    subject_id: t.Optional[str] = None
    subject_display: t.Optional[str] = None  # "Math", used in prompts
    category: t.Optional[str] = None  # subject category for a class created later
    deadline: t.Optional[date] = None
    request: str = ""  # the user message that started it

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> PendingContext:
        deadline = data.get("deadline")
        return cls(
            state=ConversationState(data.get("state", ConversationState.IDLE.value)),
            kind=data.get("kind") or "test",
            subject_id=data.get("subjectId"),
            subject_display=data.get("subjectDisplay"),
            category=data.get("category"),
            deadline=date.fromisoformat(deadline) if deadline else None,
            request=data.get("request") or "",
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "state": self.state.value,
            "kind": self.kind,
            "subjectId": self.subject_id,
            "subjectDisplay": self.subject_display,
            "category": self.category,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "request": self.request,
        }


@dataclass
class PlanResult:
    """Reply plus the records to merge into the caller's state."""
    message: str
    new_tasks: list[TaskRecord] = field(default_factory=list)
    new_classes: list[ClassRecord] = field(default_factory=list)
    new_activities: list[ActivityRecord] = field(default_factory=list)
    replaced_task_ids: list[str] = field(default_factory=list)
    state: ConversationState = ConversationState.IDLE
    pending: t.Optional[PendingContext] = None

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> PlanResult:
        pending = data.get("pending")
        return cls(
            message=data.get("message") or "",
            new_tasks=[TaskRecord.from_dict(d) for d in data.get("newTasks") or []],
            new_classes=[ClassRecord.from_dict(d) for d in data.get("newClasses") or []],
            new_activities=[ActivityRecord.from_dict(d) for d in data.get("newActivities") or []],
            replaced_task_ids=list(data.get("replacedTaskIds") or []),
            state=ConversationState(data.get("state") or ConversationState.IDLE.value),
            pending=PendingContext.from_dict(pending) if pending else None,
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "message": self.message,
            "newTasks": [task.to_dict() for task in self.new_tasks],
            "newClasses": [c.to_dict() for c in self.new_classes],
            "newActivities": [a.to_dict() for a in self.new_activities],
            "replacedTaskIds": list(self.replaced_task_ids),
            "state": self.state.value,
            "pending": self.pending.to_dict() if self.pending else None,
        }
