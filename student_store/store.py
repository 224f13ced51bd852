# -*- coding: utf-8 -*-
"""
Caller-side storage for a student's classes, routine, tasks and chat.

The planner never writes anything itself. The store applies the records a
``PlanResult`` proposes, keeps the chat history, and hands the whole state to
an ``on_save`` callback after every change. ``save_state`` / ``load_state``
give a JSON file backing for the CLI.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
import typing as t

from study_planner.models import (
    ActivityRecord,
    ClassRecord,
    ConversationTurn,
    PendingContext,
    PlanResult,
    TaskRecord,
)
from study_planner.planner import ASSISTANT_NAME


logger = logging.getLogger(__name__)

STUDENT_STATE_PATH = os.getenv("STUDENT_STATE_PATH", "student_state.json")

# Turns of chat handed to the planner with each message
CONTEXT_TURNS = 5


@dataclass
class StudentState:
    """Everything the assistant knows about one student."""
    classes: list[ClassRecord] = field(default_factory=list)
    activities: list[ActivityRecord] = field(default_factory=list)
    tasks: list[TaskRecord] = field(default_factory=list)
    chat_history: list[ConversationTurn] = field(default_factory=list)
    pending: t.Optional[PendingContext] = None

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> StudentState:
        pending = data.get("pending")
        return cls(
            classes=[ClassRecord.from_dict(d) for d in data.get("classes") or []],
            activities=[ActivityRecord.from_dict(d) for d in data.get("activities") or []],
            tasks=[TaskRecord.from_dict(d) for d in data.get("tasks") or []],
            chat_history=[
                ConversationTurn(author=d.get("author", "user"), text=d.get("text", ""))
                for d in data.get("chatHistory") or []
            ],
            pending=PendingContext.from_dict(pending) if pending else None,
        )

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "classes": [c.to_dict() for c in self.classes],
            "activities": [a.to_dict() for a in self.activities],
            "tasks": [task.to_dict() for task in self.tasks],
            "chatHistory": [turn.to_dict() for turn in self.chat_history],
            "pending": self.pending.to_dict() if self.pending else None,
        }


def load_state(path: t.Union[str, Path] = STUDENT_STATE_PATH) -> StudentState:
    """Read a state file; a missing file is an empty state."""
    path = Path(path)
    if not path.exists():
        return StudentState()
    with path.open(encoding="utf-8") as f:
        return StudentState.from_dict(json.load(f))


def save_state(state: StudentState, path: t.Union[str, Path] = STUDENT_STATE_PATH) -> None:
    """Write the state as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(state.to_dict(), f, indent=2)


class StudentStore:
    """In-memory state plus a save hook called after every change.

    :param state: Initial state (empty by default).
    :param on_save: Called with the state after each mutation.
    """

    def __init__(
            self,
            state: t.Optional[StudentState] = None,
            on_save: t.Optional[t.Callable[[StudentState], None]] = None,
    ) -> None:
        self.state = state or StudentState()
        self.on_save = on_save

    def _changed(self) -> None:
        if self.on_save is not None:
            self.on_save(self.state)

    def add_class(self, record: ClassRecord) -> None:
        """Adds a class to the schedule.

        :param record: The class to add.
        """
        self.state.classes.append(record)
        self._changed()

    def add_activity(self, activity: ActivityRecord) -> None:
        """Adds a routine block.

        :param activity: A busy commitment or a free study window.
        """
        self.state.activities.append(activity)
        self._changed()

    def add_task(self, task: TaskRecord) -> None:
        self.state.tasks.append(task)
        self._changed()

    def delete_task(self, task_id: str) -> bool:
        before = len(self.state.tasks)
        self.state.tasks = [task for task in self.state.tasks if task.id != task_id]
        if len(self.state.tasks) == before:
            return False
        self._changed()
        return True

    def complete_task(self, task_id: str) -> bool:
        for task in self.state.tasks:
            if task.id == task_id:
                task.completed = True
                self._changed()
                return True
        return False

    def record_turn(self, author: str, text: str) -> None:
        self.state.chat_history.append(ConversationTurn(author=author, text=text))
        self._changed()

    def conversation_context(self, limit: int = CONTEXT_TURNS) -> str:
        """The last ``limit`` turns as "User: ..." / "<assistant>: ..." lines."""
        return "\n".join(
            f"{'User' if turn.author == 'user' else ASSISTANT_NAME}: {turn.text}"
            for turn in self.state.chat_history[-limit:]
        )

    def apply_plan(self, result: PlanResult) -> None:
        """Merge a planner result and record its reply.

        Replaced tasks are removed first; new tasks go to the front of the
        list, new classes and activities to the end.
        """
        if result.replaced_task_ids:
            replaced = set(result.replaced_task_ids)
            self.state.tasks = [task for task in self.state.tasks if task.id not in replaced]
        for task in result.new_tasks:
            task.completed = False
        self.state.tasks = list(result.new_tasks) + self.state.tasks
        self.state.classes.extend(result.new_classes)
        self.state.activities.extend(result.new_activities)
        self.state.chat_history.append(ConversationTurn(author="ai", text=result.message))
        self.state.pending = result.pending
        logger.info(
            "Applied plan: %d task(s), %d class(es), %d replaced",
            len(result.new_tasks), len(result.new_classes), len(result.replaced_task_ids),
        )
        self._changed()
