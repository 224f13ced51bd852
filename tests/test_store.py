# -*- coding: utf-8 -*-
"""Tests for the caller-side student store."""
import json

from student_store.store import StudentState, StudentStore, load_state, save_state
from study_planner.models import (
    ActivityRecord,
    ClassRecord,
    ConversationState,
    PendingContext,
    PlanResult,
    Resource,
    TaskRecord,
)
from study_planner.planner import ASSISTANT_NAME


def test_apply_plan_merges_records() -> None:
    """Test that new records are merged and replaced tasks removed."""
    old = TaskRecord(title="AP Calculus Test", time="Jan 17, 8:15 AM", type="task")
    keep = TaskRecord(title="Soccer", time="Jan 16, 6:00 PM", type="task")
    store = StudentStore(StudentState(tasks=[old, keep]))

    new = TaskRecord(title="AP Calculus Test", time="Jan 20, 8:15 AM", type="task")
    store.apply_plan(PlanResult(
        message="Moved it.",
        new_tasks=[new],
        new_classes=[ClassRecord(name="AP Calculus", subject="Math")],
        replaced_task_ids=[old.id],
    ))

    assert [task.id for task in store.state.tasks] == [new.id, keep.id]
    assert [c.name for c in store.state.classes] == ["AP Calculus"]
    assert store.state.chat_history[-1].author == "ai"
    assert store.state.chat_history[-1].text == "Moved it."


def test_apply_plan_keeps_pending_context() -> None:
    """Test that the waiting state is kept for the next message."""
    store = StudentStore()
    pending = PendingContext(state=ConversationState.AWAITING_INTENSITY, request="Math test on Feb 10")
    store.apply_plan(PlanResult(message="How intense?", state=pending.state, pending=pending))
    assert store.state.pending is pending

    store.apply_plan(PlanResult(message="Done."))
    assert store.state.pending is None


def test_on_save_called_after_each_change() -> None:
    """Test the injected save callback."""
    saved = []
    store = StudentStore(on_save=lambda state: saved.append(len(state.tasks)))
    store.add_task(TaskRecord(title="Read", time="Jan 16, 4:00 PM"))
    store.record_turn("user", "hi")
    store.apply_plan(PlanResult(message="Hello!"))
    assert saved == [1, 1, 1]


def test_delete_and_complete_task() -> None:
    """Test removing and finishing tasks."""
    task = TaskRecord(title="Read", time="Jan 16, 4:00 PM")
    store = StudentStore(StudentState(tasks=[task]))
    assert store.complete_task(task.id)
    assert store.state.tasks[0].completed
    assert store.delete_task(task.id)
    assert not store.delete_task(task.id)
    assert not store.complete_task("missing")


def test_conversation_context_uses_last_five_turns() -> None:
    """Test the "User:" / assistant prefixed context."""
    store = StudentStore()
    for idx in range(4):
        store.record_turn("user", f"message {idx}")
        store.record_turn("ai", f"reply {idx}")

    lines = store.conversation_context().splitlines()
    assert len(lines) == 5
    assert lines[0] == f"{ASSISTANT_NAME}: reply 1"
    assert lines[-1] == f"{ASSISTANT_NAME}: reply 3"
    assert lines[-2] == "User: message 3"


def test_save_and_load_state(tmp_path) -> None:
    """Test the JSON file round trip, camelCase keys included."""
    path = tmp_path / "state.json"
    state = StudentState(
        classes=[ClassRecord(name="AP Calculus", subject="Math")],
        activities=[ActivityRecord(name="Study", time="4:00 PM - 8:00 PM", frequency="weekdays", is_free_slot=True)],
        tasks=[TaskRecord(title="Review", time="Jan 16, 4:00 PM", resources=[Resource("Knowt", "https://knowt.com")])],
        pending=PendingContext(state=ConversationState.AWAITING_TIME, request="Math test friday"),
    )
    save_state(state, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["activities"][0]["isFreeSlot"] is True

    loaded = load_state(path)
    assert loaded.classes[0].name == "AP Calculus"
    assert loaded.activities[0].is_free_slot
    assert loaded.tasks[0].resources[0].url == "https://knowt.com"
    assert loaded.pending.state is ConversationState.AWAITING_TIME


def test_load_missing_state(tmp_path) -> None:
    """Test that a missing file is an empty state."""
    state = load_state(tmp_path / "missing.json")
    assert state.tasks == [] and state.classes == [] and state.pending is None
