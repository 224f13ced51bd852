# -*- coding: utf-8 -*-
"""Tests for the chat command line."""
from click.testing import CliRunner

from orchestrator.run import main, parse_activity_option, parse_class_option
from student_store.store import load_state


REFERENCE = "2025-01-15T09:00:00"


def test_parse_class_option() -> None:
    """Test the NAME=SUBJECT class option."""
    record = parse_class_option("AP Calculus = Math")
    assert (record.name, record.subject) == ("AP Calculus", "Math")
    assert parse_class_option("Homeroom").subject == ""


def test_parse_activity_option() -> None:
    """Test the NAME=START - END@DAYS routine option."""
    soccer = parse_activity_option("Soccer=4:00 PM - 6:00 PM@monday, Wednesday")
    assert (soccer.name, soccer.time, soccer.frequency) == ("Soccer", "4:00 PM - 6:00 PM", "weekly")
    assert soccer.applied_days == ["Monday", "Wednesday"]
    assert not soccer.is_free_slot

    window = parse_activity_option("6:00 PM - 9:00 PM@weekdays", free_slot=True)
    assert window.is_free_slot
    assert (window.frequency, window.applied_days) == ("weekdays", [])
    assert parse_activity_option("Gym=7:00 AM - 8:00 AM").frequency == "daily"


def test_messages_are_planned_and_saved(tmp_path) -> None:
    """Test sending a message and persisting the plan."""
    state_path = tmp_path / "state.json"
    result = CliRunner().invoke(main, [
        "--state", str(state_path),
        "--reference", REFERENCE,
        "--add-class", "AP Calculus=Math",
        "Math test next Friday",
    ])
    assert result.exit_code == 0, result.output

    state = load_state(state_path)
    assert [c.name for c in state.classes] == ["AP Calculus"]
    assert "AP Calculus Test" in [task.title for task in state.tasks]
    assert [turn.author for turn in state.chat_history] == ["user", "ai"]


def test_follow_up_uses_saved_pending_context(tmp_path) -> None:
    """Test that a second invocation answers the previous question."""
    state_path = tmp_path / "state.json"
    runner = CliRunner()
    runner.invoke(main, ["--state", str(state_path), "--reference", REFERENCE, "Math test next Friday"])
    assert load_state(state_path).pending is not None

    result = runner.invoke(main, ["--state", str(state_path), "--reference", REFERENCE, "AP Calculus"])
    assert result.exit_code == 0, result.output

    state = load_state(state_path)
    assert [c.name for c in state.classes] == ["AP Calculus"]
    assert any(task.title == "AP Calculus Test" for task in state.tasks)
    assert state.pending is None


def test_show_tasks(tmp_path) -> None:
    """Test the open task table."""
    state_path = tmp_path / "state.json"
    runner = CliRunner()
    runner.invoke(main, [
        "--state", str(state_path), "--reference", REFERENCE, "--add-class", "AP Calculus=Math",
        "Math homework due Friday",
    ])
    result = runner.invoke(main, ["--state", str(state_path), "--reference", REFERENCE, "--tasks"])
    assert result.exit_code == 0, result.output
    assert "AP Calculus DUE" in result.output


def test_interactive_chat(tmp_path) -> None:
    """Test the prompt loop until "exit"."""
    state_path = tmp_path / "state.json"
    result = CliRunner().invoke(
        main, ["--state", str(state_path), "--reference", REFERENCE], input="hello\nexit\n",
    )
    assert result.exit_code == 0, result.output

    history = load_state(state_path).chat_history
    assert [turn.text for turn in history if turn.author == "user"] == ["hello"]
    assert history[-1].text.startswith("Good morning!")


def test_free_slot_option_sets_study_window(tmp_path) -> None:
    """Test that a free slot added on the command line is used for planning."""
    state_path = tmp_path / "state.json"
    result = CliRunner().invoke(main, [
        "--state", str(state_path),
        "--reference", REFERENCE,
        "--add-class", "AP Calculus=Math",
        "--add-activity", "Soccer=4:00 PM - 6:00 PM@Thursday",
        "--add-free-slot", "6:00 PM - 9:00 PM@weekdays",
        "Math homework due Friday",
    ])
    assert result.exit_code == 0, result.output

    state = load_state(state_path)
    assert [(a.name, a.is_free_slot) for a in state.activities] == [("Soccer", False), ("Study Time", True)]
    work = [task for task in state.tasks if task.title == "AP Calculus Homework"][0]
    assert work.time == "Jan 15, 6:00 PM"


def test_bad_activity_option(tmp_path) -> None:
    """Test that an activity without a time range is a usage error."""
    result = CliRunner().invoke(main, ["--state", str(tmp_path / "state.json"), "--add-activity", "Soccer", "--tasks"])
    assert result.exit_code == 2
    assert not (tmp_path / "state.json").exists()
