# -*- coding: utf-8 -*-
"""Tests for finding free time slots."""
from datetime import date, datetime

from study_planner.models import ActivityRecord, TaskRecord
from study_planner.slots import SlotFinder, overlaps


NOW = datetime(2025, 1, 15, 9, 0)  # Wednesday morning
THURSDAY = date(2025, 1, 16)


def _task(time: str, duration: str = "1h") -> TaskRecord:
    return TaskRecord(title="Existing", time=time, duration=duration, type="task")


def test_overlaps_is_half_open() -> None:
    """Test that touching intervals do not overlap."""
    assert overlaps((16.0, 17.0), (16.5, 17.5))
    assert not overlaps((16.0, 17.0), (17.0, 18.0))


def test_empty_day_uses_default_window() -> None:
    """Test that the 4 PM - 8 PM window is used without a free slot."""
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, []) == 16.0


def test_skips_existing_task() -> None:
    """Test that a same-day task pushes the slot back."""
    tasks = [_task("Jan 16, 4:00 PM")]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, tasks) == 17.0


def test_preferred_hour_taken_moves_to_next_half_hour() -> None:
    """Test that a taken 5 PM yields the next free half-hour increment."""
    tasks = [_task("Jan 16, 5:00 PM")]
    hour = SlotFinder(NOW).find_slot(THURSDAY, 0.75, tasks, preferred_hour=17.0)
    assert hour != 17.0
    assert hour == 18.0


def test_preferred_hour_free() -> None:
    """Test that a free preferred hour is kept even outside the window."""
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, [], preferred_hour=10.0) == 10.0


def test_tasks_on_other_days_are_ignored() -> None:
    """Test that only same-day tasks block time."""
    tasks = [_task("Jan 17, 4:00 PM")]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, tasks) == 16.0


def test_unknown_duration_counts_as_one_hour() -> None:
    """Test that a task without a parseable duration blocks an hour."""
    tasks = [_task("Jan 16, 4:00 PM", duration="a while")]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, tasks) == 17.0


def test_deadline_markers_take_no_time() -> None:
    """Test that "---" due markers never block a slot or each other."""
    tasks = [_task("Jan 16, 4:00 PM", duration="---"), _task("Jan 16, 11:59 PM", duration="---")]
    finder = SlotFinder(NOW)
    assert finder.busy_intervals(THURSDAY, tasks) == []
    assert finder.find_slot(THURSDAY, 1.0, tasks) == 16.0


def test_free_slot_sets_window() -> None:
    """Test that a weekday free slot becomes the working window."""
    activities = [ActivityRecord(name="Study", time="6:00 PM - 9:00 PM", frequency="weekdays", is_free_slot=True)]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, [], activities) == 18.0


def test_free_slot_on_other_days_is_ignored() -> None:
    """Test that a free slot only applies on its own days."""
    activities = [
        ActivityRecord(name="Study", time="6:00 PM - 9:00 PM", applied_days=["Monday"], is_free_slot=True),
    ]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, [], activities) == 16.0


def test_busy_activity_blocks_time() -> None:
    """Test that routine commitments are busy time."""
    activities = [ActivityRecord(name="Soccer", time="4:00 PM - 6:00 PM", applied_days=["Thursday"])]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, [], activities) == 18.0


def test_today_never_returns_past_slot() -> None:
    """Test that slots earlier than now are skipped on the reference day."""
    finder = SlotFinder(datetime(2025, 1, 15, 17, 10))
    assert finder.find_slot(date(2025, 1, 15), 1.0, []) == 17.5


def test_past_day_has_no_slot() -> None:
    """Test that days before the reference day are never scheduled."""
    assert SlotFinder(NOW).find_slot(date(2025, 1, 14), 1.0, []) is None


def test_full_day_has_no_slot() -> None:
    """Test that None is returned when nothing fits."""
    activities = [ActivityRecord(name="Job", time="12:00 PM - 11:30 PM", frequency="daily")]
    assert SlotFinder(NOW).find_slot(THURSDAY, 1.0, [], activities) is None


def test_place_fixed_shifts_past_overlap() -> None:
    """Test that a fixed-time record moves forward in half hours."""
    tasks = [_task("Jan 16, 8:00 AM")]
    assert SlotFinder(NOW).place_fixed(THURSDAY, 8.25, 1.0, tasks) == 9.25
    assert SlotFinder(NOW).place_fixed(THURSDAY, 10.0, 1.0, tasks) == 10.0
