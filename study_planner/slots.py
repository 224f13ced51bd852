# -*- coding: utf-8 -*-
"""
Time slot search for a single day.

Times are fractional hours from midnight (16.5 is 4:30 PM). Busy intervals
are half-open, ``[start, start + duration)``.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
import typing as t

from study_planner.models import ActivityRecord, TaskRecord
from study_planner.timefmt import parse_clock, parse_duration, parse_time_range, task_day


logger = logging.getLogger(__name__)

# Constants for slot search
DEFAULT_WINDOW = (16.0, 20.0)  # 4 PM - 8 PM when no free slot is configured
WIDE_BAND = (15.0, 21.0)
SLOT_STEP = 0.5
DEFAULT_BUSY_HOURS = 1.0  # tasks whose duration can't be parsed
DEADLINE_DURATION = "---"  # due-date markers are a point in time
LATEST_END = 23.5

Interval = tuple[float, float]


def overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and b[0] < a[1]


class SlotFinder:
    """Find a non-conflicting start time on a given day.

    :param now: the current moment; slots on today's date must start after it.
    """

    def __init__(self, now: datetime) -> None:
        self.now = now

    def busy_intervals(
            self,
            day: date,
            tasks: t.Sequence[TaskRecord],
            activities: t.Sequence[ActivityRecord] = (),
    ) -> list[Interval]:
        """Intervals already taken on ``day`` by tasks and busy routine blocks.

        Deadline markers take no time, so any number of them can share a day.
        """
        busy: list[Interval] = []
        for task in tasks:
            if task_day(task.time, self.now.date()) != day:
                continue
            start = parse_clock(task.time)
            if start is None or (task.duration or "").strip() == DEADLINE_DURATION:
                continue
            duration = parse_duration(task.duration) or DEFAULT_BUSY_HOURS
            busy.append((start, start + duration))
        for activity in activities:
            if activity.is_free_slot or not activity.applies_to(day):
                continue
            span = parse_time_range(activity.time)
            if span:
                busy.append(span)
        return busy

    def working_window(self, day: date, activities: t.Sequence[ActivityRecord]) -> Interval:
        """The first free-slot block that applies to ``day``, else the default window."""
        for activity in activities:
            if activity.is_free_slot and activity.applies_to(day):
                span = parse_time_range(activity.time)
                if span:
                    return span
        return DEFAULT_WINDOW

    def is_available(self, day: date, start: float, duration: float, busy: t.Sequence[Interval]) -> bool:
        if day < self.now.date():
            return False
        if day == self.now.date() and start <= self._now_hours():
            return False
        return not any(overlaps((start, start + duration), interval) for interval in busy)

    def find_slot(
            self,
            day: date,
            duration_hours: float,
            existing_tasks: t.Sequence[TaskRecord],
            routine_activities: t.Sequence[ActivityRecord] = (),
            preferred_hour: t.Optional[float] = None,
    ) -> t.Optional[float]:
        """Return the start hour of a free slot on ``day``, or None if nothing fits.

        A preferred hour is tried first, then the half hours after it. After
        that the day's working window and then the 3 PM - 9 PM band are scanned
        in 30-minute steps.
        """
        if day < self.now.date():
            return None
        busy = self.busy_intervals(day, existing_tasks, routine_activities)

        if preferred_hour is not None:
            start = preferred_hour
            while start + duration_hours <= LATEST_END:
                if self.is_available(day, start, duration_hours, busy):
                    return start
                start += SLOT_STEP

        window = self.working_window(day, routine_activities)
        for low, high in (window, WIDE_BAND):
            start = low
            while start + duration_hours <= high:
                if self.is_available(day, start, duration_hours, busy):
                    return start
                start += SLOT_STEP

        logger.debug("No %.2fh slot on %s (busy: %s)", duration_hours, day, busy)
        return None

    def place_fixed(
            self,
            day: date,
            hour: float,
            duration_hours: float,
            existing_tasks: t.Sequence[TaskRecord],
    ) -> t.Optional[float]:
        """Keep a fixed-time record at ``hour``, or push it back until it no longer overlaps.

        Unlike :meth:`find_slot` this ignores the clock: a test that already
        started this morning is still recorded.
        """
        busy = self.busy_intervals(day, existing_tasks)
        start = hour
        while start + duration_hours <= LATEST_END + SLOT_STEP:
            if not any(overlaps((start, start + duration_hours), interval) for interval in busy):
                return start
            start += SLOT_STEP
        return None

    def _now_hours(self) -> float:
        return self.now.hour + self.now.minute / 60
