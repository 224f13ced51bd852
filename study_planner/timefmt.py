# -*- coding: utf-8 -*-
"""
Display-string formats shared with the caller.

Task times travel as "Jan 27, 4:00 PM" and routine blocks as "4:00 PM - 6:00 PM".
The engine works on ``date`` values and fractional hours internally and only
formats at the boundary; the parsers here are the ones the caller's sorting
and bucketing code relies on, so formatting and parsing must round-trip.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from enum import Enum
import typing as t


MONTH_ABBREVS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_CLOCK = re.compile(r"(\d{1,2}):(\d{2})\s*([ap])\.?m\b", re.IGNORECASE)
_TASK_MONTH_DAY = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+(\d{1,2})\b", re.IGNORECASE
)
_DURATION_HOURS = re.compile(r"(\d+(?:\.\d+)?)\s*h", re.IGNORECASE)
_DURATION_MINUTES = re.compile(r"(\d+)\s*m(?:in|ins|inutes?)?\b", re.IGNORECASE)

_PHRASE_12H = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\b\.?", re.IGNORECASE)
_PHRASE_24H = re.compile(r"\bat\s+(\d{1,2}):(\d{2})\b", re.IGNORECASE)
_PHRASE_AT_HOUR = re.compile(r"\bat\s+(\d{1,2})\b(?![:/\d]|\s*(?:st|nd|rd|th)\b)", re.IGNORECASE)


class TaskBucket(Enum):
    """Buckets the task list is grouped into."""
    OVERDUE = "overdue"
    TODAY = "today"
    THIS_WEEK = "thisWeek"
    NEXT_WEEK = "nextWeek"
    LATER = "later"


def format_day(day: date) -> str:
    """'Jan 27'"""
    return f"{MONTH_ABBREVS[day.month - 1]} {day.day}"


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()].capitalize()


def format_clock(hour: float) -> str:
    """Format fractional hours (16.5) as '4:30 PM'."""
    minutes = int(round(hour * 60))
    h24 = (minutes // 60) % 24
    mm = minutes % 60
    suffix = "PM" if h24 >= 12 else "AM"
    h12 = h24 % 12 or 12
    return f"{h12}:{mm:02d} {suffix}"


def format_task_time(day: date, hour: float) -> str:
    """Format the task wire string, e.g. 'Jan 27, 4:00 PM'."""
    return f"{format_day(day)}, {format_clock(hour)}"


def parse_clock(text: str) -> t.Optional[float]:
    """Parse the first 'h:mm AM|PM' in text into fractional hours."""
    match = _CLOCK.search(text or "")
    if not match:
        return None
    return _to_hours(int(match.group(1)), int(match.group(2)), match.group(3))


def parse_time_range(text: str) -> t.Optional[tuple[float, float]]:
    """Parse a routine block time like '4:00 PM - 6:00 PM'."""
    parts = re.split(r"\s*[-–]\s*", text or "", maxsplit=1)
    if len(parts) != 2:
        return None
    start, end = parse_clock(parts[0]), parse_clock(parts[1])
    if start is None or end is None or end <= start:
        return None
    return start, end


def parse_duration(text: str) -> t.Optional[float]:
    """Parse '1h', '45m', '1h 30m', '1.5h' or '90 min' into hours.

    Returns None for markers such as '---' that carry no duration.
    """
    text = text or ""
    hours_match = _DURATION_HOURS.search(text)
    minutes_match = _DURATION_MINUTES.search(text)
    if not hours_match and not minutes_match:
        return None
    hours = float(hours_match.group(1)) if hours_match else 0.0
    if minutes_match:
        hours += int(minutes_match.group(1)) / 60
    return hours


def format_duration(hours: float) -> str:
    minutes = int(round(hours * 60))
    h, m = divmod(minutes, 60)
    if h and m:
        return f"{h}h {m}m"
    if h:
        return f"{h}h"
    return f"{m}m"


def parse_time_phrase(text: str) -> t.Optional[float]:
    """Find a time of day stated in free text ('5pm', '5:30 p.m.', 'at 17:00', 'noon').

    A bare 'at 5' is read as an afternoon hour for 1-7 and a morning hour for 8-11.
    """
    text = text or ""
    match = _PHRASE_12H.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if 1 <= hour <= 12 and minute < 60:
            return _to_hours(hour, minute, match.group(3))
    match = _PHRASE_24H.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour < 24 and minute < 60:
            if hour <= 7:
                hour += 12
            return hour + minute / 60
    if re.search(r"\bnoon\b", text, re.IGNORECASE):
        return 12.0
    match = _PHRASE_AT_HOUR.search(text)
    if match:
        hour = int(match.group(1))
        if 1 <= hour <= 7:
            return hour + 12.0
        if 8 <= hour <= 12:
            return float(hour)
    return None


def _to_hours(hour: int, minute: int, meridiem: str) -> float:
    is_pm = meridiem.lower() == "p"
    if is_pm and hour < 12:
        hour += 12
    if not is_pm and hour == 12:
        hour = 0
    return hour + minute / 60


def task_day(task_time: str, reference: date, nearest: bool = False) -> t.Optional[date]:
    """Recover the calendar day of a task display string.

    Understands 'today', 'tomorrow', 'Jan 27' and weekday names. A month/day
    more than one day in the past is taken to mean next year, unless
    ``nearest`` is set: then the occurrence closest to ``reference`` wins, so
    a task from last week stays in the past.
    """
    lower = (task_time or "").lower()
    if "today" in lower:
        return reference
    if "tomorrow" in lower:
        return reference + timedelta(days=1)

    match = _TASK_MONTH_DAY.search(lower)
    if match:
        month = [m.lower() for m in MONTH_ABBREVS].index(match.group(1)) + 1
        day_num = int(match.group(2))
        if nearest:
            options = []
            for year in (reference.year - 1, reference.year, reference.year + 1):
                try:
                    options.append(date(year, month, day_num))
                except ValueError:
                    continue
            return min(options, key=lambda d: abs((d - reference).days)) if options else None
        try:
            day = date(reference.year, month, day_num)
        except ValueError:
            return None
        if day < reference - timedelta(days=1):
            try:
                day = day.replace(year=reference.year + 1)
            except ValueError:
                return None
        return day

    for idx, name in enumerate(WEEKDAYS):
        if name in lower:
            diff = idx - reference.weekday()
            if diff <= 0:
                diff += 7
            if "next" in lower and diff > 3:
                diff += 7
            return reference + timedelta(days=diff)
    return None


def task_datetime(task_time: str, reference: date) -> t.Optional[datetime]:
    """Day plus clock time of a task display string, or None without a day."""
    day = task_day(task_time, reference)
    if day is None:
        return None
    hour = parse_clock(task_time) or 0.0
    return datetime.combine(day, datetime.min.time()) + timedelta(hours=hour)


def categorize_task(task_time: str, now: datetime) -> TaskBucket:
    """Place a task into overdue / today / this week / next week / later."""
    when = task_datetime(task_time, now.date())
    if when is None:
        return TaskBucket.LATER
    # five minutes of grace before a task counts as overdue
    if when - now < timedelta(minutes=-5):
        return TaskBucket.OVERDUE
    day_diff = (when.date() - now.date()).days
    if day_diff == 0:
        return TaskBucket.TODAY
    if 0 < day_diff <= 7:
        return TaskBucket.THIS_WEEK
    if 7 < day_diff <= 14:
        return TaskBucket.NEXT_WEEK
    return TaskBucket.LATER
