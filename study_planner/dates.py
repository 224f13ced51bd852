# -*- coding: utf-8 -*-
"""
Relative and absolute date expressions in chat text.

Recognized, in priority order:

1. explicit dates: "Jan 27", "January 27th", "1/27", "the 27th"
2. "today", "tonight", "tomorrow", "day after tomorrow", "yesterday",
   "in 3 days", "in 2 weeks", "4 days ago"
3. weekday names, typos and abbreviations included ("wensday", "thurs"),
   with "next", "this" and "last" qualifiers
4. "next week"
"""
from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
import typing as t

from study_planner.timefmt import WEEKDAYS


logger = logging.getLogger(__name__)

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

# Misspellings and abbreviations seen in chat. "sat" is left out, it is the exam.
WEEKDAY_CORRECTIONS = {
    "mon": "monday", "mondy": "monday", "monady": "monday", "mnday": "monday",
    "tue": "tuesday", "tues": "tuesday", "tuesdy": "tuesday", "tusday": "tuesday", "teusday": "tuesday",
    "wed": "wednesday", "weds": "wednesday", "wensday": "wednesday", "wednsday": "wednesday",
    "wedensday": "wednesday", "wendsday": "wednesday", "wednesay": "wednesday",
    "thu": "thursday", "thur": "thursday", "thurs": "thursday", "thurday": "thursday",
    "thursdy": "thursday", "thrusday": "thursday",
    "fri": "friday", "firday": "friday", "fridy": "friday", "frday": "friday", "friady": "friday",
    "saterday": "saturday", "satuday": "saturday", "saturdy": "saturday", "satruday": "saturday",
    "sun": "sunday", "sundy": "sunday", "suday": "sunday",
}

# "next <weekday>" only skips a week when the upcoming occurrence is further out than this
NEXT_WEEKDAY_THRESHOLD = 3

_MONTH_DAY = re.compile(
    r"\b(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\.?\s*(\d{1,2})(?:st|nd|rd|th)?\b"
)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})\b")
_ORDINAL_DAY = re.compile(r"\bthe\s+(\d{1,2})(?:st|nd|rd|th)\b")
_IN_DAYS = re.compile(r"\bin\s+(\d{1,3}|a|one|two|three|four|five|six|seven)\s+(day|days|week|weeks)\b")
_DAYS_AGO = re.compile(r"\b(\d{1,3}|a|one|two|three)\s+(day|days|week|weeks)\s+ago\b")
_WORD = re.compile(r"[a-z']+")

_NUMBER_WORDS = {"a": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7}


@dataclass
class DateMention:
    """A date found in text, and how it was expressed."""
    day: date
    source: str  # "explicit", "relative", "weekday", "week"
    explicit_month: bool = False


class DateResolver:
    """Resolve the deadline a chat message refers to."""

    def find(self, text: str, reference: t.Union[date, datetime]) -> t.Optional[DateMention]:
        """Return the first date mention, which may lie in the past ("yesterday")."""
        today = _as_date(reference)
        lower = (text or "").lower()
        for finder in (self._explicit, self._relative, self._weekday, self._next_week):
            mention = finder(lower, today)
            if mention is not None:
                logger.debug("Resolved %r to %s via %s", text, mention.day, mention.source)
                return mention
        return None

    def resolve(self, text: str, reference: t.Union[date, datetime]) -> t.Optional[date]:
        """Return the date the text refers to, or None.

        Never returns a day before the reference day; past mentions resolve to
        None and callers substitute their own default.
        """
        mention = self.find(text, reference)
        if mention is None or mention.day < _as_date(reference):
            return None
        return mention.day

    def _explicit(self, lower: str, today: date) -> t.Optional[DateMention]:
        match = _MONTH_DAY.search(lower)
        if match:
            return self._month_day(MONTHS[match.group(1)], int(match.group(2)), today)

        match = _NUMERIC_DATE.search(lower)
        if match and 1 <= int(match.group(1)) <= 12:
            return self._month_day(int(match.group(1)), int(match.group(2)), today)

        match = _ORDINAL_DAY.search(lower)
        if match:
            day_num = int(match.group(1))
            year, month = today.year, today.month
            # the 31st rolls forward to the next month that has one
            for _ in range(13):
                if day_num <= calendar.monthrange(year, month)[1]:
                    candidate = date(year, month, day_num)
                    if candidate >= today:
                        return DateMention(candidate, "explicit")
                year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return None

    def _month_day(self, month: int, day_num: int, today: date) -> t.Optional[DateMention]:
        try:
            candidate = date(today.year, month, day_num)
        except ValueError:
            return None
        # A passed date in the current month is a past date, anything else is next year
        if candidate < today and month != today.month:
            try:
                candidate = candidate.replace(year=today.year + 1)
            except ValueError:
                return None
        return DateMention(candidate, "explicit", explicit_month=True)

    def _relative(self, lower: str, today: date) -> t.Optional[DateMention]:
        if re.search(r"\bday after (tomorrow|tmrw?)\b", lower):
            return DateMention(today + timedelta(days=2), "relative")
        if re.search(r"\b(tomorrow|tmrw?|tomorow|tommorow|tommorrow)\b", lower):
            return DateMention(today + timedelta(days=1), "relative")
        if re.search(r"\b(today|tonight|tonite)\b", lower):
            return DateMention(today, "relative")
        if re.search(r"\byesterday\b", lower):
            return DateMention(today - timedelta(days=1), "relative")

        match = _IN_DAYS.search(lower)
        if match:
            return DateMention(today + _span(match.group(1), match.group(2)), "relative")
        match = _DAYS_AGO.search(lower)
        if match:
            return DateMention(today - _span(match.group(1), match.group(2)), "relative")
        return None

    def _weekday(self, lower: str, today: date) -> t.Optional[DateMention]:
        words = _WORD.findall(lower)
        for idx, word in enumerate(words):
            if word.endswith("'s"):
                word = word[:-2]
            name = word if word in WEEKDAYS else WEEKDAY_CORRECTIONS.get(word)
            if name is None:
                continue
            qualifier = words[idx - 1] if idx > 0 else ""
            target = WEEKDAYS.index(name)

            if qualifier == "last":
                diff = today.weekday() - target
                if diff <= 0:
                    diff += 7
                return DateMention(today - timedelta(days=diff), "weekday")

            # the same weekday as today means next week's
            diff = target - today.weekday()
            if diff <= 0:
                diff += 7
            if qualifier == "next" and diff > NEXT_WEEKDAY_THRESHOLD:
                diff += 7
            return DateMention(today + timedelta(days=diff), "weekday")
        return None

    def _next_week(self, lower: str, today: date) -> t.Optional[DateMention]:
        if re.search(r"\bnext week\b", lower):
            return DateMention(today + timedelta(days=7), "week")
        return None


def _span(amount: str, unit: str) -> timedelta:
    count = _NUMBER_WORDS[amount] if amount in _NUMBER_WORDS else int(amount)
    return timedelta(days=count * 7 if unit.startswith("week") else count)


def _as_date(value: t.Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value
