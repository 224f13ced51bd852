# -*- coding: utf-8 -*-
"""Tests for resolving dates mentioned in chat messages."""
from datetime import date, datetime

import pytest

from study_planner.dates import DateResolver


REFERENCE = datetime(2025, 1, 15, 9, 0)  # Wednesday


@pytest.fixture
def resolver() -> DateResolver:
    return DateResolver()


@pytest.mark.parametrize("text, expected", [
    ("Math test on Jan 27", date(2025, 1, 27)),
    ("essay due January 27th", date(2025, 1, 27)),
    ("quiz 1/27", date(2025, 1, 27)),
    ("exam on the 20th", date(2025, 1, 20)),
    ("exam on the 10th", date(2025, 2, 10)),
    ("tomorrow", date(2025, 1, 16)),
    ("bio quiz tmrw", date(2025, 1, 16)),
    ("day after tomorrow", date(2025, 1, 17)),
    ("homework due tonight", date(2025, 1, 15)),
    ("in 3 days", date(2025, 1, 18)),
    ("in two weeks", date(2025, 1, 29)),
    ("friday", date(2025, 1, 17)),
    ("friday's quiz", date(2025, 1, 17)),
    ("wednesday", date(2025, 1, 22)),
    ("wensday", date(2025, 1, 22)),
    ("thurs", date(2025, 1, 16)),
    ("next friday", date(2025, 1, 17)),
    ("next monday", date(2025, 1, 27)),
    ("this monday", date(2025, 1, 20)),
    ("SAT on saturday", date(2025, 1, 18)),
    ("next week", date(2025, 1, 22)),
])
def test_resolve(resolver: DateResolver, text: str, expected: date) -> None:
    """Test each supported expression against a Wednesday reference."""
    assert resolver.resolve(text, REFERENCE) == expected


def test_explicit_date_beats_weekday(resolver: DateResolver) -> None:
    """Test that an explicit date wins over a weekday in the same message."""
    assert resolver.resolve("test on Monday, Feb 3", REFERENCE) == date(2025, 2, 3)


def test_past_dates_are_found_but_not_resolved(resolver: DateResolver) -> None:
    """Test that past mentions are reported by find() and never by resolve()."""
    for text, day in [
        ("test was yesterday", date(2025, 1, 14)),
        ("3 days ago", date(2025, 1, 12)),
        ("last monday", date(2025, 1, 13)),
        ("Jan 10", date(2025, 1, 10)),
    ]:
        mention = resolver.find(text, REFERENCE)
        assert mention is not None and mention.day == day
        assert resolver.resolve(text, REFERENCE) is None


def test_explicit_month_rolls_to_next_year(resolver: DateResolver) -> None:
    """Test that a passed date in an earlier month means next year."""
    assert resolver.resolve("final on Feb 3", date(2025, 3, 1)) == date(2026, 2, 3)


def test_ordinal_skips_short_months(resolver: DateResolver) -> None:
    """Test that "the 31st" moves to the next month that has one."""
    assert resolver.resolve("due the 31st", date(2025, 2, 5)) == date(2025, 3, 31)


def test_invalid_dates_are_ignored(resolver: DateResolver) -> None:
    """Test that impossible dates do not resolve."""
    assert resolver.resolve("Feb 30", REFERENCE) is None
    assert resolver.resolve("13/40", REFERENCE) is None


def test_no_date(resolver: DateResolver) -> None:
    """Test text without any date expression."""
    assert resolver.find("I have a math test", REFERENCE) is None
    assert resolver.resolve("I have a math test", REFERENCE) is None


def test_accepts_plain_dates(resolver: DateResolver) -> None:
    """Test that a date reference behaves like a datetime one."""
    assert resolver.resolve("tomorrow", REFERENCE.date()) == date(2025, 1, 16)
