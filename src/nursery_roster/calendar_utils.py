"""
Calendar Utilities for the Nursery Roster

Pure date helpers shared by the constraint checker and the shift generator:
date-key formatting, holiday lookup, work-day navigation and week windows.
"""

from datetime import date
from typing import Iterable, Optional, Tuple
import calendar

SUNDAY = 6
SATURDAY = 5


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def format_date(year: int, month: int, day: int) -> str:
    """Return the ISO ``YYYY-MM-DD`` key used throughout the schedule"""
    return f"{year:04d}-{month:02d}-{day:02d}"


def day_of_week(year: int, month: int, day: int) -> int:
    """Day of week with Monday=0 ... Sunday=6"""
    return date(year, month, day).weekday()


def is_sunday(year: int, month: int, day: int) -> bool:
    return day_of_week(year, month, day) == SUNDAY


def is_holiday(date_str: str, holidays: Iterable) -> bool:
    """Check if date is listed as a closure.

    Accepts holiday records (anything with a ``date`` attribute) or plain
    date strings.
    """
    for holiday in holidays or []:
        holiday_date = getattr(holiday, "date", holiday)
        if holiday_date == date_str:
            return True
    return False


def is_closed_day(year: int, month: int, day: int, holidays: Iterable) -> bool:
    """Sundays and listed holidays are closed"""
    return is_sunday(year, month, day) or is_holiday(format_date(year, month, day), holidays)


def is_work_day(year: int, month: int, day: int, holidays: Iterable) -> bool:
    return not is_closed_day(year, month, day, holidays)


def is_open_saturday(year: int, month: int, day: int, holidays: Iterable) -> bool:
    """Saturday that is not a holiday"""
    return (day_of_week(year, month, day) == SATURDAY
            and not is_holiday(format_date(year, month, day), holidays))


def previous_work_day(year: int, month: int, day: int, holidays: Iterable) -> int:
    """Previous work day within the month, or 0 when there is none"""
    d = day - 1
    while d >= 1:
        if is_work_day(year, month, d, holidays):
            return d
        d -= 1
    return 0


def next_work_day(year: int, month: int, day: int, holidays: Iterable) -> int:
    """Next work day within the month, or 0 when there is none"""
    last_day = days_in_month(year, month)
    d = day + 1
    while d <= last_day:
        if is_work_day(year, month, d, holidays):
            return d
        d += 1
    return 0


def week_range(year: int, month: int, day: int) -> Optional[Tuple[int, int]]:
    """
    Monday..Saturday window containing ``day``, clipped to the month.

    Returns:
        Tuple of (first_day, last_day), or None when ``day`` is a Sunday
    """
    weekday = day_of_week(year, month, day)
    if weekday == SUNDAY:
        return None
    start = day - weekday
    end = start + SATURDAY
    return max(start, 1), min(end, days_in_month(year, month))


def parse_time_to_minutes(value: str) -> int:
    """Convert ``"H:MM"`` / ``"HH:MM"`` to minutes from midnight"""
    hours, _, minutes = value.strip().partition(":")
    return int(hours) * 60 + int(minutes or 0)


def overlap_minutes(start_a: str, end_a: str, start_b: str, end_b: str) -> int:
    """Length of the overlap between two time ranges, 0 when disjoint"""
    overlap_start = max(parse_time_to_minutes(start_a), parse_time_to_minutes(start_b))
    overlap_end = min(parse_time_to_minutes(end_a), parse_time_to_minutes(end_b))
    return max(0, overlap_end - overlap_start)
