"""
Shift Counting Utilities

Shared headcount logic used by the constraint checker, the generator and the
reports: schedule-based counts for full-time staff plus part-timer crediting
from the time range table.
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional

from .calendar_utils import days_in_month, format_date, overlap_minutes
from .data_manager import Position, Settings, ShiftCategory, Staff
from .schedule import WORK_BANDS, Schedule, TimeRange, TimeRangeSchedule, is_work_band

# Minimum overlap for an uncredited part-time range to count toward a band
CREDIT_OVERLAP_MINUTES = 120


def credited_bands(time_range: Optional[TimeRange], settings: Settings) -> List[str]:
    """
    Bands a part-time interval counts toward.

    An explicit ``count_as_shifts`` list wins. Without one, every band whose
    time range overlaps the interval by at least two hours is credited.
    """
    if time_range is None:
        return []
    if time_range.count_as_shifts:
        return [code for code in time_range.count_as_shifts if is_work_band(code)]
    return [
        pattern.code for pattern in settings.shift_patterns
        if overlap_minutes(time_range.start, time_range.end, pattern.start, pattern.end) >= CREDIT_OVERLAP_MINUTES
    ]


def part_timer_counts_toward(member: Staff, schedule: Schedule, time_ranges: TimeRangeSchedule,
                             date_str: str, band: str, settings: Settings) -> bool:
    """
    Whether a part-timer counts toward ``band`` on a day.

    A recorded time range decides alone, through its credited bands. The
    schedule cell is only read when no range is recorded for the day.
    """
    time_range = time_ranges.get(date_str, member.id)
    if time_range is not None:
        return band in credited_bands(time_range, settings)
    return schedule.get(date_str, member.id) == band


def count_qualified_part_timers(staff: Iterable[Staff], schedule: Schedule, time_ranges: TimeRangeSchedule,
                                date_str: str, band: str, settings: Settings) -> int:
    """Qualified part-timers counting toward ``band`` that day"""
    return sum(
        1 for member in staff
        if member.shift_type == ShiftCategory.PART_TIME and member.has_qualification
        and part_timer_counts_toward(member, schedule, time_ranges, date_str, band, settings)
    )


def count_effective_shift(staff: Iterable[Staff], schedule: Schedule, time_ranges: TimeRangeSchedule,
                          date_str: str, band: str, settings: Settings, qualified_only: bool = False) -> int:
    """Schedule count of ``band`` for full-time staff plus part-timers counting toward it"""
    count = 0
    for member in staff:
        if qualified_only and not member.has_qualification:
            continue
        if member.shift_type == ShiftCategory.PART_TIME:
            if part_timer_counts_toward(member, schedule, time_ranges, date_str, band, settings):
                count += 1
        elif schedule.get(date_str, member.id) == band:
            count += 1
    return count


def count_all_patterns(staff: List[Staff], schedule: Schedule, time_ranges: TimeRangeSchedule,
                       date_str: str, settings: Settings, qualified_only: bool = False) -> Dict[str, int]:
    return {
        band: count_effective_shift(staff, schedule, time_ranges, date_str, band, settings, qualified_only)
        for band in WORK_BANDS
    }


def is_part_timer_working(member: Staff, schedule: Schedule, time_ranges: TimeRangeSchedule, date_str: str) -> bool:
    """Part-timers work when they hold a work band or have a time range recorded"""
    return is_work_band(schedule.get(date_str, member.id)) or time_ranges.get(date_str, member.id) is not None


def count_working_staff(staff: Iterable[Staff], schedule: Schedule, time_ranges: TimeRangeSchedule,
                        date_str: str) -> int:
    """Working headcount for a day, cooks and the director excluded"""
    count = 0
    for member in staff:
        if member.shift_type == ShiftCategory.COOKING or member.position == Position.DIRECTOR:
            continue
        if member.shift_type == ShiftCategory.PART_TIME:
            if is_part_timer_working(member, schedule, time_ranges, date_str):
                count += 1
        elif is_work_band(schedule.get(date_str, member.id)):
            count += 1
    return count


def count_monthly(schedule: Schedule, staff_id: int, codes: Iterable[str], year: int, month: int) -> int:
    """Days in the month where the staff member holds one of ``codes``"""
    wanted = set(codes)
    return sum(
        1 for day in range(1, days_in_month(year, month) + 1)
        if schedule.get(format_date(year, month, day), staff_id) in wanted
    )


def staff_code_counts(schedule: Schedule, staff_id: int, year: int, month: int) -> Counter:
    """Per-code totals for one staff member, blanks excluded"""
    counts = Counter()
    for day in range(1, days_in_month(year, month) + 1):
        code = schedule.get(format_date(year, month, day), staff_id)
        if code:
            counts[code] += 1
    return counts
