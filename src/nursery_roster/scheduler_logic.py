"""
Scheduler Logic for the Nursery Roster

Generates a monthly shift schedule with a phased greedy heuristic: fixed
roles first, then Saturdays, weekday extreme bands, role coverage, minimum
count top-up and the chief fallback, finishing with adjacency repair and a
completeness fill. Manual paid leave and compensatory days off are never
overwritten.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import random
import time

from .calendar_utils import (
    day_of_week, days_in_month, format_date, is_closed_day, is_open_saturday,
    previous_work_day, week_range
)
from .constraint_checker import (
    ConstraintContext, Shortage, assignment_violations, check_incompatible, check_j_to_a
)
from .data_manager import Holiday, Position, Settings, ShiftCategory, StaffRole, Staff
from .schedule import (
    BASE_BAND, COMPENSATORY_OFF, DAY_OFF, EARLIEST_BAND, EARLY_BANDS, EMPTY, EXTREME_BANDS,
    KEY_BANDS, LATE_BANDS, LATEST_BAND, MID_BANDS, PAID_LEAVE, PROTECTED_CODES,
    Schedule, TimeRangeSchedule, is_work_band, normalize_code
)
from .shift_counts import (
    count_effective_shift, count_monthly, count_qualified_part_timers,
    count_working_staff, is_part_timer_working, staff_code_counts
)

logger = logging.getLogger(__name__)

# Chief fallback walks bands in this order before checking total headcount
CHIEF_COVERAGE_ORDER = ("A", "J", "D", "E", "C")
# Bands that get one slot each after the extreme bands on weekdays
SECONDARY_BANDS = ("D", "E", "C")
# Bands tried in turn when the default band clashes with an incompatible colleague
FALLBACK_SEQUENCE = ("B", "C", "D", "E")
ADJACENCY_BREACHES = (
    (LATEST_BAND, EARLIEST_BAND),
    (EARLIEST_BAND, EARLIEST_BAND),
    (LATEST_BAND, LATEST_BAND),
)
TOTAL_PATTERN = "total"


@dataclass
class ScheduleResult:
    """Result of schedule generation"""
    success: bool
    schedule: Schedule
    shortages: Dict[str, List[Shortage]]
    violations: List[str]
    statistics: Dict[str, Any]
    message: str


@dataclass
class GenerationState:
    """Working schedule and lookups shared by the generation phases"""
    staff: List[Staff]
    holidays: List[Holiday]
    settings: Settings
    year: int
    month: int
    schedule: Schedule
    time_ranges: TimeRangeSchedule
    rng: random.Random
    chief_assignments: int = 0
    saturday_counts: Dict[int, int] = field(default_factory=dict)
    context: ConstraintContext = field(init=False, repr=False)

    def __post_init__(self):
        # Rule checks read the live working schedule
        self.context = ConstraintContext(self.schedule, self.staff, self.holidays,
                                         self.settings, self.year, self.month)

    @property
    def days(self) -> range:
        return range(1, days_in_month(self.year, self.month) + 1)

    def date_key(self, day: int) -> str:
        return format_date(self.year, self.month, day)

    def get(self, day: int, staff_id: int) -> str:
        return self.schedule.get(self.date_key(day), staff_id)

    def set_shift(self, day: int, member: Staff, code: str) -> bool:
        """
        Guarded write. Paid leave and compensatory days off are never
        replaced, and a part-timer's cell only while it is empty or a day off.

        Returns:
            True when the cell was written
        """
        current = self.get(day, member.id)
        if current in PROTECTED_CODES:
            return False
        if member.is_part_time and current not in (EMPTY, DAY_OFF):
            return False
        self.schedule.set(self.date_key(day), member.id, code)
        return True

    def is_closed(self, day: int) -> bool:
        return is_closed_day(self.year, self.month, day, self.holidays)

    def is_saturday(self, day: int) -> bool:
        return is_open_saturday(self.year, self.month, day, self.holidays)

    def is_open_weekday(self, day: int) -> bool:
        return not self.is_closed(day) and not self.is_saturday(day)

    def full_time_count(self, day: int, band: str) -> int:
        """Schedule count of ``band`` among staff other than part-timers"""
        return sum(1 for m in self.staff if not m.is_part_time and self.get(day, m.id) == band)

    def band_count(self, staff_id: int, band: str) -> int:
        return count_monthly(self.schedule, staff_id, (band,), self.year, self.month)

    def key_band_total(self, staff_id: int) -> int:
        return count_monthly(self.schedule, staff_id, KEY_BANDS, self.year, self.month)

    def early_cap_reached(self, member: Staff) -> bool:
        if member.early_shift_limit is None:
            return False
        return count_monthly(self.schedule, member.id, EARLY_BANDS, self.year, self.month) >= member.early_shift_limit

    def effective_count(self, day: int, band: str) -> int:
        """Qualified headcount on a band, credited part-timers included"""
        return count_effective_shift(self.staff, self.schedule, self.time_ranges, self.date_key(day),
                                     band, self.settings, qualified_only=True)

    def working_count(self, day: int) -> int:
        return count_working_staff(self.staff, self.schedule, self.time_ranges, self.date_key(day))


def _find_position(staff: List[Staff], position: Position) -> Optional[Staff]:
    for member in staff:
        if member.position == position:
            return member
    return None


def _is_reserved(member: Staff) -> bool:
    return member.position in (Position.DIRECTOR, Position.CHIEF)


def seed_schedule(staff: List[Staff], year: int, month: int, existing: Schedule) -> Schedule:
    """
    Fresh working schedule for the month. Part-time cells are carried over
    as entered; everyone else keeps only paid leave and compensatory days off.
    """
    schedule = Schedule()
    for day in range(1, days_in_month(year, month) + 1):
        date_str = format_date(year, month, day)
        schedule.ensure_day(date_str)
        for member in staff:
            code = normalize_code(existing.get(date_str, member.id))
            if member.is_part_time or code in PROTECTED_CODES:
                schedule.set(date_str, member.id, code)
            else:
                schedule.set(date_str, member.id, EMPTY)
    return schedule


def _conflict_free_band(state: GenerationState, day: int, staff_id: int, start: str) -> str:
    """First band from ``start`` onward with no incompatible colleague on it"""
    sequence = FALLBACK_SEQUENCE[FALLBACK_SEQUENCE.index(start):]
    for band in sequence:
        if not check_incompatible(state.context, day, staff_id, band):
            return band
    return sequence[-1]


def _default_band(state: GenerationState, day: int, member: Staff) -> str:
    start = "C" if state.early_cap_reached(member) else BASE_BAND
    return _conflict_free_band(state, day, member.id, start)


def _fill_band(state: GenerationState, day: int, pool: List[Staff], band: str, target: int):
    """
    Assign unassigned staff from ``pool`` to ``band`` until the band's
    full-time count reaches ``target``. A second pass drops only the weekly cap.
    """
    need = target - state.full_time_count(day, band)
    if need <= 0:
        return

    filled = 0
    for include_weekly in (True, False):
        candidates = [m for m in pool if state.get(day, m.id) == EMPTY]
        state.rng.shuffle(candidates)
        candidates.sort(key=lambda m: (state.band_count(m.id, band), state.key_band_total(m.id)))

        for member in candidates:
            if filled >= need:
                break
            if band == EARLIEST_BAND and state.early_cap_reached(member):
                continue
            if assignment_violations(state.context, day, member.id, band, include_weekly=include_weekly):
                continue
            if state.set_shift(day, member, band):
                filled += 1

        if filled >= need:
            return

    logger.debug(f"{state.date_key(day)}: {band} left {need - filled} short after weekday assignment")


def _grant_compensatory_off(state: GenerationState, saturday: int, member: Staff):
    """Give a Saturday worker a day off on the quietest weekday of the same week"""
    best_day = None
    fewest_off = None
    for offset in range(5, 0, -1):
        target_day = saturday - offset
        if target_day < 1 or state.is_closed(target_day):
            continue
        if state.get(target_day, member.id) not in (EMPTY, DAY_OFF):
            continue
        date_str = state.date_key(target_day)
        off_count = (state.schedule.count_on_day(date_str, COMPENSATORY_OFF)
                     + state.schedule.count_on_day(date_str, PAID_LEAVE))
        if fewest_off is None or off_count < fewest_off:
            fewest_off = off_count
            best_day = target_day

    if best_day is not None:
        state.set_shift(best_day, member, COMPENSATORY_OFF)


# Phases

def assign_director_off(state: GenerationState):
    director = _find_position(state.staff, Position.DIRECTOR)
    if director is None:
        return
    for day in state.days:
        state.set_shift(day, director, DAY_OFF)


def reserve_chief(state: GenerationState):
    """The chief stays unassigned until the fallback phase"""
    chief = _find_position(state.staff, Position.CHIEF)
    if chief is not None:
        logger.debug(f"Chief {chief.name} reserved for fallback coverage")


def assign_cooking_rotation(state: GenerationState):
    cooks = [m for m in state.staff if m.shift_type == ShiftCategory.COOKING]
    if not cooks:
        return

    saturday_index = 0
    for day in state.days:
        if state.is_closed(day):
            for cook in cooks:
                state.set_shift(day, cook, DAY_OFF)
        elif state.is_saturday(day):
            on_duty = cooks[saturday_index % len(cooks)]
            for cook in cooks:
                state.set_shift(day, cook, BASE_BAND if cook is on_duty else DAY_OFF)
            saturday_index += 1
        else:
            for cook in cooks:
                state.set_shift(day, cook, BASE_BAND)


def assign_saturdays(state: GenerationState):
    """Staff each open Saturday up to the target headcount, rotating by fewest Saturdays worked"""
    settings = state.settings
    pool = [m for m in state.staff
            if m.has_qualification and m.shift_type == ShiftCategory.REGULAR and m.position != Position.DIRECTOR]

    for day in state.days:
        if not state.is_saturday(day):
            continue
        date_str = state.date_key(day)
        part_timers = sum(1 for m in state.staff
                          if m.is_part_time and is_part_timer_working(m, state.schedule, state.time_ranges, date_str))
        target = max(0, settings.saturday_staff_count - part_timers)

        candidates = [m for m in pool if state.get(day, m.id) == EMPTY]
        state.rng.shuffle(candidates)
        candidates.sort(key=lambda m: state.saturday_counts.get(m.id, 0))
        selected = candidates[:target]

        for member in selected:
            if state.set_shift(day, member, settings.saturday_shift_pattern):
                state.saturday_counts[member.id] = state.saturday_counts.get(member.id, 0) + 1
                _grant_compensatory_off(state, day, member)

        selected_ids = {m.id for m in selected}
        for member in state.staff:
            if member.position == Position.DIRECTOR or member.shift_type in (ShiftCategory.COOKING, ShiftCategory.PART_TIME):
                continue
            if member.id not in selected_ids:
                state.set_shift(day, member, DAY_OFF)

        if len(selected) < target:
            logger.debug(f"{date_str}: Saturday staffed {len(selected)} of {target} needed")


def assign_weekdays(state: GenerationState):
    """Extreme bands first, one slot each of D/E/C, then everyone else on the base band"""
    regulars = [m for m in state.staff if m.shift_type == ShiftCategory.REGULAR and not _is_reserved(m)]

    for day in state.days:
        if not state.is_open_weekday(day):
            continue
        date_str = state.date_key(day)

        # Monday to Wednesday open first, Thursday and Friday close first
        if day_of_week(state.year, state.month, day) <= 2:
            extreme_order = (EARLIEST_BAND, LATEST_BAND)
        else:
            extreme_order = (LATEST_BAND, EARLIEST_BAND)

        for band in extreme_order + SECONDARY_BANDS:
            credited = count_qualified_part_timers(state.staff, state.schedule, state.time_ranges,
                                                   date_str, band, state.settings)
            _fill_band(state, day, regulars, band, max(0, state.settings.min_count(band) - credited))

        remaining = [m for m in regulars if state.get(day, m.id) == EMPTY]
        remaining.sort(key=lambda m: state.key_band_total(m.id))
        for member in remaining:
            state.set_shift(day, member, _default_band(state, day, member))


def cover_late_roles(state: GenerationState):
    """Keep an infant-room and a toddler-room carer on a late band every weekday"""
    late_target = LATE_BANDS[0]
    for day in state.days:
        if not state.is_open_weekday(day):
            continue
        for role in (StaffRole.INFANT, StaffRole.TODDLER):
            if any(m.role == role and state.get(day, m.id) in LATE_BANDS for m in state.staff):
                continue
            for member in state.staff:
                if member.role != role or member.is_part_time:
                    continue
                if state.get(day, member.id) not in MID_BANDS:
                    continue
                if check_incompatible(state.context, day, member.id, late_target):
                    continue
                state.set_shift(day, member, late_target)
                break


def pass_through_part_time(state: GenerationState):
    """Part-time cells are manual and stay as seeded"""
    return


def _leaves_band_short(state: GenerationState, day: int, member: Staff) -> bool:
    """Moving ``member`` off their band would drop it to or below its floor (every band, not only A/J)"""
    current = state.get(day, member.id)
    pattern = state.settings.pattern(current)
    if pattern is None or not member.has_qualification:
        return False
    return state.effective_count(day, current) <= pattern.min_count


def _top_up_band(state: GenerationState, day: int, band: str, required: int):
    current = state.effective_count(day, band)
    if current >= required:
        return

    candidates = [
        m for m in state.staff
        if m.shift_type not in (ShiftCategory.COOKING, ShiftCategory.PART_TIME)
        and m.position != Position.DIRECTOR
        and is_work_band(state.get(day, m.id))
        and state.get(day, m.id) != band
    ]
    candidates.sort(key=lambda m: state.band_count(m.id, band))

    for member in candidates:
        if current >= required:
            break
        if band == EARLIEST_BAND and state.early_cap_reached(member):
            continue
        if assignment_violations(state.context, day, member.id, band):
            continue
        if _leaves_band_short(state, day, member):
            continue
        if state.set_shift(day, member, band):
            current = state.effective_count(day, band)


def _top_up_total(state: GenerationState, day: int):
    while state.working_count(day) < state.settings.min_total_staff:
        available = [
            m for m in state.staff
            if m.shift_type in (ShiftCategory.REGULAR, ShiftCategory.BACKUP)
            and not _is_reserved(m)
            and state.get(day, m.id) == EMPTY
        ]
        if not available:
            break
        available.sort(key=lambda m: state.key_band_total(m.id))
        member = available[0]
        if not state.set_shift(day, member, _default_band(state, day, member)):
            break


def top_up_minimums(state: GenerationState):
    """Raise each band to its minimum, then total headcount to the weekday floor"""
    for day in state.days:
        if not state.is_open_weekday(day):
            continue
        for pattern in state.settings.shift_patterns:
            _top_up_band(state, day, pattern.code, pattern.min_count)
        _top_up_total(state, day)


def _reassign_base_staff(state: GenerationState, day: int, band: str) -> bool:
    """Move one regular base-band worker onto ``band``"""
    candidates = [
        m for m in state.staff
        if not _is_reserved(m)
        and m.shift_type == ShiftCategory.REGULAR
        and state.get(day, m.id) == BASE_BAND
    ]
    candidates.sort(key=lambda m: state.band_count(m.id, band))

    for member in candidates:
        if band == EARLIEST_BAND and state.early_cap_reached(member):
            continue
        if assignment_violations(state.context, day, member.id, band, include_weekly=False):
            continue
        # Same-day move off an unprotected base-band cell
        state.schedule.set(state.date_key(day), member.id, band)
        return True
    return False


def _cover_with_chief(state: GenerationState, day: int, chief: Staff) -> bool:
    for band in CHIEF_COVERAGE_ORDER:
        required = state.settings.min_count(band)
        if state.effective_count(day, band) >= required:
            continue
        if _reassign_base_staff(state, day, band):
            continue
        if check_j_to_a(state.context, day, chief.id, band):
            continue
        if state.set_shift(day, chief, band):
            state.chief_assignments += 1
            return True
    return False


def assign_chief_fallback(state: GenerationState):
    """
    Fill remaining weekday gaps, preferring to move a base-band colleague and
    only then using the chief, up to the monthly chief limit. Saturdays are
    left alone and closed days are days off.
    """
    chief = _find_position(state.staff, Position.CHIEF)
    if chief is None:
        return

    limit = state.settings.chief_backup_limit
    for day in state.days:
        if state.is_closed(day):
            state.set_shift(day, chief, DAY_OFF)
            continue
        if state.is_saturday(day):
            continue

        if state.chief_assignments < limit:
            if _cover_with_chief(state, day, chief):
                continue
            if state.working_count(day) < state.settings.min_total_staff and state.set_shift(day, chief, BASE_BAND):
                state.chief_assignments += 1
                continue

        if state.get(day, chief.id) == EMPTY:
            state.set_shift(day, chief, DAY_OFF)

    logger.debug(f"Chief assigned on {state.chief_assignments} day(s)")


def fill_empty_cells(state: GenerationState):
    """Every non-part-time blank becomes a day off"""
    for day in state.days:
        date_str = state.date_key(day)
        state.schedule.ensure_day(date_str)
        for member in state.staff:
            if not member.is_part_time and state.get(day, member.id) == EMPTY:
                state.schedule.set(date_str, member.id, DAY_OFF)


def repair_adjacency(state: GenerationState):
    """Demote closing-then-opening and repeated extreme bands to the base band"""
    for day in state.days:
        if state.is_closed(day):
            continue
        prev_day = previous_work_day(state.year, state.month, day, state.holidays)
        if not prev_day:
            continue
        for member in state.staff:
            if member.is_part_time:
                continue
            if (state.get(prev_day, member.id), state.get(day, member.id)) in ADJACENCY_BREACHES:
                state.set_shift(day, member, BASE_BAND)


PHASES: Tuple[Tuple[str, Callable[[GenerationState], None]], ...] = (
    ("director off", assign_director_off),
    ("chief reservation", reserve_chief),
    ("cooking rotation", assign_cooking_rotation),
    ("saturday staffing", assign_saturdays),
    ("weekday assignment", assign_weekdays),
    ("late role coverage", cover_late_roles),
    ("part-time pass-through", pass_through_part_time),
    ("minimum count top-up", top_up_minimums),
    ("chief fallback", assign_chief_fallback),
    ("fill empty", fill_empty_cells),
    ("adjacency repair", repair_adjacency),
    ("final fill", fill_empty_cells),
)


def collect_shortages(state: GenerationState) -> Dict[str, List[Shortage]]:
    """Weekday bands and totals still below their floors, keyed by date"""
    result = {}
    for day in state.days:
        if not state.is_open_weekday(day):
            continue
        shortages = []
        for pattern in state.settings.shift_patterns:
            current = state.effective_count(day, pattern.code)
            if current < pattern.min_count:
                shortages.append(Shortage(pattern.code, current, pattern.min_count))
        total = state.working_count(day)
        if total < state.settings.min_total_staff:
            shortages.append(Shortage(TOTAL_PATTERN, total, state.settings.min_total_staff))
        if shortages:
            result[state.date_key(day)] = shortages
    return result


def validate_schedule(schedule: Schedule, staff: List[Staff], holidays: List[Holiday],
                      year: int, month: int) -> List[str]:
    """Audit a month schedule for adjacency, repeat and weekly-cap breaches and blank cells"""
    violations = []
    schedule = Schedule.from_dict(schedule)
    last_day = days_in_month(year, month)

    for member in staff:
        if member.is_part_time:
            continue

        for day in range(1, last_day + 1):
            date_str = format_date(year, month, day)
            code = schedule.get(date_str, member.id)
            if not code:
                violations.append(f"{member.name} has no assignment on {date_str}")
                continue
            if is_closed_day(year, month, day, holidays):
                continue
            prev_day = previous_work_day(year, month, day, holidays)
            if not prev_day:
                continue
            prev_code = schedule.get(format_date(year, month, prev_day), member.id)
            if (prev_code, code) in ADJACENCY_BREACHES:
                violations.append(f"{member.name} works {prev_code} on {format_date(year, month, prev_day)} "
                                  f"then {code} on {date_str}")

        checked_weeks = set()
        for day in range(1, last_day + 1):
            window = week_range(year, month, day)
            if window is None or window in checked_weeks:
                continue
            checked_weeks.add(window)
            extremes = sum(1 for d in range(window[0], window[1] + 1)
                           if schedule.get(format_date(year, month, d), member.id) in EXTREME_BANDS)
            if extremes > 1:
                violations.append(f"{member.name} has {extremes} {EARLIEST_BAND}/{LATEST_BAND} shifts "
                                  f"in the week of {format_date(year, month, window[0])}")

    return violations


def get_schedule_statistics(schedule: Schedule, staff: List[Staff], year: int, month: int) -> Dict[str, Any]:
    """Per-staff attendance and code counts for the month"""
    stats = {
        "total_assignments": 0,
        "blank_cells": 0,
        "staff_stats": {}
    }
    schedule = Schedule.from_dict(schedule)
    last_day = days_in_month(year, month)

    for member in staff:
        counts = staff_code_counts(schedule, member.id, year, month)
        attendance = sum(n for code, n in counts.items() if is_work_band(code))
        stats["staff_stats"][member.id] = {
            "name": member.name,
            "attendance": attendance,
            "counts": dict(counts),
        }
        stats["total_assignments"] += attendance
        if not member.is_part_time:
            stats["blank_cells"] += last_day - sum(counts.values())

    return stats


def reset_generated_cells(schedule: Schedule, staff: List[Staff], year: int, month: int) -> Schedule:
    """
    Clear generated cells for the month. Part-time cells survive, as does
    paid leave for regular staff and the chief; everything else is blanked.
    """
    result = Schedule.from_dict(schedule).copy()
    for day in range(1, days_in_month(year, month) + 1):
        date_str = format_date(year, month, day)
        if date_str not in result:
            continue
        for member in staff:
            code = result.get(date_str, member.id)
            if not code or member.is_part_time:
                continue
            keeps_leave = member.shift_type == ShiftCategory.REGULAR or member.position == Position.CHIEF
            if code == PAID_LEAVE and keeps_leave:
                continue
            result.set(date_str, member.id, EMPTY)
    return result


class ShiftGenerator:
    """Runs the generation phases over a private copy of the month"""

    def __init__(self, staff: List[Staff], holidays: List[Holiday], year: int, month: int,
                 settings: Optional[Settings] = None, existing_schedule=None,
                 existing_time_range_schedule=None, rng: Optional[random.Random] = None):
        self.staff = list(staff)
        self.holidays = list(holidays or [])
        self.year = year
        self.month = month
        self.settings = settings or Settings()
        self.existing_schedule = Schedule.from_dict(existing_schedule)
        self.time_ranges = TimeRangeSchedule.from_dict(existing_time_range_schedule)
        self.rng = rng if rng is not None else random.Random()

    def create_state(self) -> GenerationState:
        return GenerationState(
            staff=self.staff,
            holidays=self.holidays,
            settings=self.settings,
            year=self.year,
            month=self.month,
            schedule=seed_schedule(self.staff, self.year, self.month, self.existing_schedule),
            time_ranges=self.time_ranges,
            rng=self.rng
        )

    def run(self) -> ScheduleResult:
        """
        Generate the month

        Returns:
            ScheduleResult whose ``success`` is False when any weekday band or
            the total headcount is still below its floor
        """
        start_time = time.time()
        month_key = f"{self.year}-{self.month:02d}"
        logger.info(f"Starting schedule generation for {month_key} with {len(self.staff)} staff")

        state = self.create_state()
        for name, phase in PHASES:
            phase(state)
            logger.debug(f"Phase '{name}' complete for {month_key}")

        shortages = collect_shortages(state)
        violations = validate_schedule(state.schedule, self.staff, self.holidays, self.year, self.month)
        statistics = get_schedule_statistics(state.schedule, self.staff, self.year, self.month)
        statistics["chief_assignments"] = state.chief_assignments
        statistics["shortage_days"] = len(shortages)

        for date_str, day_shortages in shortages.items():
            details = ", ".join(f"{s.pattern} {s.current}/{s.required}" for s in day_shortages)
            logger.warning(f"Unresolved shortage on {date_str}: {details}")

        success = not shortages
        message = "Schedule generated successfully"
        if shortages:
            message = f"Schedule generated with shortages on {len(shortages)} day(s)"
        if violations:
            message += f" and {len(violations)} rule violation(s)"

        duration = time.time() - start_time
        statistics["generation_time"] = duration
        logger.info(f"Schedule generation for {month_key} completed in {duration:.2f}s. Success: {success}")

        return ScheduleResult(
            success=success,
            schedule=state.schedule,
            shortages=shortages,
            violations=violations,
            statistics=statistics,
            message=message
        )

    def generate(self) -> Schedule:
        return self.run().schedule


def generate(staff: List[Staff], holidays: List[Holiday], year: int, month: int,
             settings: Optional[Settings] = None, existing_schedule=None,
             existing_time_range_schedule=None, rng: Optional[random.Random] = None) -> Schedule:
    """Generate a complete month schedule. Never raises on unsatisfiable staffing."""
    return ShiftGenerator(staff, holidays, year, month, settings, existing_schedule,
                          existing_time_range_schedule, rng).generate()
