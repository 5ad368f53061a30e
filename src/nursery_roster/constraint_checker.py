"""
Constraint Checker for the Nursery Roster

Evaluates a proposed (day, staff, shift) edit against the rule set shared by
interactive editing and batch generation, and builds the decision-support
views on top of it: candidate ranking, shortage detection, swap suggestions
and the impact preview shown in the edit dialog.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .calendar_utils import (
    days_in_month, format_date, is_work_day, next_work_day, previous_work_day, week_range
)
from .data_manager import Holiday, Settings, ShiftCategory, Staff
from .schedule import (
    COMPENSATORY_OFF, DAY_OFF, EARLIEST_BAND, EARLY_BANDS, EMPTY, EXTREME_BANDS,
    LATEST_BAND, PAID_LEAVE, PROTECTED_CODES, Schedule, is_work_band
)
from .shift_counts import count_monthly

logger = logging.getLogger(__name__)

HARD = "hard"
SOFT = "soft"

MAX_SWAP_SUGGESTIONS = 3

# Staff categories eligible for main-shift work
MAIN_SHIFT_CATEGORIES = (ShiftCategory.REGULAR, ShiftCategory.BACKUP)


class ConstraintCode:
    """Violation codes"""
    J_TO_A = "J_TO_A"
    CONSECUTIVE_A = "CONSECUTIVE_A"
    CONSECUTIVE_J = "CONSECUTIVE_J"
    INCOMPATIBLE = "INCOMPATIBLE"
    WEEKLY_AJ_LIMIT = "WEEKLY_AJ_LIMIT"
    MIN_COUNT_A = "MIN_COUNT_A"
    MIN_COUNT_J = "MIN_COUNT_J"
    EARLY_LIMIT = "EARLY_LIMIT"
    FAIRNESS_A = "FAIRNESS_A"
    FAIRNESS_J = "FAIRNESS_J"


@dataclass
class Violation:
    type: str  # HARD or SOFT
    code: str
    message: str

    @property
    def is_hard(self) -> bool:
        return self.type == HARD


@dataclass
class ConstraintContext:
    """Snapshot every rule check reads from"""
    schedule: Schedule
    staff: List[Staff]
    holidays: List[Holiday]
    settings: Settings
    year: int
    month: int
    _staff_by_id: Dict[int, Staff] = field(default=None, init=False, repr=False, compare=False)

    def find_staff(self, staff_id: int) -> Optional[Staff]:
        if self._staff_by_id is None:
            self._staff_by_id = {member.id: member for member in self.staff}
        return self._staff_by_id.get(staff_id)

    def date_key(self, day: int) -> str:
        return format_date(self.year, self.month, day)

    def shift(self, day: int, staff_id: int) -> str:
        return self.schedule.get(self.date_key(day), staff_id)


@dataclass
class CandidateEvaluation:
    staff_id: int
    staff_name: str
    violations: List[Violation]
    is_assignable: bool
    current_shift: str


@dataclass
class Shortage:
    pattern: str
    current: int
    required: int


@dataclass
class SwapParty:
    id: int
    name: str
    current_shift: str


@dataclass
class SwapSuggestion:
    staff_a: SwapParty
    staff_b: SwapParty
    description: str
    benefit: str


@dataclass
class ImpactPreview:
    violations: List[Violation]
    is_allowed: bool
    summary: str


def create_constraint_context(schedule, staff: List[Staff], holidays: List[Holiday],
                              settings: Settings, year: int, month: int) -> ConstraintContext:
    """Bundle a snapshot for rule evaluation. Plain dict schedules are wrapped."""
    return ConstraintContext(Schedule.from_dict(schedule), list(staff), list(holidays or []),
                             settings or Settings(), year, month)


def has_hard_violation(violations: List[Violation]) -> bool:
    return any(v.is_hard for v in violations)


# Individual checks

def check_j_to_a(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    """Closing band may not be followed by the opening band on the next work day"""
    if shift == EARLIEST_BAND:
        prev_day = previous_work_day(ctx.year, ctx.month, day, ctx.holidays)
        if prev_day and ctx.shift(prev_day, staff_id) == LATEST_BAND:
            return Violation(HARD, ConstraintCode.J_TO_A,
                             f"{LATEST_BAND} then {EARLIEST_BAND} (previous work day is {LATEST_BAND})")
    elif shift == LATEST_BAND:
        following = next_work_day(ctx.year, ctx.month, day, ctx.holidays)
        if following and ctx.shift(following, staff_id) == EARLIEST_BAND:
            return Violation(HARD, ConstraintCode.J_TO_A,
                             f"{LATEST_BAND} then {EARLIEST_BAND} (next work day is {EARLIEST_BAND})")
    return None


def check_consecutive(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    if shift not in EXTREME_BANDS:
        return None
    neighbours = (previous_work_day(ctx.year, ctx.month, day, ctx.holidays),
                  next_work_day(ctx.year, ctx.month, day, ctx.holidays))
    for other_day in neighbours:
        if other_day and ctx.shift(other_day, staff_id) == shift:
            code = ConstraintCode.CONSECUTIVE_A if shift == EARLIEST_BAND else ConstraintCode.CONSECUTIVE_J
            return Violation(HARD, code, f"{shift} on consecutive work days")
    return None


def check_incompatible(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    """Another staff member on the same work band who is incompatible with this one, either way round"""
    if not is_work_band(shift):
        return None
    target = ctx.find_staff(staff_id)
    if target is None:
        return None
    day_cells = ctx.schedule.day(ctx.date_key(day))
    for other in ctx.staff:
        if other.id == staff_id or day_cells.get(other.id) != shift:
            continue
        if other.id in target.incompatible_with or staff_id in other.incompatible_with:
            return Violation(HARD, ConstraintCode.INCOMPATIBLE,
                             f"Incompatible with {other.name} on the same shift")
    return None


def check_weekly_limit(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    """At most one extreme band per Monday to Saturday week"""
    if shift not in EXTREME_BANDS:
        return None
    window = week_range(ctx.year, ctx.month, day)
    if window is None:
        return None
    for other_day in range(window[0], window[1] + 1):
        if other_day != day and ctx.shift(other_day, staff_id) in EXTREME_BANDS:
            return Violation(HARD, ConstraintCode.WEEKLY_AJ_LIMIT,
                             f"Second {EARLIEST_BAND}/{LATEST_BAND} in the same week")
    return None


def check_min_count(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    """Moving someone off an extreme band may not take it to or below its floor"""
    current = ctx.shift(day, staff_id)
    if current not in EXTREME_BANDS or current == shift:
        return None
    current_count = ctx.schedule.count_on_day(ctx.date_key(day), current)
    if current_count <= ctx.settings.min_count(current):
        code = ConstraintCode.MIN_COUNT_A if current == EARLIEST_BAND else ConstraintCode.MIN_COUNT_J
        return Violation(HARD, code, f"{current} count would drop to {current_count - 1}")
    return None


def check_early_limit(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    if shift not in EARLY_BANDS:
        return None
    target = ctx.find_staff(staff_id)
    if target is None or target.early_shift_limit is None:
        return None
    current_count = count_monthly(ctx.schedule, staff_id, EARLY_BANDS, ctx.year, ctx.month)
    if current_count >= target.early_shift_limit:
        return Violation(SOFT, ConstraintCode.EARLY_LIMIT,
                         f"Monthly early shift limit reached ({current_count}/{target.early_shift_limit})")
    return None


def check_fairness(ctx: ConstraintContext, day: int, staff_id: int, shift: str) -> Optional[Violation]:
    """Regular staff running more than one above the regular-cohort mean for an extreme band"""
    if shift not in EXTREME_BANDS:
        return None
    target = ctx.find_staff(staff_id)
    if target is None or target.shift_type != ShiftCategory.REGULAR:
        return None
    regulars = [member for member in ctx.staff if member.shift_type == ShiftCategory.REGULAR]
    counts = [count_monthly(ctx.schedule, member.id, (shift,), ctx.year, ctx.month) for member in regulars]
    average = sum(counts) / len(counts)
    own_count = count_monthly(ctx.schedule, staff_id, (shift,), ctx.year, ctx.month)
    if own_count > average + 1:
        code = ConstraintCode.FAIRNESS_A if shift == EARLIEST_BAND else ConstraintCode.FAIRNESS_J
        return Violation(SOFT, code, f"{shift} count above average ({own_count}, average {average:.1f})")
    return None


HARD_CHECKS = (check_j_to_a, check_consecutive, check_incompatible, check_weekly_limit, check_min_count)
SOFT_CHECKS = (check_early_limit, check_fairness)


def assignment_violations(ctx: ConstraintContext, day: int, staff_id: int, shift: str,
                          include_weekly: bool = True) -> List[Violation]:
    """
    Hard checks that apply to placing someone on a band: adjacency, repeats,
    incompatibility and the weekly cap. Minimum-count protection is left out
    since it only concerns removals.
    """
    checks = [check_j_to_a, check_consecutive, check_incompatible]
    if include_weekly:
        checks.append(check_weekly_limit)
    violations = []
    for check in checks:
        violation = check(ctx, day, staff_id, shift)
        if violation:
            violations.append(violation)
    return violations


def check_constraints(ctx: ConstraintContext, day: int, staff_id: int, candidate_shift: str) -> List[Violation]:
    """
    Check all constraints for a single cell change

    Args:
        ctx: Snapshot to evaluate against
        day: Day of month
        staff_id: Staff member being edited
        candidate_shift: Proposed code

    Returns:
        Hard violations in check order, followed by soft ones. Empty when the
        change is clean.
    """
    violations = []
    for check in HARD_CHECKS + SOFT_CHECKS:
        violation = check(ctx, day, staff_id, candidate_shift)
        if violation:
            violations.append(violation)
    return violations


def evaluate_candidates(ctx: ConstraintContext, day: int, target_shift: str) -> List[CandidateEvaluation]:
    """Rank regular and backup staff for a target shift, assignable first then by violation count"""
    candidates = []
    for member in ctx.staff:
        if member.shift_type not in MAIN_SHIFT_CATEGORIES:
            continue
        current_shift = ctx.shift(day, member.id)
        if current_shift == target_shift or current_shift in PROTECTED_CODES:
            continue
        violations = check_constraints(ctx, day, member.id, target_shift)
        candidates.append(CandidateEvaluation(
            staff_id=member.id,
            staff_name=member.name,
            violations=violations,
            is_assignable=not has_hard_violation(violations),
            current_shift=current_shift
        ))

    candidates.sort(key=lambda c: (not c.is_assignable, len(c.violations)))
    logger.debug(f"{ctx.date_key(day)}: {len(candidates)} candidate(s) for {target_shift}")
    return candidates


def find_shortages(ctx: ConstraintContext, day: int) -> List[Shortage]:
    """Extreme bands whose same-day count is below their floor"""
    date_str = ctx.date_key(day)
    shortages = []
    for band in EXTREME_BANDS:
        required = ctx.settings.min_count(band)
        current = ctx.schedule.count_on_day(date_str, band)
        if current < required:
            shortages.append(Shortage(band, current, required))
    return shortages


def find_swap_suggestions(ctx: ConstraintContext, day: int, shortage_pattern: str) -> List[SwapSuggestion]:
    """
    Greedy single pass over ordered staff pairs (A, B) where A moves onto the
    short band and B takes over A's current band. Not exhaustive.
    """
    suggestions = []
    eligible = [member for member in ctx.staff if member.shift_type in MAIN_SHIFT_CATEGORIES]

    for staff_a in eligible:
        shift_a = ctx.shift(day, staff_a.id)
        if shift_a in (shortage_pattern, PAID_LEAVE, COMPENSATORY_OFF, DAY_OFF, EMPTY):
            continue
        if has_hard_violation(check_constraints(ctx, day, staff_a.id, shortage_pattern)):
            continue

        for staff_b in eligible:
            if staff_b.id == staff_a.id:
                continue
            shift_b = ctx.shift(day, staff_b.id)
            if shift_b in PROTECTED_CODES or shift_b == shift_a:
                continue
            if has_hard_violation(check_constraints(ctx, day, staff_b.id, shift_a)):
                continue

            suggestions.append(SwapSuggestion(
                staff_a=SwapParty(staff_a.id, staff_a.name, shift_a),
                staff_b=SwapParty(staff_b.id, staff_b.name, shift_b),
                description=f"{staff_a.name}({shift_a}) <-> {staff_b.name}({shift_b or DAY_OFF})",
                benefit=f"{shortage_pattern} slot is covered"
            ))
            if len(suggestions) >= MAX_SWAP_SUGGESTIONS:
                return suggestions

    return suggestions


def get_impact_preview(ctx: ConstraintContext, day: int, staff_id: int, new_shift: str) -> ImpactPreview:
    """Violations and a one-line summary for the edit dialog"""
    violations = check_constraints(ctx, day, staff_id, new_shift)
    hard_count = sum(1 for v in violations if v.is_hard)
    soft_count = len(violations) - hard_count

    if hard_count:
        summary = f"{hard_count} hard constraint violation(s)"
    elif soft_count:
        summary = f"{soft_count} soft constraint violation(s), change allowed"
    else:
        summary = "Change allowed"
    return ImpactPreview(violations=violations, is_allowed=hard_count == 0, summary=summary)


def find_month_shortages(ctx: ConstraintContext) -> Dict[str, List[Shortage]]:
    """Shortages for every work day of the month, keyed by date"""
    result = {}
    for day in range(1, days_in_month(ctx.year, ctx.month) + 1):
        if not is_work_day(ctx.year, ctx.month, day, ctx.holidays):
            continue
        shortages = find_shortages(ctx, day)
        if shortages:
            result[ctx.date_key(day)] = shortages
    return result
