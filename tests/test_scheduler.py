"""
Test Suite for Shift Generation

Covers completeness, protection of manual leave, the adjacency invariant,
coverage with a full roster, fixed roles, Saturday rotation, the chief
fallback, reproducibility and the post-run audit. Generation runs against
January 2024 (Monday the 1st) unless stated otherwise.
"""

import pytest
import random
import sys
from pathlib import Path

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nursery_roster.calendar_utils import (
    days_in_month, format_date, is_closed_day, is_open_saturday, previous_work_day
)
from nursery_roster.data_manager import (
    Holiday, Position, Settings, ShiftCategory, ShiftPattern, StaffRole, Staff, default_shift_patterns
)
from nursery_roster.schedule import Schedule, TimeRange, TimeRangeSchedule
from nursery_roster.scheduler_logic import (
    GenerationState, ShiftGenerator, _fill_band, assign_chief_fallback, assign_cooking_rotation,
    assign_weekdays, cover_late_roles, generate, repair_adjacency, reset_generated_cells,
    seed_schedule, top_up_minimums, validate_schedule
)
from nursery_roster.shift_counts import count_effective_shift

YEAR, MONTH = 2024, 1
DIRECTOR_ID, CHIEF_ID = 100, 101
COOK_IDS = (200, 201)
PART_TIME_IDS = (300, 301)
BACKUP_ID = 400


def make_roster(regulars: int = 10):
    """Director, chief, two cooks, ``regulars`` caregivers, a backup and two part-timers"""
    roster = [
        Staff(DIRECTOR_ID, "Director", position=Position.DIRECTOR, shift_type=ShiftCategory.NO_SHIFT),
        Staff(CHIEF_ID, "Chief", position=Position.CHIEF, shift_type=ShiftCategory.BACKUP),
        Staff(COOK_IDS[0], "Cook 1", position=Position.COOK, shift_type=ShiftCategory.COOKING,
              role=StaffRole.COOKING),
        Staff(COOK_IDS[1], "Cook 2", position=Position.COOK, shift_type=ShiftCategory.COOKING,
              role=StaffRole.COOKING),
    ]
    roles = [StaffRole.INFANT, StaffRole.TODDLER, StaffRole.FREE]
    for i in range(regulars):
        roster.append(Staff(i + 1, f"Carer {i + 1}", role=roles[i % len(roles)]))
    roster.append(Staff(BACKUP_ID, "Backup", shift_type=ShiftCategory.BACKUP))
    for staff_id in PART_TIME_IDS:
        roster.append(Staff(staff_id, f"Part {staff_id}", position=Position.PART_TIME,
                            shift_type=ShiftCategory.PART_TIME))
    return roster


def work_days(holidays=()):
    return [d for d in range(1, days_in_month(YEAR, MONTH) + 1)
            if not is_closed_day(YEAR, MONTH, d, holidays)]


def weekdays(holidays=()):
    return [d for d in work_days(holidays) if not is_open_saturday(YEAR, MONTH, d, holidays)]


@pytest.fixture
def roster():
    return make_roster()


@pytest.fixture
def generated(roster):
    return generate(roster, [], YEAR, MONTH, Settings(), rng=random.Random(42))


def test_completeness(roster, generated):
    """Every non-part-time cell is filled on every day."""
    for day in range(1, days_in_month(YEAR, MONTH) + 1):
        date_str = format_date(YEAR, MONTH, day)
        for member in roster:
            if member.is_part_time:
                continue
            assert generated.get(date_str, member.id) != "", f"{member.name} blank on {date_str}"


def test_protected_leave_is_preserved(roster):
    existing = {
        "2024-01-10": {1: "有", 2: "振", PART_TIME_IDS[0]: "有"},
        "2024-01-11": {CHIEF_ID: "有", COOK_IDS[0]: "振"},
        "2024-01-13": {3: "有"},
    }
    schedule = generate(roster, [], YEAR, MONTH, Settings(), existing, rng=random.Random(1))
    for date_str, cells in existing.items():
        for staff_id, code in cells.items():
            assert schedule.get(date_str, staff_id) == code


@pytest.mark.parametrize("seed", [0, 7, 42])
def test_adjacency_invariant(roster, seed):
    holidays = [Holiday("2024-01-08")]
    schedule = generate(roster, holidays, YEAR, MONTH, Settings(), rng=random.Random(seed))
    forbidden = {("J", "A"), ("A", "A"), ("J", "J")}
    for day in work_days(holidays):
        prev_day = previous_work_day(YEAR, MONTH, day, holidays)
        if not prev_day:
            continue
        for member in roster:
            if member.is_part_time:
                continue
            pair = (schedule.get(format_date(YEAR, MONTH, prev_day), member.id),
                    schedule.get(format_date(YEAR, MONTH, day), member.id))
            assert pair not in forbidden, f"{member.name}: {pair} on day {day}"


@pytest.mark.parametrize("seed", [0, 3, 11])
def test_extreme_band_coverage_with_full_roster(seed):
    """Ten qualified regulars, no holidays: every weekday has two on A and two on J."""
    roster = [Staff(i, f"Carer {i}") for i in range(1, 11)]
    schedule = generate(roster, [], YEAR, MONTH, Settings(), rng=random.Random(seed))
    for day in weekdays():
        date_str = format_date(YEAR, MONTH, day)
        assert schedule.count_on_day(date_str, "A") >= 2, date_str
        assert schedule.count_on_day(date_str, "J") >= 2, date_str


def test_director_is_always_off(generated):
    for day in range(1, days_in_month(YEAR, MONTH) + 1):
        assert generated.get(format_date(YEAR, MONTH, day), DIRECTOR_ID) == "休"


def test_cooking_rotation(generated):
    saturday_cooks = []
    for day in range(1, days_in_month(YEAR, MONTH) + 1):
        date_str = format_date(YEAR, MONTH, day)
        codes = [generated.get(date_str, cook_id) for cook_id in COOK_IDS]
        if is_closed_day(YEAR, MONTH, day, []):
            assert codes == ["休", "休"]
        elif is_open_saturday(YEAR, MONTH, day, []):
            assert sorted(codes) == ["B", "休"]
            saturday_cooks.append(codes.index("B"))
        else:
            assert codes == ["B", "B"]
    assert saturday_cooks == [0, 1, 0, 1]


def test_saturday_staffing_and_compensatory_off(roster):
    # Part-timer 300 works the 13th, so only two regulars are needed that day
    time_ranges = {"2024-01-13": {PART_TIME_IDS[0]: {"start": "08:00", "end": "13:00"}}}
    schedule = generate(roster, [], YEAR, MONTH, Settings(), None, time_ranges, rng=random.Random(5))
    regular_ids = [m.id for m in roster if m.shift_type == ShiftCategory.REGULAR]

    for saturday, expected in ((6, 3), (13, 2), (20, 3), (27, 3)):
        date_str = format_date(YEAR, MONTH, saturday)
        workers = [i for i in regular_ids if schedule.get(date_str, i) == "B"]
        assert len(workers) == expected, date_str
        for staff_id in workers:
            week = [format_date(YEAR, MONTH, d) for d in range(saturday - 5, saturday)]
            assert any(schedule.get(d, staff_id) == "振" for d in week)
        others = [m for m in roster if m.id not in workers and m.id != DIRECTOR_ID
                  and m.shift_type not in (ShiftCategory.COOKING, ShiftCategory.PART_TIME)]
        assert all(schedule.get(date_str, m.id) == "休" for m in others)


def test_saturday_rotation_is_spread(roster, generated):
    regular_ids = [m.id for m in roster if m.shift_type == ShiftCategory.REGULAR]
    counts = {
        i: sum(1 for d in (6, 13, 20, 27) if generated.get(format_date(YEAR, MONTH, d), i) == "B")
        for i in regular_ids
    }
    assert max(counts.values()) - min(counts.values()) <= 1


def test_custom_saturday_settings(roster):
    settings = Settings(saturday_staff_count=2, saturday_shift_pattern="C")
    schedule = generate(roster, [], YEAR, MONTH, settings, rng=random.Random(2))
    workers = [m for m in roster if m.shift_type == ShiftCategory.REGULAR
               and schedule.get("2024-01-20", m.id) == "C"]
    assert len(workers) == 2


def test_weekday_regulars_all_work(roster, generated):
    """Regulars are never left on a plain day off on an open weekday."""
    regulars = [m for m in roster if m.shift_type == ShiftCategory.REGULAR]
    for day in weekdays():
        date_str = format_date(YEAR, MONTH, day)
        for member in regulars:
            assert generated.get(date_str, member.id) in ("A", "B", "C", "D", "E", "J", "振")


def test_holidays_are_days_off(roster):
    holidays = [Holiday("2024-01-08")]
    schedule = generate(roster, holidays, YEAR, MONTH, Settings(), rng=random.Random(9))
    for member in roster:
        if not member.is_part_time:
            assert schedule.get("2024-01-08", member.id) == "休"


def test_incompatible_pair_never_share_a_band():
    roster = [Staff(i, f"Carer {i}") for i in range(1, 11)]
    roster[0].incompatible_with = [2]
    schedule = generate(roster, [], YEAR, MONTH, Settings(), rng=random.Random(4))
    for day in weekdays():
        date_str = format_date(YEAR, MONTH, day)
        first, second = schedule.get(date_str, 1), schedule.get(date_str, 2)
        assert not (first == second and first in ("A", "B", "C", "D", "E", "J")), date_str


def test_late_band_role_coverage_phase():
    """An infant-room carer on a mid band moves to D; the incompatible one is passed over."""
    staff = [
        Staff(6, "Infant C", role=StaffRole.INFANT, incompatible_with=[3]),
        Staff(1, "Infant B", role=StaffRole.INFANT),
        Staff(2, "Toddler C", role=StaffRole.TODDLER),
        Staff(3, "Free D", role=StaffRole.FREE),
        Staff(4, "Toddler J", role=StaffRole.TODDLER),
        Staff(5, "Infant A", role=StaffRole.INFANT),
    ]
    schedule = Schedule({"2024-01-10": {6: "C", 1: "B", 2: "C", 3: "D", 4: "J", 5: "A"}})
    state = GenerationState(
        staff=staff, holidays=[], settings=Settings(), year=YEAR, month=MONTH,
        schedule=schedule, time_ranges=TimeRangeSchedule(), rng=random.Random(0)
    )
    cover_late_roles(state)
    assert state.get(10, 1) == "D"
    assert state.get(10, 6) == "C"
    assert state.get(10, 2) == "C"


def test_part_time_cells_pass_through(roster):
    existing = {
        "2024-01-10": {PART_TIME_IDS[0]: "A", PART_TIME_IDS[1]: "bogus"},
        "2024-01-11": {PART_TIME_IDS[0]: "休"},
    }
    schedule = generate(roster, [], YEAR, MONTH, Settings(), existing, rng=random.Random(3))
    assert schedule.get("2024-01-10", PART_TIME_IDS[0]) == "A"
    assert schedule.get("2024-01-10", PART_TIME_IDS[1]) == ""
    assert schedule.get("2024-01-11", PART_TIME_IDS[0]) == "休"
    assert schedule.get("2024-01-12", PART_TIME_IDS[0]) == ""


def test_generated_cells_are_not_carried_over(roster):
    existing = {"2024-01-10": {1: "J", 2: "A"}}
    schedule = generate(roster, [], YEAR, MONTH, Settings(), existing, rng=random.Random(3))
    assert schedule.get("2024-01-10", 1) != "" and schedule.get("2024-01-10", 2) != ""
    assert existing == {"2024-01-10": {1: "J", 2: "A"}}


def test_existing_schedule_is_not_mutated(roster):
    existing = Schedule({"2024-01-10": {1: "有"}})
    snapshot = existing.copy()
    generate(roster, [], YEAR, MONTH, Settings(), existing, rng=random.Random(3))
    assert existing == snapshot


def test_same_seed_same_schedule(roster):
    first = generate(roster, [], YEAR, MONTH, Settings(), rng=random.Random(123))
    second = generate(roster, [], YEAR, MONTH, Settings(), rng=random.Random(123))
    assert first == second


def test_chief_fallback_respects_limit():
    roster = [
        Staff(CHIEF_ID, "Chief", position=Position.CHIEF, shift_type=ShiftCategory.BACKUP),
        Staff(1, "Carer 1"),
        Staff(2, "Carer 2"),
        Staff(3, "Carer 3"),
    ]
    settings = Settings(chief_backup_limit=3)
    result = ShiftGenerator(roster, [], YEAR, MONTH, settings, rng=random.Random(8)).run()

    chief_days = [d for d in range(1, days_in_month(YEAR, MONTH) + 1)
                  if result.schedule.get(format_date(YEAR, MONTH, d), CHIEF_ID) in ("A", "B", "C", "D", "E", "J")]
    assert len(chief_days) == 3
    assert result.statistics["chief_assignments"] == 3
    assert all(not is_open_saturday(YEAR, MONTH, d, []) for d in chief_days)
    assert not result.success
    assert result.shortages


def test_chief_off_when_not_needed(roster, generated):
    """With a full roster the chief is only used for gaps and otherwise off."""
    for day in range(1, days_in_month(YEAR, MONTH) + 1):
        code = generated.get(format_date(YEAR, MONTH, day), CHIEF_ID)
        assert code != ""
        if is_closed_day(YEAR, MONTH, day, []):
            assert code == "休"


def test_empty_roster_does_not_raise():
    result = ShiftGenerator([], [], YEAR, 2).run()
    assert len(result.schedule) == 29
    assert result.violations == []


def test_result_reports_statistics(roster):
    result = ShiftGenerator(roster, [], YEAR, MONTH, Settings(), rng=random.Random(42)).run()
    stats = result.statistics["staff_stats"]
    assert stats[DIRECTOR_ID]["attendance"] == 0
    assert stats[DIRECTOR_ID]["counts"] == {"休": 31}
    assert stats[1]["attendance"] > 0
    assert result.statistics["blank_cells"] == 0


def test_seed_schedule_keeps_only_protected_cells(roster):
    existing = Schedule({"2024-01-10": {1: "有", 2: "A", PART_TIME_IDS[0]: "C"}})
    seeded = seed_schedule(roster, YEAR, MONTH, existing)
    assert seeded.get("2024-01-10", 1) == "有"
    assert seeded.get("2024-01-10", 2) == ""
    assert seeded.get("2024-01-10", PART_TIME_IDS[0]) == "C"
    assert len(seeded) == 31


def test_guarded_setter(roster):
    existing = Schedule({"2024-01-10": {1: "振", PART_TIME_IDS[0]: "D"}})
    state = ShiftGenerator(roster, [], YEAR, MONTH, existing_schedule=existing).create_state()
    by_id = {m.id: m for m in roster}

    assert not state.set_shift(10, by_id[1], "B")
    assert state.get(10, 1) == "振"
    assert not state.set_shift(10, by_id[PART_TIME_IDS[0]], "休")
    assert state.set_shift(10, by_id[PART_TIME_IDS[1]], "休")
    assert state.set_shift(10, by_id[2], "C")
    assert state.get(10, 2) == "C"


def test_cooking_phase_in_isolation():
    cooks = [Staff(1, "Cook", position=Position.COOK, shift_type=ShiftCategory.COOKING)]
    state = GenerationState(
        staff=cooks, holidays=[Holiday("2024-01-06")], settings=Settings(), year=YEAR, month=MONTH,
        schedule=seed_schedule(cooks, YEAR, MONTH, Schedule()), time_ranges=TimeRangeSchedule(),
        rng=random.Random(0)
    )
    assign_cooking_rotation(state)
    assert state.get(5, 1) == "B"
    assert state.get(6, 1) == "休"  # holiday Saturday
    assert state.get(13, 1) == "B"


def test_validate_schedule_reports_breaches():
    roster = [Staff(1, "Aoi"), Staff(2, "Ren"), Staff(3, "Part", shift_type=ShiftCategory.PART_TIME)]
    schedule = Schedule({
        "2024-01-02": {1: "A", 2: "J"},
        "2024-01-03": {1: "A", 2: "A"},
    })
    violations = validate_schedule(schedule, roster, [], 2024, 1)
    assert any("Aoi works A on 2024-01-02 then A on 2024-01-03" in v for v in violations)
    assert any("Ren works J on 2024-01-02 then A on 2024-01-03" in v for v in violations)
    assert any("Aoi has 2 A/J shifts" in v for v in violations)
    assert any("has no assignment on 2024-01-04" in v for v in violations)
    assert not any("Part" in v for v in violations)


def test_reset_generated_cells(roster):
    schedule = Schedule({
        "2024-01-10": {1: "有", 2: "振", 3: "A", CHIEF_ID: "有", COOK_IDS[0]: "有",
                       PART_TIME_IDS[0]: "B"},
        "2024-02-01": {1: "A"},
    })
    reset = reset_generated_cells(schedule, roster, YEAR, MONTH)
    assert reset.get("2024-01-10", 1) == "有"
    assert reset.get("2024-01-10", 2) == ""
    assert reset.get("2024-01-10", 3) == ""
    assert reset.get("2024-01-10", CHIEF_ID) == "有"
    assert reset.get("2024-01-10", COOK_IDS[0]) == ""
    assert reset.get("2024-01-10", PART_TIME_IDS[0]) == "B"
    assert reset.get("2024-02-01", 1) == "A"
    assert schedule.get("2024-01-10", 3) == "A"


def test_part_time_credit_reduces_extreme_need():
    """A qualified part-timer credited to A leaves one A slot for the regulars."""
    roster = [Staff(i, f"Carer {i}") for i in range(1, 11)]
    roster.append(Staff(50, "Part", position=Position.PART_TIME, shift_type=ShiftCategory.PART_TIME))
    time_ranges = TimeRangeSchedule()
    time_ranges.set("2024-01-10", 50, TimeRange("07:00", "12:00", ["A"]))
    schedule = generate(roster, [], YEAR, MONTH, Settings(), None, time_ranges, rng=random.Random(6))
    assert schedule.count_on_day("2024-01-10", "A") == 1


def test_part_timer_on_a_band_with_credited_range():
    """
    A part-timer whose cell is B but whose range is credited to A counts once
    toward A, both when the regulars are placed and when coverage is checked.
    """
    roster = [Staff(i, f"Carer {i}") for i in range(1, 11)]
    roster.append(Staff(50, "Part", position=Position.PART_TIME, shift_type=ShiftCategory.PART_TIME))
    existing = Schedule({"2024-01-10": {50: "B"}})
    time_ranges = TimeRangeSchedule()
    time_ranges.set("2024-01-10", 50, TimeRange("07:00", "12:00", ["A"]))

    result = ShiftGenerator(roster, [], YEAR, MONTH, Settings(), existing, time_ranges,
                            rng=random.Random(6)).run()
    schedule = result.schedule
    assert schedule.get("2024-01-10", 50) == "B"
    assert schedule.count_on_day("2024-01-10", "A") == 1
    assert count_effective_shift(roster, schedule, time_ranges, "2024-01-10", "A", Settings(),
                                 qualified_only=True) == 2
    assert not any(s.pattern == "A" for s in result.shortages.get("2024-01-10", []))


# Phase tests on a hand-built working schedule

def make_state(staff, cells, holidays=(), settings=None, seed=0):
    return GenerationState(
        staff=staff, holidays=list(holidays), settings=settings or Settings(), year=YEAR, month=MONTH,
        schedule=Schedule(cells), time_ranges=TimeRangeSchedule(), rng=random.Random(seed)
    )


def floors(min_total_staff=0, **mins):
    """Settings with the given band minimums and every other band at zero"""
    patterns = [ShiftPattern(p.code, p.name, p.start, p.end, mins.get(p.code, 0))
                for p in default_shift_patterns()]
    return Settings(min_total_staff=min_total_staff, shift_patterns=patterns)


def closed_except(*open_days):
    return [Holiday(format_date(YEAR, MONTH, d)) for d in weekdays() if d not in open_days]


def test_top_up_raises_short_band_and_protects_the_band_left():
    """A is topped up from a spare B worker; the last B and both J workers stay put, so C stays empty."""
    staff = [Staff(i, f"Carer {i}") for i in range(1, 6)]
    cells = {"2024-01-10": {1: "A", 2: "B", 3: "B", 4: "J", 5: "J"}}
    state = make_state(staff, cells, settings=Settings(min_total_staff=0))

    top_up_minimums(state)

    assert [state.get(10, i) for i in range(1, 6)] == ["A", "A", "B", "J", "J"]
    assert state.schedule.count_on_day("2024-01-10", "C") == 0


def test_top_up_total_pulls_backup_staff():
    """Empty-cell backups fill the headcount; an incompatible backup moves on to C; the chief is left alone."""
    staff = [
        Staff(1, "Carer"),
        Staff(2, "Backup", shift_type=ShiftCategory.BACKUP),
        Staff(3, "Backup Apart", shift_type=ShiftCategory.BACKUP, incompatible_with=[1]),
        Staff(CHIEF_ID, "Chief", position=Position.CHIEF, shift_type=ShiftCategory.BACKUP),
    ]
    state = make_state(staff, {"2024-01-10": {1: "B"}}, settings=floors(min_total_staff=3))

    top_up_minimums(state)

    assert state.get(10, 2) == "B"
    assert state.get(10, 3) == "C"
    assert state.get(10, CHIEF_ID) == ""
    assert state.working_count(10) == 3


def test_fill_band_relaxes_weekly_cap_only_as_a_last_resort():
    staff = [Staff(1, "Early Monday"), Staff(2, "Late Monday")]
    cells = {"2024-01-08": {1: "A", 2: "J"}}

    state = make_state(staff, cells)
    _fill_band(state, 10, staff, "A", 1)
    assert state.schedule.count_on_day("2024-01-10", "A") == 1

    fresh = Staff(3, "Fresh")
    state = make_state(staff + [fresh], cells)
    _fill_band(state, 10, staff + [fresh], "A", 1)
    assert state.get(10, 3) == "A"
    assert state.get(10, 1) == "" and state.get(10, 2) == ""


@pytest.mark.parametrize("day, first_band", [(8, "A"), (10, "A"), (11, "J"), (12, "J")])
def test_weekday_extreme_order(day, first_band):
    """A lone regular lands on whichever extreme band the weekday fills first."""
    staff = [Staff(1, "Carer")]
    state = make_state(staff, {}, holidays=closed_except(day))

    assign_weekdays(state)

    assert state.get(day, 1) == first_band


@pytest.mark.parametrize("chief_before, chief_after", [("J", "休"), ("休", "A")])
def test_chief_fallback(chief_before, chief_after):
    """
    On the 10th a base-band regular is moved to A instead of using the chief.
    On the 11th nobody is on B, so the chief covers A unless they closed the day before.
    """
    chief = Staff(CHIEF_ID, "Chief", position=Position.CHIEF, shift_type=ShiftCategory.BACKUP)
    staff = [chief, Staff(1, "Carer 1"), Staff(2, "Carer 2")]
    cells = {
        "2024-01-10": {1: "B", 2: "J", CHIEF_ID: chief_before},
        "2024-01-11": {1: "C", 2: "D"},
    }
    state = make_state(staff, cells, holidays=closed_except(10, 11), settings=floors(A=1))

    assign_chief_fallback(state)

    assert state.get(10, 1) == "A"
    assert state.get(10, CHIEF_ID) == chief_before
    assert state.get(11, CHIEF_ID) == chief_after
    assert state.chief_assignments == (1 if chief_after == "A" else 0)


def test_repair_adjacency():
    staff = [Staff(i, f"Carer {i}") for i in range(1, 6)]
    staff.append(Staff(50, "Part", position=Position.PART_TIME, shift_type=ShiftCategory.PART_TIME))
    cells = {
        "2024-01-06": {5: "J"},
        "2024-01-08": {5: "A"},  # Sunday in between
        "2024-01-09": {1: "J", 2: "A", 3: "J", 4: "A", 50: "J"},
        "2024-01-10": {1: "A", 2: "A", 3: "J", 4: "J", 50: "A"},
    }
    state = make_state(staff, cells)

    repair_adjacency(state)

    assert [state.get(10, i) for i in (1, 2, 3, 4)] == ["B", "B", "B", "J"]
    assert state.get(8, 5) == "B"
    assert state.get(10, 50) == "A"
