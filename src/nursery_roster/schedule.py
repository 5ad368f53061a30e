"""
Schedule Containers for the Nursery Roster

Shift codes, the two-level ``date -> staff id -> code`` schedule container and
the part-time time range table. Both containers iterate in a defined order:
ascending date, then roster order when one is supplied.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

# Work bands, earliest to latest
WORK_BANDS = ("A", "B", "C", "D", "E", "J")
EARLIEST_BAND = "A"
LATEST_BAND = "J"
BASE_BAND = "B"
EXTREME_BANDS = (EARLIEST_BAND, LATEST_BAND)
MID_BANDS = ("B", "C")
LATE_BANDS = ("D", "E", "J")
EARLY_BANDS = ("A", "B")  # counted against Staff.early_shift_limit
KEY_BANDS = ("A", "B", "J")  # workload ranking

COMPENSATORY_OFF = "振"
PAID_LEAVE = "有"
DAY_OFF = "休"
EMPTY = ""

PROTECTED_CODES = (PAID_LEAVE, COMPENSATORY_OFF)
LEAVE_CODES = (COMPENSATORY_OFF, PAID_LEAVE, DAY_OFF)
VALID_CODES = WORK_BANDS + LEAVE_CODES


def is_work_band(code: Optional[str]) -> bool:
    return code in WORK_BANDS


def normalize_code(code: Any) -> str:
    """Unknown or malformed codes read as empty"""
    if isinstance(code, str) and code in VALID_CODES:
        return code
    return EMPTY


@dataclass
class TimeRange:
    """Part-time work interval for one day"""
    start: str  # "HH:MM"
    end: str  # "HH:MM"
    count_as_shifts: Optional[List[str]] = None  # bands this interval is credited toward

    def to_dict(self) -> Dict[str, Any]:
        data = {"start": self.start, "end": self.end}
        if self.count_as_shifts:
            data["countAsShifts"] = list(self.count_as_shifts)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeRange':
        credited = data.get("countAsShifts")
        return cls(
            start=data["start"],
            end=data["end"],
            count_as_shifts=list(credited) if credited else None
        )


def _staff_key(staff_id: Any) -> Any:
    # JSON object keys arrive as strings
    if isinstance(staff_id, str) and staff_id.lstrip("-").isdigit():
        return int(staff_id)
    return staff_id


class Schedule:
    """Month schedule: date key -> staff id -> shift code"""

    def __init__(self, cells: Optional[Mapping[str, Mapping[Any, str]]] = None):
        self._cells: Dict[str, Dict[Any, str]] = {}
        for date_str, day_cells in (cells or {}).items():
            for staff_id, code in (day_cells or {}).items():
                self.set(date_str, _staff_key(staff_id), code if code is not None else EMPTY)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Mapping[Any, str]]]) -> 'Schedule':
        if isinstance(data, Schedule):
            return data
        return cls(data)

    def get(self, date_str: str, staff_id: Any) -> str:
        return self._cells.get(date_str, {}).get(staff_id) or EMPTY

    def set(self, date_str: str, staff_id: Any, code: str):
        self._cells.setdefault(date_str, {})[staff_id] = code

    def ensure_day(self, date_str: str) -> Dict[Any, str]:
        return self._cells.setdefault(date_str, {})

    def day(self, date_str: str) -> Dict[Any, str]:
        """Copy of one day's cells"""
        return dict(self._cells.get(date_str, {}))

    def dates(self) -> List[str]:
        return sorted(self._cells)

    def count_on_day(self, date_str: str, code: str) -> int:
        """Count cells holding ``code`` on a day"""
        return sum(1 for value in self._cells.get(date_str, {}).values() if value == code)

    def copy(self) -> 'Schedule':
        clone = Schedule()
        for date_str, day_cells in self._cells.items():
            clone._cells[date_str] = dict(day_cells)
        return clone

    def to_dict(self, staff_order: Optional[List[Any]] = None) -> Dict[str, Dict[Any, str]]:
        """Export in ascending date order, then roster order when given"""
        result = {}
        for date_str in self.dates():
            day_cells = self._cells[date_str]
            ordered = {}
            if staff_order is not None:
                for staff_id in staff_order:
                    if staff_id in day_cells:
                        ordered[staff_id] = day_cells[staff_id]
            for staff_id, code in day_cells.items():
                if staff_id not in ordered:
                    ordered[staff_id] = code
            result[date_str] = ordered
        return result

    def __contains__(self, date_str: str) -> bool:
        return date_str in self._cells

    def __iter__(self) -> Iterator[str]:
        return iter(self.dates())

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schedule):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        return f"Schedule(days={len(self._cells)})"


class TimeRangeSchedule:
    """Part-time work hours: date key -> staff id -> TimeRange"""

    def __init__(self, ranges: Optional[Mapping[str, Mapping[Any, Any]]] = None):
        self._ranges: Dict[str, Dict[Any, TimeRange]] = {}
        for date_str, day_ranges in (ranges or {}).items():
            for staff_id, time_range in (day_ranges or {}).items():
                if time_range is None:
                    continue
                if not isinstance(time_range, TimeRange):
                    time_range = TimeRange.from_dict(time_range)
                self._ranges.setdefault(date_str, {})[_staff_key(staff_id)] = time_range

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Mapping[Any, Any]]]) -> 'TimeRangeSchedule':
        if isinstance(data, TimeRangeSchedule):
            return data
        return cls(data)

    def get(self, date_str: str, staff_id: Any) -> Optional[TimeRange]:
        return self._ranges.get(date_str, {}).get(staff_id)

    def set(self, date_str: str, staff_id: Any, time_range: TimeRange):
        self._ranges.setdefault(date_str, {})[staff_id] = time_range

    def dates(self) -> List[str]:
        return sorted(self._ranges)

    def to_dict(self) -> Dict[str, Dict[Any, Dict[str, Any]]]:
        return {
            date_str: {staff_id: tr.to_dict() for staff_id, tr in self._ranges[date_str].items()}
            for date_str in self.dates()
        }

    def __len__(self) -> int:
        return len(self._ranges)
