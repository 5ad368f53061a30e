"""
Data Manager for the Nursery Roster

Holds the roster data model (staff, holidays, shift patterns, settings) and the
JSON snapshot store that feeds the generator and persists its output.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .schedule import Schedule, TimeRange, TimeRangeSchedule, normalize_code

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class Position(Enum):
    DIRECTOR = "director"
    CHIEF = "chief"
    CAREGIVER = "caregiver"
    PART_TIME = "part_time"
    COOK = "cook"


class ShiftCategory(Enum):
    REGULAR = "regular"
    PART_TIME = "part_time"
    BACKUP = "backup"
    COOKING = "cooking"
    NO_SHIFT = "no_shift"


class StaffRole(Enum):
    INFANT = "infant"
    TODDLER = "toddler"
    FREE = "free"
    COOKING = "cooking"


def _enum_value(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass
class ShiftPattern:
    """Work band definition with its weekday staffing floor"""
    code: str
    name: str
    start: str
    end: str
    min_count: int

    @property
    def time_range(self) -> str:
        return f"{self.start}-{self.end}"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.code, "name": self.name, "timeRange": self.time_range, "minCount": self.min_count}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShiftPattern':
        start, _, end = data.get("timeRange", "-").partition("-")
        return cls(
            code=data["id"],
            name=data.get("name", data["id"]),
            start=start.strip(),
            end=end.strip(),
            min_count=int(data.get("minCount", 0))
        )


DEFAULT_SHIFT_PATTERNS = [
    ShiftPattern("A", "Early", "07:15", "16:15", 2),
    ShiftPattern("B", "Standard", "08:00", "17:00", 1),
    ShiftPattern("C", "Standard+", "08:30", "17:30", 1),
    ShiftPattern("D", "Late", "09:00", "18:00", 1),
    ShiftPattern("E", "Late+", "09:15", "18:15", 1),
    ShiftPattern("J", "Closing", "09:45", "18:45", 2),
]


def default_shift_patterns() -> List[ShiftPattern]:
    return [ShiftPattern(p.code, p.name, p.start, p.end, p.min_count) for p in DEFAULT_SHIFT_PATTERNS]


@dataclass
class Settings:
    """Staffing thresholds and the shift pattern table"""
    saturday_staff_count: int = 3
    saturday_shift_pattern: str = "B"
    min_total_staff: int = 8  # weekday headcount floor, cooks and director excluded
    chief_backup_limit: int = 8  # chief fallback assignments per month
    shift_patterns: List[ShiftPattern] = field(default_factory=default_shift_patterns)

    def pattern(self, code: str) -> Optional[ShiftPattern]:
        for pattern in self.shift_patterns:
            if pattern.code == code:
                return pattern
        return None

    def min_count(self, code: str) -> int:
        pattern = self.pattern(code)
        return pattern.min_count if pattern else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "saturdayStaffCount": self.saturday_staff_count,
            "saturdayShiftPattern": self.saturday_shift_pattern,
            "minTotalStaff": self.min_total_staff,
            "chiefBackupLimit": self.chief_backup_limit,
            "shiftPatterns": [p.to_dict() for p in self.shift_patterns]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        patterns = data.get("shiftPatterns")
        return cls(
            saturday_staff_count=int(data.get("saturdayStaffCount", 3)),
            saturday_shift_pattern=data.get("saturdayShiftPattern", "B"),
            min_total_staff=int(data.get("minTotalStaff", 8)),
            chief_backup_limit=int(data.get("chiefBackupLimit", 8)),
            shift_patterns=[ShiftPattern.from_dict(p) for p in patterns] if patterns else default_shift_patterns()
        )


@dataclass
class Holiday:
    """Facility closure on a specific date"""
    date: str  # YYYY-MM-DD
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Holiday':
        return cls(date=data["date"], name=data.get("name", ""))


@dataclass
class Staff:
    """Roster entry"""
    id: int
    name: str
    position: Position = Position.CAREGIVER
    shift_type: ShiftCategory = ShiftCategory.REGULAR
    has_qualification: bool = True
    role: Optional[StaffRole] = None
    incompatible_with: List[int] = field(default_factory=list)
    early_shift_limit: Optional[int] = None  # monthly cap on A+B
    saturday_only: bool = False
    preferred_shifts: List[str] = field(default_factory=list)
    weekly_days: int = 5
    default_time_range: Optional[TimeRange] = None

    @property
    def is_part_time(self) -> bool:
        return self.shift_type == ShiftCategory.PART_TIME

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "position": self.position.value,
            "shiftType": self.shift_type.value,
            "hasQualification": self.has_qualification,
            "role": self.role.value if self.role else None,
            "incompatibleWith": list(self.incompatible_with),
            "earlyShiftLimit": self.early_shift_limit,
            "saturdayOnly": self.saturday_only,
            "preferredShifts": list(self.preferred_shifts),
            "weeklyDays": self.weekly_days
        }
        if self.default_time_range:
            data["defaultTimeRange"] = self.default_time_range.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Staff':
        default_range = data.get("defaultTimeRange")
        role = data.get("role")
        return cls(
            id=data["id"],
            name=data.get("name", f"Staff {data['id']}"),
            position=_enum_value(Position, data.get("position"), Position.CAREGIVER),
            shift_type=_enum_value(ShiftCategory, data.get("shiftType"), ShiftCategory.REGULAR),
            has_qualification=data.get("hasQualification", True),
            role=_enum_value(StaffRole, role, None) if role else None,
            incompatible_with=list(data.get("incompatibleWith") or []),
            early_shift_limit=data.get("earlyShiftLimit"),
            saturday_only=data.get("saturdayOnly", False),
            preferred_shifts=list(data.get("preferredShifts") or []),
            weekly_days=data.get("weeklyDays", 5),
            default_time_range=TimeRange.from_dict(default_range) if default_range else None
        )


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


class DataManager:
    """JSON snapshot store for roster, holidays, settings and schedules"""

    def __init__(self, data_file: str = "data/roster_data.json"):
        if data_file == "data/roster_data.json":
            # Use path relative to the package directory
            data_file = Path(__file__).parent.parent / "data" / "roster_data.json"
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    return self._validate_and_migrate_data(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)
        if backup_file.exists():
            logger.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)
        logger.info("No data file found, creating default data")
        return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            logger.info(f"Attempting recovery from backup file {backup_file}")
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            backup_file.replace(self.data_file)
            logger.info("Successfully recovered data from backup")
            return self._validate_and_migrate_data(data)
        except (json.JSONDecodeError, IOError) as backup_e:
            logger.error(f"Backup file also corrupted: {backup_e}")
            logger.info("Creating default data due to corrupted files")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        if not isinstance(data, dict):
            raise DataValidationError("Data file root must be a JSON object")
        default_data = self._create_default_data()

        for key in default_data:
            if key not in data:
                data[key] = default_data[key]

        # Fill settings keys added after the file was written
        settings = data["settings"]
        for key, value in default_data["settings"].items():
            settings.setdefault(key, value)

        for staff_data in data.get("staff", []):
            staff_data.setdefault("incompatibleWith", [])
            staff_data.setdefault("shiftType", ShiftCategory.REGULAR.value)

        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure"""
        settings = Settings().to_dict()
        settings.update({
            "appVersion": APP_VERSION,
            "lastUsedMonth": datetime.now().strftime("%Y-%m"),
        })
        return {
            "settings": settings,
            "staff": [],
            "holidays": [],
            "schedules": {},  # {month_key: {date: {staff_id: code}}}
            "timeRangeSchedules": {}  # {month_key: {date: {staff_id: {start, end, countAsShifts}}}}
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            for key in ["settings", "staff", "holidays", "schedules", "timeRangeSchedules"]:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data["settings"].get("appVersion") != self.data["settings"].get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            if self.data_file.exists():
                self.data_file.replace(backup_file)

            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)

            temp_file.replace(self.data_file)
            self._validate_saved_data()
            return True

        except DataValidationError as e:
            logger.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logger.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError, TypeError) as e:
            logger.error(f"Error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data: {e}")

        finally:
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Staff Management
    def get_staff(self) -> List[Staff]:
        """Roster in stored order"""
        return [Staff.from_dict(s) for s in self.data.get("staff", [])]

    def get_staff_by_id(self, staff_id: int) -> Optional[Staff]:
        for staff_data in self.data.get("staff", []):
            if staff_data["id"] == staff_id:
                return Staff.from_dict(staff_data)
        return None

    def add_staff(self, name: str, position: Position = Position.CAREGIVER,
                  shift_type: ShiftCategory = ShiftCategory.REGULAR, **attributes) -> Staff:
        """Add a roster entry with the next free id"""
        existing_ids = [s["id"] for s in self.data.get("staff", [])]
        staff = Staff(id=max(existing_ids, default=0) + 1, name=name,
                      position=position, shift_type=shift_type, **attributes)
        self.data.setdefault("staff", []).append(staff.to_dict())
        return staff

    def update_staff(self, staff: Staff) -> bool:
        for index, staff_data in enumerate(self.data.get("staff", [])):
            if staff_data["id"] == staff.id:
                self.data["staff"][index] = staff.to_dict()
                return True
        return False

    def delete_staff(self, staff_id: int) -> bool:
        """Remove a roster entry and any incompatibility references to it"""
        roster = self.data.get("staff", [])
        remaining = [s for s in roster if s["id"] != staff_id]
        if len(remaining) == len(roster):
            return False
        for staff_data in remaining:
            staff_data["incompatibleWith"] = [i for i in staff_data.get("incompatibleWith", []) if i != staff_id]
        self.data["staff"] = remaining
        return True

    # Holiday Management
    def get_holidays(self) -> List[Holiday]:
        return [Holiday.from_dict(h) for h in self.data.get("holidays", [])]

    def add_holiday(self, date_str: str, name: str = ""):
        holidays = self.data.setdefault("holidays", [])
        if not any(h["date"] == date_str for h in holidays):
            holidays.append(Holiday(date_str, name).to_dict())
            holidays.sort(key=lambda h: h["date"])

    def remove_holiday(self, date_str: str):
        self.data["holidays"] = [h for h in self.data.get("holidays", []) if h["date"] != date_str]

    # Settings Management
    def get_settings(self) -> Settings:
        return Settings.from_dict(self.data.get("settings", {}))

    def save_settings(self, settings: Settings):
        self.data.setdefault("settings", {}).update(settings.to_dict())

    def get_setting(self, key: str, default=None):
        return self.data.get("settings", {}).get(key, default)

    def set_setting(self, key: str, value):
        self.data.setdefault("settings", {})[key] = value

    # Schedule Management
    def get_schedule(self, year: int, month: int) -> Schedule:
        return Schedule.from_dict(self.data.get("schedules", {}).get(month_key(year, month), {}))

    def save_schedule(self, year: int, month: int, schedule: Schedule):
        """Store a month schedule in date then roster order"""
        staff_order = [s["id"] for s in self.data.get("staff", [])]
        self.data.setdefault("schedules", {})[month_key(year, month)] = schedule.to_dict(staff_order)

    def set_shift_assignment(self, date_str: str, staff_id: int, code: str):
        """Record a single manual cell edit"""
        key = date_str[:7]
        month_data = self.data.setdefault("schedules", {}).setdefault(key, {})
        month_data.setdefault(date_str, {})[staff_id] = normalize_code(code)

    def get_time_range_schedule(self, year: int, month: int) -> TimeRangeSchedule:
        return TimeRangeSchedule.from_dict(self.data.get("timeRangeSchedules", {}).get(month_key(year, month), {}))

    def set_time_range(self, date_str: str, staff_id: int, time_range: Optional[TimeRange]):
        key = date_str[:7]
        month_data = self.data.setdefault("timeRangeSchedules", {}).setdefault(key, {})
        day_data = month_data.setdefault(date_str, {})
        if time_range is None:
            day_data.pop(staff_id, None)
            day_data.pop(str(staff_id), None)
        else:
            day_data[staff_id] = time_range.to_dict()
