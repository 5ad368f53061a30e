"""
Reporting Module for the Nursery Roster

Builds pandas tables for a month schedule (per-staff totals, daily coverage,
hourly headcount) and the text summaries shown after generation.
"""

import pandas as pd
from datetime import date
import calendar
from typing import Dict, List, Optional, Any, Tuple
import logging

from .calendar_utils import (
    days_in_month, format_date, is_closed_day, is_open_saturday, parse_time_to_minutes
)
from .data_manager import Holiday, Settings, ShiftCategory, Staff
from .schedule import VALID_CODES, Schedule, TimeRangeSchedule, is_work_band
from .scheduler_logic import ScheduleResult
from .shift_counts import count_effective_shift, count_working_staff, staff_code_counts

logger = logging.getLogger(__name__)

# Hourly chart window, 07:00 to 19:00
START_HOUR = 7
END_HOUR = 19


class ReportGenerator:
    """Main class for generating schedule reports"""

    def __init__(self, staff: List[Staff], holidays: List[Holiday], settings: Optional[Settings] = None):
        self.staff = list(staff)
        self.holidays = list(holidays or [])
        self.settings = settings or Settings()

    def _work_interval(self, member: Staff, schedule: Schedule, time_ranges: TimeRangeSchedule,
                       date_str: str) -> Optional[Tuple[int, int]]:
        """On-site interval in minutes, or None when the staff member is not working"""
        if member.shift_type in (ShiftCategory.COOKING, ShiftCategory.NO_SHIFT):
            return None
        if member.is_part_time:
            time_range = time_ranges.get(date_str, member.id)
            if time_range is not None:
                return parse_time_to_minutes(time_range.start), parse_time_to_minutes(time_range.end)
        pattern = self.settings.pattern(schedule.get(date_str, member.id))
        if pattern is None:
            return None
        return parse_time_to_minutes(pattern.start), parse_time_to_minutes(pattern.end)

    def _is_low_staff(self, year: int, month: int, day: int, working: int) -> bool:
        if is_closed_day(year, month, day, self.holidays):
            return False
        if is_open_saturday(year, month, day, self.holidays):
            return working < self.settings.saturday_staff_count
        return working < self.settings.min_total_staff

    def _band_shortages(self, schedule: Schedule, time_ranges: TimeRangeSchedule,
                        year: int, month: int, day: int) -> List[Dict[str, Any]]:
        if is_closed_day(year, month, day, self.holidays) or is_open_saturday(year, month, day, self.holidays):
            return []
        date_str = format_date(year, month, day)
        shortages = []
        for pattern in self.settings.shift_patterns:
            current = count_effective_shift(self.staff, schedule, time_ranges, date_str,
                                            pattern.code, self.settings, qualified_only=True)
            if current < pattern.min_count:
                shortages.append({
                    'date': date_str,
                    'pattern': pattern.code,
                    'current': current,
                    'required': pattern.min_count
                })
        return shortages

    def create_staff_summary_dataframe(self, schedule, year: int, month: int) -> pd.DataFrame:
        """One row per staff member with attendance and a column per shift code"""
        schedule = Schedule.from_dict(schedule)
        data = []
        for member in self.staff:
            counts = staff_code_counts(schedule, member.id, year, month)
            row = {
                'Staff_ID': member.id,
                'Name': member.name,
                'Position': member.position.value,
                'Shift_Type': member.shift_type.value,
                'Attendance': sum(n for code, n in counts.items() if is_work_band(code)),
            }
            for code in VALID_CODES:
                row[code] = counts.get(code, 0)
            data.append(row)

        columns = ['Staff_ID', 'Name', 'Position', 'Shift_Type', 'Attendance'] + list(VALID_CODES)
        return pd.DataFrame(data, columns=columns)

    def create_daily_coverage_dataframe(self, schedule, time_ranges, year: int, month: int) -> pd.DataFrame:
        """One row per day with working headcount, qualified band counts and shortage flags"""
        schedule = Schedule.from_dict(schedule)
        time_ranges = TimeRangeSchedule.from_dict(time_ranges)
        bands = [p.code for p in self.settings.shift_patterns]
        data = []

        for day in range(1, days_in_month(year, month) + 1):
            date_obj = date(year, month, day)
            date_str = format_date(year, month, day)
            working = count_working_staff(self.staff, schedule, time_ranges, date_str)
            row = {
                'Date': date_str,
                'Day': date_obj.strftime("%A"),
                'Closed': is_closed_day(year, month, day, self.holidays),
                'Working': working,
            }
            for band in bands:
                row[band] = count_effective_shift(self.staff, schedule, time_ranges, date_str,
                                                  band, self.settings, qualified_only=True)
            row['Low_Staff'] = self._is_low_staff(year, month, day, working)
            row['Shortages'] = ", ".join(
                s['pattern'] for s in self._band_shortages(schedule, time_ranges, year, month, day)
            )
            data.append(row)

        return pd.DataFrame(data, columns=['Date', 'Day', 'Closed', 'Working'] + bands + ['Low_Staff', 'Shortages'])

    def create_hourly_dataframe(self, schedule, time_ranges, date_str: str) -> pd.DataFrame:
        """Qualified and total on-site headcount for each hour of the chart window"""
        schedule = Schedule.from_dict(schedule)
        time_ranges = TimeRangeSchedule.from_dict(time_ranges)
        intervals = []
        for member in self.staff:
            interval = self._work_interval(member, schedule, time_ranges, date_str)
            if interval:
                intervals.append((member.has_qualification, interval))

        data = []
        for hour in range(START_HOUR, END_HOUR):
            slot_start, slot_end = hour * 60, (hour + 1) * 60
            present = [qualified for qualified, (start, end) in intervals if start < slot_end and end > slot_start]
            data.append({
                'Hour': f"{hour:02d}:00",
                'Qualified': sum(1 for qualified in present if qualified),
                'Total': len(present)
            })
        return pd.DataFrame(data, columns=['Hour', 'Qualified', 'Total'])

    def generate_shortfall_report(self, schedule, time_ranges, year: int, month: int) -> Dict[str, Any]:
        """Band shortages, low-headcount days and blank cells for the month"""
        schedule = Schedule.from_dict(schedule)
        time_ranges = TimeRangeSchedule.from_dict(time_ranges)

        report = {
            'band_shortages': [],
            'low_staff_days': [],
            'blank_cells': [],
            'summary': {}
        }

        for day in range(1, days_in_month(year, month) + 1):
            date_str = format_date(year, month, day)
            report['band_shortages'].extend(self._band_shortages(schedule, time_ranges, year, month, day))

            working = count_working_staff(self.staff, schedule, time_ranges, date_str)
            if self._is_low_staff(year, month, day, working):
                report['low_staff_days'].append({'date': date_str, 'working': working})

            for member in self.staff:
                if not member.is_part_time and not schedule.get(date_str, member.id):
                    report['blank_cells'].append({'date': date_str, 'staff': member.name})

        report['summary'] = {
            'total_band_shortages': len(report['band_shortages']),
            'days_with_shortages': len({s['date'] for s in report['band_shortages']}),
            'low_staff_days': len(report['low_staff_days']),
            'blank_cells': len(report['blank_cells']),
        }
        return report

    def create_dashboard_summary(self, schedule, time_ranges, year: int, month: int,
                                 schedule_result: Optional[ScheduleResult] = None) -> str:
        """Create text summary for dashboard display"""
        report = self.generate_shortfall_report(schedule, time_ranges, year, month)
        staff_df = self.create_staff_summary_dataframe(schedule, year, month)
        regulars = staff_df[staff_df['Shift_Type'] == ShiftCategory.REGULAR.value]

        result_info = ""
        if schedule_result:
            status = "SUCCESS" if schedule_result.success else "SHORTAGES"
            result_info = f"""
Generation Results:
• Status: {status}
• Rule Violations: {len(schedule_result.violations)}
• Chief Assignments: {schedule_result.statistics.get('chief_assignments', 0)}
• Message: {schedule_result.message}
"""

        summary = f"""
SCHEDULE SUMMARY - {calendar.month_name[month]} {year}
{result_info}
Roster:
• Total Staff: {len(self.staff)}
• Regular Staff: {len(regulars)}
• Total Attendance: {int(staff_df['Attendance'].sum()) if not staff_df.empty else 0}

Extreme Band Spread (regular staff):
• A: {self._spread(regulars, 'A')}
• J: {self._spread(regulars, 'J')}

Issues:
• Band Shortages: {report['summary']['total_band_shortages']} on {report['summary']['days_with_shortages']} day(s)
• Low Staff Days: {report['summary']['low_staff_days']}
• Blank Cells: {report['summary']['blank_cells']}
        """

        if report['band_shortages']:
            summary += "\n\nSHORTAGES:"
            for shortage in report['band_shortages']:
                summary += f"\n• {shortage['date']}: {shortage['pattern']} {shortage['current']}/{shortage['required']}"

        return summary.strip()

    @staticmethod
    def _spread(df: pd.DataFrame, code: str) -> str:
        if df.empty:
            return "N/A"
        return f"min {int(df[code].min())}, max {int(df[code].max())}, mean {df[code].mean():.1f}"
