"""
Sheet Generator

Builds attendance sheets: picks the template, filters employees and records
to the requested scope, aggregates statistics and renders through the
template engine.

Statistics rules:
- total_work_days: Monday-Friday dates in the range
- actual_work_days: NORMAL + LATE + EARLY_LEAVE + OVERTIME records
- attendance_rate: actual / total * 100, 2 decimals rounded half up (0 when total is 0)
- average_daily_hours: total hours / actual days, 2 decimals (0 when no days)
"""
import time
import uuid
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from src.core.attendance_calendar import (
    DateRange,
    count_work_days,
    day_range,
    format_date,
    format_time,
    month_range,
    round_half_up,
    span_range,
)
from src.core.attendance_types import (
    ATTENDED_STATUSES,
    AttendanceRecord,
    AttendanceSheet,
    AttendanceStatistics,
    AttendanceStatus,
    Employee,
    TemplateType,
    get_status_text,
)
from src.tools.template_engine import (
    AttendanceTemplate,
    RenderResult,
    TemplateContext,
    TemplateEngine,
    get_template_engine,
)

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "考勤表"


@dataclass
class GenerateOptions:
    template_type: Optional[TemplateType] = None
    custom_template_id: Optional[str] = None
    title: Optional[str] = None
    include_statistics: bool = True
    department: Optional[str] = None
    employee_ids: List[str] = field(default_factory=list)


@dataclass
class GenerateResult:
    render_result: RenderResult
    sheet: AttendanceSheet
    template: AttendanceTemplate


def calculate_statistics(records: List[AttendanceRecord], date_range: DateRange) -> AttendanceStatistics:
    """Aggregate records over a range. Pure: same input, same numbers."""
    total_work_days = count_work_days(date_range)

    actual = late = early_leave = absent = leave = 0
    total_hours = 0.0
    overtime_hours = 0.0

    for record in records:
        if record.status in ATTENDED_STATUSES:
            actual += 1
        if record.status == AttendanceStatus.LATE:
            late += 1
        elif record.status == AttendanceStatus.EARLY_LEAVE:
            early_leave += 1
        elif record.status == AttendanceStatus.ABSENT:
            absent += 1
        elif record.status == AttendanceStatus.LEAVE:
            leave += 1

        total_hours += record.work_hours or 0
        overtime_hours += record.overtime_hours or 0

    attendance_rate = actual / total_work_days * 100 if total_work_days > 0 else 0
    average_daily_hours = total_hours / actual if actual > 0 else 0

    return AttendanceStatistics(
        total_work_days=total_work_days,
        actual_work_days=actual,
        attendance_rate=round_half_up(attendance_rate),
        late_count=late,
        early_leave_count=early_leave,
        absent_count=absent,
        leave_days=leave,
        overtime_hours=round_half_up(overtime_hours),
        total_work_hours=round_half_up(total_hours),
        average_daily_hours=round_half_up(average_daily_hours),
    )


def statistics_to_context(stats: AttendanceStatistics) -> Dict[str, float]:
    return {
        "totalWorkDays": stats.total_work_days,
        "actualWorkDays": stats.actual_work_days,
        "attendanceRate": stats.attendance_rate,
        "lateCount": stats.late_count,
        "earlyLeaveCount": stats.early_leave_count,
        "absentCount": stats.absent_count,
        "leaveDays": stats.leave_days,
        "overtimeHours": stats.overtime_hours,
        "totalWorkHours": stats.total_work_hours,
    }


def record_to_context(record: AttendanceRecord) -> Dict[str, Any]:
    """Template-facing view of a record: HH:MM times and Chinese status text."""
    return {
        "employeeId": record.employee_id,
        "date": record.date,
        "checkInTime": format_time(record.check_in_time) if record.check_in_time else None,
        "checkOutTime": format_time(record.check_out_time) if record.check_out_time else None,
        "workHours": record.work_hours,
        "overtimeHours": record.overtime_hours,
        "status": get_status_text(record.status),
        "notes": record.notes,
    }


def employee_to_context(
    employee: Employee,
    records: List[AttendanceRecord],
    date_range: DateRange,
) -> Dict[str, Any]:
    """Employee attributes plus per-employee totals and weekday statuses (day1=Monday)."""
    stats = calculate_statistics(records, date_range)
    entry = {
        "id": employee.id,
        "name": employee.name,
        "employeeNo": employee.employee_no,
        "department": employee.department,
        "shouldAttend": stats.total_work_days,
        "actualAttend": stats.actual_work_days,
        "attendanceDays": stats.actual_work_days,
        "attendanceRate": stats.attendance_rate,
        "lateCount": stats.late_count,
        "earlyLeaveCount": stats.early_leave_count,
        "absentCount": stats.absent_count,
        "leaveDays": stats.leave_days,
        "overtimeHours": stats.overtime_hours,
        "totalWorkHours": stats.total_work_hours,
    }
    for record in sorted(records, key=lambda r: r.date):
        day_key = f"day{record.date.weekday() + 1}"
        entry.setdefault(day_key, get_status_text(record.status))
    return entry


class SheetGenerator:
    """Generates attendance sheets from employees and records."""

    def __init__(self, engine: Optional[TemplateEngine] = None):
        self.engine = engine or get_template_engine()

    def generate_daily(
        self,
        day: Union[date, datetime],
        employees: List[Employee],
        records: List[AttendanceRecord],
        options: Optional[GenerateOptions] = None,
    ) -> GenerateResult:
        options = options or GenerateOptions()
        return self.generate(day_range(day), employees, records, replace(
            options,
            template_type=options.template_type or TemplateType.DAILY_SIMPLE,
            title=options.title or f"{format_date(day)} 考勤日报",
        ))

    def generate_weekly(
        self,
        week_start: Union[date, datetime],
        employees: List[Employee],
        records: List[AttendanceRecord],
        options: Optional[GenerateOptions] = None,
    ) -> GenerateResult:
        options = options or GenerateOptions()
        date_range = span_range(week_start, week_start + timedelta(days=6))
        return self.generate(date_range, employees, records, replace(
            options,
            template_type=options.template_type or TemplateType.WEEKLY_SUMMARY,
            title=options.title or f"{format_date(date_range.start)} - {format_date(date_range.end)} 考勤周报",
        ))

    def generate_monthly(
        self,
        year: int,
        month: int,
        employees: List[Employee],
        records: List[AttendanceRecord],
        options: Optional[GenerateOptions] = None,
    ) -> GenerateResult:
        options = options or GenerateOptions()
        return self.generate(month_range(year, month), employees, records, replace(
            options,
            template_type=options.template_type or TemplateType.MONTHLY_SUMMARY,
            title=options.title or f"{year}年{month}月 考勤月报",
        ))

    def generate(
        self,
        date_range: DateRange,
        employees: List[Employee],
        records: List[AttendanceRecord],
        options: Optional[GenerateOptions] = None,
    ) -> GenerateResult:
        """
        Build and render a sheet.

        Raises:
            TemplateNotFoundError: options name a template type with no template
        """
        options = options or GenerateOptions()
        template = self.get_template(options)

        scoped_employees = self.filter_employees(employees, options)
        scoped_records = self.filter_records(records, date_range, scoped_employees)

        statistics = None
        if options.include_statistics:
            statistics = calculate_statistics(scoped_records, date_range)

        sheet = AttendanceSheet(
            id=f"sheet_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            name=options.title or DEFAULT_SHEET_NAME,
            date_range=date_range,
            employees=scoped_employees,
            records=scoped_records,
            statistics=statistics,
        )

        records_by_employee: Dict[str, List[AttendanceRecord]] = {}
        for record in scoped_records:
            records_by_employee.setdefault(record.employee_id, []).append(record)

        context = TemplateContext(
            title=options.title,
            date_range=date_range,
            department=options.department,
            employees=[
                employee_to_context(e, records_by_employee.get(e.id, []), date_range)
                for e in scoped_employees
            ],
            records=[record_to_context(r) for r in scoped_records],
            statistics=statistics_to_context(statistics) if statistics else None,
        )

        render_result = self.engine.render(template, context)
        logger.info(
            f"Generated '{sheet.name}' with template {template.id}: "
            f"{len(scoped_employees)} employees, {len(scoped_records)} records"
        )
        return GenerateResult(render_result=render_result, sheet=sheet, template=template)

    def get_template(self, options: GenerateOptions) -> AttendanceTemplate:
        """Custom template by id when it exists, else the default for the type."""
        if options.custom_template_id:
            custom = self.engine.registry.get_custom_template(options.custom_template_id)
            if custom is not None:
                return custom
            logger.warning(f"Custom template '{options.custom_template_id}' not found, using type default")
        return self.engine.registry.get_template(options.template_type or TemplateType.DAILY_SIMPLE)

    def filter_employees(self, employees: List[Employee], options: GenerateOptions) -> List[Employee]:
        filtered = list(employees)
        if options.department:
            filtered = [e for e in filtered if e.department == options.department]
        if options.employee_ids:
            ids = set(options.employee_ids)
            filtered = [e for e in filtered if e.id in ids]
        return filtered

    def filter_records(
        self,
        records: List[AttendanceRecord],
        date_range: DateRange,
        employees: List[Employee],
    ) -> List[AttendanceRecord]:
        """Records of the given employees whose date falls inside the range (inclusive)."""
        employee_ids = {e.id for e in employees}
        return [
            r for r in records
            if r.employee_id in employee_ids and date_range.contains(r.date)
        ]


# Singleton instance
_sheet_generator: Optional[SheetGenerator] = None


def get_sheet_generator() -> SheetGenerator:
    global _sheet_generator
    if _sheet_generator is None:
        _sheet_generator = SheetGenerator()
    return _sheet_generator
