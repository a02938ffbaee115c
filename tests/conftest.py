"""
Shared fixtures: a fixed clock and a small roster with one week of records.

2024-06-15 is a Saturday; the sample week runs Monday 06-10 to Friday 06-14.
"""
from datetime import date, datetime

import pytest

from src.core.attendance_calendar import calculate_work_hours, span_range
from src.core.attendance_types import AttendanceRecord, AttendanceStatus, Employee

NOW = datetime(2024, 6, 15, 10, 0)


def make_record(employee, day, status, check_in=None, check_out=None, **kwargs):
    """Build a record; check_in/check_out are "HH:MM" strings on the given day."""
    day_start = datetime(day.year, day.month, day.day)

    def at(hhmm):
        if hhmm is None:
            return None
        hour, minute = (int(p) for p in hhmm.split(":"))
        return day_start.replace(hour=hour, minute=minute)

    check_in_time, check_out_time = at(check_in), at(check_out)
    work_hours = kwargs.pop("work_hours", None)
    if work_hours is None and check_in_time and check_out_time:
        work_hours = calculate_work_hours(check_in_time, check_out_time)

    return AttendanceRecord(
        id=f"record_{employee.id}_{day_start:%Y%m%d}",
        employee_id=employee.id,
        employee_name=employee.name,
        date=day_start,
        status=status,
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        work_hours=work_hours,
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def employees():
    return [
        Employee(id="emp_1", name="张伟", employee_no="E0001", department="技术部"),
        Employee(id="emp_2", name="李娜", employee_no="E0002", department="市场部"),
        Employee(id="emp_3", name="王芳", employee_no="E0003", department="技术部"),
    ]


@pytest.fixture
def records(employees):
    zhang, li, _ = employees
    return [
        make_record(zhang, date(2024, 6, 10), AttendanceStatus.NORMAL, "09:00", "18:00"),
        make_record(zhang, date(2024, 6, 11), AttendanceStatus.LATE, "09:30", "18:00"),
        make_record(li, date(2024, 6, 10), AttendanceStatus.ABSENT),
        make_record(li, date(2024, 6, 11), AttendanceStatus.LEAVE),
    ]


@pytest.fixture
def work_week():
    return span_range(date(2024, 6, 10), date(2024, 6, 14))
