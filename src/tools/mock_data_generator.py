"""
Mock Attendance Data Generator

Generates fake employees and daily attendance records so the pipeline can be
demonstrated and tested without real personnel data.

Generation is seeded: the same seed, employee count and date range always
produce the same data.

Usage:
    python main.py generate "生成本月考勤表" --excel
    (uses mock data when no --data file is given)
"""
import random
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from src.core.attendance_calendar import DateRange, calculate_work_hours, dates_in_range, is_work_day
from src.core.attendance_types import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    LeaveType,
    get_status_text,
)

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42

# Names avoid Chinese numerals and date words so they survive input normalization
MOCK_NAMES = [
    "张伟", "李娜", "王芳", "刘洋", "陈静",
    "杨帆", "赵磊", "黄敏", "孙浩", "吴婷",
    "郑凯", "何丽", "马超", "林峰", "郭瑶",
]

MOCK_DEPARTMENTS = ["技术部", "市场部", "销售部", "人事部", "财务部"]

MOCK_POSITIONS = ["工程师", "专员", "经理", "主管", "助理"]

# Relative weights per work day
STATUS_WEIGHTS: List[Tuple[AttendanceStatus, int]] = [
    (AttendanceStatus.NORMAL, 75),
    (AttendanceStatus.LATE, 8),
    (AttendanceStatus.EARLY_LEAVE, 4),
    (AttendanceStatus.ABSENT, 3),
    (AttendanceStatus.LEAVE, 4),
    (AttendanceStatus.OVERTIME, 6),
]

LEAVE_TYPES = [LeaveType.PERSONAL, LeaveType.SICK, LeaveType.ANNUAL]

WORK_START = (9, 0)
WORK_END = (18, 0)


def _at(day: datetime, hour: int, minute: int) -> datetime:
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def generate_mock_employees(count: int = 10, seed: int = DEFAULT_SEED) -> List[Employee]:
    """
    Generate employees with unique names, spread round-robin over departments.

    Args:
        count: Number of employees (capped at the number of mock names)
        seed: Random seed
    """
    rng = random.Random(seed)
    names = rng.sample(MOCK_NAMES, min(count, len(MOCK_NAMES)))
    employees = []
    for i, name in enumerate(names, start=1):
        employees.append(Employee(
            id=f"emp_{i}",
            name=name,
            employee_no=f"E{i:04d}",
            department=MOCK_DEPARTMENTS[(i - 1) % len(MOCK_DEPARTMENTS)],
            position=rng.choice(MOCK_POSITIONS),
        ))
    return employees


def generate_mock_record(
    employee: Employee,
    day: datetime,
    rng: random.Random,
    record_id: str,
) -> AttendanceRecord:
    """One work-day record with times consistent with its status."""
    statuses, weights = zip(*STATUS_WEIGHTS)
    status = rng.choices(statuses, weights=weights, k=1)[0]

    check_in = _at(day, 8, rng.randint(30, 59))
    check_out = _at(day, *WORK_END) + timedelta(minutes=rng.randint(0, 30))
    late_minutes = early_leave_minutes = None
    overtime_hours = None
    leave_type = None

    if status == AttendanceStatus.LATE:
        late_minutes = rng.randint(5, 45)
        check_in = _at(day, *WORK_START) + timedelta(minutes=late_minutes)
    elif status == AttendanceStatus.EARLY_LEAVE:
        early_leave_minutes = rng.randint(10, 90)
        check_out = _at(day, *WORK_END) - timedelta(minutes=early_leave_minutes)
    elif status == AttendanceStatus.OVERTIME:
        check_out = _at(day, 19, 0) + timedelta(minutes=rng.randint(30, 150))
        overtime_hours = round((check_out - _at(day, *WORK_END)).total_seconds() / 3600, 2)
    elif status in (AttendanceStatus.ABSENT, AttendanceStatus.LEAVE):
        check_in = check_out = None
        if status == AttendanceStatus.LEAVE:
            leave_type = rng.choice(LEAVE_TYPES)

    work_hours = calculate_work_hours(check_in, check_out) if check_in and check_out else None

    return AttendanceRecord(
        id=record_id,
        employee_id=employee.id,
        employee_name=employee.name,
        date=day,
        status=status,
        check_in_time=check_in,
        check_out_time=check_out,
        leave_type=leave_type,
        work_hours=work_hours,
        overtime_hours=overtime_hours,
        late_minutes=late_minutes,
        early_leave_minutes=early_leave_minutes,
    )


def generate_mock_records(
    employees: List[Employee],
    date_range: DateRange,
    seed: int = DEFAULT_SEED,
) -> List[AttendanceRecord]:
    """One record per employee per work day (Monday-Friday) in the range."""
    rng = random.Random(seed)
    records = []
    for day in dates_in_range(date_range):
        if not is_work_day(day):
            continue
        day_start = datetime(day.year, day.month, day.day)
        for employee in employees:
            record_id = f"record_{employee.id}_{day.strftime('%Y%m%d')}"
            records.append(generate_mock_record(employee, day_start, rng, record_id))
    return records


def generate_mock_attendance_data(
    date_range: DateRange,
    employee_count: int = 10,
    seed: int = DEFAULT_SEED,
) -> Tuple[List[Employee], List[AttendanceRecord]]:
    """Employees plus their records for the range."""
    employees = generate_mock_employees(employee_count, seed)
    records = generate_mock_records(employees, date_range, seed)
    logger.info(f"Generated {len(records)} mock records for {len(employees)} employees")
    return employees, records


def get_mock_column_names() -> List[str]:
    """Header row of the tabular export, in column order."""
    return ["姓名", "工号", "部门", "日期", "签到时间", "签退时间", "状态", "备注"]


def records_to_rows(
    employees: List[Employee],
    records: List[AttendanceRecord],
) -> List[List[Any]]:
    """Export records as importer-compatible rows, header first."""
    by_id: Dict[str, Employee] = {e.id: e for e in employees}
    rows: List[List[Any]] = [get_mock_column_names()]
    for record in records:
        employee: Optional[Employee] = by_id.get(record.employee_id)
        rows.append([
            record.employee_name,
            employee.employee_no if employee else "",
            employee.department if employee else "",
            record.date.strftime("%Y-%m-%d"),
            record.check_in_time.strftime("%H:%M") if record.check_in_time else "",
            record.check_out_time.strftime("%H:%M") if record.check_out_time else "",
            get_status_text(record.status),
            record.notes or "",
        ])
    return rows
