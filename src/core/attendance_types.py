"""
Attendance Domain Types

Plain value records shared by the interpretation pipeline, the template
engine, the sheet generator, the importer and the chart generator.

Records are owned by whichever store supplies them; nothing in the core
persists them.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class AttendanceStatus(Enum):
    """Attendance state of one employee on one day."""
    NORMAL = "NORMAL"
    LATE = "LATE"
    EARLY_LEAVE = "EARLY_LEAVE"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    OVERTIME = "OVERTIME"
    OUT = "OUT"
    BUSINESS_TRIP = "BUSINESS_TRIP"
    REST_DAY = "REST_DAY"
    HOLIDAY = "HOLIDAY"


# Statuses that count as a day actually worked
ATTENDED_STATUSES = frozenset({
    AttendanceStatus.NORMAL,
    AttendanceStatus.LATE,
    AttendanceStatus.EARLY_LEAVE,
    AttendanceStatus.OVERTIME,
})

STATUS_TEXT: Dict[AttendanceStatus, str] = {
    AttendanceStatus.NORMAL: "正常",
    AttendanceStatus.LATE: "迟到",
    AttendanceStatus.EARLY_LEAVE: "早退",
    AttendanceStatus.ABSENT: "缺勤",
    AttendanceStatus.LEAVE: "请假",
    AttendanceStatus.OVERTIME: "加班",
    AttendanceStatus.OUT: "外出",
    AttendanceStatus.BUSINESS_TRIP: "出差",
    AttendanceStatus.REST_DAY: "休息",
    AttendanceStatus.HOLIDAY: "节假日",
}


def get_status_text(status: Optional[AttendanceStatus]) -> str:
    """Chinese display label for a status."""
    return STATUS_TEXT.get(status, "未知")


class LeaveType(Enum):
    PERSONAL = "PERSONAL"
    SICK = "SICK"
    ANNUAL = "ANNUAL"
    MARRIAGE = "MARRIAGE"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    BEREAVEMENT = "BEREAVEMENT"
    COMPENSATORY = "COMPENSATORY"
    OTHER = "OTHER"


class TemplateType(Enum):
    """Report layouts available in the template catalogue."""
    DAILY_SIMPLE = "DAILY_SIMPLE"
    DAILY_DETAILED = "DAILY_DETAILED"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"
    MONTHLY_DETAILED = "MONTHLY_DETAILED"
    CUSTOM = "CUSTOM"


class ColumnType(Enum):
    """Semantic type of a report column."""
    INDEX = "INDEX"
    NAME = "NAME"
    EMPLOYEE_NAME = "EMPLOYEE_NAME"
    EMPLOYEE_NO = "EMPLOYEE_NO"
    DEPARTMENT = "DEPARTMENT"
    DATE = "DATE"
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    WORK_HOURS = "WORK_HOURS"
    OVERTIME = "OVERTIME"
    STATUS = "STATUS"
    NOTES = "NOTES"
    ATTENDANCE_RATE = "ATTENDANCE_RATE"
    LATE_COUNT = "LATE_COUNT"
    EARLY_LEAVE_COUNT = "EARLY_LEAVE_COUNT"
    ABSENT_COUNT = "ABSENT_COUNT"
    LEAVE_DAYS = "LEAVE_DAYS"


class ChartType(Enum):
    """Chart kinds that can be requested in a command."""
    PIE_ATTENDANCE = "PIE_ATTENDANCE"
    BAR_ATTENDANCE = "BAR_ATTENDANCE"
    BAR_EMPLOYEE = "BAR_EMPLOYEE"
    LINE_TREND = "LINE_TREND"


class StatisticType(Enum):
    ATTENDANCE_RATE = "ATTENDANCE_RATE"
    LATE_COUNT = "LATE_COUNT"
    EARLY_LEAVE_COUNT = "EARLY_LEAVE_COUNT"
    ABSENT_COUNT = "ABSENT_COUNT"
    LEAVE_DAYS = "LEAVE_DAYS"
    OVERTIME_HOURS = "OVERTIME_HOURS"
    WORK_HOURS = "WORK_HOURS"


class OutputFormat(Enum):
    EXCEL = "excel"
    WORD = "word"
    PDF = "pdf"


@dataclass
class Employee:
    """A person whose attendance is tracked."""
    id: str
    name: str
    employee_no: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    hire_date: Optional[datetime] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "employee_no": self.employee_no,
            "department": self.department,
            "position": self.position,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "phone": self.phone,
            "email": self.email,
        }


@dataclass
class AttendanceRecord:
    """One employee's attendance on one day."""
    id: str
    employee_id: str
    employee_name: str
    date: datetime
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    leave_type: Optional[LeaveType] = None
    work_hours: Optional[float] = None
    overtime_hours: Optional[float] = None
    late_minutes: Optional[int] = None
    early_leave_minutes: Optional[int] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "check_in_time": self.check_in_time.isoformat() if self.check_in_time else None,
            "check_out_time": self.check_out_time.isoformat() if self.check_out_time else None,
            "leave_type": self.leave_type.value if self.leave_type else None,
            "work_hours": self.work_hours,
            "overtime_hours": self.overtime_hours,
            "late_minutes": self.late_minutes,
            "early_leave_minutes": self.early_leave_minutes,
            "notes": self.notes,
        }


@dataclass
class AttendanceStatistics:
    """Aggregate counts over a date range."""
    total_work_days: int = 0
    actual_work_days: int = 0
    attendance_rate: float = 0.0      # Percentage, 2 decimals
    late_count: int = 0
    early_leave_count: int = 0
    absent_count: int = 0
    leave_days: int = 0
    overtime_hours: float = 0.0
    total_work_hours: float = 0.0
    average_daily_hours: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_work_days": self.total_work_days,
            "actual_work_days": self.actual_work_days,
            "attendance_rate": self.attendance_rate,
            "late_count": self.late_count,
            "early_leave_count": self.early_leave_count,
            "absent_count": self.absent_count,
            "leave_days": self.leave_days,
            "overtime_hours": self.overtime_hours,
            "total_work_hours": self.total_work_hours,
            "average_daily_hours": self.average_daily_hours,
        }


@dataclass
class AttendanceSheet:
    """A generated attendance sheet: the filtered data behind a render."""
    id: str
    name: str
    date_range: Any                   # DateRange
    employees: List[Employee] = field(default_factory=list)
    records: List[AttendanceRecord] = field(default_factory=list)
    statistics: Optional[AttendanceStatistics] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "date_range": self.date_range.to_dict(),
            "employees": [e.to_dict() for e in self.employees],
            "records": [r.to_dict() for r in self.records],
            "statistics": self.statistics.to_dict() if self.statistics else None,
            "created_at": self.created_at.isoformat(),
        }
