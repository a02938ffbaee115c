"""
Attendance Chart Descriptors

Pure transforms from statistics, records and employees into declarative
ChartConfig values. Rendering to an image is ChartRenderer's job (charts.py).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from config.chart_styles import ColorPalette, get_chart_style
from src.core.attendance_calendar import DateRange, count_work_days, dates_in_range, round_half_up
from src.core.attendance_types import (
    ATTENDED_STATUSES,
    AttendanceRecord,
    AttendanceStatistics,
    ChartType,
    Employee,
)

logger = logging.getLogger(__name__)

UNASSIGNED_DEPARTMENT = "未分配"
TREND_FILL = "rgba(25, 118, 210, 0.1)"

# (label, lower bound inclusive, upper bound exclusive)
WORK_HOUR_BUCKETS = [
    ("<6小时", 0, 6),
    ("6-8小时", 6, 8),
    ("8-10小时", 8, 10),
    ("10-12小时", 10, 12),
    (">12小时", 12, float("inf")),
]


@dataclass
class ChartDataset:
    label: str
    data: List[float]
    background_color: Union[str, List[str], None] = None
    border_color: Union[str, List[str], None] = None
    border_width: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "data": list(self.data),
            "backgroundColor": self.background_color,
            "borderColor": self.border_color,
            "borderWidth": self.border_width,
        }


@dataclass
class ChartConfig:
    """Declarative chart: type is one of pie, bar, line, doughnut."""
    type: str
    title: str
    labels: List[str]
    datasets: List[ChartDataset]
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def legend_position(self) -> Optional[str]:
        return self.options.get("legend", {}).get("position")

    @property
    def y_max(self) -> Optional[float]:
        return self.options.get("scales", {}).get("y", {}).get("max")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "labels": list(self.labels),
            "datasets": [d.to_dict() for d in self.datasets],
            "options": self.options,
        }


def _options(y_max: Optional[float] = None) -> Dict[str, Any]:
    y_axis: Dict[str, Any] = {"beginAtZero": True}
    if y_max is not None:
        y_axis["max"] = y_max
    return {"responsive": True, "maintainAspectRatio": False, "scales": {"y": y_axis}}


def _palette(colors: Optional[ColorPalette]) -> ColorPalette:
    return colors or get_chart_style().colors


def _attended(record: AttendanceRecord) -> bool:
    return record.status in ATTENDED_STATUSES


def generate_attendance_pie_chart(
    statistics: AttendanceStatistics,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    c = _palette(colors)
    other = statistics.total_work_days - statistics.actual_work_days - statistics.absent_count - statistics.leave_days
    return ChartConfig(
        type="pie",
        title="出勤情况分布",
        labels=["正常出勤", "缺勤", "请假", "其他"],
        datasets=[ChartDataset(
            label="出勤情况",
            data=[statistics.actual_work_days, statistics.absent_count, statistics.leave_days, max(0, other)],
            background_color=[c.normal, c.absent, c.leave, c.secondary],
        )],
        options={
            "responsive": True,
            "maintainAspectRatio": False,
            "legend": {"display": True, "position": "right"},
        },
    )


def generate_status_bar_chart(
    statistics: AttendanceStatistics,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    c = _palette(colors)
    return ChartConfig(
        type="bar",
        title="考勤状态统计",
        labels=["迟到", "早退", "缺勤", "请假"],
        datasets=[ChartDataset(
            label="次数",
            data=[statistics.late_count, statistics.early_leave_count, statistics.absent_count, statistics.leave_days],
            background_color=[c.late, c.early_leave, c.absent, c.leave],
        )],
        options=_options(),
    )


def generate_employee_comparison_chart(
    employees: List[Employee],
    records: List[AttendanceRecord],
    date_range: Optional[DateRange] = None,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    """Attended days per employee, in employee order. Records of unknown employees are ignored."""
    c = _palette(colors)
    attended: Dict[str, int] = {e.id: 0 for e in employees}
    for record in records:
        if _attended(record) and record.employee_id in attended:
            attended[record.employee_id] += 1

    return ChartConfig(
        type="bar",
        title="员工出勤天数对比",
        labels=[e.name for e in employees],
        datasets=[ChartDataset(
            label="出勤天数",
            data=[attended[e.id] for e in employees],
            background_color=c.primary,
        )],
        options=_options(),
    )


def generate_trend_line_chart(
    records: List[AttendanceRecord],
    date_range: DateRange,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    """Attended head-count per calendar day of the range, labelled MM-DD."""
    c = _palette(colors)
    daily: Dict[str, int] = {d.strftime("%m-%d"): 0 for d in dates_in_range(date_range)}
    for record in records:
        key = record.date.strftime("%m-%d")
        if _attended(record) and key in daily:
            daily[key] += 1

    return ChartConfig(
        type="line",
        title="出勤人数趋势",
        labels=list(daily.keys()),
        datasets=[ChartDataset(
            label="出勤人数",
            data=list(daily.values()),
            border_color=c.primary,
            background_color=TREND_FILL,
            border_width=2,
        )],
        options=_options(),
    )


def generate_work_hours_chart(
    records: List[AttendanceRecord],
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    """Histogram of positive work hours over fixed buckets."""
    c = _palette(colors)
    counts = [0] * len(WORK_HOUR_BUCKETS)
    for record in records:
        if not record.work_hours:
            continue
        for i, (_, low, high) in enumerate(WORK_HOUR_BUCKETS):
            if low <= record.work_hours < high:
                counts[i] += 1
                break

    return ChartConfig(
        type="bar",
        title="工时分布",
        labels=[label for label, _, _ in WORK_HOUR_BUCKETS],
        datasets=[ChartDataset(
            label="人次",
            data=counts,
            background_color=[c.error, c.warning, c.success, c.info, c.primary],
        )],
        options=_options(),
    )


def generate_department_comparison_chart(
    employees: List[Employee],
    records: List[AttendanceRecord],
    date_range: DateRange,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    """Attendance rate per department: attended / (headcount * work days), whole percent."""
    c = _palette(colors)
    headcount: Dict[str, int] = {}
    attended: Dict[str, int] = {}
    department_of: Dict[str, str] = {}

    for employee in employees:
        dept = employee.department or UNASSIGNED_DEPARTMENT
        department_of[employee.id] = dept
        headcount[dept] = headcount.get(dept, 0) + 1
        attended.setdefault(dept, 0)

    for record in records:
        dept = department_of.get(record.employee_id)
        if dept is not None and _attended(record):
            attended[dept] += 1

    work_days = count_work_days(date_range)
    data = []
    for dept, total in headcount.items():
        expected = total * work_days
        data.append(int(round_half_up(attended[dept] / expected * 100, 0)) if expected > 0 else 0)

    return ChartConfig(
        type="bar",
        title="部门出勤率对比",
        labels=list(headcount.keys()),
        datasets=[ChartDataset(label="出勤率(%)", data=data, background_color=c.primary)],
        options=_options(y_max=100),
    )


def generate_chart(
    chart_type: Optional[ChartType],
    employees: List[Employee],
    records: List[AttendanceRecord],
    statistics: AttendanceStatistics,
    date_range: DateRange,
    colors: Optional[ColorPalette] = None,
) -> ChartConfig:
    """Dispatch by chart type; anything unrecognized gets the pie chart."""
    if chart_type == ChartType.BAR_ATTENDANCE:
        return generate_status_bar_chart(statistics, colors)
    if chart_type == ChartType.BAR_EMPLOYEE:
        return generate_employee_comparison_chart(employees, records, date_range, colors)
    if chart_type == ChartType.LINE_TREND:
        return generate_trend_line_chart(records, date_range, colors)
    if chart_type != ChartType.PIE_ATTENDANCE:
        logger.debug(f"No chart for {chart_type}, using pie chart")
    return generate_attendance_pie_chart(statistics, colors)
