"""
Attendance Calendar Module

Date-range utilities for attendance reporting.

Key Concepts:
- A DateRange is inclusive on both ends
- Ranges start at 00:00:00 and end at 23:59:59.999 of their last day
- Weeks run Monday to Sunday
- Work days are Monday to Friday (no holiday calendar)
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

# Millisecond precision end-of-day, matching what spreadsheets round-trip
END_OF_DAY = time(23, 59, 59, 999000)

LUNCH_BREAK_HOURS = 1.0
LUNCH_DEDUCTION_THRESHOLD = 5.0


@dataclass(frozen=True)
class DateRange:
    """Inclusive interval between two datetimes."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    @property
    def days(self) -> int:
        """Number of calendar days touched by the range."""
        return (self.end.date() - self.start.date()).days + 1

    def contains(self, d) -> bool:
        """Check if a date or datetime falls within this range."""
        if not isinstance(d, datetime):
            d = datetime.combine(d, time.min)
        return self.start <= d <= self.end

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


def start_of_day(d) -> datetime:
    if isinstance(d, datetime):
        d = d.date()
    return datetime.combine(d, time.min)


def end_of_day(d) -> datetime:
    if isinstance(d, datetime):
        d = d.date()
    return datetime.combine(d, END_OF_DAY)


def day_range(d) -> DateRange:
    return DateRange(start_of_day(d), end_of_day(d))


def span_range(first, last) -> DateRange:
    """Range covering whole days from first to last."""
    return DateRange(start_of_day(first), end_of_day(last))


def week_range(d) -> DateRange:
    """Monday-to-Sunday week containing d."""
    if isinstance(d, datetime):
        d = d.date()
    monday = d - timedelta(days=d.weekday())
    return span_range(monday, monday + timedelta(days=6))


def month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return span_range(date(year, month, 1), date(year, month, last_day))


def year_range(year: int) -> DateRange:
    return span_range(date(year, 1, 1), date(year, 12, 31))


def _today(now: Optional[datetime]) -> date:
    return (now or datetime.now()).date()


def today_range(now: Optional[datetime] = None) -> DateRange:
    return day_range(_today(now))


def yesterday_range(now: Optional[datetime] = None) -> DateRange:
    return day_range(_today(now) - timedelta(days=1))


def this_week_range(now: Optional[datetime] = None) -> DateRange:
    return week_range(_today(now))


def last_week_range(now: Optional[datetime] = None) -> DateRange:
    return week_range(_today(now) - timedelta(days=7))


def this_month_range(now: Optional[datetime] = None) -> DateRange:
    today = _today(now)
    return month_range(today.year, today.month)


def last_month_range(now: Optional[datetime] = None) -> DateRange:
    today = _today(now)
    if today.month == 1:
        return month_range(today.year - 1, 12)
    return month_range(today.year, today.month - 1)


def this_year_range(now: Optional[datetime] = None) -> DateRange:
    return year_range(_today(now).year)


def last_year_range(now: Optional[datetime] = None) -> DateRange:
    return year_range(_today(now).year - 1)


def dates_in_range(date_range: DateRange) -> List[date]:
    """Every calendar date touched by the range, in order."""
    first = date_range.start.date()
    return [first + timedelta(days=i) for i in range(date_range.days)]


def is_work_day(d) -> bool:
    """Monday through Friday."""
    return d.weekday() < 5


def count_work_days(date_range: DateRange) -> int:
    return sum(1 for d in dates_in_range(date_range) if is_work_day(d))


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round halves away from zero on the scaled value (8.125 -> 8.13).

    The built-in round() sends exact halves to the even neighbour.
    """
    scaled = Decimal(repr(value * 10 ** places)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(scaled) / 10 ** places


def calculate_work_hours(check_in: datetime, check_out: datetime) -> float:
    """
    Hours between check-in and check-out, minus the lunch break.

    The 1-hour lunch deduction only applies when the raw span exceeds 5 hours.
    """
    hours = (check_out - check_in).total_seconds() / 3600
    if hours > LUNCH_DEDUCTION_THRESHOLD:
        hours -= LUNCH_BREAK_HOURS
    return round_half_up(hours)


def format_date(d) -> str:
    return d.strftime("%Y-%m-%d")


def format_time(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def format_date_range_display(date_range: DateRange) -> str:
    """Subtitle text for a range, e.g. '2024-01-01 至 2024-01-31'."""
    return f"{format_date(date_range.start)} 至 {format_date(date_range.end)}"
