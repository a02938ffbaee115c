"""
Entity Extractor

Resolves typed entities from a (normalized) command using the pattern library:
- Date ranges (relative keywords, year-month, single month, day ranges)
- Employee lists (explicit list first, then a CJK-run heuristic)
- Department, chart type, statistic types, column types and names
- Output format and template hint

Extraction never raises. A miss simply leaves the field as None.

Known limitation: the employee fallback keeps every 2-4 character CJK run that
is not in EMPLOYEE_EXCLUDE_WORDS, so ordinary phrases ("生成今天") can show up
as names. Callers that know the employee roster should intersect with it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.core.attendance_calendar import (
    DateRange,
    last_month_range,
    last_week_range,
    last_year_range,
    month_range,
    span_range,
    this_month_range,
    this_week_range,
    this_year_range,
    today_range,
    yesterday_range,
)
from src.core.attendance_types import ChartType, ColumnType, OutputFormat, StatisticType, TemplateType
from src.core.patterns import (
    CHART_PATTERNS,
    COLUMN_NAME_PATTERNS,
    COLUMN_PATTERNS,
    DATE_PATTERNS,
    DEPARTMENT_PREFIX,
    DEPARTMENT_STOPWORDS,
    EMPLOYEE_EXCLUDE_WORDS,
    EMPLOYEE_PATTERNS,
    FORMAT_PATTERNS,
    RELATIVE_DATE_PATTERNS,
    STATISTIC_PATTERNS,
    TEMPLATE_HINT_PATTERNS,
)

logger = logging.getLogger(__name__)

MAX_DEPARTMENT_LENGTH = 20

RELATIVE_RANGE_BUILDERS = {
    "today": today_range,
    "this_week": this_week_range,
    "last_week": last_week_range,
    "this_month": this_month_range,
    "last_month": last_month_range,
    "yesterday": yesterday_range,
    "this_year": this_year_range,
    "last_year": last_year_range,
}

# Year keywords narrow a following month or day range instead of winning outright
YEAR_KEYWORDS = {
    "this_year": lambda now: now.year,
    "last_year": lambda now: now.year - 1,
}

TEMPLATE_HINTS = {
    "simple": TemplateType.DAILY_SIMPLE,
    "detailed": TemplateType.DAILY_DETAILED,
    "summary": TemplateType.MONTHLY_SUMMARY,
}


@dataclass
class ExtractedEntities:
    """Typed entities found in a command. Absent entities are None."""
    date_range: Optional[DateRange] = None
    employees: Optional[List[str]] = None
    department: Optional[str] = None
    chart_type: Optional[ChartType] = None
    statistics: Optional[List[StatisticType]] = None
    columns: Optional[List[ColumnType]] = None
    column_names: Optional[List[str]] = None
    output_format: Optional[OutputFormat] = None
    template_type: Optional[TemplateType] = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date_range": self.date_range.to_dict() if self.date_range else None,
            "employees": self.employees,
            "department": self.department,
            "chart_type": self.chart_type.value if self.chart_type else None,
            "statistics": [s.value for s in self.statistics] if self.statistics else None,
            "columns": [c.value for c in self.columns] if self.columns else None,
            "column_names": self.column_names,
            "output_format": self.output_format.value if self.output_format else None,
            "template_type": self.template_type.value if self.template_type else None,
        }


# =============================================================================
# DATE RANGES
# =============================================================================

def extract_date_range(text: str, now: Optional[datetime] = None) -> Optional[DateRange]:
    """
    Resolve a date range, first match wins:
    relative keyword, YYYY年M月, single month, cross-month range, same-month range.
    今年/去年 set the year for the month and day-range rules and only resolve
    to the whole year when none of them match.
    """
    now = now or datetime.now()

    year_keyword = None
    for name, pattern in RELATIVE_DATE_PATTERNS.items():
        if not pattern.search(text):
            continue
        if name in YEAR_KEYWORDS:
            year_keyword = year_keyword or name
            continue
        return RELATIVE_RANGE_BUILDERS[name](now)

    year = YEAR_KEYWORDS[year_keyword](now) if year_keyword else None

    try:
        match = DATE_PATTERNS["year_month"].search(text)
        if match:
            return month_range(int(match.group(1)), int(match.group(2)))

        # A bare month only counts when no month-day form is present
        match = DATE_PATTERNS["month"].search(text)
        if match and match.group(1) and not DATE_PATTERNS["month_day"].search(text):
            month = int(match.group(1))
            if year is None:
                year = now.year - 1 if month > now.month else now.year
            return month_range(year, month)

        match = DATE_PATTERNS["date_range"].search(text)
        if match:
            start_month, start_day, end_month, end_day = (int(g) for g in match.groups())
            return span_range(
                datetime(year or now.year, start_month, start_day),
                datetime(year or now.year, end_month, end_day),
            )

        match = DATE_PATTERNS["same_month_range"].search(text)
        if match:
            month, start_day, end_day = (int(g) for g in match.groups())
            return span_range(
                datetime(year or now.year, month, start_day),
                datetime(year or now.year, month, end_day),
            )

        if year_keyword:
            return RELATIVE_RANGE_BUILDERS[year_keyword](now)
    except ValueError as e:
        # Impossible calendar dates or reversed ranges are a miss, not an error
        logger.debug(f"Discarding date range in '{text}': {e}")

    return None


# =============================================================================
# EMPLOYEES AND DEPARTMENTS
# =============================================================================

def _is_candidate_name(word: str) -> bool:
    return 2 <= len(word) <= 4 and bool(EMPLOYEE_PATTERNS["pure_chinese"].match(word))


def extract_employees(text: str) -> List[str]:
    """Explicit "包含/包括/有/员工为" list first, else every 2-4 char CJK run minus excluded words."""
    list_match = EMPLOYEE_PATTERNS["employee_list"].search(text)
    if list_match:
        parts = EMPLOYEE_PATTERNS["list_separator"].split(list_match.group(1))
        names = [p for p in parts if _is_candidate_name(p)]
        if names:
            return names

    runs = EMPLOYEE_PATTERNS["chinese_name"].findall(text)
    return [run for run in runs if run not in EMPLOYEE_EXCLUDE_WORDS]


def extract_department(text: str) -> Optional[str]:
    """First "<name>部/部门/组/团队/中心" whose name survives prefix stripping."""
    for match in EMPLOYEE_PATTERNS["department"].finditer(text):
        base = DEPARTMENT_PREFIX.sub("", match.group(1))
        if not base or base in DEPARTMENT_STOPWORDS:
            continue
        name = base + match.group(2)
        if len(name) < MAX_DEPARTMENT_LENGTH:
            return name
    return None


# =============================================================================
# CHARTS, STATISTICS, COLUMNS
# =============================================================================

def extract_chart_type(text: str) -> Optional[ChartType]:
    if CHART_PATTERNS["pie"].search(text):
        return ChartType.PIE_ATTENDANCE
    if CHART_PATTERNS["bar"].search(text):
        if CHART_PATTERNS["employee_comparison"].search(text):
            return ChartType.BAR_EMPLOYEE
        return ChartType.BAR_ATTENDANCE
    if CHART_PATTERNS["line"].search(text) or CHART_PATTERNS["trend"].search(text):
        return ChartType.LINE_TREND
    return None


def extract_statistics(text: str) -> List[StatisticType]:
    return [stat for stat, pattern in STATISTIC_PATTERNS.items() if pattern.search(text)]


def extract_columns(text: str) -> List[ColumnType]:
    return [column for column, pattern in COLUMN_PATTERNS.items() if pattern.search(text)]


def extract_column_names(text: str) -> List[str]:
    """Names listed after "列名:" or "包含列:"."""
    for pattern in COLUMN_NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        parts = EMPLOYEE_PATTERNS["list_separator"].split(match.group(1))
        names = [p.strip() for p in parts if p.strip()]
        if names:
            return names
    return []


def extract_output_format(text: str) -> Optional[OutputFormat]:
    for output_format, pattern in FORMAT_PATTERNS.items():
        if pattern.search(text):
            return output_format
    return None


def extract_template_type(text: str) -> Optional[TemplateType]:
    for hint, pattern in TEMPLATE_HINT_PATTERNS.items():
        if pattern.search(text):
            return TEMPLATE_HINTS[hint]
    return None


def extract_entities(text: str, now: Optional[datetime] = None) -> ExtractedEntities:
    """Extract every entity type from text. Empty lists are reported as None."""
    return ExtractedEntities(
        date_range=extract_date_range(text, now),
        employees=extract_employees(text) or None,
        department=extract_department(text),
        chart_type=extract_chart_type(text),
        statistics=extract_statistics(text) or None,
        columns=extract_columns(text) or None,
        column_names=extract_column_names(text) or None,
        output_format=extract_output_format(text),
        template_type=extract_template_type(text),
    )
