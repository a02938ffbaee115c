"""
Template Registry and Template Engine

Turns a report template plus resolved attendance data into a RenderResult:
header rows, data rows, region styles, merges, column widths and row heights.
The result is a plain value handed to a writer (see excel_output.py).

Layout:
    [title row]        optional, merged across all columns, height 30
    [date-range row]   optional, merged across all columns, height 25
    column titles      height 25
    one row per employee, height 22

Cell values come from FIELD_RESOLVERS (field name -> resolver). A template
can override individual resolvers; unknown fields read the employee entry.
"""
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml

from src.core.attendance_calendar import DateRange, format_date_range_display
from src.core.attendance_types import ColumnType, TemplateType
from src.core.error_taxonomy import ErrorCategory, TemplateNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_WIDTH = 100
TITLE_ROW_HEIGHT = 30
SUBTITLE_ROW_HEIGHT = 25
HEADER_ROW_HEIGHT = 25
DATA_ROW_HEIGHT = 22

STYLE_REGIONS = ("header", "body", "title")


@dataclass
class BorderStyle:
    style: str = "thin"
    color: str = "#000000"


@dataclass
class CellStyle:
    """Visual style of one region of a rendered sheet."""
    background_color: Optional[str] = None
    font_color: Optional[str] = None
    font_size: Optional[int] = None
    font_weight: Optional[str] = None     # "bold" | "normal"
    align: Optional[str] = None           # "left" | "center" | "right"
    vertical_align: Optional[str] = None  # "top" | "middle" | "bottom"
    border: Optional[BorderStyle] = None

    @property
    def bold(self) -> bool:
        return self.font_weight == "bold"

    def to_dict(self) -> Dict[str, Any]:
        result = {k: v for k, v in self.__dict__.items() if v is not None and k != "border"}
        if self.border:
            result["border"] = {"style": self.border.style, "color": self.border.color}
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CellStyle":
        data = dict(data)
        border = data.pop("border", None)
        return cls(border=BorderStyle(**border) if border else None, **data)


@dataclass
class TemplateStyles:
    header: Optional[CellStyle] = None
    body: Optional[CellStyle] = None
    title: Optional[CellStyle] = None


@dataclass
class TemplateHeader:
    """One column of a template."""
    title: str
    field: str
    width: Optional[int] = None
    align: str = "center"


# resolver(employee, employee_records, row_index) -> cell value
Resolver = Callable[[Dict[str, Any], List[Dict[str, Any]], int], Any]


@dataclass
class AttendanceTemplate:
    """A report layout: column definitions and styles, independent of data."""
    id: str
    name: str
    type: TemplateType
    headers: List[TemplateHeader]
    columns: List[ColumnType] = field(default_factory=list)
    styles: Optional[TemplateStyles] = None
    description: str = ""
    resolvers: Dict[str, Resolver] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "headers": [h.__dict__.copy() for h in self.headers],
            "columns": [c.value for c in self.columns],
        }


@dataclass
class TemplateContext:
    """Data for one render. Employees and records are dicts keyed by template field names."""
    title: Optional[str] = None
    date_range: Optional[DateRange] = None
    department: Optional[str] = None
    employees: Optional[List[Dict[str, Any]]] = None
    records: Optional[List[Dict[str, Any]]] = None
    statistics: Optional[Dict[str, float]] = None
    custom_data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class Merge:
    """Inclusive, zero-based cell block to merge."""
    start_row: int
    start_col: int
    end_row: int
    end_col: int


@dataclass
class RenderResult:
    headers: List[List[str]]
    rows: List[List[Any]]
    styles: Dict[str, CellStyle]
    merges: List[Merge]
    column_widths: List[int]
    row_heights: List[int]

    @property
    def column_count(self) -> int:
        return len(self.column_widths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": self.headers,
            "rows": self.rows,
            "styles": {region: style.to_dict() for region, style in self.styles.items()},
            "merges": [m.__dict__.copy() for m in self.merges],
            "column_widths": self.column_widths,
            "row_heights": self.row_heights,
        }


# =============================================================================
# FIELD RESOLVERS
# =============================================================================

def _or_default(value: Any, default: Any) -> Any:
    return default if value is None or value == "" else value


def _employee_field(name: str, default: Any = "") -> Resolver:
    return lambda employee, records, index: _or_default(employee.get(name), default)


def _first_record_field(name: str, default: Any = "") -> Resolver:
    def resolve(employee, records, index):
        if not records:
            return default
        return _or_default(records[0].get(name), default)
    return resolve


FIELD_RESOLVERS: Mapping[str, Resolver] = MappingProxyType({
    "index": lambda employee, records, index: index,
    "name": _employee_field("name"),
    "employeeNo": _employee_field("employeeNo"),
    "department": _employee_field("department"),
    "checkInTime": _first_record_field("checkInTime"),
    "checkOutTime": _first_record_field("checkOutTime"),
    "workHours": _first_record_field("workHours", 0),
    "overtimeHours": _first_record_field("overtimeHours", 0),
    "status": _first_record_field("status"),
    "notes": _first_record_field("notes"),
})


def resolve_cell(template: AttendanceTemplate, field_name: str, employee, records, index) -> Any:
    resolver = template.resolvers.get(field_name) or FIELD_RESOLVERS.get(field_name)
    if resolver is None:
        resolver = _employee_field(field_name)
    return resolver(employee, records, index)


# =============================================================================
# DEFAULT TEMPLATES
# =============================================================================

def _standard_styles(header_bg: str, header_font_size: int = 12, body_font_size: int = 11) -> TemplateStyles:
    return TemplateStyles(
        header=CellStyle(
            background_color=header_bg,
            font_color="#FFFFFF",
            font_size=header_font_size,
            font_weight="bold",
            align="center",
            vertical_align="middle",
            border=BorderStyle("thin", "#000000"),
        ),
        body=CellStyle(
            font_size=body_font_size,
            align="center",
            vertical_align="middle",
            border=BorderStyle("thin", "#D9D9D9"),
        ),
        title=CellStyle(font_size=16, font_weight="bold", align="center", vertical_align="middle"),
    )


def _headers(*specs) -> List[TemplateHeader]:
    return [TemplateHeader(title, field_name, width, align) for title, field_name, width, align in specs]


def _build_default_templates() -> Dict[TemplateType, AttendanceTemplate]:
    c = "center"
    return {
        TemplateType.DAILY_SIMPLE: AttendanceTemplate(
            id="daily-simple",
            name="日考勤表(简单)",
            type=TemplateType.DAILY_SIMPLE,
            description="简单的日考勤表，包含基本考勤信息",
            headers=_headers(
                ("序号", "index", 50, c),
                ("姓名", "name", 80, c),
                ("部门", "department", 100, c),
                ("签到时间", "checkInTime", 100, c),
                ("签退时间", "checkOutTime", 100, c),
                ("状态", "status", 80, c),
            ),
            columns=[ColumnType.INDEX, ColumnType.NAME, ColumnType.DEPARTMENT,
                     ColumnType.CHECK_IN, ColumnType.CHECK_OUT, ColumnType.STATUS],
            styles=_standard_styles("#4472C4"),
        ),
        TemplateType.DAILY_DETAILED: AttendanceTemplate(
            id="daily-detailed",
            name="日考勤表(详细)",
            type=TemplateType.DAILY_DETAILED,
            description="详细的日考勤表，包含工时和备注",
            headers=_headers(
                ("序号", "index", 50, c),
                ("工号", "employeeNo", 80, c),
                ("姓名", "name", 80, c),
                ("部门", "department", 100, c),
                ("签到时间", "checkInTime", 100, c),
                ("签退时间", "checkOutTime", 100, c),
                ("工作时长", "workHours", 80, c),
                ("加班时长", "overtimeHours", 80, c),
                ("状态", "status", 80, c),
                ("备注", "notes", 150, "left"),
            ),
            columns=[ColumnType.INDEX, ColumnType.EMPLOYEE_NO, ColumnType.NAME, ColumnType.DEPARTMENT,
                     ColumnType.CHECK_IN, ColumnType.CHECK_OUT, ColumnType.WORK_HOURS,
                     ColumnType.OVERTIME, ColumnType.STATUS, ColumnType.NOTES],
            styles=_standard_styles("#4472C4"),
        ),
        TemplateType.WEEKLY_SUMMARY: AttendanceTemplate(
            id="weekly-summary",
            name="周考勤汇总表",
            type=TemplateType.WEEKLY_SUMMARY,
            description="按周汇总的考勤表",
            headers=_headers(
                ("序号", "index", 50, c),
                ("姓名", "name", 80, c),
                ("部门", "department", 100, c),
                ("周一", "day1", 60, c),
                ("周二", "day2", 60, c),
                ("周三", "day3", 60, c),
                ("周四", "day4", 60, c),
                ("周五", "day5", 60, c),
                ("周六", "day6", 60, c),
                ("周日", "day7", 60, c),
                ("出勤天数", "attendanceDays", 80, c),
                ("出勤率", "attendanceRate", 80, c),
            ),
            columns=[ColumnType.INDEX, ColumnType.NAME, ColumnType.DEPARTMENT,
                     *[ColumnType.DATE] * 7, ColumnType.WORK_HOURS, ColumnType.STATUS],
            styles=_standard_styles("#70AD47"),
        ),
        TemplateType.MONTHLY_SUMMARY: AttendanceTemplate(
            id="monthly-summary",
            name="月度考勤汇总表",
            type=TemplateType.MONTHLY_SUMMARY,
            description="按月汇总的考勤统计表",
            headers=_headers(
                ("序号", "index", 50, c),
                ("工号", "employeeNo", 80, c),
                ("姓名", "name", 80, c),
                ("部门", "department", 100, c),
                ("应出勤", "shouldAttend", 70, c),
                ("实出勤", "actualAttend", 70, c),
                ("出勤率", "attendanceRate", 70, c),
                ("迟到", "lateCount", 60, c),
                ("早退", "earlyLeaveCount", 60, c),
                ("缺勤", "absentCount", 60, c),
                ("请假", "leaveDays", 60, c),
                ("加班(h)", "overtimeHours", 70, c),
                ("总工时(h)", "totalWorkHours", 80, c),
            ),
            columns=[ColumnType.INDEX, ColumnType.EMPLOYEE_NO, ColumnType.NAME, ColumnType.DEPARTMENT,
                     ColumnType.WORK_HOURS, ColumnType.WORK_HOURS, ColumnType.STATUS, ColumnType.STATUS,
                     ColumnType.STATUS, ColumnType.STATUS, ColumnType.STATUS, ColumnType.OVERTIME,
                     ColumnType.WORK_HOURS],
            styles=_standard_styles("#ED7D31"),
            # Monthly rows carry per-employee totals rather than one day's record
            resolvers={"overtimeHours": _employee_field("overtimeHours", 0)},
        ),
        TemplateType.MONTHLY_DETAILED: AttendanceTemplate(
            id="monthly-detailed",
            name="月度考勤明细表",
            type=TemplateType.MONTHLY_DETAILED,
            description="按月显示每日考勤明细",
            headers=_headers(("姓名", "name", 80, c)),
            columns=[ColumnType.NAME],
            styles=_standard_styles("#5B9BD5", header_font_size=11, body_font_size=10),
        ),
    }


def clone_template(template: AttendanceTemplate, new_id: str, new_name: str) -> AttendanceTemplate:
    """Fully independent copy: headers, columns and each style are copied."""
    now = datetime.now()
    clone = copy.deepcopy(template)
    clone.id = new_id
    clone.name = new_name
    clone.created_at = now
    clone.updated_at = now
    return clone


# =============================================================================
# REGISTRY
# =============================================================================

class TemplateRegistry:
    """
    Default templates keyed by type (read-only) plus custom templates keyed by id.

    Each registry builds its own default set, so nothing is shared between
    registries. Defaults are handed out as copies; editing one never changes
    what the next caller gets.
    """

    def __init__(self):
        self._defaults: Mapping[TemplateType, AttendanceTemplate] = MappingProxyType(_build_default_templates())
        self._custom: Dict[str, AttendanceTemplate] = {}

    def get_template(self, template_type: TemplateType) -> AttendanceTemplate:
        """
        Default template for a type.

        Raises:
            TemplateNotFoundError: no default template exists for the type
        """
        template = self._defaults.get(template_type)
        if template is None:
            raise TemplateNotFoundError(
                f"No template registered for type {getattr(template_type, 'value', template_type)}",
                category=ErrorCategory.TEMPLATE_NOT_FOUND,
                context={"template_type": str(template_type)},
            )
        return copy.deepcopy(template)

    def get_custom_template(self, template_id: str) -> Optional[AttendanceTemplate]:
        return self._custom.get(template_id)

    def register_template(self, template: AttendanceTemplate) -> None:
        if template.id in self._custom:
            logger.info(f"Replacing custom template '{template.id}'")
        self._custom[template.id] = template

    def get_all_templates(self) -> List[AttendanceTemplate]:
        return [*(copy.deepcopy(t) for t in self._defaults.values()), *self._custom.values()]

    def load_templates_from_yaml(self, path: Union[str, Path]) -> List[AttendanceTemplate]:
        """
        Register custom templates from a YAML file.

        Format:
            templates:
              - id: overtime-report
                name: 加班统计表
                base: MONTHLY_SUMMARY       # optional, start from a default
                headers:
                  - {title: 姓名, field: name, width: 80}
                styles:
                  header: {background_color: "#4472C4", font_weight: bold}
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        loaded = []
        for entry in data.get("templates", []):
            template = self._template_from_dict(entry)
            self.register_template(template)
            loaded.append(template)

        logger.info(f"Loaded {len(loaded)} custom templates from {path}")
        return loaded

    def _template_from_dict(self, entry: Dict[str, Any]) -> AttendanceTemplate:
        if "base" in entry:
            template = clone_template(self.get_template(TemplateType[entry["base"]]), entry["id"], entry["name"])
            template.type = TemplateType.CUSTOM
        else:
            template = AttendanceTemplate(
                id=entry["id"],
                name=entry["name"],
                type=TemplateType.CUSTOM,
                headers=[],
                styles=_standard_styles("#4472C4"),
            )

        template.description = entry.get("description", template.description)
        if "headers" in entry:
            template.headers = [TemplateHeader(**h) for h in entry["headers"]]
            # Resolver overrides of the base may not fit the new columns
            template.resolvers = {}
        if "columns" in entry:
            template.columns = [ColumnType[name] for name in entry["columns"]]
        for region, style in (entry.get("styles") or {}).items():
            if region not in STYLE_REGIONS:
                raise ValueError(f"Unknown style region '{region}' in template {entry['id']}")
            if template.styles is None:
                template.styles = TemplateStyles()
            setattr(template.styles, region, CellStyle.from_dict(style))
        return template


# =============================================================================
# ENGINE
# =============================================================================

class TemplateEngine:
    """Renders templates. Stateless apart from the registry it holds."""

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry or TemplateRegistry()

    def render(self, template: AttendanceTemplate, context: TemplateContext) -> RenderResult:
        headers = self._render_headers(template, context)
        rows = self._render_rows(template, context)
        return RenderResult(
            headers=headers,
            rows=rows,
            styles=self._build_style_map(template),
            merges=self._calculate_merges(template, context),
            column_widths=[h.width or DEFAULT_COLUMN_WIDTH for h in template.headers],
            row_heights=self._calculate_row_heights(context, len(rows)),
        )

    def _render_headers(self, template: AttendanceTemplate, context: TemplateContext) -> List[List[str]]:
        headers = []
        if context.title:
            headers.append([context.title])
        if context.date_range:
            headers.append([format_date_range_display(context.date_range)])
        headers.append([h.title for h in template.headers])
        return headers

    def _render_rows(self, template: AttendanceTemplate, context: TemplateContext) -> List[List[Any]]:
        records_by_employee: Dict[str, List[Dict[str, Any]]] = {}
        for record in context.records or []:
            records_by_employee.setdefault(record.get("employeeId"), []).append(record)

        rows = []
        for index, employee in enumerate(context.employees or [], start=1):
            employee_records = records_by_employee.get(employee.get("id"), [])
            rows.append([
                resolve_cell(template, h.field, employee, employee_records, index)
                for h in template.headers
            ])
        return rows

    def _build_style_map(self, template: AttendanceTemplate) -> Dict[str, CellStyle]:
        styles = {}
        if template.styles:
            for region in STYLE_REGIONS:
                style = getattr(template.styles, region)
                if style is not None:
                    styles[region] = style
        return styles

    def _calculate_merges(self, template: AttendanceTemplate, context: TemplateContext) -> List[Merge]:
        last_col = len(template.headers) - 1
        merges = []
        row = 0
        if context.title:
            merges.append(Merge(row, 0, row, last_col))
            row += 1
        if context.date_range:
            merges.append(Merge(row, 0, row, last_col))
        return merges

    def _calculate_row_heights(self, context: TemplateContext, data_row_count: int) -> List[int]:
        """One height per emitted row, in sheet order."""
        heights = []
        if context.title:
            heights.append(TITLE_ROW_HEIGHT)
        if context.date_range:
            heights.append(SUBTITLE_ROW_HEIGHT)
        heights.append(HEADER_ROW_HEIGHT)
        heights.extend([DATA_ROW_HEIGHT] * data_row_count)
        return heights

    def clone_template(self, template: AttendanceTemplate, new_id: str, new_name: str) -> AttendanceTemplate:
        return clone_template(template, new_id, new_name)


# Singleton instance
_template_engine: Optional[TemplateEngine] = None


def get_template_engine() -> TemplateEngine:
    """Get the shared template engine."""
    global _template_engine
    if _template_engine is None:
        _template_engine = TemplateEngine()
    return _template_engine
