"""
Attendance Data Importer

Parses tabular attendance data (rows of cells, CSV text, CSV/XLSX files)
into Employee and AttendanceRecord values.

- Rows are processed independently: a bad row is reported, the batch continues
- Employees are resolved first-match-wins by name or employee number
- Column positions can be auto-detected from a header row

The importer keeps an employee map across calls; call clear_cache() between
unrelated import jobs.
"""
import io
import re
import time
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple, Union

import pandas as pd

from src.core.attendance_calendar import DateRange, calculate_work_hours
from src.core.attendance_types import AttendanceRecord, AttendanceStatus, Employee, LeaveType
from src.core.error_taxonomy import ImportFileError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

# Tried in order; the first that matches wins
DATE_FORMATS: List[Tuple[str, Pattern]] = [
    ("ymd", re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")),
    ("ymd", re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")),
    ("mdy", re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")),
    ("ymd", re.compile(r"^(\d{4})年(\d{1,2})月(\d{1,2})日?$")),
    ("md", re.compile(r"^(\d{1,2})月(\d{1,2})日?$")),
]

TIME_FORMATS: List[Pattern] = [
    re.compile(r"^(\d{1,2}):(\d{2})$"),
    re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$"),
    re.compile(r"^(\d{1,2})点(\d{1,2})分?$"),
]

STATUS_MAP: Dict[str, AttendanceStatus] = {
    "正常": AttendanceStatus.NORMAL,
    "出勤": AttendanceStatus.NORMAL,
    "迟到": AttendanceStatus.LATE,
    "早退": AttendanceStatus.EARLY_LEAVE,
    "缺勤": AttendanceStatus.ABSENT,
    "旷工": AttendanceStatus.ABSENT,
    "请假": AttendanceStatus.LEAVE,
    "事假": AttendanceStatus.LEAVE,
    "病假": AttendanceStatus.LEAVE,
    "年假": AttendanceStatus.LEAVE,
    "加班": AttendanceStatus.OVERTIME,
    "外出": AttendanceStatus.OUT,
    "出差": AttendanceStatus.BUSINESS_TRIP,
    "休息": AttendanceStatus.REST_DAY,
    "节假日": AttendanceStatus.HOLIDAY,
}

LEAVE_TYPE_MAP: Dict[str, LeaveType] = {
    "事假": LeaveType.PERSONAL,
    "病假": LeaveType.SICK,
    "年假": LeaveType.ANNUAL,
}


@dataclass
class ColumnMapping:
    """Zero-based column index per semantic field."""
    name: Optional[int] = None
    employee_no: Optional[int] = None
    department: Optional[int] = None
    date: Optional[int] = None
    check_in_time: Optional[int] = None
    check_out_time: Optional[int] = None
    status: Optional[int] = None
    notes: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


COLUMN_DETECTION_PATTERNS: Dict[str, List[Pattern]] = {
    "name": [re.compile(p, re.IGNORECASE) for p in (r"姓名", r"名字", r"员工姓名", r"name")],
    "employee_no": [re.compile(p, re.IGNORECASE) for p in (r"工号", r"员工号", r"编号", r"employee.*no", r"id")],
    "department": [re.compile(p, re.IGNORECASE) for p in (r"部门", r"department", r"dept")],
    # A bare 时间 header is a date column; 签到时间/签退时间 are not
    "date": [re.compile(p, re.IGNORECASE) for p in (r"日期", r"date", r"^\s*时间\s*$")],
    "check_in_time": [re.compile(p, re.IGNORECASE) for p in (r"签到", r"上班", r"打卡", r"check.*in", r"clock.*in")],
    "check_out_time": [re.compile(p, re.IGNORECASE) for p in (r"签退", r"下班", r"check.*out", r"clock.*out")],
    "status": [re.compile(p, re.IGNORECASE) for p in (r"状态", r"status", r"考勤状态")],
    "notes": [re.compile(p, re.IGNORECASE) for p in (r"备注", r"说明", r"notes", r"remark")],
}


@dataclass
class ImportRowError:
    """A row that could not be imported. row is 1-based, counting the header."""
    row: int
    message: str
    data: Any = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message, "data": self.data}


@dataclass
class ImportStats:
    total: int = 0
    success: int = 0
    failed: int = 0


@dataclass
class ImportResult:
    records: List[AttendanceRecord] = field(default_factory=list)
    employees: List[Employee] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: ImportStats = field(default_factory=ImportStats)


class RowValueError(ValueError):
    """A single row failed validation."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


def detect_column_mapping(headers: Sequence[Any]) -> ColumnMapping:
    """Assign columns to fields by header text. First matching header wins per field."""
    mapping = ColumnMapping()
    for index, header in enumerate(headers):
        text = "" if header is None else str(header)
        for field_name, patterns in COLUMN_DETECTION_PATTERNS.items():
            if getattr(mapping, field_name) is not None:
                continue
            if any(p.search(text) for p in patterns):
                setattr(mapping, field_name, index)
    return mapping


def parse_date(value: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse a date cell; None when no format matches."""
    for kind, pattern in DATE_FORMATS:
        match = pattern.match(value)
        if not match:
            continue
        try:
            if kind == "ymd":
                return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            if kind == "mdy":
                return datetime(int(match.group(3)), int(match.group(1)), int(match.group(2)))
            year = (now or datetime.now()).year
            return datetime(year, int(match.group(1)), int(match.group(2)))
        except ValueError:
            return None

    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    parsed = parsed.to_pydatetime()
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


def parse_time(value: str, base_date: datetime) -> Optional[datetime]:
    """Parse a time cell onto base_date; None when unparseable."""
    for pattern in TIME_FORMATS:
        match = pattern.match(value)
        if not match:
            continue
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3)) if match.lastindex and match.lastindex >= 3 else 0
        try:
            return base_date.replace(hour=hours, minute=minutes, second=seconds, microsecond=0)
        except ValueError:
            return None
    return None


def parse_status(
    status_text: str,
    check_in: Optional[datetime],
    check_out: Optional[datetime],
) -> AttendanceStatus:
    """Explicit label first; otherwise ABSENT with no punches, NORMAL with any."""
    if status_text and status_text in STATUS_MAP:
        return STATUS_MAP[status_text]
    if check_in is None and check_out is None:
        return AttendanceStatus.ABSENT
    return AttendanceStatus.NORMAL


def _cell(row: Sequence[Any], index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(row):
        return ""
    value = row[index]
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


class DataImporter:
    """Imports attendance rows, resolving employees across calls."""

    def __init__(self):
        self._employees: Dict[str, Employee] = {}
        self._next_employee_id = 1

    # -------------------------------------------------------------------------
    # Front-ends
    # -------------------------------------------------------------------------

    def import_from_array(
        self,
        rows: Sequence[Sequence[Any]],
        mapping: ColumnMapping,
        has_header: bool = True,
    ) -> ImportResult:
        """Import rows of cells. Row numbers in errors are 1-based and include the header."""
        result = ImportResult()
        start = 1 if has_header else 0

        for i in range(start, len(rows)):
            row = rows[i]
            row_num = i + 1
            try:
                record, warnings = self._parse_row(row, mapping, row_num)
            except RowValueError as e:
                logger.debug(f"Row {row_num} rejected: {e}")
                result.errors.append(ImportRowError(row_num, str(e), data=list(row), field=e.field_name))
                continue
            result.records.append(record)
            result.warnings.extend(warnings)

        result.employees = list(self._employees.values())
        result.stats = ImportStats(
            total=max(len(rows) - start, 0),
            success=len(result.records),
            failed=len(result.errors),
        )
        logger.info(
            f"Imported {result.stats.success}/{result.stats.total} rows "
            f"({result.stats.failed} failed, {len(result.employees)} employees)"
        )
        return result

    def import_from_csv(self, csv_text: str, mapping: Optional[ColumnMapping] = None, has_header: bool = True) -> ImportResult:
        rows = self._read_frame(lambda: pd.read_csv(
            io.StringIO(csv_text), header=None, dtype=str, keep_default_na=False, skip_blank_lines=True,
        ), source="CSV text")
        return self._import_rows(rows, mapping, has_header)

    def import_from_file(self, path: Union[str, Path], mapping: Optional[ColumnMapping] = None, has_header: bool = True) -> ImportResult:
        """
        Import a CSV or Excel file. The mapping is detected from the header
        row when not given.

        Raises:
            ImportFileError: the file does not exist or cannot be parsed
        """
        path = Path(path)
        if not path.exists():
            raise ImportFileError(f"文件不存在: {path}", context={"path": str(path)})

        if path.suffix.lower() in EXCEL_SUFFIXES:
            reader = lambda: pd.read_excel(path, header=None, dtype=str, keep_default_na=False)
        else:
            reader = lambda: pd.read_csv(path, header=None, dtype=str, keep_default_na=False, skip_blank_lines=True)

        return self._import_rows(self._read_frame(reader, source=str(path)), mapping, has_header)

    def _read_frame(self, reader, source: str) -> List[List[Any]]:
        try:
            frame = reader()
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise ImportFileError(f"无法读取文件: {source} ({e})", context={"source": source}) from e
        return frame.values.tolist()

    def _import_rows(self, rows: List[List[Any]], mapping: Optional[ColumnMapping], has_header: bool) -> ImportResult:
        if mapping is None:
            if not has_header or not rows:
                raise ImportFileError("无法自动识别列：缺少表头行")
            mapping = detect_column_mapping(rows[0])
            logger.info(f"Detected column mapping: {mapping.to_dict()}")
        return self.import_from_array(rows, mapping, has_header)

    # -------------------------------------------------------------------------
    # Row parsing
    # -------------------------------------------------------------------------

    def _parse_row(self, row: Sequence[Any], mapping: ColumnMapping, row_num: int) -> Tuple[AttendanceRecord, List[str]]:
        warnings = []
        name = _cell(row, mapping.name)
        employee_no = _cell(row, mapping.employee_no)
        identifier = name or employee_no
        date_text = _cell(row, mapping.date)

        if not identifier:
            raise RowValueError("员工标识不能为空", "name")
        if not date_text:
            raise RowValueError("日期不能为空", "date")

        employee = self._get_or_create_employee(
            identifier,
            employee_no=employee_no or None,
            department=_cell(row, mapping.department) or None,
        )

        day = parse_date(date_text)
        if day is None:
            raise RowValueError(f"无效的日期格式: {date_text}", "date")

        check_in = self._parse_time_cell(_cell(row, mapping.check_in_time), day, row_num, warnings)
        check_out = self._parse_time_cell(_cell(row, mapping.check_out_time), day, row_num, warnings)

        status_text = _cell(row, mapping.status)
        status = parse_status(status_text, check_in, check_out)

        work_hours = None
        if check_in is not None and check_out is not None:
            work_hours = calculate_work_hours(check_in, check_out)

        record = AttendanceRecord(
            id=f"record_{int(time.time() * 1000)}_{row_num}",
            employee_id=employee.id,
            employee_name=employee.name,
            date=day,
            status=status,
            check_in_time=check_in,
            check_out_time=check_out,
            leave_type=LEAVE_TYPE_MAP.get(status_text),
            work_hours=work_hours,
            notes=_cell(row, mapping.notes) or None,
        )
        return record, warnings

    def _parse_time_cell(self, text: str, day: datetime, row_num: int, warnings: List[str]) -> Optional[datetime]:
        if not text:
            return None
        parsed = parse_time(text, day)
        if parsed is None:
            warnings.append(f"第{row_num}行: 无法解析时间 {text}")
        return parsed

    def _get_or_create_employee(
        self,
        identifier: str,
        employee_no: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Employee:
        for employee in self._employees.values():
            if employee.name == identifier or employee.employee_no == identifier:
                return employee

        employee = Employee(
            id=f"emp_{self._next_employee_id}",
            name=identifier,
            employee_no=employee_no if employee_no != identifier else None,
            department=department,
        )
        self._next_employee_id += 1
        self._employees[employee.id] = employee
        return employee

    # -------------------------------------------------------------------------
    # Merging and filtering
    # -------------------------------------------------------------------------

    def merge_employees(self, existing: List[Employee], imported: List[Employee]) -> List[Employee]:
        """Match imported employees by name or employee number; matches update the existing entry."""
        merged: Dict[str, Employee] = {e.id: e for e in existing}

        for incoming in imported:
            for emp_id, current in merged.items():
                same_no = current.employee_no and current.employee_no == incoming.employee_no
                if current.name == incoming.name or same_no:
                    updates = {
                        f.name: getattr(incoming, f.name)
                        for f in fields(Employee)
                        if f.name != "id" and getattr(incoming, f.name) is not None
                    }
                    merged[emp_id] = replace(current, **updates)
                    break
            else:
                merged[incoming.id] = incoming

        return list(merged.values())

    def merge_records(self, existing: List[AttendanceRecord], imported: List[AttendanceRecord]) -> List[AttendanceRecord]:
        """One record per employee per day; imported records replace existing ones."""
        merged: Dict[str, AttendanceRecord] = {}
        for record in [*existing, *imported]:
            merged[f"{record.employee_id}_{record.date.date().isoformat()}"] = record
        return list(merged.values())

    def filter_records(
        self,
        records: List[AttendanceRecord],
        date_range: Optional[DateRange] = None,
        employee_ids: Optional[List[str]] = None,
        statuses: Optional[List[AttendanceStatus]] = None,
    ) -> List[AttendanceRecord]:
        filtered = []
        for record in records:
            if date_range and not date_range.contains(record.date):
                continue
            if employee_ids and record.employee_id not in employee_ids:
                continue
            if statuses and record.status not in statuses:
                continue
            filtered.append(record)
        return filtered

    def clear_cache(self):
        """Forget known employees and restart id numbering."""
        self._employees.clear()
        self._next_employee_id = 1


# Singleton instance
_data_importer: Optional[DataImporter] = None


def get_data_importer() -> DataImporter:
    global _data_importer
    if _data_importer is None:
        _data_importer = DataImporter()
    return _data_importer
