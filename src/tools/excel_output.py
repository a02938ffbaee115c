"""
Excel Workbook Writer

Writes rendered attendance sheets and AI-generated tables into .xlsx files.

Location strings address a target inside a workbook:
    "report.xlsx"               first sheet, cell A1
    "report.xlsx!考勤表"         named sheet (created when missing), cell A1
    "report.xlsx!考勤表!B3"      named sheet, top-left corner at B3

Existing workbooks are opened and updated in place; other sheets are kept.
"""
import logging
from pathlib import Path
from typing import Any, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

try:
    import openpyxl
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
    from openpyxl.utils import get_column_letter
    from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
    HAS_OPENPYXL = True
except ImportError:
    HAS_OPENPYXL = False
    logger.warning("openpyxl not installed - Excel output disabled")

from config.chart_styles import get_chart_style
from src.core.error_taxonomy import USER_MESSAGES, ErrorCategory, classify_error
from src.core.output_schemas import GeneratedTable
from src.tools.template_engine import CellStyle, RenderResult

DEFAULT_SHEET = "考勤表"
# Pixel to Excel unit conversions (Calibri 11 default metrics)
PX_PER_CHAR = 7
PT_PER_PX = 0.75
VERTICAL_ALIGN = {"top": "top", "middle": "center", "bottom": "bottom"}


@dataclass
class WriteResult:
    """Outcome of a write. Failures carry an error message instead of raising."""
    success: bool
    path: Optional[str] = None
    sheet: Optional[str] = None
    error: Optional[str] = None


@dataclass
class WriteLocation:
    path: Path
    sheet: Optional[str] = None
    row: int = 1
    column: int = 1


def parse_location(location: str) -> WriteLocation:
    """
    Split "<path>[!<sheet>[!<cell>]]" into its parts.

    Raises:
        ValueError: empty path or malformed cell reference
    """
    parts = location.split("!")
    if not parts[0].strip():
        raise ValueError(f"Invalid location: {location!r}")

    target = WriteLocation(path=Path(parts[0].strip()))
    if len(parts) > 1 and parts[1].strip():
        target.sheet = parts[1].strip()
    if len(parts) > 2 and parts[2].strip():
        column_letter, row = coordinate_from_string(parts[2].strip().upper())
        target.row = row
        target.column = column_index_from_string(column_letter)
    return target


def px_to_chars(px: int) -> float:
    return round(px / PX_PER_CHAR, 2)


def px_to_points(px: int) -> float:
    return px * PT_PER_PX


class ExcelWriter:
    """
    Writes RenderResult and GeneratedTable values into workbooks.
    """

    def __init__(self, output_dir: str = ".outputs"):
        if not HAS_OPENPYXL:
            raise ImportError("Install openpyxl: pip install openpyxl")

        self.output_dir = Path(output_dir)
        self.config = get_chart_style()

    # -------------------------------------------------------------------------
    # Public writer contract
    # -------------------------------------------------------------------------

    def write_render_result(self, result: RenderResult, location: str) -> WriteResult:
        """Write a rendered sheet with its styles, merges, widths and heights."""
        return self._write(location, lambda ws, origin: self._write_render_result(ws, origin, result))

    def write_generic_table(self, table: GeneratedTable, location: str) -> WriteResult:
        """Write an AI-generated table: title row, header row, data rows, optional summary."""
        return self._write(location, lambda ws, origin: self._write_generic_table(ws, origin, table))

    def default_location(self, title: str, sheet: Optional[str] = None) -> str:
        """Location for a new workbook in the output directory, named after the title."""
        safe_title = "".join(c if c.isalnum() else "_" for c in title)[:50] or "attendance"
        location = str(self.output_dir / f"{safe_title}.xlsx")
        return f"{location}!{sheet}" if sheet else location

    # -------------------------------------------------------------------------
    # Workbook handling
    # -------------------------------------------------------------------------

    def _write(self, location: str, fill) -> WriteResult:
        try:
            target = parse_location(location)
            workbook, worksheet = self._open(target)
            fill(worksheet, (target.row, target.column))
            target.path.parent.mkdir(parents=True, exist_ok=True)
            workbook.save(target.path)
        except Exception as e:
            classified = classify_error(e, pipeline_phase="excel_write", context={"location": location})
            logger.warning(f"Workbook write to {location} failed ({classified.category.name}): {e}")
            return WriteResult(success=False, error=f"{USER_MESSAGES[ErrorCategory.WRITER_FAILED]}: {e}")

        logger.info(f"Wrote sheet '{worksheet.title}' to {target.path}")
        return WriteResult(success=True, path=str(target.path), sheet=worksheet.title)

    def _open(self, target: WriteLocation):
        if target.path.exists():
            workbook = openpyxl.load_workbook(target.path)
            if target.sheet is None:
                return workbook, workbook.worksheets[0]
            if target.sheet in workbook.sheetnames:
                return workbook, workbook[target.sheet]
            return workbook, workbook.create_sheet(target.sheet)

        workbook = openpyxl.Workbook()
        worksheet = workbook.active
        worksheet.title = target.sheet or DEFAULT_SHEET
        return workbook, worksheet

    # -------------------------------------------------------------------------
    # Styling
    # -------------------------------------------------------------------------

    def _font(self, style: Optional[CellStyle], bold: bool = False, size: Optional[int] = None) -> "Font":
        family = self.config.typography.family
        if style is None:
            return Font(name=family, size=size or self.config.typography.body_size, bold=bold)
        return Font(
            name=family,
            size=style.font_size or size or self.config.typography.body_size,
            bold=style.bold or bold,
            color=style.font_color.lstrip('#') if style.font_color else None,
        )

    def _apply_style(self, cell, style: Optional[CellStyle], default_align: str = "center", bold: bool = False,
                     size: Optional[int] = None):
        cell.font = self._font(style, bold=bold, size=size)
        if style is None:
            cell.alignment = Alignment(horizontal=default_align, vertical="center")
            return
        if style.background_color:
            color = style.background_color.lstrip('#')
            cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        cell.alignment = Alignment(
            horizontal=style.align or default_align,
            vertical=VERTICAL_ALIGN.get(style.vertical_align or "middle", "center"),
        )
        if style.border is not None:
            side = Side(style=style.border.style, color=style.border.color.lstrip('#'))
            cell.border = Border(left=side, right=side, top=side, bottom=side)

    # -------------------------------------------------------------------------
    # Fillers
    # -------------------------------------------------------------------------

    def _write_render_result(self, ws, origin: Tuple[int, int], result: RenderResult):
        top, left = origin
        header_style = result.styles.get("header")
        body_style = result.styles.get("body")
        title_style = result.styles.get("title") or header_style
        banner_rows = len(result.headers) - 1

        row = top
        for i, header_row in enumerate(result.headers):
            is_banner = i < banner_rows
            for j, value in enumerate(header_row):
                cell = ws.cell(row=row, column=left + j, value=value)
                if is_banner:
                    size = self.config.typography.title_size if i == 0 else None
                    self._apply_style(cell, title_style, bold=i == 0, size=size)
                else:
                    self._apply_style(cell, header_style, bold=True)
            # Banner rows are merged across the table; style the covered cells too
            if is_banner:
                for j in range(len(header_row), result.column_count):
                    self._apply_style(ws.cell(row=row, column=left + j), title_style)
            row += 1

        for data_row in result.rows:
            for j, value in enumerate(data_row):
                cell = ws.cell(row=row, column=left + j, value=value)
                self._apply_style(cell, body_style)
            row += 1

        for merge in result.merges:
            ws.merge_cells(
                start_row=top + merge.start_row,
                start_column=left + merge.start_col,
                end_row=top + merge.end_row,
                end_column=left + merge.end_col,
            )

        for j, width in enumerate(result.column_widths):
            ws.column_dimensions[get_column_letter(left + j)].width = px_to_chars(width)

        for i, height in enumerate(result.row_heights):
            ws.row_dimensions[top + i].height = px_to_points(height)

    def _write_generic_table(self, ws, origin: Tuple[int, int], table: GeneratedTable):
        top, left = origin
        column_count = max(len(table.columns), 1)
        colors = self.config.colors
        header_style = CellStyle(background_color=colors.header_bg, font_color=colors.text_light, font_weight="bold")

        title_cell = ws.cell(row=top, column=left, value=table.title)
        self._apply_style(title_cell, None, bold=True, size=self.config.typography.title_size)
        if column_count > 1:
            ws.merge_cells(start_row=top, start_column=left, end_row=top, end_column=left + column_count - 1)

        header_row = top + 1
        for j, column in enumerate(table.columns):
            cell = ws.cell(row=header_row, column=left + j, value=column.title)
            self._apply_style(cell, header_style)

        row = header_row + 1
        for data in table.rows:
            for j, column in enumerate(table.columns):
                cell = ws.cell(row=row, column=left + j, value=self._cell_value(data.get(column.key)))
                self._apply_style(cell, None, default_align="right" if column.type == "number" else "center")
            row += 1

        if table.summary:
            cell = ws.cell(row=row + 1, column=left, value=table.summary)
            self._apply_style(cell, None, default_align="left")

        for j, column in enumerate(table.columns):
            longest = max(
                [len(str(column.title))] + [len(str(r.get(column.key, ""))) for r in table.rows]
            )
            ws.column_dimensions[get_column_letter(left + j)].width = min(longest * 2 + 2, 50)

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        return str(value)


def get_excel_writer(output_dir: str = ".outputs") -> Optional[ExcelWriter]:
    """Get Excel writer instance, or None when openpyxl is unavailable."""
    if not HAS_OPENPYXL:
        return None
    return ExcelWriter(output_dir)
