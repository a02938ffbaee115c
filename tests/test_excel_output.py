"""
Tests for the workbook writer.
"""
from datetime import date
from pathlib import Path

import pytest

openpyxl = pytest.importorskip("openpyxl")

from src.core.output_schemas import GeneratedTable, TableColumn  # noqa: E402
from src.tools.excel_output import ExcelWriter, parse_location, px_to_chars, px_to_points  # noqa: E402
from src.tools.sheet_generator import SheetGenerator  # noqa: E402
from src.tools.template_engine import TemplateEngine, TemplateRegistry  # noqa: E402


@pytest.fixture
def writer(tmp_path):
    return ExcelWriter(output_dir=str(tmp_path))


@pytest.fixture
def daily_render(employees, records):
    generator = SheetGenerator(TemplateEngine(TemplateRegistry()))
    return generator.generate_daily(date(2024, 6, 10), employees, records).render_result


class TestParseLocation:

    def test_path_only(self):
        target = parse_location("report.xlsx")
        assert target.path == Path("report.xlsx")
        assert target.sheet is None
        assert (target.row, target.column) == (1, 1)

    def test_sheet_and_cell(self):
        target = parse_location("report.xlsx!考勤表!c3")
        assert target.sheet == "考勤表"
        assert (target.row, target.column) == (3, 3)

    @pytest.mark.parametrize("location", ["", "  ", "!考勤表"])
    def test_missing_path(self, location):
        with pytest.raises(ValueError):
            parse_location(location)

    def test_unit_conversions(self):
        assert px_to_chars(50) == 7.14
        assert px_to_points(30) == 22.5


class TestWriteRenderResult:

    def test_layout_at_offset(self, writer, daily_render, tmp_path):
        path = tmp_path / "out.xlsx"
        result = writer.write_render_result(daily_render, f"{path}!考勤表!B2")

        assert result.success
        assert result.sheet == "考勤表"

        ws = openpyxl.load_workbook(path)["考勤表"]
        assert ws["B2"].value == "2024-06-10 考勤日报"
        assert ws["B3"].value == "2024-06-10 至 2024-06-10"
        assert ws["B4"].value == "序号"
        assert ws["G4"].value == "状态"
        assert ws["C5"].value == "张伟"
        assert ws["G6"].value == "缺勤"
        assert {"B2:G2", "B3:G3"} <= {str(r) for r in ws.merged_cells.ranges}
        assert ws.column_dimensions["B"].width == pytest.approx(7.14)
        assert ws.row_dimensions[2].height == pytest.approx(22.5)
        assert ws.row_dimensions[5].height == pytest.approx(16.5)
        assert ws["B4"].font.bold
        assert ws["B4"].fill.start_color.rgb.endswith("4472C4")

    def test_default_sheet_name(self, writer, daily_render, tmp_path):
        path = tmp_path / "plain.xlsx"
        assert writer.write_render_result(daily_render, str(path)).sheet == "考勤表"

    def test_existing_workbook_keeps_other_sheets(self, writer, daily_render, tmp_path):
        path = tmp_path / "book.xlsx"
        writer.write_render_result(daily_render, f"{path}!一月")
        writer.write_render_result(daily_render, f"{path}!二月")
        assert openpyxl.load_workbook(path).sheetnames == ["一月", "二月"]

    def test_failure_is_a_value(self, writer, daily_render):
        result = writer.write_render_result(daily_render, "")
        assert not result.success
        assert result.error.startswith("写入文档失败")


class TestWriteGenericTable:

    def test_table_layout(self, writer, tmp_path):
        table = GeneratedTable(
            title="会议签到表",
            columns=[TableColumn(key="name", title="姓名"), TableColumn(key="hours", title="时长", type="number")],
            rows=[{"name": "张伟", "hours": 2}, {"name": "李娜"}],
            summary="共2人",
        )
        path = tmp_path / "generic.xlsx"
        result = writer.write_generic_table(table, str(path))
        assert result.success

        ws = openpyxl.load_workbook(path).active
        assert ws["A1"].value == "会议签到表"
        assert "A1:B1" in {str(r) for r in ws.merged_cells.ranges}
        assert [ws["A2"].value, ws["B2"].value] == ["姓名", "时长"]
        assert [ws["A3"].value, ws["B3"].value] == ["张伟", 2]
        assert ws["B4"].value is None
        assert ws["A6"].value == "共2人"


def test_default_location(writer, tmp_path):
    assert writer.default_location("2024-06 考勤") == str(tmp_path / "2024_06_考勤.xlsx")
    assert writer.default_location("日报", sheet="考勤表").endswith("日报.xlsx!考勤表")
