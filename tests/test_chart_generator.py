"""
Tests for chart descriptors and their PNG rendering.
"""
from datetime import date

import pytest

from config.chart_styles import ColorPalette
from src.core.attendance_types import AttendanceStatistics, AttendanceStatus, ChartType, Employee
from src.tools.chart_generator import (
    TREND_FILL,
    generate_attendance_pie_chart,
    generate_chart,
    generate_department_comparison_chart,
    generate_employee_comparison_chart,
    generate_status_bar_chart,
    generate_trend_line_chart,
    generate_work_hours_chart,
)
from tests.conftest import make_record


class TestDescriptors:

    def test_pie_chart(self):
        stats = AttendanceStatistics(total_work_days=20, actual_work_days=15, absent_count=2, leave_days=1)
        chart = generate_attendance_pie_chart(stats)
        assert chart.type == "pie"
        assert chart.labels == ["正常出勤", "缺勤", "请假", "其他"]
        assert chart.datasets[0].data == [15, 2, 1, 2]
        assert chart.legend_position == "right"

    def test_pie_other_never_negative(self):
        stats = AttendanceStatistics(total_work_days=1, actual_work_days=3)
        assert generate_attendance_pie_chart(stats).datasets[0].data[-1] == 0

    def test_custom_palette(self):
        palette = ColorPalette(normal="#000000")
        chart = generate_attendance_pie_chart(AttendanceStatistics(), colors=palette)
        assert chart.datasets[0].background_color[0] == "#000000"

    def test_status_bar_chart(self, records, work_week):
        from src.tools.sheet_generator import calculate_statistics
        chart = generate_status_bar_chart(calculate_statistics(records, work_week))
        assert chart.labels == ["迟到", "早退", "缺勤", "请假"]
        assert chart.datasets[0].data == [1, 0, 1, 1]
        assert chart.options["scales"]["y"]["beginAtZero"] is True

    def test_employee_comparison(self, employees, records):
        stranger = Employee(id="emp_99", name="路人")
        extra = make_record(stranger, date(2024, 6, 10), AttendanceStatus.NORMAL)
        chart = generate_employee_comparison_chart(employees, records + [extra])
        assert chart.labels == ["张伟", "李娜", "王芳"]
        assert chart.datasets[0].data == [2, 0, 0]

    def test_trend_line(self, records, work_week):
        chart = generate_trend_line_chart(records, work_week)
        assert chart.type == "line"
        assert chart.labels == ["06-10", "06-11", "06-12", "06-13", "06-14"]
        assert chart.datasets[0].data == [1, 1, 0, 0, 0]
        assert chart.datasets[0].background_color == TREND_FILL
        assert chart.datasets[0].border_width == 2

    def test_work_hours_buckets(self, employees):
        hours = [5.5, 7.5, 8, 9.9, 11, 12, 13, 0, None]
        records = [
            make_record(employees[0], date(2024, 6, i + 1), AttendanceStatus.NORMAL, work_hours=h)
            for i, h in enumerate(hours)
        ]
        chart = generate_work_hours_chart(records)
        assert chart.labels == ["<6小时", "6-8小时", "8-10小时", "10-12小时", ">12小时"]
        assert chart.datasets[0].data == [1, 1, 2, 1, 2]

    def test_department_comparison(self, employees, records, work_week):
        roster = employees + [Employee(id="emp_4", name="赵敏")]
        chart = generate_department_comparison_chart(roster, records, work_week)
        assert chart.labels == ["技术部", "市场部", "未分配"]
        assert chart.datasets[0].data == [20, 0, 0]
        assert chart.y_max == 100

    @pytest.mark.parametrize("chart_type,title", [
        (ChartType.PIE_ATTENDANCE, "出勤情况分布"),
        (ChartType.BAR_ATTENDANCE, "考勤状态统计"),
        (ChartType.BAR_EMPLOYEE, "员工出勤天数对比"),
        (ChartType.LINE_TREND, "出勤人数趋势"),
        (None, "出勤情况分布"),
    ])
    def test_generate_chart_dispatch(self, employees, records, work_week, chart_type, title):
        chart = generate_chart(chart_type, employees, records, AttendanceStatistics(), work_week)
        assert chart.title == title

    def test_to_dict_uses_chart_keys(self):
        data = generate_status_bar_chart(AttendanceStatistics()).to_dict()
        dataset = data["datasets"][0]
        assert set(dataset) == {"label", "data", "backgroundColor", "borderColor", "borderWidth"}


class TestRenderer:

    @pytest.fixture
    def renderer(self, tmp_path):
        pytest.importorskip("matplotlib")
        from src.tools.charts import ChartRenderer
        return ChartRenderer(output_dir=str(tmp_path))

    def test_pie_png(self, renderer):
        stats = AttendanceStatistics(total_work_days=5, actual_work_days=3, absent_count=1, leave_days=1)
        output = renderer.render(generate_attendance_pie_chart(stats))
        assert output.file_bytes.startswith(b"\x89PNG")
        assert output.alt_text == "pie图表：出勤情况分布"
        with open(output.file_path, "rb") as f:
            assert f.read() == output.file_bytes
        assert output.to_base64()

    def test_empty_pie_still_renders(self, renderer):
        output = renderer.render(generate_attendance_pie_chart(AttendanceStatistics()))
        assert output.file_bytes.startswith(b"\x89PNG")

    def test_bar_and_line(self, renderer, employees, records, work_week):
        bar = renderer.render(generate_department_comparison_chart(employees, records, work_week))
        line = renderer.render(generate_trend_line_chart(records, work_week))
        assert bar.chart_type == "bar"
        assert line.chart_type == "line"
        assert line.width > 0 and line.height > 0


class TestColorConversion:

    @pytest.mark.parametrize("value,expected", [
        ("rgba(25, 118, 210, 0.1)", (25 / 255, 118 / 255, 210 / 255, 0.1)),
        ("rgb(255,0,0)", (1.0, 0.0, 0.0, 1.0)),
        ("#FF0000", "#FF0000"),
        (None, None),
    ])
    def test_to_mpl_color(self, value, expected):
        pytest.importorskip("matplotlib")
        from src.tools.charts import to_mpl_color
        assert to_mpl_color(value) == expected
