"""
Tests for entity extraction.

All date expectations use the fixed clock 2024-06-15 (a Saturday).
"""
from datetime import datetime

import pytest

from src.core.attendance_calendar import END_OF_DAY, DateRange
from src.core.attendance_types import ChartType, ColumnType, OutputFormat, StatisticType, TemplateType
from src.core.entity_extractor import (
    extract_chart_type,
    extract_column_names,
    extract_columns,
    extract_date_range,
    extract_department,
    extract_employees,
    extract_entities,
    extract_output_format,
    extract_statistics,
    extract_template_type,
)


def days(start, end):
    """Inclusive whole-day range between two (y, m, d) tuples."""
    return DateRange(datetime(*start), datetime.combine(datetime(*end).date(), END_OF_DAY))


class TestDateRange:
    """Date-range resolution order and arithmetic."""

    @pytest.mark.parametrize("text,expected", [
        ("生成今天的考勤表", days((2024, 6, 15), (2024, 6, 15))),
        ("生成昨天的考勤表", days((2024, 6, 14), (2024, 6, 14))),
        ("生成本周考勤表", days((2024, 6, 10), (2024, 6, 16))),
        ("生成上周考勤表", days((2024, 6, 3), (2024, 6, 9))),
        ("上1周考勤", days((2024, 6, 3), (2024, 6, 9))),
        ("生成本月考勤表", days((2024, 6, 1), (2024, 6, 30))),
        ("生成上个月考勤表", days((2024, 5, 1), (2024, 5, 31))),
        ("今年的出勤率", days((2024, 1, 1), (2024, 12, 31))),
        ("去年的出勤率", days((2023, 1, 1), (2023, 12, 31))),
    ])
    def test_relative_keywords(self, now, text, expected):
        assert extract_date_range(text, now) == expected

    def test_relative_keyword_wins_over_explicit_month(self, now):
        assert extract_date_range("本月3月考勤", now) == days((2024, 6, 1), (2024, 6, 30))

    def test_year_month(self, now):
        assert extract_date_range("生成2023年2月考勤表", now) == days((2023, 2, 1), (2023, 2, 28))

    def test_month_not_after_current_month_is_this_year(self, now):
        assert extract_date_range("生成3月考勤表", now) == days((2024, 3, 1), (2024, 3, 31))

    def test_month_after_current_month_is_last_year(self, now):
        assert extract_date_range("生成8月考勤表", now) == days((2023, 8, 1), (2023, 8, 31))

    @pytest.mark.parametrize("text,expected", [
        ("生成今年3月考勤表", days((2024, 3, 1), (2024, 3, 31))),
        ("生成去年12月考勤表", days((2023, 12, 1), (2023, 12, 31))),
        ("今年8月的出勤率", days((2024, 8, 1), (2024, 8, 31))),
        ("去年3月1日到15日的考勤", days((2023, 3, 1), (2023, 3, 15))),
    ])
    def test_year_keyword_sets_year_of_month(self, now, text, expected):
        assert extract_date_range(text, now) == expected

    def test_cross_month_range(self, now):
        assert extract_date_range("3月1日到4月15日的考勤", now) == days((2024, 3, 1), (2024, 4, 15))

    def test_same_month_range(self, now):
        assert extract_date_range("3月1日到15日的考勤", now) == days((2024, 3, 1), (2024, 3, 15))

    @pytest.mark.parametrize("text", [
        "3月15日到3月1日",   # reversed
        "2月30日到3月1日",   # impossible date
        "13月考勤",          # invalid month
    ])
    def test_invalid_ranges_are_a_miss(self, now, text):
        assert extract_date_range(text, now) is None

    def test_no_date(self, now):
        assert extract_date_range("导入考勤数据", now) is None

    def test_end_is_last_millisecond(self, now):
        date_range = extract_date_range("今天", now)
        assert date_range.end.microsecond == 999000
        assert date_range.start <= date_range.end


class TestEmployeesAndDepartment:
    """Employee lists and department names."""

    @pytest.mark.parametrize("text,expected", [
        ("生成考勤表，包含张伟、李娜", ["张伟", "李娜"]),
        ("员工为: 张伟,李娜 王芳", ["张伟", "李娜", "王芳"]),
    ])
    def test_explicit_list(self, text, expected):
        assert extract_employees(text) == expected

    def test_explicit_list_drops_non_names(self):
        assert extract_employees("包含张伟、Tom、欧阳娜娜娜") == ["张伟"]

    def test_fallback_subtracts_domain_words(self):
        assert extract_employees("考勤，张伟，李娜") == ["张伟", "李娜"]

    def test_fallback_keeps_unknown_phrases(self):
        """Known limitation: any CJK run that is not excluded reads as a name."""
        assert extract_employees("生成本月考勤表") == ["生成本月", "考勤表"]

    def test_no_cjk(self):
        assert extract_employees("export 2024") == []

    @pytest.mark.parametrize("text,expected", [
        ("技术部的考勤", "技术部"),
        ("生成技术部考勤表", "技术部"),
        ("查看销售部门的出勤率", "销售部门"),
        ("研发中心本月考勤", "研发中心"),
        ("生成本月市场组考勤", "市场组"),
    ])
    def test_department(self, text, expected):
        assert extract_department(text) == expected

    def test_department_stopword_skipped(self):
        assert extract_department("全部员工的考勤") is None

    def test_no_department(self):
        assert extract_department("生成本月考勤表") is None


class TestClassifiers:
    """Chart, statistic, column, format and template hints."""

    @pytest.mark.parametrize("text,expected", [
        ("生成出勤率饼图", ChartType.PIE_ATTENDANCE),
        ("考勤柱状图", ChartType.BAR_ATTENDANCE),
        ("员工出勤柱状图", ChartType.BAR_EMPLOYEE),
        ("各部门对比条形图", ChartType.BAR_EMPLOYEE),
        ("出勤折线图", ChartType.LINE_TREND),
        ("出勤趋势", ChartType.LINE_TREND),
        ("生成考勤表", None),
    ])
    def test_chart_type(self, text, expected):
        assert extract_chart_type(text) == expected

    def test_statistics_in_table_order(self):
        assert extract_statistics("统计早退和迟到") == [StatisticType.LATE_COUNT, StatisticType.EARLY_LEAVE_COUNT]

    def test_all_statistics(self):
        text = "出勤率 迟到 早退 缺勤 请假 加班 工时"
        assert extract_statistics(text) == list(StatisticType)

    def test_columns(self):
        assert extract_columns("显示签到时间和备注") == [ColumnType.CHECK_IN, ColumnType.NOTES]

    def test_column_names(self):
        assert extract_column_names("列名：姓名、部门、状态") == ["姓名", "部门", "状态"]

    @pytest.mark.parametrize("text,expected", [
        ("导出为Excel", OutputFormat.EXCEL),
        ("导出PDF", OutputFormat.PDF),
        ("保存为word文档", OutputFormat.WORD),
        ("导出", None),
    ])
    def test_output_format(self, text, expected):
        assert extract_output_format(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("生成简单考勤表", TemplateType.DAILY_SIMPLE),
        ("生成详细考勤表", TemplateType.DAILY_DETAILED),
        ("生成考勤汇总", TemplateType.MONTHLY_SUMMARY),
        ("生成考勤表", None),
    ])
    def test_template_type(self, text, expected):
        assert extract_template_type(text) == expected


class TestExtractEntities:
    """The combined extractor."""

    def test_combined(self, now):
        entities = extract_entities("生成技术部本月考勤饼图", now)
        assert entities.date_range == days((2024, 6, 1), (2024, 6, 30))
        assert entities.department == "技术部"
        assert entities.chart_type == ChartType.PIE_ATTENDANCE

    def test_empty_lists_become_none(self, now):
        entities = extract_entities("hello", now)
        assert entities.employees is None
        assert entities.statistics is None
        assert entities.is_empty()

    def test_to_dict(self, now):
        data = extract_entities("生成本月考勤饼图", now).to_dict()
        assert data["chart_type"] == "PIE_ATTENDANCE"
        assert data["date_range"]["start"] == "2024-06-01T00:00:00"
