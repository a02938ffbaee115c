"""
Tests for the template registry and the render pipeline.
"""
from datetime import date

import pytest

from src.core.attendance_calendar import day_range
from src.core.attendance_types import TemplateType
from src.core.error_taxonomy import ErrorCategory, TemplateNotFoundError
from src.tools.template_engine import (
    AttendanceTemplate,
    Merge,
    TemplateContext,
    TemplateEngine,
    TemplateHeader,
    TemplateRegistry,
    clone_template,
)


@pytest.fixture
def engine():
    return TemplateEngine(TemplateRegistry())


@pytest.fixture
def zhang():
    return {"id": "emp_1", "name": "张伟", "department": "技术部", "employeeNo": "E0001"}


def custom_template(*fields):
    return AttendanceTemplate(
        id="custom",
        name="自定义",
        type=TemplateType.CUSTOM,
        headers=[TemplateHeader(title=f, field=f) for f in fields],
    )


class TestRegistry:

    def test_every_default_type_resolves(self):
        registry = TemplateRegistry()
        for template_type in TemplateType:
            if template_type == TemplateType.CUSTOM:
                continue
            assert registry.get_template(template_type).type == template_type

    def test_custom_type_has_no_default(self):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            TemplateRegistry().get_template(TemplateType.CUSTOM)
        assert exc_info.value.category == ErrorCategory.TEMPLATE_NOT_FOUND

    def test_registries_do_not_share_defaults(self):
        first, second = TemplateRegistry(), TemplateRegistry()
        first.get_template(TemplateType.DAILY_SIMPLE).headers[0].title = "编号"
        assert second.get_template(TemplateType.DAILY_SIMPLE).headers[0].title == "序号"

    def test_default_is_not_changed_through_lookup(self):
        registry = TemplateRegistry()
        template = registry.get_template(TemplateType.DAILY_SIMPLE)
        template.headers[0].title = "编号"
        template.styles.header.background_color = "#000000"
        template.columns.clear()

        fresh = registry.get_template(TemplateType.DAILY_SIMPLE)
        assert fresh.headers[0].title == "序号"
        assert fresh.styles.header.background_color == "#4472C4"
        assert fresh.columns

    def test_listing_hands_out_copies_of_defaults(self):
        registry = TemplateRegistry()
        registry.get_all_templates()[0].name = "改名"
        assert registry.get_all_templates()[0].name != "改名"

    def test_register_and_list(self):
        registry = TemplateRegistry()
        template = custom_template("name")
        registry.register_template(template)
        assert registry.get_custom_template("custom") is template
        assert registry.get_custom_template("missing") is None
        assert len(registry.get_all_templates()) == 6

    def test_clone_is_independent(self):
        original = TemplateRegistry().get_template(TemplateType.DAILY_DETAILED)
        clone = clone_template(original, "copy", "副本")

        clone.headers[0].title = "编号"
        clone.columns.pop()
        clone.styles.header.background_color = "#000000"

        assert clone.id == "copy" and clone.name == "副本"
        assert original.headers[0].title == "序号"
        assert len(original.columns) == 10
        assert original.styles.header.background_color == "#4472C4"

    def test_load_templates_from_yaml(self, tmp_path):
        path = tmp_path / "templates.yaml"
        path.write_text(
            "templates:\n"
            "  - id: overtime-report\n"
            "    name: 加班统计表\n"
            "    base: MONTHLY_SUMMARY\n"
            "    headers:\n"
            "      - {title: 姓名, field: name, width: 80}\n"
            "      - {title: 加班, field: overtimeHours}\n"
            "    styles:\n"
            "      header: {background_color: \"#000000\", font_weight: bold}\n"
            "  - id: sign-in\n"
            "    name: 签到表\n"
            "    headers:\n"
            "      - {title: 姓名, field: name}\n",
            encoding="utf-8",
        )
        registry = TemplateRegistry()
        loaded = registry.load_templates_from_yaml(path)

        assert [t.id for t in loaded] == ["overtime-report", "sign-in"]
        overtime = registry.get_custom_template("overtime-report")
        assert overtime.type == TemplateType.CUSTOM
        assert [h.field for h in overtime.headers] == ["name", "overtimeHours"]
        assert overtime.resolvers == {}
        assert overtime.styles.header.background_color == "#000000"
        assert overtime.styles.header.bold
        # Base styles that were not overridden survive
        assert overtime.styles.title.font_size == 16

    def test_unknown_style_region_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "templates:\n"
            "  - id: bad\n"
            "    name: 坏模板\n"
            "    styles:\n"
            "      footer: {font_size: 9}\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError):
            TemplateRegistry().load_templates_from_yaml(path)


class TestRender:

    def test_full_layout(self, engine, zhang):
        template = engine.registry.get_template(TemplateType.DAILY_SIMPLE)
        context = TemplateContext(
            title="2024-06-10 考勤日报",
            date_range=day_range(date(2024, 6, 10)),
            employees=[zhang],
            records=[{"employeeId": "emp_1", "checkInTime": "09:00", "checkOutTime": "18:00", "status": "正常"}],
        )
        result = engine.render(template, context)

        assert result.headers == [
            ["2024-06-10 考勤日报"],
            ["2024-06-10 至 2024-06-10"],
            ["序号", "姓名", "部门", "签到时间", "签退时间", "状态"],
        ]
        assert result.rows == [[1, "张伟", "技术部", "09:00", "18:00", "正常"]]
        assert result.merges == [Merge(0, 0, 0, 5), Merge(1, 0, 1, 5)]
        assert result.column_widths == [50, 80, 100, 100, 100, 80]
        assert result.row_heights == [30, 25, 25, 22]
        assert set(result.styles) == {"header", "body", "title"}

    def test_without_title_or_range(self, engine, zhang):
        template = engine.registry.get_template(TemplateType.DAILY_SIMPLE)
        result = engine.render(template, TemplateContext(employees=[zhang]))
        assert len(result.headers) == 1
        assert result.merges == []
        assert result.row_heights == [25, 22]

    def test_range_without_title(self, engine, zhang):
        template = engine.registry.get_template(TemplateType.DAILY_SIMPLE)
        result = engine.render(template, TemplateContext(date_range=day_range(date(2024, 6, 10)), employees=[zhang]))
        assert result.merges == [Merge(0, 0, 0, 5)]
        assert result.row_heights == [25, 25, 22]

    def test_employee_without_records_gets_defaults(self, engine, zhang):
        template = engine.registry.get_template(TemplateType.DAILY_DETAILED)
        result = engine.render(template, TemplateContext(employees=[zhang], records=None))
        assert result.rows == [[1, "E0001", "张伟", "技术部", "", "", 0, 0, "", ""]]

    def test_zero_is_kept(self, engine):
        result = engine.render(custom_template("lateCount"), TemplateContext(employees=[{"id": "x", "lateCount": 0}]))
        assert result.rows == [[0]]

    def test_empty_string_falls_back(self, engine):
        result = engine.render(custom_template("phone"), TemplateContext(employees=[{"id": "x", "phone": ""}]))
        assert result.rows == [[""]]

    @pytest.mark.parametrize("template_type", [t for t in TemplateType if t != TemplateType.CUSTOM])
    def test_no_employees_no_rows(self, engine, template_type):
        template = engine.registry.get_template(template_type)
        context = TemplateContext(
            title="空表",
            employees=[],
            records=[{"employeeId": "emp_1", "status": "正常"}],
        )
        result = engine.render(template, context)
        assert result.rows == []
        assert len(result.headers[-1]) == len(template.headers)
        assert result.row_heights == [30, 25]

    def test_width_defaults_to_100(self, engine):
        assert engine.render(custom_template("name"), TemplateContext()).column_widths == [100]

    def test_monthly_overtime_comes_from_employee_totals(self, engine):
        template = engine.registry.get_template(TemplateType.MONTHLY_SUMMARY)
        context = TemplateContext(
            employees=[{"id": "emp_1", "overtimeHours": 3.5}],
            records=[{"employeeId": "emp_1", "overtimeHours": 1}],
        )
        row = engine.render(template, context).rows[0]
        assert row[11] == 3.5

    def test_template_resolver_override(self, engine, zhang):
        template = custom_template("name")
        template.resolvers["name"] = lambda employee, records, index: employee["name"] + "*"
        assert engine.render(template, TemplateContext(employees=[zhang])).rows == [["张伟*"]]

    def test_to_dict(self, engine, zhang):
        template = engine.registry.get_template(TemplateType.DAILY_SIMPLE)
        data = engine.render(template, TemplateContext(title="T", employees=[zhang])).to_dict()
        assert data["merges"] == [{"start_row": 0, "start_col": 0, "end_row": 0, "end_col": 5}]
        assert data["styles"]["header"]["font_weight"] == "bold"
