"""
Tests for seeded mock data and its round trip through the importer.
"""
from src.core.attendance_calendar import month_range
from src.core.attendance_types import AttendanceStatus
from src.core.command_processor import normalize_input
from src.tools.data_importer import DataImporter, detect_column_mapping
from src.tools.mock_data_generator import (
    MOCK_DEPARTMENTS,
    MOCK_NAMES,
    generate_mock_attendance_data,
    generate_mock_employees,
    get_mock_column_names,
    records_to_rows,
)


class TestMockData:

    def test_deterministic(self):
        june = month_range(2024, 6)
        first = generate_mock_attendance_data(june, employee_count=5, seed=7)
        second = generate_mock_attendance_data(june, employee_count=5, seed=7)
        assert first == second

    def test_employees(self):
        employees = generate_mock_employees(6)
        assert [e.id for e in employees] == [f"emp_{i}" for i in range(1, 7)]
        assert employees[0].employee_no == "E0001"
        assert employees[5].department == MOCK_DEPARTMENTS[0]
        assert len({e.name for e in employees}) == 6

    def test_count_capped_at_name_pool(self):
        assert len(generate_mock_employees(100)) == len(MOCK_NAMES)

    def test_names_survive_normalization(self):
        for name in MOCK_NAMES:
            assert normalize_input(name) == name

    def test_one_record_per_employee_per_work_day(self):
        employees, records = generate_mock_attendance_data(month_range(2024, 6), employee_count=3)
        assert len(records) == 3 * 20
        assert all(r.date.weekday() < 5 for r in records)
        assert len({r.id for r in records}) == len(records)

    def test_times_match_status(self):
        _, records = generate_mock_attendance_data(month_range(2024, 6), employee_count=10)
        for record in records:
            if record.status in (AttendanceStatus.ABSENT, AttendanceStatus.LEAVE):
                assert record.check_in_time is None and record.work_hours is None
            else:
                assert record.check_in_time < record.check_out_time
            if record.status == AttendanceStatus.LATE:
                assert record.late_minutes > 0
            if record.status == AttendanceStatus.OVERTIME:
                assert record.overtime_hours > 0


class TestExportRoundTrip:

    def test_rows_import_back(self):
        employees, records = generate_mock_attendance_data(month_range(2024, 6), employee_count=3)
        rows = records_to_rows(employees, records)
        assert rows[0] == get_mock_column_names()

        result = DataImporter().import_from_array(rows, detect_column_mapping(rows[0]))
        assert result.errors == []
        assert len(result.records) == len(records)
        assert [r.status for r in result.records] == [r.status for r in records]
        assert {e.department for e in result.employees} == {e.department for e in employees}
