"""
End-to-end checks of the command-line entry point (local mode, mock data).
"""
import json
import sys

import pytest

import main


def run(monkeypatch, *argv):
    monkeypatch.setenv("NLP_MODE", "local")
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    main.main()


def test_parse_prints_result_json(monkeypatch, capsys):
    run(monkeypatch, "parse", "生成本月考勤表")
    output = json.loads(capsys.readouterr().out)
    assert output["intent"] == "CREATE_MONTHLY"
    assert output["validation"] == {"valid": True, "missing_entities": []}


def test_parse_reports_missing_entities(monkeypatch, capsys):
    run(monkeypatch, "parse", "生成考勤饼图")
    output = json.loads(capsys.readouterr().out)
    assert output["intent"] == "GENERATE_CHART"
    assert output["validation"]["valid"] is True


def test_generate_writes_workbook(monkeypatch, capsys, tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "cli.xlsx"
    run(monkeypatch, "generate", "生成技术部本月考勤表", "--excel", "--output", f"{path}!月报", "--employees", "5")

    out = capsys.readouterr().out
    assert "CREATE_MONTHLY" in out
    assert "月度考勤汇总表" in out
    assert path.exists()


def test_templates_lists_defaults(monkeypatch, capsys):
    run(monkeypatch, "templates")
    out = capsys.readouterr().out
    for template_id in ("daily-simple", "daily-detailed", "weekly-summary", "monthly-summary", "monthly-detailed"):
        assert template_id in out


def test_import_report(monkeypatch, capsys, tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("姓名,日期,状态\n张伟,2024-06-10,正常\n,2024-06-10,正常\n", encoding="utf-8")
    run(monkeypatch, "import", str(path))
    out = capsys.readouterr().out
    assert "Imported: 1" in out
    assert "第3行: 员工标识不能为空" in out


def test_no_command_exits(monkeypatch):
    with pytest.raises(SystemExit):
        run(monkeypatch)
