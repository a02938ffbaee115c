"""
Tests for the AI table collaborator and its output parsing.

The model router is replaced by a fake that returns canned text.
"""
import json
from types import SimpleNamespace

import pytest

from config.settings import ModelConfig, ModelProvider
from src.core.ai_table_service import AITableService
from src.core.output_schemas import GeneratedTable, TableColumn, extract_json_object, safe_parse_table

TABLE_JSON = json.dumps({
    "title": "会议签到表",
    "columns": [{"key": "name", "title": "姓名"}, {"key": "time", "title": "签到时间", "type": "time"}],
    "rows": [{"name": "张伟", "time": "09:00"}],
    "summary": "共1人",
}, ensure_ascii=False)


class FakeRouter:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def generate_with_system(self, system_prompt, user_message, temperature=None, max_tokens=None):
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.content)


class TestExtractJsonObject:

    def test_plain(self):
        assert extract_json_object(TABLE_JSON)["title"] == "会议签到表"

    def test_markdown_fence(self):
        assert extract_json_object(f"```json\n{TABLE_JSON}\n```")["rows"][0]["name"] == "张伟"

    def test_surrounding_prose(self):
        assert extract_json_object(f"好的，表格如下：{TABLE_JSON} 希望有帮助")["summary"] == "共1人"

    def test_trailing_commas_repaired(self):
        raw = '{"title": "表", "columns": [{"key": "a", "title": "A"},], "rows": [],}'
        assert extract_json_object(raw)["columns"] == [{"key": "a", "title": "A"}]

    def test_no_object(self):
        with pytest.raises(ValueError, match="无法从响应中提取"):
            extract_json_object("not json")

    def test_unrepairable(self):
        with pytest.raises(ValueError):
            extract_json_object('{"title": "表" "rows": }')


class TestSafeParseTable:

    def test_valid(self):
        table, errors = safe_parse_table(TABLE_JSON)
        assert errors == []
        assert table.columns[0].type == "string"
        assert table.columns[1].type == "time"

    def test_schema_violation(self):
        table, errors = safe_parse_table('{"title": "", "columns": [], "rows": []}')
        assert table is None
        assert errors[0].startswith("生成的数据格式不完整")

    def test_non_object(self):
        table, errors = safe_parse_table("[1, 2]")
        assert table is None
        assert errors

    def test_to_dict_drops_missing_summary(self):
        table = GeneratedTable(title="T", columns=[TableColumn(key="a", title="A")], rows=[])
        assert "summary" not in table.to_dict()


class TestAITableService:

    def test_generate_table(self):
        router = FakeRouter(TABLE_JSON)
        response = AITableService(router=router).generate_table("生成会议签到表")

        assert response.success
        assert response.data.title == "会议签到表"
        system_prompt, user_message = router.calls[0]
        assert user_message == "生成会议签到表"
        assert "JSON" in system_prompt

    def test_fenced_response(self):
        response = AITableService(router=FakeRouter(f"```json\n{TABLE_JSON}\n```")).generate_table("x")
        assert response.success

    def test_invalid_json_is_a_failure_value(self):
        response = AITableService(router=FakeRouter("抱歉，我无法完成")).generate_table("x")
        assert not response.success
        assert response.data is None
        assert response.raw_response == "抱歉，我无法完成"
        assert response.error

    def test_router_error_is_contained(self):
        response = AITableService(router=FakeRouter(error=RuntimeError("Request timed out"))).generate_table("x")
        assert not response.success
        assert response.error == "Request timed out"

    def test_enhance_table(self):
        router = FakeRouter(TABLE_JSON)
        table = GeneratedTable(title="旧表", columns=[TableColumn(key="a", title="A")], rows=[])
        response = AITableService(router=router).enhance_table(table, "增加签到时间列")

        assert response.success
        _, user_message = router.calls[0]
        assert "旧表" in user_message
        assert "增加签到时间列" in user_message

    def test_available_with_injected_router(self):
        assert AITableService(router=FakeRouter()).is_available()

    def test_unavailable_without_key(self, monkeypatch):
        monkeypatch.delenv("TEST_ONLY_API_KEY", raising=False)
        config = ModelConfig(provider=ModelProvider.OPENAI, model_name="m", api_key_env="TEST_ONLY_API_KEY")
        service = AITableService(model_config=config)
        assert not service.is_available()

        response = service.generate_table("x")
        assert not response.success
        assert "AI服务未配置" in response.error

    def test_to_dict(self):
        data = AITableService(router=FakeRouter(TABLE_JSON)).generate_table("x").to_dict()
        assert data["success"] is True
        assert data["data"]["columns"][1]["type"] == "time"
