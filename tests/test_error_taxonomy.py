"""
Tests for error classification.
"""
import json

import pytest

from src.core.error_taxonomy import (
    AIServiceError,
    ErrorCategory,
    ImportFileError,
    TemplateNotFoundError,
    classify_error,
)


class TestClassifyError:

    def test_pipeline_error_keeps_its_category(self):
        classified = classify_error(
            TemplateNotFoundError("no template", context={"template_type": "CUSTOM"}),
            pipeline_phase="render",
            context={"extra": 1},
        )
        assert classified.category == ErrorCategory.TEMPLATE_NOT_FOUND
        assert classified.pipeline_phase == "render"
        assert classified.context == {"template_type": "CUSTOM", "extra": 1}
        assert classified.user_message == "未找到对应的模板"

    def test_category_override(self):
        error = AIServiceError("no key", category=ErrorCategory.AI_SERVICE_UNAVAILABLE, recoverable=False)
        classified = classify_error(error)
        assert classified.category == ErrorCategory.AI_SERVICE_UNAVAILABLE
        assert not classified.recoverable

    def test_import_error_defaults(self):
        assert classify_error(ImportFileError("missing")).category == ErrorCategory.FILE_READ_ERROR

    def test_json_decode_error(self):
        with pytest.raises(json.JSONDecodeError) as exc_info:
            json.loads("{")
        classified = classify_error(exc_info.value)
        assert classified.category == ErrorCategory.AI_RESPONSE_PARSE_ERROR
        assert classified.recovery_actions[0].action_type == "retry"

    @pytest.mark.parametrize("exception,category", [
        (FileNotFoundError("x.csv"), ErrorCategory.FILE_READ_ERROR),
        (RuntimeError("429 rate limit exceeded"), ErrorCategory.AI_REQUEST_FAILED),
        (RuntimeError("Invalid API key"), ErrorCategory.AI_SERVICE_UNAVAILABLE),
        (TimeoutError("slow"), ErrorCategory.AI_REQUEST_FAILED),
        (ValueError("bad setting"), ErrorCategory.CONFIGURATION_ERROR),
        (RuntimeError("boom"), ErrorCategory.UNKNOWN_ERROR),
    ])
    def test_generic_exceptions(self, exception, category):
        assert classify_error(exception).category == category

    def test_unknown_error_user_message(self):
        classified = classify_error(RuntimeError("boom"))
        assert classified.user_message == "发生错误: boom"

    def test_to_dict(self):
        data = classify_error(TemplateNotFoundError("no template")).to_dict()
        assert data["category"] == "TEMPLATE_NOT_FOUND"
        assert data["severity"] == "high"
