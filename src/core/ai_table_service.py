"""
AI Table Service

Remote collaborator that turns a free-text request into a GeneratedTable.
Used by the command processor only when local rules are not enough.

Contract: request = free text, response = AIResponse(success, data?, error?).
Nothing here raises past generate_table / enhance_table.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from config.settings import ModelConfig, get_config
from src.core.error_taxonomy import AIServiceError, ErrorCategory, classify_error
from src.core.model_router import ModelRouter
from src.core.output_schemas import GeneratedTable, safe_parse_table
from src.core.prompt_manager import PromptManager, get_prompt_manager

logger = logging.getLogger(__name__)

PROMPT_NAME = "table_generation"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048


@dataclass
class AIResponse:
    """Envelope returned by the AI collaborator."""
    success: bool
    data: Optional[GeneratedTable] = None
    error: Optional[str] = None
    raw_response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data.to_dict() if self.data else None,
            "error": self.error,
        }


class AITableService:
    """
    Generates and edits generic tables through the model router.

    A router can be injected (tests use a fake); otherwise one is built from
    ACTIVE_MODEL on first use.
    """

    def __init__(
        self,
        router: Optional[ModelRouter] = None,
        model_config: Optional[ModelConfig] = None,
        prompt_manager: Optional[PromptManager] = None,
    ):
        self._router = router
        self._model_config = model_config
        self._prompt_manager = prompt_manager

    @property
    def model_config(self) -> Optional[ModelConfig]:
        if self._model_config is None:
            try:
                self._model_config = get_config().model_config
            except ValueError as e:
                logger.warning(f"AI model misconfigured: {e}")
                return None
        return self._model_config

    def is_available(self) -> bool:
        """True when a router is injected or the active model has an API key."""
        if self._router is not None:
            return True
        config = self.model_config
        return config is not None and config.is_configured

    def _get_router(self) -> ModelRouter:
        if self._router is None:
            if not self.is_available():
                raise AIServiceError(
                    "AI服务未配置，请检查API密钥和端点",
                    category=ErrorCategory.AI_SERVICE_UNAVAILABLE,
                    recoverable=False,
                )
            self._router = ModelRouter(self.model_config)
        return self._router

    def _prompts(self) -> PromptManager:
        return self._prompt_manager or get_prompt_manager()

    def _request_table(self, user_message: str) -> AIResponse:
        raw_response = ""
        try:
            prompt = self._prompts().get_prompt(PROMPT_NAME)
            response = self._get_router().generate_with_system(
                prompt.system_prompt,
                user_message,
                temperature=DEFAULT_TEMPERATURE,
                max_tokens=DEFAULT_MAX_TOKENS,
            )
            raw_response = response.content or ""
        except Exception as e:
            classified = classify_error(e, pipeline_phase="ai_table_generation")
            logger.warning(f"AI table request failed ({classified.category.name}): {e}")
            return AIResponse(success=False, error=str(e) or "生成表格失败", raw_response=raw_response or None)

        table, errors = safe_parse_table(raw_response)
        if table is None:
            logger.warning(f"AI table response rejected: {errors}")
            return AIResponse(success=False, error="; ".join(errors), raw_response=raw_response)

        logger.info(f"AI generated table '{table.title}' with {len(table.rows)} rows")
        return AIResponse(success=True, data=table, raw_response=raw_response)

    def generate_table(self, instruction: str) -> AIResponse:
        """Generate a table from a natural-language instruction."""
        try:
            user_message = self._prompts().get_prompt(PROMPT_NAME).format(instruction=instruction)
        except (FileNotFoundError, ValueError, KeyError) as e:
            logger.warning(f"Table prompt unavailable: {e}")
            return AIResponse(success=False, error=str(e))
        return self._request_table(user_message)

    def enhance_table(self, table: GeneratedTable, instruction: str) -> AIResponse:
        """Ask the model to rewrite an existing table according to an instruction."""
        try:
            user_message = self._prompts().get_prompt(PROMPT_NAME).format(
                "enhance",
                table_json=json.dumps(table.to_dict(), ensure_ascii=False, indent=2),
                instruction=instruction,
            )
        except (FileNotFoundError, ValueError, KeyError) as e:
            logger.warning(f"Table prompt unavailable: {e}")
            return AIResponse(success=False, error=str(e))
        return self._request_table(user_message)


# Singleton instance
_ai_table_service: Optional[AITableService] = None


def get_ai_table_service() -> AITableService:
    """Get the shared AI table service."""
    global _ai_table_service
    if _ai_table_service is None:
        _ai_table_service = AITableService()
    return _ai_table_service
