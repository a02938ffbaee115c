"""
Model Router

Single entry point for every LLM call made by the AI table collaborator.
Provider SDKs are imported lazily so the rule-based pipeline runs without them.

To swap models: change the ACTIVE_MODEL environment variable.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

from config.settings import ModelConfig, ModelProvider, MODEL_REGISTRY, get_config

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """Standardized message format across all providers."""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMResponse:
    """Standardized response format from any LLM provider."""
    content: str
    model: str
    provider: ModelProvider
    usage: Dict[str, int]  # tokens used
    raw_response: Any = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM provider clients."""

    def __init__(self, config: ModelConfig):
        self.config = config

    def _resolve(self, temperature: Optional[float], max_tokens: Optional[int]):
        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens
        return temp, tokens

    @abstractmethod
    def generate(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass


class GeminiClient(BaseLLMClient):
    """Google Gemini API client."""

    def __init__(self, config: ModelConfig):
        super().__init__(config)
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError("Install google-generativeai: pip install google-generativeai")
        genai.configure(api_key=config.api_key)
        self.genai = genai

    def generate(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        temp, tokens = self._resolve(temperature, max_tokens)

        system_instruction = None
        contents = []
        for msg in messages:
            if msg.role == "system":
                system_instruction = msg.content
            else:
                role = "model" if msg.role == "assistant" else "user"
                contents.append({"role": role, "parts": [msg.content]})

        model = self.genai.GenerativeModel(self.config.model_name, system_instruction=system_instruction)
        response = model.generate_content(
            contents,
            generation_config=self.genai.GenerationConfig(temperature=temp, max_output_tokens=tokens),
        )

        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            content=response.text,
            model=self.config.model_name,
            provider=ModelProvider.GEMINI,
            usage={
                "prompt_tokens": usage.prompt_token_count if usage else 0,
                "completion_tokens": usage.candidates_token_count if usage else 0,
            },
            raw_response=response,
        )


class ClaudeClient(BaseLLMClient):
    """Anthropic Claude API client."""

    def __init__(self, config: ModelConfig):
        super().__init__(config)
        try:
            import anthropic
        except ImportError:
            raise ImportError("Install anthropic: pip install anthropic")
        self.client = anthropic.Anthropic(api_key=config.api_key)

    def generate(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        temp, tokens = self._resolve(temperature, max_tokens)

        system = None
        api_messages = []
        for msg in messages:
            if msg.role == "system":
                system = msg.content
            else:
                api_messages.append({"role": msg.role, "content": msg.content})

        kwargs = {
            "model": self.config.model_name,
            "max_tokens": tokens,
            "temperature": temp,
            "messages": api_messages,
        }
        if system:
            kwargs["system"] = system

        response = self.client.messages.create(**kwargs)

        return LLMResponse(
            content=response.content[0].text,
            model=self.config.model_name,
            provider=ModelProvider.CLAUDE,
            usage={
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
            },
            raw_response=response,
        )


class OpenAIClient(BaseLLMClient):
    """OpenAI (or OpenAI-compatible endpoint) chat completions client."""

    def __init__(self, config: ModelConfig):
        super().__init__(config)
        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError("Install openai: pip install openai")
        self.client = OpenAI(api_key=config.api_key, base_url=config.base_url)

    def generate(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        temp, tokens = self._resolve(temperature, max_tokens)

        response = self.client.chat.completions.create(
            model=self.config.model_name,
            messages=[{"role": m.role, "content": m.content} for m in messages],
            temperature=temp,
            max_tokens=tokens,
        )

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=self.config.model_name,
            provider=ModelProvider.OPENAI,
            usage={
                "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
                "completion_tokens": response.usage.completion_tokens if response.usage else 0,
            },
            raw_response=response,
        )


CLIENT_CLASSES = {
    ModelProvider.GEMINI: GeminiClient,
    ModelProvider.CLAUDE: ClaudeClient,
    ModelProvider.OPENAI: OpenAIClient,
}


class ModelRouter:
    """
    Central routing hub for all LLM requests.

    Clients are cached per provider/model/endpoint and created on first use.
    """

    _client_cache: Dict[str, BaseLLMClient] = {}

    def __init__(self, config: Optional[ModelConfig] = None):
        """Initialize with optional explicit config, otherwise use ACTIVE_MODEL."""
        if config is None:
            config = get_config().model_config
        self.config = config
        self._client = self._get_or_create_client(config)

    def _get_or_create_client(self, config: ModelConfig) -> BaseLLMClient:
        cache_key = f"{config.provider.value}:{config.model_name}:{config.base_url or ''}"

        if cache_key not in self._client_cache:
            client_class = CLIENT_CLASSES.get(config.provider)
            if client_class is None:
                raise ValueError(f"Unsupported provider: {config.provider}")
            self._client_cache[cache_key] = client_class(config)

        return self._client_cache[cache_key]

    def generate(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Route generation request to the active model."""
        logger.info(f"Routing request to {self.config.provider.value}:{self.config.model_name}")
        return self._client.generate(messages, temperature, max_tokens)

    def generate_with_system(
        self,
        system_prompt: str,
        user_message: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Convenience method for simple system + user message patterns."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.generate(messages, temperature, max_tokens)


def get_router(model_name: Optional[str] = None) -> ModelRouter:
    """Factory function to get a model router.

    Args:
        model_name: Optional explicit model name. If None, uses ACTIVE_MODEL env var.
    """
    if model_name:
        if model_name not in MODEL_REGISTRY:
            raise ValueError(f"Unknown model: {model_name}")
        return ModelRouter(MODEL_REGISTRY[model_name])
    return ModelRouter()
