"""
Configuration settings for the attendance command assistant.

Key Design Principle: All model selection and pipeline tuning via environment
variables, never hardcoded. Values are read when a config object is built.
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Dict
from enum import Enum


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class ModelProvider(Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"


class NLPMode(Enum):
    """How the command processor uses the remote AI collaborator."""
    LOCAL = "local"      # Rules only
    API = "api"          # Always ask the AI collaborator
    HYBRID = "hybrid"    # Rules first, AI when available


@dataclass
class ModelConfig:
    """Configuration for a specific LLM provider."""
    provider: ModelProvider
    model_name: str
    api_key_env: str
    base_url_env: Optional[str] = None   # OpenAI-compatible endpoints
    temperature: float = 0.1  # Low temperature for stable JSON
    max_tokens: int = 4096

    @property
    def api_key(self) -> str:
        key = os.getenv(self.api_key_env)
        if not key:
            raise ValueError(f"Missing API key: {self.api_key_env}")
        return key

    @property
    def base_url(self) -> Optional[str]:
        if not self.base_url_env:
            return None
        return os.getenv(self.base_url_env) or None

    @property
    def is_configured(self) -> bool:
        """True when the API key variable is set."""
        return bool(os.getenv(self.api_key_env))


# Model Registry - Add new models here
MODEL_REGISTRY: Dict[str, ModelConfig] = {
    "gemini-2.0-flash": ModelConfig(
        provider=ModelProvider.GEMINI,
        model_name="gemini-2.0-flash",
        api_key_env="GEMINI_API_KEY",
    ),
    "claude-sonnet-4": ModelConfig(
        provider=ModelProvider.CLAUDE,
        model_name="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
    ),
    "gpt-4o": ModelConfig(
        provider=ModelProvider.OPENAI,
        model_name="gpt-4o",
        api_key_env="OPENAI_API_KEY",
    ),
    "gpt-3.5-turbo": ModelConfig(
        provider=ModelProvider.OPENAI,
        model_name="gpt-3.5-turbo",
        api_key_env="OPENAI_API_KEY",
        base_url_env="OPENAI_BASE_URL",
    ),
    # Any OpenAI-compatible endpoint (model name from OPENAI_MODEL)
    "openai-compatible": ModelConfig(
        provider=ModelProvider.OPENAI,
        model_name=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
        api_key_env="OPENAI_API_KEY",
        base_url_env="OPENAI_BASE_URL",
    ),
}


@dataclass
class NLPConfig:
    """Command processor settings."""
    debug: bool = field(default_factory=lambda: _env_flag("NLP_DEBUG"))
    min_confidence: float = field(
        default_factory=lambda: float(os.getenv("CONFIDENCE_THRESHOLD", "0.7"))
    )
    use_context: bool = field(default_factory=lambda: _env_flag("NLP_USE_CONTEXT", "true"))
    mode: NLPMode = field(
        default_factory=lambda: NLPMode(os.getenv("NLP_MODE", "local").strip().lower())
    )


@dataclass
class OutputConfig:
    """Where generated workbooks and charts are written."""
    output_dir: str = field(default_factory=lambda: os.getenv("OUTPUT_DIR", ".outputs"))
    chart_dir: str = field(default_factory=lambda: os.getenv("CHART_DIR", ".charts"))


@dataclass
class AppConfig:
    """Main application configuration."""
    # Model selection - THE SINGLE POINT OF CONTROL
    active_model: str = field(
        default_factory=lambda: os.getenv("ACTIVE_MODEL", "gpt-3.5-turbo")
    )

    # Sub-configurations
    nlp: NLPConfig = field(default_factory=NLPConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def model_config(self) -> ModelConfig:
        """Get the active model configuration."""
        if self.active_model not in MODEL_REGISTRY:
            raise ValueError(f"Unknown model: {self.active_model}. Available: {list(MODEL_REGISTRY.keys())}")
        return MODEL_REGISTRY[self.active_model]


def get_config() -> AppConfig:
    """Factory function to get application configuration."""
    return AppConfig()
