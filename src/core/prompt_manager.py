"""
Prompt Management

Versioned, externalized prompts for the AI table collaborator.

Directory structure:
    config/prompts/
        table_generation/
            v1.0.yaml

Usage:
    from src.core.prompt_manager import get_prompt_manager

    prompt = get_prompt_manager().get_prompt("table_generation")
    user_message = prompt.format(instruction="生成会议签到表")
"""

import yaml
import logging
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, List

logger = logging.getLogger(__name__)

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parents[2] / "config" / "prompts"


@dataclass
class PromptTemplate:
    """A versioned prompt template."""
    name: str
    version: str
    description: str

    system_prompt: str
    user_prompt_template: str

    required_variables: List[str] = field(default_factory=list)
    optional_variables: Dict[str, Any] = field(default_factory=dict)
    # Extra named templates (e.g. the table-enhancement prompt)
    extra_templates: Dict[str, str] = field(default_factory=dict)

    @property
    def hash(self) -> str:
        """Short content hash for log correlation."""
        content = f"{self.system_prompt}{self.user_prompt_template}"
        return hashlib.md5(content.encode()).hexdigest()[:12]

    def format(self, template_name: Optional[str] = None, **kwargs) -> str:
        """Format the user prompt (or a named extra template) with provided variables."""
        missing = [v for v in self.required_variables if v not in kwargs]
        if missing and template_name is None:
            raise ValueError(f"Missing required variables: {missing}")

        template = self.user_prompt_template
        if template_name is not None:
            if template_name not in self.extra_templates:
                raise KeyError(f"Prompt '{self.name}' has no template '{template_name}'")
            template = self.extra_templates[template_name]

        return template.format(**{**self.optional_variables, **kwargs})

    @classmethod
    def from_yaml(cls, path: Path) -> "PromptTemplate":
        """Load prompt template from YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls(
            name=data["name"],
            version=str(data["version"]),
            description=data.get("description", ""),
            system_prompt=data["system_prompt"],
            user_prompt_template=data["user_prompt_template"],
            required_variables=data.get("required_variables", []),
            optional_variables=data.get("optional_variables", {}),
            extra_templates=data.get("extra_templates", {}),
        )


class PromptManager:
    """Loads prompts by name, picking the highest v*.yaml unless a version is given."""

    def __init__(self, prompts_dir: Path = None):
        self.prompts_dir = Path(prompts_dir) if prompts_dir else DEFAULT_PROMPTS_DIR
        self._cache: Dict[str, PromptTemplate] = {}

    def _find_latest_version(self, prompt_name: str) -> Optional[str]:
        prompt_dir = self.prompts_dir / prompt_name
        if not prompt_dir.exists():
            return None

        versions = []
        for f in prompt_dir.glob("v*.yaml"):
            version_str = f.stem[1:]
            try:
                # Tuple sort so 1.10 > 1.9
                parts = tuple(int(p) for p in version_str.split('.'))
                versions.append((parts, version_str))
            except ValueError:
                continue

        if not versions:
            return None

        versions.sort(reverse=True)
        return versions[0][1]

    def get_prompt(self, name: str, version: str = None) -> PromptTemplate:
        """Get a prompt template by name and optional version."""
        if version is None:
            version = self._find_latest_version(name)

        if version is None:
            raise FileNotFoundError(f"No prompt versions found for '{name}'")

        cache_key = f"{name}/v{version}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        path = self.prompts_dir / name / f"v{version}.yaml"
        if not path.exists():
            raise FileNotFoundError(f"Prompt file not found: {path}")

        template = PromptTemplate.from_yaml(path)
        self._cache[cache_key] = template

        logger.debug(f"Loaded prompt {name} v{version} (hash: {template.hash})")
        return template

    def list_prompts(self) -> Dict[str, List[str]]:
        """List all available prompts and their versions."""
        result = {}
        if not self.prompts_dir.exists():
            return result

        for prompt_dir in self.prompts_dir.iterdir():
            if prompt_dir.is_dir() and not prompt_dir.name.startswith('.'):
                versions = sorted(f.stem[1:] for f in prompt_dir.glob("v*.yaml"))
                if versions:
                    result[prompt_dir.name] = versions
        return result


# Global instance
_prompt_manager: Optional[PromptManager] = None


def get_prompt_manager() -> PromptManager:
    """Get the global prompt manager instance."""
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
    return _prompt_manager
