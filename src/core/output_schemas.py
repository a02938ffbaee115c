"""
Structured Output Schemas for LLM Responses

Pydantic models for validating tables returned by the AI collaborator, so a
malformed response becomes an error value instead of a silent bad render.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Greedy: first "{" to last "}"
JSON_OBJECT_RE = re.compile(r"(\{[\s\S]*\})")
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


class TableColumn(BaseModel):
    """One column of a generated table."""
    key: str = Field(..., min_length=1)
    title: str
    type: str = "string"    # string | number | date | time | status


class GeneratedTable(BaseModel):
    """Generic table produced by the AI collaborator."""
    title: str = Field(..., min_length=1)
    columns: List[TableColumn]
    rows: List[Dict[str, Any]]
    summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def extract_json_object(raw_output: str) -> Dict[str, Any]:
    """
    Pull the outermost JSON object out of an LLM response.

    Strips markdown fences, takes everything from the first "{" to the last "}",
    and retries once with trailing commas removed.

    Raises:
        ValueError: no object found or it cannot be parsed even after repair
    """
    cleaned = raw_output.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    match = JSON_OBJECT_RE.search(cleaned)
    if not match:
        raise ValueError("无法从响应中提取有效的JSON对象")

    json_string = match.group(1)
    try:
        return json.loads(json_string)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse LLM output as JSON, attempting repair: {e}")

    try:
        return json.loads(TRAILING_COMMA_RE.sub(r"\1", json_string))
    except json.JSONDecodeError as e:
        raise ValueError("AI返回了无效的JSON数据，即使修复后也无法解析。") from e


def validate_llm_output(
    raw_output: str,
    schema: Type[BaseModel]
) -> Tuple[bool, Any, List[str]]:
    """
    Validate LLM output against a Pydantic schema.

    Returns:
        Tuple of (is_valid, parsed_object_or_none, list_of_errors)
    """
    try:
        data = extract_json_object(raw_output)
    except ValueError as e:
        return False, None, [str(e)]

    if not isinstance(data, dict):
        return False, None, ["生成的数据格式不完整"]

    try:
        return True, schema.model_validate(data), []
    except ValidationError as e:
        logger.warning(f"Schema validation failed: {e}")
        return False, None, [f"生成的数据格式不完整: {e.error_count()} 个字段错误"]


def safe_parse_table(raw_output: str) -> Tuple[Optional[GeneratedTable], List[str]]:
    """Parse a generated table, returning (table_or_none, errors)."""
    is_valid, parsed, errors = validate_llm_output(raw_output, GeneratedTable)
    return parsed if is_valid else None, errors
