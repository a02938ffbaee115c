"""
Command Processor

Drives one natural-language command through the pipeline:

    normalize -> tokenize -> classify intent -> extract entities
              -> backfill from context -> build parameters -> NLPResult

Context is an explicit value: the caller passes a ProcessingContext in and
gets an updated one back from update_context(). The processor itself keeps
no per-conversation state.

Usage:
    from src.core.command_processor import get_nlp_processor

    processor = get_nlp_processor()
    result = processor.process("生成本月考勤表")
    context = processor.update_context(result)
    follow_up = processor.process("导出为Excel", context)
"""
import re
import time
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from config.settings import NLPConfig, NLPMode, get_config
from src.core.attendance_calendar import DateRange
from src.core.entity_extractor import ExtractedEntities, extract_entities
from src.core.intent_classifier import AttendanceIntent, recognize_intent
from src.core.output_schemas import GeneratedTable
from src.core.patterns import CHART_KIND, NUMBER_PATTERNS, convert_chinese_numeral_run
from src.core.tokenizer import Token, get_tokenizer

logger = logging.getLogger(__name__)

FULL_WIDTH_RE = re.compile(r"[\uff01-\uff5e]")
WHITESPACE_RE = re.compile(r"\s+")
TRAILING_PUNCT_RE = re.compile(r"[。！？，、；：]+$")
FULL_WIDTH_OFFSET = 0xFEE0

MAX_SUGGESTIONS = 5
AI_UNCONFIGURED_ERROR = "AI服务未配置"

# Entities an intent needs before it can be executed
REQUIRED_ENTITIES = {
    AttendanceIntent.CREATE_DAILY: ("date_range",),
    AttendanceIntent.CREATE_WEEKLY: ("date_range",),
    AttendanceIntent.CREATE_MONTHLY: ("date_range",),
    AttendanceIntent.CREATE_SUMMARY: ("date_range",),
    AttendanceIntent.GENERATE_CHART: ("chart_type",),
}
ENTITY_LABELS = {
    "date_range": "日期范围",
    "chart_type": "图表类型",
}


def normalize_input(text: str) -> str:
    """
    Canonicalize a command before interpretation.

    Full-width ASCII becomes half-width, whitespace runs collapse to one space,
    trailing Chinese punctuation is dropped and Chinese numeral runs become
    Arabic digits ("十五" -> "15"). Numeral characters inside names are
    converted too ("张三" -> "张3").
    """
    normalized = text.strip()
    normalized = FULL_WIDTH_RE.sub(lambda m: chr(ord(m.group(0)) - FULL_WIDTH_OFFSET), normalized)
    normalized = WHITESPACE_RE.sub(" ", normalized)
    normalized = TRAILING_PUNCT_RE.sub("", normalized)
    normalized = NUMBER_PATTERNS["normalizable"].sub(
        lambda m: convert_chinese_numeral_run(m.group(0)), normalized
    )
    return normalized


@dataclass(frozen=True)
class ProcessingContext:
    """What the previous turn resolved. Only fills gaps, never overrides."""
    last_date_range: Optional[DateRange] = None
    last_employees: Optional[Tuple[str, ...]] = None
    last_department: Optional[str] = None
    last_intent: Optional[AttendanceIntent] = None

    def cleared(self) -> "ProcessingContext":
        return ProcessingContext()

    @property
    def is_empty(self) -> bool:
        return self == ProcessingContext()


@dataclass(frozen=True)
class NLPResult:
    """Outcome of interpreting one command."""
    raw_input: str
    normalized_input: str
    intent: AttendanceIntent
    confidence: float
    entities: ExtractedEntities
    parameters: Dict[str, Any] = field(default_factory=dict)
    matched_rule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        parameters = {}
        for key, value in self.parameters.items():
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            elif hasattr(value, "value"):
                value = value.value
            parameters[key] = value
        return {
            "raw_input": self.raw_input,
            "normalized_input": self.normalized_input,
            "intent": self.intent.value,
            "confidence": round(self.confidence, 4),
            "entities": self.entities.to_dict(),
            "parameters": parameters,
            "matched_rule_id": self.matched_rule_id,
        }


@dataclass
class IntentValidation:
    valid: bool
    missing_entities: List[str] = field(default_factory=list)


@dataclass
class ProcessingDetails:
    """A result plus the intermediate artifacts, for debug views."""
    result: NLPResult
    tokens: List[Token]
    keywords: List[str]
    matched_rule_id: Optional[str]
    processing_time_ms: float


@dataclass
class AIProcessingResult:
    """Result of the AI-assisted path. error is set when the collaborator was not used successfully."""
    result: NLPResult
    table: Optional[GeneratedTable] = None
    error: Optional[str] = None


class NLPProcessor:
    """
    Orchestrates interpretation of attendance commands.

    Configuration is read once at construction. The optional AI collaborator
    is only consulted by process_with_ai().
    """

    def __init__(self, config: Optional[NLPConfig] = None, ai_service=None):
        self.config = config or get_config().nlp
        self._ai_service = ai_service
        self.tokenizer = get_tokenizer()

    @property
    def ai_service(self):
        if self._ai_service is None:
            from src.core.ai_table_service import get_ai_table_service
            self._ai_service = get_ai_table_service()
        return self._ai_service

    def normalize_input(self, text: str) -> str:
        return normalize_input(text)

    def _interpret(
        self,
        text: str,
        context: Optional[ProcessingContext],
        now: Optional[datetime],
    ) -> Tuple[NLPResult, List[Token], List[str]]:
        normalized = normalize_input(text)
        tokens = self.tokenizer.tokenize(normalized)
        keywords = self.tokenizer.get_keywords(normalized)
        match = recognize_intent(normalized)
        entities = extract_entities(normalized, now=now)

        if self.config.use_context and context is not None:
            entities = self._enrich_with_context(entities, context)

        result = NLPResult(
            raw_input=text,
            normalized_input=normalized,
            intent=match.intent,
            confidence=match.confidence,
            entities=entities,
            parameters=self._build_parameters(entities),
            matched_rule_id=match.matched_rule_id,
        )
        return result, tokens, keywords

    def process(
        self,
        text: str,
        context: Optional[ProcessingContext] = None,
        now: Optional[datetime] = None,
    ) -> NLPResult:
        """Interpret a command. Never raises on unrecognized input."""
        start = time.perf_counter()
        result, tokens, keywords = self._interpret(text, context, now)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.debug(
            f"Processed '{text}' -> {result.intent.value} "
            f"({result.confidence:.2f}) in {elapsed_ms:.1f}ms"
        )
        if self.config.debug:
            logger.debug(f"Tokens: {' '.join(f'{t.word}/{t.part_of_speech.value}' for t in tokens)}")
            logger.debug(f"Keywords: {keywords}, entities: {result.entities.to_dict()}")
        return result

    def process_with_details(
        self,
        text: str,
        context: Optional[ProcessingContext] = None,
        now: Optional[datetime] = None,
    ) -> ProcessingDetails:
        """Interpret a command and keep tokens, keywords and timing."""
        start = time.perf_counter()
        result, tokens, keywords = self._interpret(text, context, now)
        return ProcessingDetails(
            result=result,
            tokens=tokens,
            keywords=keywords,
            matched_rule_id=result.matched_rule_id,
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )

    def _enrich_with_context(
        self,
        entities: ExtractedEntities,
        context: ProcessingContext,
    ) -> ExtractedEntities:
        updates = {}
        if entities.date_range is None and context.last_date_range is not None:
            updates["date_range"] = context.last_date_range
        if entities.employees is None and context.last_employees:
            updates["employees"] = list(context.last_employees)
        if entities.department is None and context.last_department:
            updates["department"] = context.last_department
        return replace(entities, **updates) if updates else entities

    def _build_parameters(self, entities: ExtractedEntities) -> Dict[str, Any]:
        """Map entities into the caller-facing parameter shape."""
        parameters: Dict[str, Any] = {}
        if entities.date_range:
            parameters["date_range"] = entities.date_range
        if entities.employees:
            parameters["employees"] = list(entities.employees)
        if entities.department:
            parameters["departments"] = [entities.department]
        if entities.chart_type:
            parameters["chart_type"] = CHART_KIND.get(entities.chart_type, "bar")
        if entities.template_type:
            parameters["template_type"] = entities.template_type
        return parameters

    def is_confident(self, result: NLPResult) -> bool:
        """Intent recognized with at least the configured minimum confidence."""
        return result.intent != AttendanceIntent.UNKNOWN and result.confidence >= self.config.min_confidence

    def update_context(
        self,
        result: NLPResult,
        context: Optional[ProcessingContext] = None,
    ) -> ProcessingContext:
        """Return a new context carrying the entities this result resolved."""
        context = context or ProcessingContext()
        entities = result.entities
        return ProcessingContext(
            last_date_range=entities.date_range or context.last_date_range,
            last_employees=tuple(entities.employees) if entities.employees else context.last_employees,
            last_department=entities.department or context.last_department,
            last_intent=result.intent,
        )

    def validate_intent(self, result: NLPResult) -> IntentValidation:
        """Check that the entities an intent needs are present."""
        missing = [
            ENTITY_LABELS[name]
            for name in REQUIRED_ENTITIES.get(result.intent, ())
            if getattr(result.entities, name) is None
        ]
        if result.intent == AttendanceIntent.QUERY_EMPLOYEE:
            if not result.entities.employees and not result.entities.department:
                missing.append("员工或部门")
        return IntentValidation(valid=not missing, missing_entities=missing)

    def get_suggestions(self, partial_input: str) -> List[str]:
        """Canned completions for a partially typed command (at most 5)."""
        normalized = normalize_input(partial_input)
        suggestions = []

        if re.search(r"生成|创建|制作", normalized):
            if "考勤" not in normalized:
                suggestions.extend(["生成考勤表", "生成月度考勤汇总"])
            elif not re.search(r"月|周|日", normalized):
                suggestions.extend([f"{normalized}月报", f"{normalized}周报", f"{normalized}日报"])

        if "导入" in normalized and not re.search(r"数据|文件", normalized):
            suggestions.extend(["导入考勤数据", "导入Excel文件"])

        if re.search(r"统计|汇总", normalized):
            suggestions.extend(["统计本月出勤率", "汇总部门考勤"])

        if re.search(r"图表|图", normalized):
            suggestions.extend(["生成出勤率饼图", "生成考勤趋势图"])

        return suggestions[:MAX_SUGGESTIONS]

    def process_with_ai(
        self,
        text: str,
        context: Optional[ProcessingContext] = None,
        now: Optional[datetime] = None,
    ) -> AIProcessingResult:
        """
        Interpret locally, then ask the AI collaborator for a table.

        The local result is always computed first and is returned unchanged
        when mode is local, when mode is hybrid and the rules are already
        confident, when the collaborator is not configured, or when the call
        fails. On success the intent is kept (UNKNOWN becomes
        CREATE_GENERIC_TABLE), confidence becomes 1.0 and parameters gain
        source="ai". Extracted entities are preserved as-is.
        """
        local_result = self.process(text, context, now)

        if self.config.mode == NLPMode.LOCAL:
            return AIProcessingResult(result=local_result)

        # Hybrid only escalates when the rules are unsure
        if self.config.mode == NLPMode.HYBRID and self.is_confident(local_result):
            return AIProcessingResult(result=local_result)

        if not self.ai_service.is_available():
            return AIProcessingResult(result=local_result, error=AI_UNCONFIGURED_ERROR)

        try:
            response = self.ai_service.generate_table(text)
        except Exception as e:
            logger.warning(f"AI collaborator raised for '{text}': {e}")
            return AIProcessingResult(result=local_result, error=str(e) or "AI处理失败")

        if not response.success or response.data is None:
            logger.warning(f"AI collaborator failed for '{text}': {response.error}")
            return AIProcessingResult(result=local_result, error=response.error or "AI处理失败")

        intent = local_result.intent
        if intent == AttendanceIntent.UNKNOWN:
            intent = AttendanceIntent.CREATE_GENERIC_TABLE

        ai_result = replace(
            local_result,
            intent=intent,
            confidence=1.0,
            parameters={**local_result.parameters, "source": "ai"},
        )
        return AIProcessingResult(result=ai_result, table=response.data)


# Singleton instance
_nlp_processor: Optional[NLPProcessor] = None


def get_nlp_processor() -> NLPProcessor:
    """Get the shared processor instance."""
    global _nlp_processor
    if _nlp_processor is None:
        _nlp_processor = NLPProcessor()
    return _nlp_processor


def process_command(text: str, context: Optional[ProcessingContext] = None) -> NLPResult:
    return get_nlp_processor().process(text, context)
