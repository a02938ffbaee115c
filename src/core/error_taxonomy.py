"""
Error Taxonomy for the Attendance Command Pipeline

Provides systematic classification of failure modes with:
- Error categories aligned to pipeline phases
- Recoverability indicators
- Suggested recovery actions
- Structured error context for debugging

Parse misses and validation problems are data, not exceptions. Only
configuration errors (unknown template type) are raised past the core;
collaborator failures are caught at the processor boundary.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import json
import logging
import traceback

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Systematic classification of failure modes."""
    # Phase 0: Command Understanding
    PARSE_MISS = auto()
    MISSING_ENTITY = auto()

    # Phase 1: Data Import
    INVALID_ROW = auto()
    INVALID_DATE = auto()
    FILE_READ_ERROR = auto()

    # Phase 2: Rendering
    TEMPLATE_NOT_FOUND = auto()

    # Phase 3: AI Collaborator
    AI_SERVICE_UNAVAILABLE = auto()
    AI_RESPONSE_PARSE_ERROR = auto()
    AI_REQUEST_FAILED = auto()

    # Phase 4: Output
    WRITER_FAILED = auto()

    # System Errors
    CONFIGURATION_ERROR = auto()
    UNKNOWN_ERROR = auto()


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RecoveryAction:
    """Suggested action to recover from an error."""
    action_type: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def retry(delay_seconds: float = 1.0, max_attempts: int = 3) -> "RecoveryAction":
        return RecoveryAction(
            action_type="retry",
            description=f"Retry after {delay_seconds}s (max {max_attempts} attempts)",
            parameters={"delay": delay_seconds, "max_attempts": max_attempts}
        )

    @staticmethod
    def fallback(fallback_method: str) -> "RecoveryAction":
        return RecoveryAction(
            action_type="fallback",
            description=f"Use fallback: {fallback_method}",
            parameters={"method": fallback_method}
        )

    @staticmethod
    def clarify(message: str) -> "RecoveryAction":
        return RecoveryAction(
            action_type="clarify",
            description="Request clarification from user",
            parameters={"message": message}
        )

    @staticmethod
    def abort(reason: str) -> "RecoveryAction":
        return RecoveryAction(
            action_type="abort",
            description=f"Abort operation: {reason}",
            parameters={"reason": reason}
        )


USER_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.PARSE_MISS: "无法理解您的指令，请换一种说法",
    ErrorCategory.MISSING_ENTITY: "指令缺少必要信息，请补充",
    ErrorCategory.INVALID_ROW: "数据行格式不正确",
    ErrorCategory.INVALID_DATE: "日期格式无效",
    ErrorCategory.FILE_READ_ERROR: "无法读取文件",
    ErrorCategory.TEMPLATE_NOT_FOUND: "未找到对应的模板",
    ErrorCategory.AI_SERVICE_UNAVAILABLE: "AI服务未配置",
    ErrorCategory.AI_RESPONSE_PARSE_ERROR: "AI返回的数据格式无效",
    ErrorCategory.AI_REQUEST_FAILED: "AI请求失败，请稍后重试",
    ErrorCategory.WRITER_FAILED: "写入文档失败",
    ErrorCategory.CONFIGURATION_ERROR: "配置错误",
}


@dataclass
class ClassifiedError:
    """A classified error with full context."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    recoverable: bool
    recovery_actions: List[RecoveryAction]

    original_exception: Optional[Exception] = None
    pipeline_phase: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    user_message: Optional[str] = None

    def __post_init__(self):
        if self.original_exception and not self.stack_trace:
            self.stack_trace = ''.join(traceback.format_exception(
                type(self.original_exception),
                self.original_exception,
                self.original_exception.__traceback__
            ))

        if not self.user_message:
            self.user_message = USER_MESSAGES.get(self.category, f"发生错误: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.name,
            "severity": self.severity.value,
            "message": self.message,
            "user_message": self.user_message,
            "recoverable": self.recoverable,
            "recovery_actions": [
                {"type": a.action_type, "description": a.description}
                for a in self.recovery_actions
            ],
            "pipeline_phase": self.pipeline_phase,
            "context": self.context,
        }


class PipelineError(Exception):
    """Base exception for pipeline errors with classification."""

    category = ErrorCategory.UNKNOWN_ERROR
    severity = ErrorSeverity.MEDIUM
    recoverable = False

    def __init__(
        self,
        message: str,
        category: ErrorCategory = None,
        severity: ErrorSeverity = None,
        recoverable: bool = None,
        recovery_actions: List[RecoveryAction] = None,
        context: Dict[str, Any] = None,
    ):
        super().__init__(message)
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if recoverable is not None:
            self.recoverable = recoverable
        self.recovery_actions = recovery_actions or []
        self.context = context or {}

    def classify(self) -> ClassifiedError:
        return ClassifiedError(
            category=self.category,
            severity=self.severity,
            message=str(self),
            recoverable=self.recoverable,
            recovery_actions=self.recovery_actions,
            original_exception=self,
            context=self.context,
        )


class TemplateNotFoundError(PipelineError):
    """No template registered for the requested type or id."""
    category = ErrorCategory.TEMPLATE_NOT_FOUND
    severity = ErrorSeverity.HIGH


class AIServiceError(PipelineError):
    """The remote AI collaborator failed or returned unusable output."""
    category = ErrorCategory.AI_REQUEST_FAILED
    recoverable = True


class ImportFileError(PipelineError):
    """A data file could not be read."""
    category = ErrorCategory.FILE_READ_ERROR


def classify_error(
    exception: Exception,
    pipeline_phase: str = None,
    context: Dict[str, Any] = None,
) -> ClassifiedError:
    """Classify an exception into a structured error."""
    context = context or {}

    if isinstance(exception, PipelineError):
        classified = exception.classify()
        classified.pipeline_phase = pipeline_phase
        classified.context.update(context)
        return classified

    if isinstance(exception, json.JSONDecodeError):
        return ClassifiedError(
            category=ErrorCategory.AI_RESPONSE_PARSE_ERROR,
            severity=ErrorSeverity.MEDIUM,
            message=str(exception),
            recoverable=True,
            recovery_actions=[RecoveryAction.retry()],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    if isinstance(exception, (FileNotFoundError, PermissionError, IsADirectoryError)):
        return ClassifiedError(
            category=ErrorCategory.FILE_READ_ERROR,
            severity=ErrorSeverity.MEDIUM,
            message=str(exception),
            recoverable=False,
            recovery_actions=[RecoveryAction.clarify("请检查文件路径")],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    error_str = str(exception).lower()

    # Rate limiting
    if "rate limit" in error_str or "429" in error_str:
        return ClassifiedError(
            category=ErrorCategory.AI_REQUEST_FAILED,
            severity=ErrorSeverity.MEDIUM,
            message=str(exception),
            recoverable=True,
            recovery_actions=[RecoveryAction.retry(delay_seconds=60)],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    # Authentication
    if "api key" in error_str or "401" in error_str or "403" in error_str:
        return ClassifiedError(
            category=ErrorCategory.AI_SERVICE_UNAVAILABLE,
            severity=ErrorSeverity.HIGH,
            message=str(exception),
            recoverable=False,
            recovery_actions=[RecoveryAction.fallback("local rules")],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    # Timeout
    if isinstance(exception, TimeoutError) or "timeout" in error_str or "timed out" in error_str:
        return ClassifiedError(
            category=ErrorCategory.AI_REQUEST_FAILED,
            severity=ErrorSeverity.MEDIUM,
            message=str(exception),
            recoverable=True,
            recovery_actions=[RecoveryAction.retry(delay_seconds=5.0)],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    if isinstance(exception, ValueError):
        return ClassifiedError(
            category=ErrorCategory.CONFIGURATION_ERROR,
            severity=ErrorSeverity.HIGH,
            message=str(exception),
            recoverable=False,
            recovery_actions=[],
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    # Default
    return ClassifiedError(
        category=ErrorCategory.UNKNOWN_ERROR,
        severity=ErrorSeverity.HIGH,
        message=str(exception),
        recoverable=False,
        recovery_actions=[],
        original_exception=exception,
        pipeline_phase=pipeline_phase,
        context=context,
    )
