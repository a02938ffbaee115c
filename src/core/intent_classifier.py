"""
Intent Classifier

Rule-based intent recognition with confidence scoring.

The rules are plain data (INTENT_RULE_TABLE) compiled once into IntentRule
records and scored by a single generic evaluator:

    score = base_confidence                  (first matching pattern)
          + 0.05 per required keyword present
          - 0.20 per exclude keyword present
          + priority * 0.01
    clamped to [0, 1]

The rule with the strictly highest score wins; ties keep the earlier rule.
No match at all yields UNKNOWN with confidence 0.
"""
import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)

KEYWORD_BONUS = 0.05
EXCLUDE_PENALTY = 0.2
PRIORITY_WEIGHT = 0.01


class AttendanceIntent(Enum):
    """High-level goal of an attendance command."""
    CREATE_DAILY = "CREATE_DAILY"
    CREATE_WEEKLY = "CREATE_WEEKLY"
    CREATE_MONTHLY = "CREATE_MONTHLY"
    CREATE_SUMMARY = "CREATE_SUMMARY"
    CREATE_GENERIC_TABLE = "CREATE_GENERIC_TABLE"   # Only produced by the AI path
    IMPORT_DATA = "IMPORT_DATA"
    GENERATE_CHART = "GENERATE_CHART"
    EXPORT_DATA = "EXPORT_DATA"
    EXPORT_REPORT = "EXPORT_REPORT"
    QUERY_EMPLOYEE = "QUERY_EMPLOYEE"
    QUERY_STATISTICS = "QUERY_STATISTICS"
    QUERY_ATTENDANCE = "QUERY_ATTENDANCE"
    MODIFY_TEMPLATE = "MODIFY_TEMPLATE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class IntentRule:
    """One compiled classification rule. Never mutated after load."""
    id: str
    intent: AttendanceIntent
    patterns: Tuple[Pattern, ...]
    required_keywords: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    priority: int = 0
    base_confidence: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "intent": self.intent.value,
            "patterns": [p.pattern for p in self.patterns],
            "required_keywords": list(self.required_keywords),
            "exclude_keywords": list(self.exclude_keywords),
            "priority": self.priority,
            "base_confidence": self.base_confidence,
        }


@dataclass(frozen=True)
class IntentMatch:
    """Best-scoring intent for an input."""
    intent: AttendanceIntent
    confidence: float
    matched_rule: Optional[IntentRule] = None

    @property
    def matched_rule_id(self) -> Optional[str]:
        return self.matched_rule.id if self.matched_rule else None


# Rule table, scanned in order. Patterns accept "1" where normalization
# rewrites a Chinese "一".
INTENT_RULE_TABLE: List[Dict[str, Any]] = [
    {
        "id": "create_daily",
        "intent": AttendanceIntent.CREATE_DAILY,
        "patterns": [r"生成.*日.*考勤", r"创建.*日.*考勤", r"制作.*日.*考勤", r"日报",
                     r"今[天日].*考勤", r"当[天日].*考勤"],
        "required_keywords": ["日报", "日考勤", "今天", "今日", "当天", "当日"],
        "priority": 10,
        "base_confidence": 0.8,
    },
    {
        "id": "create_weekly",
        "intent": AttendanceIntent.CREATE_WEEKLY,
        "patterns": [r"生成.*周.*考勤", r"创建.*周.*考勤", r"制作.*周.*考勤", r"周报",
                     r"本周.*考勤", r"这周.*考勤", r"[一1]周.*考勤"],
        "required_keywords": ["周报", "周考勤", "本周", "这周", "一周", "每周"],
        "priority": 10,
        "base_confidence": 0.8,
    },
    {
        "id": "create_monthly",
        "intent": AttendanceIntent.CREATE_MONTHLY,
        "patterns": [r"生成.*月.*考勤", r"创建.*月.*考勤", r"制作.*月.*考勤", r"月报",
                     r"本月.*考勤", r"月度.*考勤", r"\d+月.*考勤"],
        "required_keywords": ["月报", "月考勤", "本月", "月度", "每月"],
        "priority": 10,
        "base_confidence": 0.8,
    },
    {
        "id": "create_summary",
        "intent": AttendanceIntent.CREATE_SUMMARY,
        "patterns": [r"汇总", r"统计.*考勤", r"考勤.*统计", r"汇总.*表", r"统计.*表", r"总结"],
        "required_keywords": ["汇总", "统计", "汇总表", "统计表", "总结"],
        "priority": 8,
        "base_confidence": 0.75,
    },
    {
        "id": "import_data",
        "intent": AttendanceIntent.IMPORT_DATA,
        "patterns": [r"导入", r"上传", r"读取.*文件", r"加载.*数据", r"从.*导入"],
        "required_keywords": ["导入", "上传", "读取", "加载", "文件"],
        "priority": 9,
        "base_confidence": 0.85,
    },
    {
        "id": "generate_chart",
        "intent": AttendanceIntent.GENERATE_CHART,
        "patterns": [r"生成.*图", r"创建.*图", r"制作.*图", r"饼图", r"柱[状形]?图",
                     r"折线图", r"趋势图"],
        "required_keywords": ["图表", "饼图", "柱图", "柱状图", "折线图", "趋势图", "图"],
        "priority": 8,
        "base_confidence": 0.8,
    },
    {
        "id": "modify_template",
        "intent": AttendanceIntent.MODIFY_TEMPLATE,
        "patterns": [r"修改.*模板", r"编辑.*模板", r"更改.*模板", r"调整.*模板", r"模板.*设置"],
        "required_keywords": ["修改", "编辑", "更改", "调整", "模板"],
        "priority": 7,
        "base_confidence": 0.75,
    },
    {
        "id": "query_statistics",
        "intent": AttendanceIntent.QUERY_STATISTICS,
        "patterns": [r"查询.*统计", r"查看.*出勤率", r"显示.*统计", r"出勤率",
                     r"迟到.*次数", r"早退.*次数", r"缺勤.*次数"],
        "required_keywords": ["查询", "查看", "显示", "统计", "出勤率", "迟到", "早退", "缺勤"],
        "priority": 6,
        "base_confidence": 0.7,
    },
    {
        "id": "query_employee",
        "intent": AttendanceIntent.QUERY_EMPLOYEE,
        "patterns": [r"查询.*员工", r"查看.*员工", r"员工.*考勤", r"[\u4e00-\u9fa5]{2,4}的考勤"],
        "required_keywords": ["查询", "查看", "员工"],
        "priority": 6,
        "base_confidence": 0.7,
    },
    {
        "id": "query_attendance",
        "intent": AttendanceIntent.QUERY_ATTENDANCE,
        "patterns": [r"查询.*考勤", r"查看.*考勤", r"显示.*考勤", r"考勤.*记录", r"考勤.*情况"],
        "required_keywords": ["查询", "查看", "显示", "考勤", "记录"],
        "priority": 6,
        "base_confidence": 0.7,
    },
    {
        "id": "export_data",
        "intent": AttendanceIntent.EXPORT_DATA,
        "patterns": [r"导出", r"下载", r"保存.*文件", r"输出"],
        "required_keywords": ["导出", "下载", "保存", "输出"],
        "priority": 7,
        "base_confidence": 0.8,
    },
    {
        "id": "export_report",
        "intent": AttendanceIntent.EXPORT_REPORT,
        "patterns": [r"导出.*报表", r"导出.*报告", r"生成.*报表", r"生成.*报告", r"下载.*报表"],
        "required_keywords": ["导出", "报表", "报告", "下载"],
        "priority": 7,
        "base_confidence": 0.8,
    },
]


def load_intent_rules(table: Sequence[Dict[str, Any]]) -> Tuple[IntentRule, ...]:
    """Compile a rule table into immutable IntentRule records."""
    rules = []
    for entry in table:
        rules.append(IntentRule(
            id=entry["id"],
            intent=entry["intent"],
            patterns=tuple(re.compile(p) for p in entry["patterns"]),
            required_keywords=tuple(entry.get("required_keywords", ())),
            exclude_keywords=tuple(entry.get("exclude_keywords", ())),
            priority=entry.get("priority", 0),
            base_confidence=entry.get("base_confidence", 0.5),
        ))
    return tuple(rules)


INTENT_RULES: Tuple[IntentRule, ...] = load_intent_rules(INTENT_RULE_TABLE)


def score_rule(rule: IntentRule, text: str) -> Optional[float]:
    """Score one rule against text, or None when none of its patterns match."""
    if not any(pattern.search(text) for pattern in rule.patterns):
        return None

    score = rule.base_confidence
    score += KEYWORD_BONUS * sum(1 for kw in rule.required_keywords if kw in text)
    score -= EXCLUDE_PENALTY * sum(1 for kw in rule.exclude_keywords if kw in text)
    score += rule.priority * PRIORITY_WEIGHT

    # Rounded so equal scores compare equal regardless of summation order
    return round(min(max(score, 0.0), 1.0), 4)


def recognize_intent(text: str, rules: Sequence[IntentRule] = INTENT_RULES) -> IntentMatch:
    """Return the best-scoring intent for (normalized) text."""
    best = IntentMatch(intent=AttendanceIntent.UNKNOWN, confidence=0.0)

    for rule in rules:
        score = score_rule(rule, text)
        if score is None:
            continue
        if score > best.confidence:
            best = IntentMatch(intent=rule.intent, confidence=score, matched_rule=rule)

    logger.debug(f"Intent for '{text}': {best.intent.value} ({best.confidence:.2f})")
    return best


INTENT_DESCRIPTIONS: Dict[AttendanceIntent, str] = {
    AttendanceIntent.CREATE_DAILY: "创建日考勤表",
    AttendanceIntent.CREATE_WEEKLY: "创建周考勤表",
    AttendanceIntent.CREATE_MONTHLY: "创建月考勤表",
    AttendanceIntent.CREATE_SUMMARY: "创建考勤汇总",
    AttendanceIntent.CREATE_GENERIC_TABLE: "创建表格",
    AttendanceIntent.IMPORT_DATA: "导入考勤数据",
    AttendanceIntent.GENERATE_CHART: "生成图表",
    AttendanceIntent.EXPORT_DATA: "导出数据",
    AttendanceIntent.EXPORT_REPORT: "导出报表",
    AttendanceIntent.QUERY_EMPLOYEE: "查询员工考勤",
    AttendanceIntent.QUERY_STATISTICS: "查询统计信息",
    AttendanceIntent.QUERY_ATTENDANCE: "查询考勤记录",
    AttendanceIntent.MODIFY_TEMPLATE: "修改模板",
    AttendanceIntent.UNKNOWN: "未知操作",
}

INTENT_EXAMPLES: Dict[AttendanceIntent, List[str]] = {
    AttendanceIntent.CREATE_DAILY: ["生成今天的考勤表", "创建日考勤报表", "制作今日考勤记录"],
    AttendanceIntent.CREATE_WEEKLY: ["生成本周考勤表", "创建周报", "制作这周的考勤汇总"],
    AttendanceIntent.CREATE_MONTHLY: ["生成1月考勤表", "创建本月考勤报表", "制作月度考勤汇总"],
    AttendanceIntent.CREATE_SUMMARY: ["汇总部门考勤", "统计本月出勤情况", "生成考勤统计表"],
    AttendanceIntent.CREATE_GENERIC_TABLE: ["生成一个项目进度表", "做一张会议签到表"],
    AttendanceIntent.IMPORT_DATA: ["导入考勤数据", "上传Excel文件", "从文件导入记录"],
    AttendanceIntent.GENERATE_CHART: ["生成出勤率饼图", "创建考勤柱状图", "制作趋势折线图"],
    AttendanceIntent.EXPORT_DATA: ["导出考勤表", "下载Excel文件", "保存为PDF"],
    AttendanceIntent.EXPORT_REPORT: ["导出考勤报表", "生成月度报告", "下载考勤报表"],
    AttendanceIntent.QUERY_EMPLOYEE: ["查询张三的考勤", "查看员工出勤情况", "显示李四本月考勤"],
    AttendanceIntent.QUERY_STATISTICS: ["查看出勤率", "统计迟到次数", "显示缺勤情况"],
    AttendanceIntent.QUERY_ATTENDANCE: ["查询考勤记录", "查看本月考勤", "显示考勤情况"],
    AttendanceIntent.MODIFY_TEMPLATE: ["修改考勤模板", "编辑表格样式", "调整模板设置"],
    AttendanceIntent.UNKNOWN: [],
}


def get_intent_description(intent: AttendanceIntent) -> str:
    return INTENT_DESCRIPTIONS.get(intent, "未知操作")


def get_intent_examples(intent: AttendanceIntent) -> List[str]:
    return list(INTENT_EXAMPLES.get(intent, []))
