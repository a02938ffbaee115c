"""
Attendance Pattern Library

Static regular-expression and keyword tables used by the entity extractor,
the intent rules and the orchestrator. Pure data: nothing here holds state.

Patterns accept both Chinese and Arabic numerals where normalization may
have rewritten the input (e.g. "上一周" arrives as "上1周").
"""
import re
from typing import Dict, List, Pattern

from src.core.attendance_types import ChartType, ColumnType, OutputFormat, StatisticType

# Date patterns
DATE_PATTERNS: Dict[str, Pattern] = {
    # 2024年1月1日, 2024-01-01, 2024/01/01
    "full_date": re.compile(r"(\d{4})[-年/](\d{1,2})[-月/](\d{1,2})日?"),
    # 2024年1月
    "year_month": re.compile(r"(\d{4})年(\d{1,2})月"),
    # 1月1日
    "month_day": re.compile(r"(\d{1,2})月(\d{1,2})日?"),
    # 1月, 一月
    "month": re.compile(r"(\d{1,2})月|([一二三四五六七八九十]+)月"),
    # 1月1日到1月31日, 1月1日-1月31日
    "date_range": re.compile(r"(\d{1,2})月(\d{1,2})日?[到至\-~](\d{1,2})月(\d{1,2})日?"),
    # 1月1日到31日
    "same_month_range": re.compile(r"(\d{1,2})月(\d{1,2})日?[到至\-~](\d{1,2})日?"),
}

# Relative date keywords, in resolution order
RELATIVE_DATE_PATTERNS: Dict[str, Pattern] = {
    "today": re.compile(r"今天|今日|当天"),
    "this_week": re.compile(r"本周|这周|这[一1]周"),
    "last_week": re.compile(r"上周|上[一1]周"),
    "this_month": re.compile(r"本月|这个月|当月"),
    "last_month": re.compile(r"上月|上个月"),
    "yesterday": re.compile(r"昨天|昨日"),
    "this_year": re.compile(r"今年|本年"),
    "last_year": re.compile(r"去年|上[一1]年"),
}

TIME_PATTERNS: Dict[str, Pattern] = {
    # 09:00, 9:00, 09点00分
    "time": re.compile(r"(\d{1,2})[:\s点](\d{2})分?"),
    # 09:00-18:00
    "time_range": re.compile(r"(\d{1,2})[:\s点](\d{2})分?[到至\-~](\d{1,2})[:\s点](\d{2})分?"),
}

EMPLOYEE_PATTERNS: Dict[str, Pattern] = {
    # 包含张三、李四 / 员工为: 张三,李四
    "employee_list": re.compile(r"(?:包含|包括|有|员工[是为]?)[：:\s]*([^\n]+)"),
    "list_separator": re.compile(r"[,，、\s]+"),
    "chinese_name": re.compile(r"[\u4e00-\u9fa5]{2,4}"),
    "pure_chinese": re.compile(r"^[\u4e00-\u9fa5]+$"),
    "department": re.compile(r"([^\s，,、]+?)(部门?|组|团队|中心)"),
}

# Words stripped from the front of a department match ("生成技术部" -> "技术部")
DEPARTMENT_PREFIX = re.compile(
    r"^(?:请|帮我|帮|给|把|将|生成|创建|制作|导出|导入|查询|查看|显示|统计|汇总|分析|"
    r"今天|昨天|本周|上周|本月|上月|今年|去年|\d+年|\d+月|\d+日|的)+"
)
DEPARTMENT_STOPWORDS = frozenset({"全", "各", "所有", "每个", "内", "外"})

# Non-name words subtracted by the employee-list fallback
EMPLOYEE_EXCLUDE_WORDS = frozenset({
    "考勤", "生成", "创建", "月报", "周报", "日报", "汇总", "统计",
    "表格", "模板", "员工", "部门", "公司", "时间", "日期", "本月",
    "上月", "本周", "上周", "今天", "昨天", "包含", "包括", "需要",
})

ATTENDANCE_TYPE_PATTERNS: Dict[str, Pattern] = {
    "daily": re.compile(r"日报|日考勤|每日|当日|今日"),
    "weekly": re.compile(r"周报|周考勤|每周|本周|[一1]周"),
    "monthly": re.compile(r"月报|月考勤|每月|本月|月度"),
    "summary": re.compile(r"汇总|统计|总结|分析"),
}

ACTION_PATTERNS: Dict[str, Pattern] = {
    "create": re.compile(r"生成|创建|做|制作|新建|建立|出"),
    "import": re.compile(r"导入|上传|读取|加载"),
    "export": re.compile(r"导出|下载|保存|输出"),
    "modify": re.compile(r"修改|编辑|更改|调整|更新"),
    "delete": re.compile(r"删除|移除|清除"),
    "query": re.compile(r"查询|查看|显示|展示|看"),
    "add": re.compile(r"添加|增加|加入|新增"),
}

# Checked in table order; every match is reported
STATISTIC_PATTERNS: Dict[StatisticType, Pattern] = {
    StatisticType.ATTENDANCE_RATE: re.compile(r"出勤率|到勤率"),
    StatisticType.LATE_COUNT: re.compile(r"迟到次数|迟到"),
    StatisticType.EARLY_LEAVE_COUNT: re.compile(r"早退次数|早退"),
    StatisticType.ABSENT_COUNT: re.compile(r"缺勤次数|缺勤|旷工"),
    StatisticType.LEAVE_DAYS: re.compile(r"请假次数|请假天数|请假"),
    StatisticType.OVERTIME_HOURS: re.compile(r"加班时长|加班小时|加班"),
    StatisticType.WORK_HOURS: re.compile(r"工时|工作时长|工作小时"),
}

CHART_PATTERNS: Dict[str, Pattern] = {
    "pie": re.compile(r"饼图|饼状图|圆形图"),
    "bar": re.compile(r"柱图|柱状图|柱形图|条形图"),
    "line": re.compile(r"折线图|线图|趋势图"),
    "chart": re.compile(r"图表|图"),
    "trend": re.compile(r"趋势"),
    "employee_comparison": re.compile(r"员工|对比"),
}

# Chart enum -> caller-facing chart kind
CHART_KIND: Dict[ChartType, str] = {
    ChartType.PIE_ATTENDANCE: "pie",
    ChartType.BAR_ATTENDANCE: "bar",
    ChartType.BAR_EMPLOYEE: "bar",
    ChartType.LINE_TREND: "line",
}

FORMAT_PATTERNS: Dict[OutputFormat, Pattern] = {
    OutputFormat.WORD: re.compile(r"word|文档", re.IGNORECASE),
    OutputFormat.EXCEL: re.compile(r"excel|表格|电子表格", re.IGNORECASE),
    OutputFormat.PDF: re.compile(r"pdf", re.IGNORECASE),
}

COLUMN_PATTERNS: Dict[ColumnType, Pattern] = {
    ColumnType.CHECK_IN: re.compile(r"上班时间|签到时间|打卡时间|到岗时间"),
    ColumnType.CHECK_OUT: re.compile(r"下班时间|签退时间|离岗时间"),
    ColumnType.WORK_HOURS: re.compile(r"工时|工作时长"),
    ColumnType.OVERTIME: re.compile(r"加班|加班时长"),
    ColumnType.STATUS: re.compile(r"状态|考勤状态"),
    ColumnType.NOTES: re.compile(r"备注|说明|注释"),
}

COLUMN_NAME_PATTERNS: List[Pattern] = [
    re.compile(r"(?:列[名称]?|栏[名称]?)[：:\s]*([^\n]+)"),
    re.compile(r"包含[列栏][名称]?[：:\s]*([^\n]+)"),
]

TEMPLATE_HINT_PATTERNS: Dict[str, Pattern] = {
    "simple": re.compile(r"简单|简易"),
    "detailed": re.compile(r"详细|详情"),
    "summary": re.compile(r"汇总|统计"),
}

NUMBER_PATTERNS: Dict[str, Pattern] = {
    "arabic": re.compile(r"\d+"),
    "chinese": re.compile(r"[零一二三四五六七八九十百千万]+"),
    # Runs rewritten by input normalization
    "normalizable": re.compile(r"[零一二三四五六七八九十两]+"),
    "with_unit": re.compile(r"(\d+(?:\.\d+)?)\s*(天|小时|分钟|次|人|个)"),
}

CHINESE_DIGITS: Dict[str, int] = {
    "零": 0, "一": 1, "二": 2, "两": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}
CHINESE_UNITS: Dict[str, int] = {"十": 10, "百": 100, "千": 1000, "万": 10000}


def chinese_to_number(chinese: str) -> int:
    """
    Convert a Chinese numeral to an integer.

    Handles unit forms ("十五" -> 15, "二十五" -> 25, "一百零三" -> 103).
    Characters that are not numerals are ignored.
    """
    result = 0
    temp = 0
    last_unit = 1

    for char in chinese:
        if char in CHINESE_UNITS:
            unit = CHINESE_UNITS[char]
            if temp == 0:
                temp = 1
            if unit > last_unit:
                result = (result + temp) * unit
            else:
                result += temp * unit
            temp = 0
            last_unit = unit
        elif char in CHINESE_DIGITS:
            temp = CHINESE_DIGITS[char]

    return result + temp


def convert_chinese_numeral_run(run: str) -> str:
    """
    Rewrite one run of Chinese numerals as Arabic digits.

    Runs without a unit character are read digit by digit ("二零二四" -> "2024").
    """
    if any(char in CHINESE_UNITS for char in run):
        return str(chinese_to_number(run))
    return "".join(str(CHINESE_DIGITS[char]) for char in run if char in CHINESE_DIGITS)


def extract_all_matches(text: str, pattern: Pattern) -> List[str]:
    """All full-match strings of a pattern in text."""
    return [m.group(0) for m in pattern.finditer(text)]


def matches_pattern(text: str, pattern: Pattern) -> bool:
    return pattern.search(text) is not None
