"""
Chinese Command Segmenter

Dictionary-driven forward maximal-match segmentation for short attendance
commands. Deterministic and total: every character ends up in some token,
unknown CJK characters become single-character UNKNOWN tokens and runs of
Latin letters become one UNKNOWN token each.

Usage:
    from src.core.tokenizer import get_tokenizer

    tokens = get_tokenizer().tokenize("生成本月考勤表")
"""
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional


class PartOfSpeech(Enum):
    """Part-of-speech tags assigned by the segmenter."""
    NOUN = "n"
    VERB = "v"
    ADJ = "a"
    NUM = "m"
    QUANTIFIER = "q"
    TIME = "t"
    PERSON = "nr"
    PLACE = "ns"
    ORG = "nt"
    PUNCT = "w"
    UNKNOWN = "x"


@dataclass(frozen=True)
class Token:
    """A segmented word with its tag and [start, end) offsets."""
    word: str
    part_of_speech: PartOfSpeech
    start: int
    end: int

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "pos": self.part_of_speech.value,
            "start": self.start,
            "end": self.end,
        }


def _build_dictionary() -> Mapping[str, PartOfSpeech]:
    words = {}
    groups = [
        (PartOfSpeech.VERB, [
            "生成", "创建", "制作", "导入", "导出", "统计", "汇总", "分析", "查看",
            "显示", "添加", "删除", "修改", "更新", "计算", "包含", "包括",
        ]),
        # Attendance nouns
        (PartOfSpeech.NOUN, [
            "考勤", "考勤表", "考勤记录", "出勤", "出勤率", "迟到", "早退", "缺勤",
            "请假", "加班", "打卡", "签到", "签退", "上班", "下班", "工时", "工作时长",
        ]),
        # Report nouns
        (PartOfSpeech.NOUN, [
            "日报", "周报", "月报", "年报", "报表", "表格", "模板", "图表",
            "饼图", "柱状图", "折线图", "趋势图",
        ]),
        # Organisation nouns
        (PartOfSpeech.NOUN, ["员工", "部门", "公司", "团队", "人员"]),
        (PartOfSpeech.TIME, [
            "今天", "昨天", "明天", "本周", "上周", "下周", "本月", "上月", "下月",
            "今年", "去年", "明年", "月", "周", "日", "年", "号",
        ]),
        (PartOfSpeech.ADJ, ["详细", "简单", "完整", "全部", "所有"]),
        (PartOfSpeech.QUANTIFIER, ["个", "份", "张", "次", "天", "小时", "分钟"]),
    ]
    for pos, group in groups:
        for word in group:
            words[word] = pos
    return MappingProxyType(words)


# Loaded once at import; read-only for the life of the process
DICTIONARY: Mapping[str, PartOfSpeech] = _build_dictionary()

STOP_WORDS = frozenset({
    "的", "了", "和", "与", "或", "在", "是", "有", "为", "以", "及", "等",
    "把", "被", "让", "给", "从", "到", "向", "对", "按", "用", "将", "要",
    "能", "可", "会", "就", "都", "也", "还", "又", "再", "很", "太", "更",
    "最", "非常", "十分", "一", "一个", "这", "那", "这个", "那个", "什么",
    "怎么", "请", "帮", "帮我", "帮忙", "麻烦", "需要", "想要", "想",
})

NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
LATIN_RE = re.compile(r"[a-zA-Z]+")
CJK_RE = re.compile(r"[\u4e00-\u9fa5]")
PUNCT_RE = re.compile(r"[，。！？、；：“”‘’（）【】《》\-~,.!?;:\"'()\[\]<>]")

KEYWORD_POS = frozenset({PartOfSpeech.NOUN, PartOfSpeech.VERB, PartOfSpeech.TIME})
PHRASE_POS = frozenset({PartOfSpeech.NOUN, PartOfSpeech.ADJ})


class Tokenizer:
    """
    Forward maximal-match segmenter.

    At each position: skip whitespace, then try a number, a punctuation
    character, the longest dictionary word (up to max_word_length), and
    finally fall back to an UNKNOWN token.
    """

    def __init__(self, max_word_length: int = 5):
        self.max_word_length = max_word_length

    def tokenize(self, text: str) -> List[Token]:
        tokens = []
        pos = 0
        length = len(text)

        while pos < length:
            char = text[pos]

            if char.isspace():
                pos += 1
                continue

            num_match = NUMBER_RE.match(text, pos)
            if num_match:
                tokens.append(Token(num_match.group(0), PartOfSpeech.NUM, pos, num_match.end()))
                pos = num_match.end()
                continue

            if PUNCT_RE.match(char):
                tokens.append(Token(char, PartOfSpeech.PUNCT, pos, pos + 1))
                pos += 1
                continue

            word_len = self._longest_dictionary_match(text, pos)
            if word_len:
                word = text[pos:pos + word_len]
                tokens.append(Token(word, DICTIONARY[word], pos, pos + word_len))
                pos += word_len
                continue

            latin_match = None if CJK_RE.match(char) else LATIN_RE.match(text, pos)
            if latin_match:
                tokens.append(Token(latin_match.group(0), PartOfSpeech.UNKNOWN, pos, latin_match.end()))
                pos = latin_match.end()
            else:
                tokens.append(Token(char, PartOfSpeech.UNKNOWN, pos, pos + 1))
                pos += 1

        return tokens

    def _longest_dictionary_match(self, text: str, pos: int) -> int:
        for word_len in range(self.max_word_length, 0, -1):
            if pos + word_len > len(text):
                continue
            if text[pos:pos + word_len] in DICTIONARY:
                return word_len
        return 0

    def tokenize_and_filter(self, text: str) -> List[Token]:
        """Tokenize and drop stop words."""
        return [t for t in self.tokenize(text) if t.word not in STOP_WORDS]

    def get_keywords(self, text: str) -> List[str]:
        """Nouns, verbs and time words, stop words removed."""
        return [t.word for t in self.tokenize_and_filter(text) if t.part_of_speech in KEYWORD_POS]

    def extract_noun_phrases(self, text: str) -> List[str]:
        """Concatenate contiguous NOUN/ADJ runs, keeping those longer than one character."""
        phrases = []
        current = ""
        for token in self.tokenize(text):
            if token.part_of_speech in PHRASE_POS:
                current += token.word
                continue
            if len(current) > 1:
                phrases.append(current)
            current = ""
        if len(current) > 1:
            phrases.append(current)
        return phrases

    def contains_pos(self, text: str, pos: PartOfSpeech) -> bool:
        return any(t.part_of_speech == pos for t in self.tokenize(text))

    def get_words_by_pos(self, text: str, pos: PartOfSpeech) -> List[str]:
        return [t.word for t in self.tokenize(text) if t.part_of_speech == pos]


# Singleton instance
_tokenizer: Optional[Tokenizer] = None


def get_tokenizer() -> Tokenizer:
    """Get the shared tokenizer instance."""
    global _tokenizer
    if _tokenizer is None:
        _tokenizer = Tokenizer()
    return _tokenizer


def tokenize(text: str) -> List[Token]:
    return get_tokenizer().tokenize(text)


def extract_keywords(text: str) -> List[str]:
    return get_tokenizer().get_keywords(text)
