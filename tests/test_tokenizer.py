"""
Tests for the Chinese command segmenter.
"""
import pytest

from src.core.tokenizer import DICTIONARY, PartOfSpeech, Tokenizer, extract_keywords, tokenize


@pytest.fixture
def tokenizer():
    return Tokenizer()


class TestTokenize:
    """Forward maximal-match segmentation."""

    def test_longest_dictionary_match_wins(self, tokenizer):
        tokens = tokenizer.tokenize("生成本月考勤表")
        assert [(t.word, t.part_of_speech) for t in tokens] == [
            ("生成", PartOfSpeech.VERB),
            ("本月", PartOfSpeech.TIME),
            ("考勤表", PartOfSpeech.NOUN),
        ]

    def test_offsets_are_half_open(self, tokenizer):
        tokens = tokenizer.tokenize("生成本月考勤表")
        assert [(t.start, t.end) for t in tokens] == [(0, 2), (2, 4), (4, 7)]

    def test_numbers_become_single_tokens(self, tokenizer):
        tokens = tokenizer.tokenize("导入2024年数据")
        assert tokens[1].word == "2024"
        assert tokens[1].part_of_speech == PartOfSpeech.NUM
        assert tokens[2].word == "年"

    def test_decimal_number(self, tokenizer):
        tokens = tokenizer.tokenize("加班1.5小时")
        assert [t.word for t in tokens] == ["加班", "1.5", "小时"]

    def test_latin_run_is_one_unknown_token(self, tokenizer):
        tokens = tokenizer.tokenize("导出Excel")
        assert tokens[-1].word == "Excel"
        assert tokens[-1].part_of_speech == PartOfSpeech.UNKNOWN

    def test_unknown_cjk_characters_are_single_tokens(self, tokenizer):
        tokens = tokenizer.tokenize("你好")
        assert [t.word for t in tokens] == ["你", "好"]
        assert all(t.part_of_speech == PartOfSpeech.UNKNOWN for t in tokens)

    def test_punctuation_and_whitespace(self, tokenizer):
        tokens = tokenizer.tokenize("张伟， 李娜")
        assert [t.word for t in tokens] == ["张", "伟", "，", "李", "娜"]
        assert tokens[2].part_of_speech == PartOfSpeech.PUNCT

    @pytest.mark.parametrize("text", [
        "帮我生成上月技术部的考勤汇总表",
        "导入attendance2024.xlsx",
        "统计迟到次数，并生成饼图",
    ])
    def test_every_non_space_character_is_covered(self, tokenizer, text):
        tokens = tokenizer.tokenize(text)
        assert "".join(t.word for t in tokens) == text.replace(" ", "")

    def test_empty_input(self, tokenizer):
        assert tokenizer.tokenize("") == []

    def test_dictionary_is_read_only(self):
        with pytest.raises(TypeError):
            DICTIONARY["新词"] = PartOfSpeech.NOUN


class TestKeywordsAndPhrases:
    """Derived views over the token stream."""

    def test_stop_words_removed(self, tokenizer):
        words = [t.word for t in tokenizer.tokenize_and_filter("请生成本月的考勤表")]
        assert "请" not in words
        assert "的" not in words

    def test_keywords_are_nouns_verbs_and_time_words(self):
        assert extract_keywords("帮我生成本月的考勤表") == ["生成", "本月", "考勤表"]

    def test_noun_phrases_join_adjacent_nouns_and_adjectives(self, tokenizer):
        assert tokenizer.extract_noun_phrases("生成详细考勤表") == ["详细考勤表"]

    def test_single_character_phrases_dropped(self, tokenizer):
        assert tokenizer.extract_noun_phrases("生成月") == []

    def test_contains_pos(self, tokenizer):
        assert tokenizer.contains_pos("本月考勤", PartOfSpeech.TIME)
        assert not tokenizer.contains_pos("考勤表", PartOfSpeech.VERB)

    def test_get_words_by_pos(self, tokenizer):
        assert tokenizer.get_words_by_pos("导入并导出考勤", PartOfSpeech.VERB) == ["导入", "导出"]

    def test_module_tokenize_uses_shared_instance(self):
        assert [t.word for t in tokenize("生成周报")] == ["生成", "周报"]
