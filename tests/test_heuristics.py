from srag.retrieval import KEYWORD_RULES, KeywordRule, query_tokens, rule_bonus, score_chunk
from srag.retrieval.heuristics import token_score


def _rule(name: str) -> KeywordRule:
    return next(rule for rule in KEYWORD_RULES if rule.name == name)


class TestQueryTokens:
    def test_short_tokens_dropped(self) -> None:
        assert query_tokens("What is an AI?") == ["what"]

    def test_lowercased_and_split_on_punctuation(self) -> None:
        assert query_tokens("Speech-Acts, Austin!") == ["speech", "acts", "austin"]


class TestTokenScore:
    def test_counts_substring_occurrences(self) -> None:
        assert token_score("discuss acts", "Chapter 2 discusses speech acts. Acts matter.") == 3

    def test_no_overlap(self) -> None:
        assert token_score("quantum", "Chapter 2 discusses speech acts.") == 0


class TestKeywordRules:
    def test_author_rule(self) -> None:
        rule = _rule("author")
        assert rule.bonus_for("Who wrote this book?", "Author: Jane Doe", 4) == 100
        assert rule.bonus_for("Who wrote this book?", "No names here.", 4) == 0
        assert rule.bonus_for("Summarize the book", "Author: Jane Doe", 4) == 0

    def test_author_rule_needs_whole_word_and_name(self) -> None:
        rule = _rule("author")
        assert rule.bonus_for("What authority does the court have?", "Author: Jane Doe", 4) == 0
        assert rule.bonus_for("Who is the author?", "Published by Jane Doe in 1999.", 4) == 100
        assert rule.bonus_for("Who is the author?", "Replaced by the new rules.", 4) == 0

    def test_chapter_rule_uses_query_number(self) -> None:
        rule = _rule("chapter")
        assert rule.bonus_for("What is in chapter 2?", "Chapter 2: Speech acts", 7) == 150
        assert rule.bonus_for("What is in chapter 2?", "As discussed in chapter 2, ...", 7) == 150
        assert rule.bonus_for("What is in chapter 2?", "Chapter 3: Implicature", 7) == 0

    def test_chapter_number_needs_word_boundary(self) -> None:
        rule = _rule("chapter")
        assert rule.bonus_for("Tell me about chapter 1", "Chapter 12: Appendix", 0) == 0

    def test_chapter_mentions_per_match(self) -> None:
        rule = _rule("chapter-mentions")
        content = "Chapter 3 starts here. Later, chapter 3 returns. Chapter 4 differs."
        assert rule.bonus_for("Explain chapter 3", content, 9) == 20

    def test_overview_only_for_leading_chunks(self) -> None:
        rule = _rule("overview")
        assert rule.bonus_for("What is this book about?", "anything", 0) == 80
        assert rule.bonus_for("What is this book about?", "anything", 2) == 80
        assert rule.bonus_for("What is this book about?", "anything", 3) == 0
        assert rule.bonus_for("What is this book about?", "anything", "meta") == 0

    def test_custom_rule(self) -> None:
        rule = KeywordRule(
            name="glossary",
            query_pattern=r"define (\w+)",
            chunk_patterns=(r"{0}\s*:",),
            bonus=40,
        )
        assert rule.bonus_for("define implicature", "Implicature: what is meant", 0) == 40
        assert rule_bonus("define implicature", "Implicature: x", 0, rules=(rule,)) == 40


class TestScoreChunk:
    def test_chapter_query_prefers_heading_chunk(self) -> None:
        query = "What does chapter 2 discuss?"
        heading = score_chunk(query, "Chapter 2 discusses speech acts and performatives.", 5)
        other = score_chunk(query, "Chapter 1 discusses meaning in context.", 4)

        # tokens "chapter" + "discuss", heading rule, one mention
        assert heading == 2 + 150 + 10
        assert other == 2
        assert heading > other

    def test_zero_for_unrelated_chunk(self) -> None:
        assert score_chunk("photosynthesis rates", "Speech acts and performatives.", 5) == 0
