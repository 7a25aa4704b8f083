"""Keyword scoring for the lexical fallback scan.

Pure vector similarity does poorly on locator-style questions ("who wrote
this", "what is chapter 3 about") over small corpora, so the keyword scan
adds fixed bonuses from an ordered rule table on top of plain token counts.
"""

import re
from dataclasses import dataclass, field
from typing import Literal

LEADING_CHUNKS = 3


@dataclass(frozen=True)
class KeywordRule:
    """One scoring rule.

    Attributes:
        name: Rule name, for logs and tests.
        query_pattern: Regex that must match the query for the rule to fire.
        chunk_patterns: Regex templates searched in the chunk content. ``{0}``
            is replaced by the query pattern's first capture (escaped). An
            empty tuple means the rule applies to every chunk in scope.
        bonus: Score added when the rule fires.
        scope: "any" chunk, or only "leading" chunks (index below 3).
        per_match: Multiply the bonus by the number of matches of the first
            chunk pattern instead of adding it once.
    """

    name: str
    query_pattern: str
    chunk_patterns: tuple[str, ...] = ()
    bonus: int = 0
    scope: Literal["any", "leading"] = "any"
    per_match: bool = False
    _compiled_query: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_compiled_query", re.compile(self.query_pattern, re.IGNORECASE)
        )

    def _in_scope(self, index: int | str) -> bool:
        if self.scope == "any":
            return True
        return isinstance(index, int) and index < LEADING_CHUNKS

    def bonus_for(self, query: str, content: str, index: int | str) -> int:
        match = self._compiled_query.search(query)
        if not match or not self._in_scope(index):
            return 0
        if not self.chunk_patterns:
            return self.bonus

        captures = [re.escape(group) for group in match.groups() if group is not None]
        patterns = [
            re.compile(template.format(*captures), re.IGNORECASE | re.MULTILINE)
            for template in self.chunk_patterns
        ]

        if self.per_match:
            return self.bonus * len(patterns[0].findall(content))
        if any(pattern.search(content) for pattern in patterns):
            return self.bonus
        return 0


KEYWORD_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(
        name="author",
        query_pattern=r"\bauthors?\b|\bwho wrote\b|\bwho is\b",
        chunk_patterns=(
            r"author\s*:\s*\S",
            r"written by\s+\S",
            r"\bby\s+(?-i:[A-Z][a-z]+)",
        ),
        bonus=100,
    ),
    KeywordRule(
        name="chapter",
        query_pattern=r"\bchapter\s+(\d+)",
        chunk_patterns=(
            r"^\s*chapter\s+{0}\b[^\n\r]*",
            r"chapter\s+{0}\s*[.:]\s*\S",
            r"in\s+chapter\s+{0}\b",
            r"chapter\s+{0}\s+discusses",
            r"discussed in\s+chapter\s+{0}\b",
        ),
        bonus=150,
    ),
    KeywordRule(
        name="chapter-mentions",
        query_pattern=r"\bchapter\s+(\d+)",
        chunk_patterns=(r"chapter\s+{0}\b",),
        bonus=10,
        per_match=True,
    ),
    KeywordRule(
        name="overview",
        query_pattern=r"book about|what is this|topics|what are",
        bonus=80,
        scope="leading",
    ),
)


def query_tokens(query: str) -> list[str]:
    """Lowercased word tokens longer than two characters."""
    return [token for token in re.split(r"\W+", query.lower()) if len(token) > 2]


def token_score(query: str, content: str) -> int:
    lowered = content.lower()
    return sum(lowered.count(token) for token in query_tokens(query))


def rule_bonus(
    query: str,
    content: str,
    index: int | str,
    rules: tuple[KeywordRule, ...] = KEYWORD_RULES,
) -> int:
    return sum(rule.bonus_for(query, content, index) for rule in rules)


def score_chunk(
    query: str,
    content: str,
    index: int | str,
    rules: tuple[KeywordRule, ...] = KEYWORD_RULES,
) -> int:
    """Token occurrence count plus every rule bonus that fires."""
    return token_score(query, content) + rule_bonus(query, content, index, rules)
