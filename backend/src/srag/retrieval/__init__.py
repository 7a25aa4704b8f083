from .heuristics import KEYWORD_RULES, KeywordRule, query_tokens, rule_bonus, score_chunk
from .hybrid import HybridRetriever, RetrievalOptions, RetrievalOutcome

__all__ = [
    "HybridRetriever",
    "KEYWORD_RULES",
    "KeywordRule",
    "RetrievalOptions",
    "RetrievalOutcome",
    "query_tokens",
    "rule_bonus",
    "score_chunk",
]
