from .critic import CriticAgent, generate_refined_query, parse_evaluation
from .synthesizer import FALLBACK_RESPONSE, SynthesizerAgent

__all__ = [
    "CriticAgent",
    "FALLBACK_RESPONSE",
    "SynthesizerAgent",
    "generate_refined_query",
    "parse_evaluation",
]
