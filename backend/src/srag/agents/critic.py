import json
import logging
import re
import time
from typing import Any, Callable, Optional

from srag.adapters import BaseLLM
from srag.adapters.utils import call_with_backoff
from srag.errors import ParseError, TransientGatewayError
from srag.models import Degraded, Evaluation, Ok, Outcome, Usage
from .prompts import (
    CRITIQUE_PROMPT,
    CRITIQUE_USER_MESSAGE,
    NOT_FOUND_INSTRUCTIONS,
    NOT_FOUND_PHRASES,
    RESEARCH_NOTES_INSTRUCTIONS,
    STRICT_INSTRUCTIONS,
)

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_THRESHOLD = 0.85
DEFAULT_SCORE = 0.5

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)
_NUMBER = r"([0-9]*\.?[0-9]+)"

SCORE_PATTERNS = (
    re.compile(r"\*\*SCORE\*\*:\s*" + _NUMBER, re.IGNORECASE),
    re.compile(r"\*\*OVERALL SCORE\*\*:\s*" + _NUMBER, re.IGNORECASE),
    re.compile(r"score:\s*" + _NUMBER, re.IGNORECASE),
)
APPROVED_PATTERNS = (
    re.compile(r"\*\*APPROVED\*\*:\s*(true|false)", re.IGNORECASE),
    re.compile(r"approved:\s*(true|false)", re.IGNORECASE),
)
REASONING_PATTERNS = (
    re.compile(r"\*\*REASONING\*\*:\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"reasoning:\s*([^\n]+)", re.IGNORECASE),
)
REFINED_QUERY_PATTERNS = (
    re.compile(r"\*\*REFINED QUERY\*\*:\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"refined query:\s*([^\n]+)", re.IGNORECASE),
)


def generate_refined_query(query: str, score: float) -> str:
    """Rewrite a query heuristically when the critic did not suggest one.

    Later rules override earlier ones, so a very low score always gets the
    most aggressive rewrite.
    """
    refined = query
    lowered = query.lower()

    if len(query) < 30:
        refined = f"Detailed information about {query}"
    if "chapter" in lowered or "section" in lowered:
        refined = f"{query} including key concepts, examples, and main points"
    if lowered.startswith("what is") or lowered.startswith("how does"):
        refined = f"{query} - explain in detail with examples"
    if score < 0.6:
        refined = (
            f"Please provide comprehensive information about {query} "
            "with examples and detailed explanations"
        )

    return refined


def _first_group(patterns: tuple[re.Pattern, ...], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def _parse_json(text: str) -> Optional[dict[str, Any]]:
    candidates = []
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text.strip())
    bare = _BARE_JSON.search(text)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return DEFAULT_SCORE


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _refined_or_query(value: Any, query: str) -> str:
    if isinstance(value, list):
        value = next((v for v in value if isinstance(v, str) and v.strip()), None)
    if not isinstance(value, str) or not value.strip():
        return query
    value = value.strip()
    if value.lower().startswith("none"):
        return query
    return value


def parse_evaluation(text: str, query: str) -> Evaluation:
    """Parse critic output, JSON first and labelled text second.

    Raises:
        ParseError: If neither format yields a score.
    """
    data = _parse_json(text)
    if data is not None:
        score = _to_float(data.get("score", DEFAULT_SCORE))
        approved = _to_bool(data.get("approved", False))
        reasoning = str(data.get("reasoning") or "No reasoning provided.")
        refined = data.get("refinedQuery", data.get("refined_query"))
    else:
        raw_score = _first_group(SCORE_PATTERNS, text)
        if raw_score is None:
            raise ParseError(f"No score found in evaluation output: {text[:200]!r}")
        score = _to_float(raw_score)
        approved = _to_bool(_first_group(APPROVED_PATTERNS, text) or "false")
        reasoning = _first_group(REASONING_PATTERNS, text) or "No reasoning provided."
        refined = _first_group(REFINED_QUERY_PATTERNS, text)

    return Evaluation(
        score=min(1.0, max(0.0, score)),
        approved=approved,
        reasoning=reasoning,
        refined_query=_refined_or_query(refined, query),
    )


class CriticAgent:
    """Scores generated answers and proposes refined queries.

    In strict mode an answer scoring below ``quality_threshold`` is never
    approved, whatever the model said, and always comes back with a query
    different from the one evaluated.
    """

    def __init__(
        self,
        llm: BaseLLM,
        quality_threshold: float = DEFAULT_QUALITY_THRESHOLD,
        strict_mode: bool = True,
        temperature: float = 0.2,
        max_tokens: Optional[int] = 512,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.llm = llm
        self.quality_threshold = quality_threshold
        self.strict_mode = strict_mode
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def build_prompt(self, query: str, response: str, context: str) -> str:
        lowered = response.lower()
        has_not_found_claim = any(phrase in lowered for phrase in NOT_FOUND_PHRASES)
        has_research_notes = "research notes" in lowered

        return CRITIQUE_PROMPT.format(
            strict_instructions=STRICT_INSTRUCTIONS if self.strict_mode else "",
            not_found_instructions=NOT_FOUND_INSTRUCTIONS if has_not_found_claim else "",
            research_notes_instructions=(
                RESEARCH_NOTES_INSTRUCTIONS if has_research_notes else ""
            ),
            query=query,
            context=context or "No context was retrieved.",
            response=response,
        )

    def _apply_strict_mode(self, query: str, evaluation: Evaluation) -> Evaluation:
        if not self.strict_mode or evaluation.score >= self.quality_threshold:
            return evaluation

        refined = evaluation.refined_query
        if refined == query:
            refined = generate_refined_query(query, evaluation.score)

        return evaluation.model_copy(
            update={
                "approved": False,
                "reasoning": (
                    f"{evaluation.reasoning} (Strict mode: Score {evaluation.score} "
                    f"below threshold {self.quality_threshold})"
                ),
                "refined_query": refined,
            }
        )

    def evaluate_with_usage(
        self, query: str, response: str, context: str, attempt_index: int = 0
    ) -> tuple[Outcome[Evaluation], Usage]:
        """Evaluate a response and report the tokens the critique used."""
        logger.info(f"Evaluating response for attempt {attempt_index}")

        try:
            completion = call_with_backoff(
                "evaluation",
                self.llm.complete,
                self.build_prompt(query, response, context),
                CRITIQUE_USER_MESSAGE,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self.sleep,
            )
        except TransientGatewayError as e:
            logger.error(f"Evaluation failed, defaulting to approval: {e}")
            fallback = Evaluation(
                score=DEFAULT_SCORE,
                approved=True,
                reasoning=f"Evaluation error: {e}. Defaulting to approval.",
                refined_query=query,
            )
            return Degraded(fallback, reason=str(e)), Usage()

        try:
            evaluation = parse_evaluation(completion.text, query)
        except ParseError as e:
            logger.warning(f"Unparseable evaluation, not approving: {e}")
            evaluation = Evaluation(
                score=DEFAULT_SCORE,
                approved=False,
                reasoning="Evaluation output could not be parsed.",
                refined_query=query,
            )
            return Ok(evaluation), completion.usage

        evaluation = self._apply_strict_mode(query, evaluation)
        logger.info(f"Evaluation: approved={evaluation.approved}, score={evaluation.score}")
        if not evaluation.approved:
            logger.debug(f"Refined query: {evaluation.refined_query}")
        return Ok(evaluation), completion.usage

    def evaluate(
        self, query: str, response: str, context: str, attempt_index: int = 0
    ) -> Outcome[Evaluation]:
        outcome, _ = self.evaluate_with_usage(query, response, context, attempt_index)
        return outcome
