"""Session, attempt and evaluation records for the refinement loop."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from srag.models.completion import Usage


class SessionState(str, Enum):
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    EVALUATING = "evaluating"
    REFINING = "refining"
    APPROVED = "approved"
    FAILED = "failed"


class Evaluation(BaseModel):
    """Critic verdict for one generated answer."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    approved: bool
    reasoning: str
    refined_query: str


class Attempt(BaseModel):
    """One retrieve -> generate -> evaluate pass. Never mutated once recorded."""

    model_config = ConfigDict(frozen=True)

    attempt_index: int
    query: str
    context: str
    generated_text: str
    evaluation: Evaluation
    usage: Usage = Field(default_factory=Usage)
    sources: list[str] = Field(default_factory=list)
    degraded: list[str] = Field(default_factory=list)

    def summary(self) -> dict:
        return {
            "attempt": self.attempt_index,
            "query": self.query,
            "contextLength": len(self.context),
            "response": self.generated_text,
            "score": self.evaluation.score,
            "approved": self.evaluation.approved,
            "reasoning": self.evaluation.reasoning,
            "refinedQuery": self.evaluation.refined_query,
            "degraded": list(self.degraded),
        }


class QueryResult(BaseModel):
    """Terminal result of a session."""

    model_config = ConfigDict(frozen=True)

    query: str
    response: str
    state: SessionState
    evaluation: Evaluation
    attempts: int
    history: list[Attempt] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    sources: list[str] = Field(default_factory=list)
    degraded: list[str] = Field(default_factory=list)
    cached: bool = False

    @property
    def approved(self) -> bool:
        return self.state == SessionState.APPROVED


class Session(BaseModel):
    """The unit of work for one user query."""

    original_query: str
    attempts: list[Attempt] = Field(default_factory=list)
    final_result: Optional[QueryResult] = None

    def record(self, attempt: Attempt) -> None:
        if attempt.attempt_index != len(self.attempts):
            raise ValueError(
                f"Attempt {attempt.attempt_index} recorded out of order "
                f"(expected {len(self.attempts)})"
            )
        self.attempts.append(attempt)

    @property
    def total_usage(self) -> Usage:
        total = Usage()
        for attempt in self.attempts:
            total = total + attempt.usage
        return total
