import logging
import os
from typing import Any, Optional

import pandas as pd
from datasets import Dataset
from openai import OpenAI
from ragas import evaluate
from ragas.embeddings import OpenAIEmbeddings
from ragas.llms import llm_factory
from ragas.metrics.collections import (
    AnswerRelevancy,
    ContextPrecision,
    ContextRecall,
    Faithfulness,
)

from srag.models import QueryResult

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"
GROUND_TRUTH_METRICS = (ContextPrecision, ContextRecall)


def result_contexts(result: QueryResult) -> list[str]:
    """Context passages the final answer was generated from."""
    if not result.history:
        return []
    answered = next(
        (a for a in reversed(result.history) if a.generated_text == result.response),
        result.history[-1],
    )
    return [part for part in answered.context.split(CONTEXT_SEPARATOR) if part.strip()]


def build_dataset(
    results: list[QueryResult], ground_truths: Optional[list[str]] = None
) -> Dataset:
    """Turn orchestrator results into a RAGAS dataset."""
    data: dict[str, list[Any]] = {
        "question": [r.query for r in results],
        "answer": [r.response for r in results],
        "contexts": [result_contexts(r) for r in results],
    }
    if ground_truths:
        if len(ground_truths) != len(results):
            raise ValueError(
                f"Got {len(ground_truths)} ground truths for {len(results)} results"
            )
        data["ground_truth"] = ground_truths
    return Dataset.from_dict(data)


class RagasEvaluator:
    """Offline scorer for final answers, using RAGAS with OpenAI as judge."""

    def __init__(
        self,
        model: str = "gpt-4o",
        embeddings_model: str = "text-embedding-3-small",
        openai_api_key: Optional[str] = None,
    ):
        api_key = openai_api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY must be provided or set in environment")

        self.client = OpenAI(api_key=api_key)
        self.llm = llm_factory(model, client=self.client)
        self.embeddings = OpenAIEmbeddings(model=embeddings_model, client=self.client)

        self.metrics = [
            Faithfulness(llm=self.llm),
            AnswerRelevancy(llm=self.llm, embeddings=self.embeddings),
            ContextPrecision(llm=self.llm),
            ContextRecall(llm=self.llm),
        ]

    def _active_metrics(self, has_ground_truth: bool) -> list[Any]:
        if has_ground_truth:
            return self.metrics
        logger.warning("No ground truth provided. Skipping context_precision and context_recall.")
        return [m for m in self.metrics if not isinstance(m, GROUND_TRUTH_METRICS)]

    def evaluate_dataset(self, dataset: Dataset) -> pd.DataFrame:
        """Score a dataset with question/answer/contexts (and ground_truth).

        Returns:
            One row per question, one column per metric. Empty on failure.
        """
        metrics = self._active_metrics("ground_truth" in dataset.column_names)
        try:
            result = evaluate(
                dataset,
                metrics=metrics,
                llm=self.llm,
                embeddings=self.embeddings,
            )
        except Exception as e:
            logger.error(f"RAGAS evaluation failed: {e}")
            return pd.DataFrame()
        return result.to_pandas()

    def evaluate_results(
        self, results: list[QueryResult], ground_truths: Optional[list[str]] = None
    ) -> pd.DataFrame:
        frame = self.evaluate_dataset(build_dataset(results, ground_truths))
        if not frame.empty:
            frame["attempts"] = [r.attempts for r in results]
            frame["critic_score"] = [r.evaluation.score for r in results]
            frame["state"] = [r.state.value for r in results]
        return frame


def summarize(frame: pd.DataFrame) -> dict[str, float]:
    """Mean of every numeric column."""
    if frame.empty:
        return {}
    return {k: float(v) for k, v in frame.mean(numeric_only=True).items()}


def get_evaluator() -> RagasEvaluator:
    """Create a RagasEvaluator instance from environment."""
    return RagasEvaluator()
