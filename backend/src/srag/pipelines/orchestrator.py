import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from srag.adapters import BaseEmbedder
from srag.agents import CriticAgent, SynthesizerAgent
from srag.cache import QueryCache
from srag.config import get_config_value
from srag.errors import EmptyContextError
from srag.models import Attempt, Evaluation, QueryResult, Session, SessionState
from srag.retrieval import HybridRetriever, RetrievalOptions, RetrievalOutcome
from srag.stores import BaseVectorStore, ChunkStore
from .base import (
    DEFAULT_MAX_ATTEMPTS,
    create_chunk_store_from_config,
    create_critic_llm_from_config,
    create_embedder_from_config,
    create_llm_from_config,
    create_vector_store_from_config,
)

NO_CONTEXT_REASON = "no relevant context"
CANCELLED_REASON = "cancelled"
FORCED_APPROVAL_SUFFIX = " (Max attempts reached - forced approval)."

NO_CONTEXT_RESPONSE = (
    "I'm sorry, but I couldn't find any relevant information in the indexed "
    "documents to answer your query. Please try a different question or "
    "preprocess additional documents."
)
CANCELLED_RESPONSE = "The query was cancelled before an answer was approved."


@dataclass(frozen=True)
class QueryOptions:
    retrieval: RetrievalOptions = field(default_factory=RetrievalOptions)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS


class Orchestrator:
    """Runs the retrieve -> generate -> evaluate -> refine loop for one query.

    Every session ends in APPROVED or FAILED. The critic is overruled on
    the last allowed attempt (forced approval), so the loop makes at most
    ``max_attempts`` passes. Gateway failures surface as degraded attempts,
    never as exceptions.
    """

    def __init__(
        self,
        retriever: HybridRetriever,
        synthesizer: SynthesizerAgent,
        critic: CriticAgent,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        return_best_attempt: bool = False,
        retrieval_options: Optional[RetrievalOptions] = None,
        cache: Optional[QueryCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.critic = critic
        self.max_attempts = max_attempts
        self.return_best_attempt = return_best_attempt
        self.retrieval_options = retrieval_options or RetrievalOptions()
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        config_path: Path,
        logger: Optional[logging.Logger] = None,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[BaseVectorStore] = None,
        chunk_store: Optional[ChunkStore] = None,
        cache: Optional[QueryCache] = None,
    ) -> "Orchestrator":
        """Create an orchestrator from configuration dictionary."""
        embedder = embedder or create_embedder_from_config(config)
        if vector_store is None:
            vector_store = create_vector_store_from_config(config, config_path, embedder)
        retry = {
            "max_retries": get_config_value(config, "orchestrator.max_retries", 3),
            "base_delay": get_config_value(config, "orchestrator.retry_base_delay", 1.0),
        }

        retriever = HybridRetriever(
            chunk_store=chunk_store or create_chunk_store_from_config(config, config_path),
            embedder=embedder,
            vector_store=vector_store,
            max_context_chars=get_config_value(config, "retrieval.max_context_chars", 6000),
            **retry,
        )
        synthesizer = SynthesizerAgent(
            create_llm_from_config(config),
            temperature=get_config_value(config, "llm.temperature", 0.7),
            max_tokens=get_config_value(config, "llm.max_tokens", 1024),
            **retry,
        )
        critic = CriticAgent(
            create_critic_llm_from_config(config),
            quality_threshold=get_config_value(config, "critic.quality_threshold", 0.85),
            strict_mode=get_config_value(config, "critic.strict_mode", True),
            temperature=get_config_value(config, "critic.temperature", 0.2),
            max_tokens=get_config_value(config, "critic.max_tokens", 512),
            **retry,
        )

        if cache is None and get_config_value(config, "cache.enabled", True):
            cache = QueryCache(get_config_value(config, "cache.capacity", 128))

        return cls(
            retriever=retriever,
            synthesizer=synthesizer,
            critic=critic,
            max_attempts=get_config_value(
                config, "orchestrator.max_attempts", DEFAULT_MAX_ATTEMPTS
            ),
            return_best_attempt=get_config_value(
                config, "orchestrator.return_best_attempt", False
            ),
            retrieval_options=RetrievalOptions(
                num_results=get_config_value(config, "retrieval.num_results", 10),
                similarity_threshold=get_config_value(
                    config, "retrieval.similarity_threshold", 0.3
                ),
                use_hybrid_search=get_config_value(
                    config, "retrieval.use_hybrid_search", True
                ),
            ),
            cache=cache,
            logger=logger,
        )

    def default_options(self) -> QueryOptions:
        return QueryOptions(retrieval=self.retrieval_options, max_attempts=self.max_attempts)

    def _enter(self, state: SessionState, attempt_index: int) -> None:
        self.logger.debug(f"Attempt {attempt_index}: {state.value}")

    def _retrieve(self, query: str, options: RetrievalOptions) -> RetrievalOutcome:
        retrieval = self.retriever.retrieve(query, options)
        if not retrieval.context.strip():
            raise EmptyContextError(f"No context retrieved for: {query[:80]}")
        return retrieval

    def _fail(
        self, session: Session, current_query: str, reason: str, response: str
    ) -> QueryResult:
        self.logger.info(f"Session failed: {reason}")
        result = QueryResult(
            query=session.original_query,
            response=response,
            state=SessionState.FAILED,
            evaluation=Evaluation(
                score=0.0, approved=False, reasoning=reason, refined_query=current_query
            ),
            attempts=len(session.attempts),
            history=list(session.attempts),
            usage=session.total_usage,
            degraded=[d for a in session.attempts for d in a.degraded],
        )
        session.final_result = result
        return result

    def _approve(self, session: Session) -> QueryResult:
        chosen = session.attempts[-1]
        if self.return_best_attempt:
            # max() keeps the first of equal scores; scan newest first
            chosen = max(reversed(session.attempts), key=lambda a: a.evaluation.score)

        evaluation = chosen.evaluation
        if not evaluation.approved:
            evaluation = evaluation.model_copy(update={"approved": True})

        result = QueryResult(
            query=session.original_query,
            response=chosen.generated_text,
            state=SessionState.APPROVED,
            evaluation=evaluation,
            attempts=len(session.attempts),
            history=list(session.attempts),
            usage=session.total_usage,
            sources=chosen.sources,
            degraded=[d for a in session.attempts for d in a.degraded],
        )
        session.final_result = result
        self.logger.info(
            f"Approved after {result.attempts} attempt(s) "
            f"(score {result.evaluation.score:.2f})"
        )
        return result

    def run(
        self,
        query: str,
        options: Optional[QueryOptions] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> QueryResult:
        """Answer a query, refining it until the critic approves.

        Args:
            query: The user's question.
            options: Retrieval options and attempt bound.
            cancel_event: Checked at every state boundary; once set the
                session ends FAILED with reason "cancelled".

        Returns:
            A terminal QueryResult (APPROVED or FAILED).
        """
        options = options or self.default_options()
        if options.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {options.max_attempts}")

        cache_key = (query, options)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.logger.info("Returning cached result")
                return cached.model_copy(update={"cached": True})

        session = Session(original_query=query)
        current_query = query
        attempt_index = 0
        self.logger.info(f"Processing query: {query[:80]}")

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return self._fail(session, current_query, CANCELLED_REASON, CANCELLED_RESPONSE)

            self._enter(SessionState.RETRIEVING, attempt_index)
            try:
                retrieval = self._retrieve(current_query, options.retrieval)
            except EmptyContextError as e:
                self.logger.warning(str(e))
                return self._fail(session, current_query, NO_CONTEXT_REASON, NO_CONTEXT_RESPONSE)
            degraded = [retrieval.degraded_reason] if retrieval.degraded_reason else []

            if cancel_event is not None and cancel_event.is_set():
                return self._fail(session, current_query, CANCELLED_REASON, CANCELLED_RESPONSE)

            self._enter(SessionState.GENERATING, attempt_index)
            generation = self.synthesizer.synthesize(current_query, retrieval.context)
            if generation.degraded:
                degraded.append(f"generation failed: {generation.reason}")
            completion = generation.value

            if cancel_event is not None and cancel_event.is_set():
                return self._fail(session, current_query, CANCELLED_REASON, CANCELLED_RESPONSE)

            self._enter(SessionState.EVALUATING, attempt_index)
            verdict, critic_usage = self.critic.evaluate_with_usage(
                current_query, completion.text, retrieval.context, attempt_index
            )
            if verdict.degraded:
                degraded.append(f"evaluation failed: {verdict.reason}")
            evaluation = verdict.value

            if not evaluation.approved and attempt_index >= options.max_attempts - 1:
                evaluation = evaluation.model_copy(
                    update={
                        "approved": True,
                        "reasoning": evaluation.reasoning + FORCED_APPROVAL_SUFFIX,
                    }
                )

            session.record(
                Attempt(
                    attempt_index=attempt_index,
                    query=current_query,
                    context=retrieval.context,
                    generated_text=completion.text,
                    evaluation=evaluation,
                    usage=completion.usage + critic_usage,
                    sources=[] if generation.degraded else retrieval.sources,
                    degraded=degraded,
                )
            )

            if evaluation.approved:
                result = self._approve(session)
                if self.cache is not None and not result.degraded:
                    self.cache.put(cache_key, result)
                return result

            self._enter(SessionState.REFINING, attempt_index)
            self.logger.info(f"Refining query: {evaluation.refined_query[:80]}")
            current_query = evaluation.refined_query
            attempt_index += 1
