import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from srag.adapters import BaseEmbedder
from srag.adapters.utils import call_with_backoff
from srag.errors import TransientGatewayError
from srag.models.chunk import RetrievalResult
from srag.stores import BaseVectorStore, ChunkStore
from .heuristics import KEYWORD_RULES, KeywordRule, score_chunk

logger = logging.getLogger(__name__)

DEFAULT_NUM_RESULTS = 10
DEFAULT_SIMILARITY_THRESHOLD = 0.3
DEFAULT_MAX_CONTEXT_CHARS = 6000
CONTEXT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class RetrievalOptions:
    num_results: int = DEFAULT_NUM_RESULTS
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    use_hybrid_search: bool = True


@dataclass
class RetrievalOutcome:
    """Context assembled for one query, with the hits it came from."""

    context: str
    vector_results: list[RetrievalResult] = field(default_factory=list)
    keyword_results: list[RetrievalResult] = field(default_factory=list)
    degraded_reason: Optional[str] = None

    @property
    def sources(self) -> list[str]:
        return [r.id for r in self.vector_results + self.keyword_results]


class HybridRetriever:
    """Vector search with a keyword fallback scan over the chunk store.

    Vector hits come first in the context, keyword hits second. Failures in
    the embedding gateway, the vector index or the chunk store never
    propagate: they are logged and reported as ``degraded_reason``. When
    only the vector path fails the keyword scan carries the query alone.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[BaseVectorStore] = None,
        max_context_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
        rules: tuple[KeywordRule, ...] = KEYWORD_RULES,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.chunk_store = chunk_store
        self.embedder = embedder
        self.vector_store = vector_store
        self.max_context_chars = max_context_chars
        self.rules = rules
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def _vector_search(
        self, query: str, options: RetrievalOptions
    ) -> list[RetrievalResult]:
        if self.embedder is None or self.vector_store is None:
            return []
        if self.vector_store.size() == 0:
            logger.debug("Vector index is empty, skipping vector search")
            return []

        query_vector = call_with_backoff(
            "embedding",
            self.embedder.embed,
            query,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            sleep=self.sleep,
        )
        hits = self.vector_store.search(query_vector, k=options.num_results)
        return [hit for hit in hits if hit.score >= options.similarity_threshold]

    def _keyword_search(
        self, query: str, options: RetrievalOptions, exclude: set[str]
    ) -> list[RetrievalResult]:
        scored = []
        for chunk in self.chunk_store.iter_chunks():
            if chunk.id in exclude:
                continue
            score = score_chunk(query, chunk.content, chunk.index, self.rules)
            if score > 0:
                scored.append(
                    RetrievalResult(
                        id=chunk.id,
                        score=float(score),
                        content=chunk.content,
                        source="keyword",
                        metadata=chunk.metadata,
                    )
                )

        # sorted() is stable, ties keep corpus order
        scored = sorted(scored, key=lambda r: r.score, reverse=True)
        return scored[: options.num_results]

    def metadata_block(self) -> str:
        lines = ["DOCUMENT METADATA:"]
        for document_id in self.chunk_store.list_documents():
            lines.append(f"- Document: {document_id}")
            metadata = self.chunk_store.document_metadata(document_id)
            for field_name in ("title", "author", "date"):
                if metadata.get(field_name):
                    lines.append(f"  {field_name.capitalize()}: {metadata[field_name]}")
        return "\n".join(lines)

    def retrieve(
        self, query: str, options: Optional[RetrievalOptions] = None
    ) -> RetrievalOutcome:
        options = options or RetrievalOptions()

        vector_results: list[RetrievalResult] = []
        failures = []
        try:
            vector_results = self._vector_search(query, options)
        except (TransientGatewayError, ValueError, RuntimeError) as e:
            logger.warning(f"Vector search unavailable, using keyword scan only: {e}")
            failures.append(f"vector search failed: {e}")

        keyword_results: list[RetrievalResult] = []
        if not vector_results or options.use_hybrid_search:
            try:
                keyword_results = self._keyword_search(
                    query, options, exclude={r.id for r in vector_results}
                )
            except OSError as e:
                logger.warning(f"Keyword scan over the chunk store failed: {e}")
                failures.append(f"keyword scan failed: {e}")

        logger.info(
            f"Retrieved {len(vector_results)} vector and {len(keyword_results)} keyword results"
        )

        parts = [
            CONTEXT_SEPARATOR.join(r.content for r in results)
            for results in (vector_results, keyword_results)
            if results
        ]
        context = CONTEXT_SEPARATOR.join(parts)

        if context:
            try:
                context = self.metadata_block() + CONTEXT_SEPARATOR + context
            except OSError as e:
                logger.warning(f"Document metadata unavailable: {e}")
                failures.append(f"metadata block failed: {e}")
            if len(context) > self.max_context_chars:
                context = context[: self.max_context_chars] + "..."

        return RetrievalOutcome(
            context=context,
            vector_results=vector_results,
            keyword_results=keyword_results,
            degraded_reason="; ".join(failures) or None,
        )

    def retrieve_context(
        self, query: str, options: Optional[RetrievalOptions] = None
    ) -> str:
        return self.retrieve(query, options).context
