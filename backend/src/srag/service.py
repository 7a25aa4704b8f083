"""Request/response contract for the preprocess and query operations.

Requests are validated with pydantic and accept the camelCase field names
of the JSON API as well as snake_case. Responses are plain dicts ready for
JSON serialization.
"""

import dataclasses
import logging
import threading
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from srag.config import load_config
from srag.loaders import SUPPORTED_EXTENSIONS, sanitize_document_id
from srag.models import QueryResult, SessionState
from srag.pipelines import (
    IngestionPipeline,
    Orchestrator,
    QueryOptions,
    create_chunk_store_from_config,
    create_embedder_from_config,
    create_vector_store_from_config,
)

logger = logging.getLogger(__name__)


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PreprocessOptions(_RequestModel):
    chunk_size: int = Field(300, alias="chunkSize", gt=0)
    chunk_overlap: int = Field(150, alias="chunkOverlap", ge=0)
    chunking_strategy: Literal["fixed", "semantic", "hybrid", "sentence"] = Field(
        "hybrid", alias="chunkingStrategy"
    )
    extract_metadata: bool = Field(True, alias="extractMetadata")


class PreprocessRequest(_RequestModel):
    documents: list[str] = Field(min_length=1)
    options: PreprocessOptions = Field(default_factory=PreprocessOptions)


class QueryRequestOptions(_RequestModel):
    num_results: int = Field(10, alias="numResults", gt=0)
    similarity_threshold: float = Field(0.3, alias="similarityThreshold", ge=0.0, le=1.0)
    use_hybrid_search: bool = Field(True, alias="useHybridSearch")
    max_attempts: int = Field(3, alias="maxAttempts", ge=1)


class QueryRequest(_RequestModel):
    query: str = Field(min_length=1)
    options: QueryRequestOptions = Field(default_factory=QueryRequestOptions)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query must be a non-empty string")
        return value


def _explicit(model: BaseModel) -> dict[str, Any]:
    """Fields the caller actually sent, by attribute name."""
    return {name: getattr(model, name) for name in model.model_fields_set}


def query_result_to_dict(result: QueryResult) -> dict[str, Any]:
    return {
        "success": result.state == SessionState.APPROVED,
        "query": result.query,
        "response": result.response,
        "state": result.state.value,
        "evaluation": {
            "score": result.evaluation.score,
            "approved": result.evaluation.approved,
            "reasoning": result.evaluation.reasoning,
            "attempts": result.attempts,
        },
        "history": [attempt.summary() for attempt in result.history],
        "usage": result.usage.model_dump(),
        "sources": list(result.sources),
        "degraded": list(result.degraded),
        "cached": result.cached,
    }


class RAGService:
    """Entry point used by the CLI scripts and any HTTP layer in front of them."""

    def __init__(self, ingestion: IngestionPipeline, orchestrator: Orchestrator):
        self.ingestion = ingestion
        self.orchestrator = orchestrator

    @classmethod
    def from_config(
        cls, config: dict[str, Any], config_path: Path
    ) -> "RAGService":
        """Build ingestion and querying over one shared set of stores."""
        embedder = create_embedder_from_config(config)
        vector_store = create_vector_store_from_config(config, config_path, embedder)
        chunk_store = create_chunk_store_from_config(config, config_path)
        shared = {
            "embedder": embedder,
            "vector_store": vector_store,
            "chunk_store": chunk_store,
        }
        return cls(
            ingestion=IngestionPipeline.from_config(config, config_path, **shared),
            orchestrator=Orchestrator.from_config(config, config_path, **shared),
        )

    def list_documents(self) -> dict[str, Any]:
        """List the files available for preprocessing."""
        directory = self.ingestion.documents_dir
        stored = set(self.ingestion.chunk_store.list_documents())
        documents = []
        if directory.is_dir():
            for path in sorted(directory.iterdir()):
                if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                    documents.append(
                        {
                            "name": path.name,
                            "size": path.stat().st_size,
                            "type": path.suffix.lower().lstrip("."),
                            "processed": sanitize_document_id(path.stem) in stored,
                        }
                    )
        return {"success": True, "documents": documents}

    def preprocess(self, request: PreprocessRequest | dict[str, Any]) -> dict[str, Any]:
        """Chunk and index the named documents.

        Raises:
            pydantic.ValidationError: If the request is malformed.
        """
        if not isinstance(request, PreprocessRequest):
            request = PreprocessRequest.model_validate(request)

        options = dataclasses.replace(self.ingestion.options, **_explicit(request.options))
        result = self.ingestion.preprocess(request.documents, options)

        if result.processed and self.orchestrator.cache is not None:
            self.orchestrator.cache.clear()

        return {
            "success": True,
            "status": "processed",
            "count": len(request.documents),
            "totalChunks": result.total_chunks,
            "results": [r.to_dict() for r in result.results],
        }

    def query(
        self,
        request: QueryRequest | dict[str, Any],
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        """Answer a question through the refinement loop.

        Raises:
            pydantic.ValidationError: If the request is malformed.
        """
        if not isinstance(request, QueryRequest):
            request = QueryRequest.model_validate(request)

        explicit = _explicit(request.options)
        defaults = self.orchestrator.default_options()
        max_attempts = explicit.pop("max_attempts", defaults.max_attempts)
        options = QueryOptions(
            retrieval=dataclasses.replace(defaults.retrieval, **explicit),
            max_attempts=max_attempts,
        )

        result = self.orchestrator.run(request.query, options, cancel_event=cancel_event)
        return query_result_to_dict(result)


def get_service(config_path: Path = Path("config.toml")) -> RAGService:
    config = load_config(config_path)
    return RAGService.from_config(config, config_path)
