from .base import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNKING_STRATEGY,
    DEFAULT_MAX_ATTEMPTS,
    create_chunk_store_from_config,
    create_critic_llm_from_config,
    create_embedder_from_config,
    create_llm_from_config,
    create_vector_store_from_config,
    get_vector_store_paths,
)
from .ingestion import (
    ChunkingOptions,
    DocumentResult,
    IngestionPipeline,
    PreprocessResult,
)
from .orchestrator import Orchestrator, QueryOptions

__all__ = [
    "ChunkingOptions",
    "DocumentResult",
    "IngestionPipeline",
    "Orchestrator",
    "PreprocessResult",
    "QueryOptions",
    "create_chunk_store_from_config",
    "create_critic_llm_from_config",
    "create_embedder_from_config",
    "create_llm_from_config",
    "create_vector_store_from_config",
    "get_vector_store_paths",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
    "DEFAULT_CHUNKING_STRATEGY",
    "DEFAULT_MAX_ATTEMPTS",
]
