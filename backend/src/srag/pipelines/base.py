from pathlib import Path
from typing import Any, Callable, Optional

from srag.adapters import BaseEmbedder, BaseLLM, create_embedder, create_llm
from srag.config import get_chunks_dir, resolve_path
from srag.stores import BaseVectorStore, ChunkStore, create_vector_store

DEFAULT_BATCH_SIZE = 5
DEFAULT_CHUNK_SIZE = 300
DEFAULT_CHUNK_OVERLAP = 150
DEFAULT_CHUNKING_STRATEGY = "hybrid"
DEFAULT_MAX_ATTEMPTS = 3

# [critic] keys that configure the agent rather than its LLM
CRITIC_AGENT_KEYS = ("quality_threshold", "strict_mode", "temperature", "max_tokens")
# [llm] keys passed per call rather than to the adapter
LLM_CALL_KEYS = ("temperature", "max_tokens")


def _create_adapter_from_config(
    config: dict[str, Any],
    section: str,
    create_fn: Callable[..., Any],
    defaults: dict[str, str],
    exclude: tuple[str, ...] = (),
    section_config: Optional[dict[str, Any]] = None,
) -> Any:
    """Create an adapter (embedder or LLM) from configuration."""
    if section_config is None:
        section_config = config.get(section, {})
    provider = section_config.get("provider", defaults["provider"])
    model = section_config.get("model", defaults["model"])

    extra_kwargs = {
        k: v
        for k, v in section_config.items()
        if k not in ("provider", "model") and k not in exclude
    }

    return create_fn(provider, model=model, **extra_kwargs)


def create_embedder_from_config(config: dict[str, Any]) -> BaseEmbedder:
    """Create an embedder instance from configuration."""
    defaults = {"provider": "openai", "model": "text-embedding-3-small"}
    return _create_adapter_from_config(config, "embedding", create_embedder, defaults)


def create_llm_from_config(config: dict[str, Any]) -> BaseLLM:
    """Create the answer-generating LLM from configuration."""
    defaults = {"provider": "groq", "model": "llama3-8b-8192"}
    return _create_adapter_from_config(
        config, "llm", create_llm, defaults, exclude=LLM_CALL_KEYS
    )


def create_critic_llm_from_config(config: dict[str, Any]) -> BaseLLM:
    """Create the evaluating LLM; unset [critic] keys fall back to [llm]."""
    defaults = {"provider": "groq", "model": "llama3-8b-8192"}
    merged = {**config.get("llm", {}), **config.get("critic", {})}
    return _create_adapter_from_config(
        config,
        "critic",
        create_llm,
        defaults,
        exclude=CRITIC_AGENT_KEYS,
        section_config=merged,
    )


def get_vector_store_paths(
    config: dict[str, Any], config_path: Path, embedder_model: str
) -> tuple[Path, Path]:
    """Get index and metadata paths for the vector store."""
    storage_dir = resolve_path(
        config.get("storage", {}).get("directory", "storage"), config_path
    )
    embedding_id = embedder_model.replace("/", "_").replace("-", "_")
    return (
        storage_dir / f"faiss_{embedding_id}.index",
        storage_dir / f"faiss_{embedding_id}.json",
    )


def create_vector_store_from_config(
    config: dict[str, Any], config_path: Path, embedder: BaseEmbedder
) -> BaseVectorStore:
    index_path, metadata_path = get_vector_store_paths(
        config, config_path, embedder.model
    )
    return create_vector_store(
        config.get("storage", {}).get("provider", "faiss"),
        dimension=embedder.dimension,
        index_path=index_path,
        metadata_path=metadata_path,
    )


def create_chunk_store_from_config(
    config: dict[str, Any], config_path: Path
) -> ChunkStore:
    return ChunkStore(get_chunks_dir(config, config_path))
