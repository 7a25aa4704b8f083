"""Provider tables for the embedding and generation gateways.

Configuration names a provider per gateway (``[embedding] provider``,
``[llm] provider``, ``[critic] provider``); the factories below map that
name to an adapter class and pass the rest of the section as keyword
arguments.
"""

from typing import Any, Type, TypeVar

from srag.adapters.base import BaseEmbedder, BaseLLM
from srag.adapters.embedding import OllamaEmbedder, OpenAIEmbedder
from srag.adapters.llm import GroqLLM, OllamaLLM, OpenAILLM
from srag.adapters.nim import NIMEmbedder, NIMLLM

AdapterT = TypeVar("AdapterT")

EMBEDDING_PROVIDERS: dict[str, Type[BaseEmbedder]] = {
    "openai": OpenAIEmbedder,
    "ollama": OllamaEmbedder,
    "nim": NIMEmbedder,
}

# groq serves generation only, through its OpenAI-compatible endpoint
LLM_PROVIDERS: dict[str, Type[BaseLLM]] = {
    "openai": OpenAILLM,
    "ollama": OllamaLLM,
    "nim": NIMLLM,
    "groq": GroqLLM,
}


def _build(
    gateway: str, providers: dict[str, Type[AdapterT]], provider: str, options: dict[str, Any]
) -> AdapterT:
    adapter_cls = providers.get(provider)
    if adapter_cls is None:
        raise ValueError(
            f"Unknown {gateway} provider: {provider}. Available: {sorted(providers)}"
        )
    return adapter_cls(**options)


def create_embedder(provider: str, **kwargs: Any) -> BaseEmbedder:
    """Build the embedding adapter for ``provider``.

    Raises:
        ValueError: If the provider is unknown.
    """
    return _build("embedder", EMBEDDING_PROVIDERS, provider, kwargs)


def create_llm(provider: str, **kwargs: Any) -> BaseLLM:
    """Build the generation adapter for ``provider``.

    Raises:
        ValueError: If the provider is unknown.
    """
    return _build("LLM", LLM_PROVIDERS, provider, kwargs)


def list_embedder_providers() -> list[str]:
    return sorted(EMBEDDING_PROVIDERS)


def list_llm_providers() -> list[str]:
    return sorted(LLM_PROVIDERS)


__all__ = [
    "BaseEmbedder",
    "BaseLLM",
    "EMBEDDING_PROVIDERS",
    "LLM_PROVIDERS",
    "create_embedder",
    "create_llm",
    "list_embedder_providers",
    "list_llm_providers",
]
