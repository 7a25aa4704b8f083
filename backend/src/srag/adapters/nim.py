"""NVIDIA NIM adapters using native LlamaIndex integrations."""

import os
from typing import Any, Optional

from llama_index.core.llms import ChatMessage
from llama_index.embeddings.nvidia import NVIDIAEmbedding
from llama_index.llms.nvidia import NVIDIA as NVIDIALLM

from srag.adapters.base import BaseEmbedder, BaseLLM

NIM_BASE_URL = "https://integrate.api.nvidia.com/v1"


def _require_api_key(api_key: Optional[str]) -> str:
    api_key = api_key or os.environ.get("NVIDIA_API_KEY")
    if not api_key:
        raise ValueError("NVIDIA_API_KEY environment variable required for NIM provider")
    return api_key


class NIMEmbedder(BaseEmbedder):
    """NVIDIA NIM embedding provider.

    The dimension is detected lazily with a probe call the first time it is
    needed, so constructing the embedder never touches the network.
    """

    def __init__(
        self,
        model: str = "nvidia/nv-embedqa-e5-v5",
        api_key: Optional[str] = None,
        base_url: str = NIM_BASE_URL,
        truncate: str = "END",
        timeout: float = 30.0,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self._client = NVIDIAEmbedding(
            model=model,
            base_url=base_url,
            api_key=_require_api_key(api_key),
            truncate=truncate,
            timeout=timeout,
        )
        self._dimension: Optional[int] = kwargs.get("dimensions")

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self._client.get_query_embedding("dimension probe"))
        return self._dimension

    def embed(self, text: str) -> list[float]:
        return self._client.get_query_embedding(text)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return self.validate_embeddings(
            texts, self._client.get_text_embedding_batch(texts)
        )


class NIMLLM(BaseLLM):
    """NVIDIA NIM LLM provider."""

    def __init__(
        self,
        model: str = "meta/llama3-8b-instruct",
        api_key: Optional[str] = None,
        base_url: str = NIM_BASE_URL,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 60.0,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = NVIDIALLM(
            model=model,
            base_url=base_url,
            api_key=_require_api_key(api_key),
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )

    @property
    def supports_streaming(self) -> bool:
        return False

    def generate(self, prompt: str, **kwargs: Any) -> str:
        response = self._client.complete(
            prompt,
            temperature=kwargs.get("temperature", self._temperature),
            max_tokens=kwargs.get("max_tokens", self._max_tokens),
        )
        return response.text

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        chat_messages = [
            ChatMessage(role=msg["role"], content=msg["content"]) for msg in messages
        ]
        response = self._client.chat(
            chat_messages,
            temperature=kwargs.get("temperature", self._temperature),
            max_tokens=kwargs.get("max_tokens", self._max_tokens),
        )
        return response.message.content or ""
