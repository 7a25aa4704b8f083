from abc import ABC, abstractmethod
from typing import Any

from srag.adapters.utils import count_tokens
from srag.models.completion import Completion, Usage


class BaseEmbedder(ABC):
    """Abstract base class for embedding providers."""

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        pass

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    def validate_embeddings(
        self, texts: list[str], embeddings: list[list[float]]
    ) -> list[list[float]]:
        """Raise instead of passing along short or malformed batches."""
        if len(embeddings) != len(texts):
            raise ValueError(
                f"Embedding provider returned {len(embeddings)} vectors "
                f"for {len(texts)} texts"
            )
        for i, embedding in enumerate(embeddings):
            if len(embedding) != self.dimension:
                raise ValueError(
                    f"Embedding {i} has dimension {len(embedding)}, "
                    f"expected {self.dimension}"
                )
        return embeddings


class BaseLLM(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def generate(self, prompt: str, **kwargs: Any) -> str:
        pass

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        pass

    @property
    @abstractmethod
    def supports_streaming(self) -> bool:
        pass

    def complete(
        self, system_prompt: str, user_message: str, **kwargs: Any
    ) -> Completion:
        """Run a system + user exchange and return text with token usage.

        Providers that report usage override this; the default estimates
        usage with tiktoken.
        """
        text = self.chat(_system_user_messages(system_prompt, user_message), **kwargs)
        prompt_tokens = count_tokens(system_prompt + user_message, self.model)
        completion_tokens = count_tokens(text, self.model)
        return Completion(
            text=text,
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )


def _system_user_messages(system_prompt: str, user_message: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]
