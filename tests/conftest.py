from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from srag.adapters.base import BaseEmbedder, BaseLLM
from srag.models import Completion, Usage
from srag.pipelines import IngestionPipeline
from srag.stores import ChunkStore, FAISSVectorStore


class MockEmbedder(BaseEmbedder):
    """Mock embedder for testing.

    Texts listed in ``vectors`` get that vector; everything else gets a
    constant unit vector. ``fail`` makes every call raise.
    """

    def __init__(
        self,
        dimension: int = 8,
        vectors: Optional[dict[str, list[float]]] = None,
        fail: bool = False,
        **kwargs: Any,
    ):
        super().__init__("mock-embedder", **kwargs)
        self._dimension = dimension
        self.vectors = vectors or {}
        self.fail = fail
        self.calls = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        return self.vectors.get(text, [1.0] + [0.0] * (self._dimension - 1))

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]


class MockLLM(BaseLLM):
    """Mock LLM for testing.

    ``responses`` is consumed in order by ``complete``; the last one repeats.
    An Exception instance in the list is raised instead of returned. A
    callable receives (system_prompt, user_message) and returns the text.
    """

    def __init__(
        self,
        responses: Optional[list[Any]] = None,
        handler: Optional[Callable[[str, str], str]] = None,
        model: str = "mock-llm",
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.responses = list(responses or ["Mock response"])
        self.handler = handler
        self.calls: list[tuple[str, str]] = []

    @property
    def supports_streaming(self) -> bool:
        return False

    def generate(self, prompt: str, **kwargs: Any) -> str:
        return self.complete("", prompt).text

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        return self.complete(messages[0]["content"], messages[-1]["content"]).text

    def complete(self, system_prompt: str, user_message: str, **kwargs: Any) -> Completion:
        self.calls.append((system_prompt, user_message))
        if self.handler is not None:
            text = self.handler(system_prompt, user_message)
        else:
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            text = self.responses[index]
        if isinstance(text, Exception):
            raise text
        return Completion(
            text=text,
            usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


def no_sleep(_: float) -> None:
    pass


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    return MockEmbedder(dimension=8)


@pytest.fixture
def mock_llm() -> MockLLM:
    return MockLLM()


@pytest.fixture
def temp_storage_dir(tmp_path: Path) -> Path:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return storage_dir


@pytest.fixture
def temp_vector_store(
    temp_storage_dir: Path, mock_embedder: MockEmbedder
) -> FAISSVectorStore:
    return FAISSVectorStore(
        dimension=mock_embedder.dimension,
        index_path=temp_storage_dir / "test.index",
        metadata_path=temp_storage_dir / "test.json",
    )


@pytest.fixture
def chunk_store(temp_storage_dir: Path) -> ChunkStore:
    return ChunkStore(temp_storage_dir / "chunks")


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "documents"
    directory.mkdir()
    return directory


@pytest.fixture
def sample_document(documents_dir: Path) -> Path:
    path = documents_dir / "guide.txt"
    path.write_text(
        "Title: A Field Guide to Pragmatics\n"
        "Author: Jane Doe\n"
        "Date: March 2021\n\n"
        "Chapter 1 introduces the study of meaning in context.\n\n"
        "Chapter 2 discusses speech acts and performatives in detail.\n\n"
        "Chapter 3 covers conversational implicature and politeness."
    )
    return path


@pytest.fixture
def ingestion_pipeline(
    chunk_store: ChunkStore,
    documents_dir: Path,
    mock_embedder: MockEmbedder,
    temp_vector_store: FAISSVectorStore,
    temp_storage_dir: Path,
) -> IngestionPipeline:
    return IngestionPipeline(
        chunk_store=chunk_store,
        documents_dir=documents_dir,
        embedder=mock_embedder,
        vector_store=temp_vector_store,
        storage_dir=temp_storage_dir,
        sleep=no_sleep,
    )


@pytest.fixture
def temp_config(tmp_path: Path) -> Path:
    config_content = """
[embedding]
provider = "openai"
model = "text-embedding-3-small"

[llm]
provider = "groq"
model = "llama3-8b-8192"
temperature = 0.5

[critic]
quality_threshold = 0.9
model = "llama3-70b-8192"

[storage]
directory = "storage"

[ingestion]
directory = "${SRAG_TEST_DOCS:-documents}"
chunk_size = 200
chunk_overlap = 40

[retrieval]
num_results = 5
"""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_content)
    return config_path
