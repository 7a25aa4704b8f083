from abc import ABC, abstractmethod
from typing import Any

from srag.models.chunk import RetrievalResult


class BaseVectorStore(ABC):
    """Abstract base class for vector stores.

    Every metadata entry must carry an "id"; ids are what ``delete`` takes
    and what search results report.
    """

    def __init__(self, dimension: int, **kwargs: Any):
        self.dimension = dimension

    @abstractmethod
    def add(
        self,
        vectors: list[list[float]],
        metadata_list: list[dict[str, Any]],
    ) -> None:
        """Add vectors with one metadata entry each."""
        pass

    @abstractmethod
    def search(self, vector: list[float], k: int = 4) -> list[RetrievalResult]:
        """Return up to k nearest entries, best first."""
        pass

    @abstractmethod
    def delete(self, ids: list[str]) -> bool:
        """Delete entries by id. Returns True if anything was removed."""
        pass

    @abstractmethod
    def delete_by_document(self, document_id: str) -> int:
        """Delete every entry of a document. Returns the number removed."""
        pass

    @abstractmethod
    def delete_all(self) -> None:
        """Delete all entries from the store."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Return the number of vectors in the store."""
        pass

    @property
    def count(self) -> int:
        return self.size()
