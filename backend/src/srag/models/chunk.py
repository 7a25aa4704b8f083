"""Data models for documents, chunks and retrieval hits."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

META_INDEX = "meta"


class Document(BaseModel):
    """A loaded source document.

    Attributes:
        id: Filesystem-safe document id.
        format: Format tag such as "pdf" or "txt".
        text: Extracted text content.
        path: Source file, if the document came from disk.
        metadata: Loader metadata (file name, page count, ...).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    format: str
    text: str
    path: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Chunk(BaseModel):
    """Represents a text chunk with preserved source metadata.

    Attributes:
        id: Stable chunk id, ``{document_id}-{index}-{hash}``.
        document_id: Id of the owning document.
        index: Ordinal position in the document, or "meta" for the
            synthetic metadata chunk.
        content: The chunk text content.
        metadata: Chunk position flags merged with document metadata.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    index: int | Literal["meta"]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_metadata(self) -> bool:
        return self.index == META_INDEX

    @property
    def source(self) -> str:
        return str(self.metadata.get("file_name", self.document_id))


class RetrievalResult(BaseModel):
    """Represents a retrieved chunk with its score.

    Vector scores are cosine similarities in [0, 1]; keyword scores are
    unbounded heuristic counts. The two are never compared.
    """

    id: str
    score: float
    content: str
    source: Literal["vector", "keyword"] = "vector"
    metadata: dict[str, Any] = Field(default_factory=dict)
