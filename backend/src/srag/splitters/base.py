import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any

from srag.errors import ContentError
from srag.models.chunk import META_INDEX, Chunk, Document
from .metadata import extract_basic_metadata, format_metadata_summary

logger = logging.getLogger(__name__)


def make_chunk_id(document_id: str, index: int | str, content: str) -> str:
    """Derive a stable chunk id from its document, position and content."""
    digest = hashlib.md5(f"{document_id}-{index}-{content}".encode("utf-8")).hexdigest()
    return f"{document_id}-{index}-{digest[:8]}"


class BaseTextSplitter(ABC):
    """Abstract base class for text splitters."""

    strategy: str = "base"

    def __init__(self, chunk_size: int = 300, chunk_overlap: int = 150):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be >= 0, got {chunk_overlap}")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @abstractmethod
    def split_text(self, text: str) -> list[str]:
        """Split raw text into chunks without metadata."""
        pass

    def split_document(
        self, document: Document, extract_metadata: bool = True
    ) -> list[Chunk]:
        """Split a document into ordered chunks with preserved metadata.

        When title/author/date heuristics find anything, a synthetic
        metadata chunk (index "meta") is appended after the body chunks.

        Raises:
            ContentError: If the document has no text or yields no chunks.
        """
        if not document.text or not document.text.strip():
            raise ContentError("Document has no content")

        basic_metadata = extract_basic_metadata(document.text) if extract_metadata else {}
        combined: dict[str, Any] = {
            **document.metadata,
            **basic_metadata,
            "format": document.format,
        }

        pieces = self.split_text(document.text)
        if not pieces:
            raise ContentError("No chunks generated")

        logger.debug(
            f"Split {document.id} into {len(pieces)} chunks "
            f"(strategy={self.strategy}, size={self.chunk_size}, overlap={self.chunk_overlap})"
        )

        chunks = []
        last = len(pieces) - 1
        for i, content in enumerate(pieces):
            chunk_id = make_chunk_id(document.id, i, content)
            chunks.append(
                Chunk(
                    id=chunk_id,
                    document_id=document.id,
                    index=i,
                    content=content,
                    metadata={
                        **combined,
                        "document_id": document.id,
                        "chunk_index": i,
                        "chunk_id": chunk_id,
                        "is_first_chunk": i == 0,
                        "is_last_chunk": i == last,
                    },
                )
            )

        if basic_metadata:
            content = format_metadata_summary(document.id, basic_metadata)
            chunk_id = make_chunk_id(document.id, META_INDEX, content)
            chunks.append(
                Chunk(
                    id=chunk_id,
                    document_id=document.id,
                    index=META_INDEX,
                    content=content,
                    metadata={
                        **combined,
                        "document_id": document.id,
                        "chunk_index": META_INDEX,
                        "chunk_id": chunk_id,
                        "is_metadata": True,
                    },
                )
            )

        return chunks
