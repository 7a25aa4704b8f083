import re

from .base import BaseTextSplitter
from .fixed import FixedSizeTextSplitter

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
PARAGRAPH_SEPARATOR = "\n\n"


class SemanticTextSplitter(BaseTextSplitter):
    """Paragraph-accumulating splitter.

    Paragraphs are packed into a chunk until the next one would push it past
    ``chunk_size``. Each new chunk is seeded with the last ``chunk_overlap``
    characters of the previous one. A paragraph longer than ``chunk_size``
    is kept whole.
    """

    strategy = "semantic"

    def split_text(self, text: str) -> list[str]:
        chunks: list[str] = []
        current = ""

        for paragraph in PARAGRAPH_BREAK.split(text):
            paragraph = paragraph.strip()
            if not paragraph:
                continue

            projected = len(current) + len(PARAGRAPH_SEPARATOR) + len(paragraph)
            if current and projected > self.chunk_size:
                chunks.append(current)
                if 0 < self.chunk_overlap < len(current):
                    current = current[-self.chunk_overlap :]
                else:
                    current = ""

            current = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph

        if current.strip():
            chunks.append(current)

        return chunks


class HybridTextSplitter(SemanticTextSplitter):
    """Semantic splitting with a hard ``chunk_size`` bound.

    Chunks the paragraph pass leaves oversized are re-split with the fixed
    window, in place, so source order is preserved.
    """

    strategy = "hybrid"

    def __init__(self, chunk_size: int = 300, chunk_overlap: int = 150):
        super().__init__(chunk_size, chunk_overlap)
        self._fixed = FixedSizeTextSplitter(chunk_size, chunk_overlap)

    def split_text(self, text: str) -> list[str]:
        final_chunks = []
        for chunk in super().split_text(text):
            if len(chunk) <= self.chunk_size:
                final_chunks.append(chunk)
            else:
                final_chunks.extend(self._fixed.split_text(chunk))
        return final_chunks
