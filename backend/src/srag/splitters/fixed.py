from .base import BaseTextSplitter


class FixedSizeTextSplitter(BaseTextSplitter):
    """Sliding character window of ``chunk_size`` advancing by ``size - overlap``."""

    strategy = "fixed"

    def __init__(self, chunk_size: int = 300, chunk_overlap: int = 150):
        super().__init__(chunk_size, chunk_overlap)
        if self.chunk_overlap >= self.chunk_size:
            self.chunk_overlap = self.chunk_size // 4

    def split_text(self, text: str) -> list[str]:
        if not text:
            return []

        step = self.chunk_size - self.chunk_overlap
        chunks = []
        start = 0
        while start < len(text):
            end = min(len(text), start + self.chunk_size)
            chunks.append(text[start:end])
            if end >= len(text):
                break
            start += step

        return chunks
