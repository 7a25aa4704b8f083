from llama_index.core.node_parser import SentenceSplitter

from .base import BaseTextSplitter


class SentenceTextSplitter(BaseTextSplitter):
    """Token-based splitter built on llama-index's SentenceSplitter.

    Sizes are measured in tokens rather than characters, so unlike the
    character strategies there is no hard bound on chunk length.
    """

    strategy = "sentence"

    def __init__(self, chunk_size: int = 1024, chunk_overlap: int = 50):
        super().__init__(chunk_size, chunk_overlap)
        # SentenceSplitter rejects overlap >= size
        if self.chunk_overlap >= self.chunk_size:
            self.chunk_overlap = self.chunk_size // 4
        self.splitter = SentenceSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def split_text(self, text: str) -> list[str]:
        if not text.strip():
            return []
        return [chunk for chunk in self.splitter.split_text(text) if chunk.strip()]
