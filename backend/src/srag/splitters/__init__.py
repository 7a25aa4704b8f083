from .base import BaseTextSplitter, make_chunk_id
from .fixed import FixedSizeTextSplitter
from .metadata import extract_basic_metadata, format_metadata_summary
from .semantic import HybridTextSplitter, SemanticTextSplitter
from .sentence import SentenceTextSplitter

_SPLITTERS: dict[str, type[BaseTextSplitter]] = {
    "fixed": FixedSizeTextSplitter,
    "semantic": SemanticTextSplitter,
    "hybrid": HybridTextSplitter,
    "sentence": SentenceTextSplitter,
}

TextSplitter = HybridTextSplitter


def create_splitter(
    strategy: str = "hybrid", chunk_size: int = 300, chunk_overlap: int = 150
) -> BaseTextSplitter:
    """Create a text splitter for a chunking strategy.

    Args:
        strategy: One of "fixed", "semantic", "hybrid" or "sentence".
        chunk_size: Maximum chunk size (characters, tokens for "sentence").
        chunk_overlap: Overlap carried between consecutive chunks.

    Raises:
        ValueError: If the strategy is unknown.
    """
    if strategy not in _SPLITTERS:
        raise ValueError(
            f"Unknown chunking strategy: {strategy}. Available: {list(_SPLITTERS)}"
        )
    return _SPLITTERS[strategy](chunk_size=chunk_size, chunk_overlap=chunk_overlap)


__all__ = [
    "BaseTextSplitter",
    "FixedSizeTextSplitter",
    "HybridTextSplitter",
    "SemanticTextSplitter",
    "SentenceTextSplitter",
    "TextSplitter",
    "create_splitter",
    "extract_basic_metadata",
    "format_metadata_summary",
    "make_chunk_id",
]
