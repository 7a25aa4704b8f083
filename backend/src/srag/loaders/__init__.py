from pathlib import Path

from srag.models.chunk import Document
from .base import BaseDocumentLoader
from .reader import SUPPORTED_EXTENSIONS, DocumentLoader, sanitize_document_id


def load_document(file_path: Path | str) -> Document:
    """Load one file into a Document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ContentError: If the format is not supported.
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")
    return DocumentLoader(file_path.parent).load_file(file_path)


__all__ = [
    "BaseDocumentLoader",
    "DocumentLoader",
    "SUPPORTED_EXTENSIONS",
    "load_document",
    "sanitize_document_id",
]
