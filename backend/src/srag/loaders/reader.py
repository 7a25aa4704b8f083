import logging
import re
from pathlib import Path
from typing import Any

from llama_index.core import SimpleDirectoryReader

from srag.errors import ContentError
from srag.models.chunk import Document
from .base import BaseDocumentLoader

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".txt", ".md")

# llama-index adds per-page keys that make no sense on a merged document
_PAGE_KEYS = ("page_label",)


def sanitize_document_id(name: str) -> str:
    """Replace characters that are unsafe in file names with '-'."""
    return re.sub(r"[^a-zA-Z0-9_-]", "-", name)


class DocumentLoader(BaseDocumentLoader):
    """Loads PDF, text and markdown files with llama-index.

    Readers that emit one node per page or section are merged back into a
    single document, parts joined by a blank line.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def load(self) -> list[Document]:
        if not self.directory.exists():
            raise FileNotFoundError(f"Directory not found: {self.directory}")

        documents = []
        for file_path in sorted(self.directory.iterdir()):
            if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_EXTENSIONS:
                documents.append(self.load_file(file_path))
        return documents

    def load_file(self, file_path: Path | str) -> Document:
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise ContentError(f"Unsupported document format: {suffix.lstrip('.') or 'unknown'}")

        reader = SimpleDirectoryReader(input_files=[str(file_path)])
        parts = reader.load_data()

        text = "\n\n".join(part.text for part in parts if part.text and part.text.strip())
        metadata: dict[str, Any] = dict(parts[0].metadata) if parts else {}
        for key in _PAGE_KEYS:
            metadata.pop(key, None)
        metadata.setdefault("file_name", file_path.name)
        metadata["page_count"] = len(parts)

        logger.debug(f"Loaded {file_path.name}: {len(parts)} parts, {len(text)} chars")

        return Document(
            id=sanitize_document_id(file_path.stem),
            format=suffix.lstrip("."),
            text=text,
            path=str(file_path),
            metadata=metadata,
        )
