import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, Iterator, Optional

from srag.models.chunk import Chunk

logger = logging.getLogger(__name__)

METADATA_FIELDS = ("title", "author", "date")
READ_ATTEMPTS = 3


def _chunk_order(chunk: Chunk) -> tuple[int, int]:
    if chunk.is_metadata:
        return (1, 0)
    return (0, int(chunk.index))


class ChunkStore:
    """Persists chunks as ``<root>/<document_id>/<chunk_id>.json``.

    A document's chunk set is always replaced whole. New sets are written to
    a hidden staging directory and swapped in with two renames (live set to
    a hidden trash name, staging to live). A reader whose files disappear
    mid-read starts over, so it sees the old set, the new set, or nothing.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _document_dir(self, document_id: str) -> Path:
        return self.root / document_id

    def replace(self, document_id: str, chunks: list[Chunk]) -> int:
        """Supersede the stored chunk set of a document.

        Returns:
            Number of chunks written.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        staging = self.root / f".{document_id}.staging"
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir()

        for chunk in chunks:
            if chunk.document_id != document_id:
                raise ValueError(
                    f"Chunk {chunk.id} belongs to {chunk.document_id}, not {document_id}"
                )
            (staging / f"{chunk.id}.json").write_text(
                chunk.model_dump_json(indent=2), encoding="utf-8"
            )

        target = self._document_dir(document_id)
        trash = None
        if target.exists():
            trash = self.root / f".{document_id}.{uuid.uuid4().hex[:8]}.trash"
            target.rename(trash)
        staging.rename(target)
        if trash is not None:
            shutil.rmtree(trash, ignore_errors=True)

        logger.debug(f"Stored {len(chunks)} chunks for {document_id}")
        return len(chunks)

    def delete(self, document_id: str) -> bool:
        target = self._document_dir(document_id)
        if not target.is_dir():
            return False
        shutil.rmtree(target)
        return True

    def list_documents(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            path.name
            for path in self.root.iterdir()
            if path.is_dir() and not path.name.startswith(".")
        )

    def _read_set(self, target: Path, strict: bool) -> Optional[list[Chunk]]:
        """Read every chunk file under ``target``.

        In strict mode a file that cannot be opened means the set was swapped
        while reading, and None is returned. Otherwise such files are skipped.
        """
        try:
            paths = list(target.glob("*.json"))
        except OSError:
            return []

        chunks = []
        for path in paths:
            try:
                raw = path.read_bytes()
            except OSError as e:
                if strict:
                    return None
                logger.warning(f"Skipping unreadable chunk file {path}: {e}")
                continue
            try:
                chunks.append(Chunk.model_validate_json(raw))
            except ValueError as e:
                logger.warning(f"Skipping invalid chunk file {path}: {e}")
        return chunks

    def load_document(self, document_id: str) -> list[Chunk]:
        """Load one document's chunks in index order, metadata chunk last."""
        target = self._document_dir(document_id)
        for attempt in range(READ_ATTEMPTS):
            if not target.is_dir():
                return []
            chunks = self._read_set(target, strict=attempt < READ_ATTEMPTS - 1)
            if chunks is not None:
                return sorted(chunks, key=_chunk_order)
            logger.debug(f"Chunk set of {document_id} changed while reading, retrying")
        return []

    def iter_chunks(self) -> Iterator[Chunk]:
        for document_id in self.list_documents():
            yield from self.load_document(document_id)

    def document_metadata(self, document_id: str) -> dict[str, Any]:
        """Return the title/author/date fields known for a document."""
        for chunk in reversed(self.load_document(document_id)):
            found = {
                field: chunk.metadata[field]
                for field in METADATA_FIELDS
                if chunk.metadata.get(field)
            }
            if found or chunk.is_metadata:
                return found
        return {}

    def count(self) -> int:
        return sum(1 for _ in self.iter_chunks())
