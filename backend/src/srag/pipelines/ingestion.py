import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from srag.adapters import BaseEmbedder
from srag.adapters.utils import call_with_backoff
from srag.config import (
    get_config_value,
    get_documents_dir,
    get_storage_dir,
)
from srag.errors import ContentError, TransientGatewayError
from srag.loaders import SUPPORTED_EXTENSIONS, load_document, sanitize_document_id
from srag.models import Chunk, Document
from srag.splitters import create_splitter
from srag.stores import BaseVectorStore, ChunkStore
from .base import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNKING_STRATEGY,
    create_chunk_store_from_config,
    create_embedder_from_config,
    create_vector_store_from_config,
)
from .utils import _compute_file_hash

logger = logging.getLogger(__name__)

PROCESSED_FILES_NAME = "processed_files.json"


@dataclass(frozen=True)
class ChunkingOptions:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    chunking_strategy: str = DEFAULT_CHUNKING_STRATEGY
    extract_metadata: bool = True


@dataclass
class DocumentResult:
    """Outcome of preprocessing one document."""

    document: str
    status: Literal["processed", "failed"]
    chunks: int = 0
    embedded: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        if self.status == "failed":
            return {"document": self.document, "error": self.error, "status": self.status}
        return {"document": self.document, "chunks": self.chunks, "status": self.status}


@dataclass
class PreprocessResult:
    results: list[DocumentResult] = field(default_factory=list)

    @property
    def total_chunks(self) -> int:
        return sum(r.chunks for r in self.results)

    @property
    def processed(self) -> list[DocumentResult]:
        return [r for r in self.results if r.status == "processed"]

    @property
    def failed(self) -> list[DocumentResult]:
        return [r for r in self.results if r.status == "failed"]


class IngestionPipeline:
    """Loads, chunks, persists and embeds documents.

    Chunks always land in the chunk store, which the keyword scan reads.
    Vectors are only written when an embedder and vector store are
    configured; a failing embedding batch is logged and skipped, so a
    document can be searchable by keyword while only partly embedded.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        documents_dir: Path | str,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[BaseVectorStore] = None,
        options: Optional[ChunkingOptions] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        storage_dir: Optional[Path] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.chunk_store = chunk_store
        self.documents_dir = Path(documents_dir)
        self.embedder = embedder
        self.vector_store = vector_store
        self.options = options or ChunkingOptions()
        self.batch_size = batch_size
        self.storage_dir = storage_dir
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

        # Incremental indexing tracking: filepath -> md5
        self._processed_files: dict[str, str] = {}

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        config_path: Path,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[BaseVectorStore] = None,
        chunk_store: Optional[ChunkStore] = None,
    ) -> "IngestionPipeline":
        """Create pipeline from configuration dictionary.

        Prebuilt components are reused so ingestion and querying can share
        one in-memory vector index.
        """
        embedder = embedder or create_embedder_from_config(config)
        if vector_store is None:
            vector_store = create_vector_store_from_config(config, config_path, embedder)

        options = ChunkingOptions(
            chunk_size=get_config_value(config, "ingestion.chunk_size", DEFAULT_CHUNK_SIZE),
            chunk_overlap=get_config_value(
                config, "ingestion.chunk_overlap", DEFAULT_CHUNK_OVERLAP
            ),
            chunking_strategy=get_config_value(
                config, "ingestion.chunking_strategy", DEFAULT_CHUNKING_STRATEGY
            ),
            extract_metadata=get_config_value(config, "ingestion.extract_metadata", True),
        )

        return cls(
            chunk_store=chunk_store or create_chunk_store_from_config(config, config_path),
            documents_dir=get_documents_dir(config, config_path),
            embedder=embedder,
            vector_store=vector_store,
            options=options,
            batch_size=get_config_value(config, "ingestion.batch_size", DEFAULT_BATCH_SIZE),
            storage_dir=get_storage_dir(config, config_path),
            max_retries=get_config_value(config, "orchestrator.max_retries", 3),
            base_delay=get_config_value(config, "orchestrator.retry_base_delay", 1.0),
        )

    def _resolve(self, name: str) -> Path:
        path = Path(name)
        if path.is_absolute():
            return path
        return self.documents_dir / path

    def _vector_metadata(self, chunk: Chunk) -> dict[str, Any]:
        return {
            "id": chunk.id,
            "document_id": chunk.document_id,
            "chunk_index": chunk.index,
            "content": chunk.content,
            "file_name": chunk.source,
        }

    def _embed_and_store(self, document_id: str, chunks: list[Chunk]) -> int:
        """Replace a document's vectors batch by batch. Returns vectors added."""
        if self.embedder is None or self.vector_store is None:
            return 0

        removed = self.vector_store.delete_by_document(document_id)
        if removed:
            logger.debug(f"Dropped {removed} stale vectors for {document_id}")

        embedded = 0
        for i in range(0, len(chunks), self.batch_size):
            batch = chunks[i : i + self.batch_size]
            batch_num = i // self.batch_size + 1
            try:
                vectors = call_with_backoff(
                    "embedding",
                    self.embedder.embed_batch,
                    [c.content for c in batch],
                    max_retries=self.max_retries,
                    base_delay=self.base_delay,
                    sleep=self.sleep,
                )
                self.vector_store.add(vectors, [self._vector_metadata(c) for c in batch])
            except (TransientGatewayError, ValueError) as e:
                logger.warning(f"Skipping embedding batch {batch_num} of {document_id}: {e}")
                continue
            embedded += len(batch)

        return embedded

    def ingest_document(
        self, document: Document, options: Optional[ChunkingOptions] = None
    ) -> DocumentResult:
        """Chunk, persist and embed an already-loaded document.

        Raises:
            ContentError: If the document yields no chunks.
        """
        options = options or self.options
        splitter = create_splitter(
            options.chunking_strategy, options.chunk_size, options.chunk_overlap
        )
        chunks = splitter.split_document(document, extract_metadata=options.extract_metadata)

        self.chunk_store.replace(document.id, chunks)
        embedded = self._embed_and_store(document.id, chunks)

        logger.info(f"Processed {document.id}: {len(chunks)} chunks, {embedded} embedded")
        return DocumentResult(
            document=document.id,
            status="processed",
            chunks=len(chunks),
            embedded=embedded,
        )

    def preprocess(
        self, documents: list[str], options: Optional[ChunkingOptions] = None
    ) -> PreprocessResult:
        """Preprocess documents named relative to the documents directory.

        Failures are recorded per document and never abort the batch.
        """
        result = PreprocessResult()
        claimed: dict[str, str] = {}
        logger.info(f"Preprocessing documents: {', '.join(documents)}")

        for name in documents:
            path = self._resolve(name)
            if not path.is_file():
                logger.warning(f"Document not found: {path}")
                result.results.append(
                    DocumentResult(document=name, status="failed", error="File not found")
                )
                continue

            try:
                document = load_document(path)
                if document.id in claimed:
                    raise ContentError(
                        f"Document id '{document.id}' is already used by {claimed[document.id]}"
                    )
                processed = self.ingest_document(document, options)
            except Exception as e:
                logger.error(f"Error processing document {name}: {e}")
                result.results.append(DocumentResult(document=name, status="failed", error=str(e)))
                continue

            claimed[document.id] = name
            processed.document = name
            result.results.append(processed)

        logger.info(
            f"Preprocessed {len(result.processed)}/{len(documents)} documents, "
            f"{result.total_chunks} chunks"
        )
        return result

    def process_text(
        self, name: str, text: str, options: Optional[ChunkingOptions] = None
    ) -> DocumentResult:
        """Ingest inline text as a document named ``name``.

        Nameless text gets an id derived from a hash of its content.
        """
        if name:
            document_id = sanitize_document_id(Path(name).stem or name)
        else:
            document_id = hashlib.md5(text.encode("utf-8")).hexdigest()[:8]
        document = Document(
            id=document_id,
            format="txt",
            text=text,
            metadata={"file_name": name},
        )
        try:
            return self.ingest_document(document, options)
        except ContentError as e:
            logger.warning(f"Nothing to ingest for {name}: {e}")
            return DocumentResult(document=name, status="failed", error=str(e))

    def delete_document(self, document_id: str) -> bool:
        removed_chunks = self.chunk_store.delete(document_id)
        removed_vectors = 0
        if self.vector_store is not None:
            removed_vectors = self.vector_store.delete_by_document(document_id)
        return removed_chunks or removed_vectors > 0

    def _load_processed_files(self) -> dict[str, str]:
        """Load processed file tracking from storage."""
        if not self.storage_dir:
            return {}
        tracking_file = self.storage_dir / PROCESSED_FILES_NAME
        if tracking_file.exists():
            try:
                with open(tracking_file, "r") as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Ignoring unreadable {tracking_file}: {e}")
        return {}

    def _save_processed_files(self) -> None:
        """Save processed file tracking to storage."""
        if not self.storage_dir:
            return
        tracking_file = self.storage_dir / PROCESSED_FILES_NAME
        tracking_file.parent.mkdir(parents=True, exist_ok=True)
        with open(tracking_file, "w") as f:
            json.dump(self._processed_files, f, indent=2)

    def _discover_files(self) -> list[Path]:
        """Discover all supported files in the documents directory."""
        if not self.documents_dir.exists():
            return []
        return sorted(
            path
            for path in self.documents_dir.iterdir()
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS
        )

    def _get_changed_files(self, files: list[Path]) -> list[tuple[Path, bool]]:
        """Get list of files that are new or changed.

        Returns:
            List of (file_path, is_new) tuples
        """
        results = []
        for file_path in files:
            if not file_path.is_file():
                continue
            str_path = str(file_path)
            if str_path not in self._processed_files:
                results.append((file_path, True))
            elif self._processed_files[str_path] != _compute_file_hash(file_path):
                results.append((file_path, False))
        return results

    def process_new_and_changed_documents(
        self, files: Optional[list[Path]] = None
    ) -> dict[str, Any]:
        """Run incremental ingestion - only process new or changed files."""
        self._processed_files = self._load_processed_files()

        paths = files if files is not None else self._discover_files()
        candidates = [Path(f).resolve() for f in paths]
        changed_files = self._get_changed_files(candidates)

        if not changed_files:
            logger.info("No new or changed files to process")
            return {
                "documents": 0,
                "new_documents": 0,
                "updated_documents": 0,
                "chunks": 0,
                "failed": 0,
                "total_vectors": self.vector_store.size() if self.vector_store else 0,
            }

        new_files = [f for f, is_new in changed_files if is_new]
        updated_files = [f for f, is_new in changed_files if not is_new]
        logger.info(
            f"Processing {len(new_files)} new files, {len(updated_files)} updated files"
        )

        result = self.preprocess([str(f) for f in new_files + updated_files])
        for entry in result.processed:
            self._processed_files[entry.document] = _compute_file_hash(Path(entry.document))
        self._save_processed_files()

        return {
            "documents": len(changed_files),
            "new_documents": len(new_files),
            "updated_documents": len(updated_files),
            "chunks": result.total_chunks,
            "failed": len(result.failed),
            "total_vectors": self.vector_store.size() if self.vector_store else 0,
        }

    def process_all_documents(self, force: bool = False) -> PreprocessResult:
        """Preprocess every supported file in the documents directory.

        Args:
            force: Clear stored chunks, vectors and tracking first.
        """
        if force:
            logger.info("Force re-indexing - clearing existing chunks and vectors")
            for document_id in self.chunk_store.list_documents():
                self.chunk_store.delete(document_id)
            if self.vector_store is not None:
                self.vector_store.delete_all()
            self._processed_files = {}
            self._save_processed_files()

        return self.preprocess([str(f) for f in self._discover_files()])
