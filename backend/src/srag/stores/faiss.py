import fcntl
import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import faiss
import numpy as np

from srag.models.chunk import RetrievalResult
from .base import BaseVectorStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    index: faiss.Index
    metadata: tuple[dict[str, Any], ...]


class FAISSVectorStore(BaseVectorStore):
    """FAISS inner-product store over L2-normalized vectors, with persistence.

    Scores are cosine similarities clipped to [0, 1]. Writers are serialized
    by a thread lock (and a file lock when persisted) and never mutate the
    live index: each write builds a new snapshot and swaps it in with one
    assignment, so a concurrent search sees either the old or the new state.
    """

    def __init__(
        self,
        dimension: int,
        index_path: Optional[Path] = None,
        metadata_path: Optional[Path] = None,
    ):
        super().__init__(dimension)
        self._index_path = Path(index_path) if index_path else None
        self._metadata_path = Path(metadata_path) if metadata_path else None
        self._lock = threading.RLock()
        self._snapshot = self._load()

    def _new_index(self) -> faiss.Index:
        return faiss.IndexFlatIP(self.dimension)

    def _load(self) -> _Snapshot:
        index = self._new_index()
        if self._index_path and self._index_path.exists():
            index = faiss.read_index(str(self._index_path))
            if index.d != self.dimension:
                raise ValueError(
                    f"Index at {self._index_path} has dimension {index.d}, "
                    f"expected {self.dimension}"
                )

        metadata: list[dict[str, Any]] = []
        if self._metadata_path and self._metadata_path.exists():
            with open(self._metadata_path, "r") as f:
                metadata = json.load(f)

        if len(metadata) != index.ntotal:
            raise ValueError(
                f"Vector index holds {index.ntotal} vectors but metadata has "
                f"{len(metadata)} entries"
            )

        logger.debug(f"Loaded vector index with {index.ntotal} vectors")
        return _Snapshot(index=index, metadata=tuple(metadata))

    @contextmanager
    def _write_lock(self) -> Iterator[None]:
        with self._lock:
            if not self._metadata_path:
                yield
                return
            self._metadata_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._metadata_path.with_suffix(".lock"), "w") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _save(self, snapshot: _Snapshot) -> None:
        if self._index_path:
            self._index_path.parent.mkdir(parents=True, exist_ok=True)
            faiss.write_index(snapshot.index, str(self._index_path))

        if self._metadata_path:
            self._metadata_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._metadata_path, "w") as f:
                json.dump(list(snapshot.metadata), f, indent=2)

    def _swap(self, snapshot: _Snapshot) -> None:
        self._save(snapshot)
        self._snapshot = snapshot

    def _normalize(self, vectors: list[list[float]]) -> np.ndarray:
        array = np.array(vectors, dtype=np.float32)
        if array.ndim != 2 or array.shape[1] != self.dimension:
            raise ValueError(
                f"Expected vectors of dimension {self.dimension}, got shape {array.shape}"
            )
        faiss.normalize_L2(array)
        return array

    def add(
        self,
        vectors: list[list[float]],
        metadata_list: list[dict[str, Any]],
    ) -> None:
        if len(vectors) != len(metadata_list):
            raise ValueError(
                f"Got {len(vectors)} vectors but {len(metadata_list)} metadata entries"
            )
        if not vectors:
            return
        if any("id" not in meta for meta in metadata_list):
            raise ValueError("Every metadata entry needs an 'id'")

        array = self._normalize(vectors)

        with self._write_lock():
            current = self._snapshot
            index = faiss.clone_index(current.index)
            index.add(array)
            metadata = current.metadata + tuple(dict(meta) for meta in metadata_list)
            self._swap(_Snapshot(index=index, metadata=metadata))

        logger.debug(f"Added {len(vectors)} vectors (total {self.size()})")

    def search(self, vector: list[float], k: int = 4) -> list[RetrievalResult]:
        snapshot = self._snapshot
        if snapshot.index.ntotal == 0 or k <= 0:
            return []

        query = self._normalize([vector])
        scores, indices = snapshot.index.search(query, min(k, snapshot.index.ntotal))

        results = []
        for score, idx in zip(scores[0], indices[0]):
            if 0 <= idx < len(snapshot.metadata):
                meta = snapshot.metadata[idx]
                results.append(
                    RetrievalResult(
                        id=meta["id"],
                        score=float(np.clip(score, 0.0, 1.0)),
                        content=meta.get("content", ""),
                        source="vector",
                        metadata={key: v for key, v in meta.items() if key not in ("id", "content")},
                    )
                )

        return results

    def _remove_where(self, predicate: Callable[[dict[str, Any]], bool]) -> int:
        with self._write_lock():
            current = self._snapshot
            keep = np.array(
                [not predicate(meta) for meta in current.metadata], dtype=bool
            )
            removed = int(len(keep) - keep.sum())
            if removed == 0:
                return 0

            index = self._new_index()
            if keep.any():
                vectors = current.index.reconstruct_n(0, current.index.ntotal)
                index.add(np.ascontiguousarray(vectors[keep]))
            metadata = tuple(meta for meta, kept in zip(current.metadata, keep) if kept)
            self._swap(_Snapshot(index=index, metadata=metadata))

        logger.debug(f"Removed {removed} vectors (total {self.size()})")
        return removed

    def delete(self, ids: list[str]) -> bool:
        targets = set(ids)
        if not targets:
            return False
        return self._remove_where(lambda meta: meta["id"] in targets) > 0

    def delete_by_document(self, document_id: str) -> int:
        return self._remove_where(lambda meta: meta.get("document_id") == document_id)

    def delete_all(self) -> None:
        with self._write_lock():
            self._swap(_Snapshot(index=self._new_index(), metadata=()))

    def size(self) -> int:
        return self._snapshot.index.ntotal
