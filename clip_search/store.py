"""
Read-only embedding catalog.

Pairs the ordered product metadata with an N x EMBEDDING_DIM float32
matrix decoded from the half-precision blob. Row i of the matrix is the
embedding of record i. The store is built once at startup and never
mutated afterwards, so any number of requests may read it concurrently
without locking.
"""

import os
import json
import logging
from typing import Any, NamedTuple, Sequence

import numpy as np

from .config import EMBEDDING_DIM
from .exceptions import ConfigurationError
from .half_float import decode_half_floats

logger = logging.getLogger(__name__)


class ProductRecord(NamedTuple):
    """Catalog entry. Field order matches the metadata file tuples."""
    id: Any
    handle: str
    title: str
    image_url: str


class EmbeddingStore:
    """
    Immutable catalog of product records and their unit embeddings.

    Use EmbeddingStore.load() or EmbeddingStore.from_files() rather
    than constructing directly.
    """

    def __init__(self, records: Sequence[ProductRecord], matrix: np.ndarray):
        if matrix.shape != (len(records), EMBEDDING_DIM):
            raise ConfigurationError(
                f"Embedding matrix shape {matrix.shape} does not match "
                f"{len(records)} records x {EMBEDDING_DIM} dims"
            )
        self._records = tuple(records)
        self._matrix = np.array(matrix, dtype=np.float32, order="C")
        self._matrix.setflags(write=False)

    @classmethod
    def load(cls, metadata: Sequence[Sequence[Any]], blob: bytes) -> "EmbeddingStore":
        """
        Build a store from parsed metadata and the raw embedding blob.

        Args:
            metadata: Ordered [id, handle, title, imageUrl] entries.
            blob: count * EMBEDDING_DIM little-endian half floats.

        Raises:
            ConfigurationError: If an entry is malformed or the blob size
                does not match the metadata length.
        """
        records = []
        for i, entry in enumerate(metadata):
            if not isinstance(entry, (list, tuple)) or len(entry) < 4:
                raise ConfigurationError(
                    f"Metadata entry {i} is not an [id, handle, title, imageUrl] tuple",
                    details={"index": i},
                )
            records.append(ProductRecord(entry[0], entry[1], entry[2], entry[3]))

        expected = len(records) * EMBEDDING_DIM * 2
        if len(blob) != expected:
            raise ConfigurationError(
                f"Embedding blob is {len(blob)} bytes, expected {expected} "
                f"for {len(records)} products",
                details={"blob_bytes": len(blob), "expected_bytes": expected},
            )

        matrix = decode_half_floats(blob).reshape(len(records), EMBEDDING_DIM)

        bad_rows = int(np.count_nonzero(~np.isfinite(matrix).all(axis=1)))
        if bad_rows:
            logger.warning(f"{bad_rows} catalog embeddings contain non-finite values")

        return cls(records, matrix)

    @classmethod
    def from_files(cls, meta_path: str, embeddings_path: str) -> "EmbeddingStore":
        """Load the metadata JSON file and the binary embedding blob."""
        for path in (meta_path, embeddings_path):
            if not os.path.exists(path):
                raise ConfigurationError(f"Missing catalog file: {path}")

        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                metadata = json.load(f)
        except ValueError as e:
            raise ConfigurationError(f"Invalid metadata file {meta_path}: {e}") from e

        if not isinstance(metadata, list):
            raise ConfigurationError(f"Metadata file {meta_path} must contain a JSON array")

        with open(embeddings_path, 'rb') as f:
            blob = f.read()

        store = cls.load(metadata, blob)
        logger.info(f"Loaded catalog: {store.size()} products, {EMBEDDING_DIM}d embeddings")
        return store

    @property
    def records(self) -> tuple:
        return self._records

    @property
    def matrix(self) -> np.ndarray:
        """Read-only N x EMBEDDING_DIM float32 view of all embeddings."""
        return self._matrix

    def record_at(self, index: int) -> ProductRecord:
        self._check_index(index)
        return self._records[index]

    def vector_at(self, index: int) -> np.ndarray:
        """Return the embedding at row `index` (read-only view)."""
        self._check_index(index)
        return self._matrix[index]

    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._records):
            raise IndexError(
                f"Catalog index {index} out of range for {len(self._records)} products"
            )

