"""
Exact top-K similarity search over the embedding catalog.

Every query is scored against every catalog vector with a flat
inner-product FAISS index. There is no clustering or pruning, so the
result is the exact brute-force ranking. Because both the query and the
catalog vectors have unit norm, the inner product is the cosine
similarity.
"""

import logging
from typing import Any, Dict, List

import faiss
import numpy as np

from .config import EMBEDDING_DIM
from .scoring import rank_scores, to_percent
from .store import EmbeddingStore

logger = logging.getLogger(__name__)


class SimilarityIndex:
    """Brute-force cosine similarity search over an EmbeddingStore."""

    def __init__(self, store: EmbeddingStore):
        self.store = store
        self.index = faiss.IndexFlatIP(EMBEDDING_DIM)
        if store.size():
            # FAISS keeps its own copy of the vectors
            self.index.add(np.array(store.matrix, dtype=np.float32))
        logger.info(f"Built flat inner-product index: {self.index.ntotal} vectors")

    def scores(self, query: np.ndarray) -> np.ndarray:
        """
        Cosine similarity of `query` against every catalog row.

        Returns:
            Float32 array of length store.size(), in catalog order.
            Rows FAISS could not score (non-finite vectors) are NaN.
        """
        n = self.index.ntotal
        scores = np.full(n, np.nan, dtype=np.float32)
        if n == 0:
            return scores

        q = np.array(query, dtype=np.float32).reshape(1, EMBEDDING_DIM)
        distances, labels = self.index.search(q, n)

        valid = labels[0] >= 0
        scores[labels[0][valid]] = distances[0][valid]
        return scores

    def search(self, query: np.ndarray, k: int) -> List[Dict[str, Any]]:
        """
        Return the k catalog entries most similar to `query`.

        Args:
            query: Unit-norm float vector of length EMBEDDING_DIM.
            k: Number of results wanted. Larger than the catalog is fine.

        Returns:
            min(k, catalog size) result dicts with id, handle, title,
            img and score, best first.

        Raises:
            ValueError: If k is negative or the query has the wrong shape.
        """
        if k < 0:
            raise ValueError(f"k must be non-negative, got {k}")

        query = np.asarray(query, dtype=np.float32)
        if query.shape != (EMBEDDING_DIM,):
            raise ValueError(
                f"Query shape {query.shape} doesn't match "
                f"index dimension {EMBEDDING_DIM}"
            )

        k = min(k, self.store.size())
        if k == 0:
            return []

        scores = self.scores(query)
        top = rank_scores(scores)[:k]

        results = []
        for idx in top:
            record = self.store.records[idx]
            results.append({
                "id": record.id,
                "handle": record.handle,
                "title": record.title,
                "img": record.image_url,
                "score": to_percent(scores[idx]),
            })
        return results
