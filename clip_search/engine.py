"""
Visual product search engine.

Runs the full query pipeline for one uploaded image:
    1. Decode and preprocess the image into a CLIP input tensor
    2. Extract the raw embedding through the inference adapter
    3. L2-normalize the embedding
    4. Score it against every catalog vector and keep the top K

A SearchEngine is assembled once at startup and is never modified
afterwards. The serving layer holds a single instance and shares it
across all requests.
"""

import os
import time
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Dict, List, Optional

import numpy as np

from . import config
from .exceptions import InferenceError, PayloadTooLargeError
from .inference import InferenceAdapter, OnnxInferenceAdapter, normalize_embedding
from .preprocessing import preprocess_image
from .similarity import SimilarityIndex
from .store import EmbeddingStore

logger = logging.getLogger(__name__)


class SearchEngine:
    """
    Image-to-catalog similarity search.

    Holds the embedding store, its similarity index and the inference
    adapter. All three are read-only after construction.
    """

    def __init__(self,
                 store: EmbeddingStore,
                 adapter: InferenceAdapter,
                 inference_timeout: Optional[float] = config.INFERENCE_TIMEOUT,
                 max_image_bytes: int = config.MAX_UPLOAD_BYTES):
        """
        Args:
            store: Loaded catalog.
            adapter: Feature extractor for query images.
            inference_timeout: Seconds to wait for one embed() call before
                giving up. None waits indefinitely.
            max_image_bytes: Largest accepted image payload.
        """
        self.store = store
        self.index = SimilarityIndex(store)
        self.adapter = adapter
        self.inference_timeout = inference_timeout
        self.max_image_bytes = max_image_bytes
        # Timed-out calls keep their worker until the model returns
        self._inference_pool = ThreadPoolExecutor(thread_name_prefix="inference")

    @classmethod
    def from_data_dir(cls, data_dir: str = config.DATA_DIR, **kwargs) -> "SearchEngine":
        """Load the ONNX model and the catalog files from `data_dir`."""
        store = EmbeddingStore.from_files(
            os.path.join(data_dir, config.META_FILE),
            os.path.join(data_dir, config.EMBEDDINGS_FILE),
        )
        adapter = OnnxInferenceAdapter.from_model_path(
            os.path.join(data_dir, config.MODEL_FILE)
        )
        return cls(store, adapter, **kwargs)

    def catalog_size(self) -> int:
        return self.store.size()

    def embed_image(self, image_bytes: bytes) -> np.ndarray:
        """
        Compute the unit-norm embedding of an encoded image.

        Raises:
            PayloadTooLargeError: If the image exceeds max_image_bytes.
            DecodeError: If the image cannot be decoded.
            InferenceError: If the model fails or times out.
            DegenerateVectorError: If the embedding cannot be normalized.
        """
        if len(image_bytes) > self.max_image_bytes:
            raise PayloadTooLargeError(
                f"Image is {len(image_bytes)} bytes, limit is {self.max_image_bytes}",
                details={"limit": self.max_image_bytes},
            )

        tensor = preprocess_image(image_bytes)

        future = self._inference_pool.submit(self.adapter.embed, tensor)
        try:
            raw = future.result(timeout=self.inference_timeout)
        except FutureTimeout:
            future.cancel()
            raise InferenceError(
                f"Model inference timed out after {self.inference_timeout}s"
            ) from None

        return normalize_embedding(raw)

    def search(self, image_bytes: bytes,
               top_k: int = config.DEFAULT_TOP_K) -> List[Dict[str, Any]]:
        """
        Find the catalog products most similar to an uploaded image.

        Args:
            image_bytes: Encoded query image.
            top_k: Maximum number of results.

        Returns:
            Up to top_k dicts with id, handle, title, img and score
            (cosine similarity x 100, one decimal), best first.
        """
        t0 = time.perf_counter()
        query = self.embed_image(image_bytes)
        results = self.index.search(query, top_k)
        elapsed_ms = (time.perf_counter() - t0) * 1000
        logger.info(f"Search: {elapsed_ms:.0f}ms, {len(results)} results")
        return results

    async def search_async(self, image_bytes: bytes,
                           top_k: int = config.DEFAULT_TOP_K) -> List[Dict[str, Any]]:
        """Run search() in a worker thread so the event loop stays responsive."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.search, image_bytes, top_k)
