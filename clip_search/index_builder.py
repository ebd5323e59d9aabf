"""
Catalog file construction.

Produces the two files the search engine loads at startup:
    - vs-meta.json: ordered [id, handle, title, imageUrl] tuples
    - vs-embeddings.bin: one unit-norm embedding per tuple, stored as
      EMBEDDING_DIM little-endian half floats

Catalog images are embedded with the same preprocessing and inference
adapter used for queries, so stored and query vectors are comparable.
"""

import os
import json
import logging
from typing import Any, Dict, List, Sequence

import numpy as np

from . import config
from .exceptions import SearchError
from .inference import InferenceAdapter, normalize_embedding
from .preprocessing import preprocess_image

logger = logging.getLogger(__name__)


def encode_embeddings(vectors: np.ndarray) -> bytes:
    """L2-normalize each row and encode as little-endian float16 bytes."""
    vectors = np.asarray(vectors, dtype=np.float32)
    if vectors.ndim != 2 or vectors.shape[1] != config.EMBEDDING_DIM:
        raise ValueError(
            f"Expected N x {config.EMBEDDING_DIM} embeddings, got {vectors.shape}"
        )
    unit = np.vstack([normalize_embedding(v) for v in vectors]) if len(vectors) else vectors
    return unit.astype("<f2").tobytes()


def write_store(records: Sequence[Sequence[Any]],
                vectors: np.ndarray,
                output_dir: str) -> Dict[str, str]:
    """
    Write metadata and embedding files for a catalog.

    Args:
        records: Ordered [id, handle, title, imageUrl] entries.
        vectors: N x EMBEDDING_DIM raw embeddings, row i for records[i].
        output_dir: Directory to write into.

    Returns:
        Dict with 'meta_path' and 'embeddings_path'.
    """
    if len(records) != len(vectors):
        raise ValueError(f"{len(records)} records but {len(vectors)} embeddings")

    os.makedirs(output_dir, exist_ok=True)
    meta_path = os.path.join(output_dir, config.META_FILE)
    embeddings_path = os.path.join(output_dir, config.EMBEDDINGS_FILE)

    with open(meta_path, 'w', encoding='utf-8') as f:
        json.dump([list(r[:4]) for r in records], f, ensure_ascii=False)

    with open(embeddings_path, 'wb') as f:
        vectors = np.asarray(vectors, dtype=np.float32).reshape(len(records), config.EMBEDDING_DIM)
        f.write(encode_embeddings(vectors))

    return {"meta_path": meta_path, "embeddings_path": embeddings_path}


def build_index(entries: List[Dict[str, Any]],
                image_dir: str,
                output_dir: str,
                adapter: InferenceAdapter) -> dict:
    """
    Embed a directory of catalog images and write the store files.

    Args:
        entries: Catalog entries with 'id', 'handle', 'title',
            'image_url' and 'filename' keys. 'filename' is relative to
            image_dir.
        image_dir: Directory containing the product images.
        output_dir: Directory to write the store files into.
        adapter: Feature extractor used for the catalog images.

    Returns:
        Dict with 'success', 'processed', 'errors' and the file paths.
    """
    records = []
    vectors = []
    errors = 0

    logger.info(f"Building catalog from {len(entries)} entries in {image_dir}")

    for i, entry in enumerate(entries):
        filepath = os.path.join(image_dir, entry.get('filename', ''))
        if not os.path.isfile(filepath):
            logger.warning(f"Missing image for {entry.get('handle')}: {filepath}")
            errors += 1
            continue

        with open(filepath, 'rb') as f:
            image_bytes = f.read()

        try:
            tensor = preprocess_image(image_bytes)
            vector = normalize_embedding(adapter.embed(tensor))
        except SearchError as e:
            logger.warning(f"Failed to embed {entry.get('filename')}: {e.message}")
            errors += 1
            continue

        records.append([entry['id'], entry['handle'], entry['title'], entry['image_url']])
        vectors.append(vector)

        if (i + 1) % 500 == 0:
            logger.info(f"Processed {i + 1}/{len(entries)} images")

    if not records:
        return {"success": False, "error": "No valid images processed", "errors": errors}

    paths = write_store(records, np.vstack(vectors), output_dir)

    logger.info(f"Catalog built: {len(records)} products, {errors} errors")

    return {
        "success": True,
        "processed": len(records),
        "errors": errors,
        **paths,
    }
