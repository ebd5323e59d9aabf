"""
Score conversion and deterministic ranking for similarity results.

Cosine similarities are reported as percentages with one decimal.
Ranking sorts by score descending and breaks ties by ascending catalog
position, so the same query always yields the same order.
"""

import math
import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

SCORE_SCALE = 100.0
SCORE_DECIMALS = 1


def to_percent(similarity: float) -> Optional[float]:
    """
    Convert a cosine similarity in [-1, 1] to a rounded percentage.

    Returns None for non-finite similarities (catalog rows that decoded
    to NaN or infinity), which cannot be represented in JSON.
    """
    similarity = float(similarity)
    if not math.isfinite(similarity):
        return None
    return round(similarity * SCORE_SCALE, SCORE_DECIMALS)


def rank_scores(scores: np.ndarray) -> np.ndarray:
    """
    Order catalog indices by similarity.

    Primary key is score (highest first), secondary key is the catalog
    index (lowest first). Non-finite scores sort after all finite ones.

    Args:
        scores: 1-D array of similarities, one per catalog row.

    Returns:
        Int array of catalog indices, best match first.
    """
    scores = np.asarray(scores, dtype=np.float64)
    positions = np.arange(len(scores))
    primary = np.where(np.isfinite(scores), -scores, np.inf)
    # lexsort treats the last key as primary
    return np.lexsort((positions, primary))
