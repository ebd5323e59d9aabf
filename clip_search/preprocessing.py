"""
Image preprocessing for CLIP feature extraction.

Turns arbitrary encoded image bytes into the (3, 224, 224) float32
tensor the vision model expects:

    1. Decode to 8-bit RGB (alpha dropped, grayscale expanded)
    2. Cover-fit: scale the shorter edge to IMAGE_SIZE, center-crop the rest
    3. Per-channel normalization: (pixel / 255 - MEAN) / STD
    4. Channel-major layout (all of R, then G, then B)
"""

import logging

import cv2
import numpy as np

from .config import IMAGE_SIZE, MEAN, STD
from .exceptions import DecodeError

logger = logging.getLogger(__name__)

_MEAN = np.array(MEAN, dtype=np.float32)
_STD = np.array(STD, dtype=np.float32)


def decode_image(image_bytes: bytes) -> np.ndarray:
    """
    Decode encoded image bytes into an RGB uint8 array.

    Raises:
        DecodeError: If the bytes are empty or not a supported image.
    """
    if not image_bytes:
        raise DecodeError("Empty image payload")

    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    try:
        # IMREAD_COLOR drops alpha, expands grayscale and reduces to 8 bits
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if image is None:
        raise DecodeError("Could not decode image: unsupported or corrupt data")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def resize_cover(image_np: np.ndarray, size: int = IMAGE_SIZE) -> np.ndarray:
    """
    Resize to exactly size x size without distortion or letterboxing.

    The shorter edge is scaled to `size`, preserving aspect ratio, and
    the longer edge is cropped symmetrically around the center.
    """
    h, w = image_np.shape[:2]
    if h == 0 or w == 0:
        raise DecodeError(f"Image has no pixels ({w}x{h})")

    # The crop window is the centered square that maps onto the output,
    # so only that square is ever resampled
    side = min(h, w)
    x1 = (w - side) // 2
    y1 = (h - side) // 2
    window = image_np[y1:y1 + side, x1:x1 + side]

    interpolation = cv2.INTER_AREA if side > size else cv2.INTER_CUBIC
    try:
        return cv2.resize(window, (size, size), interpolation=interpolation)
    except cv2.error as e:
        raise DecodeError(f"Could not resize image: {e}") from e


def normalize_channels(image_np: np.ndarray) -> np.ndarray:
    """Apply CLIP mean/std normalization and convert HWC to CHW."""
    scaled = image_np.astype(np.float32) / 255.0
    normalized = (scaled - _MEAN) / _STD
    return np.ascontiguousarray(np.transpose(normalized, (2, 0, 1)), dtype=np.float32)


def preprocess_image(image_bytes: bytes) -> np.ndarray:
    """
    Convert encoded image bytes into a model-ready query tensor.

    Args:
        image_bytes: Any image format OpenCV can decode (JPEG, PNG,
            WebP, BMP, TIFF, ...).

    Returns:
        Float32 array of shape (3, IMAGE_SIZE, IMAGE_SIZE).

    Raises:
        DecodeError: If the image cannot be decoded or resized.
    """
    image = decode_image(image_bytes)
    cropped = resize_cover(image)
    tensor = normalize_channels(cropped)
    logger.debug(f"Preprocessed {image.shape[1]}x{image.shape[0]} image to {tensor.shape}")
    return tensor
