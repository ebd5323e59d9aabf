"""
Feature extraction boundary.

The engine only needs `embed(tensor) -> raw vector`; everything model
specific lives behind InferenceAdapter. The production adapter wraps an
ONNX Runtime session of a CLIP vision tower and reads the embedding
from one named output, validated when the session is attached.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
import onnxruntime as ort

from .config import EMBEDDING_DIM, IMAGE_SIZE, ONNX_INPUT_NAME, ONNX_OUTPUT_NAME
from .exceptions import ConfigurationError, DegenerateVectorError, InferenceError

logger = logging.getLogger(__name__)

TENSOR_SHAPE = (3, IMAGE_SIZE, IMAGE_SIZE)


class InferenceAdapter(ABC):
    """Interface to an external image feature extractor."""

    @abstractmethod
    def embed(self, tensor: np.ndarray) -> np.ndarray:
        """
        Compute the raw (unnormalized) embedding of a query tensor.

        Args:
            tensor: Float32 array of shape (3, IMAGE_SIZE, IMAGE_SIZE).

        Returns:
            Float32 vector of length EMBEDDING_DIM.

        Raises:
            InferenceError: If the model fails or returns an unusable result.
        """


class OnnxInferenceAdapter(InferenceAdapter):
    """
    CLIP vision model served by ONNX Runtime.

    The session must expose `input_name` and `output_name`; both are
    checked up front so that a model exported with different names fails
    at startup instead of silently returning the wrong tensor.
    """

    def __init__(self, session,
                 input_name: str = ONNX_INPUT_NAME,
                 output_name: str = ONNX_OUTPUT_NAME):
        input_names = [i.name for i in session.get_inputs()]
        output_names = [o.name for o in session.get_outputs()]

        if input_name not in input_names:
            raise ConfigurationError(
                f"Model has no input named '{input_name}'",
                details={"inputs": input_names},
            )
        if output_name not in output_names:
            raise ConfigurationError(
                f"Model has no output named '{output_name}'",
                details={"outputs": output_names},
            )

        self.session = session
        self.input_name = input_name
        self.output_name = output_name

    @classmethod
    def from_model_path(cls, model_path: str,
                        input_name: str = ONNX_INPUT_NAME,
                        output_name: str = ONNX_OUTPUT_NAME) -> "OnnxInferenceAdapter":
        """Create a CPU inference session for the model at `model_path`."""
        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL

        try:
            session = ort.InferenceSession(
                str(model_path),
                sess_options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as e:
            raise ConfigurationError(f"Could not load model {model_path}: {e}") from e

        logger.info(f"Loaded model {model_path} ({input_name} -> {output_name})")
        return cls(session, input_name, output_name)

    def embed(self, tensor: np.ndarray) -> np.ndarray:
        if tensor.shape != TENSOR_SHAPE:
            raise InferenceError(
                f"Query tensor has shape {tensor.shape}, expected {TENSOR_SHAPE}"
            )

        batch = np.ascontiguousarray(tensor[np.newaxis], dtype=np.float32)
        try:
            outputs = self.session.run([self.output_name], {self.input_name: batch})
        except Exception as e:
            raise InferenceError(f"Model inference failed: {e}") from e

        if not outputs or outputs[0] is None:
            raise InferenceError(f"Model returned no '{self.output_name}' output")

        vector = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        if vector.size != EMBEDDING_DIM:
            raise InferenceError(
                f"Output '{self.output_name}' has {vector.size} values, "
                f"expected {EMBEDDING_DIM}"
            )
        return vector


def normalize_embedding(vector: np.ndarray) -> np.ndarray:
    """
    Scale a raw embedding to unit L2 norm.

    Raises:
        DegenerateVectorError: If the norm is zero or not finite.
    """
    vector = np.asarray(vector, dtype=np.float64).reshape(-1)
    norm = float(np.linalg.norm(vector))
    if not np.isfinite(norm) or norm == 0.0:
        raise DegenerateVectorError(
            f"Cannot normalize embedding with norm {norm}",
            details={"norm": str(norm)},
        )
    return (vector / norm).astype(np.float32)
