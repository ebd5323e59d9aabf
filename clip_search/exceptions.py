"""
Error taxonomy for the search pipeline.

Startup problems raise ConfigurationError and keep the engine from ever
becoming ready. Everything else is scoped to a single request and is
reported once, as one structured failure, by the serving layer.
"""

from typing import Any, Dict, Optional


class SearchError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        message: Human-readable description.
        code: Stable machine-readable error code.
        details: Extra context for logs and API responses.
    """

    code = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON body returned by the API."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ConfigurationError(SearchError):
    """Missing or inconsistent startup files or settings."""

    code = "configuration_error"


class DecodeError(SearchError):
    """Image bytes could not be decoded or resized."""

    code = "decode_error"


class InferenceError(SearchError, RuntimeError):
    """The feature-extraction model failed or returned an unusable result."""

    code = "inference_error"


class DegenerateVectorError(SearchError):
    """A feature vector with zero or non-finite norm cannot be normalized."""

    code = "degenerate_vector"


class PayloadTooLargeError(SearchError):
    """Request body exceeds the admission limit."""

    code = "payload_too_large"
