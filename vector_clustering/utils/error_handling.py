"""
Error Handling Module

Provides the exception hierarchy used across the clustering engine:
- Base error carrying an error code, structured details and a timestamp
- Validation errors for malformed vector batches and configuration values
- Computation errors for internal K-means / hierarchical clustering faults
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class ClusteringServiceError(Exception):
    """Base exception for all clustering engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(ClusteringServiceError):
    """Error in engine configuration or settings file."""
    pass


# Input Errors
class ValidationError(ClusteringServiceError, ValueError):
    """
    Malformed input: bad identifier, bad/mismatched/non-finite vector,
    or an out-of-range threshold.

    Always raised before any clustering work begins and never retried.
    """
    pass


# Clustering Errors
class ComputationError(ClusteringServiceError):
    """
    Internal failure inside K-means or hierarchical clustering.

    Absorbed by the engine's fallbacks; only escapes to the caller when
    the fallback path fails as well.
    """
    pass
