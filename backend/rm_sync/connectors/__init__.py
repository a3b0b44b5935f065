"""Clients for external systems."""

from rm_sync.connectors.rm_connector import (
    RMApiError,
    RMAuthError,
    RMConnector,
    RMNetworkError,
    RMNotFoundError,
    RMRateLimitError,
    RMTimeoutError,
    RMValidationError,
)

__all__ = [
    "RMApiError",
    "RMAuthError",
    "RMConnector",
    "RMNetworkError",
    "RMNotFoundError",
    "RMRateLimitError",
    "RMTimeoutError",
    "RMValidationError",
]
