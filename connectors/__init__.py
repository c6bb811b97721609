"""MAM Connectors - request/response boundary to media asset management systems.

This package contains the abstract client interface and the Iconik
implementation.

Key Design Principle:
- The reconciliation engine depends ONLY on MAMClient.request() and the
  typed wrapper built on it
- Transport, authentication and profile handling stay inside the connector
"""

from connectors.mam_base import (
    MAMClient,
    MAMApiError,
    MAMAuthenticationError,
    MAMNotFoundError,
    MAMRateLimitError,
    MAMValidationError,
    PaginatedResponse,
    error_for_status,
)

__all__ = [
    "MAMClient",
    "MAMApiError",
    "MAMAuthenticationError",
    "MAMNotFoundError",
    "MAMRateLimitError",
    "MAMValidationError",
    "PaginatedResponse",
    "error_for_status",
]
