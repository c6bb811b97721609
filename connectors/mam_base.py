"""Abstract Media Asset Management (MAM) client interface.

This module defines the request/response boundary that the reconciliation
engine depends on. It is intentionally vendor-agnostic - no Iconik specifics
here.

Key Design Principles:
- The engine depends ONLY on MAMClient.request()
- Failures are raised as MAMApiError subclasses; callers decide the scope
- List endpoints return the paginated envelope described by PaginatedResponse
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Errors
# =============================================================================

class MAMApiError(Exception):
    """Base exception for MAM API errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class MAMAuthenticationError(MAMApiError):
    """Authentication failed (401/403)."""
    pass


class MAMNotFoundError(MAMApiError):
    """Resource not found (404)."""
    pass


class MAMRateLimitError(MAMApiError):
    """Rate limit exceeded (429)."""
    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, 429)
        self.retry_after = retry_after


class MAMValidationError(MAMApiError):
    """Validation error from the API (400)."""
    pass


def error_for_status(status_code: int, url: str, response_text: str) -> MAMApiError:
    """Map an HTTP status to the matching MAMApiError subclass."""
    if status_code in (401, 403):
        return MAMAuthenticationError(
            f"Authentication failed ({status_code}): {response_text}",
            status_code,
            response_text,
        )
    if status_code == 404:
        return MAMNotFoundError(f"Resource not found: {url}", status_code, response_text)
    if status_code == 400:
        return MAMValidationError(
            f"Validation error: {response_text}", status_code, response_text
        )
    return MAMApiError(
        f"API error ({status_code}): {response_text}", status_code, response_text
    )


# =============================================================================
# Envelopes
# =============================================================================

class PaginatedResponse(BaseModel):
    """Paginated list envelope returned by list endpoints."""
    objects: List[Dict[str, Any]] = Field(default_factory=list)
    page: int = 1
    pages: int = 1
    per_page: int = 0
    total: int = 0

    @property
    def has_more(self) -> bool:
        return self.pages > self.page

    @classmethod
    def parse(cls, data: Optional[Dict[str, Any]]) -> "PaginatedResponse":
        """Parse a raw response, tolerating missing or null envelope fields."""
        data = data or {}
        return cls(
            objects=data.get("objects") or [],
            page=data.get("page") or 1,
            pages=data.get("pages") or 1,
            per_page=data.get("per_page") or 0,
            total=data.get("total") or 0,
        )


# =============================================================================
# Client Interface
# =============================================================================

class MAMClient(ABC):
    """Generic request/response capability against a MAM API.

    Implementations handle authentication and transport. Paths are relative
    to the API root (e.g. "assets/v1/assets/<id>/").
    """

    @abstractmethod
    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Issue a request and return the decoded JSON body.

        Raises:
            MAMApiError: on any failed request
        """
        ...

    async def list_all(self, path: str, per_page: int = 100) -> List[Dict[str, Any]]:
        """Collect every object from a paginated list endpoint."""
        results: List[Dict[str, Any]] = []
        page = 1
        separator = "&" if "?" in path else "?"

        while True:
            raw = await self.request(f"{path}{separator}page={page}&per_page={per_page}")
            envelope = PaginatedResponse.parse(raw)
            results.extend(envelope.objects)
            if not envelope.has_more:
                break
            page += 1

        return results

    async def connect(self) -> None:
        """Open transport resources (no-op by default)."""
        return None

    async def close(self) -> None:
        """Release transport resources (no-op by default)."""
        return None

    async def __aenter__(self) -> "MAMClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
