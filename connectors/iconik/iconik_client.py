"""Iconik HTTP Client.

Low-level HTTP client for Iconik API calls.
Handles authentication headers, rate-limit back-off and error mapping.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp

from connectors.iconik.iconik_config import IconikApiConfig, get_profile
from connectors.mam_base import (
    MAMApiError,
    MAMClient,
    MAMRateLimitError,
    error_for_status,
)
from core.observability.logging import get_logger

logger = get_logger(__name__)


class IconikClient(MAMClient):
    """HTTP client for the Iconik API.

    Provides:
    - Authenticated API calls (App-ID / Auth-Token headers)
    - Automatic pagination via list_all()
    - Error mapping to MAMApiError subclasses

    Usage:
        client = IconikClient(IconikApiConfig.from_profile(profile))
        await client.connect()
        asset = await client.request("assets/v1/assets/<id>/")
        await client.close()
    """

    def __init__(self, api_config: IconikApiConfig):
        self.api_config = api_config
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _get_headers(self) -> Dict[str, str]:
        if not self.api_config.app_id or not self.api_config.auth_token:
            raise MAMApiError("Missing App-ID or Auth-Token in API configuration")
        return {
            "App-ID": self.api_config.app_id,
            "Auth-Token": self.api_config.auth_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request.

        Args:
            path: Endpoint path relative to the API root
            method: HTTP method
            body: JSON request body

        Returns:
            Response JSON ({} for empty bodies such as DELETE responses)

        Raises:
            MAMAuthenticationError: Authentication failed
            MAMNotFoundError: Resource not found
            MAMRateLimitError: Rate limit still exceeded after back-off
            MAMValidationError: Validation error
            MAMApiError: Other API or transport errors
        """
        if not self._session:
            raise MAMApiError("Not connected. Call connect() first.")

        url = self.api_config.build_url(path)
        retry_config = self.api_config.retry_config
        headers = self._get_headers()

        for attempt in range(retry_config.max_retries + 1):
            try:
                async with self._session.request(
                    method,
                    url,
                    headers=headers,
                    json=body,
                ) as response:
                    response_text = await response.text()

                    if response.status < 400:
                        if response.status == 204 or not response_text:
                            return {}
                        return json.loads(response_text)

                    if response.status in retry_config.retry_on_status:
                        delay = retry_config.get_delay(response.headers.get("Retry-After"))
                        if attempt < retry_config.max_retries:
                            logger.warning(
                                f"Rate limited on {method} {path}, waiting {delay:.1f}s "
                                f"(attempt {attempt + 1}/{retry_config.max_retries})"
                            )
                            await asyncio.sleep(delay)
                            continue
                        raise MAMRateLimitError("Rate limit exceeded", int(delay))

                    raise error_for_status(response.status, url, response_text)

            except MAMApiError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
                raise MAMApiError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

        raise MAMApiError(f"{method} {path} failed after {retry_config.max_retries} retries")


def create_client(
    profile_name: Optional[str] = None,
    config_path: Optional[Path] = None,
    **config_overrides,
) -> IconikClient:
    """Build an unconnected client for a named profile.

    Raises:
        ConfigurationError: if the profile cannot be resolved
    """
    profile = get_profile(profile_name, config_path)
    logger.info(f"Using Iconik profile: {profile.name} ({profile.key})")
    return IconikClient(IconikApiConfig.from_profile(profile, **config_overrides))
