"""Iconik connector.

HTTP client, profile configuration and typed endpoint wrapper for the Iconik
media asset management API.
"""

from connectors.iconik.iconik_api import IconikArchiveApi, normalize_dir
from connectors.iconik.iconik_client import IconikClient, create_client
from connectors.iconik.iconik_config import (
    ConfigurationError,
    IconikApiConfig,
    IconikProfile,
    RetryConfig,
    get_profile,
    list_profiles,
    load_config,
)

__all__ = [
    "IconikArchiveApi",
    "IconikClient",
    "create_client",
    "IconikApiConfig",
    "IconikProfile",
    "RetryConfig",
    "ConfigurationError",
    "get_profile",
    "list_profiles",
    "load_config",
    "normalize_dir",
]
