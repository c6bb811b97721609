"""Iconik connection profiles and client configuration.

Profiles are read from an ``iconik-config.json`` file:

    {
        "default_profile": "my-domain",
        "profiles": {
            "my-domain": {
                "name": "My Iconik Domain",
                "app_id": "your-app-id",
                "auth_token": "your-auth-token"
            }
        }
    }

When no file is found, ICONIK_APP_ID / ICONIK_AUTH_TOKEN / ICONIK_API_URL are
used instead (a local .env file is honoured).
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv


CONFIG_FILENAME = "iconik-config.json"
DEFAULT_API_URL = "https://app.iconik.io/API/"
REPO_ROOT = Path(__file__).resolve().parents[2]


class ConfigurationError(Exception):
    """Raised when no usable connection profile can be resolved."""
    pass


@dataclass
class IconikProfile:
    """A named set of Iconik credentials."""
    key: str
    name: str
    app_id: str
    auth_token: str
    api_url: str = DEFAULT_API_URL


@dataclass
class RetryConfig:
    """Rate-limit handling for the transport.

    Only HTTP 429 is retried; every other failure surfaces to the caller.
    """
    max_retries: int = 3
    max_retry_after: float = 60.0  # seconds
    retry_on_status: Tuple[int, ...] = (429,)

    def get_delay(self, retry_after: Optional[str]) -> float:
        """Delay to honour for a Retry-After header value."""
        try:
            delay = float(retry_after) if retry_after else 1.0
        except ValueError:
            delay = 1.0
        return min(max(delay, 0.0), self.max_retry_after)


@dataclass
class IconikApiConfig:
    """Configuration for the Iconik HTTP client."""
    api_url: str = DEFAULT_API_URL
    app_id: str = ""
    auth_token: str = ""
    timeout_seconds: int = 30
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_profile(cls, profile: IconikProfile, **overrides) -> "IconikApiConfig":
        return cls(
            api_url=profile.api_url,
            app_id=profile.app_id,
            auth_token=profile.auth_token,
            **overrides,
        )

    def build_url(self, path: str) -> str:
        base = self.api_url if self.api_url.endswith("/") else self.api_url + "/"
        return f"{base}{path.lstrip('/')}"


# =============================================================================
# Profile Loading
# =============================================================================

def find_config_file(search_paths: Optional[List[Path]] = None) -> Optional[Path]:
    """Return the first existing config file among the search locations."""
    if search_paths is None:
        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / f".{CONFIG_FILENAME}",
            REPO_ROOT / CONFIG_FILENAME,
        ]
    for location in search_paths:
        if location.exists():
            return location
    return None


def load_config(config_path: Optional[Path] = None) -> Dict:
    """Load the raw profile configuration from file or environment.

    Raises:
        ConfigurationError: if neither a config file nor the environment
            variables provide credentials
    """
    path = config_path or find_config_file()
    if path:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Error reading config file {path}: {e}") from e

    load_dotenv()
    app_id = os.getenv("ICONIK_APP_ID")
    auth_token = os.getenv("ICONIK_AUTH_TOKEN")
    if app_id and auth_token:
        return {
            "default_profile": "default",
            "profiles": {
                "default": {
                    "name": "Default (from environment)",
                    "app_id": app_id,
                    "auth_token": auth_token,
                    "api_url": os.getenv("ICONIK_API_URL"),
                },
            },
        }

    raise ConfigurationError(
        f"No configuration found. Create {CONFIG_FILENAME} or set "
        "ICONIK_APP_ID and ICONIK_AUTH_TOKEN."
    )


def get_profile(profile_name: Optional[str] = None, config_path: Optional[Path] = None) -> IconikProfile:
    """Resolve a profile by name, or the configured default."""
    config = load_config(config_path)
    profiles = config.get("profiles") or {}
    key = profile_name or config.get("default_profile")

    if key not in profiles:
        available = ", ".join(sorted(profiles)) or "(none)"
        raise ConfigurationError(f'Profile "{key}" not found. Available profiles: {available}')

    entry = profiles[key]
    return IconikProfile(
        key=key,
        name=entry.get("name") or key,
        app_id=entry.get("app_id", ""),
        auth_token=entry.get("auth_token", ""),
        api_url=entry.get("api_url") or DEFAULT_API_URL,
    )


def list_profiles(config_path: Optional[Path] = None) -> List[Tuple[IconikProfile, bool]]:
    """List all profiles with a flag marking the default one."""
    config = load_config(config_path)
    default = config.get("default_profile")
    return [
        (get_profile(key, config_path), key == default)
        for key in (config.get("profiles") or {})
    ]
