"""Tests for the Iconik HTTP client, profile configuration and endpoint wrapper."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

import connectors.iconik.iconik_config as iconik_config
from connectors.iconik.iconik_api import IconikArchiveApi, normalize_dir
from connectors.iconik.iconik_client import IconikClient, create_client
from connectors.iconik.iconik_config import (
    ConfigurationError,
    IconikApiConfig,
    RetryConfig,
    get_profile,
    list_profiles,
    load_config,
)
from connectors.mam_base import (
    MAMApiError,
    MAMAuthenticationError,
    MAMNotFoundError,
    MAMRateLimitError,
    MAMValidationError,
    PaginatedResponse,
)


def _response(status, body=None, headers=None):
    """An object usable as `async with session.request(...) as response`."""
    response = MagicMock()
    response.status = status
    text = body if isinstance(body, str) else (json.dumps(body) if body is not None else "")
    response.text = AsyncMock(return_value=text)
    response.headers = headers or {}

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def _client(*responses, **config):
    api_config = IconikApiConfig(
        api_url="https://iconik.test/API",
        app_id="app-123",
        auth_token="token-456",
        **config,
    )
    client = IconikClient(api_config)
    client._session = MagicMock()
    client._session.request = MagicMock(side_effect=list(responses))
    return client


class TestIconikClientRequests:
    """Request building and response handling."""

    def test_get_returns_json_with_auth_headers(self):
        client = _client(_response(200, {"id": "a1"}))

        result = asyncio.run(client.request("assets/v1/assets/a1/"))

        assert result == {"id": "a1"}
        method, url = client._session.request.call_args.args
        kwargs = client._session.request.call_args.kwargs
        assert method == "GET"
        assert url == "https://iconik.test/API/assets/v1/assets/a1/"
        assert kwargs["headers"]["App-ID"] == "app-123"
        assert kwargs["headers"]["Auth-Token"] == "token-456"
        assert kwargs["json"] is None

    def test_patch_sends_body(self):
        client = _client(_response(200, {"id": "a1", "archive_status": "ARCHIVED"}))

        asyncio.run(client.request("assets/v1/assets/a1/", method="PATCH", body={"archive_status": "ARCHIVED"}))

        assert client._session.request.call_args.args[0] == "PATCH"
        assert client._session.request.call_args.kwargs["json"] == {"archive_status": "ARCHIVED"}

    @pytest.mark.parametrize("status, body", [(204, None), (200, "")])
    def test_empty_body_returns_empty_dict(self, status, body):
        client = _client(_response(status, body))

        assert asyncio.run(client.request("x/", method="DELETE")) == {}

    @pytest.mark.parametrize("status, error_type", [
        (400, MAMValidationError),
        (401, MAMAuthenticationError),
        (403, MAMAuthenticationError),
        (404, MAMNotFoundError),
        (500, MAMApiError),
    ])
    def test_error_status_mapping(self, status, error_type):
        client = _client(_response(status, "nope"))

        with pytest.raises(error_type) as exc_info:
            asyncio.run(client.request("assets/v1/assets/a1/"))

        assert exc_info.value.status_code == status
        assert client._session.request.call_count == 1

    def test_transport_error_wrapped(self):
        client = _client(aiohttp.ClientConnectionError("connection reset"))

        with pytest.raises(MAMApiError, match="ClientConnectionError"):
            asyncio.run(client.request("assets/v1/assets/a1/"))

    def test_invalid_json_wrapped(self):
        client = _client(_response(200, "<html>"))

        with pytest.raises(MAMApiError, match="JSONDecodeError"):
            asyncio.run(client.request("assets/v1/assets/a1/"))

    def test_not_connected(self):
        client = IconikClient(IconikApiConfig(app_id="a", auth_token="b"))

        with pytest.raises(MAMApiError, match="Not connected"):
            asyncio.run(client.request("x/"))

    def test_missing_credentials(self):
        client = _client(_response(200, {}))
        client.api_config.auth_token = ""

        with pytest.raises(MAMApiError, match="Missing App-ID or Auth-Token"):
            asyncio.run(client.request("x/"))


class TestRateLimiting:
    """Only 429 is retried, honouring Retry-After."""

    def test_retries_after_429(self):
        client = _client(
            _response(429, "slow down", headers={"Retry-After": "2"}),
            _response(200, {"ok": True}),
        )

        with patch("connectors.iconik.iconik_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = asyncio.run(client.request("x/"))

        assert result == {"ok": True}
        sleep.assert_awaited_once_with(2.0)

    def test_gives_up_after_max_retries(self):
        responses = [_response(429, "slow down") for _ in range(3)]
        client = _client(*responses, retry_config=RetryConfig(max_retries=2))

        with patch("connectors.iconik.iconik_client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(MAMRateLimitError):
                asyncio.run(client.request("x/"))

        assert client._session.request.call_count == 3

    @pytest.mark.parametrize("header, expected", [(None, 1.0), ("abc", 1.0), ("5", 5.0), ("600", 60.0)])
    def test_retry_after_parsing(self, header, expected):
        assert RetryConfig().get_delay(header) == expected


class TestPagination:

    def test_list_all_follows_pages(self):
        client = _client(
            _response(200, {"objects": [{"id": "f1"}], "page": 1, "pages": 2, "per_page": 1, "total": 2}),
            _response(200, {"objects": [{"id": "f2"}], "page": 2, "pages": 2, "per_page": 1, "total": 2}),
        )

        objects = asyncio.run(client.list_all("files/v1/assets/a1/files/", per_page=1))

        assert [o["id"] for o in objects] == ["f1", "f2"]
        urls = [c.args[1] for c in client._session.request.call_args_list]
        assert urls == [
            "https://iconik.test/API/files/v1/assets/a1/files/?page=1&per_page=1",
            "https://iconik.test/API/files/v1/assets/a1/files/?page=2&per_page=1",
        ]

    def test_envelope_tolerates_nulls(self):
        envelope = PaginatedResponse.parse({"objects": None, "page": None, "pages": None})

        assert envelope.objects == []
        assert not envelope.has_more


class TestArchiveApi:

    def test_create_file_normalizes_directory(self):
        client = _client(_response(200, {"id": "file-1", "name": "clip.mov", "status": "CLOSED"}))
        api = IconikArchiveApi(client)

        record = asyncio.run(api.create_file(
            "a1", file_set_id="fs-1", format_id="fmt-1", storage_id="st-1",
            name="clip.mov", directory_path="projects/x", size=16,
        ))

        body = client._session.request.call_args.kwargs["json"]
        assert body["directory_path"] == "projects/x/"
        assert body["original_name"] == "clip.mov"
        assert body["type"] == "FILE"
        assert record.id == "file-1"

    @pytest.mark.parametrize("value, expected", [(None, "/"), ("", "/"), ("a/b", "a/b/"), ("a/b/", "a/b/")])
    def test_normalize_dir(self, value, expected):
        assert normalize_dir(value) == expected


class TestProfiles:
    """Profile file and environment fallback."""

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "iconik-config.json"
        path.write_text(json.dumps({
            "default_profile": "tm",
            "profiles": {
                "tm": {"name": "Team", "app_id": "app-tm", "auth_token": "tok-tm"},
                "lab": {"name": "Lab", "app_id": "app-lab", "auth_token": "tok-lab",
                        "api_url": "https://lab.iconik.test/API/"},
            },
        }))
        return path

    def test_default_profile(self, config_file):
        profile = get_profile(config_path=config_file)

        assert profile.key == "tm"
        assert profile.app_id == "app-tm"
        assert profile.api_url == iconik_config.DEFAULT_API_URL

    def test_named_profile(self, config_file):
        profile = get_profile("lab", config_path=config_file)

        assert profile.api_url == "https://lab.iconik.test/API/"

    def test_unknown_profile(self, config_file):
        with pytest.raises(ConfigurationError, match="Available profiles: lab, tm"):
            get_profile("nope", config_path=config_file)

    def test_list_profiles_marks_default(self, config_file):
        listed = {p.key: is_default for p, is_default in list_profiles(config_file)}

        assert listed == {"tm": True, "lab": False}

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setattr(iconik_config, "find_config_file", lambda search_paths=None: None)
        monkeypatch.setattr(iconik_config, "load_dotenv", lambda: None)
        monkeypatch.setenv("ICONIK_APP_ID", "env-app")
        monkeypatch.setenv("ICONIK_AUTH_TOKEN", "env-token")
        monkeypatch.delenv("ICONIK_API_URL", raising=False)

        profile = get_profile()

        assert profile.key == "default"
        assert profile.auth_token == "env-token"
        assert profile.api_url == iconik_config.DEFAULT_API_URL

    def test_no_configuration(self, monkeypatch):
        monkeypatch.setattr(iconik_config, "find_config_file", lambda search_paths=None: None)
        monkeypatch.setattr(iconik_config, "load_dotenv", lambda: None)
        monkeypatch.delenv("ICONIK_APP_ID", raising=False)
        monkeypatch.delenv("ICONIK_AUTH_TOKEN", raising=False)

        with pytest.raises(ConfigurationError, match="No configuration found"):
            load_config()

    def test_invalid_config_file(self, tmp_path):
        path = tmp_path / "iconik-config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Error reading config file"):
            load_config(path)

    def test_create_client_from_profile(self, config_file):
        client = create_client("lab", config_path=config_file, timeout_seconds=5)

        assert client.api_config.app_id == "app-lab"
        assert client.api_config.timeout_seconds == 5
        assert client.api_config.build_url("/files/v1/storages/") == "https://lab.iconik.test/API/files/v1/storages/"
