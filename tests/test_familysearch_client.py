"""Tests for the FamilySearch API client."""
from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from familysearch_sdk.client import (
    Authenticator,
    ClientConfig,
    EnvTokenStorage,
    FamilySearchClient,
    FileTokenStorage,
    MemoryTokenStorage,
    RateLimiter,
    TokenResponse,
)
from familysearch_sdk.environment import Environment
from familysearch_sdk.errors import AuthenticationError, FamilySearchAPIError


@pytest.fixture
def config(tmp_path: Path) -> ClientConfig:
    """Test configuration without waits between retries."""
    return ClientConfig(
        client_id="test_client",
        token_file=tmp_path / "token.json",
        retry_delay=0.0,
        requests_per_second=1000.0,
    )


def _token(**kwargs) -> TokenResponse:
    return TokenResponse(access_token=kwargs.pop("access_token", "test_access_token"), expires_in=3600, **kwargs)


def _client(config: ClientConfig, handler: Callable[[httpx.Request], httpx.Response], token: TokenResponse | None = None) -> FamilySearchClient:
    return FamilySearchClient(
        config,
        token_storage=MemoryTokenStorage(token or _token()),
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# Tokens
# =============================================================================


class TestTokenResponse:
    """Tests for TokenResponse model."""

    def test_expired_token(self) -> None:
        """Test token expiration detection."""
        token = TokenResponse(
            access_token="test_token",
            expires_in=3600,
            issued_at=datetime.now(UTC) - timedelta(hours=2),
        )
        assert token.is_expired

    def test_token_not_expired(self) -> None:
        assert not _token().is_expired

    def test_token_within_grace_period_is_expired(self) -> None:
        """Test tokens count as expired a minute before the deadline."""
        token = TokenResponse(
            access_token="test_token",
            expires_in=3600,
            issued_at=datetime.now(UTC) - timedelta(seconds=3570),
        )
        assert token.is_expired

    def test_token_without_expiry(self) -> None:
        assert not TokenResponse(access_token="test_token").is_expired

    def test_token_serialization(self) -> None:
        token = _token(refresh_token="refresh")
        data = token.to_dict()
        assert isinstance(data["issued_at"], str)
        restored = TokenResponse.from_dict(json.loads(json.dumps(data)))
        assert restored == token


class TestTokenStorage:
    """Tests for the token storage backends."""

    def test_file_save_and_load(self, tmp_path: Path) -> None:
        storage = FileTokenStorage(tmp_path / "nested" / "token.json")
        storage.save(_token())
        loaded = storage.load()
        assert loaded is not None
        assert loaded.access_token == "test_access_token"

    def test_file_load_nonexistent(self, tmp_path: Path) -> None:
        assert FileTokenStorage(tmp_path / "missing.json").load() is None

    def test_file_load_corrupt(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_text("{not json")
        assert FileTokenStorage(path).load() is None

    def test_file_clear(self, tmp_path: Path) -> None:
        storage = FileTokenStorage(tmp_path / "token.json")
        storage.save(_token())
        storage.clear()
        assert not storage.path.exists()
        storage.clear()

    def test_memory_storage(self) -> None:
        storage = MemoryTokenStorage()
        assert storage.load() is None
        storage.save(_token())
        assert storage.load().access_token == "test_access_token"
        storage.clear()
        assert storage.load() is None

    def test_env_storage(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FS_TEST_TOKEN", " env-token \n")
        storage = EnvTokenStorage("FS_TEST_TOKEN")
        assert storage.load().access_token == "env-token"
        storage.save(_token(access_token="other"))
        storage.clear()
        assert storage.load().access_token == "env-token"

    def test_env_storage_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FS_TEST_TOKEN", raising=False)
        assert EnvTokenStorage("FS_TEST_TOKEN").load() is None


# =============================================================================
# Configuration
# =============================================================================


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_default_config(self) -> None:
        config = ClientConfig(client_id="test")
        assert config.environment is Environment.PRODUCTION
        assert config.base_url == "https://api.familysearch.org"
        assert config.auth_url == "https://ident.familysearch.org/cis-web/oauth2/v3/authorization"
        assert config.token_url == "https://ident.familysearch.org/cis-web/oauth2/v3/token"

    @pytest.mark.parametrize(
        "environment,base,ident",
        [
            (Environment.BETA, "https://apibeta.familysearch.org", "https://identbeta.familysearch.org"),
            (Environment.INTEGRATION, "https://api-integ.familysearch.org", "https://identint.familysearch.org"),
        ],
    )
    def test_environment_urls(self, environment: Environment, base: str, ident: str) -> None:
        config = ClientConfig(client_id="test", environment=environment)
        assert config.base_url == base
        assert config.token_url.startswith(ident)

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("FAMILYSEARCH_CLIENT_ID", "env-client")
        monkeypatch.setenv("FAMILYSEARCH_ENVIRONMENT", "beta")
        monkeypatch.setenv("FAMILYSEARCH_TOKEN_FILE", str(tmp_path / "t.json"))
        monkeypatch.delenv("FAMILYSEARCH_REDIRECT_URI", raising=False)
        config = ClientConfig.from_env()
        assert config.client_id == "env-client"
        assert config.environment is Environment.BETA
        assert config.token_file == tmp_path / "t.json"
        assert config.redirect_uri == "http://localhost:8765/callback"

    def test_from_env_requires_client_id(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FAMILYSEARCH_CLIENT_ID", raising=False)
        with pytest.raises(ValueError, match="FAMILYSEARCH_CLIENT_ID"):
            ClientConfig.from_env()


# =============================================================================
# Authenticator
# =============================================================================


class TestAuthenticator:
    """Tests for Authenticator."""

    def test_authorization_url(self, config: ClientConfig) -> None:
        """Test authorization URL generation."""
        auth = Authenticator(config, MemoryTokenStorage())
        url = auth.get_authorization_url(state="test_state")

        assert url.startswith(config.auth_url + "?")
        assert "response_type=code" in url
        assert f"client_id={config.client_id}" in url
        assert "state=test_state" in url

    def test_generated_state_validates_once(self, config: ClientConfig) -> None:
        auth = Authenticator(config, MemoryTokenStorage())
        state = parse_qs(urlparse(auth.get_authorization_url()).query)["state"][0]
        assert len(state) >= 24
        assert auth.validate_state(state)
        assert not auth.validate_state(state)

    def test_state_mismatch(self, config: ClientConfig) -> None:
        auth = Authenticator(config, MemoryTokenStorage())
        auth.get_authorization_url(state="expected")
        assert not auth.validate_state("forged")
        assert not auth.validate_state(None)

    @pytest.mark.asyncio
    async def test_exchange_code(self, config: ClientConfig) -> None:
        """Test the code exchange posts a form and stores the token."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "new", "expires_in": 3600, "refresh_token": "r"})

        storage = MemoryTokenStorage()
        auth = Authenticator(config, storage, http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        token = await auth.exchange_code("the-code")

        assert token.access_token == "new"
        assert storage.load() == token
        assert auth.is_authenticated
        form = parse_qs(seen[0].content.decode())
        assert str(seen[0].url) == config.token_url
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["the-code"]
        await auth.close()

    @pytest.mark.asyncio
    async def test_exchange_code_error(self, config: ClientConfig) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
        auth = Authenticator(config, MemoryTokenStorage(), http=httpx.AsyncClient(transport=transport))
        with pytest.raises(AuthenticationError, match="400"):
            await auth.exchange_code("bad")
        assert not auth.is_authenticated
        await auth.close()

    @pytest.mark.asyncio
    async def test_refresh_without_token(self, config: ClientConfig) -> None:
        auth = Authenticator(config, MemoryTokenStorage())
        with pytest.raises(AuthenticationError):
            await auth.refresh_token()
        await auth.close()

    @pytest.mark.asyncio
    async def test_load_token(self, config: ClientConfig) -> None:
        """Test loading an existing token file."""
        config.token_file.write_text(json.dumps(_token(access_token="existing_token").to_dict()))
        auth = Authenticator(config)

        assert await auth.load_token() is True
        assert auth.access_token == "existing_token"
        await auth.close()

    @pytest.mark.asyncio
    async def test_load_expired_token_refreshes(self, config: ClientConfig) -> None:
        expired = TokenResponse(
            access_token="old",
            expires_in=3600,
            refresh_token="r",
            issued_at=datetime.now(UTC) - timedelta(hours=2),
        )
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"access_token": "fresh", "expires_in": 3600}))
        auth = Authenticator(config, MemoryTokenStorage(expired), http=httpx.AsyncClient(transport=transport))

        assert await auth.load_token() is True
        assert auth.access_token == "fresh"
        await auth.close()

    @pytest.mark.asyncio
    async def test_load_expired_token_without_refresh(self, config: ClientConfig) -> None:
        expired = TokenResponse(access_token="old", expires_in=60, issued_at=datetime.now(UTC) - timedelta(hours=1))
        auth = Authenticator(config, MemoryTokenStorage(expired))

        assert await auth.load_token() is False
        assert not auth.is_authenticated
        await auth.close()

    @pytest.mark.asyncio
    async def test_logout(self, config: ClientConfig) -> None:
        """Test logout clears credentials."""
        auth = Authenticator(config)
        await auth.login_with_token("manual")
        assert config.token_file.exists()

        auth.logout()
        assert not auth.is_authenticated
        assert not config.token_file.exists()
        await auth.close()


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_rate_limiting(self) -> None:
        """Test that rate limiter enforces delays."""
        limiter = RateLimiter(requests_per_second=10.0)

        start = datetime.now()
        for _ in range(3):
            await limiter.acquire()
        elapsed = (datetime.now() - start).total_seconds()

        assert elapsed >= 0.15


# =============================================================================
# Client requests
# =============================================================================


class TestClientRequests:
    """Tests for FamilySearchClient._request over a mock transport."""

    @pytest.mark.asyncio
    async def test_headers(self, config: ClientConfig) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        async with _client(config, handler) as client:
            assert await client._request("GET", "/platform/ping", params={"a": "1"}) == {"ok": True}

        request = seen[0]
        assert str(request.url) == "https://api.familysearch.org/platform/ping?a=1"
        assert request.headers["Authorization"] == "Bearer test_access_token"
        assert "application/x-fs-v1+json" in request.headers["Accept"]
        assert request.headers["User-Agent"] == config.user_agent

    @pytest.mark.asyncio
    async def test_no_content(self, config: ClientConfig) -> None:
        async with _client(config, lambda request: httpx.Response(204)) as client:
            assert await client._request("GET", "/platform/x") == {}

    @pytest.mark.asyncio
    async def test_client_error_raises(self, config: ClientConfig) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(400, json={"errors": [{"message": "bad"}]})

        async with _client(config, handler) as client:
            with pytest.raises(FamilySearchAPIError) as exc_info:
                await client._request("GET", "/platform/x")

        assert exc_info.value.status_code == 400
        assert exc_info.value.response == {"errors": [{"message": "bad"}]}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self, config: ClientConfig) -> None:
        responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": 1})])
        async with _client(config, lambda request: next(responses)) as client:
            assert await client._request("GET", "/platform/x") == {"ok": 1}

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self, config: ClientConfig) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(500)

        async with _client(config, handler) as client:
            with pytest.raises(FamilySearchAPIError) as exc_info:
                await client._request("GET", "/platform/x")

        assert exc_info.value.status_code == 500
        assert len(calls) == config.max_retries

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, config: ClientConfig) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("boom", request=request)
            return httpx.Response(200, json={"ok": 1})

        async with _client(config, handler) as client:
            assert await client._request("GET", "/platform/x") == {"ok": 1}
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_rate_limited_then_ok(self, config: ClientConfig) -> None:
        responses = iter([httpx.Response(429, headers={"Retry-After": "0"}), httpx.Response(200, json={"ok": 1})])
        async with _client(config, lambda request: next(responses)) as client:
            assert await client._request("GET", "/platform/x") == {"ok": 1}

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_once(self, config: ClientConfig) -> None:
        """Test a 401 triggers one token refresh and a retry with the new token."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ident.familysearch.org":
                return httpx.Response(200, json={"access_token": "fresh", "expires_in": 3600})
            if request.headers["Authorization"] == "Bearer fresh":
                return httpx.Response(200, json={"ok": 1})
            return httpx.Response(401)

        async with _client(config, handler, _token(refresh_token="r")) as client:
            assert await client._request("GET", "/platform/x") == {"ok": 1}
            assert client.auth.access_token == "fresh"

    @pytest.mark.asyncio
    async def test_unauthorized_without_refresh_token(self, config: ClientConfig) -> None:
        async with _client(config, lambda request: httpx.Response(401)) as client:
            with pytest.raises(FamilySearchAPIError) as exc_info:
                await client._request("GET", "/platform/x")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_context(self, config: ClientConfig) -> None:
        client = _client(config, lambda request: httpx.Response(200))
        with pytest.raises(RuntimeError, match="async with"):
            await client._request("GET", "/platform/x")

    @pytest.mark.asyncio
    async def test_requires_authentication(self, config: ClientConfig) -> None:
        client = FamilySearchClient(
            config,
            token_storage=MemoryTokenStorage(),
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        async with client:
            assert not client.is_authenticated
            with pytest.raises(FamilySearchAPIError, match="Not authenticated"):
                await client._request("GET", "/platform/x")

    @pytest.mark.asyncio
    async def test_login_with_token(self, config: ClientConfig) -> None:
        client = FamilySearchClient(
            config,
            token_storage=MemoryTokenStorage(),
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        async with client:
            await client.login(access_token="given")
            assert client.is_authenticated
            client.logout()
            assert not client.is_authenticated


# =============================================================================
# Endpoints
# =============================================================================


class TestClientEndpoints:
    """Tests for the typed endpoint helpers with a mocked _request."""

    @pytest.mark.asyncio
    async def test_get_current_user(self, config: ClientConfig) -> None:
        async with _client(config, lambda request: httpx.Response(200)) as client:
            with patch.object(client, "_request", new_callable=AsyncMock) as mock_req:
                mock_req.return_value = {"users": [{"id": "U1", "personId": "KWCB-123", "displayName": "Jo"}]}
                user = await client.get_current_user()

        assert user is not None
        assert user.tree_person_id == "KWCB-123"
        mock_req.assert_called_once_with("GET", "/platform/users/current", params=None)

    @pytest.mark.asyncio
    async def test_get_person_not_found(self, config: ClientConfig) -> None:
        async with _client(config, lambda request: httpx.Response(404)) as client:
            assert await client.get_person("NOPE-000") is None
            assert await client.get_person_notes("NOPE-000") is None

    @pytest.mark.asyncio
    async def test_get_person(self, config: ClientConfig) -> None:
        mock_response = {
            "persons": [
                {
                    "id": "PERSON-1",
                    "names": [{"nameForms": [{"fullText": "Archer Durham"}]}],
                    "gender": {"type": "http://gedcomx.org/Male"},
                }
            ]
        }
        async with _client(config, lambda request: httpx.Response(200, json=mock_response)) as client:
            person = await client.get_person("PERSON-1")

        assert person is not None
        assert person.id == "PERSON-1"
        assert person.names[0].name_forms[0].full_text == "Archer Durham"

    @pytest.mark.asyncio
    async def test_get_person_with_details(self, config: ClientConfig) -> None:
        seen: list[httpx.Request] = []
        body = {
            "persons": [{"id": "A"}],
            "childAndParentsRelationships": [{"id": "CP", "parent1": {"resourceId": "F"}, "child": {"resourceId": "A"}}],
            "sourceDescriptions": [{"id": "S1", "titles": [{"value": "Census"}]}],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=body)

        async with _client(config, handler) as client:
            details = await client.get_person_with_details("A")

        assert seen[0].url.params["sourceDescriptions"] == "true"
        assert details.child_and_parents_relationships[0].child_id == "A"
        assert details.source_descriptions[0].title == "Census"

    @pytest.mark.asyncio
    async def test_get_couple_relationship(self, config: ClientConfig) -> None:
        body = {"relationships": [{"id": "R1", "type": "http://gedcomx.org/Couple", "facts": [{"type": "http://gedcomx.org/Marriage"}]}]}
        async with _client(config, lambda request: httpx.Response(200, json=body)) as client:
            rel = await client.get_couple_relationship("R1")
        assert rel.id == "R1"
        assert rel.facts[0].type == "http://gedcomx.org/Marriage"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested,sent", [(12, "8"), (0, "1"), (5, "5")])
    async def test_get_ancestry_clamps_generations(self, config: ClientConfig, requested: int, sent: str) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"persons": [{"id": "A"}, {"id": "B"}], "relationships": []})

        config.environment = Environment.BETA
        async with _client(config, handler) as client:
            data = await client.get_ancestry("A", generations=requested)

        assert seen[0].url.path == "/platform/tree/ancestry"
        assert seen[0].url.params["generations"] == sent
        assert seen[0].url.params["person"] == "A"
        assert [p.id for p in data.persons] == ["A", "B"]
        assert data.environment is Environment.BETA

    @pytest.mark.asyncio
    async def test_get_descendancy_clamps_generations(self, config: ClientConfig) -> None:
        async with _client(config, lambda request: httpx.Response(200)) as client:
            with patch.object(client, "_request", new_callable=AsyncMock) as mock_req:
                mock_req.return_value = {"persons": []}
                await client.get_descendancy("A", generations=5)

        assert mock_req.call_args[1]["params"]["generations"] == "2"
