"""Async FamilySearch API client.

- OAuth2 authorization-code flow with state validation and token refresh
- httpx transport with bearer auth, rate limiting and retries
- Pydantic models for the tree endpoints the pedigree fetcher needs
"""
from __future__ import annotations

import asyncio
import json
import os
import secrets
import time
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from pydantic import BaseModel, Field

from .environment import Environment
from .errors import AuthenticationError, FamilySearchAPIError
from .logging import get_logger
from .models.pedigree import EnhancedPerson, PedigreeData, PersonWithRelationships
from .models.person import FamilySearchUser, PersonData, PersonNotes
from .models.relationship import Relationship

logger = get_logger(__name__)

EXPIRY_MARGIN = timedelta(seconds=60)


@dataclass
class ClientConfig:
    """Configuration for the FamilySearch API client."""

    client_id: str
    environment: Environment = Environment.PRODUCTION
    redirect_uri: str = "http://localhost:8765/callback"
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    requests_per_second: float = 5.0
    token_file: Path = field(default_factory=lambda: Path("data/fs_token.json"))
    user_agent: str = "FamilySearchSDK/0.3"

    @property
    def base_url(self) -> str:
        return self.environment.platform_host

    @property
    def auth_url(self) -> str:
        return self.environment.authorization_url

    @property
    def token_url(self) -> str:
        return self.environment.token_url

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from ``FAMILYSEARCH_*`` environment variables."""
        client_id = os.getenv("FAMILYSEARCH_CLIENT_ID")
        if not client_id:
            raise ValueError("FAMILYSEARCH_CLIENT_ID not set and no config provided")
        config = cls(
            client_id=client_id,
            environment=Environment(os.getenv("FAMILYSEARCH_ENVIRONMENT", Environment.PRODUCTION.value)),
        )
        if redirect_uri := os.getenv("FAMILYSEARCH_REDIRECT_URI"):
            config.redirect_uri = redirect_uri
        if token_file := os.getenv("FAMILYSEARCH_TOKEN_FILE"):
            config.token_file = Path(token_file)
        return config


# =============================================================================
# Tokens
# =============================================================================


class TokenResponse(BaseModel):
    """OAuth2 token response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None

    issued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def expires_at(self) -> datetime | None:
        if self.expires_in is None:
            return None
        return self.issued_at + timedelta(seconds=self.expires_in)

    @property
    def is_expired(self) -> bool:
        """True from one minute before ``expires_at`` on."""
        expires_at = self.expires_at
        return expires_at is not None and datetime.now(UTC) >= expires_at - EXPIRY_MARGIN

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenResponse:
        return cls.model_validate(data)


class TokenStorage(ABC):
    """Where tokens live between runs."""

    @abstractmethod
    def load(self) -> TokenResponse | None:
        ...

    @abstractmethod
    def save(self, token: TokenResponse) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class FileTokenStorage(TokenStorage):
    """Token kept as JSON in a file readable only by its owner."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> TokenResponse | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("token_load_failed", path=str(self.path), error=str(e))
            return None
        try:
            return TokenResponse.from_dict(json.loads(raw))
        except ValueError as e:
            logger.warning("token_file_invalid", path=str(self.path), error=str(e))
            return None

    def save(self, token: TokenResponse) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(token.to_dict(), indent=2), encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class MemoryTokenStorage(TokenStorage):
    """Process-local token storage."""

    def __init__(self, token: TokenResponse | None = None) -> None:
        self._token = token

    def load(self) -> TokenResponse | None:
        return self._token

    def save(self, token: TokenResponse) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class EnvTokenStorage(TokenStorage):
    """Environment variable token storage (read-only)."""

    def __init__(self, env_var: str = "FAMILYSEARCH_ACCESS_TOKEN") -> None:
        self.env_var = env_var

    def load(self) -> TokenResponse | None:
        token = os.getenv(self.env_var)
        if token:
            return TokenResponse(access_token=token.strip())
        return None

    def save(self, token: TokenResponse) -> None:
        logger.warning("token_not_saved", reason="environment storage is read-only")

    def clear(self) -> None:
        logger.warning("token_not_cleared", reason="environment storage is read-only")


# =============================================================================
# OAuth2
# =============================================================================


@dataclass
class CallbackResult:
    """What the identity server sent back to the local redirect URI."""

    code: str | None = None
    state: str | None = None
    error: str | None = None


def callback_handler(result: CallbackResult) -> type[BaseHTTPRequestHandler]:
    """A request handler class that records one redirect into ``result``."""

    class _Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            query = parse_qs(urlparse(self.path).query)
            if "code" in query:
                result.code = query["code"][0]
                result.state = query.get("state", [None])[0]
                self._reply(200, "Authorization complete. You can close this window.")
            elif "error" in query:
                result.error = query.get("error_description", query["error"])[0]
                self._reply(400, "Authorization failed.")
            else:
                self._reply(400, "")

        def _reply(self, status: int, message: str) -> None:
            body = f"<html><body><p>{message}</p></body></html>".encode()
            self.send_response(status)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("oauth_callback_request", message=format % args)

    return _Handler


class Authenticator:
    """OAuth2 authorization-code flow against the FamilySearch identity server."""

    def __init__(
        self,
        config: ClientConfig,
        token_storage: TokenStorage | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.storage = token_storage or FileTokenStorage(config.token_file)
        self._token: TokenResponse | None = None
        self._state: str | None = None
        self._http = http or httpx.AsyncClient(timeout=config.timeout)

    async def close(self) -> None:
        await self._http.aclose()

    @property
    def token(self) -> TokenResponse | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and not self._token.is_expired

    @property
    def access_token(self) -> str | None:
        return self._token.access_token if self._token else None

    async def load_token(self) -> bool:
        """Load a stored token, refreshing it when expired."""
        self._token = self.storage.load()
        if self._token and self._token.is_expired:
            if self._token.refresh_token:
                try:
                    await self.refresh_token()
                    return True
                except (httpx.HTTPError, AuthenticationError) as e:
                    logger.info("token_refresh_failed", error=str(e))
            self._token = None
            return False
        return self._token is not None

    def get_authorization_url(self, state: str | None = None) -> str:
        """Authorization URL; a random state is generated and remembered if none is given."""
        self._state = state or secrets.token_urlsafe(24)
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "state": self._state,
        }
        return f"{self.config.auth_url}?{urlencode(params)}"

    def validate_state(self, state: str | None) -> bool:
        """Check a callback state against the last issued one (single use)."""
        expected, self._state = self._state, None
        return expected is not None and state is not None and secrets.compare_digest(expected, state)

    async def _token_request(self, data: dict[str, str]) -> TokenResponse:
        response = await self._http.post(
            self.config.token_url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"},
        )
        if response.is_error:
            raise AuthenticationError(f"Token request failed with status {response.status_code}")
        self._token = TokenResponse.model_validate(response.json())
        self.storage.save(self._token)
        return self._token

    async def exchange_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for tokens."""
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
        })

    async def refresh_token(self) -> TokenResponse:
        """Refresh the access token."""
        if not self._token or not self._token.refresh_token:
            raise AuthenticationError("No refresh token available")
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": self._token.refresh_token,
            "client_id": self.config.client_id,
        })

    async def login_interactive(self, timeout: float = 120.0) -> TokenResponse:
        """Open the browser for authorization and capture the local callback."""
        result = CallbackResult()
        port = urlparse(self.config.redirect_uri).port or 8765
        server = HTTPServer(("localhost", port), callback_handler(result))
        server.timeout = timeout

        auth_url = self.get_authorization_url()
        logger.info("oauth_browser_opened", url=auth_url)
        webbrowser.open(auth_url)
        try:
            await asyncio.to_thread(server.handle_request)
        finally:
            server.server_close()

        if result.error:
            raise AuthenticationError(f"Authorization failed: {result.error}")
        if not result.code:
            raise AuthenticationError("Authorization timed out")
        if not self.validate_state(result.state):
            raise AuthenticationError("OAuth state mismatch")
        return await self.exchange_code(result.code)

    async def login_with_token(self, access_token: str) -> None:
        """Use an existing access token."""
        self._token = TokenResponse(access_token=access_token)
        self.storage.save(self._token)

    def logout(self) -> None:
        self._token = None
        self.storage.clear()


@dataclass
class RateLimiter:
    """Spaces requests at least ``1 / requests_per_second`` apart."""

    requests_per_second: float = 5.0
    _next_slot: float = 0.0

    async def acquire(self) -> None:
        wait = self._next_slot - time.monotonic()
        if wait > 0:
            await asyncio.sleep(wait)
        self._next_slot = time.monotonic() + 1.0 / self.requests_per_second


# =============================================================================
# API client
# =============================================================================


class FamilySearchClient:
    """FamilySearch tree API client.

    Example:
        config = ClientConfig(client_id="your-client-id")
        async with FamilySearchClient(config) as client:
            await client.login(access_token="...")
            pedigree = await fetch_pedigree(client, "KWCB-XXX")
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        token_storage: TokenStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ClientConfig.from_env()
        self._transport = transport
        self.auth = Authenticator(
            self.config,
            token_storage,
            http=httpx.AsyncClient(timeout=self.config.timeout, transport=transport),
        )
        self.rate_limiter = RateLimiter(self.config.requests_per_second)
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> FamilySearchClient:
        self._http = httpx.AsyncClient(
            timeout=self.config.timeout,
            transport=self._transport,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/x-fs-v1+json, application/json",
            },
        )
        await self.auth.load_token()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._http:
            await self._http.aclose()
        await self.auth.close()

    @property
    def environment(self) -> Environment:
        return self.config.environment

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    async def login(self, access_token: str | None = None) -> None:
        """Authenticate with a given token, a stored token, or the browser flow."""
        if access_token:
            await self.auth.login_with_token(access_token)
        elif not self.is_authenticated:
            await self.auth.login_interactive()

    def logout(self) -> None:
        self.auth.logout()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        data: dict | None = None,
    ) -> dict:
        """Make an authenticated API request and return the JSON body."""
        if not self._http:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        if not self.is_authenticated:
            raise FamilySearchAPIError("Not authenticated", 401)

        url = f"{self.config.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.auth.access_token}"}
        refreshed = False

        for attempt in range(self.config.max_retries):
            await self.rate_limiter.acquire()
            try:
                response = await self._http.request(method, url, params=params, json=data, headers=headers)
            except httpx.TransportError as e:
                logger.warning("request_failed", path=path, attempt=attempt + 1, error=str(e))
                if attempt == self.config.max_retries - 1:
                    raise FamilySearchAPIError(f"API request failed: {e}") from e
                await asyncio.sleep(self.config.retry_delay * (attempt + 1))
                continue

            if response.status_code == 401 and not refreshed and self.auth.token and self.auth.token.refresh_token:
                await self.auth.refresh_token()
                headers["Authorization"] = f"Bearer {self.auth.access_token}"
                refreshed = True
                continue

            if response.status_code == 429:
                retry_after = float(response.headers.get("Retry-After", "5"))
                logger.info("rate_limited", path=path, retry_after=retry_after)
                await asyncio.sleep(retry_after)
                continue

            if response.status_code == 204:
                return {}

            if response.is_error:
                body = _json_or_none(response)
                if response.status_code < 500 or attempt == self.config.max_retries - 1:
                    raise FamilySearchAPIError(
                        f"API request failed: {method} {path} -> {response.status_code}",
                        response.status_code,
                        body,
                    )
                await asyncio.sleep(self.config.retry_delay * (attempt + 1))
                continue

            return _json_or_none(response) or {}

        raise FamilySearchAPIError("Max retries exceeded")

    async def _get_or_none(self, path: str, params: dict[str, str] | None = None) -> dict | None:
        try:
            return await self._request("GET", path, params=params)
        except FamilySearchAPIError as e:
            if e.status_code in (404, 410):
                return None
            raise

    # =========================================================================
    # Users & persons
    # =========================================================================

    async def get_current_user(self) -> FamilySearchUser | None:
        data = await self._get_or_none("/platform/users/current")
        users = (data or {}).get("users", [])
        return FamilySearchUser.model_validate(users[0]) if users else None

    async def get_person(self, person_id: str) -> PersonData | None:
        data = await self._get_or_none(f"/platform/tree/persons/{person_id}")
        persons = (data or {}).get("persons", [])
        return PersonData.model_validate(persons[0]) if persons else None

    async def get_person_with_details(self, person_id: str) -> PersonWithRelationships | None:
        """Person with relationships and source descriptions."""
        data = await self._get_or_none(
            f"/platform/tree/persons/{person_id}", params={"sourceDescriptions": "true"}
        )
        return PersonWithRelationships.model_validate(data) if data else None

    async def get_person_notes(self, person_id: str) -> PersonNotes | None:
        data = await self._get_or_none(f"/platform/tree/persons/{person_id}/notes")
        return PersonNotes.model_validate(data) if data else None

    async def get_couple_relationship(self, relationship_id: str) -> Relationship | None:
        data = await self._get_or_none(f"/platform/tree/couple-relationships/{relationship_id}")
        relationships = (data or {}).get("relationships", [])
        return Relationship.model_validate(relationships[0]) if relationships else None

    # =========================================================================
    # Pedigree
    # =========================================================================

    async def get_ancestry(self, person_id: str, generations: int = 4) -> PedigreeData:
        """Ancestry (pedigree) of a person, up to 8 generations."""
        data = await self._request(
            "GET",
            "/platform/tree/ancestry",
            params={"person": person_id, "generations": str(max(1, min(generations, 8)))},
        )
        return _pedigree(data, self.environment)

    async def get_descendancy(self, person_id: str, generations: int = 2) -> PedigreeData:
        """Descendants of a person, up to 2 generations."""
        data = await self._request(
            "GET",
            "/platform/tree/descendancy",
            params={"person": person_id, "generations": str(max(1, min(generations, 2)))},
        )
        return _pedigree(data, self.environment)


def _pedigree(data: dict, environment: Environment) -> PedigreeData:
    return PedigreeData(
        persons=[EnhancedPerson.model_validate(p) for p in data.get("persons", [])],
        relationships=[Relationship.model_validate(r) for r in data.get("relationships", [])],
        environment=environment,
    )


def _json_or_none(response: httpx.Response) -> dict | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
