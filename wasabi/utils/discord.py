import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from wasabi.config import Settings

logger = logging.getLogger(__name__)

OAUTH_SCOPES = "identify guilds"


@dataclass(frozen=True)
class DiscordProfile:
    id: str
    username: str
    discriminator: str
    avatar: str | None


class IdentityProviderError(Exception):
    """Base class for failed calls to the identity provider."""

    pass


class ProviderNetworkError(IdentityProviderError):
    """Raised when the provider could not be reached."""

    pass


class ProviderRejectedError(IdentityProviderError):
    """Raised when the provider answered with a non-success status."""

    def __init__(self, status_code: int, endpoint: str):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"{endpoint} returned HTTP {status_code}")


class ProviderDecodeError(IdentityProviderError):
    """Raised when the provider answered with an unexpected body."""

    pass


class DiscordClient:
    """
    The three calls of the Discord authorization-code flow.

    Each call is independent and never retried; the first failure aborts the
    login attempt.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.client_id = settings.discord_client_id
        self.client_secret = settings.discord_client_secret
        self.redirect_uri = settings.discord_redirect_uri
        self.required_guild_id = settings.discord_required_guild_id
        self.api_base = settings.discord_api_base.rstrip("/")
        self.authorize_url = settings.discord_authorize_url
        self.timeout = settings.discord_timeout
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": OAUTH_SCOPES,
                "state": state,
            }
        )
        return f"{self.authorize_url}?{query}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _send(self, endpoint: str, method: str, **kwargs: Any) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderNetworkError(f"Request to {endpoint} failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise ProviderRejectedError(response.status_code, endpoint)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderDecodeError(f"Invalid JSON from {endpoint}: {e}") from e

    async def exchange_code(self, code: str) -> str:
        data = await self._send(
            "/oauth2/token",
            "POST",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
        )
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise ProviderDecodeError("Token response did not contain an access_token")
        return access_token

    async def fetch_profile(self, access_token: str) -> DiscordProfile:
        data = await self._send(
            "/users/@me",
            "GET",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not isinstance(data, dict) or not data.get("id") or not data.get("username"):
            raise ProviderDecodeError("User response is missing id or username")

        return DiscordProfile(
            id=str(data["id"]),
            username=str(data["username"]),
            discriminator=str(data.get("discriminator") or ""),
            avatar=data.get("avatar"),
        )

    async def fetch_membership(self, access_token: str) -> bool:
        if not self.required_guild_id:
            return True

        data = await self._send(
            "/users/@me/guilds",
            "GET",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not isinstance(data, list):
            raise ProviderDecodeError("Guild response is not a list")

        for guild in data:
            if isinstance(guild, dict) and str(guild.get("id")) == self.required_guild_id:
                return True
        return False
