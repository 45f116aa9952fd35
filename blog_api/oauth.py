"""
Login code exchange.

``POST /login`` hands the client's OAuth ``code`` to a ``CodeExchanger`` and
gets back the profile of the user it identifies.  The default exchanger talks
to GitHub:

1. POST the code (with client id/secret) to the OAuth token endpoint.
2. GET ``/user`` with the returned provider token.

Any failure along the way (blank code, rejected code, provider error,
network error) surfaces as ``AuthenticationError`` so the client always sees
the same 401 document.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx

from blog_api.config import settings
from blog_api.errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    login: str
    provider: str
    name: str | None = None
    url: str | None = None
    avatar_url: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


class CodeExchanger(Protocol):
    async def exchange(self, code: str) -> UserProfile:
        ...


class GitHubCodeExchanger:
    provider = "github"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        oauth_url: str = "https://github.com/login/oauth/access_token",
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.oauth_url = oauth_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "GitHubCodeExchanger":
        return cls(
            client_id=settings.GITHUB_CLIENT_ID,
            client_secret=settings.GITHUB_CLIENT_SECRET,
            oauth_url=settings.GITHUB_OAUTH_URL,
            api_url=settings.GITHUB_API_URL,
            timeout=settings.HTTP_TIMEOUT,
        )

    async def exchange(self, code: str) -> UserProfile:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                provider_token = await self._exchange_code(client, code)
                return await self._fetch_profile(client, provider_token)
            except httpx.HTTPError as exc:
                logger.warning("GitHub code exchange failed: %s", exc)
                raise AuthenticationError() from exc

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        response = await client.post(
            self.oauth_url,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        payload = response.json()
        token = payload.get("access_token")
        if not token:
            # GitHub answers 200 with {"error": "bad_verification_code"} for bad codes.
            logger.info("GitHub rejected login code: %s", payload.get("error", "no access_token"))
            raise AuthenticationError()
        return token

    async def _fetch_profile(self, client: httpx.AsyncClient, token: str) -> UserProfile:
        response = await client.get(
            f"{self.api_url}/user",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        data = response.json()
        login = data.get("login")
        if not login:
            logger.warning("GitHub profile response carried no login")
            raise AuthenticationError()
        return UserProfile(
            login=login,
            provider=self.provider,
            name=data.get("name"),
            url=data.get("html_url") or data.get("url"),
            avatar_url=data.get("avatar_url"),
        )


def get_code_exchanger() -> CodeExchanger:
    """FastAPI dependency; tests override it with a fake exchanger."""
    return GitHubCodeExchanger.from_settings()
