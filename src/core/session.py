"""Per-run session state and the HTTP wrapper that carries it."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from src.core.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Cookie and identity state for one pipeline run.

    Attributes:
        origin: Scheme and host of the target page
        identity_headers: Fixed outbound identity (User-Agent etc.)
        cookies: Raw ``name=value`` cookie pairs in arrival order
    """
    origin: str
    identity_headers: Dict[str, str] = field(default_factory=dict)
    cookies: List[str] = field(default_factory=list)

    def replace_cookies(self, set_cookie_headers: List[str]) -> None:
        """Start a fresh session from a response's Set-Cookie headers."""
        self.cookies = [_cookie_pair(h) for h in set_cookie_headers if _cookie_pair(h)]

    def update_cookies(self, set_cookie_headers: List[str]) -> None:
        """Overwrite cookies by name, appending new ones."""
        for header in set_cookie_headers:
            pair = _cookie_pair(header)
            if not pair:
                continue
            name = pair.split("=", 1)[0]
            self.cookies = [c for c in self.cookies if c.split("=", 1)[0] != name]
            self.cookies.append(pair)

    @property
    def cookie_header(self) -> str:
        return "; ".join(self.cookies)


def _cookie_pair(set_cookie: str) -> str:
    return set_cookie.split(";", 1)[0].strip()


class ProviderSession:
    """Async HTTP access to the provider on behalf of one SessionContext.

    Each pipeline run owns one ProviderSession and therefore one
    ``httpx.AsyncClient``; sessions are never shared between runs.

    Example:
        async with ProviderSession(context, max_redirects=5) as session:
            response = await session.get(url, timeout=15)
    """

    def __init__(
        self,
        context: SessionContext,
        max_redirects: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.context = context
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=max_redirects,
            transport=transport
        )

    async def __aenter__(self) -> "ProviderSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(self.context.identity_headers)
        if self.context.cookies:
            headers["Cookie"] = self.context.cookie_header
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        url: str,
        timeout: float,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Send a request carrying the session's cookies and identity.

        Raises:
            TransportError: On timeout, connection failure, or redirect loop
        """
        logger.debug(f"{method} {url}")
        try:
            return await self._client.request(
                method,
                url,
                headers=self._headers(headers),
                timeout=timeout,
                **kwargs
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timed out after {timeout}s", {"method": method, "url": url}
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Request failed: {e}", {"method": method, "url": url}
            ) from e

    async def get(self, url: str, timeout: float, **kwargs) -> httpx.Response:
        return await self.request("GET", url, timeout, **kwargs)

    async def post(self, url: str, timeout: float, **kwargs) -> httpx.Response:
        return await self.request("POST", url, timeout, **kwargs)

    async def head(self, url: str, timeout: float, **kwargs) -> httpx.Response:
        return await self.request("HEAD", url, timeout, **kwargs)


def set_cookie_headers(response: httpx.Response) -> List[str]:
    """All Set-Cookie header values of a response."""
    return response.headers.get_list("set-cookie")
