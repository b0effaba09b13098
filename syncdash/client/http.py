"""Async HTTP client: shared connection pool, API-key auth."""

from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """Shared async HTTP client bound to one daemon base URL.

    Usage:
        async with AsyncHttpClient("http://localhost:8384", api_key="...") as http:
            resp = await http.request("GET", "/rest/system/status")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        max_connections: int = 10,
        user_agent: str = "syncdash/1.0",
        verify_ssl: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl
        self._api_key = api_key
        self._max_connections = max_connections

        self._ssl_ctx: ssl.SSLContext | None = None
        if not verify_ssl:
            # The daemon's GUI listener ships a self-signed certificate.
            self._ssl_ctx = ssl.create_default_context()
            self._ssl_ctx.check_hostname = False
            self._ssl_ctx.verify_mode = ssl.CERT_NONE

        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self._max_connections,
                ssl=self._ssl_ctx if self._ssl_ctx is not None else True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "X-API-Key": self._api_key,
                },
            )
        return self._session

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        session = await self._ensure_session()
        kw: dict[str, Any] = dict(kwargs)
        if params:
            kw["params"] = params
        if json is not None:
            kw["json"] = json
        if timeout:
            kw["timeout"] = aiohttp.ClientTimeout(total=timeout)
        logger.debug("%s %s %s", method, path, params or "")
        return await session.request(method, self.url(path), **kw)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
