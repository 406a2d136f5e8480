import asyncio
from collections.abc import Iterable
from types import TracebackType

import httpx

from ipstack_lookup.clients.base import DEFAULT_CLIENT_TIMEOUT, BaseIpstackClient
from ipstack_lookup.errors import TransportError
from ipstack_lookup.models.common import LookupResult


class AsyncIpstackClient(BaseIpstackClient):
    """Async counterpart of IpstackClient, backed by a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        access_key: str,
        use_https: bool = False,
        timeout_seconds: int = DEFAULT_CLIENT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(access_key, use_https=use_https, timeout_seconds=timeout_seconds)
        self._http = httpx.AsyncClient(timeout=self._timeout, transport=transport)

    async def __aenter__(self) -> "AsyncIpstackClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def check(self, ip: str) -> LookupResult:
        """Look up a single IP address."""
        return self._unwrap_single(await self.check_bulk([ip]))

    async def check_bulk(self, ips: Iterable[str]) -> list[LookupResult]:
        """Look up several IP addresses with one request to the bulk endpoint."""
        unique_ips = self._prepare_ips(ips)
        url = self._build_url(unique_ips)
        self._log_request(unique_ips)

        try:
            content = await asyncio.wait_for(self._fetch(url), timeout=self._timeout_seconds)
        except httpx.RequestError as exc:
            raise TransportError(f"Request to ipstack failed: {repr(exc)}") from exc
        except asyncio.TimeoutError as exc:
            raise TransportError(self._deadline_exceeded_message()) from exc

        return self._decode(unique_ips, content)

    async def _fetch(self, url: str) -> bytes:
        # The overall deadline is enforced by the caller; the stream is closed when it fires.
        async with self._http.stream("GET", url, params=self._query_params()) as response:
            return await response.aread()
