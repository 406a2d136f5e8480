import time
from collections.abc import Iterable
from types import TracebackType

import httpx

from ipstack_lookup.clients.base import DEFAULT_CLIENT_TIMEOUT, BaseIpstackClient
from ipstack_lookup.errors import TransportError
from ipstack_lookup.models.common import LookupResult


class IpstackClient(BaseIpstackClient):
    """Blocking client for the http(s)://api.ipstack.com IP geolocation API.

    The underlying ``httpx.Client`` is created once and reused for every
    lookup, so a single instance can be shared between threads. Close it with
    ``close()`` or use the client as a context manager.
    """

    def __init__(
        self,
        access_key: str,
        use_https: bool = False,
        timeout_seconds: int = DEFAULT_CLIENT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(access_key, use_https=use_https, timeout_seconds=timeout_seconds)
        self._http = httpx.Client(timeout=self._timeout, transport=transport)

    def __enter__(self) -> "IpstackClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def check(self, ip: str) -> LookupResult:
        """Look up a single IP address."""
        return self._unwrap_single(self.check_bulk([ip]))

    def check_bulk(self, ips: Iterable[str]) -> list[LookupResult]:
        """Look up several IP addresses with one request to the bulk endpoint."""
        unique_ips = self._prepare_ips(ips)
        url = self._build_url(unique_ips)
        self._log_request(unique_ips)

        deadline = None if self._timeout_seconds is None else time.monotonic() + self._timeout_seconds
        try:
            with self._http.stream("GET", url, params=self._query_params()) as response:
                content = self._read_body(response, deadline)
        except httpx.RequestError as exc:
            raise TransportError(f"Request to ipstack failed: {repr(exc)}") from exc

        return self._decode(unique_ips, content)

    def _read_body(self, response: httpx.Response, deadline: float | None) -> bytes:
        """Read the whole body before the overall request deadline.

        httpx only bounds each individual network wait, so a server trickling
        the body byte by byte is cut off here.
        """
        chunks: list[bytes] = []
        self._check_deadline(response, deadline)
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            self._check_deadline(response, deadline)
        return b"".join(chunks)

    def _check_deadline(self, response: httpx.Response, deadline: float | None) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise httpx.ReadTimeout(self._deadline_exceeded_message(), request=response.request)
