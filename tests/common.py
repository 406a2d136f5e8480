import json
import socket
import threading
from collections.abc import AsyncIterator, Iterator
from http import HTTPStatus
from typing import Any

import httpx

SINGLE_PAYLOAD: dict[str, Any] = {
    "ip": "134.201.250.155",
    "hostname": "134.201.250.155",
    "type": "ipv4",
    "continent_code": "NA",
    "continent_name": "North America",
    "country_code": "US",
    "country_name": "United States",
    "region_code": "CA",
    "region_name": "California",
    "city": "Los Angeles",
    "zip": "90013",
    "latitude": 34.0453,
    "longitude": "-118.2413",
    "location": {
        "geoname_id": 5368361,
        "capital": "Washington D.C.",
        "languages": [{"code": "en", "name": "English", "native": "English"}],
        "country_flag": "https://assets.ipstack.com/images/assets/flags_svg/us.svg",
        "country_flag_emoji": "🇺🇸",
        "country_flag_emoji_unicode": "U+1F1FA U+1F1F8",
        "calling_code": "1",
        "is_eu": False,
    },
    "time_zone": {
        "id": "America/Los_Angeles",
        "current_time": "2018-03-29T07:35:08-07:00",
        "gmt_offset": -25200,
        "code": "PDT",
        "is_daylight_saving": True,
    },
    "currency": {
        "code": "USD",
        "name": "US Dollar",
        "plural": "US dollars",
        "symbol": "$",
        "symbol_native": "$",
    },
    "connection": {"asn": 25876, "isp": "Los Angeles Department of Water & Power"},
}

ERROR_PAYLOAD: dict[str, Any] = {
    "success": False,
    "error": {
        "code": 101,
        "type": "invalid_access_key",
        "info": "You have not supplied a valid API Access Key.",
    },
}


class TrackingByteStream(httpx.SyncByteStream, httpx.AsyncByteStream):
    """Response body that counts how often it gets closed."""

    def __init__(self, content: bytes) -> None:
        self._content = content
        self.close_calls = 0

    def __iter__(self) -> Iterator[bytes]:
        yield self._content

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._content

    def close(self) -> None:
        self.close_calls += 1

    async def aclose(self) -> None:
        self.close_calls += 1


class StubIpstack:
    """httpx.MockTransport handler serving one canned ipstack response.

    Every request is recorded, as is the body stream handed out for it, so
    tests can assert on the outgoing URL and on the stream being released.
    Passing `error` (an httpx.RequestError subclass) simulates a network failure.
    """

    def __init__(
        self,
        payload: Any = None,
        content: bytes | None = None,
        error: type[httpx.RequestError] | None = None,
    ) -> None:
        self._content = json.dumps(payload).encode() if content is None else content
        self._error = error
        self.requests: list[httpx.Request] = []
        self.streams: list[TrackingByteStream] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._error is not None:
            raise self._error("Network failure", request=request)

        stream = TrackingByteStream(self._content)
        self.streams.append(stream)
        return httpx.Response(
            HTTPStatus.OK,
            headers={"Content-Type": "application/json"},
            stream=stream,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


class SlowIpstackServer:
    """Local HTTP server answering one request, sending the JSON body byte by byte.

    Used as a context manager; `host` is the value to substitute for the
    ipstack API host.
    """

    def __init__(self, payload: Any, byte_interval: float = 0.25) -> None:
        self._body = json.dumps(payload).encode()
        self._byte_interval = byte_interval
        self._stop = threading.Event()
        self._listener = socket.create_server(("127.0.0.1", 0))
        self._listener.settimeout(5)
        self.host = f"127.0.0.1:{self._listener.getsockname()[1]}"
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self) -> "SlowIpstackServer":
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._stop.set()
        self._thread.join(timeout=5)
        self._listener.close()

    def _serve(self) -> None:
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return

        head = (
            "HTTP/1.1 200 OK\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(self._body)}\r\n"
            "\r\n"
        ).encode()

        with conn:
            try:
                request = b""
                while b"\r\n\r\n" not in request:
                    data = conn.recv(4096)
                    if not data:
                        return
                    request += data

                conn.sendall(head)
                for byte in self._body:
                    if self._byte_interval and self._stop.wait(self._byte_interval):
                        return
                    conn.sendall(bytes([byte]))
            except OSError:
                # The client gave up and closed the connection.
                return
