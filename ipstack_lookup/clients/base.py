import json
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from ipstack_lookup.errors import DecodeError, EmptyInputError, IpstackApiError, UnexpectedResultCountError
from ipstack_lookup.logger import logger
from ipstack_lookup.models.common import LookupResult

# Recommended default (in seconds) for calls to the external ipstack API.
DEFAULT_CLIENT_TIMEOUT = 5

API_HOST = "api.ipstack.com"

_RESULT_LIST = TypeAdapter(list[LookupResult])


class BaseIpstackClient:
    """Shared request building and response decoding for the ipstack clients.

    Concrete clients own the transport handle (a sync or async httpx client)
    and only implement the HTTP exchange itself. Everything that turns IPs
    into a URL and a response body into ``LookupResult`` objects lives here,
    so both flavours behave identically.
    """

    def __init__(
        self,
        access_key: str,
        use_https: bool = False,
        timeout_seconds: int = DEFAULT_CLIENT_TIMEOUT,
    ) -> None:
        self._access_key = access_key
        self._use_https = use_https
        # Zero (or a negative value) disables the timeout entirely.
        self._timeout_seconds = float(timeout_seconds) if timeout_seconds > 0 else None
        self._timeout = httpx.Timeout(self._timeout_seconds)

    def _deadline_exceeded_message(self) -> str:
        return f"ipstack request did not complete within {self._timeout_seconds:g}s"

    @staticmethod
    def _prepare_ips(ips: Iterable[str]) -> list[str]:
        """Reject empty input and collapse duplicates, keeping submission order.

        A bare string is a single IP, not an iterable of characters.
        """
        if isinstance(ips, str):
            ips = [ips]
        unique_ips = list(dict.fromkeys(ips))
        if not unique_ips:
            raise EmptyInputError("No IP addresses to look up.")
        return unique_ips

    def _build_url(self, ips: list[str]) -> str:
        # ipstack's free tier only serves plain http.
        scheme = "https://" if self._use_https else "http://"
        return f"{scheme}{API_HOST}/{','.join(ips)}"

    def _query_params(self) -> dict[str, str]:
        return {
            "access_key": self._access_key,
            "hostname": "1",
            "language": "en",
            "output": "json",
        }

    def _log_request(self, ips: list[str]) -> None:
        logger.debug(f"Querying ipstack ips={ips} https={self._use_https}")

    def _decode(self, ips: list[str], content: bytes) -> list[LookupResult]:
        """Decode a fully-read ipstack response body.

        ipstack answers a single-IP request with a JSON object and a multi-IP
        request with a JSON array. The number of requested IPs decides which
        shape is expected; the body itself is never sniffed for it.
        """
        data = self._parse_json(content)
        self._handle_provider_error(data)

        try:
            if len(ips) > 1:
                return self._match_request_order(ips, _RESULT_LIST.validate_python(data))
            return [LookupResult.model_validate(data)]
        except ValidationError as exc:
            raise DecodeError(f"Unexpected ipstack response shape: {exc}") from exc

    @staticmethod
    def _parse_json(content: bytes) -> Any:
        try:
            return json.loads(content)
        except ValueError as exc:
            raise DecodeError(f"Failed to decode ipstack response as JSON: {exc}") from exc

    @staticmethod
    def _handle_provider_error(data: Any) -> None:
        """Turn ipstack's error payload into an IpstackApiError.

        Example:
            { "success": false, "error": { "code": 101, "type": "invalid_access_key", "info": "..." } }
        """
        if not isinstance(data, dict) or data.get("success") is not False:
            return

        error = data.get("error")
        if not isinstance(error, dict):
            error = {}
        raise IpstackApiError(code=error.get("code"), error_type=error.get("type"), info=error.get("info"))

    @staticmethod
    def _match_request_order(ips: list[str], results: list[LookupResult]) -> list[LookupResult]:
        """Return bulk results in request order.

        ipstack is expected to answer in request order. When it does not, but
        every requested IP is present exactly once, the results are re-matched
        by their ``ip`` field. Anything else is returned untouched.
        """
        returned_ips = [result.ip for result in results]
        if returned_ips == ips:
            return results
        if len(returned_ips) != len(ips) or set(returned_ips) != set(ips):
            return results

        logger.debug(f"Re-ordering ipstack bulk results requested={ips} returned={returned_ips}")
        by_ip = {result.ip: result for result in results}
        return [by_ip[ip] for ip in ips]

    @staticmethod
    def _unwrap_single(results: list[LookupResult]) -> LookupResult:
        if len(results) != 1:
            raise UnexpectedResultCountError(expected=1, actual=len(results))
        return results[0]
