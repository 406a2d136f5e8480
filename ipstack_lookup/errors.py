class IpstackError(Exception):
    """Base error for ipstack lookup failures."""


class EmptyInputError(IpstackError):
    """Raised when a bulk lookup is requested without any IP addresses."""


class TransportError(IpstackError):
    """Raised when the request to ipstack fails (connection, DNS, timeout)."""


class DecodeError(IpstackError):
    """Raised when the ipstack response body cannot be decoded into lookup results."""


class UnexpectedResultCountError(IpstackError):
    """Raised when a single-IP lookup does not yield exactly one result."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"ipstack lookup returned {actual} results, expected {expected}")
        self.expected = expected
        self.actual = actual


class IpstackApiError(IpstackError):
    """Raised when ipstack answers with an error payload instead of lookup results.

    ipstack reports failures (invalid access key, quota reached, invalid IP...)
    as ``{"success": false, "error": {"code": ..., "type": ..., "info": ...}}``,
    usually with HTTP 200.
    """

    def __init__(self, code: int | None, error_type: str | None, info: str | None) -> None:
        super().__init__(info or error_type or "Unknown error from ipstack")
        self.code = code
        self.type = error_type
        self.info = info
