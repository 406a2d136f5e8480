from ipaddress import ip_address

from pydantic import BaseModel, Field, field_validator


def _validate_ip_literal(value: str) -> str:
    value_str = str(value).strip()
    try:
        ip_address(value_str)
    except ValueError as exc:
        raise ValueError("ip must be a valid IPv4 or IPv6 address") from exc
    return value_str


class IPLookupRequest(BaseModel):
    """Request model for a single IP lookup via query parameters."""

    ip: str = Field(
        description="IPv4 or IPv6 address to look up.",
        examples=["8.8.8.8", "2001:4860:4860::8888"],
    )

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, value: str) -> str:
        """Validate that ip is a valid IP address (IPv4 or IPv6).

        Surrounding whitespace is stripped; anything else that is not an IP
        literal raises a validation error and the endpoint handler is never
        invoked.
        """
        return _validate_ip_literal(value)


class BulkLookupRequest(BaseModel):
    """Request model for a bulk lookup of several IP addresses.

    All addresses are sent to ipstack in a single request.
    """

    ips: list[str] = Field(
        min_length=1,
        description="IPv4 or IPv6 addresses to look up.",
        examples=[["8.8.8.8", "1.1.1.1"]],
    )

    @field_validator("ips", mode="before")
    @classmethod
    def _validate_ips(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str):
            value = [value]
        return [_validate_ip_literal(item) for item in value]
