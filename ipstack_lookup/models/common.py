from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class _FrozenModel(BaseModel):
    """Immutable model that ignores fields ipstack adds over time."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class Language(_FrozenModel):
    code: str | None = None
    name: str | None = None
    native: str | None = None


class Location(_FrozenModel):
    geoname_id: int | None = None
    capital: str | None = None
    languages: list[Language] | None = None
    country_flag: str | None = None
    country_flag_emoji: str | None = None
    country_flag_emoji_unicode: str | None = None
    calling_code: str | None = None
    is_eu: bool | None = None


class TimeZone(_FrozenModel):
    id: str | None = None
    current_time: str | None = None
    gmt_offset: int | None = None
    code: str | None = None
    is_daylight_saving: bool | None = None


class Currency(_FrozenModel):
    code: str | None = None
    name: str | None = None
    plural: str | None = None
    symbol: str | None = None
    symbol_native: str | None = None


class Connection(_FrozenModel):
    asn: int | None = None
    isp: str | None = None


class Security(_FrozenModel):
    is_proxy: bool | None = None
    proxy_type: str | None = None
    is_crawler: bool | None = None
    crawler_name: str | None = None
    crawler_type: str | None = None
    is_tor: bool | None = None
    threat_level: str | None = None
    threat_types: list[str] | None = None


class LookupResult(_FrozenModel):
    """One ipstack record for one IP address.

    The field set follows the ipstack JSON schema. Every field is optional:
    which ones are populated depends on the subscription plan and on the
    requested options (e.g. ``hostname=1``).
    """

    ip: str | None = None
    hostname: str | None = None
    type: str | None = None
    continent_code: str | None = None
    continent_name: str | None = None
    country_code: str | None = None
    country_name: str | None = None
    region_code: str | None = None
    region_name: str | None = None
    city: str | None = None
    zip: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    location: Location | None = None
    time_zone: TimeZone | None = None
    currency: Currency | None = None
    connection: Connection | None = None
    security: Security | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float | None:
        """Allow latitude/longitude to be provided as strings, numbers, or null."""
        if value is None:
            return None
        try:
            # For general GPS and mapping, 5-6 decimal places (e.g., 34.052235)
            return round(float(value), 6)
        except (TypeError, ValueError):
            return None
