from pydantic import BaseModel

from ipstack_lookup.models.common import LookupResult


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class BulkLookupResponse(BaseModel):
    """Response model for a bulk IP lookup, results in request order."""

    results: list[LookupResult]
