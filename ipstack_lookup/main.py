from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ipstack_lookup.clients.async_ipstack_client import AsyncIpstackClient
from ipstack_lookup.config import get_settings
from ipstack_lookup.errors import EmptyInputError, IpstackApiError, IpstackError, TransportError
from ipstack_lookup.exception_handlers import (
    pydantic_validation_exception_handler,
    unhandled_exception_handler,
)
from ipstack_lookup.logger import configure_logging, logger
from ipstack_lookup.models.common import LookupResult
from ipstack_lookup.models.request_models import BulkLookupRequest, IPLookupRequest
from ipstack_lookup.models.response_models import BulkLookupResponse, HealthResponse

configure_logging()


@lru_cache
def get_ipstack_client() -> AsyncIpstackClient:
    """Dependency providing the process-wide ipstack client.

    The client (and its connection pool) is built once from the settings and
    shared by every request.
    """
    settings = get_settings()
    return AsyncIpstackClient(
        settings.access_key,
        use_https=settings.use_https,
        timeout_seconds=settings.timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    if get_ipstack_client.cache_info().currsize:
        await get_ipstack_client().aclose()
        get_ipstack_client.cache_clear()


app = FastAPI(
    title="ipstack Lookup Service",
    version="0.1.0",
    description="HTTP front for ipstack single and bulk IP geolocation lookups.",
    lifespan=lifespan,
)
logger.info("Started ipstack Lookup Service")

# Register global exception handlers using the shared handlers module.
app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(RequestValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def _to_http_exception(request: Request, ips: list[str], exc: IpstackError) -> HTTPException:
    """Map a lookup failure to the HTTP error returned to our callers."""
    context = f"path={request.url.path} method={request.method} ips={ips} error={exc}"

    if isinstance(exc, EmptyInputError):
        logger.error(f"Lookup requested without IP addresses {context}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "empty_input", "message": str(exc)},
        )
    if isinstance(exc, IpstackApiError):
        logger.error(f"ipstack returned an error payload {context} provider_code={exc.code} provider_type={exc.type}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "provider_error",
                "message": str(exc),
                "provider_code": exc.code,
                "provider_type": exc.type,
            },
        )
    if isinstance(exc, TransportError):
        logger.exception(f"Request to ipstack failed {context}")
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"code": "upstream_unavailable", "message": str(exc)},
        )

    # DecodeError, UnexpectedResultCountError: ipstack answered with something we cannot use.
    logger.exception(f"Unusable response from ipstack {context}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "upstream_error", "message": str(exc)},
    )


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.get(
    "/v1/ip/lookup",
    response_model=LookupResult,
    status_code=status.HTTP_200_OK,
    tags=["ip"],
    summary="Look up geolocation information for an IP address.",
)
async def ip_lookup(
    request: Request,
    query: Annotated[IPLookupRequest, Depends()],
    client: Annotated[AsyncIpstackClient, Depends(get_ipstack_client)],
) -> LookupResult:
    ip = query.ip
    logger.info(f"Performing IP lookup path={request.url.path} method={request.method} ip={ip}")

    try:
        return await client.check(ip)
    except IpstackError as exc:
        raise _to_http_exception(request, [ip], exc) from exc


@app.get(
    "/v1/ip/bulk",
    response_model=BulkLookupResponse,
    status_code=status.HTTP_200_OK,
    tags=["ip"],
    summary="Look up geolocation information for several IP addresses at once.",
)
async def ip_bulk_lookup(
    request: Request,
    client: Annotated[AsyncIpstackClient, Depends(get_ipstack_client)],
    ip: Annotated[list[str] | None, Query(description="IP address to look up, repeat for several.")] = None,
) -> BulkLookupResponse:
    """Look up all given IPs with a single ipstack request.

    Results are returned in request order; repeated addresses are looked up once.
    """
    query = BulkLookupRequest(ips=ip or [])
    logger.info(f"Performing bulk IP lookup path={request.url.path} method={request.method} ips={query.ips}")

    try:
        results = await client.check_bulk(query.ips)
    except IpstackError as exc:
        raise _to_http_exception(request, query.ips, exc) from exc

    return BulkLookupResponse(results=results)
