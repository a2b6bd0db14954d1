"""
FastAPI endpoints for the Price Proxy Service.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..api.schemas import HealthResponse
from ..core.config import settings
from ..core.logging_config import create_logger
from ..services.aggregator import AggregationFailedError
from ..services.price_service import PriceService

logger = create_logger(__name__)

router = APIRouter()

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def get_price_service(request: Request) -> PriceService:
    """Get the price service created at startup."""
    return request.app.state.price_service


@router.options("/prices")
async def prices_preflight():
    """CORS preflight. Does not touch the cache."""
    return PlainTextResponse("OK", headers=CORS_HEADERS)


@router.get("/prices")
async def get_prices(request: Request):
    """
    Get the latest price for every configured symbol.

    Returns:
        JSON object mapping symbol key to price, or a plain-text 500 when
        any market lookup failed
    """
    service = get_price_service(request)

    try:
        prices = await service.get_prices()
    except AggregationFailedError as e:
        return PlainTextResponse(str(e), status_code=500, headers=CORS_HEADERS)
    except Exception as e:
        logger.error("Failed to retrieve prices", extra={
            "error_type": type(e).__name__,
            "error": str(e)
        })
        return PlainTextResponse(str(e) or type(e).__name__, status_code=500, headers=CORS_HEADERS)

    return JSONResponse(content=prices, headers=CORS_HEADERS)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Liveness check reporting uptime and the age of the cached snapshot."""
    service = get_price_service(request)
    uptime_seconds = (datetime.now(timezone.utc) - request.app.state.started_at).total_seconds()

    return HealthResponse(
        version=settings.app_version,
        uptime_seconds=uptime_seconds,
        cache_age_seconds=service.cache.age()
    )
