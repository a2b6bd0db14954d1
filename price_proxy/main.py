"""
Main FastAPI application for the Price Proxy Service.
Includes lifespan management for the upstream client and the shared price cache.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
import time

from price_proxy.core.config import settings, MARKETS
from price_proxy.core.logging_config import setup_logging, create_logger
from price_proxy.api.endpoints import CORS_HEADERS, router as api_router
from price_proxy.providers.coinex_provider import CoinExPriceSource
from price_proxy.services.aggregator import PriceAggregator
from price_proxy.services.cache import PriceCache
from price_proxy.services.price_service import PriceService

# Setup logging first
setup_logging()
logger = create_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Builds the price service unless one was injected, and closes the upstream client on shutdown.
    """
    logger.info("Starting Price Proxy Service", extra={
        "version": settings.app_version,
        "markets": list(MARKETS),
        "cache_ttl": settings.cache_ttl
    })

    source: Optional[CoinExPriceSource] = None
    if getattr(app.state, "price_service", None) is None:
        source = CoinExPriceSource()
        await source.connect()
        app.state.price_service = PriceService(
            cache=PriceCache(ttl_seconds=settings.cache_ttl),
            aggregator=PriceAggregator(source),
            markets=MARKETS,
            single_flight=settings.single_flight
        )

    app.state.started_at = datetime.now(timezone.utc)
    logger.info("Price Proxy Service started successfully")

    yield  # Application is running

    logger.info("Shutting down Price Proxy Service")
    if source is not None:
        await source.disconnect()
        app.state.price_service = None


def create_app(price_service: Optional[PriceService] = None) -> FastAPI:
    """Create the FastAPI application, optionally around a pre-built price service."""
    app = FastAPI(
        title=settings.app_name,
        description="Aggregated exchange prices behind a short-lived cache",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )
    app.state.price_service = price_service
    app.state.started_at = datetime.now(timezone.utc)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests and responses."""
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Request failed", extra={
                "method": request.method,
                "path": request.url.path,
                "error": str(e),
                "process_time": round(time.time() - start_time, 4)
            })
            return PlainTextResponse(str(e) or type(e).__name__, status_code=500, headers=CORS_HEADERS)

        process_time = time.time() - start_time
        logger.info("Request completed", extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time": round(process_time, 4),
            "client_ip": request.client.host if request.client else None
        })
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc):
        """Plain-text 404 for any unknown path."""
        return PlainTextResponse("404", status_code=404)

    app.include_router(api_router, tags=["Prices"])
    return app


app = create_app()
