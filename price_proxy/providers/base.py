"""
Abstract base class for upstream price sources.
Defines the single-market lookup contract and the typed failures it raises.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import httpx

from ..core.logging_config import create_logger

logger = create_logger(__name__)


class PriceSourceError(Exception):
    """Base exception for price source errors."""

    def __init__(self, message: str, provider: str, market: Optional[str] = None):
        self.message = message
        self.provider = provider
        self.market = market
        super().__init__(self.message)


class UpstreamUnreachableError(PriceSourceError):
    """Raised when the upstream endpoint cannot be reached or times out."""
    pass


class UpstreamMalformedError(PriceSourceError):
    """Raised when the upstream answer is not a usable price."""
    pass


class BasePriceSource(ABC):
    """Abstract base class for single-market price lookups."""

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.name = name
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self) -> None:
        """Initialize HTTP client connection."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
                headers=self._get_default_headers(),
                follow_redirects=True,
                transport=self._transport
            )
            logger.debug("Connected to price source", extra={"provider": self.name})

    async def disconnect(self) -> None:
        """Close HTTP client connection."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.debug("Disconnected from price source", extra={"provider": self.name})

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers for requests."""
        return {
            'User-Agent': 'Price-Proxy/1.0.0',
            'Accept': 'application/json'
        }

    async def _get_json(self, path: str, market: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issue one GET request and decode its JSON body.

        Single attempt: transport failures become UpstreamUnreachableError,
        bad statuses and undecodable bodies become UpstreamMalformedError.
        """
        if not self.client:
            await self.connect()

        url = f"{self.base_url}{path}"
        logger.debug("Making request to price source", extra={
            "provider": self.name,
            "url": url,
            "market": market
        })

        try:
            response = await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamUnreachableError(
                f"Request timeout for {self.name} market {market}: {e!r}",
                self.name,
                market
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnreachableError(
                f"HTTP error for {self.name} market {market}: {e!r}",
                self.name,
                market
            ) from e

        if response.is_error:
            raise UpstreamMalformedError(
                f"Unexpected status {response.status_code} from {self.name} market {market}",
                self.name,
                market
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamMalformedError(
                f"Invalid JSON response from {self.name} market {market}: {e}",
                self.name,
                market
            ) from e

    @abstractmethod
    async def fetch(self, market: str) -> float:
        """
        Get the last traded price for one market.

        Args:
            market: Upstream market identifier, e.g. "ETHUSDC"

        Returns:
            The last price as a float

        Raises:
            PriceSourceError: If the price cannot be obtained
        """
        pass
