"""
Pydantic schemas and type aliases for the Price Proxy Service.
"""

from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field

# Symbol key -> upstream market identifier
MarketSpecification = Mapping[str, str]

# Symbol key -> last traded price
PriceSnapshot = Dict[str, float]


class CacheEntry(BaseModel):
    """The most recently published snapshot and when it was written."""
    model_config = ConfigDict(frozen=True)

    prices: PriceSnapshot = Field(..., description="Complete price snapshot")
    stored_at: float = Field(..., description="Clock reading at write time")


class HealthResponse(BaseModel):
    """Model for health check response."""
    status: Literal["healthy"] = Field("healthy", description="Service status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Health check timestamp")
    version: str = Field(..., description="Service version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    cache_age_seconds: Optional[float] = Field(None, description="Age of the cached snapshot")
