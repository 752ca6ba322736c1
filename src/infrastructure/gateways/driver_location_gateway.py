"""
Infrastructure Gateway - Driver Location Implementation

This module implements the driver location gateway that counts
available drivers per cell or around a point.
"""

from typing import Any, Dict
from urllib.parse import quote

import httpx
import structlog

from src.domain.entities.errors import DomainError
from src.domain.gateways.driver_location_gateway import IDriverLocationGateway

logger = structlog.get_logger(__name__)


class DriverLocationGatewayError(DomainError):
    """Exception raised when driver location operations fail."""

    pass


class DriverLocationGateway(IDriverLocationGateway):
    """Implementation of driver location gateway using HTTP client."""

    def __init__(self, base_url: str, timeout: float = 2.0):
        """
        Initialize driver location gateway.

        Args:
            base_url: Base URL of the driver location service
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_driver_count_in_cell(self, h3_index: str) -> int:
        url = f"{self.base_url}/drivers/cells/{quote(h3_index, safe='')}/count"
        return await self._get_count(url, params=None)

    async def get_nearby_driver_count(
        self, latitude: float, longitude: float, radius_km: float
    ) -> int:
        url = f"{self.base_url}/drivers/nearby/count"
        params = {
            "lat": str(latitude),
            "lon": str(longitude),
            "radius_km": str(radius_km),
        }
        return await self._get_count(url, params=params)

    async def _get_count(self, url: str, params: Dict[str, Any] | None) -> int:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return int(response.json().get("count", 0))

        except httpx.HTTPStatusError as e:
            logger.error(
                "driver_location.http_error",
                status_code=e.response.status_code,
                response_text=e.response.text,
                url=url,
            )
            raise DriverLocationGatewayError(
                f"Driver location HTTP error {e.response.status_code}: "
                f"{e.response.text}"
            ) from e

        except httpx.RequestError as e:
            logger.error("driver_location.request_error", error=str(e), url=url)
            raise DriverLocationGatewayError(
                f"Driver location request failed: {str(e)}"
            ) from e

        except Exception as e:
            logger.error("driver_location.unexpected_error", error=str(e), url=url)
            raise DriverLocationGatewayError(
                f"Driver location unexpected error: {str(e)}"
            ) from e
