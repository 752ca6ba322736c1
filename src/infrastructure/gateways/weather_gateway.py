"""
Infrastructure Gateway - Weather Implementation

This module implements the weather gateway that queries the weather
provider for current conditions at a coordinate.
"""

from typing import Any, Dict

import httpx
import structlog

from src.domain.entities.errors import DomainError
from src.domain.entities.forecast_model import WeatherData
from src.domain.gateways.weather_gateway import IWeatherGateway

logger = structlog.get_logger(__name__)


class WeatherGatewayError(DomainError):
    """Exception raised when weather provider operations fail."""

    pass


class WeatherGateway(IWeatherGateway):
    """Implementation of weather gateway using HTTP client."""

    def __init__(self, base_url: str, timeout: float = 2.0):
        """
        Initialize weather gateway.

        Args:
            base_url: Base URL of the weather service (e.g., "http://weather:8080")
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_current_weather(
        self, latitude: float, longitude: float
    ) -> WeatherData:
        url = f"{self.base_url}/weather/current"
        params = {"lat": str(latitude), "lon": str(longitude)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return self._parse_weather(response.json())

        except httpx.HTTPStatusError as e:
            logger.error(
                "weather.http_error",
                status_code=e.response.status_code,
                response_text=e.response.text,
                url=url,
            )
            raise WeatherGatewayError(
                f"Weather HTTP error {e.response.status_code}: {e.response.text}"
            ) from e

        except httpx.RequestError as e:
            logger.error("weather.request_error", error=str(e), url=url)
            raise WeatherGatewayError(f"Weather request failed: {str(e)}") from e

        except Exception as e:
            logger.error("weather.unexpected_error", error=str(e), url=url)
            raise WeatherGatewayError(f"Weather unexpected error: {str(e)}") from e

    @staticmethod
    def _parse_weather(data: Dict[str, Any]) -> WeatherData:
        return WeatherData(
            condition_code=int(data.get("condition_code", 0)),
            condition=str(data.get("condition", "unknown")),
            temperature=float(data.get("temperature", 0.0)),
            precipitation_probability=float(data.get("precipitation_probability", 0.0)),
            precipitation_mm=float(data.get("precipitation_mm", 0.0)),
        )
