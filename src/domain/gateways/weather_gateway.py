"""
Domain Gateway - Weather

This module defines the gateway interface for retrieving current weather
conditions from an external weather provider.
"""

from abc import ABC, abstractmethod

from src.domain.entities.forecast_model import WeatherData


class IWeatherGateway(ABC):
    """Interface for weather provider gateways."""

    @abstractmethod
    async def get_current_weather(
        self, latitude: float, longitude: float
    ) -> WeatherData:
        """
        Get current weather conditions at a location.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            Current weather conditions

        Raises:
            WeatherGatewayError: When the provider cannot be reached
        """
        pass
