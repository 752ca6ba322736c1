"""
Domain Gateway - Driver Location

This module defines the gateway interface for querying live driver supply
from the driver location service.
"""

from abc import ABC, abstractmethod


class IDriverLocationGateway(ABC):
    """Interface for driver location gateways."""

    @abstractmethod
    async def get_driver_count_in_cell(self, h3_index: str) -> int:
        """
        Count available drivers currently located in a cell.

        Args:
            h3_index: Cell identifier

        Returns:
            Number of available drivers

        Raises:
            DriverLocationGatewayError: When the service cannot be reached
        """
        pass

    @abstractmethod
    async def get_nearby_driver_count(
        self, latitude: float, longitude: float, radius_km: float
    ) -> int:
        """
        Count available drivers within a radius of a point.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees
            radius_km: Search radius in kilometers

        Returns:
            Number of available drivers
        """
        pass
