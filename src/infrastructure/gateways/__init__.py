"""
Gateways Package - Infrastructure Layer

This package contains concrete implementations of the gateway
interfaces defined in the domain layer. These implementations
handle the details of external service communications.
"""

from .driver_location_gateway import DriverLocationGateway
from .weather_gateway import WeatherGateway

__all__ = ["DriverLocationGateway", "WeatherGateway"]
