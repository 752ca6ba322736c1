"""
Repositories Package

This package contains interfaces defining repository contracts
for data access operations. Specific implementations are provided
by the infrastructure layer.
"""

from .demand_forecast_repository import IDemandForecastRepository

__all__ = ["IDemandForecastRepository"]
